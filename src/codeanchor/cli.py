"""codeanchor CLI: report, anchor, status and verify-data commands."""

import argparse
import logging
import sys
from importlib.metadata import version as get_version, PackageNotFoundError
from pathlib import Path

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_UNAVAILABLE = 2


def _configure_logging(args) -> None:
    if getattr(args, "quiet", False):
        level = logging.ERROR
    elif getattr(args, "verbose", False):
        level = logging.INFO
    else:
        level = logging.WARNING
    logging.basicConfig(format="[%(levelname)s] %(message)s", level=level, force=True)


def _yes_no(value: bool) -> str:
    return "yes" if value else "no"


def main():
    """Main CLI entry point for codeanchor commands."""
    try:
        codeanchor_version = get_version("codeanchor")
    except PackageNotFoundError:
        codeanchor_version = "dev"

    parser = argparse.ArgumentParser(
        prog="codeanchor",
        description="codeanchor: Deterministic codebase verification anchored on chain"
    )
    parser.add_argument("--version", action="version", version=f"codeanchor {codeanchor_version}")
    # Common arguments
    parent_parser = argparse.ArgumentParser(add_help=False)
    output_level = parent_parser.add_mutually_exclusive_group()
    output_level.add_argument(
        "--quiet",
        action="store_true",
        help="Suppress all non-error output."
    )
    output_level.add_argument(
        "--verbose",
        action="store_true",
        help="Log each pipeline step."
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # report command
    report_parser = subparsers.add_parser(
        "report",
        help="Hash the codebase, run security checks and write the verification report",
        parents=[parent_parser]
    )
    report_parser.add_argument(
        "--root",
        type=Path,
        default=Path("."),
        help="Project root (defaults to the current directory)"
    )
    report_parser.add_argument(
        "--output",
        type=Path,
        default=None,
        help="Report path (defaults to <root>/verification-report.json)"
    )
    report_parser.add_argument(
        "--project-name",
        default=None,
        help="Project identity used on chain"
    )
    report_parser.add_argument(
        "--rules",
        type=Path,
        default=None,
        help="JSON file overriding the digest selection rules"
    )
    report_parser.add_argument(
        "--skip-security",
        action="store_true",
        help="Do not run the security tools"
    )

    # anchor command
    anchor_parser = subparsers.add_parser(
        "anchor",
        help="Store an existing verification report on chain",
        parents=[parent_parser]
    )
    anchor_parser.add_argument(
        "--report",
        type=Path,
        default=Path("verification-report.json"),
        help="Path to the verification report"
    )
    anchor_parser.add_argument(
        "--record-deployment",
        action="store_true",
        help="Record a deployment of the portfolio contract (implied under GitHub Actions)"
    )
    anchor_parser.add_argument(
        "--environment",
        default="production",
        help="Deployment environment tag"
    )
    anchor_parser.add_argument(
        "--output",
        type=Path,
        default=None,
        help="Blockchain report path (defaults to blockchain-verification-report.json beside the report)"
    )

    # status command
    status_parser = subparsers.add_parser(
        "status",
        help="Read the on-chain verification status of a project version",
        parents=[parent_parser]
    )
    status_parser.add_argument(
        "--project-name",
        default=None,
        help="Project identity used on chain"
    )
    status_parser.add_argument(
        "--project-version",
        default=None,
        help="Project version (defaults to the version in verification-report.json)"
    )

    # verify-data command
    subparsers.add_parser(
        "verify-data",
        help="Re-verify live portfolio content against its on-chain digest",
        parents=[parent_parser]
    )

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(EXIT_ERROR)

    _configure_logging(args)

    if args.command == "report":
        try:
            from .api import generate_report
            from .kernel.report import DEFAULT_PROJECT_NAME

            record, report_path = generate_report(
                args.root,
                args.output,
                project_name=args.project_name or DEFAULT_PROJECT_NAME,
                rules=args.rules,
                skip_security=args.skip_security,
            )
            if not args.quiet:
                print("[OK] Verification report written")
                print(f"  Report: {report_path}")
                print(f"  Project: {record.project_name} {record.version}")
                print(f"  Git commit: {record.git_commit_hash}")
                print(f"  Final verification hash: {record.final_verification_hash}")
                print(f"  Git clean: {_yes_no(record.is_git_clean)}")
                for tool, passed in record.security_checks.items():
                    print(f"  {tool}: {'passed' if passed else 'FAILED'}")
                print(f"  Valid: {_yes_no(record.verification.is_valid)}")
            sys.exit(EXIT_OK)
        except (FileNotFoundError, ValueError, RuntimeError, OSError) as e:
            print(f"Error: {e}", file=sys.stderr)
            sys.exit(EXIT_ERROR)
    elif args.command == "anchor":
        try:
            from .api import anchor
            from ._internal.ledger import AnchorError
            from ._internal.settings import AnchorSettings

            settings = AnchorSettings.from_env()
            result, blockchain_report = anchor(
                args.report,
                settings=settings,
                record_deployment=args.record_deployment,
                environment=args.environment,
                output=args.output,
            )
            if not args.quiet:
                print("[OK] Verification data stored on chain")
                print(f"  Codebase hash tx: {result.codebase_hash.transaction_hash}")
                print(f"  Security report tx: {result.security_report.transaction_hash}")
                if result.deployment is not None:
                    print(f"  Deployment tx: {result.deployment.transaction_hash}")
                print(f"  Verified: {_yes_no(result.status.is_verified)}")
                print(f"  Report: {blockchain_report}")
                print(f"  Verify on explorer: {settings.explorer_address_url(settings.verification_address)}")
            sys.exit(EXIT_OK)
        except AnchorError as e:
            print(f"Error: {e}", file=sys.stderr)
            if e.transaction_hash is not None:
                print(f"  Transaction: {settings.explorer_transaction_url(e.transaction_hash)}", file=sys.stderr)
            if e.retryable:
                print("  The transaction may still confirm; check it before resubmitting.", file=sys.stderr)
            sys.exit(EXIT_ERROR)
        except (FileNotFoundError, ValueError, OSError) as e:
            print(f"Error: {e}", file=sys.stderr)
            sys.exit(EXIT_ERROR)
    elif args.command == "status":
        try:
            from .api import load_report, status
            from ._internal.ledger import AnchorError
            from .kernel.report import DEFAULT_PROJECT_NAME, DEFAULT_VERSION, REPORT_FILENAME

            project_name = args.project_name
            project_version = args.project_version
            if project_name is None or project_version is None:
                # Fall back to the local report, then to the defaults
                try:
                    record = load_report(REPORT_FILENAME)
                    project_name = project_name or record.project_name
                    project_version = project_version or record.version
                except FileNotFoundError:
                    pass
            summary = status(
                project_name or DEFAULT_PROJECT_NAME,
                project_version or DEFAULT_VERSION,
            )
            if not args.quiet:
                print(f"[OK] {summary.project_name} {summary.version}: {summary.level.value} ({summary.score}/100)")
                print(f"  Codebase hash: {_yes_no(summary.status.has_codebase_hash)}")
                print(f"  Security report: {_yes_no(summary.status.has_security_report)}")
                print(f"  Security passing: {_yes_no(summary.status.security_passing)}")
                print(f"  Deployment: {_yes_no(summary.status.has_deployment)}")
                print(f"  Verified: {_yes_no(summary.status.is_verified)}")
                if summary.codebase_hash is not None:
                    print(f"  Latest commit: {summary.codebase_hash.git_commit_hash}")
                if summary.deployment is not None:
                    print(f"  Latest deployment: {summary.deployment.contract_address} "
                          f"({summary.deployment.environment}, {summary.deployment_count} total)")
            sys.exit(EXIT_OK)
        except AnchorError as e:
            print(f"Error: {e}", file=sys.stderr)
            sys.exit(EXIT_ERROR)
        except (ValueError, OSError) as e:
            print(f"Error: {e}", file=sys.stderr)
            sys.exit(EXIT_ERROR)
    elif args.command == "verify-data":
        try:
            from .api import verify_portfolio
            from ._internal.ledger import AnchorError
            from .codes import IntegrityState

            check = verify_portfolio()
        except (AnchorError, ValueError) as e:
            print(f"Error: {e}", file=sys.stderr)
            sys.exit(EXIT_ERROR)

        if check.state is IntegrityState.VERIFIED:
            if not args.quiet:
                print("[OK] Portfolio data verified")
                print(f"  Data hash: {check.stored_hash}")
            sys.exit(EXIT_OK)
        elif check.state is IntegrityState.MISMATCH:
            print("[FAILED] Portfolio data does not match its on-chain digest", file=sys.stderr)
            print(f"  Computed: {check.computed_hash or check.error}", file=sys.stderr)
            print(f"  On chain: {check.stored_hash}", file=sys.stderr)
            sys.exit(EXIT_ERROR)
        else:
            print(f"[UNAVAILABLE] Portfolio data could not be verified: {check.error}", file=sys.stderr)
            sys.exit(EXIT_UNAVAILABLE)
    else:
        parser.print_help()
        sys.exit(EXIT_ERROR)


if __name__ == "__main__":
    main()
