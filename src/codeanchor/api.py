"""Public API for codeanchor.

High-level functions that return complete, structured results. The CLI is a
thin layer over these; other tools should call them instead of importing
from _internal.
"""

import os
from pathlib import Path
from typing import Optional, Tuple, Union

from pydantic import BaseModel

from codeanchor._internal.anchor import (
    BLOCKCHAIN_REPORT_FILENAME,
    DEFAULT_ENVIRONMENT,
    anchor_report,
    plan_deployment,
    write_blockchain_report,
)
from codeanchor._internal.ledger import PortfolioLedger, VerificationLedger
from codeanchor._internal.settings import AnchorSettings
from codeanchor.codes import VerificationLevel
from codeanchor.contracts import (
    AnchorResult,
    CodebaseHashEntry,
    DeploymentRecord,
    SecurityReportEntry,
    VerificationRecord,
    VerificationStatus,
)
from codeanchor.kernel import report as _report
from codeanchor.kernel.digest import DEFAULT_RULES, DigestRules
from codeanchor.kernel.portfolio import IntegrityCheck, check_integrity
from codeanchor.kernel.security import DEFAULT_SECURITY_TOOLS
from codeanchor.kernel.status import verification_level, verification_score

PathLike = Union[str, os.PathLike, Path]


def _normalize_path(path: PathLike) -> Path:
    """Normalize path input to Path object."""
    return Path(path) if not isinstance(path, Path) else path


class StatusSummary(BaseModel):
    """Verification status of one project version, plus the latest stored records."""
    project_name: str
    version: str
    status: VerificationStatus
    score: int
    level: VerificationLevel
    codebase_hash: Optional[CodebaseHashEntry] = None
    security_report: Optional[SecurityReportEntry] = None
    deployment: Optional[DeploymentRecord] = None
    deployment_count: int = 0


def generate_report(
    root: PathLike = ".",
    output: Optional[PathLike] = None,
    *,
    project_name: str = _report.DEFAULT_PROJECT_NAME,
    rules: Union[DigestRules, PathLike, None] = None,
    skip_security: bool = False,
) -> Tuple[VerificationRecord, Path]:
    """Compute a verification record for a project and write the report file.

    Args:
        root: Project root directory
        output: Report path (defaults to ``<root>/verification-report.json``)
        project_name: Identity key used on chain
        rules: Digest rules, or a path to a JSON rules file
        skip_security: Do not run the security tools (empty check map)

    Returns:
        (record, path written)
    """
    if rules is None:
        rules = DEFAULT_RULES
    elif not isinstance(rules, DigestRules):
        rules = DigestRules.from_file(_normalize_path(rules))
    return _report.generate_report(
        _normalize_path(root),
        output=_normalize_path(output) if output is not None else None,
        project_name=project_name,
        rules=rules,
        security_tools=() if skip_security else DEFAULT_SECURITY_TOOLS,
    )


def load_report(path: PathLike = _report.REPORT_FILENAME) -> VerificationRecord:
    """Load a verification report file."""
    return _report.load_report(_normalize_path(path))


def anchor(
    report_path: PathLike = _report.REPORT_FILENAME,
    *,
    settings: Optional[AnchorSettings] = None,
    ledger: Optional[VerificationLedger] = None,
    record_deployment: bool = False,
    environment: str = DEFAULT_ENVIRONMENT,
    output: Optional[PathLike] = None,
) -> Tuple[AnchorResult, Path]:
    """Anchor an existing report on the ledger.

    The report is loaded and settings are checked before any transaction,
    so a missing report or address fails without touching the network.

    Returns:
        (result, path of the blockchain verification report)
    """
    report_path = _normalize_path(report_path)
    record = load_report(report_path)
    settings = settings if settings is not None else AnchorSettings.from_env()
    if ledger is None:
        ledger = VerificationLedger.from_settings(settings)

    deployment = plan_deployment(
        record,
        settings.portfolio_address,
        environment=environment,
        force=record_deployment,
    )
    # Read before any write.
    chain_id = ledger.get_chain_id()
    result = anchor_report(record, ledger, deployment)

    target = (
        _normalize_path(output)
        if output is not None
        else report_path.resolve().parent / BLOCKCHAIN_REPORT_FILENAME
    )
    path = write_blockchain_report(record, result, chain_id, ledger.address, target)
    return result, path


def status(
    project_name: str = _report.DEFAULT_PROJECT_NAME,
    version: str = _report.DEFAULT_VERSION,
    *,
    settings: Optional[AnchorSettings] = None,
    ledger: Optional[VerificationLedger] = None,
) -> StatusSummary:
    """Read the verification status and latest records of a project version."""
    if ledger is None:
        settings = settings if settings is not None else AnchorSettings.from_env()
        ledger = VerificationLedger.from_settings(settings, require_signer=False)

    current = ledger.get_verification_status(project_name, version)
    score = verification_score(current)
    summary = StatusSummary(
        project_name=project_name,
        version=version,
        status=current,
        score=score,
        level=verification_level(score),
    )
    # Latest-record getters revert for projects with nothing stored.
    updates = {}
    if current.has_codebase_hash:
        updates["codebase_hash"] = ledger.get_latest_codebase_hash(project_name)
    if current.has_security_report:
        updates["security_report"] = ledger.get_latest_security_report(project_name)
    if current.has_deployment:
        updates["deployment"] = ledger.get_latest_deployment(project_name)
        updates["deployment_count"] = ledger.get_deployment_count(project_name)
    return summary.model_copy(update=updates)


def verify_portfolio(
    *,
    settings: Optional[AnchorSettings] = None,
    ledger: Optional[PortfolioLedger] = None,
) -> IntegrityCheck:
    """Re-verify live portfolio content against the digest stored with it."""
    if ledger is None:
        settings = settings if settings is not None else AnchorSettings.from_env()
        ledger = PortfolioLedger.from_settings(settings)
    return check_integrity(ledger.read_portfolio, ledger.get_data_hash)
