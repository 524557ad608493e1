"""Verification report assembly and persistence.

Step order matters and is fixed:
1. version lookup (non-fatal, defaults to "1.0.0")
2. git commit id (non-fatal, "unknown")
3. git cleanliness (non-fatal, fails closed)
4. the five category digests (fatal)
5. security checks (per-tool failures recorded, never raised)
"""

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Sequence, Tuple, Union

from pydantic import ValidationError

from codeanchor._internal.json_io import write_json_document
from codeanchor.contracts import VerificationRecord, VerificationSummary
from codeanchor.kernel.digest import DEFAULT_RULES, DigestRules, compute_category_digests
from codeanchor.kernel.git_status import get_commit_hash, is_working_tree_clean
from codeanchor.kernel.hash_utils import combine_digests
from codeanchor.kernel.security import DEFAULT_SECURITY_TOOLS, SecurityTool, run_checks

LOGGER = logging.getLogger(__name__)

REPORT_FILENAME = "verification-report.json"
DEFAULT_PROJECT_NAME = "blockchain-verified-portfolio"
DEFAULT_VERSION = "1.0.0"
VERSION_MANIFEST = "package.json"


class ReportFormatError(ValueError):
    """Raised when a report file exists but is not a valid verification record."""
    pass


def utc_timestamp() -> str:
    """Current UTC time as ISO 8601 with millisecond precision and a Z suffix."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def read_project_version(root: Union[str, Path]) -> str:
    """Version field of the project manifest, or ``DEFAULT_VERSION``."""
    manifest = Path(root) / VERSION_MANIFEST
    try:
        with open(manifest, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, ValueError) as e:
        LOGGER.warning("Could not read %s version: %s", VERSION_MANIFEST, e)
        return DEFAULT_VERSION
    version = data.get("version") if isinstance(data, dict) else None
    if not isinstance(version, str) or not version:
        return DEFAULT_VERSION
    return version


def compute_final_hash(record: VerificationRecord) -> str:
    """Recompute the final verification hash from a record's category digests."""
    return combine_digests(record.category_digests())


def assemble_report(
    root: Union[str, Path] = ".",
    *,
    project_name: str = DEFAULT_PROJECT_NAME,
    rules: DigestRules = DEFAULT_RULES,
    security_tools: Optional[Sequence[SecurityTool]] = DEFAULT_SECURITY_TOOLS,
    git: str = "git",
) -> VerificationRecord:
    """Build a fresh verification record for the project at root.

    Args:
        root: Project root directory
        project_name: Identity key used on chain
        rules: Digest selection rules
        security_tools: Tools to run; None or empty skips security checks
        git: git executable

    Returns:
        VerificationRecord

    Raises:
        FileCollectionError: If root is missing or a selected file is unreadable
    """
    root = Path(root).resolve()
    LOGGER.info("Starting codebase verification of %s", root)

    version = read_project_version(root)
    commit = get_commit_hash(root, git=git)
    is_git_clean = is_working_tree_clean(root, git=git)

    digests = compute_category_digests(root, rules)
    LOGGER.info("Hashed %d source code files", digests.source.file_count)
    LOGGER.info("Hashed %d dependency files", digests.dependencies.file_count)
    LOGGER.info("Hashed %d configuration files", digests.config.file_count)
    LOGGER.info("Hashed %d build artifact files", digests.build.file_count)
    LOGGER.info("Hashed %d deployment files", digests.deployment.file_count)

    security_checks = run_checks(security_tools, cwd=root) if security_tools else {}

    timestamp = utc_timestamp()
    return VerificationRecord(
        project_name=project_name,
        version=version,
        git_commit_hash=commit,
        source_code_hash=digests.source.digest,
        dependencies_hash=digests.dependencies.digest,
        config_hash=digests.config.digest,
        build_artifacts_hash=digests.build.digest,
        deployment_hash=digests.deployment.digest,
        timestamp=timestamp,
        final_verification_hash=combine_digests(digests.ordered()),
        is_git_clean=is_git_clean,
        security_checks=security_checks,
        verification=VerificationSummary(
            is_valid=is_git_clean and all(security_checks.values()),
            timestamp=timestamp,
        ),
    )


def write_report(record: VerificationRecord, path: Union[str, Path]) -> Path:
    """Persist a record, replacing any previous report at path."""
    return write_json_document(path, record.to_wire())


def load_report(path: Union[str, Path]) -> VerificationRecord:
    """Load and validate a report file.

    Raises:
        FileNotFoundError: If the report does not exist
        ReportFormatError: If it is not a valid verification record
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Verification report not found: {path}")
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        return VerificationRecord.model_validate(data)
    except (json.JSONDecodeError, ValidationError) as e:
        raise ReportFormatError(f"Invalid verification report {path}: {e}") from e


def generate_report(
    root: Union[str, Path] = ".",
    output: Optional[Union[str, Path]] = None,
    **kwargs,
) -> Tuple[VerificationRecord, Path]:
    """Assemble a report and write it (default: ``<root>/verification-report.json``)."""
    record = assemble_report(root, **kwargs)
    target = Path(output) if output is not None else Path(root).resolve() / REPORT_FILENAME
    return record, write_report(record, target)
