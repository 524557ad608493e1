"""codeanchor: deterministic codebase digests anchored on an EVM ledger."""

from importlib.metadata import version, PackageNotFoundError

try:
    __version__ = version("codeanchor")
except PackageNotFoundError:
    __version__ = "dev"

# Public API exports
from codeanchor.api import (
    StatusSummary,
    anchor,
    generate_report,
    load_report,
    status,
    verify_portfolio,
)
from codeanchor.codes import IntegrityState, VerificationLevel
from codeanchor.contracts import AnchorResult, VerificationRecord, VerificationStatus

__all__ = [
    "__version__",
    "generate_report",
    "load_report",
    "anchor",
    "status",
    "verify_portfolio",
    "StatusSummary",
    "AnchorResult",
    "VerificationRecord",
    "VerificationStatus",
    "IntegrityState",
    "VerificationLevel",
]
