"""Ledger clients: contract ABIs and web3 access."""

from codeanchor._internal.ledger.client import (
    AnchorConfigError,
    AnchorError,
    ConfirmationTimeoutError,
    ConfirmationUnknownError,
    LedgerReadError,
    PortfolioLedger,
    TransactionRejectedError,
    VerificationLedger,
    connect,
)

__all__ = [
    "AnchorConfigError",
    "AnchorError",
    "ConfirmationTimeoutError",
    "ConfirmationUnknownError",
    "LedgerReadError",
    "PortfolioLedger",
    "TransactionRejectedError",
    "VerificationLedger",
    "connect",
]
