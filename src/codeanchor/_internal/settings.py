"""Environment configuration for ledger access.

Settings are read once from the environment and validated up front.
Commands call the ``require_*`` helpers before touching the network, so a
missing address or key aborts the run before any RPC traffic.
"""

import os
import re
from typing import Mapping, Optional, Tuple
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

DEFAULT_RPC_URL = "https://polygon-rpc.com"
DEFAULT_EXPLORER_URL = "https://polygonscan.com"
DEFAULT_CONFIRMATION_TIMEOUT = 120.0

# Each setting reads the first variable that is set (non-empty).
RPC_URL_VARS: Tuple[str, ...] = ("RPC_URL", "POLYGON_RPC_URL", "VITE_RPC_URL")
PRIVATE_KEY_VARS: Tuple[str, ...] = ("DEPLOYER_PRIVATE_KEY", "VITE_DEPLOYER_PRIVATE_KEY")
VERIFICATION_ADDRESS_VARS: Tuple[str, ...] = ("VERIFICATION_CONTRACT_ADDRESS", "VITE_VERIFICATION_ADDRESS")
PORTFOLIO_ADDRESS_VARS: Tuple[str, ...] = ("PORTFOLIO_CONTRACT_ADDRESS", "VITE_CONTRACT_ADDRESS")
CHAIN_ID_VARS: Tuple[str, ...] = ("CHAIN_ID", "VITE_NETWORK_ID")
CONFIRMATION_TIMEOUT_VARS: Tuple[str, ...] = ("CONFIRMATION_TIMEOUT",)
EXPLORER_URL_VARS: Tuple[str, ...] = ("EXPLORER_URL",)

_ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")
_KEY_RE = re.compile(r"^[0-9a-fA-F]{64}$")


class SettingsError(ValueError):
    """Raised when configuration is malformed or a required value is missing."""
    pass


def _first_set(environ: Mapping[str, str], names: Tuple[str, ...]) -> Optional[str]:
    for name in names:
        value = environ.get(name, "").strip()
        if value:
            return value
    return None


class AnchorSettings(BaseModel):
    """Validated ledger settings."""
    rpc_url: str = DEFAULT_RPC_URL
    private_key: Optional[str] = Field(default=None, repr=False)
    verification_address: Optional[str] = None
    portfolio_address: Optional[str] = None
    chain_id: Optional[int] = None
    confirmation_timeout: float = DEFAULT_CONFIRMATION_TIMEOUT
    explorer_url: str = DEFAULT_EXPLORER_URL

    model_config = ConfigDict(frozen=True)

    @field_validator("rpc_url")
    @classmethod
    def validate_rpc_url(cls, v: str) -> str:
        parsed = urlparse(v)
        if parsed.scheme not in ("http", "https", "ws", "wss") or not parsed.netloc:
            raise ValueError(f"RPC URL '{v}' must be an http, https, ws or wss URL")
        return v

    @field_validator("explorer_url")
    @classmethod
    def validate_explorer_url(cls, v: str) -> str:
        parsed = urlparse(v)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValueError(f"Explorer URL '{v}' must be an http or https URL")
        return v.rstrip("/")

    @field_validator("private_key")
    @classmethod
    def validate_private_key(cls, v: Optional[str]) -> Optional[str]:
        """Accept 64 hex chars with or without 0x; normalize to 0x-prefixed."""
        if v is None:
            return v
        key = v.strip()
        if key.startswith("0x"):
            key = key[2:]
        if not _KEY_RE.match(key) or key == "0" * 64:
            raise ValueError("Signer key must be 64 hex characters and not all zeros")
        return "0x" + key

    @field_validator("verification_address", "portfolio_address")
    @classmethod
    def validate_address(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not _ADDRESS_RE.match(v):
            raise ValueError(f"'{v}' is not a valid address (0x + 40 hex characters)")
        return v

    @field_validator("chain_id")
    @classmethod
    def validate_chain_id(cls, v: Optional[int]) -> Optional[int]:
        if v is not None and v <= 0:
            raise ValueError("Chain id must be a positive integer")
        return v

    @field_validator("confirmation_timeout")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("Confirmation timeout must be positive")
        return v

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "AnchorSettings":
        """Build settings from environment variables.

        Raises:
            SettingsError: If any value that is set is malformed
        """
        env = os.environ if environ is None else environ
        values = {
            "rpc_url": _first_set(env, RPC_URL_VARS),
            "private_key": _first_set(env, PRIVATE_KEY_VARS),
            "verification_address": _first_set(env, VERIFICATION_ADDRESS_VARS),
            "portfolio_address": _first_set(env, PORTFOLIO_ADDRESS_VARS),
            "chain_id": _first_set(env, CHAIN_ID_VARS),
            "confirmation_timeout": _first_set(env, CONFIRMATION_TIMEOUT_VARS),
            "explorer_url": _first_set(env, EXPLORER_URL_VARS),
        }
        try:
            return cls(**{k: v for k, v in values.items() if v is not None})
        except ValidationError as e:
            # Input values are left out: one of them may be the signer key.
            problems = "; ".join(
                f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}"
                for err in e.errors(include_input=False)
            )
            raise SettingsError(f"Invalid environment configuration: {problems}") from None

    def require_verification_address(self) -> str:
        if self.verification_address is None:
            raise SettingsError(
                "Verification contract address not set "
                f"(set one of: {', '.join(VERIFICATION_ADDRESS_VARS)})"
            )
        return self.verification_address

    def require_portfolio_address(self) -> str:
        if self.portfolio_address is None:
            raise SettingsError(
                "Portfolio contract address not set "
                f"(set one of: {', '.join(PORTFOLIO_ADDRESS_VARS)})"
            )
        return self.portfolio_address

    def require_private_key(self) -> str:
        if self.private_key is None:
            raise SettingsError(
                f"Signer key not set (set one of: {', '.join(PRIVATE_KEY_VARS)})"
            )
        return self.private_key

    def explorer_address_url(self, address: str) -> str:
        return f"{self.explorer_url}/address/{address}"

    def explorer_transaction_url(self, transaction_hash: str) -> str:
        return f"{self.explorer_url}/tx/{transaction_hash}"
