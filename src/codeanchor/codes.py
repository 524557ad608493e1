"""Enumerations shared by the API, the CLI and report output.

These constants prevent stringly-typed states and ensure client code
distinguishes them the same way.
"""

from enum import Enum


class IntegrityState(str, Enum):
    """Outcome of re-verifying live portfolio content against its chain digest."""

    PENDING = "PENDING"  # not checked yet (still loading)
    VERIFIED = "VERIFIED"  # recomputed digest matches the stored digest
    MISMATCH = "MISMATCH"  # digests differ, or the content could not be encoded
    UNAVAILABLE = "UNAVAILABLE"  # content or stored digest could not be read


class VerificationLevel(str, Enum):
    """Human-facing level derived from the verification score."""

    FULLY_VERIFIED = "Fully Verified"
    HIGHLY_VERIFIED = "Highly Verified"
    PARTIALLY_VERIFIED = "Partially Verified"
    UNVERIFIED = "Unverified"
