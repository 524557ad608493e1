"""Verification score and level derived from the on-chain status view."""

from codeanchor.codes import VerificationLevel
from codeanchor.contracts import VerificationStatus

CODEBASE_HASH_POINTS = 25
SECURITY_POINTS = 35
DEPLOYMENT_POINTS = 25
VERIFIED_POINTS = 15


def verification_score(status: VerificationStatus) -> int:
    """Score out of 100; security only counts when present and passing."""
    score = 0
    if status.has_codebase_hash:
        score += CODEBASE_HASH_POINTS
    if status.has_security_report and status.security_passing:
        score += SECURITY_POINTS
    if status.has_deployment:
        score += DEPLOYMENT_POINTS
    if status.is_verified:
        score += VERIFIED_POINTS
    return score


def verification_level(score: int) -> VerificationLevel:
    if score >= 90:
        return VerificationLevel.FULLY_VERIFIED
    if score >= 70:
        return VerificationLevel.HIGHLY_VERIFIED
    if score >= 50:
        return VerificationLevel.PARTIALLY_VERIFIED
    return VerificationLevel.UNVERIFIED
