"""Retry policies for ledger reads.

Only idempotent reads go through these policies. Transactions are never
retried: resubmitting could write the same record twice.
"""

import logging
from typing import Callable, Tuple, Type, TypeVar

from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_BASE_DELAY = 1.0
DEFAULT_MAX_DELAY = 8.0

# Connection refused/reset, DNS failures and timeouts from the HTTP stack all
# derive from OSError.
TRANSIENT_RPC_ERRORS: Tuple[Type[BaseException], ...] = (OSError,)


def create_retry_policy(
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    base_delay: float = DEFAULT_BASE_DELAY,
    max_delay: float = DEFAULT_MAX_DELAY,
    retry_on: Tuple[Type[BaseException], ...] = TRANSIENT_RPC_ERRORS,
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """Create a retry decorator with exponential backoff.

    Waits ``base_delay * 2**n`` seconds (capped at ``max_delay``) between
    attempts. After ``max_attempts`` the last exception propagates unchanged.

    Args:
        max_attempts: Total attempts, including the first call
        base_delay: Delay before the first retry, in seconds
        max_delay: Upper bound for any single delay
        retry_on: Exception types considered transient

    Returns:
        Decorator applying the policy to a callable
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")
    return retry(
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential(multiplier=base_delay, min=0, max=max_delay),
        retry=retry_if_exception_type(retry_on),
        before_sleep=before_sleep_log(LOGGER, logging.WARNING),
        reraise=True,
    )


def call_with_retry(fn: Callable[[], T], policy: Callable[[Callable[..., T]], Callable[..., T]]) -> T:
    """Invoke a zero-argument callable under a retry policy."""
    return policy(fn)()
