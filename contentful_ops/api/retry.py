"""
Exponential backoff for rate-limited API calls.

Only rate limits are retried. Anything else propagates on the first
failure so the caller can log it against the entry being processed.
"""

import logging
import time
from typing import Callable, TypeVar

from contentful_ops.api.errors import RateLimitError, RetriesExhaustedError

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_MAX_ATTEMPTS = 7
DEFAULT_BASE_DELAY = 2.0
DEFAULT_MAX_DELAY = 30.0


def is_rate_limit_error(error: BaseException) -> bool:
    """True for 429 responses, however they were surfaced."""
    if isinstance(error, RateLimitError):
        return True
    return getattr(error, "status", None) == 429 or getattr(error, "error_id", None) == "RateLimitExceeded"


def backoff_delay(attempt: int, base_delay: float = DEFAULT_BASE_DELAY, max_delay: float = DEFAULT_MAX_DELAY) -> float:
    """Delay before retrying after the zero-based `attempt` failed."""
    return min(base_delay * (2 ** attempt), max_delay)


def with_retry(
    action: Callable[[], T],
    operation: str,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    base_delay: float = DEFAULT_BASE_DELAY,
    max_delay: float = DEFAULT_MAX_DELAY,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """
    Run `action`, retrying on rate limits.

    Args:
        action: Zero-argument callable doing one API call. Must be safe to
            repeat (the same payload is resent on every attempt).
        operation: Label used in logs and in RetriesExhaustedError,
            e.g. "update-entry-abc123".
        max_attempts: Total attempts, including the first one.
        base_delay: Seconds before the first retry; doubles per attempt.
        max_delay: Upper bound for a single delay.
        sleep: Injected for tests.

    Raises:
        RetriesExhaustedError: every attempt was rate limited.
        Exception: any non-rate-limit error from `action`, unchanged.
    """
    last_error = None
    for attempt in range(max_attempts):
        try:
            return action()
        except Exception as e:
            if not is_rate_limit_error(e):
                raise
            last_error = e
            if attempt + 1 >= max_attempts:
                break
            delay = backoff_delay(attempt, base_delay, max_delay)
            logger.warning(
                f"Rate limit hit on {operation}, retry {attempt + 1}/{max_attempts - 1} in {delay:.1f}s"
            )
            sleep(delay)

    logger.error(f"Operation {operation} failed after {max_attempts} attempts")
    raise RetriesExhaustedError(operation, max_attempts, last_error)
