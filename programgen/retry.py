"""
Transient-error classification and exponential-backoff retry for model calls.

Only rate limits and provider-side server errors are worth retrying. Anything
else (bad requests, auth failures, unparseable output) fails immediately.
"""

import asyncio
import logging
import re
from typing import Awaitable, Callable, Optional, TypeVar

import anthropic

from programgen.exceptions import StructuredOutputError

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_RETRIES = 3
DEFAULT_BASE_DELAY = 1.0
DEFAULT_MULTIPLIER = 2.0

_TRANSIENT_STATUS_PATTERN = re.compile(r"\b(429|5\d\d)\b")
_TRANSIENT_MARKERS = ("rate limit", "rate_limit", "overloaded")

RetryObserver = Callable[[int, int, BaseException, float], None]


def is_transient_error(error: BaseException) -> bool:
    """
    Decide whether a failed model call should be retried.

    Args:
        error: Exception raised by the call

    Returns:
        True for rate limits (429) and server errors (5xx, including 529 overloaded)
    """
    if isinstance(error, StructuredOutputError):
        return False
    if isinstance(error, (anthropic.RateLimitError, anthropic.InternalServerError)):
        return True

    status_code = getattr(error, "status_code", None)
    if isinstance(status_code, int):
        return status_code == 429 or 500 <= status_code < 600

    message = str(error).lower()
    if _TRANSIENT_STATUS_PATTERN.search(message):
        return True
    return any(marker in message for marker in _TRANSIENT_MARKERS)


def _log_retry(attempt: int, remaining: int, error: BaseException, delay: float) -> None:
    logger.warning(
        "Transient model error on attempt %d (%d retries left), retrying in %.1fs: %s",
        attempt,
        remaining,
        delay,
        error,
    )


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    retries: int = DEFAULT_RETRIES,
    *,
    is_transient: Callable[[BaseException], bool] = is_transient_error,
    base_delay: float = DEFAULT_BASE_DELAY,
    multiplier: float = DEFAULT_MULTIPLIER,
    on_retry: Optional[RetryObserver] = _log_retry,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """
    Run an async operation, retrying transient failures with exponential backoff.

    The operation runs at most ``retries + 1`` times. The delay before retry n
    (0-based) is ``base_delay * multiplier ** n``, i.e. 1s, 2s, 4s by default.

    Args:
        operation: Zero-argument coroutine factory, called once per attempt
        retries: Number of retries after the first attempt
        is_transient: Classifier deciding which errors are retried
        base_delay: Delay before the first retry, in seconds
        multiplier: Backoff growth factor
        on_retry: Observer called as (attempt, remaining, error, delay) before each sleep;
            its own exceptions are logged and ignored
        sleep: Awaitable sleep function

    Returns:
        The operation's result

    Raises:
        The first non-transient error, or the last transient error once retries run out
    """
    attempt = 0
    while True:
        try:
            return await operation()
        except Exception as error:
            if not is_transient(error) or attempt >= retries:
                raise
            delay = base_delay * (multiplier ** attempt)
            if on_retry is not None:
                try:
                    on_retry(attempt + 1, retries - attempt, error, delay)
                except Exception:
                    logger.exception("Retry observer failed; continuing with retry")
            await sleep(delay)
            attempt += 1
