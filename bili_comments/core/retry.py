"""Fixed-delay retry for async network operations."""

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, TypeVar, Union

import aiohttp

from bili_comments.core.exceptions import RequestFailedError, RequestTimeoutError
from bili_comments.core.types import FetchFailed

logger = logging.getLogger("bili_comments")

T = TypeVar("T")

_TIMEOUT_ERRORS = (asyncio.TimeoutError, TimeoutError, aiohttp.ServerTimeoutError)

TIMEOUT_MESSAGE = "request timed out, please try again later"


@dataclass(frozen=True)
class RetryPolicy:
    """How one operation is retried.

    The delay between attempts is constant; there is no backoff and no jitter.
    With soft_fail, exhausting the attempts yields FetchFailed instead of raising.
    """

    max_attempts: int = 3
    delay_ms: int = 1000
    error_label: str = "Request failed"
    soft_fail: bool = False

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {self.max_attempts}")
        if self.delay_ms < 0:
            raise ValueError(f"delay_ms must be >= 0, got {self.delay_ms}")


def is_timeout(error: BaseException) -> bool:
    return isinstance(error, _TIMEOUT_ERRORS)


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    policy: RetryPolicy = RetryPolicy(),
) -> Union[T, FetchFailed]:
    """Run ``operation`` up to ``policy.max_attempts`` times.

    Returns:
        The operation's result, or FetchFailed when soft_fail is set and
        every attempt failed.

    Raises:
        RequestTimeoutError: last attempt timed out (hard fail only)
        RequestFailedError: last attempt failed otherwise (hard fail only)
    """
    last_error: BaseException = RuntimeError("operation was never attempted")

    for attempt in range(1, policy.max_attempts + 1):
        try:
            return await operation()
        except Exception as e:
            last_error = e
            logger.warning(
                f"{policy.error_label} (attempt {attempt}/{policy.max_attempts}): "
                f"{type(e).__name__}: {e}"
            )
            if attempt < policy.max_attempts:
                await asyncio.sleep(policy.delay_ms / 1000)

    reason = str(last_error) or "unknown network error"

    if policy.soft_fail:
        logger.info(f"{policy.error_label}: giving up after {policy.max_attempts} attempts")
        return FetchFailed(label=policy.error_label, reason=reason)

    if is_timeout(last_error):
        raise RequestTimeoutError(f"{policy.error_label}: {TIMEOUT_MESSAGE}") from last_error
    raise RequestFailedError(f"{policy.error_label}: {reason}") from last_error
