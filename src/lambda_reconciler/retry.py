"""Bounded exponential backoff for platform calls."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TypeVar

from .exceptions import RetryExhaustedError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """
    Exponential backoff settings.

    Attributes:
        max_attempts: Total attempts, including the first one
        base_delay: Delay in seconds before the first retry
        factor: Multiplier applied to the delay for each further retry
        max_delay: Upper bound for any single delay, in seconds
    """

    max_attempts: int = 4
    base_delay: float = 5.0
    factor: float = 2.0
    max_delay: float = 15.0

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.base_delay < 0:
            raise ValueError("base_delay must be non-negative")
        if self.factor < 1:
            raise ValueError("factor must be >= 1")
        if self.max_delay < self.base_delay:
            raise ValueError("max_delay must be >= base_delay")

    def delay_for(self, retry_number: int) -> float:
        """Delay before retry ``retry_number`` (1-based)."""
        if retry_number < 1:
            raise ValueError("retry_number must be at least 1")
        delay: float = self.base_delay * self.factor ** (retry_number - 1)
        return min(delay, self.max_delay)


async def retry_async(
    operation: Callable[[], Awaitable[T]],
    policy: RetryPolicy,
    is_retryable: Callable[[BaseException], bool],
    sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
    describe: str = "operation",
) -> T:
    """
    Run ``operation`` until it succeeds, fails fatally, or attempts run out.

    Args:
        operation: Zero-argument coroutine factory, called once per attempt
        policy: Backoff settings
        is_retryable: Predicate deciding whether an error may be retried
        sleep: Awaitable sleep function (injected in tests)
        describe: Label used in log messages

    Returns:
        The result of the first successful attempt

    Raises:
        RetryExhaustedError: If the final attempt failed with a retryable error
        Exception: Any non-retryable error, re-raised as-is on first sight
    """
    for attempt in range(1, policy.max_attempts + 1):
        try:
            return await operation()
        except Exception as e:
            if not is_retryable(e):
                raise
            if attempt == policy.max_attempts:
                raise RetryExhaustedError(attempt, e) from e

            delay = policy.delay_for(attempt)
            logger.warning(
                "%s failed (attempt %d/%d): %s; retrying in %.1fs",
                describe,
                attempt,
                policy.max_attempts,
                e,
                delay,
            )
            await sleep(delay)

    # range() is never empty: max_attempts >= 1 is enforced by RetryPolicy
    raise AssertionError("unreachable")
