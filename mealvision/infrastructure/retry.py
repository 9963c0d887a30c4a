"""Retry policy and async retry helper.

Wraps tenacity's AsyncRetrying with a policy object so the backoff
parameters of each outbound call are data, not decorator arguments.
The original exception is always re-raised (never tenacity.RetryError).
"""

from __future__ import annotations

import asyncio
import random
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Optional, TypeVar

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
)

T = TypeVar("T")

OnRetry = Callable[[int, BaseException], None]


def _always_retry(error: BaseException) -> bool:
    return True


@dataclass(frozen=True)
class RetryPolicy:
    """
    Exponential backoff with jitter.

    Attributes:
        max_attempts: Total attempts, first call included
        base_delay: Delay before the first retry (seconds)
        max_delay: Upper bound of the exponential delay (seconds)
        multiplier: Growth factor per attempt
        jitter_ratio: Max extra delay as a fraction of the computed delay
        is_retryable: Predicate deciding whether an error may be retried

    Example:
        >>> policy = RetryPolicy(max_attempts=3, base_delay=1.0, jitter_ratio=0)
        >>> policy.compute_delay(3)
        4.0
    """

    max_attempts: int = 3
    base_delay: float = 1.0
    max_delay: float = 10.0
    multiplier: float = 2.0
    jitter_ratio: float = 0.1
    is_retryable: Callable[[BaseException], bool] = field(default=_always_retry)

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.base_delay < 0 or self.max_delay < 0:
            raise ValueError("delays must be non-negative")

    def compute_delay(self, attempt: int) -> float:
        """Delay after the given (1-based) failed attempt."""
        delay = min(self.base_delay * self.multiplier ** (attempt - 1), self.max_delay)
        if self.jitter_ratio > 0:
            delay += random.uniform(0, self.jitter_ratio * delay)
        return delay


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    policy: RetryPolicy,
    *,
    on_retry: Optional[OnRetry] = None,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> T:
    """
    Run ``operation`` until it succeeds or the policy gives up.

    Args:
        operation: Zero-argument coroutine factory (called once per attempt)
        policy: Retry policy
        on_retry: Hook called with (attempt_number, error) before each retry
        sleep: Awaitable sleep, injectable for tests

    Returns:
        The operation's result

    Raises:
        The last exception raised by ``operation`` when attempts are
        exhausted, or immediately when it is not retryable.
    """

    def wait(retry_state: RetryCallState) -> float:
        return policy.compute_delay(retry_state.attempt_number)

    def before_sleep(retry_state: RetryCallState) -> None:
        if on_retry is None or retry_state.outcome is None:
            return
        error = retry_state.outcome.exception()
        if error is not None:
            on_retry(retry_state.attempt_number, error)

    retrying = AsyncRetrying(
        stop=stop_after_attempt(policy.max_attempts),
        wait=wait,
        retry=retry_if_exception(policy.is_retryable),
        before_sleep=before_sleep,
        sleep=sleep,
        reraise=True,
    )
    return await retrying(operation)
