"""Bounded retry with linear backoff for async operations.

The loop is an explicit state machine:

    idle -> attempting(k) -> success
                          -> attempting(k + 1)   (after backoff(k) seconds)
                          -> failed              (non-retryable, or k == max_attempts)

Every failed attempt is recorded before the retry decision. The result is a
``RetryOutcome`` rather than a raised exception so callers can treat failures
as values; ``unwrap()`` converts back to raise-on-failure.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Generic, Optional, TypeVar

from models.image_transform import AttemptState
from services.image_errors import UnknownError, is_retryable
from utils.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

SleepFn = Callable[[float], Awaitable[Any]]
BackoffFn = Callable[[int], float]


def linear_backoff(attempt: int, step: float = 2.0) -> float:
    """Delay before the retry that follows failed attempt ``attempt`` (1-indexed)."""
    if attempt < 1:
        raise ValueError("attempt must be >= 1")
    return attempt * step


def backoff_schedule(max_attempts: int, backoff: BackoffFn = linear_backoff) -> list[float]:
    """All delays a call would sleep if every attempt failed."""
    return [backoff(i) for i in range(1, max_attempts)]


@dataclass
class RetryOutcome(Generic[T]):
    """Terminal result of ``with_retry``."""

    state: AttemptState
    value: Optional[T] = None
    error: Optional[Exception] = None
    attempts: int = 0
    failures: list[Exception] = field(default_factory=list)
    delays: list[float] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.state == AttemptState.SUCCESS

    def unwrap(self) -> T:
        """Return the value or raise the surfaced error."""
        if self.succeeded:
            return self.value  # type: ignore[return-value]
        raise self.error or UnknownError()


async def with_retry(
    operation: Callable[[int], Awaitable[T]],
    max_attempts: int = 3,
    backoff: BackoffFn = linear_backoff,
    sleep: SleepFn = asyncio.sleep,
    should_retry: Callable[[Exception], bool] = is_retryable,
) -> RetryOutcome[T]:
    """Run ``operation(attempt)`` until it succeeds or attempts run out.

    Args:
        operation: Async callable receiving the 1-indexed attempt number
        max_attempts: Total attempts including the first
        backoff: Pure function mapping a failed attempt number to a delay
        sleep: Awaitable sleep, injectable for deterministic tests
        should_retry: Predicate deciding whether a failure is transient

    Returns:
        RetryOutcome in state SUCCESS or FAILED

    Cancellation is not caught: ``asyncio.CancelledError`` propagates from
    either the operation or the sleep.
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be >= 1")

    outcome: RetryOutcome[T] = RetryOutcome(state=AttemptState.IDLE)
    last_error: Optional[Exception] = None

    while outcome.attempts < max_attempts:
        outcome.attempts += 1
        outcome.state = AttemptState.ATTEMPTING

        try:
            outcome.value = await operation(outcome.attempts)
            outcome.state = AttemptState.SUCCESS
            return outcome
        except Exception as e:
            last_error = e
            outcome.failures.append(e)

        if not should_retry(last_error):
            logger.warning(
                "attempt_failed_permanently",
                attempt=outcome.attempts,
                error=str(last_error),
                error_type=type(last_error).__name__,
            )
            break

        if outcome.attempts < max_attempts:
            delay = backoff(outcome.attempts)
            logger.warning(
                "attempt_failed_retrying",
                attempt=outcome.attempts,
                max_attempts=max_attempts,
                delay_s=delay,
                error=str(last_error),
                error_type=type(last_error).__name__,
            )
            outcome.delays.append(delay)
            await sleep(delay)

    outcome.state = AttemptState.FAILED
    outcome.error = last_error or UnknownError()
    return outcome
