"""Tests for the with_retry combinator and linear backoff."""

import asyncio

import pytest

from conftest import RecordingSleep
from models.image_transform import AttemptState
from services.image_errors import HttpError, ImageEncodeError, UnknownError
from utils.retry import RetryOutcome, backoff_schedule, linear_backoff, with_retry


class ScriptedOperation:
    """Raises queued errors, then returns a value."""

    def __init__(self, *results):
        self.results = list(results)
        self.calls: list[int] = []

    async def __call__(self, attempt: int):
        self.calls.append(attempt)
        result = self.results.pop(0)
        if isinstance(result, BaseException):
            raise result
        return result


class TestLinearBackoff:
    """Tests for the pure backoff functions."""

    def test_linear_delays(self):
        assert linear_backoff(1) == 2.0
        assert linear_backoff(2) == 4.0
        assert linear_backoff(3, step=0.5) == 1.5

    def test_rejects_zero_attempt(self):
        with pytest.raises(ValueError):
            linear_backoff(0)

    def test_schedule(self):
        assert backoff_schedule(3) == [2.0, 4.0]
        assert backoff_schedule(1) == []


class TestWithRetry:
    """Tests for the retry state machine."""

    @pytest.mark.asyncio
    async def test_first_attempt_success(self):
        sleep = RecordingSleep()
        operation = ScriptedOperation("ok")

        outcome = await with_retry(operation, sleep=sleep)

        assert outcome.state == AttemptState.SUCCESS
        assert outcome.value == "ok"
        assert outcome.attempts == 1
        assert operation.calls == [1]
        assert sleep.delays == []

    @pytest.mark.asyncio
    async def test_success_after_failures(self):
        sleep = RecordingSleep()
        operation = ScriptedOperation(HttpError(500), HttpError(503), "ok")

        outcome = await with_retry(operation, sleep=sleep)

        assert outcome.succeeded
        assert outcome.attempts == 3
        assert operation.calls == [1, 2, 3]
        assert sleep.delays == [2.0, 4.0]
        assert [e.status_code for e in outcome.failures] == [500, 503]

    @pytest.mark.asyncio
    async def test_exhaustion_surfaces_last_error(self):
        sleep = RecordingSleep()
        last = HttpError(504)
        operation = ScriptedOperation(HttpError(500), HttpError(502), last)

        outcome = await with_retry(operation, sleep=sleep)

        assert outcome.state == AttemptState.FAILED
        assert outcome.error is last
        assert outcome.attempts == 3
        assert sleep.delays == [2.0, 4.0]
        with pytest.raises(HttpError):
            outcome.unwrap()

    @pytest.mark.asyncio
    async def test_non_retryable_stops_immediately(self):
        sleep = RecordingSleep()
        operation = ScriptedOperation(ImageEncodeError("bad pixels"), "never")

        outcome = await with_retry(operation, sleep=sleep)

        assert outcome.state == AttemptState.FAILED
        assert outcome.attempts == 1
        assert isinstance(outcome.error, ImageEncodeError)
        assert sleep.delays == []

    @pytest.mark.asyncio
    async def test_plain_exceptions_are_retried(self):
        sleep = RecordingSleep()
        operation = ScriptedOperation(ConnectionResetError("reset"), "ok")

        outcome = await with_retry(operation, sleep=sleep)

        assert outcome.succeeded
        assert sleep.delays == [2.0]

    @pytest.mark.asyncio
    async def test_custom_backoff(self):
        sleep = RecordingSleep()
        operation = ScriptedOperation(HttpError(500), HttpError(500), HttpError(500))

        await with_retry(operation, max_attempts=3, backoff=lambda n: n * 10.0, sleep=sleep)

        assert sleep.delays == [10.0, 20.0]

    @pytest.mark.asyncio
    async def test_cancellation_propagates(self):
        sleep = RecordingSleep()
        operation = ScriptedOperation(asyncio.CancelledError())

        with pytest.raises(asyncio.CancelledError):
            await with_retry(operation, sleep=sleep)

        assert sleep.delays == []

    @pytest.mark.asyncio
    async def test_invalid_max_attempts(self):
        with pytest.raises(ValueError):
            await with_retry(ScriptedOperation("ok"), max_attempts=0)

    def test_unwrap_without_error_raises_unknown(self):
        outcome = RetryOutcome(state=AttemptState.FAILED)

        with pytest.raises(UnknownError) as exc_info:
            outcome.unwrap()

        assert str(exc_info.value) == "Unknown error occurred"
