"""Tests for retry with exponential backoff."""

import asyncio

import pytest

from researchflow.errors import ExternalCallError
from researchflow.executor.retry import RetryPolicy, call_with_retry, is_transient_error


class FlakyCall:
    def __init__(self, failures, error=None):
        self.failures = failures
        self.error = error or RuntimeError("429 rate limit exceeded")
        self.attempts = 0

    async def __call__(self):
        self.attempts += 1
        if self.attempts <= self.failures:
            raise self.error
        return "ok"


class RecordingSleep:
    def __init__(self):
        self.delays = []

    async def __call__(self, delay):
        self.delays.append(delay)


@pytest.mark.parametrize(
    "message",
    ["HTTP 429", "Rate limit reached", "rate_limit_error", "Request timeout",
     "read timed out", "Service temporarily unavailable", "Overloaded"],
)
def test_transient_messages(message):
    assert is_transient_error(RuntimeError(message))


def test_non_transient_messages():
    assert not is_transient_error(ValueError("invalid api key"))
    assert is_transient_error(asyncio.TimeoutError())


@pytest.mark.asyncio
async def test_transient_failures_are_retried_with_backoff():
    call = FlakyCall(failures=2)
    sleep = RecordingSleep()

    value, attempts = await call_with_retry(
        call, RetryPolicy(max_attempts=3, base_delay=2.0), label="t", sleep=sleep
    )

    assert value == "ok"
    assert attempts == 3
    assert call.attempts == 3
    assert sleep.delays == [2.0, 4.0]


@pytest.mark.asyncio
async def test_non_transient_failure_is_not_retried():
    call = FlakyCall(failures=5, error=ValueError("bad request"))
    sleep = RecordingSleep()

    with pytest.raises(ExternalCallError) as exc_info:
        await call_with_retry(call, RetryPolicy(), label="t", sleep=sleep)

    assert call.attempts == 1
    assert sleep.delays == []
    assert exc_info.value.attempts == 1
    assert exc_info.value.transient is False
    assert isinstance(exc_info.value.__cause__, ValueError)


@pytest.mark.asyncio
async def test_exhausted_retries():
    call = FlakyCall(failures=5)

    with pytest.raises(ExternalCallError) as exc_info:
        await call_with_retry(call, RetryPolicy(max_attempts=3), label="t", sleep=RecordingSleep())

    assert call.attempts == 3
    assert exc_info.value.attempts == 3
    assert exc_info.value.transient is True
    assert "[t]" in str(exc_info.value)


@pytest.mark.asyncio
async def test_timeout_counts_as_transient():
    calls = 0

    async def hangs():
        nonlocal calls
        calls += 1
        await asyncio.sleep(10)

    with pytest.raises(ExternalCallError) as exc_info:
        await call_with_retry(
            hangs, RetryPolicy(max_attempts=2, base_delay=0), label="t", timeout=0.01
        )

    assert calls == 2
    assert exc_info.value.transient is True
