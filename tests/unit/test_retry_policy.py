"""Tests for resilience/retry.py — RetryPolicy.execute."""
from __future__ import annotations

from unittest.mock import AsyncMock, patch

import pytest

from sfbulk.core.exceptions import (
    APIConnectionError,
    APIError,
    AuthenticationError,
    RateLimitError,
    ServerError,
)
from sfbulk.resilience.retry import RetryPolicy


def _policy(max_retries: int = 3) -> RetryPolicy:
    return RetryPolicy(max_retries=max_retries, backoff_base=0.0, jitter=False)


async def test_succeeds_first_try() -> None:
    async def succeed() -> str:
        return "ok"

    assert await _policy().execute(succeed) == "ok"


async def test_retries_transient_failures() -> None:
    call_count = 0

    async def flaky() -> str:
        nonlocal call_count
        call_count += 1
        if call_count < 3:
            raise APIConnectionError("reset by peer")
        return "recovered"

    assert await _policy().execute(flaky) == "recovered"
    assert call_count == 3


async def test_exhausts_retries() -> None:
    call_count = 0

    async def always_fail() -> None:
        nonlocal call_count
        call_count += 1
        raise ServerError("persistent", status_code=503)

    with pytest.raises(ServerError, match="persistent"):
        await _policy(max_retries=2).execute(always_fail)
    # 1 initial + 2 retries
    assert call_count == 3


@pytest.mark.parametrize(
    "exc",
    [
        AuthenticationError("expired", status_code=401),
        APIError("bad request", status_code=400),
        ValueError("not an sdk error"),
    ],
)
async def test_non_retryable_raised_immediately(exc: Exception) -> None:
    fn = AsyncMock(side_effect=exc)
    with pytest.raises(type(exc)):
        await _policy().execute(fn)
    assert fn.await_count == 1


def test_delay_is_exponential_and_capped() -> None:
    policy = RetryPolicy(backoff_base=1.0, backoff_max=5.0, jitter=False)
    assert [policy._compute_delay(n) for n in range(4)] == [1.0, 2.0, 4.0, 5.0]


def test_retry_after_is_a_floor() -> None:
    policy = RetryPolicy(backoff_base=0.5, backoff_max=30.0, jitter=False)
    exc = RateLimitError("slow down", status_code=429, retry_after=10.0)
    assert policy._compute_delay(0, exc) == 10.0


async def test_sleeps_between_attempts() -> None:
    fn = AsyncMock(side_effect=[ServerError("a", status_code=500), "ok"])
    policy = RetryPolicy(max_retries=1, backoff_base=2.0, jitter=False)

    with patch("sfbulk.resilience.retry.asyncio.sleep", new_callable=AsyncMock) as sleep:
        assert await policy.execute(fn) == "ok"

    sleep.assert_awaited_once_with(2.0)
