"""
Tests for RetryPolicy

Tests attempt budgets, backoff delays, non-retryable errors and Retry-After
handling.
"""

import logging

import pytest

from restaurant_kb.core.base import HTTPError, NetworkError, ParseError, RetryError
from restaurant_kb.core.retry import RetryPolicy


class TestRetryPolicy:
    """Test suite for RetryPolicy"""

    @pytest.fixture
    def policy(self, no_sleep):
        return RetryPolicy(max_retries=3, base_delay=1.0, max_delay=30.0,
                           backoff_factor=2.0, jitter=False, sleep=no_sleep)

    @pytest.mark.asyncio
    async def test_fails_twice_then_succeeds(self, policy, no_sleep, caplog):
        """Two failures are retried with logged warnings, third attempt wins"""
        seen_attempts = []

        async def operation(attempt):
            seen_attempts.append(attempt)
            if attempt < 3:
                raise NetworkError("connection reset")
            return "ok"

        with caplog.at_level(logging.WARNING, logger="restaurant_kb"):
            result = await policy.execute(operation, "fetch https://example.se")

        assert result == "ok"
        assert seen_attempts == [1, 2, 3]
        assert no_sleep.delays == [2.0, 4.0]

        warnings = [r for r in caplog.records if r.levelno == logging.WARNING]
        assert len(warnings) == 2
        assert "attempt 1/4" in warnings[0].getMessage()
        assert "retry attempt 2 in 2.00s" in warnings[0].getMessage()
        assert "retry attempt 3 in 4.00s" in warnings[1].getMessage()

    @pytest.mark.asyncio
    async def test_exhausted_budget_raises_retry_error(self, policy, no_sleep):
        """max_retries + 1 attempts, then RetryError carrying the last error"""
        calls = []

        async def operation(attempt):
            calls.append(attempt)
            raise NetworkError(f"timeout {attempt}")

        with pytest.raises(RetryError) as exc_info:
            await policy.execute(operation, "sitemap")

        assert calls == [1, 2, 3, 4]
        assert exc_info.value.attempts == 4
        assert str(exc_info.value.last_error) == "timeout 4"
        assert len(no_sleep.delays) == 3

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [400, 401, 403, 404, 422])
    async def test_client_errors_fail_immediately(self, policy, no_sleep, status):
        calls = []

        async def operation(attempt):
            calls.append(attempt)
            raise HTTPError(status, "https://example.se/x")

        with pytest.raises(HTTPError) as exc_info:
            await policy.execute(operation)

        assert exc_info.value.status == status
        assert calls == [1]
        assert no_sleep.delays == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("error", [ParseError("bad xml"), ValueError("bad value"), TypeError("bad type")])
    async def test_malformed_input_fails_immediately(self, policy, error):
        calls = []

        async def operation(attempt):
            calls.append(attempt)
            raise error

        with pytest.raises(type(error)):
            await policy.execute(operation)

        assert calls == [1]

    @pytest.mark.asyncio
    async def test_server_errors_are_retried(self, policy):
        async def operation(attempt):
            if attempt == 1:
                raise HTTPError(503)
            return attempt

        assert await policy.execute(operation) == 2

    @pytest.mark.asyncio
    async def test_retry_after_extends_delay(self, policy, no_sleep):
        """429 waits max(backoff, Retry-After)"""
        async def operation(attempt):
            if attempt == 1:
                raise HTTPError(429, retry_after=7.0)
            return "ok"

        await policy.execute(operation)
        assert no_sleep.delays == [7.0]

    @pytest.mark.asyncio
    async def test_retry_after_capped_at_max_delay(self, no_sleep):
        policy = RetryPolicy(max_retries=1, base_delay=1.0, max_delay=5.0, jitter=False, sleep=no_sleep)

        async def operation(attempt):
            if attempt == 1:
                raise HTTPError(429, retry_after=120.0)
            return "ok"

        await policy.execute(operation)
        assert no_sleep.delays == [5.0]

    def test_delay_capped_at_max(self):
        policy = RetryPolicy(base_delay=1.0, max_delay=10.0, backoff_factor=2.0, jitter=False)
        assert policy.calculate_delay(2) == 2.0
        assert policy.calculate_delay(4) == 8.0
        assert policy.calculate_delay(10) == 10.0

    def test_jitter_stays_within_25_percent(self):
        low = RetryPolicy(base_delay=1.0, jitter=True, rng=lambda: 0.0)
        high = RetryPolicy(base_delay=1.0, jitter=True, rng=lambda: 0.999999)

        assert low.calculate_delay(3) == pytest.approx(3.0)
        assert high.calculate_delay(3) == pytest.approx(5.0, rel=1e-4)

    def test_from_config(self):
        policy = RetryPolicy.from_config({'retry': {'max_retries': 5, 'base_delay': 0.5}})
        assert policy.max_attempts == 6
        assert policy.base_delay == 0.5
