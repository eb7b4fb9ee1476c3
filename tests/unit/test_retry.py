"""Tests for the retry helper."""

from unittest.mock import AsyncMock

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from ecoledger.resilience import RetryConfig, run_with_retry

NO_WAIT = RetryConfig(max_retries=2, base_delay=0, jitter=False)


def _transient():
    return OperationalError("SELECT 1", {}, Exception("reset"))


class TestRetryConfig:
    def test_exponential_delay_without_jitter(self):
        config = RetryConfig(base_delay=0.1, exponential_base=2.0, jitter=False)
        assert config.calculate_delay(0) == pytest.approx(0.1)
        assert config.calculate_delay(2) == pytest.approx(0.4)

    def test_delay_capped(self):
        config = RetryConfig(base_delay=1.0, max_delay=2.0, jitter=False)
        assert config.calculate_delay(10) == 2.0

    def test_jitter_stays_in_band(self):
        config = RetryConfig(base_delay=1.0, jitter=True)
        for _ in range(20):
            assert 0.5 <= config.calculate_delay(0) <= 1.5


class TestRunWithRetry:
    @pytest.mark.asyncio
    async def test_succeeds_after_transient_failures(self):
        operation = AsyncMock(side_effect=[_transient(), _transient(), "done"])
        assert await run_with_retry(operation, NO_WAIT, name="op") == "done"
        assert operation.await_count == 3

    @pytest.mark.asyncio
    async def test_exhaustion_reraises(self):
        operation = AsyncMock(side_effect=_transient())
        with pytest.raises(OperationalError):
            await run_with_retry(operation, NO_WAIT, name="op")
        assert operation.await_count == 3

    @pytest.mark.asyncio
    async def test_non_transient_errors_are_not_retried(self):
        operation = AsyncMock(side_effect=IntegrityError("INSERT", {}, Exception("dup")))
        with pytest.raises(IntegrityError):
            await run_with_retry(operation, NO_WAIT, name="op")
        assert operation.await_count == 1
