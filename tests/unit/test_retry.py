"""Unit tests for retry and backoff utilities."""

from unittest.mock import AsyncMock, Mock, patch

import pytest

from bjj_curator.utils.retry import (
    APIRateLimitError,
    NetworkError,
    exponential_backoff,
    retry_api_call,
    retry_with_backoff,
)


class TestExponentialBackoff:
    def test_grows_exponentially(self):
        """Delay doubles per attempt, plus up to 10% jitter."""
        assert 1.0 <= exponential_backoff(0, base_delay=1.0) <= 1.1
        assert 4.0 <= exponential_backoff(2, base_delay=1.0) <= 4.4

    def test_capped_at_max_delay(self):
        assert exponential_backoff(20, base_delay=1.0, max_delay=60.0) <= 66.0


class TestRetryWithBackoff:
    @patch("bjj_curator.utils.retry.time.sleep")
    def test_sync_retries_then_succeeds(self, mock_sleep):
        func = Mock(side_effect=[NetworkError("down"), "ok"])
        func.__name__ = "func"
        wrapped = retry_with_backoff(max_retries=2, exceptions=(NetworkError,))(func)

        assert wrapped() == "ok"
        assert func.call_count == 2
        assert mock_sleep.call_count == 1

    @patch("bjj_curator.utils.retry.time.sleep")
    def test_sync_raises_after_max_retries(self, mock_sleep):
        func = Mock(side_effect=NetworkError("down"))
        func.__name__ = "func"
        wrapped = retry_with_backoff(max_retries=2, exceptions=(NetworkError,))(func)

        with pytest.raises(NetworkError):
            wrapped()
        assert func.call_count == 3

    def test_non_matching_exception_not_retried(self):
        func = Mock(side_effect=ValueError("bad"))
        func.__name__ = "func"
        wrapped = retry_with_backoff(max_retries=3, exceptions=(NetworkError,))(func)

        with pytest.raises(ValueError):
            wrapped()
        assert func.call_count == 1

    @pytest.mark.asyncio
    async def test_coroutine_retries_with_async_sleep(self):
        calls = []

        @retry_api_call(max_retries=3, base_delay=0.01)
        async def flaky():
            calls.append(1)
            if len(calls) < 3:
                raise APIRateLimitError("429")
            return "done"

        with patch("bjj_curator.utils.retry.asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
            assert await flaky() == "done"

        assert len(calls) == 3
        assert mock_sleep.await_count == 2
