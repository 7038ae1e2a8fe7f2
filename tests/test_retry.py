"""Tests for retry mechanism with exponential backoff."""

from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from foliovault.app.exchange.retry import RetryPolicy, call_with_retry


def _status_error(status_code: int) -> httpx.HTTPStatusError:
    response_mock = MagicMock()
    response_mock.status_code = status_code
    return httpx.HTTPStatusError("HTTP error", request=MagicMock(), response=response_mock)


class TestRetryPolicy:
    """Test RetryPolicy configuration."""

    def test_default_values(self):
        policy = RetryPolicy()

        assert policy.max_retries == 3
        assert policy.base_delay == 1.0
        assert policy.max_delay == 10.0
        assert policy.exponential_base == 2.0
        assert policy.retryable_exceptions == (httpx.HTTPStatusError, httpx.TransportError)

    def test_calculate_delay(self):
        """Test exponential delay calculation."""
        policy = RetryPolicy(base_delay=1.0, max_delay=10.0, exponential_base=2.0)

        assert policy.calculate_delay(0) == 1.0
        assert policy.calculate_delay(1) == 2.0
        assert policy.calculate_delay(2) == 4.0

    def test_calculate_delay_capped_at_max(self):
        policy = RetryPolicy(base_delay=1.0, max_delay=5.0)

        assert policy.calculate_delay(3) == 5.0
        assert policy.calculate_delay(10) == 5.0


class TestRetryPolicyIsRetryable:
    """Test RetryPolicy.is_retryable method."""

    @pytest.mark.parametrize("status_code", [429, 500, 502, 503, 504])
    def test_retryable_statuses(self, status_code):
        assert RetryPolicy().is_retryable(_status_error(status_code)) is True

    @pytest.mark.parametrize("status_code", [400, 401, 403, 404, 418])
    def test_client_errors_not_retryable(self, status_code):
        assert RetryPolicy().is_retryable(_status_error(status_code)) is False

    def test_transport_errors_retryable(self):
        policy = RetryPolicy()
        assert policy.is_retryable(httpx.ConnectError("Connection refused")) is True
        assert policy.is_retryable(httpx.ReadTimeout("Read timed out")) is True

    def test_other_exceptions_not_retryable(self):
        assert RetryPolicy().is_retryable(ValueError("nope")) is False


class TestCallWithRetry:
    """Test call_with_retry functionality."""

    @pytest.mark.asyncio
    async def test_success_on_first_attempt(self):
        mock_func = AsyncMock(return_value="success")

        result = await call_with_retry(mock_func, policy=RetryPolicy(base_delay=0))

        assert result == "success"
        assert mock_func.call_count == 1

    @pytest.mark.asyncio
    async def test_passes_arguments_through(self):
        mock_func = AsyncMock(side_effect=[httpx.ConnectError("Error"), "success"])

        result = await call_with_retry(mock_func, "a", "b", policy=RetryPolicy(base_delay=0), kwarg1="c")

        assert result == "success"
        mock_func.assert_called_with("a", "b", kwarg1="c")

    @pytest.mark.asyncio
    async def test_max_retries_exceeded(self):
        """Initial attempt + 2 retries = 3 calls."""
        mock_func = AsyncMock(side_effect=httpx.ConnectError("Connection failed"))

        with pytest.raises(httpx.ConnectError, match="Connection failed"):
            await call_with_retry(mock_func, policy=RetryPolicy(max_retries=2, base_delay=0))

        assert mock_func.call_count == 3

    @pytest.mark.asyncio
    async def test_no_retry_on_4xx(self):
        mock_func = AsyncMock(side_effect=_status_error(400))

        with pytest.raises(httpx.HTTPStatusError):
            await call_with_retry(mock_func, policy=RetryPolicy(base_delay=0))

        assert mock_func.call_count == 1

    @pytest.mark.asyncio
    async def test_retry_on_429(self):
        mock_func = AsyncMock(side_effect=[_status_error(429), "success"])

        assert await call_with_retry(mock_func, policy=RetryPolicy(base_delay=0)) == "success"
        assert mock_func.call_count == 2

    @pytest.mark.asyncio
    async def test_exponential_backoff_delay(self):
        sleep_calls = []

        async def mock_sleep(duration):
            sleep_calls.append(duration)

        mock_func = AsyncMock(
            side_effect=[
                httpx.ConnectError("Error 1"),
                httpx.ConnectError("Error 2"),
                httpx.ConnectError("Error 3"),
                "success",
            ]
        )

        with patch("foliovault.app.exchange.retry.asyncio.sleep", mock_sleep):
            await call_with_retry(mock_func, policy=RetryPolicy(base_delay=1.0))

        assert sleep_calls == [1.0, 2.0, 4.0]

    @pytest.mark.asyncio
    async def test_logs_retry_attempts(self):
        mock_func = AsyncMock(
            side_effect=[httpx.ConnectError("Connection failed"), httpx.ConnectError("Still failed"), "success"]
        )

        with patch("foliovault.app.exchange.retry.logger") as mock_logger:
            await call_with_retry(mock_func, policy=RetryPolicy(base_delay=0), description="GET /api/v3/time")

        assert mock_logger.warning.call_count == 2
        log_messages = [call.args[0] for call in mock_logger.warning.call_args_list]
        assert any("Retry 1/3 for GET /api/v3/time" in msg for msg in log_messages)
        assert any("Retry 2/3" in msg for msg in log_messages)
