"""
Tests for Retry Utility with Exponential Backoff.

These tests verify:
- Basic retry functionality for sync and async operations
- Exponential backoff calculation
- Jitter application
- Rate limit hint handling
- Retry condition evaluation
"""

import time
from unittest.mock import AsyncMock, MagicMock

import pytest

from flexbatch.config.settings import Settings
from flexbatch.errors import (
    ConfigurationError,
    PermanentError,
    RateLimitError,
    TransientError,
)
from flexbatch.utils.retry import (
    RetryConfig,
    RetryState,
    calculate_delay,
    retry,
    retry_with_backoff,
    should_retry,
)


class TestRetryConfig:
    """Tests for RetryConfig dataclass."""

    def test_default_config(self):
        """Test default configuration values."""
        config = RetryConfig()
        assert config.max_attempts == 3
        assert config.base_delay == 1.0
        assert config.max_delay is None
        assert config.exponential_base == 2.0
        assert config.jitter == 0.0
        assert config.retry_on == (Exception,)
        assert config.stop_on == ()
        assert config.respect_retry_after is True

    def test_invalid_max_attempts(self):
        """Test validation of max_attempts."""
        with pytest.raises(ConfigurationError, match="max_attempts"):
            RetryConfig(max_attempts=0)

    def test_invalid_base_delay(self):
        """Test validation of base_delay."""
        with pytest.raises(ConfigurationError, match="base_delay"):
            RetryConfig(base_delay=-1.0)

    def test_invalid_max_delay(self):
        """Test max_delay must be >= base_delay."""
        with pytest.raises(ConfigurationError, match="max_delay"):
            RetryConfig(base_delay=10.0, max_delay=5.0)

    def test_invalid_jitter(self):
        """Test jitter must be between 0 and 1."""
        with pytest.raises(ConfigurationError, match="jitter"):
            RetryConfig(jitter=1.5)

    @pytest.mark.parametrize("value", [2.5, True, "3", None])
    def test_max_attempts_must_be_integer(self, value):
        """Test non-integer max_attempts fail at construction."""
        with pytest.raises(ConfigurationError, match="max_attempts"):
            RetryConfig(max_attempts=value)

    @pytest.mark.parametrize(
        "field_name, value",
        [
            ("base_delay", float("nan")),
            ("base_delay", None),
            ("max_delay", float("nan")),
            ("exponential_base", float("inf")),
            ("jitter", None),
        ],
    )
    def test_numeric_fields_must_be_finite(self, field_name, value):
        """Test NaN, infinite and missing numbers are rejected."""
        with pytest.raises(ConfigurationError, match=field_name):
            RetryConfig(**{field_name: value})

    def test_from_settings(self):
        """Test building a config from settings."""
        settings = Settings(RETRY_MAX_ATTEMPTS=5, RETRY_BASE_DELAY=0.25)
        config = RetryConfig.from_settings(settings, jitter=0.1)

        assert config.max_attempts == 5
        assert config.base_delay == 0.25
        assert config.jitter == 0.1


class TestCalculateDelay:
    """Tests for delay calculation."""

    def test_exponential_backoff(self):
        """Test delay doubles with each attempt."""
        config = RetryConfig(base_delay=1.0)

        assert calculate_delay(1, config) == 1.0  # 1 * 2^0
        assert calculate_delay(2, config) == 2.0  # 1 * 2^1
        assert calculate_delay(3, config) == 4.0  # 1 * 2^2

    def test_max_delay_cap(self):
        """Test delay is capped at max_delay."""
        config = RetryConfig(base_delay=10.0, max_delay=30.0)

        # 10 * 2^4 = 160, but should be capped at 30
        assert calculate_delay(5, config) == 30.0

    def test_jitter_applied(self):
        """Test jitter adds randomness to delay."""
        config = RetryConfig(base_delay=10.0, jitter=0.5)

        delays = [calculate_delay(1, config) for _ in range(100)]

        assert min(delays) >= 5.0
        assert max(delays) <= 15.0
        assert max(delays) - min(delays) > 1.0

    def test_retry_after_respected(self):
        """Test Retry-After from RateLimitError is used."""
        config = RetryConfig(base_delay=1.0)
        error = RateLimitError(retry_after=45.0)

        assert calculate_delay(1, config, error) == 45.0

    def test_retry_after_capped_at_max(self):
        """Test Retry-After is capped at max_delay."""
        config = RetryConfig(base_delay=1.0, max_delay=30.0)
        error = RateLimitError(retry_after=60.0)

        assert calculate_delay(1, config, error) == 30.0

    def test_retry_after_ignored_when_disabled(self):
        """Test Retry-After is ignored when respect_retry_after is False."""
        config = RetryConfig(base_delay=1.0, respect_retry_after=False)
        error = RateLimitError(retry_after=60.0)

        assert calculate_delay(2, config, error) == 2.0


class TestShouldRetry:
    """Tests for retry condition evaluation."""

    def test_max_attempts_reached(self):
        """Test no retry when max attempts reached."""
        config = RetryConfig(max_attempts=3)
        assert should_retry(TransientError("temp"), 3, config) is False

    def test_any_exception_retried_by_default(self):
        """Test default config retries every exception type."""
        config = RetryConfig(max_attempts=3)

        assert should_retry(ValueError("x"), 1, config) is True
        assert should_retry(PermanentError("x"), 2, config) is True

    def test_custom_retry_on_exceptions(self):
        """Test custom retry_on exception types."""
        config = RetryConfig(max_attempts=3, retry_on=(ValueError,))

        assert should_retry(ValueError("test"), 1, config) is True
        assert should_retry(RuntimeError("test"), 1, config) is False

    def test_custom_stop_on_exceptions(self):
        """Test custom stop_on exception types."""
        config = RetryConfig(max_attempts=3, stop_on=(PermanentError,))

        assert should_retry(TransientError("test"), 1, config) is True
        assert should_retry(PermanentError("test"), 1, config) is False


class TestRetry:
    """Tests for the retry helper."""

    @pytest.mark.asyncio
    async def test_success_on_first_attempt(self):
        """Test a successful operation is called once."""
        fn = AsyncMock(return_value="success")

        result = await retry(fn)

        assert result == "success"
        assert fn.await_count == 1

    @pytest.mark.asyncio
    async def test_fail_twice_then_succeed(self):
        """Test success after two failures with exponential waits."""
        fn = AsyncMock(side_effect=[
            ValueError("Attempt 1"),
            ValueError("Attempt 2"),
            "success",
        ])

        start = time.monotonic()
        result = await retry(fn, 3, 0.01)
        elapsed = time.monotonic() - start

        assert result == "success"
        assert fn.await_count == 3
        assert elapsed >= 0.03  # 0.01 + 0.02

    @pytest.mark.asyncio
    async def test_raises_after_max_attempts(self):
        """Test the last error propagates after exactly max_attempts calls."""
        fn = AsyncMock(side_effect=ValueError("Always fails"))

        with pytest.raises(ValueError, match="Always fails"):
            await retry(fn, 2, 0.01)

        assert fn.await_count == 2

    @pytest.mark.asyncio
    async def test_single_attempt_does_not_wait(self):
        """Test max_attempts=1 raises immediately."""
        fn = MagicMock(side_effect=RuntimeError("once"))

        start = time.monotonic()
        with pytest.raises(RuntimeError, match="once"):
            await retry(fn, 1, 10.0)

        assert fn.call_count == 1
        assert time.monotonic() - start < 1.0

    @pytest.mark.asyncio
    async def test_sync_operation(self):
        """Test plain callables are supported."""
        calls = []

        def flaky():
            calls.append(1)
            if len(calls) < 2:
                raise TransientError("flaky")
            return len(calls)

        assert await retry(flaky, 3, 0.01) == 2

    @pytest.mark.asyncio
    async def test_with_config_object(self):
        """Test a RetryConfig overrides positional arguments."""
        fn = AsyncMock(side_effect=PermanentError("permanent"))
        config = RetryConfig(max_attempts=5, base_delay=0.01, stop_on=(PermanentError,))

        with pytest.raises(PermanentError):
            await retry(fn, config=config)

        assert fn.await_count == 1


class TestRetryWithBackoff:
    """Tests for retry_with_backoff decorator."""

    @pytest.mark.asyncio
    async def test_wraps_async_processor(self):
        """Test an async item processor is retried with its arguments."""
        calls = []

        @retry_with_backoff(max_attempts=3, base_delay=0.01)
        async def process(item, index):
            calls.append((item, index))
            if len(calls) < 3:
                raise TransientError("temporary")
            return item * 2

        assert await process(4, 0) == 8
        assert calls == [(4, 0)] * 3

    @pytest.mark.asyncio
    async def test_wraps_sync_function(self):
        """Test a sync function becomes an awaitable with retries."""
        call_count = 0

        @retry_with_backoff(max_attempts=3, base_delay=0.01)
        def always_fail():
            nonlocal call_count
            call_count += 1
            raise TransientError("always fails")

        with pytest.raises(TransientError, match="always fails"):
            await always_fail()

        assert call_count == 3

    @pytest.mark.asyncio
    async def test_on_retry_callback(self):
        """Test on_retry callback is invoked with growing delays."""
        retries = []

        def track_retry(attempt, error, delay):
            retries.append((attempt, delay))

        @retry_with_backoff(max_attempts=3, base_delay=0.01, on_retry=track_retry)
        async def fail_twice():
            if len(retries) < 2:
                raise TransientError("temporary")
            return "success"

        assert await fail_twice() == "success"
        assert retries == [(1, 0.01), (2, 0.02)]

    @pytest.mark.asyncio
    async def test_failing_on_retry_callback_does_not_abort(self):
        """Test an exception in on_retry is logged, not raised."""
        def broken(attempt, error, delay):
            raise RuntimeError("callback broke")

        fn = AsyncMock(side_effect=[ValueError("x"), "ok"])

        @retry_with_backoff(max_attempts=2, base_delay=0.01, on_retry=broken)
        async def call():
            return await fn()

        assert await call() == "ok"

    @pytest.mark.asyncio
    async def test_decorator_without_parentheses(self):
        """Test decorator can be used without parentheses."""
        @retry_with_backoff
        async def simple_func():
            return "result"

        assert await simple_func() == "result"
        assert simple_func.__name__ == "simple_func"


class TestRetryState:
    """Tests for RetryState dataclass."""

    def test_default_state(self):
        """Test default state values."""
        state = RetryState()
        assert state.attempt == 0
        assert state.total_delay == 0.0
        assert state.errors == []

    def test_elapsed_time(self):
        """Test elapsed time calculation."""
        state = RetryState()
        time.sleep(0.01)
        assert state.elapsed_time >= 0.01
