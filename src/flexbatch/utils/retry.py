"""
Retry Utility with Exponential Backoff.

This module provides the retry helper callers use to wrap their own
processor functions before handing them to the batch scheduler. The
scheduler itself never retries; it only contains or propagates failures.

Features:
---------
- Exponential backoff: attempt N waits base_delay * 2^(N-1)
- Optional jitter and delay cap
- Configurable retry conditions
- Detailed logging of retry attempts
- Accepts both sync and async operations
- Respects Retry-After from RateLimitError

Usage:
------
    from flexbatch.utils.retry import retry, retry_with_backoff, RetryConfig

    # One-off call
    result = await retry(lambda: client.fetch(url), max_attempts=3, base_delay=1.0)

    # Wrapping a processor function
    @retry_with_backoff(max_attempts=5, base_delay=0.5)
    async def upload(item, index):
        return await client.upload(item)

    await process_in_batches(items, upload, batch_size=20)
"""

import asyncio
import inspect
import logging
import random
import time
from dataclasses import dataclass, field
from functools import wraps
from typing import Any, Awaitable, Callable, TypeVar

from flexbatch.config.settings import Settings, settings as default_settings
from flexbatch.errors import ConfigurationError, FlexBatchError, RateLimitError
from flexbatch.utils.validation import is_non_negative_number, is_positive_int

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class RetryConfig:
    """
    Configuration for retry behavior.

    The defaults retry every exception with pure exponential backoff
    (no jitter, no cap).

    Attributes:
        max_attempts: Maximum number of attempts (including initial)
        base_delay: Delay after the first failed attempt (seconds)
        max_delay: Upper bound for any single delay (seconds), None for no cap
        exponential_base: Base for exponential backoff (delay = base_delay * exponential_base^(attempt-1))
        jitter: Add random jitter to delays (0.0 to 1.0, fraction of delay)
        retry_on: Tuple of exception types to retry on
        stop_on: Tuple of exception types to never retry on
        on_retry: Callback called before each retry (attempt, error, delay) -> None
        respect_retry_after: Honor Retry-After from RateLimitError
    """

    max_attempts: int = 3
    base_delay: float = 1.0
    max_delay: float | None = None
    exponential_base: float = 2.0
    jitter: float = 0.0
    retry_on: tuple[type[Exception], ...] = (Exception,)
    stop_on: tuple[type[Exception], ...] = ()
    on_retry: Callable[[int, Exception, float], None] | None = None
    respect_retry_after: bool = True

    def __post_init__(self):
        """Validate configuration values."""
        if not is_positive_int(self.max_attempts):
            raise ConfigurationError(
                "max_attempts must be a positive integer",
                details={"max_attempts": self.max_attempts},
            )
        if not is_non_negative_number(self.base_delay):
            raise ConfigurationError(
                "base_delay must be a non-negative finite number",
                details={"base_delay": self.base_delay},
            )
        if self.max_delay is not None and (
            not is_non_negative_number(self.max_delay) or self.max_delay < self.base_delay
        ):
            raise ConfigurationError(
                "max_delay must be a finite number >= base_delay",
                details={"max_delay": self.max_delay},
            )
        if not is_non_negative_number(self.exponential_base) or self.exponential_base < 1:
            raise ConfigurationError(
                "exponential_base must be a finite number of at least 1",
                details={"exponential_base": self.exponential_base},
            )
        if not is_non_negative_number(self.jitter) or self.jitter > 1:
            raise ConfigurationError(
                "jitter must be between 0 and 1", details={"jitter": self.jitter}
            )

    @classmethod
    def from_settings(cls, settings: Settings | None = None, **overrides: Any) -> "RetryConfig":
        """Build a config from environment-driven settings."""
        settings = settings or default_settings
        values: dict[str, Any] = {
            "max_attempts": settings.RETRY_MAX_ATTEMPTS,
            "base_delay": settings.RETRY_BASE_DELAY,
        }
        values.update(overrides)
        return cls(**values)


@dataclass
class RetryState:
    """
    Tracks the state of a retry operation.

    Useful for logging and debugging retry behavior.
    """

    attempt: int = 0
    total_delay: float = 0.0
    errors: list[Exception] = field(default_factory=list)
    start_time: float = field(default_factory=time.time)

    @property
    def elapsed_time(self) -> float:
        """Total elapsed time since first attempt."""
        return time.time() - self.start_time


def calculate_delay(
    attempt: int,
    config: RetryConfig,
    error: Exception | None = None
) -> float:
    """
    Calculate delay before next retry attempt.

    Args:
        attempt: Attempt number that just failed (1-based)
        config: Retry configuration
        error: The exception that triggered the retry

    Returns:
        Delay in seconds before next attempt
    """
    # Check for Retry-After from rate limit errors
    if config.respect_retry_after and isinstance(error, RateLimitError):
        if error.retry_after is not None and error.retry_after > 0:
            logger.debug(f"Using Retry-After hint: {error.retry_after}s")
            if config.max_delay is not None:
                return min(error.retry_after, config.max_delay)
            return error.retry_after

    delay = config.base_delay * (config.exponential_base ** (attempt - 1))

    if config.jitter > 0:
        jitter_range = delay * config.jitter
        delay += random.uniform(-jitter_range, jitter_range)

    if config.max_delay is not None:
        delay = min(delay, config.max_delay)
    return max(delay, 0)


def should_retry(
    error: Exception,
    attempt: int,
    config: RetryConfig
) -> bool:
    """
    Determine if an error should trigger a retry.

    Args:
        error: The exception that was raised
        attempt: Current attempt number
        config: Retry configuration

    Returns:
        True if should retry, False otherwise
    """
    if attempt >= config.max_attempts:
        logger.debug(f"Max attempts ({config.max_attempts}) reached, not retrying")
        return False

    if isinstance(error, config.stop_on):
        logger.debug(f"Error type {type(error).__name__} in stop_on list, not retrying")
        return False

    if isinstance(error, config.retry_on):
        return True

    logger.debug(f"Error type {type(error).__name__} not in retry_on list, not retrying")
    return False


async def _run_with_retry(
    operation: Callable[[], T | Awaitable[T]],
    config: RetryConfig,
    name: str,
) -> T:
    state = RetryState()

    for attempt in range(1, config.max_attempts + 1):
        state.attempt = attempt

        try:
            logger.debug(f"Attempt {attempt}/{config.max_attempts} for {name}")
            result = operation()
            if inspect.isawaitable(result):
                result = await result
            return result

        except Exception as e:
            state.errors.append(e)
            _log_error(name, attempt, config.max_attempts, e)

            if not should_retry(e, attempt, config):
                if attempt == config.max_attempts:
                    logger.error(
                        f"[{name}] All {config.max_attempts} attempts failed. "
                        f"Total time: {state.elapsed_time:.2f}s, "
                        f"Total delay: {state.total_delay:.2f}s"
                    )
                raise

            delay = calculate_delay(attempt, config, e)
            state.total_delay += delay

            if config.on_retry:
                try:
                    config.on_retry(attempt, e, delay)
                except Exception as callback_error:
                    logger.warning(f"on_retry callback failed: {callback_error}")

            logger.warning(
                f"[{name}] Retrying in {delay:.2f}s "
                f"(attempt {attempt}/{config.max_attempts}) "
                f"after {type(e).__name__}: {e}"
            )

            await asyncio.sleep(delay)

    raise RuntimeError(f"Retry failed for {name} with no error captured")


async def retry(
    operation: Callable[[], T | Awaitable[T]],
    max_attempts: int = 3,
    base_delay: float = 1.0,
    *,
    config: RetryConfig | None = None,
) -> T:
    """
    Call a zero-argument operation until it succeeds or attempts run out.

    Attempt N (1-based) that fails waits ``base_delay * 2^(N-1)`` seconds
    before attempt N+1. The failure of the last attempt propagates as raised.

    Args:
        operation: Zero-argument callable returning a value or an awaitable
        max_attempts: Maximum number of attempts (including the first)
        base_delay: Delay after the first failure, in seconds
        config: Full RetryConfig (overrides max_attempts/base_delay if provided)

    Returns:
        The operation's first successful result

    Example:
        >>> result = await retry(lambda: fetch_page(url), max_attempts=3, base_delay=0.5)
    """
    if config is None:
        config = RetryConfig(max_attempts=max_attempts, base_delay=base_delay)
    name = getattr(operation, "__name__", type(operation).__name__)
    return await _run_with_retry(operation, config, name)


def retry_with_backoff(
    func: Callable[..., Any] | None = None,
    *,
    max_attempts: int = 3,
    base_delay: float = 1.0,
    max_delay: float | None = None,
    exponential_base: float = 2.0,
    jitter: float = 0.0,
    retry_on: tuple[type[Exception], ...] = (Exception,),
    stop_on: tuple[type[Exception], ...] = (),
    on_retry: Callable[[int, Exception, float], None] | None = None,
    config: RetryConfig | None = None,
) -> Callable[..., Any]:
    """
    Decorator that retries a function with exponential backoff.

    The wrapped function may be sync or async; the wrapper is always a
    coroutine function, so it can be handed straight to BatchProcessor.

        @retry_with_backoff
        async def my_func(item, index):
            ...

        @retry_with_backoff(max_attempts=5)
        def my_func(item, index):
            ...

    Args:
        func: The function to wrap (when used without arguments)
        max_attempts: Maximum attempts
        base_delay: Initial delay between retries
        max_delay: Maximum delay cap
        exponential_base: Multiplier for exponential backoff
        jitter: Random jitter factor (0-1)
        retry_on: Exception types to retry
        stop_on: Exception types to never retry
        on_retry: Callback before each retry
        config: Full RetryConfig (overrides other params if provided)

    Returns:
        Decorated coroutine function with retry logic
    """
    if config is None:
        config = RetryConfig(
            max_attempts=max_attempts,
            base_delay=base_delay,
            max_delay=max_delay,
            exponential_base=exponential_base,
            jitter=jitter,
            retry_on=retry_on,
            stop_on=stop_on,
            on_retry=on_retry,
        )

    def decorator(fn: Callable[..., Any]) -> Callable[..., Any]:
        @wraps(fn)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            return await _run_with_retry(
                lambda: fn(*args, **kwargs), config, fn.__name__
            )

        return wrapper

    # Handle both @retry_with_backoff and @retry_with_backoff()
    if func is not None:
        return decorator(func)
    return decorator


def _log_error(func_name: str, attempt: int, max_attempts: int, error: Exception) -> None:
    """Log error with appropriate level based on attempt number."""
    error_info = {
        "function": func_name,
        "attempt": attempt,
        "max_attempts": max_attempts,
        "error_type": type(error).__name__,
        "error_message": str(error),
    }

    if isinstance(error, FlexBatchError):
        error_info["details"] = error.details
        if error.original_error:
            error_info["original_error"] = str(error.original_error)

    if attempt == max_attempts:
        logger.error(f"[{func_name}] Final attempt failed: {error_info}")
    else:
        logger.debug(f"[{func_name}] Attempt {attempt} failed: {error_info}")
