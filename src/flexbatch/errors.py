"""
FlexBatch Error Classification System.

This module provides the exceptions raised by the batch scheduler and the
retry helpers, and a small vocabulary callers can use inside their own
processor functions to signal whether a failure is worth retrying.

Error Categories:
-----------------
1. Retryable Errors: Transient failures that may succeed on retry
   - Rate limiting (HTTP 429)
   - Temporary downstream failures

2. Permanent Errors: Failures that won't succeed on retry
   - Configuration errors (invalid batch options, bad chunk sizes)

Usage:
------
    from flexbatch.errors import ConfigurationError, RateLimitError

    async def call_service(item, index):
        response = await client.post(item)
        if response.status_code == 429:
            raise RateLimitError(retry_after=float(response.headers["Retry-After"]))
        return response.json()
"""

from typing import Any


class FlexBatchError(Exception):
    """
    Base exception for all FlexBatch errors.

    Attributes:
        message: Human-readable error description
        details: Additional context about the error (optional)
        original_error: The underlying exception that caused this error (optional)
    """

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
        original_error: Exception | None = None
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.original_error = original_error

    def __str__(self) -> str:
        base = self.message
        if self.details:
            base += f" | Details: {self.details}"
        if self.original_error:
            base += f" | Caused by: {type(self.original_error).__name__}: {self.original_error}"
        return base

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        return {
            "error_type": type(self).__name__,
            "message": self.message,
            "details": self.details,
            "original_error": str(self.original_error) if self.original_error else None
        }


# =============================================================================
# Retryable Errors - Transient failures that may succeed on retry
# =============================================================================

class RetryableError(FlexBatchError):
    """
    Base class for errors that may succeed on retry.

    Attributes:
        retry_after: Suggested wait time before retry (seconds), if known
    """

    def __init__(
        self,
        message: str,
        retry_after: float | None = None,
        details: dict[str, Any] | None = None,
        original_error: Exception | None = None
    ):
        super().__init__(message, details, original_error)
        self.retry_after = retry_after


class RateLimitError(RetryableError):
    """
    Raised by a processor function when the downstream target throttles it.

    The retry helpers honour ``retry_after`` (when set) instead of the
    computed backoff delay.
    """

    def __init__(
        self,
        message: str = "Rate limit exceeded",
        retry_after: float | None = None,
        details: dict[str, Any] | None = None,
        original_error: Exception | None = None
    ):
        super().__init__(message, retry_after, details, original_error)


class TransientError(RetryableError):
    """
    Generic retryable error for unclassified transient failures.
    """
    pass


# =============================================================================
# Permanent Errors - Failures that won't succeed on retry
# =============================================================================

class PermanentError(FlexBatchError):
    """
    Base class for errors that will not succeed on retry.
    """
    pass


class ConfigurationError(PermanentError, ValueError):
    """
    Raised when batch options or helper arguments are invalid.

    Also a ``ValueError`` so callers validating plain arguments can catch
    it the usual way.
    """

    def __init__(
        self,
        message: str = "Configuration error",
        details: dict[str, Any] | None = None,
        original_error: Exception | None = None
    ):
        super().__init__(message, details, original_error)


# =============================================================================
# Helper Functions
# =============================================================================

def is_retryable(error: Exception) -> bool:
    """
    Check if an error is retryable.

    Args:
        error: The exception to check

    Returns:
        True if the error is an instance of RetryableError
    """
    return isinstance(error, RetryableError)
