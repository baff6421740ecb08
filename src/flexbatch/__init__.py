"""
FlexBatch - Throughput-controlled batch processing.

This package applies a caller-supplied function to large ordered
collections in fixed-size batches, bounding how many batches run at once,
pacing their launches, and containing per-item failures. It is meant as a
building block for talking to rate-limited or resource-constrained
downstream services.
"""

__version__ = "0.1.0"

# Batch scheduling
from .batch import (
    BatchOptions,
    BatchProcessor,
    BatchProgress,
    LoggingProgressReporter,
    create_batch,
    process_in_batches,
    process_in_batches_sync,
)

# Errors
from .errors import (
    ConfigurationError,
    FlexBatchError,
    PermanentError,
    RateLimitError,
    RetryableError,
    TransientError,
    is_retryable,
)

# Utilities
from .utils import RetryConfig, chunk, delay, iter_chunks, retry, retry_with_backoff

__all__ = [
    # Version
    "__version__",
    # Batch
    "BatchProcessor",
    "BatchOptions",
    "BatchProgress",
    "LoggingProgressReporter",
    "create_batch",
    "process_in_batches",
    "process_in_batches_sync",
    # Utilities
    "chunk",
    "iter_chunks",
    "delay",
    "retry",
    "retry_with_backoff",
    "RetryConfig",
    # Errors
    "FlexBatchError",
    "RetryableError",
    "RateLimitError",
    "TransientError",
    "PermanentError",
    "ConfigurationError",
    "is_retryable",
]
