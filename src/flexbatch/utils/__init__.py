"""Utility functions for FlexBatch."""

from .async_helpers import run_async_in_sync_context
from .chunking import chunk, count_chunks, iter_chunks
from .retry import RetryConfig, RetryState, calculate_delay, retry, retry_with_backoff
from .timing import delay, timer

__all__ = [
    "chunk",
    "count_chunks",
    "iter_chunks",
    "delay",
    "timer",
    "retry",
    "retry_with_backoff",
    "RetryConfig",
    "RetryState",
    "calculate_delay",
    "run_async_in_sync_context",
]
