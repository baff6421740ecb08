"""
Batch Processing Module for FlexBatch.

This module applies a function to large item collections with
controlled throughput:
- Fixed-size batches
- Bounded number of batches in flight
- Optional pacing between batch launches
- Per-item error containment and progress callbacks

Example:
    >>> from flexbatch.batch import BatchProcessor, BatchOptions
    >>> processor = BatchProcessor(send, BatchOptions(batch_size=100, concurrency=4))
    >>> results = await processor.process(
    ...     messages,
    ... )
"""

from flexbatch.batch.config import BatchOptions
from flexbatch.batch.processor import (
    BatchProcessor,
    ProcessorFunction,
    create_batch,
    process_in_batches,
    process_in_batches_sync,
)
from flexbatch.batch.progress import (
    BatchProgress,
    ErrorCallback,
    LoggingProgressReporter,
    ProgressCallback,
)

__all__ = [
    "BatchOptions",
    "BatchProcessor",
    "BatchProgress",
    "ErrorCallback",
    "LoggingProgressReporter",
    "ProcessorFunction",
    "ProgressCallback",
    "create_batch",
    "process_in_batches",
    "process_in_batches_sync",
]
