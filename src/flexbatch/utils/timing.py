"""Timing utilities: non-blocking delays and duration logging."""

import asyncio
import time
from contextlib import contextmanager

from loguru import logger

from flexbatch.errors import ConfigurationError
from flexbatch.utils.validation import is_non_negative_number


async def delay(seconds: float) -> None:
    """Suspend the current task for ``seconds`` without blocking the loop.

    A zero delay still yields to the event loop once, so other ready tasks
    get a chance to run.

    Args:
        seconds: Non-negative duration to wait

    Raises:
        ConfigurationError: If ``seconds`` is negative or not a finite number

    Example:
        >>> await delay(0.5)
    """
    if not is_non_negative_number(seconds):
        raise ConfigurationError("delay must be a non-negative finite number", details={"seconds": seconds})
    await asyncio.sleep(seconds)


@contextmanager
def timer(operation: str, log_level: str = "INFO", threshold_ms: float = 0):
    """Context manager for timing operations.

    Works around ``await`` expressions as well, since it only reads the
    clock on entry and exit.

    Args:
        operation: Description of the operation being timed
        log_level: Log level to use ("DEBUG", "INFO", "WARNING")
        threshold_ms: Only log if operation takes longer than this (in milliseconds)

    Example:
        >>> with timer("Processing 100 items"):
        ...     results = await processor.process(items)
    """
    start = time.perf_counter()
    try:
        yield
    finally:
        elapsed_ms = (time.perf_counter() - start) * 1000

        if elapsed_ms >= threshold_ms:
            log_func = getattr(logger, log_level.lower())
            log_func(f"{operation} took {elapsed_ms:.2f}ms")
