"""
Progress tracking for batch operations.

This module defines the callback signatures the scheduler invokes and a
ready-made progress callback that writes to Python logging, for CLI
applications or background jobs where a progress bar isn't appropriate.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable

# Type alias for progress callback functions: (completed, total) -> None
ProgressCallback = Callable[[int, int], None]

# Type alias for error callback functions: (error, item, index) -> None
ErrorCallback = Callable[[Exception, Any, int], None]


@dataclass
class BatchProgress:
    """
    Snapshot of a run's progress.

    Attributes:
        current: Number of results produced so far
        total: Total number of input items
        percent: Completion ratio (0.0 to 1.0)
        message: Human-readable progress message

    Example:
        >>> progress = BatchProgress.create(current=50, total=100)
        >>> print(f"{progress.percent:.0%} - {progress.message}")
        50% - 50/100
    """

    current: int
    total: int
    percent: float
    message: str

    @classmethod
    def create(cls, current: int, total: int, message: str = "") -> "BatchProgress":
        """Create a BatchProgress with the percent computed from current/total."""
        percent = current / total if total > 0 else 0.0
        return cls(
            current=current,
            total=total,
            percent=percent,
            message=message or f"{current}/{total}",
        )


class LoggingProgressReporter:
    """
    Progress callback that logs to Python logging.

    Pass an instance directly as ``on_progress``.

    Example:
        >>> reporter = LoggingProgressReporter()
        >>> processor = BatchProcessor(fn, batch_size=100, on_progress=reporter)
        # Logs: "Progress: 100/1000 (10.0%)"
    """

    def __init__(self, logger_name: str = "flexbatch.batch", level: int = logging.INFO):
        self.logger = logging.getLogger(logger_name)
        self.level = level

    def __call__(self, completed: int, total: int) -> None:
        self.report(BatchProgress.create(completed, total))

    def report(self, progress: BatchProgress) -> None:
        """Log progress information."""
        self.logger.log(
            self.level,
            f"Progress: {progress.message} ({progress.percent:.1%})"
        )
