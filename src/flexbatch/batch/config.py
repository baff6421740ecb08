"""
Batch processing configuration.

This module defines the options that control a batch run: how items are
split into batches, how many batches may be in flight at once, how launches
are paced, and how item failures are handled.
"""

from dataclasses import dataclass, fields, replace
from typing import Any

from flexbatch.batch.progress import ErrorCallback, ProgressCallback
from flexbatch.config.settings import Settings, settings as default_settings
from flexbatch.errors import ConfigurationError
from flexbatch.utils.validation import is_non_negative_number, is_positive_int


@dataclass(frozen=True)
class BatchOptions:
    """
    Options for one batch run.

    Instances are immutable; use ``merge`` to derive a modified copy.

    Attributes:
        batch_size: Number of items per batch. The last batch holds the
            remainder. Default: 10

        delay: Seconds to wait between batch launches. Zero disables pacing.
            Default: 0.0

        concurrency: Maximum number of batches in flight at once.
            1 processes batches strictly one after another and keeps the
            output in input order. Default: 1

        stop_on_error: Whether an item failure aborts the whole run.
            If False, failed items are reported via on_error and omitted
            from the results. Default: False

        on_progress: Called as ``on_progress(completed, total)`` after each
            batch completes, with the cumulative number of results and the
            total number of input items.

        on_error: Called as ``on_error(error, item, index)`` for each item
            whose processing raised, with the item's absolute index.

    Example:
        >>> options = BatchOptions(
        ...     batch_size=50,
        ...     concurrency=4,   # Up to 4 batches at once
        ...     delay=0.2,       # Pace launches for a rate-limited API
        ... )
    """

    batch_size: int = 10
    delay: float = 0.0
    concurrency: int = 1
    stop_on_error: bool = False
    on_progress: ProgressCallback | None = None
    on_error: ErrorCallback | None = None

    def __post_init__(self):
        """Validate configuration values."""
        if not is_positive_int(self.batch_size):
            raise ConfigurationError(
                "batch_size must be a positive integer",
                details={"batch_size": self.batch_size},
            )
        if not is_non_negative_number(self.delay):
            raise ConfigurationError(
                "delay must be a non-negative finite number",
                details={"delay": self.delay},
            )
        if not is_positive_int(self.concurrency):
            raise ConfigurationError(
                "concurrency must be a positive integer",
                details={"concurrency": self.concurrency},
            )
        if self.on_progress is not None and not callable(self.on_progress):
            raise ConfigurationError("on_progress must be callable")
        if self.on_error is not None and not callable(self.on_error):
            raise ConfigurationError("on_error must be callable")

    @property
    def is_sequential(self) -> bool:
        return self.concurrency == 1

    def merge(self, **overrides: Any) -> "BatchOptions":
        """
        Return a copy with ``overrides`` applied over the current values.

        Raises:
            ConfigurationError: For unknown option names or invalid values
        """
        known = {f.name for f in fields(self)}
        unknown = set(overrides) - known
        if unknown:
            raise ConfigurationError(
                f"Unknown batch options: {', '.join(sorted(unknown))}",
                details={"known": sorted(known)},
            )
        return replace(self, **overrides)

    @classmethod
    def from_settings(cls, settings: Settings | None = None, **overrides: Any) -> "BatchOptions":
        """Build options from environment-driven settings, then apply overrides."""
        settings = settings or default_settings
        base = cls(
            batch_size=settings.BATCH_SIZE,
            delay=settings.DELAY,
            concurrency=settings.CONCURRENCY,
            stop_on_error=settings.STOP_ON_ERROR,
        )
        return base.merge(**overrides)
