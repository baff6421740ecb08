"""
Batch processor for applying a function to large item collections.

This module provides the main BatchProcessor class that handles
throughput-controlled processing of large collections with:
- Fixed-size batches (the last batch holds the remainder)
- A bound on how many batches are in flight at once
- Optional pacing delay between batch launches
- Per-item failure containment, or abort-on-first-error
- Progress and error callbacks
- Run-scoped logging for debugging
"""

import asyncio
import inspect
import logging
import uuid
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Generic, NamedTuple, TypeVar

from flexbatch.batch.config import BatchOptions
from flexbatch.errors import ConfigurationError
from flexbatch.utils.async_helpers import run_async_in_sync_context
from flexbatch.utils.chunking import chunk
from flexbatch.utils.timing import delay, timer

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")

# Function that processes a single item: (item, absolute_index) -> result
ProcessorFunction = Callable[[T, int], R | Awaitable[R]]

# Marks a batch slot whose item failed
_FAILED = object()


class _ItemOutcome(NamedTuple):
    index: int
    item: Any
    result: Any = None
    error: Exception | None = None


@dataclass
class _RunState:
    """State owned by a single ``process`` call."""

    run_id: str
    options: BatchOptions
    total: int
    results: list = field(default_factory=list)
    batches_completed: int = 0
    batches_failed: int = 0


class BatchProcessor(Generic[T, R]):
    """
    Applies a processor function to items in bounded, paced batches.

    The processing flow:
    1. Split items into batches of ``batch_size``
    2. Dispatch batches one at a time (concurrency=1) or keep up to
       ``concurrency`` batches in flight
    3. Run the items of each batch concurrently with each other
    4. Collect successful results, report failures via ``on_error``
    5. Report cumulative progress after each batch completes

    Ordering:
    - With concurrency=1 the results follow input order exactly.
    - With concurrency>1 batches are launched in input order but their
      results are appended in completion order. Order within a batch is
      always preserved.

    Failures:
    - stop_on_error=False: failed items are omitted from the results and
      ``process`` does not raise (except for configuration errors).
    - stop_on_error=True: the first item failure propagates out of
      ``process`` as soon as it happens; unfinished items of the same batch
      are cancelled. In concurrent mode no further batches are launched, but
      batches already in flight are awaited first and may still add
      results and fire progress callbacks before the error is raised.

    A processor instance holds configuration only, so it can be reused for
    any number of sequential ``process`` calls.

    Example:
        >>> async def fetch(url, index):
        ...     return await client.get(url)
        >>> processor = BatchProcessor(fetch, batch_size=20, concurrency=3, delay=0.5)
        >>> pages = await processor.process(urls)
    """

    def __init__(
        self,
        processor_fn: ProcessorFunction,
        options: BatchOptions | None = None,
        **overrides: Any
    ):
        """
        Initialize the batch processor.

        Args:
            processor_fn: Sync or async function called as ``fn(item, index)``
            options: Batch options (uses defaults if not provided)
            **overrides: Individual option values applied over ``options``

        Raises:
            ConfigurationError: If processor_fn is not callable or an option is invalid
        """
        if not callable(processor_fn):
            raise ConfigurationError("processor_fn must be callable")
        self.processor_fn = processor_fn
        self._options = (options or BatchOptions()).merge(**overrides)

    @property
    def options(self) -> BatchOptions:
        """Current batch options."""
        return self._options

    def get_options(self) -> BatchOptions:
        """Return the current batch options."""
        return self._options

    def update_options(self, **overrides: Any) -> None:
        """
        Replace individual options.

        Takes effect on the next ``process`` call; a call that is already
        running keeps the options it started with.
        """
        self._options = self._options.merge(**overrides)

    async def process(self, items: Iterable[T]) -> list[R]:
        """
        Process all items in batches.

        Args:
            items: Ordered collection of inputs

        Returns:
            Results of the successfully processed items

        Raises:
            Exception: The first item failure, if stop_on_error is True
        """
        if not isinstance(items, Sequence):
            items = list(items)

        run = _RunState(
            run_id=uuid.uuid4().hex[:8],
            options=self._options,
            total=len(items),
        )
        options = run.options
        batches = chunk(items, options.batch_size)

        if not batches:
            logger.debug(f"[{run.run_id}] No items to process")
            return run.results

        logger.info(
            f"[{run.run_id}] Batch run started: "
            f"items={run.total}, batches={len(batches)}, batch_size={options.batch_size}, "
            f"concurrency={options.concurrency}, delay={options.delay}, "
            f"stop_on_error={options.stop_on_error}"
        )

        with timer(f"[{run.run_id}] Batch run", log_level="DEBUG"):
            if options.is_sequential:
                await self._process_sequential(batches, run)
            else:
                await self._process_concurrent(batches, run)

        logger.info(
            f"[{run.run_id}] Batch run complete: "
            f"results={len(run.results)}/{run.total}, "
            f"batches_completed={run.batches_completed}, batches_failed={run.batches_failed}"
        )

        return run.results

    def process_sync(self, items: Iterable[T]) -> list[R]:
        """Run ``process`` from synchronous code."""
        return run_async_in_sync_context(self.process(items))

    async def _process_sequential(self, batches: list[list[T]], run: _RunState) -> None:
        """Process batches one at a time, in input order."""
        options = run.options

        for batch_num, batch in enumerate(batches):
            try:
                batch_results = await self._process_batch(
                    batch, batch_num * options.batch_size, run
                )
                self._complete_batch(batch_results, batch_num, run)

            except Exception as e:
                if options.stop_on_error:
                    logger.error(
                        f"[{run.run_id}] Batch {batch_num + 1}/{len(batches)} failed, "
                        f"stopping run: {type(e).__name__}: {e}"
                    )
                    raise

                run.batches_failed += 1
                logger.warning(
                    f"[{run.run_id}] Batch {batch_num + 1}/{len(batches)} failed, "
                    f"continuing: {type(e).__name__}: {e}"
                )

            if options.delay > 0 and batch_num < len(batches) - 1:
                await delay(options.delay)

    async def _process_concurrent(self, batches: list[list[T]], run: _RunState) -> None:
        """
        Keep up to ``concurrency`` batches in flight.

        Launches are paced by ``delay``; after the limit is reached the loop
        waits for at least one batch to finish before launching more. Every
        launched batch is awaited before this method returns or raises.
        """
        options = run.options
        in_flight: set[asyncio.Task] = set()
        batch_nums: dict[asyncio.Task, int] = {}
        cursor = 0
        first_error: Exception | None = None

        async def run_batch(batch_num: int, batch: list[T]) -> None:
            batch_results = await self._process_batch(
                batch, batch_num * options.batch_size, run
            )
            self._complete_batch(batch_results, batch_num, run)

        try:
            while (first_error is None and cursor < len(batches)) or in_flight:
                while (
                    first_error is None
                    and cursor < len(batches)
                    and len(in_flight) < options.concurrency
                ):
                    task = asyncio.create_task(
                        run_batch(cursor, batches[cursor]),
                        name=f"flexbatch-{run.run_id}-batch-{cursor + 1}",
                    )
                    in_flight.add(task)
                    batch_nums[task] = cursor
                    cursor += 1

                    if options.delay > 0 and cursor < len(batches):
                        await delay(options.delay)

                done, in_flight = await asyncio.wait(
                    in_flight, return_when=asyncio.FIRST_COMPLETED
                )

                for task in done:
                    error = task.exception()
                    if error is None:
                        continue

                    batch_num = batch_nums[task]
                    if not options.stop_on_error:
                        run.batches_failed += 1
                        logger.warning(
                            f"[{run.run_id}] Batch {batch_num + 1}/{len(batches)} failed, "
                            f"continuing: {type(error).__name__}: {error}"
                        )
                    elif first_error is None:
                        first_error = error
                        logger.error(
                            f"[{run.run_id}] Batch {batch_num + 1}/{len(batches)} failed, "
                            f"stopping run after {len(in_flight)} in-flight batches finish: "
                            f"{type(error).__name__}: {error}"
                        )
                    else:
                        logger.debug(
                            f"[{run.run_id}] Batch {batch_num + 1} also failed after abort: "
                            f"{type(error).__name__}: {error}"
                        )
        finally:
            # Only reached with tasks left when process() itself is cancelled
            for task in in_flight:
                task.cancel()
            if in_flight:
                await asyncio.gather(*in_flight, return_exceptions=True)

        if first_error is not None:
            raise first_error

    async def _process_batch(
        self,
        batch: list[T],
        start_index: int,
        run: _RunState
    ) -> list[R]:
        """
        Process all items of one batch concurrently.

        Items are consumed as they complete, so ``on_error`` fires for each
        failure as soon as it happens. With stop_on_error the first failure
        is raised right away; siblings still running are cancelled and
        awaited first, so no item task outlives its batch.

        Args:
            batch: Items of this batch
            start_index: Absolute index of the batch's first item
            run: State of the current run

        Returns:
            Results of the successful items, in item order

        Raises:
            Exception: The first observed item failure, if stop_on_error is True
        """
        options = run.options
        slots: list[Any] = [_FAILED] * len(batch)

        tasks = [
            asyncio.create_task(self._process_item(item, start_index + offset))
            for offset, item in enumerate(batch)
        ]
        try:
            for next_done in asyncio.as_completed(tasks):
                outcome = await next_done
                if outcome.error is None:
                    slots[outcome.index - start_index] = outcome.result
                    continue

                logger.debug(
                    f"[{run.run_id}] Item {outcome.index} failed: "
                    f"{type(outcome.error).__name__}: {outcome.error}"
                )
                if options.on_error:
                    options.on_error(outcome.error, outcome.item, outcome.index)
                if options.stop_on_error:
                    raise outcome.error
        finally:
            pending = [task for task in tasks if not task.done()]
            for task in pending:
                task.cancel()
            if pending:
                await asyncio.gather(*pending, return_exceptions=True)

        return [result for result in slots if result is not _FAILED]

    async def _process_item(self, item: T, index: int) -> _ItemOutcome:
        try:
            result = self.processor_fn(item, index)
            if inspect.isawaitable(result):
                result = await result
            return _ItemOutcome(index, item, result=result)
        except Exception as e:
            return _ItemOutcome(index, item, error=e)

    def _complete_batch(self, batch_results: list[R], batch_num: int, run: _RunState) -> None:
        # No awaits here: completions never interleave with each other
        run.results.extend(batch_results)
        run.batches_completed += 1

        logger.debug(
            f"[{run.run_id}] Batch {batch_num + 1} complete: "
            f"{len(batch_results)} results, {len(run.results)}/{run.total} total"
        )

        if run.options.on_progress:
            run.options.on_progress(len(run.results), run.total)


def create_batch(
    processor_fn: ProcessorFunction,
    options: BatchOptions | None = None,
    **overrides: Any
) -> BatchProcessor:
    """
    Create a reusable batch processor.

    Example:
        >>> processor = create_batch(lambda x, i: x * 2, batch_size=5)
        >>> await processor.process(range(20))
    """
    return BatchProcessor(processor_fn, options, **overrides)


async def process_in_batches(
    items: Iterable[T],
    processor_fn: ProcessorFunction,
    options: BatchOptions | None = None,
    **overrides: Any
) -> list[R]:
    """
    Convenience function for one-off batch processing.

    This is a simpler interface for processing a collection once without
    keeping a BatchProcessor instance around.

    Example:
        >>> from flexbatch import process_in_batches
        >>> results = await process_in_batches(
        ...     urls, fetch,
        ...     batch_size=50,
        ...     concurrency=2,
        ...     on_progress=lambda done, total: print(f"{done}/{total}")
        ... )
    """
    processor = create_batch(processor_fn, options, **overrides)
    return await processor.process(items)


def process_in_batches_sync(
    items: Iterable[T],
    processor_fn: ProcessorFunction,
    options: BatchOptions | None = None,
    **overrides: Any
) -> list[R]:
    """Synchronous variant of ``process_in_batches``."""
    return create_batch(processor_fn, options, **overrides).process_sync(items)
