"""Chunking helpers - split an ordered sequence into fixed-size batches."""

from collections.abc import Iterator, Sequence
from typing import TypeVar

from loguru import logger

from flexbatch.errors import ConfigurationError
from flexbatch.utils.validation import is_positive_int

T = TypeVar("T")


def _validate_size(size: int) -> None:
    if not is_positive_int(size):
        raise ConfigurationError(
            "chunk size must be a positive integer",
            details={"size": size},
        )


def count_chunks(length: int, size: int) -> int:
    """Number of chunks ``length`` items split into at ``size`` per chunk."""
    _validate_size(size)
    return (length + size - 1) // size


def iter_chunks(items: Sequence[T], size: int) -> Iterator[list[T]]:
    """Lazily yield contiguous chunks of ``items``.

    The size is validated when this function is called, not when the
    first chunk is requested.

    Args:
        items: Ordered sequence to split
        size: Number of items per chunk (the last chunk holds the remainder)

    Raises:
        ConfigurationError: If ``size`` is not a positive integer

    Examples:
        >>> list(iter_chunks([1, 2, 3, 4, 5], 2))
        [[1, 2], [3, 4], [5]]
    """
    _validate_size(size)
    return _generate_chunks(items, size)


def _generate_chunks(items: Sequence[T], size: int) -> Iterator[list[T]]:
    for start in range(0, len(items), size):
        yield list(items[start:start + size])


def chunk(items: Sequence[T], size: int) -> list[list[T]]:
    """Split ``items`` into a list of chunks of ``size`` elements.

    Every chunk has exactly ``size`` elements except possibly the last one.
    An empty sequence yields an empty list, never a single empty chunk.

    Examples:
        >>> chunk([1, 2, 3, 4, 5, 6, 7], 3)
        [[1, 2, 3], [4, 5, 6], [7]]
        >>> chunk([], 3)
        []
    """
    chunks = list(iter_chunks(items, size))
    logger.trace(f"Split {len(items)} items into {len(chunks)} chunks of {size}")
    return chunks
