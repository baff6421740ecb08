"""Tests for chunking helpers."""

import math

import pytest

from flexbatch.errors import ConfigurationError
from flexbatch.utils.chunking import chunk, count_chunks, iter_chunks


class TestChunk:
    """Tests for chunk function."""

    def test_split_with_remainder(self):
        """Split into chunks of the given size, remainder last."""
        assert chunk([1, 2, 3, 4, 5, 6, 7], 3) == [[1, 2, 3], [4, 5, 6], [7]]

    def test_empty_input(self):
        """Empty input yields no chunks, not one empty chunk."""
        assert chunk([], 3) == []

    def test_smaller_than_chunk_size(self):
        """Input shorter than the size yields a single chunk."""
        assert chunk([1, 2], 5) == [[1, 2]]

    def test_chunk_size_one(self):
        """Size 1 yields singleton chunks."""
        assert chunk([1, 2, 3], 1) == [[1], [2], [3]]

    def test_works_on_strings_and_tuples(self):
        """Any sequence is accepted; chunks are lists."""
        assert chunk("abcde", 2) == [["a", "b"], ["c", "d"], ["e"]]
        assert chunk((1, 2, 3), 2) == [[1, 2], [3]]

    @pytest.mark.parametrize("size", [0, -3, 1.5, None])
    def test_invalid_size(self, size):
        """Non-positive or non-integer sizes fail fast."""
        with pytest.raises(ConfigurationError, match="chunk size"):
            chunk([1, 2, 3], size)

    @pytest.mark.parametrize("length", [0, 1, 2, 9, 10, 11, 23])
    @pytest.mark.parametrize("size", [1, 3, 10])
    def test_chunk_properties(self, length, size):
        """Chunk count, sizes, and concatenation match the input."""
        items = list(range(length))
        chunks = chunk(items, size)

        assert len(chunks) == math.ceil(length / size)
        assert all(len(c) == size for c in chunks[:-1])
        if chunks:
            expected_last = length % size or size
            assert len(chunks[-1]) == expected_last
        assert [x for c in chunks for x in c] == items


class TestIterChunks:
    """Tests for the lazy chunk generator."""

    def test_lazy_iteration(self):
        """Chunks are produced on demand."""
        chunks = iter_chunks(list(range(5)), 2)

        assert next(chunks) == [0, 1]
        assert list(chunks) == [[2, 3], [4]]

    def test_validates_eagerly(self):
        """An invalid size raises at call time, before iteration."""
        with pytest.raises(ConfigurationError):
            iter_chunks([1, 2], 0)


class TestCountChunks:
    """Tests for count_chunks."""

    def test_counts(self):
        """Count equals ceil(length / size)."""
        assert count_chunks(0, 3) == 0
        assert count_chunks(10, 3) == 4
        assert count_chunks(9, 3) == 3

    def test_invalid_size(self):
        """Invalid sizes raise."""
        with pytest.raises(ConfigurationError):
            count_chunks(10, 0)
