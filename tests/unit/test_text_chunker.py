"""Unit tests for TextChunker: fixed-width, non-overlapping chunking."""

from __future__ import annotations

import math

import pytest

from app.utils.text_chunker import TextChunker


class TestChunkSizes:
    def test_4500_characters_give_three_chunks(self) -> None:
        text = "A" * 4499 + "B"
        chunks = TextChunker.chunk_text(text, 2000)

        assert [len(c) for c in chunks] == [2000, 2000, 500]
        assert chunks[-1].endswith("B")

    def test_exact_multiple_has_no_partial_chunk(self) -> None:
        chunks = TextChunker.chunk_text("x" * 4000, 2000)
        assert [len(c) for c in chunks] == [2000, 2000]

    def test_default_chunk_size_is_2000(self) -> None:
        chunks = TextChunker.chunk_text("y" * 2001)
        assert [len(c) for c in chunks] == [2000, 1]

    @pytest.mark.parametrize("length,size", [(1, 1), (7, 3), (2000, 2000), (12345, 1000), (10, 64)])
    def test_chunk_count_is_ceiling(self, length: int, size: int) -> None:
        chunks = TextChunker.chunk_text("z" * length, size)
        assert len(chunks) == math.ceil(length / size)


class TestRoundTrip:
    @pytest.mark.parametrize(
        "text,size",
        [
            ("The quick brown fox jumps over the lazy dog.", 5),
            ("line one\nline two\n\n\tindented", 4),
            ("naïve café — résumé 日本語テキスト", 3),
            ("short", 100),
        ],
    )
    def test_concatenation_reproduces_text(self, text: str, size: int) -> None:
        assert "".join(TextChunker.chunk_text(text, size)) == text

    def test_chunks_follow_offsets(self) -> None:
        text = "abcdefghij"
        chunks = TextChunker.chunk_text(text, 4)
        for i, chunk in enumerate(chunks):
            assert chunk == text[i * 4:min((i + 1) * 4, len(text))]


class TestEdgeCases:
    def test_empty_text_produces_no_chunks(self) -> None:
        assert TextChunker.chunk_text("", 2000) == []

    def test_whitespace_is_kept(self) -> None:
        assert TextChunker.chunk_text("   ", 2) == ["  ", " "]

    @pytest.mark.parametrize("size", [0, -5])
    def test_non_positive_size_rejected(self, size: int) -> None:
        with pytest.raises(ValueError):
            TextChunker.chunk_text("text", size)
