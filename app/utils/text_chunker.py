"""Text chunking utilities for splitting documents into storable pieces."""
from typing import List


class TextChunker:
    """Split text into fixed-size, order-preserving chunks."""

    DEFAULT_CHUNK_SIZE = 2000  # characters

    @staticmethod
    def chunk_text(text: str, chunk_size: int = DEFAULT_CHUNK_SIZE) -> List[str]:
        """
        Split text into consecutive chunks of ``chunk_size`` characters.

        Chunk ``i`` covers ``text[i * chunk_size:(i + 1) * chunk_size]``; the
        last chunk may be shorter. There is no overlap, so joining the chunks
        in order gives back ``text`` exactly.

        Args:
            text: Text to chunk
            chunk_size: Maximum size of each chunk in characters

        Returns:
            List of chunk strings in sequence order (empty for empty text)

        Raises:
            ValueError: If chunk_size is not positive
        """
        if chunk_size <= 0:
            raise ValueError(f"chunk_size must be positive, got {chunk_size}")

        if not text:
            return []

        return [text[start:start + chunk_size] for start in range(0, len(text), chunk_size)]
