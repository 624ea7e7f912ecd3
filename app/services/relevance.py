"""Keyword-containment chunk selection for building LLM context windows."""
from typing import List, Sequence


CONTEXT_SEPARATOR = "\n\n"


def _joined_length(total: int, selected: List[str], chunk: str) -> int:
    """Length of the context once ``chunk`` is appended to ``selected``."""
    if not selected:
        return len(chunk)
    return total + len(CONTEXT_SEPARATOR) + len(chunk)


def select_relevant_chunks(chunks: Sequence[str], query: str, max_chars: int) -> str:
    """
    Build a context string of at most ``max_chars`` characters from ``chunks``.

    A chunk is picked when its lower-cased text contains any whitespace
    delimited word of the lower-cased query, as long as it still fits in the
    budget. When nothing matches, chunks are taken from the start instead; the
    first of them is always kept even when it alone is over budget, so a
    non-empty chunk list never yields an empty context.

    Selected chunks keep their stored order and are joined with a blank line.
    The separators count against the budget.
    """
    if not chunks:
        return ""

    query_words = query.lower().split()
    selected: List[str] = []
    total = 0

    for chunk in chunks:
        lowered = chunk.lower()
        grown = _joined_length(total, selected, chunk)
        if grown <= max_chars and any(word in lowered for word in query_words):
            selected.append(chunk)
            total = grown
        if total >= max_chars:
            break

    if not selected:
        selected.append(chunks[0])
        total = len(chunks[0])
        for chunk in chunks[1:]:
            grown = _joined_length(total, selected, chunk)
            if grown > max_chars:
                break
            selected.append(chunk)
            total = grown

    return CONTEXT_SEPARATOR.join(selected)
