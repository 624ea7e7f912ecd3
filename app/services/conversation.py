"""Prompt assembly for document-grounded insight and chat turns."""
from dataclasses import dataclass
from typing import Any, Iterable, List, Tuple


SYSTEM_ROLE = "system"
USER_ROLE = "user"
MODEL_ROLE = "model"

DEFAULT_MAX_HISTORY = 10

_ROLE_MAP = {
    "user": USER_ROLE,
    "ai": MODEL_ROLE,
    "assistant": MODEL_ROLE,
    "model": MODEL_ROLE,
}

_ANALYST_GUIDELINES = """Instructions:
- Provide a clear, concise, and well-structured response.
- Use bullet points or numbered lists for key points.
- Highlight strategic implications and actionable insights.
- If the answer is not in the document, state that clearly.
- Use simple language and avoid jargon."""

INSIGHT_INSTRUCTIONS = (
    "You are a Strategic Insight Analyst. Analyze the following business document "
    "and answer the user's question.\n\n" + _ANALYST_GUIDELINES
)

CHAT_INSTRUCTIONS = (
    "You are a Strategic Insight Analyst. I will provide you with a business document "
    "and you will help me analyze it.\n\n" + _ANALYST_GUIDELINES
)


@dataclass(frozen=True)
class PromptSegment:
    role: str
    content: str


def _normalize_turn(turn: Any) -> Tuple[str, str]:
    """Accept ``(role, text)`` pairs or objects with ``role``/``content``."""
    if isinstance(turn, tuple):
        role, text = turn
    else:
        role, text = turn.role, turn.content

    mapped = _ROLE_MAP.get((role or "").lower())
    if mapped is None:
        raise ValueError(f"Unknown chat role: {role!r}")
    return mapped, text


def assemble(
    instructions: str,
    context_text: str,
    history: Iterable[Any],
    new_message: str,
    max_history: int = DEFAULT_MAX_HISTORY,
) -> List[PromptSegment]:
    """
    Build the ordered prompt handed to the LLM.

    The first segment carries the instructions with the document context
    embedded, then the most recent ``max_history`` history turns oldest-first,
    then the new user message.

    Args:
        instructions: System instructions for the model
        context_text: Selected document context
        history: Prior turns in chronological order
        new_message: The user's new question or message
        max_history: Number of most recent turns to keep

    Returns:
        List of role-tagged prompt segments
    """
    turns = [_normalize_turn(turn) for turn in history]
    if max_history <= 0:
        turns = []
    elif len(turns) > max_history:
        turns = turns[-max_history:]

    segments = [
        PromptSegment(SYSTEM_ROLE, f"{instructions}\n\nDocument Context:\n{context_text}")
    ]
    segments.extend(PromptSegment(role, text) for role, text in turns)
    segments.append(PromptSegment(USER_ROLE, new_message))
    return segments


def render_transcript(segments: Iterable[PromptSegment]) -> str:
    """Render segments as a plain ``User:``/``AI:`` transcript ending in ``AI:``."""
    parts = []
    for segment in segments:
        if segment.role == SYSTEM_ROLE:
            parts.append(segment.content + "\n")
        elif segment.role == MODEL_ROLE:
            parts.append(f"AI: {segment.content}")
        else:
            parts.append(f"User: {segment.content}")
    parts.append("AI:")
    return "\n".join(parts)
