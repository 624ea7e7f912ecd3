"""Unit tests for prompt assembly."""

from __future__ import annotations

from types import SimpleNamespace

import pytest

from app.services.conversation import (
    CHAT_INSTRUCTIONS,
    INSIGHT_INSTRUCTIONS,
    MODEL_ROLE,
    SYSTEM_ROLE,
    USER_ROLE,
    PromptSegment,
    assemble,
    render_transcript,
)


def _history(n: int) -> list[tuple[str, str]]:
    return [("user" if i % 2 == 0 else "assistant", f"turn {i}") for i in range(n)]


class TestStructure:
    def test_system_segment_embeds_instructions_and_context(self) -> None:
        segments = assemble("Be brief.", "Revenue rose 12%.", [], "How did revenue do?")

        assert segments[0].role == SYSTEM_ROLE
        assert segments[0].content.startswith("Be brief.")
        assert "Document Context:\nRevenue rose 12%." in segments[0].content

    def test_new_message_is_last(self) -> None:
        segments = assemble(CHAT_INSTRUCTIONS, "ctx", _history(2), "What next?")

        assert segments[-1] == PromptSegment(USER_ROLE, "What next?")
        assert len(segments) == 4

    def test_history_in_chronological_order(self) -> None:
        segments = assemble(CHAT_INSTRUCTIONS, "ctx", _history(3), "q")
        assert [s.content for s in segments[1:-1]] == ["turn 0", "turn 1", "turn 2"]


class TestHistoryCap:
    def test_fifteen_turns_keep_most_recent_ten(self) -> None:
        segments = assemble(CHAT_INSTRUCTIONS, "ctx", _history(15), "q")
        history = segments[1:-1]

        assert len(history) == 10
        assert [s.content for s in history] == [f"turn {i}" for i in range(5, 15)]

    def test_custom_cap(self) -> None:
        segments = assemble(CHAT_INSTRUCTIONS, "ctx", _history(6), "q", max_history=2)
        assert [s.content for s in segments[1:-1]] == ["turn 4", "turn 5"]

    def test_zero_cap_drops_history(self) -> None:
        segments = assemble(INSIGHT_INSTRUCTIONS, "ctx", _history(4), "q", max_history=0)
        assert len(segments) == 2


class TestRoles:
    @pytest.mark.parametrize("stored,expected", [
        ("user", USER_ROLE),
        ("ai", MODEL_ROLE),
        ("assistant", MODEL_ROLE),
        ("AI", MODEL_ROLE),
    ])
    def test_role_mapping(self, stored: str, expected: str) -> None:
        segments = assemble("i", "c", [(stored, "text")], "q")
        assert segments[1].role == expected

    def test_accepts_chat_turn_like_objects(self) -> None:
        turns = [SimpleNamespace(role="user", content="hi"), SimpleNamespace(role="assistant", content="hello")]
        segments = assemble("i", "c", turns, "q")
        assert segments[1:-1] == [PromptSegment(USER_ROLE, "hi"), PromptSegment(MODEL_ROLE, "hello")]

    def test_unknown_role_rejected(self) -> None:
        with pytest.raises(ValueError):
            assemble("i", "c", [("narrator", "once upon a time")], "q")


class TestTranscript:
    def test_render_ends_with_ai_prompt(self) -> None:
        segments = assemble("Instr.", "ctx", [("user", "hi"), ("ai", "hello")], "next")
        transcript = render_transcript(segments)

        assert transcript.startswith("Instr.")
        assert "User: hi\nAI: hello\nUser: next\nAI:" in transcript
        assert transcript.endswith("AI:")


def test_instruction_sets_share_guidelines() -> None:
    assert "Strategic Insight Analyst" in CHAT_INSTRUCTIONS
    assert "Strategic Insight Analyst" in INSIGHT_INSTRUCTIONS
    assert "If the answer is not in the document, state that clearly." in CHAT_INSTRUCTIONS
