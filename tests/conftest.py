"""Shared pytest fixtures for the insight API test suite."""

from __future__ import annotations

import uuid
from typing import Any, Iterator, Optional, Sequence

import pytest
from sqlalchemy.orm import Session

from app.core.config import Settings
from app.db.sessions import Database
from app.models.user import User
from app.services.conversation import PromptSegment


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------


class FakeLLM:
    """Records every prompt it receives and answers with a canned reply."""

    def __init__(self, answer: str = "Revenue grew 12% in Q3.", error: Optional[Exception] = None) -> None:
        self.answer = answer
        self.error = error
        self.calls: list[tuple[list[PromptSegment], Optional[int]]] = []

    async def generate(self, segments: Sequence[PromptSegment], max_tokens: Optional[int] = None) -> str:
        self.calls.append((list(segments), max_tokens))
        if self.error is not None:
            raise self.error
        return self.answer


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def settings(tmp_path: Any) -> Settings:
    """Settings pointing at in-memory SQLite and a temporary upload dir."""
    return Settings(
        DATABASE_URL="sqlite://",
        SECRET_KEY="test-secret-key",
        OPENAI_API_KEY="test-key",
        OCR_SPACE_API_KEY=None,
        PDFTOTEXT_PATH=None,
        UPLOAD_DIR=str(tmp_path / "uploads"),
        CHUNK_SIZE=2000,
        CONTEXT_MAX_CHARS=2000,
        HISTORY_TURNS=10,
    )


@pytest.fixture
def database(settings: Settings) -> Iterator[Database]:
    db = Database(settings)
    db.create_all()
    yield db
    db.dispose()


@pytest.fixture
def session(database: Database) -> Iterator[Session]:
    db = database.SessionLocal()
    try:
        yield db
    finally:
        db.close()


def make_user(session: Session, name: str = "Ada") -> User:
    user = User(
        name=name,
        email=f"{name.lower()}-{uuid.uuid4().hex[:8]}@example.com",
        password_hash="not-a-real-hash",
    )
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


@pytest.fixture
def user(session: Session) -> User:
    return make_user(session)


@pytest.fixture
def fake_llm() -> FakeLLM:
    return FakeLLM()
