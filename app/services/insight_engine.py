"""Question/answer orchestration over a document's chunks.

One turn runs: fetch chunks, select context, (fetch history), assemble the
prompt, call the LLM, persist the turn pair, respond. Nothing is retried. A
failure before the LLM answers aborts the turn; a failure while persisting the
answered turn is logged and reported through ``InsightResult.history_saved``.
"""
import asyncio
import logging
import uuid
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Protocol, Sequence, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import Settings
from app.core.errors import NoDocumentContent, NotFoundError, ValidationError
from app.models.chat_turn import ROLE_ASSISTANT, ROLE_USER, ChatTurn
from app.models.chunk import Chunk
from app.models.document import Document
from app.services.conversation import (
    CHAT_INSTRUCTIONS,
    INSIGHT_INSTRUCTIONS,
    PromptSegment,
    assemble,
    render_transcript,
)
from app.services.relevance import select_relevant_chunks

logger = logging.getLogger(__name__)


class LLMClient(Protocol):
    async def generate(self, segments: Sequence[PromptSegment], max_tokens: Optional[int] = None) -> str:
        ...


@dataclass
class InsightResult:
    answer: str
    history_saved: bool


class TurnLocks:
    """Serializes turns per (document, user) inside one process."""

    def __init__(self):
        self._locks: Dict[Tuple[uuid.UUID, uuid.UUID], List[Any]] = {}

    @asynccontextmanager
    async def hold(self, document_id: uuid.UUID, user_id: uuid.UUID):
        key = (document_id, user_id)
        entry = self._locks.get(key)
        if entry is None:
            entry = self._locks[key] = [asyncio.Lock(), 0]
        entry[1] += 1
        try:
            async with entry[0]:
                yield
        finally:
            entry[1] -= 1
            if entry[1] == 0:
                del self._locks[key]

    def __len__(self) -> int:
        return len(self._locks)


class InsightEngine:
    def __init__(self, db: Session, llm: LLMClient, settings: Settings, locks: Optional[TurnLocks] = None):
        self.db = db
        self.llm = llm
        self.settings = settings
        self.locks = locks or TurnLocks()

    def _get_owned_document(self, user_id: uuid.UUID, document_id: uuid.UUID) -> Document:
        document = self.db.query(Document).filter(
            Document.id == document_id,
            Document.user_id == user_id
        ).first()
        if not document:
            raise NotFoundError("Document not found")
        return document

    def _get_chunks(self, document_id: uuid.UUID) -> List[str]:
        rows = (
            self.db.query(Chunk.content)
            .filter(Chunk.document_id == document_id)
            .order_by(Chunk.chunk_index)
            .all()
        )
        return [row.content for row in rows]

    def _get_recent_history(self, document_id: uuid.UUID, user_id: uuid.UUID, limit: int) -> List[ChatTurn]:
        if limit <= 0:
            return []
        recent = (
            self.db.query(ChatTurn)
            .filter(ChatTurn.document_id == document_id, ChatTurn.user_id == user_id)
            .order_by(ChatTurn.created_at.desc())
            .limit(limit)
            .all()
        )
        return list(reversed(recent))

    def _save_turn(
        self,
        document_id: uuid.UUID,
        user_id: uuid.UUID,
        message: str,
        asked_at: datetime,
        answer: str,
    ) -> bool:
        """Write the user/assistant pair in one transaction. Best-effort."""
        try:
            self.db.add_all([
                ChatTurn(document_id=document_id, user_id=user_id, role=ROLE_USER,
                         content=message, created_at=asked_at),
                ChatTurn(document_id=document_id, user_id=user_id, role=ROLE_ASSISTANT,
                         content=answer, created_at=max(datetime.utcnow(), asked_at + timedelta(microseconds=1))),
            ])
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.warning(
                "Failed to save chat history: %s", e,
                extra={
                    "document_id": str(document_id),
                    "user_id": str(user_id),
                    "outcome": "history_write_failed",
                },
            )
            return False
        return True

    async def _answer(
        self,
        user_id: uuid.UUID,
        document_id: uuid.UUID,
        message: str,
        instructions: str,
        with_history: bool,
    ) -> InsightResult:
        if not message or not message.strip():
            raise ValidationError("Message must not be empty")

        asked_at = datetime.utcnow()
        self._get_owned_document(user_id, document_id)

        chunks = self._get_chunks(document_id)
        if not chunks:
            raise NoDocumentContent("Document has no extracted content")
        context_text = select_relevant_chunks(chunks, message, self.settings.CONTEXT_MAX_CHARS)

        history: List[ChatTurn] = []
        if with_history:
            history = self._get_recent_history(document_id, user_id, self.settings.HISTORY_TURNS)

        segments = assemble(
            instructions,
            context_text,
            history,
            message,
            max_history=self.settings.HISTORY_TURNS,
        )
        logger.debug("Prompt for document %s:\n%s", document_id, render_transcript(segments))

        answer = await self.llm.generate(segments, max_tokens=self.settings.LLM_MAX_TOKENS)

        saved = self._save_turn(document_id, user_id, message, asked_at, answer)
        logger.info(
            "Answered turn for document %s (context %d chars, %d history turns)",
            document_id, len(context_text), len(history),
        )
        return InsightResult(answer=answer, history_saved=saved)

    async def generate_insight(self, user_id: uuid.UUID, document_id: uuid.UUID, question: str) -> InsightResult:
        """Single-shot question answered without prior turns."""
        async with self.locks.hold(document_id, user_id):
            return await self._answer(user_id, document_id, question, INSIGHT_INSTRUCTIONS, with_history=False)

    async def chat(self, user_id: uuid.UUID, document_id: uuid.UUID, message: str) -> InsightResult:
        """Conversational turn grounded in the document and the recent transcript."""
        async with self.locks.hold(document_id, user_id):
            return await self._answer(user_id, document_id, message, CHAT_INSTRUCTIONS, with_history=True)

    def get_history(self, user_id: uuid.UUID, document_id: uuid.UUID) -> List[ChatTurn]:
        """Full transcript for (document, user), oldest first."""
        self._get_owned_document(user_id, document_id)
        return (
            self.db.query(ChatTurn)
            .filter(ChatTurn.document_id == document_id, ChatTurn.user_id == user_id)
            .order_by(ChatTurn.created_at)
            .all()
        )
