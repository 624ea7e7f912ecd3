"""Insight and chat routes."""
import logging
import uuid
from typing import List

from fastapi import APIRouter, Depends, Request, Response
from pydantic import BaseModel
from sqlalchemy.orm import Session

from app.core.security import get_current_user
from app.db.sessions import get_db
from app.models.chat_turn import ROLE_ASSISTANT
from app.models.user import User
from app.services.insight_engine import InsightEngine
from app.utils.cancellation import ClientDisconnected, run_until_disconnected


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/documents", tags=["Insights"])

# nginx's "client closed request"; nobody is left to read it
CLIENT_CLOSED_REQUEST = 499


class InsightRequest(BaseModel):
    question: str


class ChatRequest(BaseModel):
    message: str


class AnswerResponse(BaseModel):
    response: str


class ChatHistoryItem(BaseModel):
    id: str
    type: str  # user / ai
    content: str
    timestamp: str


def get_insight_engine(request: Request, db: Session = Depends(get_db)) -> InsightEngine:
    state = request.app.state
    return InsightEngine(db, llm=state.llm, settings=state.settings, locks=state.turn_locks)


@router.post("/{document_id}/insights", response_model=AnswerResponse)
async def generate_insight(
    document_id: uuid.UUID,
    body: InsightRequest,
    request: Request,
    current_user: User = Depends(get_current_user),
    engine: InsightEngine = Depends(get_insight_engine),
):
    """Answer a single question about a document."""
    try:
        result = await run_until_disconnected(
            request, engine.generate_insight(current_user.id, document_id, body.question)
        )
    except ClientDisconnected:
        logger.info("Client disconnected during insight for document %s", document_id)
        return Response(status_code=CLIENT_CLOSED_REQUEST)
    return AnswerResponse(response=result.answer)


@router.post("/{document_id}/chat", response_model=AnswerResponse)
async def chat_with_document(
    document_id: uuid.UUID,
    body: ChatRequest,
    request: Request,
    current_user: User = Depends(get_current_user),
    engine: InsightEngine = Depends(get_insight_engine),
):
    """Conversational turn over a document, using the recent chat history."""
    try:
        result = await run_until_disconnected(
            request, engine.chat(current_user.id, document_id, body.message)
        )
    except ClientDisconnected:
        logger.info("Client disconnected during chat for document %s", document_id)
        return Response(status_code=CLIENT_CLOSED_REQUEST)
    return AnswerResponse(response=result.answer)


@router.get("/{document_id}/chat/history", response_model=List[ChatHistoryItem])
def get_chat_history(
    document_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    engine: InsightEngine = Depends(get_insight_engine),
):
    """Full chat transcript for the current user and document, oldest first."""
    return [
        ChatHistoryItem(
            id=str(turn.id),
            type="ai" if turn.role == ROLE_ASSISTANT else "user",
            content=turn.content,
            timestamp=turn.created_at.isoformat(),
        )
        for turn in engine.get_history(current_user.id, document_id)
    ]
