"""Chat history model."""
import uuid
from datetime import datetime
from sqlalchemy import Column, String, DateTime, Text, ForeignKey, Index, Uuid
from sqlalchemy.orm import relationship
from app.db.base import Base


ROLE_USER = "user"
ROLE_ASSISTANT = "assistant"


class ChatTurn(Base):
    """One message in the (document, user) transcript. Append-only."""

    __tablename__ = "chat_history"
    __table_args__ = (Index("ix_chat_history_document_user", "document_id", "user_id", "created_at"),)

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    document_id = Column(Uuid, ForeignKey("documents.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    role = Column(String(20), nullable=False)  # user / assistant
    content = Column(Text, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    # Relationships
    document = relationship("Document", back_populates="chat_turns")
