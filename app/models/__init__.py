"""Database models."""
from app.models.user import User
from app.models.document import Document
from app.models.chunk import Chunk
from app.models.chat_turn import ChatTurn

__all__ = [
    "User",
    "Document",
    "Chunk",
    "ChatTurn",
]
