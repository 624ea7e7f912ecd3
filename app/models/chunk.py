"""Chunk model."""
import uuid
from sqlalchemy import Column, Text, Integer, ForeignKey, UniqueConstraint, Uuid
from sqlalchemy.orm import relationship
from app.db.base import Base


class Chunk(Base):
    """Fixed-size slice of a document's extracted text.

    Ordered by ``chunk_index`` and concatenated, a document's chunks give back
    the extracted text exactly.
    """

    __tablename__ = "document_chunks"
    __table_args__ = (UniqueConstraint("document_id", "chunk_index", name="uq_chunk_document_index"),)

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    document_id = Column(Uuid, ForeignKey("documents.id", ondelete="CASCADE"), nullable=False, index=True)
    chunk_index = Column(Integer, nullable=False)
    content = Column(Text, nullable=False)

    # Relationships
    document = relationship("Document", back_populates="chunks")
