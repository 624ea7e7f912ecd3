"""Document ingestion and ownership-scoped document access."""
import logging
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import List, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.errors import AppError, NotFoundError, UpstreamError, ValidationError
from app.models.chunk import Chunk
from app.models.document import Document
from app.services.storage import LocalFileStorage
from app.utils.file_processor import TextExtractor
from app.utils.text_chunker import TextChunker

logger = logging.getLogger(__name__)


@dataclass
class IngestResult:
    document: Document
    chunk_count: int
    low_confidence: bool


class DocumentService:
    """Upload, extract, chunk and persist documents for one user at a time."""

    def __init__(
        self,
        db: Session,
        storage: LocalFileStorage,
        extractor: TextExtractor,
        chunk_size: int = TextChunker.DEFAULT_CHUNK_SIZE,
        max_upload_bytes: int = 10 * 1024 * 1024,
    ):
        self.db = db
        self.storage = storage
        self.extractor = extractor
        self.chunk_size = chunk_size
        self.max_upload_bytes = max_upload_bytes

    async def ingest(self, user_id: uuid.UUID, filename: str, data: bytes) -> IngestResult:
        """
        Store an uploaded file, extract its text and persist it as chunks.

        The document row and all of its chunks are committed in one
        transaction. On any failure after the file was stored, the stored
        object is removed again and the error propagates.

        Raises:
            ValidationError: Missing, oversized or unsupported file
            ExtractionError: No text could be extracted from a PDF
            UpstreamError: Storage write failed
        """
        if not filename:
            raise ValidationError("Error retrieving the file")
        if not TextExtractor.is_supported(filename):
            raise ValidationError(f"Unsupported file format: {Path(filename).suffix or filename}. Supported: PDF, TXT")
        if len(data) > self.max_upload_bytes:
            raise ValidationError(f"File exceeds the {self.max_upload_bytes} byte upload limit")

        extension = Path(filename).suffix.lower()
        try:
            locator = await self.storage.put(data, extension)
        except OSError as e:
            logger.error("Storage upload error for %s: %s", filename, e)
            raise UpstreamError("Failed to upload document to storage") from e

        try:
            extracted = await self.extractor.extract_text(data, extension)
            pieces = TextChunker.chunk_text(extracted.text, self.chunk_size)

            document = Document(user_id=user_id, filename=filename, storage_path=locator)
            document.chunks = [
                Chunk(chunk_index=index, content=content) for index, content in enumerate(pieces)
            ]
            self.db.add(document)
            self.db.commit()
            self.db.refresh(document)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("Database error (saving document %s): %s", filename, e)
            await self._discard(locator)
            raise AppError("Error saving document to database") from e
        except BaseException:
            self.db.rollback()
            await self._discard(locator)
            raise

        if extracted.low_confidence:
            logger.warning(
                "Extracted text may be garbled",
                extra={"document_id": str(document.id), "filename": filename, "strategy": extracted.strategy},
            )
        logger.info(
            "Ingested document %s (%s): %d chunks via %s",
            document.id, filename, len(pieces), extracted.strategy,
        )
        return IngestResult(document=document, chunk_count=len(pieces), low_confidence=extracted.low_confidence)

    async def _discard(self, locator: str) -> None:
        try:
            await self.storage.delete(locator)
        except OSError as e:
            logger.warning("Failed to remove stored object %s: %s", locator, e)

    def list_documents(self, user_id: uuid.UUID) -> List[Document]:
        return (
            self.db.query(Document)
            .filter(Document.user_id == user_id)
            .order_by(Document.uploaded_at.desc())
            .all()
        )

    def get_document(self, user_id: uuid.UUID, document_id: uuid.UUID) -> Document:
        document = self.db.query(Document).filter(
            Document.id == document_id,
            Document.user_id == user_id
        ).first()
        if not document:
            raise NotFoundError("Document not found")
        return document

    def count_chunks(self, document_id: uuid.UUID) -> int:
        return self.db.query(Chunk).filter(Chunk.document_id == document_id).count()

    async def read_document(self, user_id: uuid.UUID, document_id: uuid.UUID) -> Tuple[Document, bytes]:
        document = self.get_document(user_id, document_id)
        data = await self.storage.get(document.storage_path)
        return document, data

    async def delete_document(self, user_id: uuid.UUID, document_id: uuid.UUID) -> None:
        """Delete the stored file and the document row (cascading to chunks and chat)."""
        document = self.get_document(user_id, document_id)

        try:
            await self.storage.delete(document.storage_path)
        except OSError as e:
            # the row is removed even when the blob could not be
            logger.warning("Storage delete error for document %s: %s", document.id, e)

        self.db.delete(document)
        self.db.commit()
