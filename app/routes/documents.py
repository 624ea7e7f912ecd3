"""Document routes."""
import uuid
from urllib.parse import quote
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Request, Response, UploadFile, status
from pydantic import BaseModel
from sqlalchemy.orm import Session

from app.core.errors import ValidationError
from app.core.security import get_current_user
from app.db.sessions import get_db
from app.models.document import Document
from app.models.user import User
from app.services.document_service import DocumentService


router = APIRouter(prefix="/documents", tags=["Documents"])


# Request/Response schemas
class DocumentResponse(BaseModel):
    id: str
    user_id: str
    filename: str
    storage_path: str
    uploaded_at: str
    download_url: str


class DocumentDetailResponse(DocumentResponse):
    chunk_count: int


class UploadResponse(DocumentDetailResponse):
    low_confidence: bool


def get_document_service(request: Request, db: Session = Depends(get_db)) -> DocumentService:
    state = request.app.state
    return DocumentService(
        db,
        storage=state.storage,
        extractor=state.extractor,
        chunk_size=state.settings.CHUNK_SIZE,
        max_upload_bytes=state.settings.MAX_UPLOAD_BYTES,
    )


def _content_disposition(filename: str) -> str:
    """Attachment header with an ASCII fallback name and the RFC 5987 UTF-8 name."""
    fallback = filename.encode("ascii", "replace").decode("ascii").replace('"', "_").replace("\\", "_")
    return f"attachment; filename=\"{fallback}\"; filename*=UTF-8''{quote(filename, safe='')}"


def _document_fields(document: Document) -> dict:
    return {
        "id": str(document.id),
        "user_id": str(document.user_id),
        "filename": document.filename,
        "storage_path": document.storage_path,
        "uploaded_at": document.uploaded_at.isoformat(),
        "download_url": f"/documents/{document.id}/download",
    }


@router.post("", response_model=UploadResponse, status_code=status.HTTP_201_CREATED)
async def upload_document(
    document: Optional[UploadFile] = File(None),
    current_user: User = Depends(get_current_user),
    service: DocumentService = Depends(get_document_service),
):
    """
    Upload a PDF or TXT document, extract its text and store it as chunks.

    Protected endpoint - requires JWT authentication.

    Raises:
        400: No file provided, unsupported format or file too large
        500: Text extraction or storage failed
    """
    if document is None or not document.filename:
        raise ValidationError("Error retrieving the file")

    # one byte past the limit is enough for ingest to reject the upload
    content = await document.read(service.max_upload_bytes + 1)
    result = await service.ingest(current_user.id, document.filename, content)

    return UploadResponse(
        **_document_fields(result.document),
        chunk_count=result.chunk_count,
        low_confidence=result.low_confidence,
    )


@router.get("", response_model=List[DocumentResponse])
def list_documents(
    current_user: User = Depends(get_current_user),
    service: DocumentService = Depends(get_document_service),
):
    """List the current user's documents, newest first."""
    return [
        DocumentResponse(**_document_fields(doc))
        for doc in service.list_documents(current_user.id)
    ]


@router.get("/{document_id}", response_model=DocumentDetailResponse)
def get_document(
    document_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    service: DocumentService = Depends(get_document_service),
):
    """
    Get a specific document by ID.

    Only returns documents owned by the current user.
    """
    document = service.get_document(current_user.id, document_id)
    return DocumentDetailResponse(
        **_document_fields(document),
        chunk_count=service.count_chunks(document.id),
    )


@router.get("/{document_id}/download")
async def download_document(
    document_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    service: DocumentService = Depends(get_document_service),
):
    """Download the original uploaded file (owner-only)."""
    document, data = await service.read_document(current_user.id, document_id)
    return Response(
        content=data,
        media_type="application/octet-stream",
        headers={"Content-Disposition": _content_disposition(document.filename)},
    )


@router.delete("/{document_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_document(
    document_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    service: DocumentService = Depends(get_document_service),
):
    """
    Delete a document.

    Cascades to its chunks and chat history.
    """
    await service.delete_document(current_user.id, document_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
