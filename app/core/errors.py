"""Application error taxonomy.

Services raise these instead of ``HTTPException`` so they stay usable outside
a request. ``register_exception_handlers`` renders every ``AppError`` with the
same ``{"detail": ...}`` body FastAPI uses for ``HTTPException``.
"""
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse


class AppError(Exception):
    """Base class for errors that map onto an HTTP status code."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ValidationError(AppError):
    """Malformed request body, missing or unsupported file."""

    status_code = status.HTTP_400_BAD_REQUEST


class AuthError(AppError):
    """Missing or invalid credential, or user not registered."""

    status_code = status.HTTP_401_UNAUTHORIZED


class NotFoundError(AppError):
    """Document absent or not owned by the caller."""

    status_code = status.HTTP_404_NOT_FOUND


class ExtractionError(AppError):
    """No text could be extracted from an uploaded file."""

    NO_TEXT_FOUND = "NoTextFound"

    def __init__(self, message: str = "No text could be extracted from the document", kind: str = NO_TEXT_FOUND):
        super().__init__(message)
        self.kind = kind


class NoDocumentContent(AppError):
    """A document has no stored chunks. The raiser picks 404 or 500."""

    status_code = status.HTTP_404_NOT_FOUND


class UpstreamError(AppError):
    """Storage, OCR or LLM call failed."""

    def __init__(self, message: str, upstream_status: Optional[int] = None):
        if upstream_status is not None:
            message = f"{message} (upstream status {upstream_status})"
        super().__init__(message)
        self.upstream_status = upstream_status


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, AuthError) else None
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message}, headers=headers)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)
