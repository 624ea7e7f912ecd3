"""File processing utilities for extracting text from uploaded documents."""
import asyncio
import io
import logging
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Awaitable, Callable, List, Optional, Sequence

import httpx
import pypdf

from app.core.config import Settings
from app.core.errors import ExtractionError

logger = logging.getLogger(__name__)

PdfStrategy = Callable[[bytes], Awaitable[str]]


@dataclass
class ExtractionResult:
    text: str
    low_confidence: bool
    strategy: str


class OCRSpaceStrategy:
    """Send the PDF to the OCR.space parse endpoint."""

    name = "ocr_space"

    def __init__(self, client: httpx.AsyncClient, api_key: str, url: str, timeout: float = 60.0):
        self.client = client
        self.api_key = api_key
        self.url = url
        self.timeout = timeout

    async def __call__(self, data: bytes) -> str:
        response = await self.client.post(
            self.url,
            headers={"apikey": self.api_key},
            data={"language": "eng", "isOverlayRequired": "false", "OCREngine": "2"},
            files={"file": ("document.pdf", data, "application/pdf")},
            timeout=self.timeout,
        )
        response.raise_for_status()
        result = response.json()

        if result.get("IsErroredOnProcessing"):
            raise ExtractionError(f"OCR.space error: {result.get('ErrorMessage')}")
        parsed = result.get("ParsedResults") or []
        if not parsed:
            raise ExtractionError("OCR.space returned no results")

        # one result per page
        return "\n".join(page.get("ParsedText") or "" for page in parsed).strip()


class PdfToTextStrategy:
    """Run poppler's ``pdftotext`` over a temporary copy of the file."""

    name = "pdftotext"

    def __init__(self, executable: str = "pdftotext"):
        self.executable = executable

    async def __call__(self, data: bytes) -> str:
        fd, pdf_path = tempfile.mkstemp(suffix=".pdf")
        try:
            with os.fdopen(fd, "wb") as tmp:
                tmp.write(data)

            process = await asyncio.create_subprocess_exec(
                self.executable, "-q", pdf_path, "-",
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
            stdout, stderr = await process.communicate()
        finally:
            os.remove(pdf_path)

        if process.returncode != 0:
            raise ExtractionError(
                f"pdftotext exited with {process.returncode}: {stderr.decode('utf-8', 'replace').strip()}"
            )
        return stdout.decode("utf-8", "replace")


class PdfLayoutStrategy:
    """Parse the PDF structure with pypdf and read each page's text layer."""

    name = "pypdf"

    def __init__(self, min_length: int = 20):
        self.min_length = min_length

    def _read_pages(self, data: bytes) -> List[str]:
        reader = pypdf.PdfReader(io.BytesIO(data))
        return [page.extract_text() or "" for page in reader.pages]

    async def __call__(self, data: bytes) -> str:
        pages = await asyncio.to_thread(self._read_pages, data)
        text = "".join(page_text + "\n" for page_text in pages)

        # near-empty output is almost always a scanned PDF without a text layer
        if len(text) <= self.min_length:
            raise ExtractionError(f"Parsed PDF text too short ({len(text)} characters)")
        return text


class TextExtractor:
    """Extract text content from uploaded PDF and plain-text files."""

    SUPPORTED_EXTENSIONS = {'.pdf', '.txt'}

    def __init__(self, pdf_strategies: Sequence[PdfStrategy]):
        self.pdf_strategies = list(pdf_strategies)

    @classmethod
    def from_settings(cls, settings: Settings, http_client: Optional[httpx.AsyncClient] = None) -> "TextExtractor":
        """Build the PDF fallback chain from configuration.

        Order: OCR.space (if a key is configured), pdftotext (if a path is
        configured), then the pypdf structural parse.
        """
        strategies: List[PdfStrategy] = []
        if settings.OCR_SPACE_API_KEY and http_client is not None:
            strategies.append(OCRSpaceStrategy(
                http_client,
                api_key=settings.OCR_SPACE_API_KEY,
                url=settings.OCR_SPACE_URL,
                timeout=settings.OCR_TIMEOUT_SECONDS,
            ))
        if settings.PDFTOTEXT_PATH:
            strategies.append(PdfToTextStrategy(settings.PDFTOTEXT_PATH))
        strategies.append(PdfLayoutStrategy(min_length=settings.MIN_PDF_TEXT_LENGTH))
        return cls(strategies)

    async def extract_text(self, data: bytes, extension: str) -> ExtractionResult:
        """
        Extract text from raw file bytes.

        Args:
            data: Uploaded file content
            extension: File extension including the dot, e.g. ``.pdf``

        Returns:
            ExtractionResult with NUL-free text and the garbled-text flag

        Raises:
            ExtractionError: If no PDF strategy produced usable text
            ValueError: If the extension is not supported
        """
        extension = extension.lower()
        if extension not in self.SUPPORTED_EXTENSIONS:
            raise ValueError(f"Unsupported file format: {extension}")

        if extension == '.pdf':
            text, strategy = await self._extract_from_pdf(data)
        else:
            text, strategy = self._decode_text(data), "text"

        text = text.replace("\x00", "")
        return ExtractionResult(text=text, low_confidence=self.is_garbled(text), strategy=strategy)

    async def _extract_from_pdf(self, data: bytes):
        for strategy in self.pdf_strategies:
            name = getattr(strategy, "name", strategy.__class__.__name__)
            try:
                text = await strategy(data)
            except Exception as e:
                logger.warning("PDF extraction strategy %s failed: %s", name, e)
                continue

            if text:
                logger.info("PDF text extracted with %s (%d characters)", name, len(text))
                return text, name
            logger.warning("PDF extraction strategy %s produced no text", name)

        raise ExtractionError("Failed to extract text from PDF", kind=ExtractionError.NO_TEXT_FOUND)

    @staticmethod
    def _decode_text(data: bytes) -> str:
        """Decode plain text, falling back to latin-1 for non UTF-8 input."""
        try:
            return data.decode("utf-8")
        except UnicodeDecodeError:
            return data.decode("latin-1")

    @staticmethod
    def is_garbled(text: str) -> bool:
        """True when fewer than half of the characters are printable ASCII."""
        if not text:
            return False
        printable = sum(1 for ch in text if 32 <= ord(ch) <= 126)
        return printable < len(text) / 2

    @staticmethod
    def is_supported(filename: str) -> bool:
        """Check if a file format is supported."""
        extension = Path(filename).suffix.lower()
        return extension in TextExtractor.SUPPORTED_EXTENSIONS
