"""Uploaded document text extraction: PDF via pypdf, plus plain text files."""

import asyncio
import logging
from io import BytesIO
from pathlib import Path, PurePath

from pypdf import PasswordType, PdfReader
from pypdf.errors import DependencyError, FileNotDecryptedError, PdfReadError, PyPdfError

from study_ingest.errors import (
    CorruptFileError,
    FileTooLargeError,
    FileUnreadableError,
    NoExtractableTextError,
    ProtectedContentError,
)

logger = logging.getLogger(__name__)

MAX_FILE_SIZE_BYTES = 20 * 1024 * 1024  # 20MB
PDF_MAGIC = b"%PDF-"
TEXT_EXTENSIONS = frozenset({".txt", ".text", ".md", ".markdown"})
PARAGRAPH_SEPARATOR = "\n\n"

# Structural damage surfaces from pypdf as its own errors or as plain lookup/value errors
_PDF_STRUCTURE_ERRORS = (PdfReadError, PyPdfError, ValueError, KeyError, IndexError, TypeError)


def extract_pdf_text(data: bytes) -> str:
    """Extract text from PDF bytes, page by page, joined by blank lines.

    The ``%PDF-`` header is checked before pypdf sees the bytes, so anything
    that does not look like a PDF is rejected without a parse attempt.

    Raises:
        CorruptFileError: Missing header or unparseable structure.
        ProtectedContentError: Encrypted and not openable with an empty password.
        NoExtractableTextError: Parsed, but no page produced text (scanned/image PDF).
    """
    if not data.startswith(PDF_MAGIC):
        raise CorruptFileError("Invalid PDF format: missing %PDF- header")

    try:
        reader = PdfReader(BytesIO(data))
    except _PDF_STRUCTURE_ERRORS as exc:
        raise CorruptFileError(f"PDF is corrupted or uses unsupported features: {exc}") from exc

    if reader.is_encrypted:
        try:
            unlocked = reader.decrypt("") != PasswordType.NOT_DECRYPTED
        except (DependencyError, NotImplementedError, PdfReadError) as exc:
            raise ProtectedContentError(f"PDF is encrypted: {exc}") from exc
        if not unlocked:
            raise ProtectedContentError("PDF is password protected")

    pages_text = []
    try:
        for page in reader.pages:
            page_text = page.extract_text()
            if page_text and page_text.strip():
                pages_text.append(page_text.strip())
    except FileNotDecryptedError as exc:
        raise ProtectedContentError("PDF is password protected") from exc
    except _PDF_STRUCTURE_ERRORS as exc:
        raise CorruptFileError(f"PDF page could not be parsed: {exc}") from exc

    text = PARAGRAPH_SEPARATOR.join(pages_text)
    if not text:
        raise NoExtractableTextError(
            "PDF contains no extractable text (might be scanned/image-based)"
        )
    return text


def extract_plain_text(data: bytes) -> str:
    """Decode a UTF-8 text document, normalizing line endings.

    Raises:
        CorruptFileError: Binary content or not valid UTF-8.
        NoExtractableTextError: Only whitespace.
    """
    if b"\x00" in data:
        raise CorruptFileError("Text document contains binary data")
    try:
        text = data.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise CorruptFileError(f"Text document is not valid UTF-8: {exc.reason}") from exc

    text = text.replace("\r\n", "\n").replace("\r", "\n").strip()
    if not text:
        raise NoExtractableTextError("Text document is empty")
    return text


class FileAdapter:
    """Extracts text from uploaded documents stored on the local filesystem.

    The format is chosen by file extension: known text extensions are decoded
    as UTF-8, everything else must be a PDF. Reading and parsing are blocking
    and run in worker threads.
    """

    def __init__(self, max_bytes: int = MAX_FILE_SIZE_BYTES):
        self.max_bytes = max_bytes

    async def extract(self, locator: str) -> str:
        data = await asyncio.to_thread(self._read, locator)
        text = await self.extract_bytes(data, filename=locator)
        logger.info("File extracted", extra={"path": locator, "length": len(text)})
        return text

    async def extract_bytes(self, data: bytes, filename: str = "") -> str:
        """Extract text from raw document bytes."""
        if PurePath(filename).suffix.lower() in TEXT_EXTENSIONS:
            return extract_plain_text(data)
        return await asyncio.to_thread(extract_pdf_text, data)

    def _read(self, locator: str) -> bytes:
        path = Path(locator)
        try:
            size = path.stat().st_size
            if size > self.max_bytes:
                raise FileTooLargeError(
                    f"File too large: {size} bytes (limit: {self.max_bytes})"
                )
            return path.read_bytes()
        except OSError as exc:
            raise FileUnreadableError(f"Cannot read file {locator}: {exc.strerror or exc}") from exc
