"""Tests for uploaded file extraction (mocked pypdf, real temp files)."""

from unittest.mock import MagicMock, patch

import pytest
from pypdf.errors import PdfReadError

from study_ingest.errors import (
    CorruptFileError,
    FileTooLargeError,
    FileUnreadableError,
    NoExtractableTextError,
    ProtectedContentError,
)
from study_ingest.extraction.file import FileAdapter, extract_pdf_text, extract_plain_text


def _mock_reader(*page_texts, encrypted=False):
    pages = []
    for text in page_texts:
        page = MagicMock()
        page.extract_text.return_value = text
        pages.append(page)
    reader = MagicMock()
    reader.pages = pages
    reader.is_encrypted = encrypted
    return reader


# --- PDF parsing (sync) ---


def test_pdf_pages_joined_with_blank_line():
    reader = _mock_reader("  Page one.  ", "Page two.")
    with patch("study_ingest.extraction.file.PdfReader", return_value=reader):
        text = extract_pdf_text(b"%PDF-1.7 fake body")

    assert text == "Page one.\n\nPage two."


def test_pdf_skips_blank_pages():
    reader = _mock_reader("Intro", "   ", None, "Outro")
    with patch("study_ingest.extraction.file.PdfReader", return_value=reader):
        assert extract_pdf_text(b"%PDF-1.4") == "Intro\n\nOutro"


def test_pdf_bad_header_rejected_without_parsing():
    with patch("study_ingest.extraction.file.PdfReader") as mock_reader:
        with pytest.raises(CorruptFileError, match="Invalid PDF format"):
            extract_pdf_text(b"PK\x03\x04 this is a zip")
    mock_reader.assert_not_called()


def test_pdf_unparseable_structure():
    with patch(
        "study_ingest.extraction.file.PdfReader", side_effect=PdfReadError("EOF marker not found")
    ):
        with pytest.raises(CorruptFileError, match="corrupted"):
            extract_pdf_text(b"%PDF-1.7 truncated")


def test_pdf_without_text_is_no_extractable_text():
    reader = _mock_reader("", "  ")
    with patch("study_ingest.extraction.file.PdfReader", return_value=reader):
        with pytest.raises(NoExtractableTextError, match="scanned"):
            extract_pdf_text(b"%PDF-1.7")


def test_pdf_password_protected():
    reader = _mock_reader("secret", encrypted=True)
    reader.decrypt.return_value = 0  # PasswordType.NOT_DECRYPTED
    with patch("study_ingest.extraction.file.PdfReader", return_value=reader):
        with pytest.raises(ProtectedContentError):
            extract_pdf_text(b"%PDF-1.7")


def test_pdf_encrypted_with_empty_password_is_readable():
    reader = _mock_reader("Owner-restricted but readable", encrypted=True)
    reader.decrypt.return_value = 1  # PasswordType.USER_PASSWORD
    with patch("study_ingest.extraction.file.PdfReader", return_value=reader):
        assert extract_pdf_text(b"%PDF-1.7") == "Owner-restricted but readable"


def test_pdf_errors_are_permanent():
    for error in (CorruptFileError(), ProtectedContentError(), NoExtractableTextError()):
        assert error.retryable is False


# --- Plain text (sync) ---


def test_plain_text_normalizes_newlines_and_bom():
    data = "\ufeffLine one\r\nLine two\rLine three\n".encode("utf-8")
    assert extract_plain_text(data) == "Line one\nLine two\nLine three"


def test_plain_text_rejects_binary():
    with pytest.raises(CorruptFileError, match="binary"):
        extract_plain_text(b"abc\x00def")


def test_plain_text_rejects_invalid_utf8():
    with pytest.raises(CorruptFileError, match="UTF-8"):
        extract_plain_text(b"\xff\xfe\xfa")


def test_plain_text_empty():
    with pytest.raises(NoExtractableTextError):
        extract_plain_text(b"  \n\t ")


# --- FileAdapter (async, real files) ---


@pytest.mark.asyncio
async def test_adapter_reads_markdown_file(tmp_path):
    path = tmp_path / "notes.md"
    path.write_text("# Krebs cycle\n\nProduces NADH.", encoding="utf-8")

    text = await FileAdapter().extract(str(path))

    assert text == "# Krebs cycle\n\nProduces NADH."


@pytest.mark.asyncio
async def test_adapter_parses_other_extensions_as_pdf(tmp_path):
    path = tmp_path / "lecture.pdf"
    path.write_bytes(b"%PDF-1.7 fake")
    reader = _mock_reader("Lecture 1")

    with patch("study_ingest.extraction.file.PdfReader", return_value=reader):
        text = await FileAdapter().extract(str(path))

    assert text == "Lecture 1"


@pytest.mark.asyncio
async def test_adapter_rejects_oversized_file(tmp_path):
    path = tmp_path / "big.pdf"
    path.write_bytes(b"%PDF-" + b"0" * 100)

    with pytest.raises(FileTooLargeError, match="limit: 50"):
        await FileAdapter(max_bytes=50).extract(str(path))


@pytest.mark.asyncio
async def test_adapter_missing_file(tmp_path):
    with pytest.raises(FileUnreadableError):
        await FileAdapter().extract(str(tmp_path / "missing.pdf"))


@pytest.mark.asyncio
async def test_extract_bytes_dispatches_on_filename():
    adapter = FileAdapter()
    assert await adapter.extract_bytes(b"plain words", filename="a.TXT") == "plain words"
    with pytest.raises(CorruptFileError):
        await adapter.extract_bytes(b"plain words", filename="a.pdf")
