"""Plain-text extraction from uploaded CV documents.

Dispatches on MIME type:
- PDF: pypdf, page by page, pages joined with newlines
- Word (.doc/.docx): best-effort printable-ASCII strip, not a real parser
- text/plain: UTF-8 decode, byte order mark dropped

Anything else raises UnsupportedFileTypeError; there is no empty-string fallback.
"""

import io
import logging
import re

from pypdf import PdfReader

from recruit_crm.core.constants import EXTENSION_MIME_TYPES

logger = logging.getLogger(__name__)

PDF_MIME_TYPE = "application/pdf"
WORD_MIME_TYPES = {
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
}
TEXT_MIME_TYPE = "text/plain"

_NON_PRINTABLE = re.compile(r"[^\x20-\x7E\n\r\t]")
_WHITESPACE_RUN = re.compile(r"\s+")


class ExtractionError(Exception):
    """Document content could not be turned into text."""

    pass


class UnsupportedFileTypeError(ExtractionError):
    def __init__(self, mime_type: str | None):
        super().__init__(f"Unsupported file type: {mime_type or 'unknown'}")
        self.mime_type = mime_type


class DocumentParseError(ExtractionError):
    """Corrupt, encrypted or otherwise unreadable document."""

    pass


def resolve_mime_type(mime_type: str | None, filename: str | None = None) -> str | None:
    """
    Normalize a declared content type, falling back to the file extension
    when the client sent nothing useful (e.g. application/octet-stream).
    """
    declared = (mime_type or "").split(";")[0].strip().lower()
    if declared and declared != "application/octet-stream":
        return declared
    if filename and "." in filename:
        ext = filename.rsplit(".", 1)[-1].lower()
        return EXTENSION_MIME_TYPES.get(ext, declared or None)
    return declared or None


def extract_text_from_pdf(data: bytes) -> str:
    if data.lstrip()[:5] != b"%PDF-":
        raise DocumentParseError("Failed to parse PDF: not a PDF document")
    try:
        reader = PdfReader(io.BytesIO(data))
        if reader.is_encrypted:
            raise DocumentParseError("Failed to parse PDF: document is encrypted")
        pages = [page.extract_text() or "" for page in reader.pages]
    except DocumentParseError:
        raise
    except Exception as exc:
        # pypdf raises a wide range of errors on malformed input
        logger.warning("PDF parse failed: %s", exc.__class__.__name__)
        raise DocumentParseError("Failed to parse PDF") from exc
    return "\n".join(pages).strip()


def extract_text_from_word(data: bytes) -> str:
    text = data.decode("utf-8", errors="replace")
    text = _NON_PRINTABLE.sub(" ", text)
    return _WHITESPACE_RUN.sub(" ", text).strip()


def extract_text_from_txt(data: bytes) -> str:
    # utf-8-sig drops a leading byte order mark
    return data.decode("utf-8-sig", errors="replace")


def extract_text(data: bytes, mime_type: str | None) -> str:
    """Extract plain text from file bytes according to its MIME type."""
    if mime_type == PDF_MIME_TYPE:
        return extract_text_from_pdf(data)
    if mime_type in WORD_MIME_TYPES:
        return extract_text_from_word(data)
    if mime_type == TEXT_MIME_TYPE:
        return extract_text_from_txt(data)
    raise UnsupportedFileTypeError(mime_type)
