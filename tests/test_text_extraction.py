import pytest

from recruit_crm.services.cv_parser import extract_name
from recruit_crm.services.text_extraction import (
    DocumentParseError,
    UnsupportedFileTypeError,
    extract_text,
    resolve_mime_type,
)


def test_pdf_text_is_extracted_in_line_order(pdf_factory):
    data = pdf_factory(["John Smith", "john.smith@acme.com", "+32 470 12 34 56"])

    text = extract_text(data, "application/pdf")

    lines = [line.strip() for line in text.splitlines() if line.strip()]
    assert lines == ["John Smith", "john.smith@acme.com", "+32 470 12 34 56"]


def test_corrupt_pdf_raises_parse_error():
    with pytest.raises(DocumentParseError):
        extract_text(b"this is not a pdf", "application/pdf")


def test_truncated_pdf_raises_parse_error(pdf_factory):
    data = pdf_factory(["Jane Doe"])
    with pytest.raises(DocumentParseError):
        extract_text(data[:40], "application/pdf")


def test_word_extraction_strips_binary_noise():
    data = b"\xd0\xcf\x11\xe0Jane\x00\x00 Doe\r\n\tjane@acme.io\x01\x02"

    text = extract_text(data, "application/msword")

    assert text == "Jane Doe jane@acme.io"


def test_docx_uses_same_best_effort_path():
    text = extract_text(
        b"PK\x03\x04Marie Curie",
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    )
    assert "Marie Curie" in text


def test_plain_text_is_returned_as_is():
    assert extract_text("Zoë Smith\nline two\n".encode("utf-8"), "text/plain") == "Zoë Smith\nline two\n"


def test_plain_text_byte_order_mark_is_dropped():
    data = b"\xef\xbb\xbf" + "John Smith\njohn@acme.io".encode("utf-8")

    text = extract_text(data, "text/plain")

    assert text == "John Smith\njohn@acme.io"
    assert extract_name(text) == "John Smith"


def test_unsupported_type_fails_explicitly():
    with pytest.raises(UnsupportedFileTypeError, match="image/png"):
        extract_text(b"\x89PNG", "image/png")


def test_missing_type_fails_explicitly():
    with pytest.raises(UnsupportedFileTypeError):
        extract_text(b"hello", None)


@pytest.mark.parametrize(
    "declared,filename,expected",
    [
        ("application/pdf", "cv.txt", "application/pdf"),
        ("text/plain; charset=utf-8", "cv.txt", "text/plain"),
        ("application/octet-stream", "cv.PDF", "application/pdf"),
        (None, "cv.docx", "application/vnd.openxmlformats-officedocument.wordprocessingml.document"),
        (None, "cv", None),
        ("application/octet-stream", "cv.exe", "application/octet-stream"),
    ],
)
def test_resolve_mime_type(declared, filename, expected):
    assert resolve_mime_type(declared, filename) == expected
