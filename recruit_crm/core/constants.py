"""Application constants."""

# Dialing prefixes used by phone normalization. Extend this table to support
# more countries; the normalization algorithm itself does not change.
COUNTRY_DIALING_CODES: dict[str, str] = {
    "BE": "+32",
    "NL": "+31",
    "FR": "+33",
    "DE": "+49",
    "UK": "+44",
    "GB": "+44",
    "US": "+1",
    "LU": "+352",
    "ES": "+34",
    "IT": "+39",
    "CH": "+41",
}
FALLBACK_COUNTRY_CODE = "BE"

# CV import upload allow-list (general attachments accept a broader list)
IMPORT_ALLOWED_MIME_TYPES = {
    "application/pdf",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "text/plain",
}

# Extension fallback when a client sends a generic or missing content type
EXTENSION_MIME_TYPES = {
    "pdf": "application/pdf",
    "doc": "application/msword",
    "docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "txt": "text/plain",
}

IMPORT_STORAGE_PREFIX = "imports"
IMPORT_BATCH_LIST_LIMIT = 50
