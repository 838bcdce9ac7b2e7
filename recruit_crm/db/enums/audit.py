"""Audit and compliance enums."""

from enum import Enum


class AuditEventType(str, Enum):
    """
    Audit events emitted by the import and merge engines.

    Groups:
    - IMPORT_*: CV import batch lifecycle
    - CANDIDATES_*: Candidate consolidation
    """

    IMPORT_BATCH_CREATED = "import_batch_created"
    IMPORT_BATCH_COMPLETED = "import_batch_completed"
    IMPORT_BATCH_FAILED = "import_batch_failed"
    IMPORT_BATCH_DELETED = "import_batch_deleted"

    CANDIDATES_MERGED = "candidates_merged"
