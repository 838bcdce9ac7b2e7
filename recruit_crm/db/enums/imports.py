"""CV import enums."""

from enum import Enum


class ImportBatchStatus(str, Enum):
    """
    Lifecycle of an upload batch.

    PENDING accepts uploads; PROCESSING walks the queued items;
    COMPLETED and FAILED are terminal.
    """

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class ImportItemStatus(str, Enum):
    """Per-file status. Advances QUEUED -> PROCESSING -> SUCCEEDED | FAILED."""

    QUEUED = "queued"
    PROCESSING = "processing"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


TERMINAL_BATCH_STATUSES = {ImportBatchStatus.COMPLETED, ImportBatchStatus.FAILED}
