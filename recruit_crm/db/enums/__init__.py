"""Enum definitions for application constants."""

from recruit_crm.db.enums.audit import AuditEventType
from recruit_crm.db.enums.auth import Role
from recruit_crm.db.enums.candidates import CandidateSource, DuplicateType
from recruit_crm.db.enums.imports import (
    ImportBatchStatus,
    ImportItemStatus,
    TERMINAL_BATCH_STATUSES,
)
from recruit_crm.db.enums.permissions import (
    ROLES_CAN_DELETE_IMPORTS,
    ROLES_CAN_IMPORT,
    ROLES_CAN_MERGE,
    ROLES_CAN_VIEW_IMPORTS,
)

__all__ = [
    "AuditEventType",
    "CandidateSource",
    "DuplicateType",
    "ImportBatchStatus",
    "ImportItemStatus",
    "Role",
    "ROLES_CAN_DELETE_IMPORTS",
    "ROLES_CAN_IMPORT",
    "ROLES_CAN_MERGE",
    "ROLES_CAN_VIEW_IMPORTS",
    "TERMINAL_BATCH_STATUSES",
]
