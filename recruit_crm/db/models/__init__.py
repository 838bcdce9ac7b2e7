"""SQLAlchemy ORM models."""

from recruit_crm.db.models.attachments import Attachment
from recruit_crm.db.models.audit import AuditLog
from recruit_crm.db.models.auth import User
from recruit_crm.db.models.candidates import (
    Candidate,
    CandidateStageHistory,
    CandidateTag,
    MergeLog,
    Note,
    Tag,
)
from recruit_crm.db.models.email import EmailLog
from recruit_crm.db.models.imports import ImportBatch, ImportItem
from recruit_crm.db.models.pipelines import Pipeline, PipelineStage

__all__ = [
    "Attachment",
    "AuditLog",
    "Candidate",
    "CandidateStageHistory",
    "CandidateTag",
    "EmailLog",
    "ImportBatch",
    "ImportItem",
    "MergeLog",
    "Note",
    "Pipeline",
    "PipelineStage",
    "Tag",
    "User",
]
