"""SQLAlchemy ORM models."""

from __future__ import annotations

from typing import TYPE_CHECKING

import uuid
from datetime import datetime

from sqlalchemy import (
    Boolean,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    and_,
)
from sqlalchemy.ext.hybrid import hybrid_property
from sqlalchemy.orm import Mapped, mapped_column, relationship

from recruit_crm.db.base import Base, utcnow
from recruit_crm.db.enums import CandidateSource

if TYPE_CHECKING:
    from recruit_crm.db.models import Attachment, EmailLog, Pipeline, PipelineStage


class Candidate(Base):
    """
    A person moving through a pipeline.

    Merged-away candidates are tombstoned with merged_into_id and kept for
    history; soft-deleted candidates carry deleted_at. Neither shows up in
    active listings (see Candidate.is_active).
    """

    __tablename__ = "candidates"
    __table_args__ = (
        Index("idx_candidates_pipeline_stage", "pipeline_id", "stage_id"),
        Index("idx_candidates_email", "email"),
        Index("idx_candidates_phone", "phone_e164"),
        Index("idx_candidates_merged_into", "merged_into_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    pipeline_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("pipelines.id", ondelete="CASCADE"), nullable=False
    )
    stage_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("pipeline_stages.id", ondelete="RESTRICT"), nullable=False
    )
    assigned_to_user_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )

    full_name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    phone_e164: Mapped[str | None] = mapped_column(String(32), nullable=True)
    source: Mapped[str | None] = mapped_column(
        String(20), default=CandidateSource.MANUAL.value, nullable=True
    )

    # Last CV parse (truncated raw text + 0-100 heuristic score)
    extracted_text: Mapped[str | None] = mapped_column(Text, nullable=True)
    parsing_confidence: Mapped[int | None] = mapped_column(Integer, nullable=True)

    is_rejected: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # Tombstones
    deleted_at: Mapped[datetime | None] = mapped_column(nullable=True)
    merged_into_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("candidates.id", ondelete="SET NULL"), nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        default=utcnow, onupdate=utcnow, nullable=False
    )

    # Relationships
    pipeline: Mapped["Pipeline"] = relationship()
    stage: Mapped["PipelineStage"] = relationship()
    notes: Mapped[list["Note"]] = relationship(
        back_populates="candidate", order_by="Note.created_at"
    )
    attachments: Mapped[list["Attachment"]] = relationship(back_populates="candidate")
    email_logs: Mapped[list["EmailLog"]] = relationship(back_populates="candidate")
    stage_history: Mapped[list["CandidateStageHistory"]] = relationship(
        back_populates="candidate", order_by="CandidateStageHistory.moved_at"
    )
    tag_links: Mapped[list["CandidateTag"]] = relationship(back_populates="candidate")

    @hybrid_property
    def is_active(self) -> bool:
        return self.deleted_at is None and self.merged_into_id is None

    @is_active.inplace.expression
    @classmethod
    def _is_active_expression(cls):
        return and_(cls.deleted_at.is_(None), cls.merged_into_id.is_(None))


class CandidateStageHistory(Base):
    """Stage transitions. from_stage_id is NULL for the entry stage."""

    __tablename__ = "candidate_stage_history"
    __table_args__ = (Index("idx_stage_history_candidate", "candidate_id", "moved_at"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    candidate_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("candidates.id", ondelete="CASCADE"), nullable=False
    )
    from_stage_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("pipeline_stages.id", ondelete="SET NULL"), nullable=True
    )
    to_stage_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("pipeline_stages.id", ondelete="CASCADE"), nullable=False
    )
    moved_by_user_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    moved_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)

    candidate: Mapped["Candidate"] = relationship(back_populates="stage_history")


class Tag(Base):
    __tablename__ = "tags"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    color: Mapped[str] = mapped_column(String(7), default="#6B7280", nullable=False)
    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)


class CandidateTag(Base):
    """Tag assignment, unique per (candidate, tag)."""

    __tablename__ = "candidate_tags"
    __table_args__ = (
        UniqueConstraint("candidate_id", "tag_id", name="uq_candidate_tag"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    candidate_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("candidates.id", ondelete="CASCADE"), nullable=False
    )
    tag_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("tags.id", ondelete="CASCADE"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)

    candidate: Mapped["Candidate"] = relationship(back_populates="tag_links")
    tag: Mapped["Tag"] = relationship()


class Note(Base):
    __tablename__ = "notes"
    __table_args__ = (Index("idx_notes_candidate", "candidate_id", "created_at"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    candidate_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("candidates.id", ondelete="CASCADE"), nullable=False
    )
    author_user_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    body: Mapped[str] = mapped_column(Text, nullable=False)

    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        default=utcnow, onupdate=utcnow, nullable=False
    )

    candidate: Mapped["Candidate"] = relationship(back_populates="notes")


class MergeLog(Base):
    """
    One row per (target, source) pair of a merge call. Append-only.
    """

    __tablename__ = "merge_logs"
    __table_args__ = (
        Index("idx_merge_logs_target", "target_candidate_id"),
        Index("idx_merge_logs_source", "source_candidate_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    target_candidate_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("candidates.id", ondelete="CASCADE"), nullable=False
    )
    source_candidate_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("candidates.id", ondelete="CASCADE"), nullable=False
    )
    merged_by_user_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)
