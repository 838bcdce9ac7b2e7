"""SQLAlchemy ORM models."""

from __future__ import annotations

from typing import TYPE_CHECKING

import uuid
from datetime import datetime

from sqlalchemy import ForeignKey, Index, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from recruit_crm.db.base import Base, utcnow
from recruit_crm.db.enums import ImportBatchStatus, ImportItemStatus

if TYPE_CHECKING:
    from recruit_crm.db.models import Candidate, Pipeline


class ImportBatch(Base):
    """
    One CV upload session.

    Counters: processed_count = success_count + failed_count once processing
    starts, and processed_count <= total_files. Items are deleted with the
    batch; candidates created from them are not.
    """

    __tablename__ = "import_batches"
    __table_args__ = (
        Index("idx_import_batches_pipeline_created", "pipeline_id", "created_at"),
        Index("idx_import_batches_status", "status"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    pipeline_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("pipelines.id", ondelete="CASCADE"), nullable=False
    )
    created_by_user_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )

    status: Mapped[str] = mapped_column(
        String(20), default=ImportBatchStatus.PENDING.value, nullable=False
    )
    default_country_code: Mapped[str] = mapped_column(String(2), default="BE", nullable=False)

    # Progress counters (monotonic while processing)
    total_files: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    processed_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    success_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    failed_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)
    completed_at: Mapped[datetime | None] = mapped_column(nullable=True)

    # Relationships
    pipeline: Mapped["Pipeline"] = relationship()
    items: Mapped[list["ImportItem"]] = relationship(
        back_populates="batch",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by=lambda: [ImportItem.position, ImportItem.created_at, ImportItem.id],
    )


class ImportItem(Base):
    """One uploaded file within a batch."""

    __tablename__ = "import_items"
    __table_args__ = (Index("idx_import_items_batch_status", "batch_id", "status"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    batch_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("import_batches.id", ondelete="CASCADE"), nullable=False
    )
    candidate_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("candidates.id", ondelete="SET NULL"), nullable=True
    )

    filename: Mapped[str] = mapped_column(String(255), nullable=False)
    storage_key: Mapped[str] = mapped_column(String(512), nullable=False)
    content_type: Mapped[str | None] = mapped_column(String(100), nullable=True)
    file_size: Mapped[int | None] = mapped_column(Integer, nullable=True)
    # Upload order within the batch; processing follows it
    position: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    status: Mapped[str] = mapped_column(
        String(20), default=ImportItemStatus.QUEUED.value, nullable=False
    )
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)
    processed_at: Mapped[datetime | None] = mapped_column(nullable=True)

    # Relationships
    batch: Mapped["ImportBatch"] = relationship(back_populates="items")
    candidate: Mapped["Candidate | None"] = relationship()
