"""SQLAlchemy ORM models."""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import Boolean, ForeignKey, Index, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from recruit_crm.db.base import Base, utcnow


class Pipeline(Base):
    """
    Recruiting pipeline.

    Candidates live in exactly one pipeline and sit on one of its stages.
    """

    __tablename__ = "pipelines"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)

    # Relationships
    stages: Mapped[list["PipelineStage"]] = relationship(
        back_populates="pipeline",
        cascade="all, delete-orphan",
        order_by="PipelineStage.order_index",
    )


class PipelineStage(Base):
    """
    Individual pipeline stage.

    - order_index: position on the board, lowest first
    - is_default: stage new candidates land on (at most one per pipeline)
    """

    __tablename__ = "pipeline_stages"
    __table_args__ = (Index("idx_stage_pipeline_order", "pipeline_id", "order_index"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    pipeline_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("pipelines.id", ondelete="CASCADE"),
        nullable=False,
    )

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    color: Mapped[str] = mapped_column(String(7), default="#6B7280", nullable=False)  # hex #RRGGBB
    order_index: Mapped[int] = mapped_column(Integer, nullable=False)
    is_default: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)

    # Relationships
    pipeline: Mapped["Pipeline"] = relationship(back_populates="stages")
