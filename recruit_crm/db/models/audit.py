"""SQLAlchemy ORM models."""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import ForeignKey, Index, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from recruit_crm.db.base import Base, utcnow
from recruit_crm.db.types import JsonDocument


class AuditLog(Base):
    """
    Audit log for import and merge operations.

    Security:
    - Never stores CV text or contact details
    - details carries identifiers and counts only
    - IP captured from X-Forwarded-For (when trusted) or client IP
    """

    __tablename__ = "audit_logs"
    __table_args__ = (
        Index("idx_audit_event_created", "event_type", "created_at"),
        Index("idx_audit_target", "target_type", "target_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    actor_user_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,  # CLI/system events have no actor
    )

    # Event classification
    event_type: Mapped[str] = mapped_column(String(50), nullable=False)  # AuditEventType

    # Target entity
    target_type: Mapped[str | None] = mapped_column(String(50), nullable=True)
    target_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)

    details: Mapped[dict | None] = mapped_column(JsonDocument, nullable=True)

    # Request metadata
    ip_address: Mapped[str | None] = mapped_column(String(45), nullable=True)
    user_agent: Mapped[str | None] = mapped_column(String(500), nullable=True)

    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)
