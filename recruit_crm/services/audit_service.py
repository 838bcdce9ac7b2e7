"""Audit trail for import batches and candidate merges.

Details carry IDs and counts only; CV text and contact fields never go in.
"""

from typing import Any
from uuid import UUID

from fastapi import Request
from sqlalchemy.orm import Session

from recruit_crm.core.config import settings
from recruit_crm.db.enums import AuditEventType
from recruit_crm.db.models import AuditLog

USER_AGENT_MAX_LENGTH = 500


def request_origin(request: Request | None) -> tuple[str | None, str | None]:
    """
    Return (ip_address, user_agent) for an audit row.

    The left-most X-Forwarded-For hop is used only with TRUST_PROXY_HEADERS.
    """
    if request is None:
        return None, None

    ip_address = request.client.host if request.client else None
    forwarded_for = request.headers.get("x-forwarded-for", "")
    if settings.TRUST_PROXY_HEADERS and forwarded_for:
        ip_address = forwarded_for.partition(",")[0].strip() or ip_address

    user_agent = request.headers.get("user-agent") or None
    if user_agent is not None:
        user_agent = user_agent[:USER_AGENT_MAX_LENGTH]
    return ip_address, user_agent


def log_event(
    db: Session,
    event_type: AuditEventType,
    actor_user_id: UUID | None = None,
    target_type: str | None = None,
    target_id: UUID | None = None,
    details: dict[str, Any] | None = None,
    request: Request | None = None,
) -> AuditLog:
    """
    Add an audit event to the current unit of work.

    The entry is flushed but not committed; it lands (or rolls back)
    together with the change it describes.
    """
    ip_address, user_agent = request_origin(request)
    entry = AuditLog(
        actor_user_id=actor_user_id,
        event_type=event_type.value,
        target_type=target_type,
        target_id=target_id,
        details=details,
        ip_address=ip_address,
        user_agent=user_agent,
    )
    db.add(entry)
    db.flush()
    return entry


def log_import_batch_event(
    db: Session,
    event_type: AuditEventType,
    batch_id: UUID,
    actor_user_id: UUID | None,
    details: dict[str, Any] | None = None,
    request: Request | None = None,
) -> AuditLog:
    """Log an import batch lifecycle event."""
    return log_event(
        db=db,
        event_type=event_type,
        actor_user_id=actor_user_id,
        target_type="import_batch",
        target_id=batch_id,
        details=details,
        request=request,
    )


def log_candidates_merged(
    db: Session,
    target_id: UUID,
    source_ids: list[UUID],
    actor_user_id: UUID | None,
    overridden_fields: list[str] | None = None,
    request: Request | None = None,
) -> AuditLog:
    """Log a candidate merge (one event per merge call)."""
    return log_event(
        db=db,
        event_type=AuditEventType.CANDIDATES_MERGED,
        actor_user_id=actor_user_id,
        target_type="candidate",
        target_id=target_id,
        details={
            "source_ids": [str(source_id) for source_id in source_ids],
            "source_count": len(source_ids),
            "overridden_fields": overridden_fields or [],
        },
        request=request,
    )
