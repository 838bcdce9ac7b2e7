"""Candidate merge: consolidate sources onto a target in one transaction.

Sources are tombstoned (merged_into_id = target) rather than deleted. Notes,
attachments, email logs and stage history change owner; tags are unioned
onto the target. Target and source rows are locked for the duration so two
merges touching the same candidate serialize, and the tombstone write is
conditional so a source merged concurrently elsewhere aborts this merge.
"""

import logging
from dataclasses import dataclass, field
from typing import Any
from uuid import UUID

from fastapi import Request
from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from recruit_crm.core.config import settings
from recruit_crm.core.exceptions import (
    ConflictError,
    InvalidInputError,
    NotFoundError,
    PersistenceError,
    ServiceError,
)
from recruit_crm.core.structured_logging import build_log_context
from recruit_crm.db.base import utcnow
from recruit_crm.db.models import (
    Attachment,
    Candidate,
    CandidateStageHistory,
    CandidateTag,
    EmailLog,
    MergeLog,
    Note,
)
from recruit_crm.services import audit_service
from recruit_crm.utils.normalization import normalize_email, normalize_name, normalize_phone

logger = logging.getLogger(__name__)

OVERRIDABLE_FIELDS = ("full_name", "email", "phone_e164")
BACKFILL_FIELDS = ("email", "phone_e164", "source", "extracted_text", "parsing_confidence")

# Child tables whose candidate_id moves to the target
REASSIGNED_MODELS = {
    "notes": Note,
    "attachments": Attachment,
    "email_logs": EmailLog,
    "stage_history": CandidateStageHistory,
}


@dataclass
class MergeResult:
    target: Candidate
    merged_source_ids: list[UUID]
    moved: dict[str, int] = field(default_factory=dict)
    tags_added: int = 0
    overridden_fields: list[str] = field(default_factory=list)


def _validate_overrides(field_overrides: dict[str, Any] | None) -> dict[str, Any]:
    overrides = dict(field_overrides or {})
    violations = []
    unknown = set(overrides) - set(OVERRIDABLE_FIELDS)
    for name in sorted(unknown):
        violations.append({"field": name, "message": "Field cannot be overridden"})

    if "full_name" in overrides:
        overrides["full_name"] = normalize_name(overrides["full_name"])
        if not overrides["full_name"]:
            violations.append({"field": "full_name", "message": "Name cannot be empty"})
    if "email" in overrides:
        overrides["email"] = normalize_email(overrides["email"])
    if "phone_e164" in overrides:
        overrides["phone_e164"] = normalize_phone(
            overrides["phone_e164"], settings.IMPORT_DEFAULT_COUNTRY_CODE
        )

    if violations:
        raise InvalidInputError("Invalid field overrides", violations=violations)
    return overrides


def _lock_candidates(db: Session, candidate_ids: list[UUID]) -> dict[UUID, Candidate]:
    # Consistent lock order avoids deadlocks between overlapping merges
    rows = (
        db.query(Candidate)
        .filter(Candidate.id.in_(candidate_ids))
        .order_by(Candidate.id)
        .with_for_update()
        .populate_existing()
        .all()
    )
    return {row.id: row for row in rows}


def _check_mergeable(candidate: Candidate | None, candidate_id: UUID, role: str) -> Candidate:
    if candidate is None or candidate.deleted_at is not None:
        raise NotFoundError(f"{role.capitalize()} candidate {candidate_id} not found")
    if candidate.merged_into_id is not None:
        raise ConflictError(f"{role.capitalize()} candidate {candidate_id} has already been merged")
    return candidate


def _backfill(target: Candidate, sources: list[Candidate], skip: set[str]) -> None:
    """Fill empty target fields from the first source that has a value."""
    for name in BACKFILL_FIELDS:
        if name in skip or getattr(target, name) not in (None, ""):
            continue
        for source in sources:
            value = getattr(source, name)
            if value not in (None, ""):
                setattr(target, name, value)
                break


def _union_tags(db: Session, target_id: UUID, source_ids: list[UUID]) -> int:
    existing = {
        tag_id
        for (tag_id,) in db.query(CandidateTag.tag_id).filter(CandidateTag.candidate_id == target_id)
    }
    source_tag_ids = [
        tag_id
        for (tag_id,) in db.query(CandidateTag.tag_id)
        .filter(CandidateTag.candidate_id.in_(source_ids))
        .order_by(CandidateTag.created_at)
    ]
    added = 0
    for tag_id in source_tag_ids:
        if tag_id in existing:
            continue
        db.add(CandidateTag(candidate_id=target_id, tag_id=tag_id))
        existing.add(tag_id)
        added += 1
    db.flush()
    return added


def merge_candidates(
    db: Session,
    target_id: UUID,
    source_ids: list[UUID],
    actor_user_id: UUID | None,
    field_overrides: dict[str, Any] | None = None,
    request: Request | None = None,
) -> MergeResult:
    """
    Merge source candidates into target. All-or-nothing.

    field_overrides may set full_name, email or phone_e164 on the target;
    explicit overrides win over back-fill from sources.

    Raises:
        InvalidInputError: no sources, or bad overrides
        ConflictError: self-merge, or target/source already merged
        NotFoundError: target or source missing or soft-deleted
        PersistenceError: database failure (rolled back, nothing applied)
    """
    unique_source_ids = list(dict.fromkeys(source_ids))
    if not unique_source_ids:
        raise InvalidInputError(
            "At least one source candidate is required",
            violations=[{"field": "source_ids", "message": "At least one source is required"}],
        )
    if target_id in unique_source_ids:
        raise ConflictError("Cannot merge a candidate into itself")
    overrides = _validate_overrides(field_overrides)

    try:
        locked = _lock_candidates(db, [target_id, *unique_source_ids])
        target = _check_mergeable(locked.get(target_id), target_id, "target")
        sources = [
            _check_mergeable(locked.get(source_id), source_id, "source")
            for source_id in unique_source_ids
        ]

        for name, value in overrides.items():
            setattr(target, name, value)
        _backfill(target, sources, skip=set(overrides))
        db.flush()

        tags_added = _union_tags(db, target_id, unique_source_ids)

        moved = {}
        for label, model in REASSIGNED_MODELS.items():
            result = db.execute(
                update(model)
                .where(model.candidate_id.in_(unique_source_ids))
                .values(candidate_id=target_id)
                .execution_options(synchronize_session=False)
            )
            moved[label] = result.rowcount

        # Earlier tombstones of a source now resolve straight to the target
        db.execute(
            update(Candidate)
            .where(Candidate.merged_into_id.in_(unique_source_ids))
            .values(merged_into_id=target_id, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )

        tombstoned = db.execute(
            update(Candidate)
            .where(
                Candidate.id.in_(unique_source_ids),
                Candidate.is_active,
            )
            .values(merged_into_id=target_id, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        if tombstoned.rowcount != len(unique_source_ids):
            raise ConflictError("A source candidate was merged concurrently")

        db.add_all([
            MergeLog(
                target_candidate_id=target_id,
                source_candidate_id=source_id,
                merged_by_user_id=actor_user_id,
            )
            for source_id in unique_source_ids
        ])
        audit_service.log_candidates_merged(
            db,
            target_id=target_id,
            source_ids=unique_source_ids,
            actor_user_id=actor_user_id,
            overridden_fields=sorted(overrides),
            request=request,
        )
        db.commit()
    except ServiceError:
        db.rollback()
        raise
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception(
            "Candidate merge failed",
            extra=build_log_context(user_id=actor_user_id, candidate_id=target_id),
        )
        raise PersistenceError("Merge failed") from exc

    db.refresh(target)
    logger.info(
        "Candidates merged: %d sources",
        len(unique_source_ids),
        extra=build_log_context(user_id=actor_user_id, candidate_id=target_id),
    )
    return MergeResult(
        target=target,
        merged_source_ids=unique_source_ids,
        moved=moved,
        tags_added=tags_added,
        overridden_fields=sorted(overrides),
    )
