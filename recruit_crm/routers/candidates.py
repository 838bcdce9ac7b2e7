"""Candidate API endpoints: active listings, duplicate review and merge."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session

from recruit_crm.core.deps import get_current_session, get_db, require_csrf_header, require_roles
from recruit_crm.core.exceptions import (
    ConflictError,
    InvalidInputError,
    NotFoundError,
    PersistenceError,
)
from recruit_crm.db.enums import ROLES_CAN_MERGE
from recruit_crm.schemas.auth import UserSession
from recruit_crm.schemas.candidate import (
    CandidateDetail,
    CandidateListResponse,
    CandidateRead,
    DuplicateGroupRead,
    DuplicateReportResponse,
    DuplicateStats,
    MergeRequest,
    MergeResponse,
)
from recruit_crm.services import candidate_service, duplicate_service, merge_service

router = APIRouter(prefix="/candidates", tags=["candidates"])


@router.get("", response_model=CandidateListResponse)
def list_candidates(
    pipeline_id: UUID | None = None,
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """List active candidates (merged and deleted candidates are hidden)."""
    items, total = candidate_service.list_candidates(
        db, pipeline_id=pipeline_id, limit=limit, offset=offset
    )
    return CandidateListResponse(
        items=[CandidateRead.model_validate(c) for c in items],
        total=total,
    )


@router.get("/duplicates", response_model=DuplicateReportResponse)
def find_duplicates(
    pipeline_id: UUID | None = None,
    session: UserSession = Depends(require_roles(ROLES_CAN_MERGE)),
    db: Session = Depends(get_db),
):
    """Groups of active candidates sharing an email or phone number."""
    report = duplicate_service.find_duplicates(db, pipeline_id=pipeline_id)
    return DuplicateReportResponse(
        groups=[
            DuplicateGroupRead(
                type=group.type.value,
                value=group.value,
                candidates=[CandidateRead.model_validate(c) for c in group.candidates],
            )
            for group in report.groups
        ],
        stats=DuplicateStats(
            total_groups=report.total_groups,
            total_candidates=report.total_candidates,
        ),
    )


@router.get("/{candidate_id}", response_model=CandidateDetail)
def get_candidate(
    candidate_id: UUID,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    try:
        return candidate_service.get_candidate(db, candidate_id)
    except NotFoundError:
        raise HTTPException(status_code=404, detail="Candidate not found")


@router.post(
    "/merge",
    response_model=MergeResponse,
    dependencies=[Depends(require_csrf_header)],
)
def merge_candidates(
    data: MergeRequest,
    request: Request,
    session: UserSession = Depends(require_roles(ROLES_CAN_MERGE)),
    db: Session = Depends(get_db),
):
    """
    Merge source candidates into a target.

    Notes, attachments, email logs and stage history move to the target,
    tags are unioned, and sources are kept as merged tombstones.
    """
    overrides = (
        data.field_overrides.model_dump(exclude_unset=True)
        if data.field_overrides
        else None
    )
    try:
        result = merge_service.merge_candidates(
            db,
            target_id=data.target_id,
            source_ids=data.source_ids,
            actor_user_id=session.user_id,
            field_overrides=overrides,
            request=request,
        )
    except InvalidInputError as e:
        raise HTTPException(
            status_code=400,
            detail={"message": e.message, "violations": e.violations},
        )
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message)
    except ConflictError as e:
        raise HTTPException(status_code=409, detail=e.message)
    except PersistenceError:
        raise HTTPException(status_code=500, detail="Merge failed")

    return MergeResponse(
        merged=len(result.merged_source_ids),
        candidate=CandidateRead.model_validate(result.target),
        moved=result.moved,
        tags_added=result.tags_added,
    )
