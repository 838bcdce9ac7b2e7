"""Candidate queries built on the active-candidate view.

Every listing, lookup, duplicate scan and email match goes through
ActiveCandidates, which excludes soft-deleted and merged-away rows.
"""

from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Query, Session

from recruit_crm.core.exceptions import NotFoundError
from recruit_crm.db.models import Candidate


class ActiveCandidates:
    """Query object for candidates that are neither soft-deleted nor merged."""

    def __init__(self, db: Session):
        self.db = db

    def query(self, pipeline_id: UUID | None = None) -> Query:
        query = self.db.query(Candidate).filter(Candidate.is_active)
        if pipeline_id:
            query = query.filter(Candidate.pipeline_id == pipeline_id)
        return query

    def get(self, candidate_id: UUID) -> Candidate | None:
        return self.query().filter(Candidate.id == candidate_id).first()

    def find_by_email(self, pipeline_id: UUID, email: str) -> Candidate | None:
        """Oldest active candidate in the pipeline with this email (case-insensitive)."""
        return (
            self.query(pipeline_id)
            .filter(func.lower(Candidate.email) == email.strip().lower())
            .order_by(Candidate.created_at)
            .first()
        )


def list_candidates(
    db: Session,
    pipeline_id: UUID | None = None,
    limit: int = 100,
    offset: int = 0,
) -> tuple[list[Candidate], int]:
    """Active candidates, newest first, with total count."""
    query = ActiveCandidates(db).query(pipeline_id)
    total = query.count()
    items = (
        query.order_by(Candidate.created_at.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )
    return items, total


def get_candidate(db: Session, candidate_id: UUID) -> Candidate:
    """
    Raises:
        NotFoundError: missing, soft-deleted or merged away
    """
    candidate = ActiveCandidates(db).get(candidate_id)
    if not candidate:
        raise NotFoundError(f"Candidate {candidate_id} not found")
    return candidate
