"""Duplicate candidate detection by shared email or phone."""

import logging
from dataclasses import dataclass, field
from uuid import UUID

from sqlalchemy.orm import Session

from recruit_crm.core.config import settings
from recruit_crm.core.structured_logging import build_log_context
from recruit_crm.db.enums import DuplicateType
from recruit_crm.db.models import Candidate
from recruit_crm.services.candidate_service import ActiveCandidates
from recruit_crm.utils.normalization import normalize_email, normalize_phone

logger = logging.getLogger(__name__)


@dataclass
class DuplicateGroup:
    type: DuplicateType
    value: str
    candidates: list[Candidate]  # oldest first


@dataclass
class DuplicateReport:
    groups: list[DuplicateGroup] = field(default_factory=list)

    @property
    def total_groups(self) -> int:
        return len(self.groups)

    @property
    def total_candidates(self) -> int:
        return len({c.id for group in self.groups for c in group.candidates})


def _bucket(candidates: list[Candidate], key_func) -> dict[str, list[Candidate]]:
    buckets: dict[str, list[Candidate]] = {}
    for candidate in candidates:
        key = key_func(candidate)
        if key:
            buckets.setdefault(key, []).append(candidate)
    return buckets


def find_duplicates(
    db: Session,
    pipeline_id: UUID | None = None,
    include_email_grouped: bool | None = None,
) -> DuplicateReport:
    """
    Group active candidates sharing a lowercased email, then a normalized phone.

    Candidates already in an email group are left out of the phone pass.
    With include_email_grouped, phone groups keep all their members for
    context, but a phone group made only of email-grouped candidates is
    still not reported. Groups are returned largest first.
    """
    if include_email_grouped is None:
        include_email_grouped = settings.DUPLICATE_PHONE_INCLUDE_EMAIL_GROUPED

    candidates = (
        ActiveCandidates(db)
        .query(pipeline_id)
        .order_by(Candidate.created_at, Candidate.id)
        .all()
    )

    email_groups = [
        DuplicateGroup(type=DuplicateType.EMAIL, value=key, candidates=members)
        for key, members in _bucket(candidates, lambda c: normalize_email(c.email)).items()
        if len(members) >= 2
    ]
    email_grouped_ids = {c.id for group in email_groups for c in group.candidates}

    phone_pool = (
        candidates
        if include_email_grouped
        else [c for c in candidates if c.id not in email_grouped_ids]
    )
    phone_groups = [
        DuplicateGroup(type=DuplicateType.PHONE, value=key, candidates=members)
        for key, members in _bucket(
            phone_pool,
            lambda c: normalize_phone(c.phone_e164, settings.IMPORT_DEFAULT_COUNTRY_CODE),
        ).items()
        if len(members) >= 2 and any(c.id not in email_grouped_ids for c in members)
    ]

    # Stable: ties keep email groups first, then first-member creation order
    groups = sorted(email_groups + phone_groups, key=lambda g: len(g.candidates), reverse=True)
    report = DuplicateReport(groups=groups)

    logger.info(
        "Duplicate scan: %d groups, %d candidates",
        report.total_groups,
        report.total_candidates,
        extra=build_log_context(pipeline_id=pipeline_id),
    )
    return report
