"""Pydantic schemas for candidates, duplicates and merges."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field


class CandidateRead(BaseModel):
    id: UUID
    pipeline_id: UUID
    stage_id: UUID
    assigned_to_user_id: UUID | None = None
    full_name: str
    email: str | None = None
    phone_e164: str | None = None
    source: str | None = None
    parsing_confidence: int | None = None
    is_rejected: bool
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class CandidateDetail(CandidateRead):
    extracted_text: str | None = None


class CandidateListResponse(BaseModel):
    items: list[CandidateRead]
    total: int


# =============================================================================
# Duplicates
# =============================================================================


class DuplicateGroupRead(BaseModel):
    type: str  # email | phone
    value: str
    candidates: list[CandidateRead]  # oldest first


class DuplicateStats(BaseModel):
    total_groups: int
    total_candidates: int


class DuplicateReportResponse(BaseModel):
    groups: list[DuplicateGroupRead]
    stats: DuplicateStats


# =============================================================================
# Merge
# =============================================================================


class FieldOverrides(BaseModel):
    """Explicit target values; only fields that are sent are applied."""

    full_name: str | None = Field(default=None, min_length=1, max_length=255)
    email: EmailStr | None = None
    phone_e164: str | None = Field(default=None, max_length=32)


class MergeRequest(BaseModel):
    target_id: UUID
    source_ids: list[UUID] = Field(..., min_length=1)
    field_overrides: FieldOverrides | None = None


class MergeResponse(BaseModel):
    success: bool = True
    merged: int
    candidate: CandidateRead
    moved: dict[str, int]
    tags_added: int
