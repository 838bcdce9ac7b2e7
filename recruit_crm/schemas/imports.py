"""Pydantic schemas for CV import batches."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field


class ImportBatchCreate(BaseModel):
    """Request to open an import batch."""

    pipeline_id: UUID
    default_country_code: str | None = Field(
        default=None,
        min_length=2,
        max_length=2,
        description="Country used to normalize phone numbers without an international prefix",
    )


class ImportItemCandidate(BaseModel):
    id: UUID
    full_name: str

    model_config = {"from_attributes": True}


class ImportItemRead(BaseModel):
    """Per-file status for progress polling."""

    id: UUID
    filename: str
    position: int
    status: str
    error_message: str | None = None
    candidate_id: UUID | None = None
    candidate: ImportItemCandidate | None = None
    processed_at: datetime | None = None
    created_at: datetime

    model_config = {"from_attributes": True}


class ImportBatchRead(BaseModel):
    id: UUID
    pipeline_id: UUID
    created_by_user_id: UUID | None = None
    status: str
    default_country_code: str
    total_files: int
    processed_count: int
    success_count: int
    failed_count: int
    created_at: datetime
    completed_at: datetime | None = None

    model_config = {"from_attributes": True}


class ImportBatchDetail(ImportBatchRead):
    items: list[ImportItemRead] = Field(default_factory=list)


class ImportBatchListResponse(BaseModel):
    items: list[ImportBatchRead]


class UploadResultRead(BaseModel):
    filename: str
    success: bool
    error: str | None = None
    item_id: UUID | None = None

    model_config = {"from_attributes": True}


class UploadResponse(BaseModel):
    """Per-file upload outcome; rejected files are listed with their reason."""

    uploaded: int
    failed: int
    results: list[UploadResultRead]
