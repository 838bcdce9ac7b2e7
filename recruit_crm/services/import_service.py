"""CV import batches: upload, sequential processing and cleanup.

Lifecycle: PENDING (accepting uploads) -> PROCESSING -> COMPLETED | FAILED.

Items are processed strictly one at a time and each item is committed on its
own. Email matching for item N therefore sees candidates created by items
1..N-1 of the same batch; parallelising the loop would need a different
dedup rule (e.g. only match candidates that existed before the batch, or
lock per pipeline). One unreadable file marks that item FAILED and the loop
moves on; FAILED on the batch itself is reserved for errors that stop the
loop (database failure, pipeline removed mid-run).
"""

import logging
import time
import uuid
from dataclasses import dataclass, field
from uuid import UUID

from fastapi import Request
from sqlalchemy import delete, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from recruit_crm.core.config import settings
from recruit_crm.core.constants import (
    IMPORT_ALLOWED_MIME_TYPES,
    IMPORT_BATCH_LIST_LIMIT,
    IMPORT_STORAGE_PREFIX,
)
from recruit_crm.core.exceptions import (
    ConflictError,
    InvalidInputError,
    NotFoundError,
    PersistenceError,
)
from recruit_crm.core.structured_logging import build_log_context
from recruit_crm.db.base import utcnow
from recruit_crm.db.enums import (
    AuditEventType,
    CandidateSource,
    ImportBatchStatus,
    ImportItemStatus,
    TERMINAL_BATCH_STATUSES,
)
from recruit_crm.db.models import Candidate, CandidateStageHistory, ImportBatch, ImportItem
from recruit_crm.services import (
    audit_service,
    cv_parser,
    pipeline_service,
    storage_service,
    text_extraction,
)
from recruit_crm.services.candidate_service import ActiveCandidates
from recruit_crm.utils.file_upload import UploadedFile
from recruit_crm.utils.normalization import (
    normalize_email,
    normalize_name,
    normalize_phone,
    sanitize_filename,
)

logger = logging.getLogger(__name__)

INVALID_TYPE_MESSAGE = "Invalid file type. Allowed: PDF, Word, TXT"
UPLOAD_FAILED_MESSAGE = "Upload failed"
EMPTY_FILE_MESSAGE = "File is empty"


@dataclass
class UploadResult:
    filename: str
    success: bool
    error: str | None = None
    item_id: UUID | None = None


@dataclass
class UploadSummary:
    results: list[UploadResult] = field(default_factory=list)

    @property
    def uploaded(self) -> int:
        return sum(1 for r in self.results if r.success)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.results if not r.success)


# =============================================================================
# Batches
# =============================================================================


def _normalize_country_code(country_code: str | None) -> str:
    code = (country_code or settings.IMPORT_DEFAULT_COUNTRY_CODE).strip().upper()
    if len(code) != 2 or not code.isalpha():
        raise InvalidInputError(
            "Invalid default country code",
            violations=[
                {
                    "field": "default_country_code",
                    "message": "Must be a two-letter country code",
                }
            ],
        )
    return code


def create_batch(
    db: Session,
    pipeline_id: UUID,
    actor_user_id: UUID | None,
    default_country_code: str | None = None,
    request: Request | None = None,
) -> ImportBatch:
    """
    Open a new PENDING batch for a pipeline.

    Raises:
        InvalidInputError: malformed country code
        NotFoundError: pipeline does not exist
    """
    country_code = _normalize_country_code(default_country_code)
    if not pipeline_service.get_pipeline(db, pipeline_id):
        raise NotFoundError(f"Pipeline {pipeline_id} not found")

    batch = ImportBatch(
        pipeline_id=pipeline_id,
        created_by_user_id=actor_user_id,
        status=ImportBatchStatus.PENDING.value,
        default_country_code=country_code,
    )
    db.add(batch)
    db.flush()

    audit_service.log_import_batch_event(
        db,
        AuditEventType.IMPORT_BATCH_CREATED,
        batch_id=batch.id,
        actor_user_id=actor_user_id,
        details={"pipeline_id": str(pipeline_id), "default_country_code": country_code},
        request=request,
    )
    db.commit()
    db.refresh(batch)

    logger.info(
        "Import batch created",
        extra=build_log_context(
            user_id=actor_user_id, batch_id=batch.id, pipeline_id=pipeline_id
        ),
    )
    return batch


def get_batch(db: Session, batch_id: UUID) -> ImportBatch:
    """
    Batch with its items (ordered by upload) for progress polling.

    Raises:
        NotFoundError: batch does not exist
    """
    batch = db.get(ImportBatch, batch_id)
    if not batch:
        raise NotFoundError(f"Import batch {batch_id} not found")
    return batch


def list_batches(
    db: Session,
    pipeline_id: UUID | None = None,
    limit: int = IMPORT_BATCH_LIST_LIMIT,
) -> list[ImportBatch]:
    """Recent batches, newest first."""
    query = db.query(ImportBatch)
    if pipeline_id:
        query = query.filter(ImportBatch.pipeline_id == pipeline_id)
    return query.order_by(ImportBatch.created_at.desc()).limit(limit).all()


def delete_batch(
    db: Session,
    batch_id: UUID,
    actor_user_id: UUID | None,
    request: Request | None = None,
) -> None:
    """
    Delete a batch and its items. Candidates created from it are kept.

    Raises:
        NotFoundError: batch does not exist
        ConflictError: batch is being processed
    """
    batch = get_batch(db, batch_id)
    if batch.status == ImportBatchStatus.PROCESSING.value:
        raise ConflictError("Cannot delete a batch while it is processing")

    storage_keys = [item.storage_key for item in batch.items]
    file_count = len(storage_keys)

    # Conditional so a concurrent claim by process_batch wins
    result = db.execute(
        delete(ImportBatch).where(
            ImportBatch.id == batch_id,
            ImportBatch.status != ImportBatchStatus.PROCESSING.value,
        )
    )
    if result.rowcount != 1:
        db.rollback()
        raise ConflictError("Cannot delete a batch while it is processing")

    audit_service.log_import_batch_event(
        db,
        AuditEventType.IMPORT_BATCH_DELETED,
        batch_id=batch_id,
        actor_user_id=actor_user_id,
        details={"file_count": file_count},
        request=request,
    )
    db.commit()

    for key in storage_keys:
        try:
            storage_service.delete(key)
        except storage_service.StorageError as exc:
            logger.warning(
                "Failed to delete stored import file: %s",
                exc,
                extra=build_log_context(batch_id=batch_id),
            )

    logger.info(
        "Import batch deleted",
        extra=build_log_context(user_id=actor_user_id, batch_id=batch_id),
    )


# =============================================================================
# Uploads
# =============================================================================


def validate_upload(file: UploadedFile) -> str | None:
    """Return an error message for a file that cannot be imported, else None."""
    if file.size == 0:
        return EMPTY_FILE_MESSAGE
    if file.size > settings.import_max_file_size_bytes:
        return f"File too large (max {settings.IMPORT_MAX_FILE_SIZE_MB}MB)"
    mime_type = text_extraction.resolve_mime_type(file.content_type, file.filename)
    if mime_type not in IMPORT_ALLOWED_MIME_TYPES:
        return INVALID_TYPE_MESSAGE
    return None


def build_storage_key(batch_id: UUID, item_id: UUID, filename: str) -> str:
    timestamp = int(time.time() * 1000)
    return (
        f"{IMPORT_STORAGE_PREFIX}/{batch_id}/"
        f"{timestamp}-{item_id.hex[:8]}-{sanitize_filename(filename)}"
    )


def upload_files(
    db: Session,
    batch_id: UUID,
    files: list[UploadedFile],
) -> UploadSummary:
    """
    Store files and queue one ImportItem per accepted file.

    Rejected files are reported per file in the summary and never become
    items.

    Raises:
        NotFoundError: batch does not exist
        ConflictError: batch is no longer accepting uploads
        InvalidInputError: no files supplied
    """
    batch = get_batch(db, batch_id)
    if batch.status != ImportBatchStatus.PENDING.value:
        raise ConflictError(f"Batch is {batch.status}; uploads are only accepted while pending")
    if not files:
        raise InvalidInputError(
            "No files provided",
            violations=[{"field": "files", "message": "At least one file is required"}],
        )

    summary = UploadSummary()
    stored_keys: list[str] = []
    next_position = batch.total_files

    for file in files:
        error = validate_upload(file)
        if error:
            summary.results.append(UploadResult(filename=file.filename, success=False, error=error))
            continue

        item_id = uuid.uuid4()
        storage_key = build_storage_key(batch.id, item_id, file.filename)
        content_type = text_extraction.resolve_mime_type(file.content_type, file.filename)
        try:
            storage_service.store(storage_key, file.data, content_type)
        except storage_service.StorageError:
            logger.warning(
                "Import upload failed to store",
                extra=build_log_context(batch_id=batch.id, item_id=item_id),
            )
            summary.results.append(
                UploadResult(filename=file.filename, success=False, error=UPLOAD_FAILED_MESSAGE)
            )
            continue

        stored_keys.append(storage_key)
        db.add(
            ImportItem(
                id=item_id,
                batch_id=batch.id,
                filename=file.filename,
                storage_key=storage_key,
                content_type=content_type,
                file_size=file.size,
                position=next_position,
                status=ImportItemStatus.QUEUED.value,
            )
        )
        next_position += 1
        summary.results.append(UploadResult(filename=file.filename, success=True, item_id=item_id))

    if summary.uploaded:
        # Only count files onto a batch that is still pending
        result = db.execute(
            update(ImportBatch)
            .where(
                ImportBatch.id == batch.id,
                ImportBatch.status == ImportBatchStatus.PENDING.value,
            )
            .values(total_files=ImportBatch.total_files + summary.uploaded)
        )
        if result.rowcount != 1:
            db.rollback()
            for key in stored_keys:
                try:
                    storage_service.delete(key)
                except storage_service.StorageError:
                    logger.warning(
                        "Orphaned import blob left after rejected upload",
                        extra=build_log_context(batch_id=batch_id),
                    )
            raise ConflictError("Batch started processing during upload")
        db.commit()

    logger.info(
        "Import files uploaded: %d accepted, %d rejected",
        summary.uploaded,
        summary.failed,
        extra=build_log_context(batch_id=batch_id),
    )
    return summary


# =============================================================================
# Processing
# =============================================================================


def _describe_item_error(exc: Exception) -> str:
    if isinstance(exc, text_extraction.ExtractionError):
        return str(exc)
    if isinstance(exc, storage_service.StorageError):
        return "Stored file could not be read"
    if isinstance(exc, SQLAlchemyError):
        return "Database error while saving candidate"
    return str(exc) or f"Processing failed ({exc.__class__.__name__})"


def _upsert_candidate(
    db: Session,
    batch: ImportBatch,
    item: ImportItem,
    parsed: cv_parser.ParsedCV,
    stage_id: UUID,
    actor_user_id: UUID | None,
) -> Candidate:
    """Enrich the active candidate with the same email, or create a new one."""
    email = normalize_email(parsed.email)
    if email:
        existing = ActiveCandidates(db).find_by_email(batch.pipeline_id, email)
        if existing:
            existing.extracted_text = parsed.extracted_text
            existing.parsing_confidence = parsed.confidence
            db.flush()
            return existing

    candidate = Candidate(
        pipeline_id=batch.pipeline_id,
        stage_id=stage_id,
        full_name=normalize_name(parsed.full_name) or f"Candidate from {item.filename}",
        email=email,
        phone_e164=normalize_phone(parsed.phone, batch.default_country_code),
        source=CandidateSource.IMPORT.value,
        extracted_text=parsed.extracted_text,
        parsing_confidence=parsed.confidence,
        assigned_to_user_id=actor_user_id,
    )
    db.add(candidate)
    db.flush()

    db.add(
        CandidateStageHistory(
            candidate_id=candidate.id,
            from_stage_id=None,
            to_stage_id=stage_id,
            moved_by_user_id=actor_user_id,
        )
    )
    db.flush()
    return candidate


def _record_item_outcome(db: Session, batch_id: UUID, succeeded: bool) -> None:
    db.execute(
        update(ImportBatch)
        .where(ImportBatch.id == batch_id)
        .values(
            processed_count=ImportBatch.processed_count + 1,
            success_count=ImportBatch.success_count + (1 if succeeded else 0),
            failed_count=ImportBatch.failed_count + (0 if succeeded else 1),
        )
    )


def _process_item(
    db: Session,
    batch: ImportBatch,
    item_id: UUID,
    stage_id: UUID,
    actor_user_id: UUID | None,
    extractor: cv_parser.FieldExtractor | None,
) -> bool:
    """Run one queued item to SUCCEEDED or FAILED. Returns True on success."""
    item = db.get(ImportItem, item_id)
    if not item or item.status != ImportItemStatus.QUEUED.value:
        return False

    item.status = ImportItemStatus.PROCESSING.value
    db.commit()

    try:
        data = storage_service.fetch(item.storage_key)
        mime_type = text_extraction.resolve_mime_type(item.content_type, item.filename)
        parsed = cv_parser.parse_cv(data, mime_type, extractor)
        candidate = _upsert_candidate(db, batch, item, parsed, stage_id, actor_user_id)
        item.status = ImportItemStatus.SUCCEEDED.value
        item.candidate_id = candidate.id
        item.error_message = None
        item.processed_at = utcnow()
        succeeded = True
    except Exception as exc:
        # Item-level failure: undo partial writes, record it, keep going
        db.rollback()
        logger.warning(
            "Import item failed: %s",
            exc.__class__.__name__,
            extra=build_log_context(batch_id=batch.id, item_id=item_id),
        )
        item = db.get(ImportItem, item_id)
        item.status = ImportItemStatus.FAILED.value
        item.error_message = _describe_item_error(exc)
        item.processed_at = utcnow()
        succeeded = False

    _record_item_outcome(db, batch.id, succeeded)
    db.commit()
    return succeeded


def _mark_batch_failed(
    db: Session,
    batch_id: UUID,
    actor_user_id: UUID | None,
    reason: str,
) -> None:
    try:
        result = db.execute(
            update(ImportBatch)
            .where(
                ImportBatch.id == batch_id,
                ImportBatch.status == ImportBatchStatus.PROCESSING.value,
            )
            .values(status=ImportBatchStatus.FAILED.value, completed_at=utcnow())
        )
        if result.rowcount == 1:
            audit_service.log_import_batch_event(
                db,
                AuditEventType.IMPORT_BATCH_FAILED,
                batch_id=batch_id,
                actor_user_id=actor_user_id,
                details={"reason": reason},
            )
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception(
            "Could not mark import batch failed",
            extra=build_log_context(batch_id=batch_id),
        )


def process_batch(
    db: Session,
    batch_id: UUID,
    actor_user_id: UUID | None,
    request: Request | None = None,
    extractor: cv_parser.FieldExtractor | None = None,
) -> ImportBatch:
    """
    Process every queued item of a PENDING batch, in upload order.

    Counters are committed after each item so a poller sees monotonic
    progress. Partial success still ends COMPLETED.

    Raises:
        NotFoundError: batch does not exist
        ConflictError: batch is processing or already finished
        InvalidInputError: nothing queued, or the pipeline has no stages
        PersistenceError: database failure that stopped the loop (batch FAILED)
    """
    batch = get_batch(db, batch_id)
    if batch.status == ImportBatchStatus.PROCESSING.value:
        raise ConflictError("Batch is already being processed")
    if batch.status in {s.value for s in TERMINAL_BATCH_STATUSES}:
        raise ConflictError(f"Batch is already {batch.status}")

    queued_ids = [
        item_id
        for (item_id,) in db.query(ImportItem.id)
        .filter(
            ImportItem.batch_id == batch_id,
            ImportItem.status == ImportItemStatus.QUEUED.value,
        )
        .order_by(ImportItem.position, ImportItem.created_at, ImportItem.id)
        .all()
    ]
    if not queued_ids:
        raise InvalidInputError(
            "No queued files to process",
            violations=[{"field": "files", "message": "Upload files before processing"}],
        )

    pipeline_id = batch.pipeline_id
    stage = pipeline_service.get_default_stage(db, pipeline_id)
    stage_id = stage.id

    # Claim: exactly one caller moves PENDING -> PROCESSING
    claimed = db.execute(
        update(ImportBatch)
        .where(
            ImportBatch.id == batch_id,
            ImportBatch.status == ImportBatchStatus.PENDING.value,
        )
        .values(status=ImportBatchStatus.PROCESSING.value)
    )
    if claimed.rowcount != 1:
        db.rollback()
        raise ConflictError("Batch is already being processed")
    db.commit()

    log_context = build_log_context(
        user_id=actor_user_id, batch_id=batch_id, pipeline_id=pipeline_id
    )
    logger.info("Import batch processing started: %d files", len(queued_ids), extra=log_context)

    try:
        for item_id in queued_ids:
            if not pipeline_service.get_pipeline(db, pipeline_id):
                raise NotFoundError(f"Pipeline {pipeline_id} no longer exists")
            batch = get_batch(db, batch_id)
            _process_item(db, batch, item_id, stage_id, actor_user_id, extractor)

        batch = get_batch(db, batch_id)
        batch.status = ImportBatchStatus.COMPLETED.value
        batch.completed_at = utcnow()
        audit_service.log_import_batch_event(
            db,
            AuditEventType.IMPORT_BATCH_COMPLETED,
            batch_id=batch_id,
            actor_user_id=actor_user_id,
            details={
                "total_files": batch.total_files,
                "processed_count": batch.processed_count,
                "success_count": batch.success_count,
                "failed_count": batch.failed_count,
            },
            request=request,
        )
        db.commit()
    except Exception as exc:
        db.rollback()
        logger.exception("Import batch processing failed", extra=log_context)
        _mark_batch_failed(db, batch_id, actor_user_id, reason=exc.__class__.__name__)
        if isinstance(exc, SQLAlchemyError):
            raise PersistenceError("Import batch processing failed") from exc
        raise

    db.refresh(batch)
    logger.info(
        "Import batch completed: %d succeeded, %d failed",
        batch.success_count,
        batch.failed_count,
        extra=log_context,
    )
    return batch
