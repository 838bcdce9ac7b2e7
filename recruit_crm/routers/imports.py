"""CV import API endpoints: batches, uploads and processing."""

from uuid import UUID

from fastapi import APIRouter, Depends, File, HTTPException, Request, UploadFile, status
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from recruit_crm.core.config import settings
from recruit_crm.core.deps import get_db, require_csrf_header, require_roles
from recruit_crm.core.exceptions import (
    ConflictError,
    InvalidInputError,
    NotFoundError,
    PersistenceError,
)
from recruit_crm.core.rate_limit import limiter
from recruit_crm.db.enums import (
    ROLES_CAN_DELETE_IMPORTS,
    ROLES_CAN_IMPORT,
    ROLES_CAN_VIEW_IMPORTS,
)
from recruit_crm.schemas.auth import UserSession
from recruit_crm.schemas.imports import (
    ImportBatchCreate,
    ImportBatchDetail,
    ImportBatchListResponse,
    ImportBatchRead,
    UploadResponse,
    UploadResultRead,
)
from recruit_crm.services import import_service
from recruit_crm.utils.file_upload import read_uploads, request_exceeds_limit

router = APIRouter(prefix="/imports", tags=["imports"])

MAX_FILES_PER_UPLOAD = 50


def _invalid_input(e: InvalidInputError) -> HTTPException:
    return HTTPException(
        status_code=400,
        detail={"message": e.message, "violations": e.violations},
    )


@router.get("", response_model=ImportBatchListResponse)
def list_batches(
    pipeline_id: UUID | None = None,
    session: UserSession = Depends(require_roles(ROLES_CAN_VIEW_IMPORTS)),
    db: Session = Depends(get_db),
):
    """Recent import batches, newest first."""
    batches = import_service.list_batches(db, pipeline_id=pipeline_id)
    return ImportBatchListResponse(
        items=[ImportBatchRead.model_validate(b) for b in batches]
    )


@router.post(
    "",
    response_model=ImportBatchRead,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_csrf_header)],
)
def create_batch(
    data: ImportBatchCreate,
    request: Request,
    session: UserSession = Depends(require_roles(ROLES_CAN_IMPORT)),
    db: Session = Depends(get_db),
):
    """Open a new import batch for a pipeline."""
    try:
        return import_service.create_batch(
            db,
            pipeline_id=data.pipeline_id,
            actor_user_id=session.user_id,
            default_country_code=data.default_country_code,
            request=request,
        )
    except InvalidInputError as e:
        raise _invalid_input(e)
    except NotFoundError:
        raise HTTPException(status_code=404, detail="Pipeline not found")


@router.get("/{batch_id}", response_model=ImportBatchDetail)
def get_batch(
    batch_id: UUID,
    session: UserSession = Depends(require_roles(ROLES_CAN_VIEW_IMPORTS)),
    db: Session = Depends(get_db),
):
    """Batch progress with per-file status (poll while processing)."""
    try:
        return import_service.get_batch(db, batch_id)
    except NotFoundError:
        raise HTTPException(status_code=404, detail="Import batch not found")


@router.post(
    "/{batch_id}/upload",
    response_model=UploadResponse,
    dependencies=[Depends(require_csrf_header)],
)
async def upload_files(
    batch_id: UUID,
    request: Request,
    files: list[UploadFile] = File(...),
    session: UserSession = Depends(require_roles(ROLES_CAN_IMPORT)),
    db: Session = Depends(get_db),
):
    """Upload CVs into a pending batch. Rejected files are reported per file."""
    if len(files) > MAX_FILES_PER_UPLOAD:
        raise HTTPException(
            status_code=400,
            detail=f"Too many files (max {MAX_FILES_PER_UPLOAD} per upload)",
        )
    if request_exceeds_limit(
        request.headers.get("content-length"),
        max_files=len(files),
        max_size_bytes=settings.import_max_file_size_bytes,
    ):
        raise HTTPException(status_code=413, detail="Upload too large")

    uploaded = await read_uploads(files)
    try:
        summary = await run_in_threadpool(import_service.upload_files, db, batch_id, uploaded)
    except NotFoundError:
        raise HTTPException(status_code=404, detail="Import batch not found")
    except ConflictError as e:
        raise HTTPException(status_code=409, detail=e.message)
    except InvalidInputError as e:
        raise _invalid_input(e)

    return UploadResponse(
        uploaded=summary.uploaded,
        failed=summary.failed,
        results=[UploadResultRead.model_validate(r) for r in summary.results],
    )


@router.post(
    "/{batch_id}/process",
    response_model=ImportBatchDetail,
    dependencies=[Depends(require_csrf_header)],
)
@limiter.limit("10/minute")
def process_batch(
    batch_id: UUID,
    request: Request,
    session: UserSession = Depends(require_roles(ROLES_CAN_IMPORT)),
    db: Session = Depends(get_db),
):
    """
    Process every queued file of a pending batch.

    Runs to completion within the request; poll GET /imports/{id} from
    another client for progress.
    """
    try:
        return import_service.process_batch(
            db, batch_id, actor_user_id=session.user_id, request=request
        )
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message)
    except ConflictError as e:
        raise HTTPException(status_code=409, detail=e.message)
    except InvalidInputError as e:
        raise _invalid_input(e)
    except PersistenceError:
        raise HTTPException(status_code=500, detail="Import processing failed")


@router.delete(
    "/{batch_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_csrf_header)],
)
def delete_batch(
    batch_id: UUID,
    request: Request,
    session: UserSession = Depends(require_roles(ROLES_CAN_DELETE_IMPORTS)),
    db: Session = Depends(get_db),
):
    """Delete a batch and its items. Candidates created from it are kept."""
    try:
        import_service.delete_batch(
            db, batch_id, actor_user_id=session.user_id, request=request
        )
    except NotFoundError:
        raise HTTPException(status_code=404, detail="Import batch not found")
    except ConflictError as e:
        raise HTTPException(status_code=409, detail=e.message)
