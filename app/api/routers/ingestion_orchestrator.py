"""
Bulk ingestion orchestration endpoints.
"""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, UploadFile, status

from app.api.dependencies import get_image_uploads, get_spreadsheet_upload
from app.config import get_bulk_ingestion_settings
from app.repositories.ingestion_job_repository import IngestionJob
from app.schemas.ingestion_orchestrator import (
    IngestionJobAcceptedResponse,
    IngestionJobStatusResponse,
    IngestionStatusListResponse,
    ProgressStateResponse,
)
from app.services.ingestion_orchestrator_service import (
    FastAPIBackgroundTaskExecutor,
    IngestionOrchestratorService,
    MediaSelection,
    NoMediaError,
    get_ingestion_orchestrator_service,
)
from app.services.spreadsheet_service import SpreadsheetFormatError
from bulk_ingest.records import MediaRecord

router = APIRouter(tags=["ingestion-orchestrator"])


@router.post(
    "/ingestion/users",
    status_code=status.HTTP_202_ACCEPTED,
    response_model=IngestionJobAcceptedResponse,
)
def trigger_user_ingestion(
    background_tasks: BackgroundTasks,
    file: UploadFile = Depends(get_spreadsheet_upload),
    orchestrator: IngestionOrchestratorService = Depends(get_ingestion_orchestrator_service),
) -> IngestionJobAcceptedResponse:
    try:
        content = _read_limited(file)
        job = orchestrator.trigger_user_ingestion(
            executor=FastAPIBackgroundTaskExecutor(background_tasks),
            content=content,
            filename=file.filename or "users.xlsx",
        )
    except SpreadsheetFormatError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    finally:
        file.file.close()

    return _to_accepted_response(job)


@router.post(
    "/ingestion/folders/{folder_id}/images",
    status_code=status.HTTP_202_ACCEPTED,
    response_model=IngestionJobAcceptedResponse,
)
def trigger_media_ingestion(
    folder_id: str,
    background_tasks: BackgroundTasks,
    selection: str = Query(
        default=MediaSelection.FOLDER,
        pattern=f"^({MediaSelection.FOLDER}|{MediaSelection.SELECTED})$",
        description="'folder' uploads chunks in parallel; 'selected' uploads them one at a time with progress",
    ),
    files: list[UploadFile] = Depends(get_image_uploads),
    orchestrator: IngestionOrchestratorService = Depends(get_ingestion_orchestrator_service),
) -> IngestionJobAcceptedResponse:
    try:
        records = [
            MediaRecord(
                filename=upload.filename or f"image-{position}",
                payload=_read_limited(upload),
                content_type=upload.content_type or "application/octet-stream",
            )
            for position, upload in enumerate(files, start=1)
        ]
        job = orchestrator.trigger_media_ingestion(
            executor=FastAPIBackgroundTaskExecutor(background_tasks),
            folder_id=folder_id,
            records=records,
            selection=selection,
        )
    except NoMediaError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Please select image files to upload.",
        ) from exc
    finally:
        for upload in files:
            upload.file.close()

    return _to_accepted_response(job)


@router.get("/ingestion-status", response_model=IngestionStatusListResponse)
def get_ingestion_status(
    job_id: UUID | None = Query(default=None, description="Optional ingestion job ID"),
    job_type: str | None = Query(default=None, description="Optional job type filter"),
    status_filter: str | None = Query(default=None, alias="status", description="Optional status filter"),
    limit: int = Query(default=100, ge=1, le=500, description="Max jobs returned when listing"),
    orchestrator: IngestionOrchestratorService = Depends(get_ingestion_orchestrator_service),
) -> IngestionStatusListResponse:
    if job_id is not None:
        job = orchestrator.get_job_status(job_id=job_id)
        if job is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Ingestion job not found: {job_id}",
            )
        return IngestionStatusListResponse(jobs=[_to_status_response(job, orchestrator)])

    jobs = orchestrator.list_job_statuses(
        limit=limit,
        job_type=job_type,
        status=status_filter,
    )
    return IngestionStatusListResponse(jobs=[_to_status_response(job, orchestrator) for job in jobs])


def _read_limited(upload: UploadFile) -> bytes:
    max_bytes = get_bulk_ingestion_settings().max_file_bytes
    upload.file.seek(0)
    content = upload.file.read(max_bytes + 1)
    if len(content) > max_bytes:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"File '{upload.filename}' exceeds the {max_bytes} byte limit.",
        )
    return content


def _to_accepted_response(job: IngestionJob) -> IngestionJobAcceptedResponse:
    return IngestionJobAcceptedResponse(
        job_id=job.id,
        job_type=job.job_type,
        status=job.status,
        created_at=job.created_at,
        request_payload=job.request_payload,
    )


def _to_status_response(
    job: IngestionJob,
    orchestrator: IngestionOrchestratorService,
) -> IngestionJobStatusResponse:
    progress = orchestrator.get_progress(job)
    return IngestionJobStatusResponse(
        job_id=job.id,
        job_type=job.job_type,
        status=job.status,
        created_at=job.created_at,
        updated_at=job.updated_at,
        started_at=job.started_at,
        completed_at=job.completed_at,
        request_payload=job.request_payload,
        result_payload=job.result_payload,
        error_message=job.error_message,
        progress=(
            ProgressStateResponse(
                percent=progress.percent,
                phase=progress.phase,
                total_chunks=progress.total_chunks,
                chunks_settled=progress.chunks_settled,
                current_chunk=progress.current_chunk,
                chunk_percent=progress.chunk_percent,
            )
            if progress is not None
            else None
        ),
    )
