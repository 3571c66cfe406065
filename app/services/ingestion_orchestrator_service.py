"""
Orchestrator service for async bulk ingestion job dispatch and lifecycle tracking.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable, Sequence
from functools import lru_cache
from typing import Any, Protocol

from fastapi import BackgroundTasks

from app.config import (
    BulkIngestionSettings,
    get_bulk_ingestion_settings,
    get_remote_service_settings,
)
from app.connectors import FolderImageSubmitter, UserDirectorySubmitter
from app.repositories.ingestion_job_repository import (
    IngestionJob,
    IngestionJobRepository,
    IngestionJobType,
)
from app.services.spreadsheet_service import UserSpreadsheetReader
from bulk_ingest.base import ProgressState, SubmissionFunction
from bulk_ingest.dispatcher import DispatchMode
from bulk_ingest.engine import IngestionEngine
from bulk_ingest.planner import FixedCount, TieredByVolume
from bulk_ingest.records import MediaRecord, UserRecord

logger = logging.getLogger(__name__)

UserSubmitterFactory = Callable[[], SubmissionFunction]
MediaSubmitterFactory = Callable[[str], SubmissionFunction]


class MediaSelection:
    FOLDER = "folder"
    SELECTED = "selected"


class NoMediaError(ValueError):
    """
    Raised when a media upload request carries no usable files.
    """


class IngestionTaskExecutor(Protocol):
    def submit(self, task: Callable[..., Any], *args: Any, **kwargs: Any) -> None:
        ...


class FastAPIBackgroundTaskExecutor:
    def __init__(self, background_tasks: BackgroundTasks) -> None:
        self._background_tasks = background_tasks

    def submit(self, task: Callable[..., Any], *args: Any, **kwargs: Any) -> None:
        self._background_tasks.add_task(task, *args, **kwargs)


def _default_user_submitter() -> SubmissionFunction:
    return UserDirectorySubmitter(settings=get_remote_service_settings())


def _default_media_submitter(folder_id: str) -> SubmissionFunction:
    return FolderImageSubmitter(folder_id=folder_id, settings=get_remote_service_settings())


class IngestionOrchestratorService:
    """
    Coordinates job creation, background engine runs, and status lookups.

    A whole-folder upload fans out all chunks in parallel; an explicit file
    selection is uploaded sequentially with live byte progress.
    """

    def __init__(
        self,
        *,
        settings: BulkIngestionSettings | None = None,
        engine: IngestionEngine | None = None,
        repository: IngestionJobRepository | None = None,
        spreadsheet_reader: UserSpreadsheetReader | None = None,
        user_submitter_factory: UserSubmitterFactory | None = None,
        media_submitter_factory: MediaSubmitterFactory | None = None,
    ) -> None:
        self._settings = settings or get_bulk_ingestion_settings()
        self._engine = engine or IngestionEngine(
            skipped_display_limit=self._settings.skipped_display_limit,
        )
        self._repository = repository or IngestionJobRepository(
            max_finished_jobs=self._settings.max_retained_jobs,
        )
        self._spreadsheet_reader = spreadsheet_reader or UserSpreadsheetReader()
        self._user_submitter_factory = user_submitter_factory or _default_user_submitter
        self._media_submitter_factory = media_submitter_factory or _default_media_submitter

    def trigger_user_ingestion(
        self,
        *,
        executor: IngestionTaskExecutor,
        content: bytes,
        filename: str,
    ) -> IngestionJob:
        records = self._spreadsheet_reader.read(content=content, filename=filename)
        submitter = self._user_submitter_factory()
        mode = DispatchMode.parallel_all(TieredByVolume())

        job = self._repository.create_job(
            job_type=IngestionJobType.USERS,
            request_payload={
                "file_name": filename,
                "file_size_bytes": len(content),
                "record_count": len(records),
                "discipline": mode.discipline,
            },
        )
        self._schedule(
            executor,
            job,
            self._run_user_ingestion_job,
            job.id,
            records,
            submitter,
            mode,
        )
        return job

    def trigger_media_ingestion(
        self,
        *,
        executor: IngestionTaskExecutor,
        folder_id: str,
        records: Sequence[MediaRecord],
        selection: str = MediaSelection.FOLDER,
    ) -> IngestionJob:
        if not records:
            raise NoMediaError("No image files were provided.")

        if selection == MediaSelection.SELECTED:
            job_type = IngestionJobType.SELECTED_MEDIA
            mode = DispatchMode.sequential_progressive(FixedCount(self._settings.fixed_batch_count))
        elif selection == MediaSelection.FOLDER:
            job_type = IngestionJobType.FOLDER_MEDIA
            mode = DispatchMode.parallel_all(TieredByVolume())
        else:
            raise ValueError(f"Unsupported media selection: {selection!r}.")

        submitter = self._media_submitter_factory(folder_id)
        job = self._repository.create_job(
            job_type=job_type,
            request_payload={
                "folder_id": folder_id,
                "file_count": len(records),
                "total_bytes": sum(record.size_bytes for record in records),
                "discipline": mode.discipline,
            },
        )
        self._schedule(
            executor,
            job,
            self._run_media_ingestion_job,
            job.id,
            list(records),
            submitter,
            mode,
        )
        return job

    def get_job_status(self, *, job_id: uuid.UUID) -> IngestionJob | None:
        return self._repository.get_job(job_id)

    def list_job_statuses(
        self,
        *,
        limit: int = 100,
        job_type: str | None = None,
        status: str | None = None,
    ) -> list[IngestionJob]:
        return self._repository.list_jobs(limit=limit, job_type=job_type, status=status)

    def get_progress(self, job: IngestionJob) -> ProgressState | None:
        return self._engine.progress.get(job.progress_key)

    def _schedule(
        self,
        executor: IngestionTaskExecutor,
        job: IngestionJob,
        task: Callable[..., Any],
        *args: Any,
    ) -> None:
        try:
            executor.submit(task, *args)
        except Exception:
            self._repository.mark_failed(
                job_id=job.id,
                error_message=f"Failed to schedule {job.job_type} ingestion job.",
            )
            raise

    async def _run_user_ingestion_job(
        self,
        job_id: uuid.UUID,
        records: list[UserRecord],
        submitter: SubmissionFunction,
        mode: DispatchMode,
    ) -> None:
        try:
            self._mark_running(job_id)
            summary = await self._engine.ingest_users(
                records,
                submitter,
                mode=mode,
                job_id=str(job_id),
            )
            self._mark_completed(job_id, summary.to_dict())
        except Exception as exc:
            self._mark_job_failed(job_id=job_id, exc=exc)
        finally:
            self._release_progress(job_id)

    async def _run_media_ingestion_job(
        self,
        job_id: uuid.UUID,
        records: list[MediaRecord],
        submitter: SubmissionFunction,
        mode: DispatchMode,
    ) -> None:
        try:
            self._mark_running(job_id)
            summary = await self._engine.ingest_media(
                records,
                submitter,
                mode=mode,
                job_id=str(job_id),
            )
            self._mark_completed(job_id, summary.to_dict())
        except Exception as exc:
            self._mark_job_failed(job_id=job_id, exc=exc)
        finally:
            self._release_progress(job_id)

    def _release_progress(self, job_id: uuid.UUID) -> None:
        # The stored result payload replaces live progress once a job ends.
        self._engine.progress.discard(str(job_id))

    def _mark_running(self, job_id: uuid.UUID) -> None:
        if self._repository.mark_running(job_id=job_id) is None:
            raise RuntimeError(f"Ingestion job not found: {job_id}")

    def _mark_completed(self, job_id: uuid.UUID, result_payload: dict[str, Any]) -> None:
        if self._repository.mark_completed(job_id=job_id, result_payload=result_payload) is None:
            raise RuntimeError(f"Ingestion job not found: {job_id}")

    def _mark_job_failed(self, *, job_id: uuid.UUID, exc: Exception) -> None:
        error_message = f"{type(exc).__name__}: {exc}"
        logger.exception("Ingestion job failed id=%s error=%s", job_id, error_message)
        failed_job = self._repository.mark_failed(
            job_id=job_id,
            error_message=error_message[:2000],
        )
        if failed_job is None:
            logger.error("Unable to mark ingestion job as failed because it was not found id=%s", job_id)


@lru_cache(maxsize=1)
def get_ingestion_orchestrator_service() -> IngestionOrchestratorService:
    return IngestionOrchestratorService()
