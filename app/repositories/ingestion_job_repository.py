"""
Repository for ingestion job lifecycle tracking and status lookup.

Jobs live in process memory for the lifetime of the service.
"""

from __future__ import annotations

import threading
import uuid
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Any


class IngestionJobType:
    USERS = "users"
    FOLDER_MEDIA = "folder_media"
    SELECTED_MEDIA = "selected_media"


class IngestionJobStatus:
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


_FINISHED_STATUSES = frozenset({IngestionJobStatus.COMPLETED, IngestionJobStatus.FAILED})


@dataclass(frozen=True)
class IngestionJob:
    id: uuid.UUID
    job_type: str
    status: str
    created_at: datetime
    updated_at: datetime
    request_payload: dict[str, Any] | None = None
    result_payload: dict[str, Any] | None = None
    error_message: str | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None

    @property
    def progress_key(self) -> str:
        return str(self.id)


class IngestionJobRepository:
    """
    Keeps every pending or running job and the newest ``max_finished_jobs``
    completed or failed ones.
    """

    def __init__(self, *, max_finished_jobs: int = 1000) -> None:
        self._jobs: dict[uuid.UUID, IngestionJob] = {}
        self._max_finished_jobs = max(1, max_finished_jobs)
        self._lock = threading.Lock()

    def create_job(
        self,
        *,
        job_type: str,
        request_payload: dict[str, Any] | None = None,
    ) -> IngestionJob:
        now = datetime.now(timezone.utc)
        job = IngestionJob(
            id=uuid.uuid4(),
            job_type=job_type,
            status=IngestionJobStatus.PENDING,
            created_at=now,
            updated_at=now,
            request_payload=request_payload,
        )
        with self._lock:
            self._jobs[job.id] = job
        return job

    def get_job(self, job_id: uuid.UUID) -> IngestionJob | None:
        with self._lock:
            return self._jobs.get(job_id)

    def list_jobs(
        self,
        *,
        limit: int = 100,
        job_type: str | None = None,
        status: str | None = None,
    ) -> list[IngestionJob]:
        with self._lock:
            jobs = list(self._jobs.values())

        if job_type:
            jobs = [job for job in jobs if job.job_type == job_type]
        if status:
            jobs = [job for job in jobs if job.status == status]

        jobs.sort(key=lambda job: job.created_at, reverse=True)
        return jobs[: max(1, limit)]

    def mark_running(self, *, job_id: uuid.UUID) -> IngestionJob | None:
        return self._update(
            job_id,
            status=IngestionJobStatus.RUNNING,
            started_at=datetime.now(timezone.utc),
            completed_at=None,
            error_message=None,
        )

    def mark_completed(
        self,
        *,
        job_id: uuid.UUID,
        result_payload: dict[str, Any] | None = None,
    ) -> IngestionJob | None:
        return self._update(
            job_id,
            status=IngestionJobStatus.COMPLETED,
            completed_at=datetime.now(timezone.utc),
            result_payload=result_payload,
            error_message=None,
        )

    def mark_failed(
        self,
        *,
        job_id: uuid.UUID,
        error_message: str,
        result_payload: dict[str, Any] | None = None,
    ) -> IngestionJob | None:
        changes: dict[str, Any] = {
            "status": IngestionJobStatus.FAILED,
            "completed_at": datetime.now(timezone.utc),
            "error_message": error_message,
        }
        if result_payload is not None:
            changes["result_payload"] = result_payload
        return self._update(job_id, **changes)

    def _update(self, job_id: uuid.UUID, **changes: Any) -> IngestionJob | None:
        with self._lock:
            job = self._jobs.get(job_id)
            if job is None:
                return None
            updated = replace(job, updated_at=datetime.now(timezone.utc), **changes)
            self._jobs[job_id] = updated
            if updated.status in _FINISHED_STATUSES:
                self._evict_finished_locked()
            return updated

    def _evict_finished_locked(self) -> None:
        finished = sorted(
            (job for job in self._jobs.values() if job.status in _FINISHED_STATUSES),
            key=lambda job: job.completed_at or job.updated_at,
        )
        for job in finished[: max(0, len(finished) - self._max_finished_jobs)]:
            del self._jobs[job.id]
