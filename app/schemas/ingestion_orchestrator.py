"""
Schemas for bulk ingestion trigger and status endpoints.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field


class IngestionJobAcceptedResponse(BaseModel):
    job_id: UUID
    job_type: str
    status: str
    created_at: datetime
    request_payload: dict[str, Any] | None = None


class ProgressStateResponse(BaseModel):
    """
    Live progress of a running or finished job.
    """

    percent: int = Field(..., ge=0, le=100)
    phase: str
    total_chunks: int = Field(default=0, ge=0)
    chunks_settled: int = Field(default=0, ge=0)
    current_chunk: int | None = None
    chunk_percent: int | None = Field(default=None, ge=0, le=100)


class IngestionJobStatusResponse(BaseModel):
    job_id: UUID
    job_type: str
    status: str
    created_at: datetime
    updated_at: datetime
    started_at: datetime | None = None
    completed_at: datetime | None = None
    request_payload: dict[str, Any] | None = None
    result_payload: dict[str, Any] | None = None
    error_message: str | None = None
    progress: ProgressStateResponse | None = None


class IngestionStatusListResponse(BaseModel):
    jobs: list[IngestionJobStatusResponse] = Field(default_factory=list)
