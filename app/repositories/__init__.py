"""
app/repositories package marker.
"""

from app.repositories.ingestion_job_repository import (
    IngestionJob,
    IngestionJobRepository,
    IngestionJobStatus,
    IngestionJobType,
)

__all__ = [
    "IngestionJob",
    "IngestionJobRepository",
    "IngestionJobStatus",
    "IngestionJobType",
]
