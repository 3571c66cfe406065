"""
app/schemas package marker.
"""

from app.schemas.ingestion_orchestrator import (
    IngestionJobAcceptedResponse,
    IngestionJobStatusResponse,
    IngestionStatusListResponse,
    ProgressStateResponse,
)

__all__ = [
    "IngestionJobAcceptedResponse",
    "IngestionJobStatusResponse",
    "IngestionStatusListResponse",
    "ProgressStateResponse",
]
