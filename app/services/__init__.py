"""
app/services package marker.
"""

from app.services.ingestion_orchestrator_service import (
    FastAPIBackgroundTaskExecutor,
    IngestionOrchestratorService,
    MediaSelection,
    NoMediaError,
    get_ingestion_orchestrator_service,
)
from app.services.spreadsheet_service import SpreadsheetFormatError, UserSpreadsheetReader

__all__ = [
    "FastAPIBackgroundTaskExecutor",
    "IngestionOrchestratorService",
    "MediaSelection",
    "NoMediaError",
    "SpreadsheetFormatError",
    "UserSpreadsheetReader",
    "get_ingestion_orchestrator_service",
]
