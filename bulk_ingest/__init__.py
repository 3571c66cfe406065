"""
bulk_ingest package marker.
"""

from bulk_ingest.aggregator import ResultAggregator, coerce_user_chunk_result, decide_overall_status
from bulk_ingest.base import (
    AggregationInconsistency,
    Chunk,
    ChunkOutcome,
    ChunkSettlement,
    ChunkTransportError,
    Discipline,
    IngestionError,
    IngestionSummary,
    MediaChunkAck,
    OverallStatus,
    ProgressPhase,
    ProgressState,
    RowValidationError,
    SkippedEntry,
    UserChunkResult,
)
from bulk_ingest.dispatcher import ChunkDispatcher, DispatchMode
from bulk_ingest.engine import IngestionEngine, new_job_id
from bulk_ingest.planner import ChunkPlanner, FixedCount, TieredByVolume
from bulk_ingest.progress import ProgressTracker
from bulk_ingest.records import MediaRecord, RecordKind, UserRecord
from bulk_ingest.validator import UserRecordValidator

__all__ = [
    "AggregationInconsistency",
    "Chunk",
    "ChunkDispatcher",
    "ChunkOutcome",
    "ChunkPlanner",
    "ChunkSettlement",
    "ChunkTransportError",
    "Discipline",
    "DispatchMode",
    "FixedCount",
    "IngestionEngine",
    "IngestionError",
    "IngestionSummary",
    "MediaChunkAck",
    "MediaRecord",
    "OverallStatus",
    "ProgressPhase",
    "ProgressState",
    "ProgressTracker",
    "RecordKind",
    "ResultAggregator",
    "RowValidationError",
    "SkippedEntry",
    "TieredByVolume",
    "UserChunkResult",
    "UserRecord",
    "UserRecordValidator",
    "coerce_user_chunk_result",
    "decide_overall_status",
    "new_job_id",
]
