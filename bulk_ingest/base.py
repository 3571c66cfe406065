"""
bulk_ingest/base.py

Shared engine types: chunks, chunk outcomes, result payloads, summaries,
progress state and the engine exception hierarchy.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from typing import Any, Protocol

from bulk_ingest.records import Record


class IngestionError(Exception):
    """Base exception for bulk ingestion failures."""


class ChunkTransportError(IngestionError):
    """Raised by a submission function when a chunk's remote call fails."""


class AggregationInconsistency(IngestionError):
    """Raised when a fulfilled chunk's payload is missing expected fields."""


class Discipline:
    PARALLEL_ALL = "parallel_all"
    SEQUENTIAL_PROGRESSIVE = "sequential_progressive"


class ChunkSettlement:
    FULFILLED = "fulfilled"
    REJECTED = "rejected"


class OverallStatus:
    SUCCESS = "success"
    PARTIAL_FAILURE = "partial_failure"
    TOTAL_FAILURE = "total_failure"
    VALIDATION_REJECTED = "validation_rejected"


class ProgressPhase:
    VALIDATING = "validating"
    DISPATCHING = "dispatching"
    AGGREGATING = "aggregating"
    DONE = "done"


ByteProgressCallback = Callable[[int, int], None]


class SubmissionFunction(Protocol):
    """
    Remote submission contract for one chunk.

    Implementations return a payload on success and raise on failure. The
    optional ``on_progress`` callback receives ``(bytes_sent, bytes_total)``.
    """

    def __call__(
        self,
        records: Sequence[Record],
        *,
        on_progress: ByteProgressCallback | None = None,
    ) -> Awaitable[Any]:
        ...


@dataclass(frozen=True)
class RowValidationError:
    """
    One record-level constraint violation.
    """

    row_number: int
    message: str
    column: str | None = None
    value: str | None = None


@dataclass(frozen=True)
class Chunk:
    """
    One contiguous slice of the input sequence, submitted as a unit.
    """

    index: int
    records: tuple[Record, ...]

    @property
    def size(self) -> int:
        return len(self.records)


@dataclass(frozen=True)
class SkippedEntry:
    identifier: str
    reason: str


@dataclass(frozen=True)
class UserChunkResult:
    """
    Per-record breakdown returned by the remote user endpoint for one chunk.
    """

    accepted_count: int
    skipped_count: int
    skipped_entries: tuple[SkippedEntry, ...] = ()


@dataclass(frozen=True)
class MediaChunkAck:
    """
    Opaque success acknowledgement for one media chunk.
    """

    response: Any = None


@dataclass(frozen=True)
class ChunkOutcome:
    """
    Terminal state of one dispatched (or abandoned) chunk.
    """

    chunk_index: int
    settled: str
    record_count: int
    result: Any = None
    failure_reason: str | None = None
    attempted: bool = True

    @property
    def fulfilled(self) -> bool:
        return self.settled == ChunkSettlement.FULFILLED

    @classmethod
    def fulfilled_with(cls, chunk: Chunk, result: Any) -> "ChunkOutcome":
        return cls(
            chunk_index=chunk.index,
            settled=ChunkSettlement.FULFILLED,
            record_count=chunk.size,
            result=result,
        )

    @classmethod
    def rejected_with(cls, chunk: Chunk, reason: str, *, attempted: bool = True) -> "ChunkOutcome":
        return cls(
            chunk_index=chunk.index,
            settled=ChunkSettlement.REJECTED,
            record_count=chunk.size,
            failure_reason=reason,
            attempted=attempted,
        )


@dataclass(frozen=True)
class ChunkFailure:
    chunk_index: int
    reason: str


@dataclass(frozen=True)
class IngestionSummary:
    """
    Consolidated outcome of one ingestion run.

    ``skipped_entries`` is emptied and ``skipped_entries_truncated`` set when
    the itemized list exceeds the display limit; the numeric totals stay exact.
    """

    kind: str
    overall_status: str
    total_records: int = 0
    total_chunks: int = 0
    total_accepted: int = 0
    total_skipped: int = 0
    skipped_entries: tuple[SkippedEntry, ...] = ()
    skipped_entries_truncated: bool = False
    chunks_succeeded: int = 0
    failed_chunk_count: int = 0
    chunks_not_attempted: int = 0
    failures: tuple[ChunkFailure, ...] = ()
    validation_errors: tuple[RowValidationError, ...] = ()

    @property
    def messages(self) -> list[str]:
        """
        Human-readable report lines, chunk failures in ascending index order.
        """

        if self.overall_status == OverallStatus.VALIDATION_REJECTED:
            return [error.message for error in self.validation_errors]

        lines: list[str] = []
        if self.total_accepted:
            lines.append(f"{self.total_accepted} of {self.total_records} records accepted.")
        if self.skipped_entries_truncated:
            lines.append(f"{self.total_skipped} records were skipped.")
        else:
            lines.extend(
                f"Skipped {entry.identifier}: {entry.reason}" for entry in self.skipped_entries
            )
        lines.extend(
            f"Chunk {failure.chunk_index + 1} of {self.total_chunks} failed: {failure.reason}"
            for failure in self.failures
        )
        return lines

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind,
            "overall_status": self.overall_status,
            "total_records": self.total_records,
            "total_chunks": self.total_chunks,
            "total_accepted": self.total_accepted,
            "total_skipped": self.total_skipped,
            "skipped_entries": [
                {"identifier": entry.identifier, "reason": entry.reason}
                for entry in self.skipped_entries
            ],
            "skipped_entries_truncated": self.skipped_entries_truncated,
            "chunks_succeeded": self.chunks_succeeded,
            "failed_chunk_count": self.failed_chunk_count,
            "chunks_not_attempted": self.chunks_not_attempted,
            "failures": [
                {"chunk_index": failure.chunk_index, "reason": failure.reason}
                for failure in self.failures
            ],
            "validation_errors": [
                {
                    "row_number": error.row_number,
                    "column": error.column,
                    "message": error.message,
                    "value": error.value,
                }
                for error in self.validation_errors
            ],
            "messages": self.messages,
        }


@dataclass(frozen=True)
class ProgressState:
    """
    Snapshot of one job's progress.

    ``percent`` covers the whole job; ``chunk_percent`` is the byte-level
    percentage of the chunk currently in flight (sequential mode only).
    """

    percent: int
    phase: str
    total_chunks: int = 0
    chunks_settled: int = 0
    current_chunk: int | None = None
    chunk_percent: int | None = None
