"""
bulk_ingest/aggregator.py

Merges per-chunk outcomes into one IngestionSummary.

Outcomes may arrive in any network completion order; the summary is always
assembled in ascending chunk index order so skipped entries keep the original
record order and chunk failures are reported lowest index first.
"""

from __future__ import annotations

from typing import Any, Mapping, Sequence

from bulk_ingest.base import (
    AggregationInconsistency,
    ChunkFailure,
    ChunkOutcome,
    IngestionError,
    IngestionSummary,
    OverallStatus,
    RowValidationError,
    SkippedEntry,
    UserChunkResult,
)
from bulk_ingest.records import RecordKind

DEFAULT_SKIPPED_DISPLAY_LIMIT = 50

USER_RESULT_FIELDS: tuple[str, ...] = ("acceptedCount", "skippedCount", "skippedEntries")


def decide_overall_status(*, failed_chunk_count: int, total_chunks: int) -> str:
    """
    Map chunk failure counts to the run's overall status.
    """

    if total_chunks > 0 and failed_chunk_count >= total_chunks:
        return OverallStatus.TOTAL_FAILURE
    if failed_chunk_count > 0:
        return OverallStatus.PARTIAL_FAILURE
    return OverallStatus.SUCCESS


def coerce_user_chunk_result(payload: Any) -> UserChunkResult:
    """
    Read a remote user-ingestion payload into a UserChunkResult.

    Missing or mistyped fields raise AggregationInconsistency; nothing is
    defaulted to zero.
    """

    if isinstance(payload, UserChunkResult):
        return payload
    if not isinstance(payload, Mapping):
        raise AggregationInconsistency(
            f"User chunk payload must be an object, got {type(payload).__name__}."
        )

    missing = [name for name in USER_RESULT_FIELDS if name not in payload]
    if missing:
        raise AggregationInconsistency(
            f"User chunk payload is missing fields: {', '.join(missing)}."
        )

    accepted = _require_count(payload["acceptedCount"], "acceptedCount")
    skipped = _require_count(payload["skippedCount"], "skippedCount")

    raw_entries = payload["skippedEntries"]
    if not isinstance(raw_entries, Sequence) or isinstance(raw_entries, (str, bytes)):
        raise AggregationInconsistency("skippedEntries must be a list.")

    entries: list[SkippedEntry] = []
    for position, raw_entry in enumerate(raw_entries):
        if not isinstance(raw_entry, Mapping) or "identifier" not in raw_entry or "reason" not in raw_entry:
            raise AggregationInconsistency(
                f"skippedEntries[{position}] must carry identifier and reason."
            )
        entries.append(
            SkippedEntry(identifier=str(raw_entry["identifier"]), reason=str(raw_entry["reason"]))
        )

    return UserChunkResult(
        accepted_count=accepted,
        skipped_count=skipped,
        skipped_entries=tuple(entries),
    )


def _require_count(value: Any, name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise AggregationInconsistency(f"{name} must be a non-negative integer, got {value!r}.")
    return value


class ResultAggregator:
    """
    Accumulates chunk outcomes for one run and builds the final summary.

    ``add`` may be called in any order; ``finalize`` requires that every
    expected chunk has reported.
    """

    def __init__(
        self,
        *,
        kind: str,
        total_chunks: int,
        total_records: int,
        skipped_display_limit: int = DEFAULT_SKIPPED_DISPLAY_LIMIT,
    ) -> None:
        if kind not in (RecordKind.MEDIA, RecordKind.USER):
            raise ValueError(f"Unsupported record kind: {kind!r}.")
        self._kind = kind
        self._total_chunks = total_chunks
        self._total_records = total_records
        self._skipped_display_limit = max(0, skipped_display_limit)
        self._outcomes: dict[int, ChunkOutcome] = {}

    @property
    def settled_count(self) -> int:
        return len(self._outcomes)

    @property
    def is_complete(self) -> bool:
        return len(self._outcomes) == self._total_chunks

    def add(self, outcome: ChunkOutcome) -> None:
        index = outcome.chunk_index
        if not 0 <= index < self._total_chunks:
            raise ValueError(f"Chunk index {index} is outside 0..{self._total_chunks - 1}.")
        if index in self._outcomes:
            raise ValueError(f"Chunk {index} has already reported an outcome.")
        self._outcomes[index] = outcome

    def finalize(self) -> IngestionSummary:
        if not self.is_complete:
            missing = self._total_chunks - len(self._outcomes)
            raise IngestionError(
                f"Cannot finalize: {missing} of {self._total_chunks} chunks have not reported."
            )

        total_accepted = 0
        total_skipped = 0
        chunks_succeeded = 0
        chunks_not_attempted = 0
        skipped_entries: list[SkippedEntry] = []
        failures: list[ChunkFailure] = []

        for index in sorted(self._outcomes):
            outcome = self._outcomes[index]
            if not outcome.fulfilled:
                failures.append(ChunkFailure(chunk_index=index, reason=outcome.failure_reason or "Unknown error"))
                if not outcome.attempted:
                    chunks_not_attempted += 1
                continue

            if self._kind == RecordKind.USER:
                try:
                    result = coerce_user_chunk_result(outcome.result)
                except AggregationInconsistency as exc:
                    failures.append(ChunkFailure(chunk_index=index, reason=str(exc)))
                    continue
                total_accepted += result.accepted_count
                total_skipped += result.skipped_count
                skipped_entries.extend(result.skipped_entries)
            else:
                total_accepted += outcome.record_count

            chunks_succeeded += 1

        truncated = len(skipped_entries) > self._skipped_display_limit
        return IngestionSummary(
            kind=self._kind,
            overall_status=decide_overall_status(
                failed_chunk_count=len(failures),
                total_chunks=self._total_chunks,
            ),
            total_records=self._total_records,
            total_chunks=self._total_chunks,
            total_accepted=total_accepted,
            total_skipped=total_skipped,
            skipped_entries=() if truncated else tuple(skipped_entries),
            skipped_entries_truncated=truncated,
            chunks_succeeded=chunks_succeeded,
            failed_chunk_count=len(failures),
            chunks_not_attempted=chunks_not_attempted,
            failures=tuple(failures),
        )

    @staticmethod
    def validation_rejected(
        *,
        kind: str,
        total_records: int,
        errors: Sequence[RowValidationError],
    ) -> IngestionSummary:
        return IngestionSummary(
            kind=kind,
            overall_status=OverallStatus.VALIDATION_REJECTED,
            total_records=total_records,
            validation_errors=tuple(errors),
        )
