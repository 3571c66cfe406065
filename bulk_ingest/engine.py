"""
bulk_ingest/engine.py

Bulk ingestion engine: validation gate, chunk planning, dispatch, aggregation
and progress mirroring for one ingestion run.
"""

from __future__ import annotations

import logging
from typing import Sequence
from uuid import uuid4

from bulk_ingest.aggregator import DEFAULT_SKIPPED_DISPLAY_LIMIT, ResultAggregator
from bulk_ingest.base import (
    Chunk,
    ChunkOutcome,
    IngestionSummary,
    ProgressPhase,
    SubmissionFunction,
)
from bulk_ingest.dispatcher import ChunkDispatcher, DispatchMode
from bulk_ingest.logging_utils import log_event
from bulk_ingest.planner import ChunkPlanner
from bulk_ingest.progress import ProgressTracker
from bulk_ingest.records import MediaRecord, Record, RecordKind, UserRecord
from bulk_ingest.validator import UserRecordValidator

logger = logging.getLogger(__name__)


def new_job_id() -> str:
    return f"ingest_{uuid4().hex[:12]}"


def _half_up_percent(fraction: float) -> int:
    return int(fraction * 100 + 0.5)


class IngestionEngine:
    """
    Runs bulk ingestion jobs against a caller-supplied submission function.

    The engine owns a ProgressTracker keyed by job id; callers observe
    intermediate progress there, while the awaited return value is the final
    IngestionSummary. Chunk failures never raise out of ``ingest_*``.
    """

    def __init__(
        self,
        *,
        validator: UserRecordValidator | None = None,
        planner: ChunkPlanner | None = None,
        progress: ProgressTracker | None = None,
        skipped_display_limit: int = DEFAULT_SKIPPED_DISPLAY_LIMIT,
    ) -> None:
        self._validator = validator or UserRecordValidator()
        self._planner = planner or ChunkPlanner()
        self._progress = progress or ProgressTracker()
        self._skipped_display_limit = skipped_display_limit

    @property
    def progress(self) -> ProgressTracker:
        return self._progress

    async def ingest(
        self,
        *,
        kind: str,
        records: Sequence[Record],
        submit: SubmissionFunction,
        mode: DispatchMode | None = None,
        job_id: str | None = None,
    ) -> IngestionSummary:
        if kind == RecordKind.USER:
            return await self.ingest_users(records, submit, mode=mode, job_id=job_id)  # type: ignore[arg-type]
        if kind == RecordKind.MEDIA:
            return await self.ingest_media(records, submit, mode=mode, job_id=job_id)  # type: ignore[arg-type]
        raise ValueError(f"Unsupported record kind: {kind!r}.")

    async def ingest_users(
        self,
        records: Sequence[UserRecord],
        submit: SubmissionFunction,
        *,
        mode: DispatchMode | None = None,
        job_id: str | None = None,
    ) -> IngestionSummary:
        """
        Validate every user record, then dispatch only if nothing failed.
        """

        job_id = job_id or new_job_id()
        self._progress.start(job_id)

        errors = self._validator.validate(records)
        if errors:
            log_event(
                logger,
                logging.WARNING,
                "ingestion_validation_rejected",
                job_id=job_id,
                records=len(records),
                violations=len(errors),
            )
            self._progress.update(job_id, percent=0, phase=ProgressPhase.DONE)
            return ResultAggregator.validation_rejected(
                kind=RecordKind.USER,
                total_records=len(records),
                errors=errors,
            )

        return await self._run(
            job_id=job_id,
            kind=RecordKind.USER,
            records=records,
            submit=submit,
            mode=mode or DispatchMode.parallel_all(),
        )

    async def ingest_media(
        self,
        records: Sequence[MediaRecord],
        submit: SubmissionFunction,
        *,
        mode: DispatchMode | None = None,
        job_id: str | None = None,
    ) -> IngestionSummary:
        job_id = job_id or new_job_id()
        self._progress.start(job_id)
        return await self._run(
            job_id=job_id,
            kind=RecordKind.MEDIA,
            records=records,
            submit=submit,
            mode=mode or DispatchMode.parallel_all(),
        )

    async def _run(
        self,
        *,
        job_id: str,
        kind: str,
        records: Sequence[Record],
        submit: SubmissionFunction,
        mode: DispatchMode,
    ) -> IngestionSummary:
        chunks = self._planner.plan(records, mode.sizing)
        total_chunks = len(chunks)
        aggregator = ResultAggregator(
            kind=kind,
            total_chunks=total_chunks,
            total_records=len(records),
            skipped_display_limit=self._skipped_display_limit,
        )

        self._progress.update(
            job_id,
            percent=0,
            phase=ProgressPhase.DISPATCHING,
            total_chunks=total_chunks,
            chunks_settled=0,
        )
        log_event(
            logger,
            logging.INFO,
            "ingestion_started",
            job_id=job_id,
            kind=kind,
            records=len(records),
            chunks=total_chunks,
            discipline=mode.discipline,
            sizing=mode.sizing.name,
        )

        def on_settled(outcome: ChunkOutcome) -> None:
            aggregator.add(outcome)
            settled = aggregator.settled_count
            self._progress.update(
                job_id,
                chunks_settled=settled,
                percent=_half_up_percent(settled / total_chunks),
            )

        def on_chunk_progress(chunk: Chunk, bytes_sent: int, bytes_total: int) -> None:
            chunk_fraction = min(1.0, bytes_sent / bytes_total) if bytes_total > 0 else 1.0
            self._progress.update(
                job_id,
                current_chunk=chunk.index,
                chunk_percent=_half_up_percent(chunk_fraction),
                percent=_half_up_percent((aggregator.settled_count + chunk_fraction) / total_chunks),
            )

        dispatcher = ChunkDispatcher(
            submit,
            on_settled=on_settled,
            on_chunk_progress=on_chunk_progress,
        )
        await dispatcher.dispatch(chunks, mode.discipline)

        self._progress.update(
            job_id,
            phase=ProgressPhase.AGGREGATING,
            current_chunk=None,
            chunk_percent=None,
        )
        summary = aggregator.finalize()

        log_event(
            logger,
            logging.INFO,
            "ingestion_completed",
            job_id=job_id,
            kind=kind,
            status=summary.overall_status,
            accepted=summary.total_accepted,
            skipped=summary.total_skipped,
            failed_chunks=summary.failed_chunk_count,
            chunks=total_chunks,
        )
        self._progress.finish(job_id)
        return summary
