"""
bulk_ingest/dispatcher.py

Dispatch modes and the chunk dispatcher.

Two concurrency disciplines are supported:

    parallel_all            every chunk is submitted at once and the dispatcher
                            waits for all of them to settle; one failure never
                            cancels its siblings.
    sequential_progressive  one chunk in flight at a time with byte-level
                            progress; the first failure aborts the run and the
                            remaining chunks are reported as not attempted.

Chunks are always submitted in ascending index order.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass

from bulk_ingest.base import (
    ByteProgressCallback,
    Chunk,
    ChunkOutcome,
    Discipline,
    SubmissionFunction,
)
from bulk_ingest.logging_utils import log_event
from bulk_ingest.planner import ChunkSizingPolicy, FixedCount, TieredByVolume

logger = logging.getLogger(__name__)

OutcomeCallback = Callable[[ChunkOutcome], None]
ChunkProgressCallback = Callable[[Chunk, int, int], None]


@dataclass(frozen=True)
class DispatchMode:
    """
    Concurrency discipline paired with a chunk sizing policy.
    """

    discipline: str
    sizing: ChunkSizingPolicy

    @classmethod
    def parallel_all(cls, sizing: ChunkSizingPolicy | None = None) -> "DispatchMode":
        return cls(discipline=Discipline.PARALLEL_ALL, sizing=sizing or TieredByVolume())

    @classmethod
    def sequential_progressive(cls, sizing: ChunkSizingPolicy | None = None) -> "DispatchMode":
        return cls(discipline=Discipline.SEQUENTIAL_PROGRESSIVE, sizing=sizing or FixedCount())


class ChunkDispatcher:
    """
    Sends chunks to a remote submission function and captures every outcome.

    Submission errors are folded into rejected outcomes; they never propagate
    to the caller. ``on_settled`` runs on the event loop as each chunk reaches
    a terminal state.
    """

    def __init__(
        self,
        submit: SubmissionFunction,
        *,
        on_settled: OutcomeCallback | None = None,
        on_chunk_progress: ChunkProgressCallback | None = None,
    ) -> None:
        self._submit = submit
        self._on_settled = on_settled
        self._on_chunk_progress = on_chunk_progress

    async def dispatch(self, chunks: Sequence[Chunk], discipline: str) -> list[ChunkOutcome]:
        if discipline == Discipline.PARALLEL_ALL:
            return await self.dispatch_parallel(chunks)
        if discipline == Discipline.SEQUENTIAL_PROGRESSIVE:
            return await self.dispatch_sequential(chunks)
        raise ValueError(f"Unsupported dispatch discipline: {discipline!r}.")

    async def dispatch_parallel(self, chunks: Sequence[Chunk]) -> list[ChunkOutcome]:
        outcomes = await asyncio.gather(
            *(self._settle(chunk, track_bytes=False) for chunk in chunks)
        )
        return list(outcomes)

    async def dispatch_sequential(self, chunks: Sequence[Chunk]) -> list[ChunkOutcome]:
        outcomes: list[ChunkOutcome] = []
        for position, chunk in enumerate(chunks):
            outcome = await self._settle(chunk, track_bytes=True)
            outcomes.append(outcome)
            if outcome.fulfilled:
                continue

            remaining = chunks[position + 1:]
            log_event(
                logger,
                logging.WARNING,
                "sequential_dispatch_aborted",
                failed_chunk=chunk.index,
                chunks_not_attempted=len(remaining),
                reason=outcome.failure_reason,
            )
            reason = f"Not attempted: chunk {chunk.index + 1} failed."
            for abandoned in remaining:
                outcomes.append(self._record(ChunkOutcome.rejected_with(abandoned, reason, attempted=False)))
            break
        return outcomes

    async def _settle(self, chunk: Chunk, *, track_bytes: bool) -> ChunkOutcome:
        on_progress = self._byte_progress_for(chunk) if track_bytes else None
        try:
            result = await self._submit(chunk.records, on_progress=on_progress)
        except Exception as exc:
            outcome = ChunkOutcome.rejected_with(chunk, describe_failure(exc))
        else:
            outcome = ChunkOutcome.fulfilled_with(chunk, result)

        log_event(
            logger,
            logging.INFO if outcome.fulfilled else logging.WARNING,
            "chunk_settled",
            chunk_index=chunk.index,
            records=chunk.size,
            settled=outcome.settled,
            reason=outcome.failure_reason,
        )
        return self._record(outcome)

    def _record(self, outcome: ChunkOutcome) -> ChunkOutcome:
        if self._on_settled is not None:
            self._on_settled(outcome)
        return outcome

    def _byte_progress_for(self, chunk: Chunk) -> ByteProgressCallback | None:
        callback = self._on_chunk_progress
        if callback is None:
            return None

        def on_progress(bytes_sent: int, bytes_total: int) -> None:
            callback(chunk, bytes_sent, bytes_total)

        return on_progress


def describe_failure(exc: BaseException) -> str:
    message = str(exc).strip()
    if not message:
        return type(exc).__name__
    return message
