"""
bulk_ingest/progress.py

Per-job progress bookkeeping.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from dataclasses import replace
from typing import Any

from bulk_ingest.base import ProgressPhase, ProgressState

logger = logging.getLogger(__name__)

ProgressSink = Callable[[str, ProgressState], None]


class ProgressTracker:
    """
    Map from job identifier to its latest ProgressState.

    Updates may arrive from transport worker threads, so all reads and writes
    go through one lock. Sinks are notified after every update; a failing sink
    is logged and never interrupts ingestion.
    """

    def __init__(self, sinks: list[ProgressSink] | None = None) -> None:
        self._states: dict[str, ProgressState] = {}
        self._sinks: list[ProgressSink] = list(sinks or [])
        self._lock = threading.Lock()

    def add_sink(self, sink: ProgressSink) -> None:
        with self._lock:
            self._sinks.append(sink)

    def start(self, job_id: str) -> ProgressState:
        return self._publish(job_id, ProgressState(percent=0, phase=ProgressPhase.VALIDATING))

    def update(self, job_id: str, **changes: Any) -> ProgressState:
        """
        Apply ``changes`` on top of the job's current state and publish it.
        """

        with self._lock:
            current = self._states.get(job_id) or ProgressState(
                percent=0,
                phase=ProgressPhase.VALIDATING,
            )
            state = replace(current, **changes)
            state = replace(state, percent=min(100, max(0, state.percent)))
            self._states[job_id] = state
            sinks = list(self._sinks)
        self._notify(sinks, job_id, state)
        return state

    def finish(self, job_id: str) -> ProgressState:
        return self.update(
            job_id,
            percent=100,
            phase=ProgressPhase.DONE,
            current_chunk=None,
            chunk_percent=None,
        )

    def get(self, job_id: str) -> ProgressState | None:
        with self._lock:
            return self._states.get(job_id)

    def snapshot(self) -> dict[str, ProgressState]:
        with self._lock:
            return dict(self._states)

    def discard(self, job_id: str) -> None:
        with self._lock:
            self._states.pop(job_id, None)

    def _publish(self, job_id: str, state: ProgressState) -> ProgressState:
        with self._lock:
            self._states[job_id] = state
            sinks = list(self._sinks)
        self._notify(sinks, job_id, state)
        return state

    @staticmethod
    def _notify(sinks: list[ProgressSink], job_id: str, state: ProgressState) -> None:
        for sink in sinks:
            try:
                sink(job_id, state)
            except Exception:
                logger.exception("Progress sink failed job_id=%s phase=%s", job_id, state.phase)
