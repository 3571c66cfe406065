"""
tests/test_ingestion_engine.py

End-to-end engine tests against in-process fake submission functions.
"""

from __future__ import annotations

import asyncio
import unittest

from bulk_ingest.base import ChunkTransportError, OverallStatus, ProgressPhase, ProgressState
from bulk_ingest.dispatcher import DispatchMode
from bulk_ingest.engine import IngestionEngine, new_job_id
from bulk_ingest.planner import FixedCount
from bulk_ingest.progress import ProgressTracker
from bulk_ingest.records import MediaRecord, RecordKind, UserRecord


def _users(count: int) -> list[UserRecord]:
    return [
        UserRecord(
            username=f"user{i:04d}",
            email=f"user{i:04d}@example.com",
            phone="5550100",
            password="password123",
        )
        for i in range(count)
    ]


def _images(count: int) -> list[MediaRecord]:
    return [MediaRecord(filename=f"img-{i}.png", payload=b"\x89PNG" * 25, content_type="image/png") for i in range(count)]


class FakeUserDirectory:
    """Accepts every user except those whose email is in ``duplicates``."""

    def __init__(self, duplicates: set[str] | None = None, failing_calls: set[int] | None = None) -> None:
        self.duplicates = duplicates or set()
        self.failing_calls = failing_calls or set()
        self.batches: list[int] = []

    async def __call__(self, records, *, on_progress=None):
        call_number = len(self.batches)
        self.batches.append(len(records))
        if call_number in self.failing_calls:
            raise ChunkTransportError("Service unavailable")
        skipped = [
            {"identifier": record.email, "reason": "Email already registered"}
            for record in records
            if record.email in self.duplicates
        ]
        return {
            "acceptedCount": len(records) - len(skipped),
            "skippedCount": len(skipped),
            "skippedEntries": skipped,
        }


class FakeFolderStore:
    def __init__(self, failing_calls: set[int] | None = None) -> None:
        self.failing_calls = failing_calls or set()
        self.batches: list[list[str]] = []

    async def __call__(self, records, *, on_progress=None):
        call_number = len(self.batches)
        self.batches.append([record.filename for record in records])
        total = sum(record.size_bytes for record in records)
        if on_progress is not None:
            on_progress(total // 2, total)
        if call_number in self.failing_calls:
            raise ChunkTransportError("Upload failed")
        if on_progress is not None:
            on_progress(total, total)
        return {"uploaded": len(records)}


class TestUserIngestion(unittest.TestCase):
    def setUp(self) -> None:
        self.states: list[tuple[str, ProgressState]] = []
        self.engine = IngestionEngine(
            progress=ProgressTracker(sinks=[lambda job_id, state: self.states.append((job_id, state))])
        )

    def test_validation_failure_dispatches_nothing(self) -> None:
        records = _users(3)
        records[1] = UserRecord(username="bob", email="bob@example.com", phone="5550100", password="abcd")
        directory = FakeUserDirectory()

        summary = asyncio.run(self.engine.ingest_users(records, directory, job_id="job-1"))

        self.assertEqual(directory.batches, [])
        self.assertEqual(summary.overall_status, OverallStatus.VALIDATION_REJECTED)
        self.assertEqual(summary.total_chunks, 0)
        self.assertEqual(len(summary.validation_errors), 1)
        self.assertIn("Row 2", summary.validation_errors[0].message)
        self.assertEqual(self.engine.progress.get("job-1"), ProgressState(percent=0, phase=ProgressPhase.DONE))

    def test_successful_run_uses_volume_tiers(self) -> None:
        directory = FakeUserDirectory(duplicates={"user0003@example.com"})

        summary = asyncio.run(self.engine.ingest_users(_users(250), directory))

        self.assertEqual(sorted(directory.batches), [50, 100, 100])
        self.assertEqual(summary.kind, RecordKind.USER)
        self.assertEqual(summary.overall_status, OverallStatus.SUCCESS)
        self.assertEqual(summary.total_chunks, 3)
        self.assertEqual(summary.total_accepted, 249)
        self.assertEqual(summary.total_skipped, 1)
        self.assertEqual(summary.skipped_entries[0].identifier, "user0003@example.com")

    def test_failed_chunk_yields_partial_failure(self) -> None:
        directory = FakeUserDirectory(failing_calls={0})

        summary = asyncio.run(self.engine.ingest_users(_users(120), directory))

        self.assertEqual(summary.overall_status, OverallStatus.PARTIAL_FAILURE)
        self.assertEqual(summary.failed_chunk_count, 1)
        self.assertEqual(summary.total_accepted, 70)
        self.assertEqual(summary.failures[0].reason, "Service unavailable")

    def test_final_progress_is_done_at_100(self) -> None:
        summary = asyncio.run(self.engine.ingest_users(_users(10), FakeUserDirectory(), job_id="job-2"))

        self.assertEqual(summary.overall_status, OverallStatus.SUCCESS)
        final = self.engine.progress.get("job-2")
        self.assertEqual(final.percent, 100)
        self.assertEqual(final.phase, ProgressPhase.DONE)
        phases = [state.phase for job_id, state in self.states if job_id == "job-2"]
        self.assertEqual(phases[0], ProgressPhase.VALIDATING)
        self.assertIn(ProgressPhase.DISPATCHING, phases)
        self.assertIn(ProgressPhase.AGGREGATING, phases)

    def test_empty_input_is_success_without_dispatch(self) -> None:
        directory = FakeUserDirectory()

        summary = asyncio.run(self.engine.ingest_users([], directory))

        self.assertEqual(summary.overall_status, OverallStatus.SUCCESS)
        self.assertEqual(summary.total_chunks, 0)
        self.assertEqual(directory.batches, [])


class TestMediaIngestion(unittest.TestCase):
    def setUp(self) -> None:
        self.states: list[ProgressState] = []
        self.engine = IngestionEngine(
            progress=ProgressTracker(sinks=[lambda job_id, state: self.states.append(state)])
        )

    def test_sequential_progress_is_cumulative_and_monotonic(self) -> None:
        store = FakeFolderStore()

        summary = asyncio.run(
            self.engine.ingest_media(
                _images(10),
                store,
                mode=DispatchMode.sequential_progressive(FixedCount(3)),
            )
        )

        self.assertEqual([len(batch) for batch in store.batches], [4, 4, 2])
        self.assertEqual(summary.overall_status, OverallStatus.SUCCESS)
        self.assertEqual(summary.total_accepted, 10)

        percents = [state.percent for state in self.states]
        self.assertEqual(percents, sorted(percents))
        for expected in (17, 33, 50, 67, 83, 100):
            self.assertIn(expected, percents)
        chunk_percents = {state.chunk_percent for state in self.states if state.chunk_percent is not None}
        self.assertEqual(chunk_percents, {50, 100})
        self.assertEqual(self.states[-1].phase, ProgressPhase.DONE)
        self.assertIsNone(self.states[-1].current_chunk)

    def test_sequential_failure_abandons_remaining_chunks(self) -> None:
        store = FakeFolderStore(failing_calls={1})

        summary = asyncio.run(
            self.engine.ingest_media(_images(10), store, mode=DispatchMode.sequential_progressive())
        )

        self.assertEqual(len(store.batches), 2)
        self.assertEqual(summary.overall_status, OverallStatus.PARTIAL_FAILURE)
        self.assertEqual(summary.failed_chunk_count, 2)
        self.assertEqual(summary.chunks_not_attempted, 1)
        self.assertEqual(summary.total_accepted, 4)
        self.assertEqual(
            summary.messages,
            [
                "4 of 10 records accepted.",
                "Chunk 2 of 3 failed: Upload failed",
                "Chunk 3 of 3 failed: Not attempted: chunk 2 failed.",
            ],
        )

    def test_parallel_total_failure(self) -> None:
        store = FakeFolderStore(failing_calls={0, 1})

        summary = asyncio.run(self.engine.ingest_media(_images(60), store))

        self.assertEqual(summary.total_chunks, 2)
        self.assertEqual(summary.overall_status, OverallStatus.TOTAL_FAILURE)
        self.assertEqual(summary.total_accepted, 0)

    def test_ingest_dispatches_by_kind(self) -> None:
        summary = asyncio.run(
            self.engine.ingest(kind=RecordKind.MEDIA, records=_images(3), submit=FakeFolderStore())
        )
        self.assertEqual(summary.kind, RecordKind.MEDIA)

        with self.assertRaises(ValueError):
            asyncio.run(self.engine.ingest(kind="video", records=[], submit=FakeFolderStore()))


class TestJobIds(unittest.TestCase):
    def test_job_ids_are_unique_and_prefixed(self) -> None:
        ids = {new_job_id() for _ in range(100)}
        self.assertEqual(len(ids), 100)
        self.assertTrue(all(job_id.startswith("ingest_") and len(job_id) == 19 for job_id in ids))


if __name__ == "__main__":
    unittest.main()
