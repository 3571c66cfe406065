"""
tests/test_chunk_planner.py

Pytest unit tests for ChunkPlanner and the chunk sizing policies.

Coverage
--------
- Volume tier boundaries
- Fixed-count batches, including tiny and empty inputs
- Partition completeness for both policies
- Determinism across repeated calls
"""

from __future__ import annotations

import pytest

from bulk_ingest.planner import ChunkPlanner, FixedCount, TieredByVolume
from bulk_ingest.records import MediaRecord


def _records(count: int) -> list[MediaRecord]:
    return [MediaRecord(filename=f"img-{i}.png", payload=bytes([i % 256])) for i in range(count)]


@pytest.fixture()
def planner() -> ChunkPlanner:
    return ChunkPlanner()


# ---------------------------------------------------------------------------
# Tiered by volume
# ---------------------------------------------------------------------------


class TestTieredByVolume:
    @pytest.mark.parametrize(
        "total, expected_size",
        [
            (1, 50),
            (200, 50),
            (201, 100),
            (500, 100),
            (501, 150),
            (1000, 150),
            (1001, 200),
            (5000, 200),
        ],
    )
    def test_tier_boundaries(self, total: int, expected_size: int) -> None:
        assert TieredByVolume().chunk_size(total) == expected_size

    def test_200_records_make_four_chunks_of_50(self, planner: ChunkPlanner) -> None:
        chunks = planner.plan(_records(200), TieredByVolume())
        assert [chunk.size for chunk in chunks] == [50, 50, 50, 50]

    def test_500_records_make_five_chunks_of_100(self, planner: ChunkPlanner) -> None:
        chunks = planner.plan(_records(500), TieredByVolume())
        assert [chunk.size for chunk in chunks] == [100] * 5

    def test_1000_records_last_chunk_holds_remainder(self, planner: ChunkPlanner) -> None:
        chunks = planner.plan(_records(1000), TieredByVolume())
        assert len(chunks) == 7
        assert [chunk.size for chunk in chunks[:-1]] == [150] * 6
        assert chunks[-1].size == 100

    def test_1001_records_use_chunks_of_200(self, planner: ChunkPlanner) -> None:
        chunks = planner.plan(_records(1001), TieredByVolume())
        assert [chunk.size for chunk in chunks] == [200, 200, 200, 200, 200, 1]


# ---------------------------------------------------------------------------
# Fixed count
# ---------------------------------------------------------------------------


class TestFixedCount:
    def test_ten_records_split_4_4_2(self, planner: ChunkPlanner) -> None:
        chunks = planner.plan(_records(10), FixedCount())
        assert [chunk.size for chunk in chunks] == [4, 4, 2]

    def test_single_record_is_one_chunk(self, planner: ChunkPlanner) -> None:
        chunks = planner.plan(_records(1), FixedCount())
        assert [chunk.size for chunk in chunks] == [1]

    def test_empty_input_has_no_chunks(self, planner: ChunkPlanner) -> None:
        assert planner.plan([], FixedCount()) == []

    def test_exact_multiple_makes_three_equal_batches(self, planner: ChunkPlanner) -> None:
        chunks = planner.plan(_records(9), FixedCount())
        assert [chunk.size for chunk in chunks] == [3, 3, 3]

    def test_custom_batch_count(self, planner: ChunkPlanner) -> None:
        chunks = planner.plan(_records(10), FixedCount(batches=4))
        assert [chunk.size for chunk in chunks] == [3, 3, 3, 1]

    def test_rejects_non_positive_batch_count(self) -> None:
        with pytest.raises(ValueError):
            FixedCount(batches=0)


# ---------------------------------------------------------------------------
# Partition properties
# ---------------------------------------------------------------------------


@pytest.mark.parametrize("policy", [TieredByVolume(), FixedCount()], ids=["tiered", "fixed"])
@pytest.mark.parametrize("total", [0, 1, 2, 3, 49, 50, 51, 199, 200, 201, 777, 1001, 2345])
def test_partition_is_complete_and_ordered(planner: ChunkPlanner, policy, total: int) -> None:
    records = _records(total)
    chunks = planner.plan(records, policy)

    rebuilt = [record for chunk in chunks for record in chunk.records]
    assert rebuilt == records
    assert sum(chunk.size for chunk in chunks) == total
    assert [chunk.index for chunk in chunks] == list(range(len(chunks)))
    assert all(chunk.size >= 1 for chunk in chunks)
    if total:
        assert len(chunks) >= 1


@pytest.mark.parametrize("policy", [TieredByVolume(), FixedCount()], ids=["tiered", "fixed"])
def test_planning_is_deterministic(planner: ChunkPlanner, policy) -> None:
    records = _records(637)
    first = planner.plan(records, policy)
    second = ChunkPlanner().plan(records, policy)
    assert first == second
