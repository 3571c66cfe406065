"""
bulk_ingest/planner.py

Chunk sizing policies and the chunk planner.

Chunk boundaries are a pure function of the record count and the policy.
"""

from __future__ import annotations

import math
from typing import Protocol, Sequence

from bulk_ingest.base import Chunk
from bulk_ingest.records import Record


# ---------------------------------------------------------------------------
# Volume tiers: record-count thresholds are inclusive upper bounds
# ---------------------------------------------------------------------------

_VOLUME_TIERS: tuple[tuple[int, int], ...] = (
    (200,  50),
    (500,  100),
    (1000, 150),
)
_LARGEST_CHUNK_SIZE = 200

DEFAULT_FIXED_BATCH_COUNT = 3


class ChunkSizingPolicy(Protocol):
    name: str

    def chunk_size(self, total: int) -> int:
        ...


class TieredByVolume:
    """Chunk size grows with the batch volume."""

    name = "tiered_by_volume"

    def chunk_size(self, total: int) -> int:
        for threshold, size in _VOLUME_TIERS:
            if total <= threshold:
                return size
        return _LARGEST_CHUNK_SIZE

    def __eq__(self, other: object) -> bool:
        return isinstance(other, TieredByVolume)

    def __hash__(self) -> int:
        return hash(self.name)

    def __repr__(self) -> str:
        return "TieredByVolume()"


class FixedCount:
    """
    Splits the batch into ``batches`` equal slices of ``ceil(total / batches)``
    records; the last slice holds the remainder.
    """

    name = "fixed_count"

    def __init__(self, batches: int = DEFAULT_FIXED_BATCH_COUNT) -> None:
        if batches < 1:
            raise ValueError("batches must be at least 1.")
        self.batches = batches

    def chunk_size(self, total: int) -> int:
        return math.ceil(total / self.batches)

    def __eq__(self, other: object) -> bool:
        return isinstance(other, FixedCount) and other.batches == self.batches

    def __hash__(self) -> int:
        return hash((self.name, self.batches))

    def __repr__(self) -> str:
        return f"FixedCount(batches={self.batches})"


class ChunkPlanner:
    """
    Partitions an ordered record sequence into contiguous chunks.
    """

    def plan(self, records: Sequence[Record], policy: ChunkSizingPolicy) -> list[Chunk]:
        total = len(records)
        if total == 0:
            return []

        size = policy.chunk_size(total)
        if size < 1:
            raise ValueError(f"{policy!r} produced an invalid chunk size: {size}.")

        return [
            Chunk(index=index, records=tuple(records[start:start + size]))
            for index, start in enumerate(range(0, total, size))
        ]
