"""Segment store implementations."""

from arc_timeline.memory.segment_store import (
    ActiveSegmentStore,
    FinalizedSegmentStore,
    verify_disjoint,
)

__all__ = [
    "ActiveSegmentStore",
    "FinalizedSegmentStore",
    "verify_disjoint",
]
