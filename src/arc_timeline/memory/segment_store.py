"""In-memory segment stores: the revisable active set and the finalized archive.

Both stores are arenas keyed by segment id. Dict insertion order is the
chain order (ascending start). Chain links on the segments are ids, so
removing a segment is a dict deletion plus repair of its neighbours' links.
"""

from __future__ import annotations

from typing import Iterable, Iterator

from arc_timeline.errors import TimelineInvariantError
from arc_timeline.schemas import Segment


class ActiveSegmentStore:
    """Ordered, mutable suffix of the timeline chain.

    Every segment here may still be extended by the builder or rewritten by
    a merge. At most the last segment is open-ended.
    """

    def __init__(self) -> None:
        self._segments: dict[str, Segment] = {}

    def __len__(self) -> int:
        return len(self._segments)

    def __contains__(self, segment_id: object) -> bool:
        return segment_id in self._segments

    def __iter__(self) -> Iterator[Segment]:
        return iter(list(self._segments.values()))

    def get(self, segment_id: str | None) -> Segment | None:
        """Look up an active segment; None for unknown or absent ids."""
        if segment_id is None:
            return None
        return self._segments.get(segment_id)

    def get_all(self) -> list[Segment]:
        """Snapshot of the active segments in chain order."""
        return list(self._segments.values())

    def count(self) -> int:
        return len(self._segments)

    def first(self) -> Segment | None:
        return next(iter(self._segments.values()), None)

    def last(self) -> Segment | None:
        if not self._segments:
            return None
        return self._segments[next(reversed(self._segments))]

    def append(self, segment: Segment, previous_id: str | None = None) -> None:
        """Add a new newest segment and link it after the current tail.

        Args:
            segment: Segment to add.
            previous_id: Chain predecessor to use when the store is empty
                (typically the finalized tail).
        """
        if segment.segment_id in self._segments:
            raise TimelineInvariantError(
                "unique_ids", f"{segment.segment_id} is already active"
            )
        tail = self.last()
        if tail is not None:
            tail.next_id = segment.segment_id
            segment.previous_id = tail.segment_id
        else:
            segment.previous_id = previous_id
        segment.next_id = None
        self._segments[segment.segment_id] = segment

    def remove(self, segment_ids: Iterable[str]) -> list[Segment]:
        """Delete segments and splice their neighbours together.

        Links that point outside the active set (into the finalized store)
        are carried over as-is.

        Returns:
            The removed segments.
        """
        removed: list[Segment] = []
        for segment_id in segment_ids:
            segment = self._segments.pop(segment_id, None)
            if segment is None:
                continue
            prev = self._segments.get(segment.previous_id) if segment.previous_id else None
            nxt = self._segments.get(segment.next_id) if segment.next_id else None
            if prev is not None:
                prev.next_id = segment.next_id
            if nxt is not None:
                nxt.previous_id = segment.previous_id
            removed.append(segment)
        return removed

    def pop_prefix(self, count: int) -> list[Segment]:
        """Remove the ``count`` oldest segments without touching links.

        The new head keeps its ``previous_id`` pointing at the last popped
        segment, which is where the finalized store picks up.
        """
        prefix = list(self._segments.values())[:count]
        for segment in prefix:
            del self._segments[segment.segment_id]
        return prefix

    def verify(self) -> None:
        """Raise TimelineInvariantError if the chain is inconsistent."""
        segments = self.get_all()
        for index, segment in enumerate(segments):
            if segment.is_dead:
                raise TimelineInvariantError(
                    "no_dead_active", f"{segment.segment_id} is dead but still active"
                )
            if segment.is_finalized:
                raise TimelineInvariantError(
                    "active_not_finalized", f"{segment.segment_id} is finalized but active"
                )
            if segment.is_current and index != len(segments) - 1:
                raise TimelineInvariantError(
                    "single_current",
                    f"open segment {segment.segment_id} is not the newest active segment",
                )

        for a, b in zip(segments, segments[1:]):
            if b.start < a.start:
                raise TimelineInvariantError(
                    "ascending_start", f"{b.segment_id} starts before {a.segment_id}"
                )
            if a.next_id != b.segment_id or b.previous_id != a.segment_id:
                raise TimelineInvariantError(
                    "chain_links",
                    f"{a.segment_id} and {b.segment_id} are adjacent but not linked",
                )

        if segments:
            head, tail = segments[0], segments[-1]
            if head.previous_id is not None and head.previous_id in self._segments:
                raise TimelineInvariantError(
                    "chain_cycle", f"head {head.segment_id} links back into the active set"
                )
            if tail.next_id is not None:
                raise TimelineInvariantError(
                    "chain_links", f"tail {tail.segment_id} links forward to {tail.next_id}"
                )


class FinalizedSegmentStore:
    """Append-only, read-only prefix of the timeline chain.

    Segments arrive here once, already closed, and are only ever removed
    again by age-based expiry.
    """

    def __init__(self) -> None:
        self._segments: dict[str, Segment] = {}

    def __len__(self) -> int:
        return len(self._segments)

    def __contains__(self, segment_id: object) -> bool:
        return segment_id in self._segments

    def __iter__(self) -> Iterator[Segment]:
        return iter(list(self._segments.values()))

    def get(self, segment_id: str | None) -> Segment | None:
        if segment_id is None:
            return None
        return self._segments.get(segment_id)

    def get_all(self) -> list[Segment]:
        """Snapshot of the finalized segments in chain order."""
        return list(self._segments.values())

    def count(self) -> int:
        return len(self._segments)

    def last(self) -> Segment | None:
        if not self._segments:
            return None
        return self._segments[next(reversed(self._segments))]

    def extend(self, segments: Iterable[Segment]) -> None:
        """Archive closed segments in order and freeze them."""
        for segment in segments:
            if segment.is_current:
                raise TimelineInvariantError(
                    "finalized_closed", f"open segment {segment.segment_id} cannot be finalized"
                )
            if segment.segment_id in self._segments:
                raise TimelineInvariantError(
                    "single_move", f"{segment.segment_id} was already finalized"
                )
            segment.is_finalized = True
            self._segments[segment.segment_id] = segment

    def discard(self, segment_ids: Iterable[str]) -> list[Segment]:
        """Permanently drop segments. Unknown ids are ignored."""
        dropped = []
        for segment_id in segment_ids:
            segment = self._segments.pop(segment_id, None)
            if segment is not None:
                dropped.append(segment)
        return dropped

    def verify(self) -> None:
        """Raise TimelineInvariantError if the archive is inconsistent."""
        segments = self.get_all()
        for segment in segments:
            if segment.is_current:
                raise TimelineInvariantError(
                    "finalized_closed", f"open segment {segment.segment_id} in finalized store"
                )
            if not segment.is_finalized or segment.is_dead:
                raise TimelineInvariantError(
                    "finalized_flags", f"{segment.segment_id} has inconsistent flags"
                )
        for a, b in zip(segments, segments[1:]):
            if b.start < a.start:
                raise TimelineInvariantError(
                    "ascending_start", f"{b.segment_id} starts before {a.segment_id}"
                )


def verify_disjoint(active: ActiveSegmentStore, finalized: FinalizedSegmentStore) -> None:
    """Raise if any segment id is held by both stores."""
    for segment in active:
        if segment.segment_id in finalized:
            raise TimelineInvariantError(
                "disjoint_stores", f"{segment.segment_id} is both active and finalized"
            )
