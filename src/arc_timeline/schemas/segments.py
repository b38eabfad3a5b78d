"""Timeline segment and merge candidate data contracts."""

from __future__ import annotations

import uuid
from datetime import datetime
from enum import Enum, IntEnum
from typing import Any

from pydantic import BaseModel, Field

from arc_timeline.errors import TimelineInvariantError
from arc_timeline.schemas.samples import LocomotionSample, MotionState


class SegmentKind(str, Enum):
    """The two segment variants."""

    PATH = "path"    # In transit
    VISIT = "visit"  # Stationary


# Which motion states extend a segment of each kind
CONTINUES_ON: dict[SegmentKind, frozenset[MotionState]] = {
    SegmentKind.PATH: frozenset({MotionState.MOVING, MotionState.UNCERTAIN}),
    SegmentKind.VISIT: frozenset({MotionState.STATIONARY}),
}


def kind_for_motion(motion_state: MotionState) -> SegmentKind:
    """Segment kind opened by a sample with the given motion state."""
    for kind, states in CONTINUES_ON.items():
        if motion_state in states:
            return kind
    raise ValueError(f"No segment kind continues on {motion_state!r}")


def new_segment_id() -> str:
    return f"seg_{uuid.uuid4().hex[:12]}"


class MergeScore(IntEnum):
    """Ordinal merge quality. IMPOSSIBLE is the distinguished refusal value."""

    IMPOSSIBLE = 0
    VERY_LOW = 1
    LOW = 2
    MEDIUM = 3
    HIGH = 4
    PERFECT = 5


class Segment(BaseModel):
    """A Path or Visit in the timeline chain.

    ``previous_id`` and ``next_id`` are lookup-only references into the
    segment stores; a segment never owns its neighbours.
    """

    segment_id: str = Field(default_factory=new_segment_id)
    kind: SegmentKind = Field(..., description="Path or Visit")

    start: datetime = Field(..., description="Timestamp of the opening sample")
    end: datetime | None = Field(
        default=None,
        description="Timestamp of the last accepted sample; None while current",
    )

    samples: list[LocomotionSample] = Field(default_factory=list)

    previous_id: str | None = Field(default=None)
    next_id: str | None = Field(default=None)

    is_dead: bool = Field(default=False, description="Absorbed by a merge")
    is_finalized: bool = Field(default=False, description="Moved to the finalized store")

    extras: dict[str, Any] = Field(default_factory=dict)

    model_config = {"frozen": False}

    @classmethod
    def from_sample(cls, sample: LocomotionSample) -> "Segment":
        """Open a new segment whose kind follows the sample's motion state."""
        return cls(
            kind=kind_for_motion(sample.motion_state),
            start=sample.timestamp,
            samples=[sample],
        )

    @property
    def is_current(self) -> bool:
        """Open-ended segments have no end yet."""
        return self.end is None

    @property
    def is_path(self) -> bool:
        return self.kind == SegmentKind.PATH

    @property
    def is_visit(self) -> bool:
        return self.kind == SegmentKind.VISIT

    @property
    def last_timestamp(self) -> datetime:
        """End if closed, otherwise the newest sample's timestamp."""
        if self.end is not None:
            return self.end
        if self.samples:
            return self.samples[-1].timestamp
        return self.start

    @property
    def duration(self) -> float:
        """Elapsed seconds from start to last timestamp."""
        return (self.last_timestamp - self.start).total_seconds()

    def continues_on(self, motion_state: MotionState) -> bool:
        return motion_state in CONTINUES_ON[self.kind]

    def _ensure_mutable(self, action: str) -> None:
        if self.is_finalized:
            raise TimelineInvariantError(
                "finalized_immutable",
                f"cannot {action} finalized segment {self.segment_id}",
            )
        if self.is_dead:
            raise TimelineInvariantError(
                "dead_segment",
                f"cannot {action} dead segment {self.segment_id}",
            )

    def add_sample(self, sample: LocomotionSample) -> None:
        """Append a sample to an active segment."""
        self._ensure_mutable("append to")
        self.samples.append(sample)

    def close(self) -> None:
        """Fix the end at the last accepted sample."""
        self._ensure_mutable("close")
        self.end = self.samples[-1].timestamp if self.samples else self.start

    def absorb(self, others: list["Segment"]) -> None:
        """Take over the samples and extent of ``others``.

        Samples are re-sorted chronologically. The extent widens to the
        earliest start and the latest end; absorbing an open segment
        leaves this one open.
        """
        self._ensure_mutable("merge into")
        for other in others:
            other._ensure_mutable("absorb")
        group = [self, *others]
        merged = [s for seg in group for s in seg.samples]
        merged.sort(key=lambda s: s.timestamp)
        self.samples = merged
        self.start = min(seg.start for seg in group)
        if any(seg.end is None for seg in group):
            self.end = None
        else:
            self.end = max(seg.end for seg in group)
        for other in others:
            other.is_dead = True

    def summary(self) -> str:
        """One-line description for logs and the CLI."""
        end = self.end.isoformat(timespec="seconds") if self.end else "now"
        return (
            f"{self.kind.value:5s} {self.segment_id} "
            f"{self.start.isoformat(timespec='seconds')} -> {end} "
            f"({len(self.samples)} samples)"
        )


class MergeCandidate(BaseModel):
    """A proposed merge of ``deadman`` (and optional ``betweener``) into ``keeper``."""

    keeper_id: str
    deadman_id: str
    betweener_id: str | None = None
    score: MergeScore = MergeScore.IMPOSSIBLE

    model_config = {"frozen": False}

    @property
    def absorbed_ids(self) -> list[str]:
        """Ids that die if this candidate is applied."""
        if self.betweener_id is None:
            return [self.deadman_id]
        return [self.betweener_id, self.deadman_id]

    def __str__(self) -> str:
        via = f" via {self.betweener_id}" if self.betweener_id else ""
        return f"{self.keeper_id} <- {self.deadman_id}{via} [{self.score.name}]"
