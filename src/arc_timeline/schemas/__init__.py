"""Data contracts for the timeline engine."""

from arc_timeline.schemas.events import TimelineEvent, TimelineEventType
from arc_timeline.schemas.results import CycleResult, RejectionReason
from arc_timeline.schemas.samples import LocomotionSample, MotionState
from arc_timeline.schemas.segments import (
    CONTINUES_ON,
    MergeCandidate,
    MergeScore,
    Segment,
    SegmentKind,
    kind_for_motion,
)
from arc_timeline.schemas.settings import TimelineSettings

__all__ = [
    "CONTINUES_ON",
    "CycleResult",
    "LocomotionSample",
    "MergeCandidate",
    "MergeScore",
    "MotionState",
    "RejectionReason",
    "Segment",
    "SegmentKind",
    "TimelineEvent",
    "TimelineEventType",
    "TimelineSettings",
    "kind_for_motion",
]
