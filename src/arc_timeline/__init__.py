"""Motion-segmented timeline recording with live merge consolidation."""

__version__ = "0.1.0"

# core first: the modules package imports core.interfaces, and core imports
# the modules package through the orchestrator
from arc_timeline.core import SampleSource, ScoringPolicy, TimelineRecorder
from arc_timeline.errors import (
    ReentrantSubmissionError,
    TimelineError,
    TimelineInvariantError,
)
from arc_timeline.schemas import (
    CycleResult,
    LocomotionSample,
    MergeScore,
    MotionState,
    Segment,
    SegmentKind,
    TimelineEvent,
    TimelineEventType,
    TimelineSettings,
)

__all__ = [
    "CycleResult",
    "LocomotionSample",
    "MergeScore",
    "MotionState",
    "ReentrantSubmissionError",
    "SampleSource",
    "ScoringPolicy",
    "Segment",
    "SegmentKind",
    "TimelineError",
    "TimelineEvent",
    "TimelineEventType",
    "TimelineInvariantError",
    "TimelineRecorder",
    "TimelineSettings",
    "__version__",
]
