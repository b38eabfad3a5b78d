"""Core orchestration and interfaces."""

from arc_timeline.core.interfaces import SampleSource, ScoringPolicy
from arc_timeline.core.orchestrator import TimelineRecorder

__all__ = [
    "SampleSource",
    "ScoringPolicy",
    "TimelineRecorder",
]
