"""Module implementations."""

from arc_timeline.modules.builder import BuildOutcome, SegmentBuilder
from arc_timeline.modules.consolidation import (
    AppliedMerge,
    ConsolidationEngine,
    ConsolidationResult,
)
from arc_timeline.modules.event_bus import TimelineEventBus
from arc_timeline.modules.retention import (
    ACTIVE_KEEPER_COUNT,
    RetentionManager,
    RetentionResult,
)
from arc_timeline.modules.scoring import DefaultScoringPolicy
from arc_timeline.modules.sources import (
    DEFAULT_COMMUTE,
    JsonlSampleSource,
    ScriptedSampleSource,
    write_samples,
)

__all__ = [
    "ACTIVE_KEEPER_COUNT",
    "AppliedMerge",
    "BuildOutcome",
    "ConsolidationEngine",
    "ConsolidationResult",
    "DEFAULT_COMMUTE",
    "DefaultScoringPolicy",
    "JsonlSampleSource",
    "RetentionManager",
    "RetentionResult",
    "ScriptedSampleSource",
    "SegmentBuilder",
    "TimelineEventBus",
    "write_samples",
]
