"""Timeline recorder - runs the per-sample processing cycle.

Every accepted sample goes through the same fixed order:
1. Recording gate → drop everything while stopped
2. Builder → rate limit, extend or open a segment
3. Event → segment_created (only when a segment was opened)
4. Consolidation → merge to a fixpoint
5. Retention → promote settled segments, expire old ones
6. Invariant check → (optional) verify both stores
7. Event → processing_completed

A cycle runs to completion before the next sample is accepted; a
submission or consolidation requested from inside a cycle (for example by
an event subscriber) is refused.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Callable, Iterator

from arc_timeline.errors import ReentrantSubmissionError, TimelineInvariantError
from arc_timeline.memory.segment_store import (
    ActiveSegmentStore,
    FinalizedSegmentStore,
    verify_disjoint,
)
from arc_timeline.modules.builder import SegmentBuilder
from arc_timeline.modules.consolidation import ConsolidationEngine, ConsolidationResult
from arc_timeline.modules.event_bus import TimelineEventBus
from arc_timeline.modules.retention import RetentionManager, RetentionResult
from arc_timeline.modules.scoring import DefaultScoringPolicy
from arc_timeline.schemas import (
    CycleResult,
    LocomotionSample,
    RejectionReason,
    Segment,
    TimelineEventType,
    TimelineSettings,
)

if TYPE_CHECKING:
    from arc_timeline.core.interfaces import SampleSource, ScoringPolicy
    from arc_timeline.utils.logging import SessionLogger, StructuredLogger


class TimelineRecorder:
    """Owns one evolving timeline and drives its processing cycle.

    Collaborators (scoring policy, sample source, event bus, logger,
    clock) are injected, so a host can construct as many independent
    recorders as it needs.
    """

    def __init__(
        self,
        policy: ScoringPolicy | None = None,
        settings: TimelineSettings | None = None,
        source: SampleSource | None = None,
        event_bus: TimelineEventBus | None = None,
        logger: "StructuredLogger | SessionLogger | None" = None,
        clock: Callable[[], datetime] | None = None,
        run_id: str = "",
    ) -> None:
        """Initialize the recorder.

        Args:
            policy: Scoring policy (defaults to DefaultScoringPolicy).
            settings: Engine settings (defaults to TimelineSettings()).
            source: Optional sample source started/stopped with recording.
            event_bus: Bus for timeline events (one is created if omitted).
            logger: Optional structured logger shared with all components.
            clock: Returns "now" for expiry; defaults to wall-clock time in
                the timezone of the accepted samples.
            run_id: Identifier for this run (used in logging).
        """
        self._policy = policy or DefaultScoringPolicy()
        self._settings = settings or TimelineSettings()
        self._source = source
        self._events = event_bus or TimelineEventBus(self._settings.max_event_history)
        self._logger = logger
        self._clock = clock or self.wall_clock
        self._run_id = run_id

        self._active = ActiveSegmentStore()
        self._finalized = FinalizedSegmentStore()
        self._builder = SegmentBuilder(self._active, self._settings, logger)
        self._engine = ConsolidationEngine(self._active, self._policy, self._settings, logger)
        self._retention = RetentionManager(self._active, self._finalized, self._policy, logger)

        self._recording = False
        self._processing = False
        self._cycle = 0

    # -------------------------------------------------------------------------
    # CONTROL
    # -------------------------------------------------------------------------

    def start_recording(self) -> None:
        """Begin processing submitted samples."""
        if self._source is not None:
            self._source.start()
        self._recording = True
        if self._logger:
            self._logger.system(f"Recording started {self._run_id}".strip())

    def stop_recording(self) -> None:
        """Stop processing; state is left exactly as last consolidated."""
        if self._source is not None:
            self._source.stop()
        self._recording = False
        if self._logger:
            self._logger.system(f"Recording stopped {self._run_id}".strip())

    @property
    def is_recording(self) -> bool:
        return self._recording

    # -------------------------------------------------------------------------
    # SETTINGS
    # -------------------------------------------------------------------------

    @property
    def settings(self) -> TimelineSettings:
        return self._settings

    def set_samples_per_minute(self, samples_per_minute: float) -> None:
        """Change the target sample rate (validated, must be positive)."""
        self._settings.samples_per_minute = samples_per_minute

    def set_history_retention(self, retention: timedelta | float) -> None:
        """Change the finalized history window (timedelta or seconds)."""
        if not isinstance(retention, timedelta):
            retention = timedelta(seconds=retention)
        self._settings.history_retention = retention

    def set_clock(self, clock: Callable[[], datetime]) -> None:
        """Replace the clock used for expiry."""
        self._clock = clock

    def wall_clock(self) -> datetime:
        """Current time, aware or naive to match the accepted samples."""
        last = self._builder.last_accepted
        return datetime.now(last.tzinfo if last is not None else None)

    def sample_clock(self) -> datetime:
        """Clock that reads the last accepted sample's timestamp.

        Suitable for replaying historical data, where wall-clock time would
        expire the whole archive at once.
        """
        return self._builder.last_accepted or datetime.now()

    # -------------------------------------------------------------------------
    # READ-ONLY VIEWS
    # -------------------------------------------------------------------------

    @property
    def current_segment(self) -> Segment | None:
        """The open segment still receiving samples, if any."""
        return self._builder.current_segment

    @property
    def active_segments(self) -> list[Segment]:
        """Snapshot of the revisable segments, oldest first."""
        return self._active.get_all()

    @property
    def finalized_segments(self) -> list[Segment]:
        """Snapshot of the archived segments, oldest first.

        Archived segments are immutable, so these are deep copies; editing
        one never reaches the store.
        """
        return [s.model_copy(deep=True) for s in self._finalized]

    def segment(self, segment_id: str) -> Segment | None:
        """Look a segment up in either store (archived ones as copies)."""
        segment = self._active.get(segment_id)
        if segment is not None:
            return segment
        archived = self._finalized.get(segment_id)
        return archived.model_copy(deep=True) if archived is not None else None

    @property
    def events(self) -> TimelineEventBus:
        return self._events

    @property
    def cycle_count(self) -> int:
        """Number of accepted samples processed so far."""
        return self._cycle

    # -------------------------------------------------------------------------
    # CYCLE
    # -------------------------------------------------------------------------

    def submit(self, sample: LocomotionSample) -> CycleResult:
        """Run one full processing cycle for ``sample``.

        Returns:
            CycleResult describing what the cycle did. Rejected samples
            (not recording, rate limited) change nothing and emit nothing.

        Raises:
            ReentrantSubmissionError: If called while a cycle is running.
            TimelineInvariantError: If the engine breaks a chain invariant.
        """
        if self._processing:
            raise ReentrantSubmissionError(
                "submit() called while a processing cycle is in progress"
            )

        if not self._recording:
            return self._rejected(sample, RejectionReason.NOT_RECORDING)

        self._processing = True
        try:
            outcome = self._builder.add(sample)
            if not outcome.accepted:
                return self._rejected(sample, RejectionReason.RATE_LIMITED)

            self._cycle += 1
            if outcome.created is not None:
                self._events.emit_simple(
                    TimelineEventType.SEGMENT_CREATED,
                    cycle=self._cycle,
                    segment_id=outcome.created.segment_id,
                    payload={"kind": outcome.created.kind.value},
                )

            consolidation, retention = self._consolidate()

            result = CycleResult(
                cycle=self._cycle,
                sample_timestamp=sample.timestamp,
                accepted=True,
                created_segment_id=outcome.created.segment_id if outcome.created else None,
                merges=[str(m.candidate) for m in consolidation.merges],
                died_ids=consolidation.died_ids,
                promoted_ids=retention.promoted_ids,
                expired_ids=retention.expired_ids,
                active_count=len(self._active),
                finalized_count=len(self._finalized),
                current_segment_id=self._current_id(),
            )

            self._events.emit_simple(
                TimelineEventType.PROCESSING_COMPLETED,
                cycle=self._cycle,
                payload={
                    "active_count": result.active_count,
                    "finalized_count": result.finalized_count,
                    "merges": len(result.merges),
                },
            )
            return result
        finally:
            self._processing = False

    def consolidate(self) -> tuple[ConsolidationResult, RetentionResult]:
        """Merge to a fixpoint, then promote and expire.

        Safe to call repeatedly; a settled timeline is left unchanged.

        Raises:
            ReentrantSubmissionError: If called while a cycle is running.
        """
        if self._processing:
            raise ReentrantSubmissionError(
                "consolidate() called while a processing cycle is in progress"
            )
        return self._consolidate()

    def _consolidate(self) -> tuple[ConsolidationResult, RetentionResult]:
        consolidation = self._engine.consolidate()
        retention = self._retention.run(self._settings.history_retention, self._clock())
        if self._settings.verify_invariants:
            self.verify()
        return consolidation, retention

    def iter_run(
        self,
        source: SampleSource | None = None,
        max_samples: int | None = None,
    ) -> Iterator[CycleResult]:
        """Drain a sample source through submit(), yielding each cycle's result.

        Args:
            source: Source to read (defaults to the attached source).
            max_samples: Stop after this many samples, accepted or not.
        """
        source = source or self._source
        if source is None:
            raise ValueError("No sample source attached or given")

        submitted = 0
        while source.has_samples():
            if max_samples is not None and submitted >= max_samples:
                break
            submitted += 1
            yield self.submit(source.get_sample())

    def run(
        self,
        source: SampleSource | None = None,
        max_samples: int | None = None,
    ) -> list[CycleResult]:
        """Drain a sample source and collect every CycleResult."""
        return list(self.iter_run(source, max_samples))

    def verify(self) -> None:
        """Check every store invariant, raising TimelineInvariantError on failure."""
        try:
            self._active.verify()
            self._finalized.verify()
            verify_disjoint(self._active, self._finalized)
        except TimelineInvariantError as e:
            if self._logger:
                self._logger.check_invariant(False, e.invariant, str(e), cycle=self._cycle)
            raise

    # -------------------------------------------------------------------------
    # HELPERS
    # -------------------------------------------------------------------------

    def _current_id(self) -> str | None:
        current = self.current_segment
        return current.segment_id if current else None

    def _rejected(self, sample: LocomotionSample, reason: RejectionReason) -> CycleResult:
        return CycleResult(
            cycle=self._cycle,
            sample_timestamp=sample.timestamp,
            accepted=False,
            rejection=reason,
            active_count=len(self._active),
            finalized_count=len(self._finalized),
            current_segment_id=self._current_id(),
        )
