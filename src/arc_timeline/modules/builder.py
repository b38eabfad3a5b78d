"""Segment builder: turns classified samples into Paths and Visits.

Each accepted sample either extends the current segment, when the
segment's kind continues on the sample's motion state, or closes it and
opens a new one linked after it.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING

from arc_timeline.memory.segment_store import ActiveSegmentStore
from arc_timeline.schemas import LocomotionSample, Segment, TimelineSettings

if TYPE_CHECKING:
    from arc_timeline.utils.logging import SessionLogger, StructuredLogger


@dataclass
class BuildOutcome:
    """What the builder did with one sample."""

    accepted: bool
    created: Segment | None = None
    extended: Segment | None = None


class SegmentBuilder:
    """Rate-limits samples and maintains the open end of the active chain.

    The current segment is always the newest active segment while it is
    open; the builder never holds a separate pointer that a merge could
    leave stale.
    """

    def __init__(
        self,
        active: ActiveSegmentStore,
        settings: TimelineSettings,
        logger: "StructuredLogger | SessionLogger | None" = None,
    ) -> None:
        """Initialize the builder.

        Args:
            active: Active segment store the builder appends to.
            settings: Shared settings; read on every sample.
            logger: Optional structured logger.
        """
        self._active = active
        self._settings = settings
        self._logger = logger
        self._last_accepted: datetime | None = None

    @property
    def current_segment(self) -> Segment | None:
        """The open segment still receiving samples, if any."""
        tail = self._active.last()
        if tail is not None and tail.is_current:
            return tail
        return None

    @property
    def last_accepted(self) -> datetime | None:
        """Timestamp of the most recent accepted sample."""
        return self._last_accepted

    def is_rate_limited(self, sample: LocomotionSample) -> bool:
        """True if the sample arrives sooner than the minimum spacing allows."""
        if self._last_accepted is None:
            return False
        elapsed = sample.timestamp - self._last_accepted
        return elapsed < self._settings.min_sample_interval

    def add(self, sample: LocomotionSample) -> BuildOutcome:
        """Feed one sample into the chain.

        Returns:
            BuildOutcome; ``accepted`` is False for rate-limited samples,
            which leave all state untouched.
        """
        if self.is_rate_limited(sample):
            if self._logger:
                self._logger.sample(
                    f"Rate limited sample at {sample.timestamp.isoformat()}",
                )
            return BuildOutcome(accepted=False)

        self._last_accepted = sample.timestamp

        current = self.current_segment
        if current is not None and current.continues_on(sample.motion_state):
            current.add_sample(sample)
            return BuildOutcome(accepted=True, extended=current)

        return BuildOutcome(accepted=True, created=self._open_segment(sample, current))

    def _open_segment(self, sample: LocomotionSample, current: Segment | None) -> Segment:
        """Close the current segment (if any) and start a new one after it."""
        segment = Segment.from_sample(sample)
        if current is not None:
            current.close()
        self._active.append(segment)

        if self._logger:
            self._logger.segment(
                f"Opened {segment.kind.value} on {sample.motion_state.value} sample",
                segment_id=segment.segment_id,
                previous_id=segment.previous_id,
            )
        return segment

    def reset(self) -> None:
        """Forget the rate-limit reference point."""
        self._last_accepted = None
