"""Exception types raised by the timeline engine.

Steady-state refusals (rate-limited samples, impossible merges, nothing to
promote or expire) are not errors and never raise. The types below signal
either misuse by the host or a defect in the engine itself.
"""

from __future__ import annotations


class TimelineError(RuntimeError):
    """Base class for timeline engine errors."""


class TimelineInvariantError(TimelineError):
    """A chain or store invariant was found broken.

    Raised for an open segment in the finalized store, a gap, cycle or
    misordering in the active chain, a consolidation pass that failed to
    shrink the active set, or an attempt to mutate a finalized segment.
    These indicate a bug and are not meant to be caught and retried.
    """

    def __init__(self, invariant: str, message: str) -> None:
        self.invariant = invariant
        super().__init__(f"{invariant}: {message}")


class ReentrantSubmissionError(TimelineError):
    """submit() or consolidate() was called while a processing cycle was running."""
