"""Merge consolidation for the active segment chain.

After every accepted sample the engine walks the active chain backward
from the current segment, proposes merges between neighbours (and
bridging merges across a weak segment sandwiched between two stronger
ones), applies the single best-scoring merge, and repeats until no merge
scores above IMPOSSIBLE.

The loop is iterative. Every applied merge must remove at least one
segment from the active set, so a pass performs at most as many merges as
there were active segments when it started; anything else is reported as
an invariant violation.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING

from arc_timeline.errors import TimelineInvariantError
from arc_timeline.memory.segment_store import ActiveSegmentStore
from arc_timeline.schemas import MergeCandidate, MergeScore, Segment, TimelineSettings
from arc_timeline.utils.logging import LogLevel

if TYPE_CHECKING:
    from arc_timeline.core.interfaces import ScoringPolicy
    from arc_timeline.utils.logging import SessionLogger, StructuredLogger


# =============================================================================
# CONSOLIDATION RESULT
# =============================================================================

@dataclass
class AppliedMerge:
    """A merge that was carried out."""
    candidate: MergeCandidate
    died_ids: list[str] = field(default_factory=list)


@dataclass
class ConsolidationResult:
    """Result of one consolidation pass."""
    run_id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])
    started_at: datetime = field(default_factory=datetime.now)
    completed_at: datetime | None = None

    skipped: bool = False
    candidates_considered: int = 0
    merges: list[AppliedMerge] = field(default_factory=list)

    def complete(self) -> None:
        """Mark the pass as complete."""
        self.completed_at = datetime.now()

    @property
    def died_ids(self) -> list[str]:
        return [segment_id for merge in self.merges for segment_id in merge.died_ids]

    @property
    def duration_ms(self) -> float:
        """Duration in milliseconds."""
        if self.completed_at is None:
            return 0.0
        return (self.completed_at - self.started_at).total_seconds() * 1000


# =============================================================================
# CONSOLIDATION ENGINE
# =============================================================================

class ConsolidationEngine:
    """Greedy, score-ranked merge consolidation over the active set.

    Tie-breaking: candidates are stable-sorted by score, so among equal
    top scores the first one generated (closest to the current segment,
    keeper-is-newer before keeper-is-older) wins.
    """

    def __init__(
        self,
        active: ActiveSegmentStore,
        policy: ScoringPolicy,
        settings: TimelineSettings,
        logger: "StructuredLogger | SessionLogger | None" = None,
    ) -> None:
        """Initialize the consolidation engine.

        Args:
            active: Active segment store to consolidate in place.
            policy: Scoring policy supplying verdicts and merge scores.
            settings: Shared settings (invariant verification switch).
            logger: Optional structured logger.
        """
        self._active = active
        self._policy = policy
        self._settings = settings
        self._logger = logger

        self._total_passes = 0
        self._total_merges = 0

    @property
    def total_passes(self) -> int:
        return self._total_passes

    @property
    def total_merges(self) -> int:
        return self._total_merges

    # -------------------------------------------------------------------------
    # PASS
    # -------------------------------------------------------------------------

    def consolidate(self) -> ConsolidationResult:
        """Apply the best merge repeatedly until none qualifies.

        Returns:
            ConsolidationResult listing every merge applied.
        """
        result = ConsolidationResult()
        self._total_passes += 1

        while True:
            current = self._eligible_current()
            if current is None:
                result.skipped = not result.merges
                break

            candidates = self.collect_candidates(current)
            result.candidates_considered += len(candidates)

            winner = self.select(candidates)
            if winner is None:
                break

            # A merge must shrink the active set, which bounds the loop by its size
            size_before = len(self._active)
            died = self.apply(winner)
            if len(self._active) >= size_before:
                raise TimelineInvariantError(
                    "consolidation_progress",
                    f"merge {winner} left the active set at {len(self._active)} segments",
                )

            result.merges.append(AppliedMerge(candidate=winner, died_ids=died))
            self._total_merges += 1
            if self._settings.verify_invariants:
                self._active.verify()

        result.complete()
        return result

    def _eligible_current(self) -> Segment | None:
        """The current segment, if consolidation may run from it."""
        if not len(self._active):
            return None
        tail = self._active.last()
        if tail is None or not tail.is_current:
            return None
        if not self._policy.is_worth_keeping(tail):
            return None
        return tail

    # -------------------------------------------------------------------------
    # CANDIDATES
    # -------------------------------------------------------------------------

    def collect_candidates(self, current: Segment) -> list[MergeCandidate]:
        """Walk backward from ``current`` and propose every eligible merge.

        The walk stops at the first segment whose predecessor is not
        active, so finalized segments are never considered.
        """
        candidates: list[MergeCandidate] = []
        working = current

        while True:
            self._policy.sanitize_edges(working)

            previous = self._active.get(working.previous_id)
            if previous is None:
                break

            candidates.append(self._candidate(keeper=working, deadman=previous))
            candidates.append(self._candidate(keeper=previous, deadman=working))

            working_keepness = self._policy.keepness_score(working)
            previous_keepness = self._policy.keepness_score(previous)
            if previous_keepness < working_keepness:
                prev_prev = self._active.get(previous.previous_id)
                if prev_prev is not None and self._policy.keepness_score(prev_prev) > previous_keepness:
                    candidates.append(
                        self._candidate(keeper=working, deadman=prev_prev, betweener=previous)
                    )
                    candidates.append(
                        self._candidate(keeper=prev_prev, deadman=working, betweener=previous)
                    )

            working = previous

        return candidates

    def _candidate(
        self,
        keeper: Segment,
        deadman: Segment,
        betweener: Segment | None = None,
    ) -> MergeCandidate:
        return MergeCandidate(
            keeper_id=keeper.segment_id,
            deadman_id=deadman.segment_id,
            betweener_id=betweener.segment_id if betweener else None,
            score=self._policy.score_merge(keeper, deadman, betweener),
        )

    def select(self, candidates: list[MergeCandidate]) -> MergeCandidate | None:
        """Pick the highest-scoring candidate, or None if nothing is possible."""
        if not candidates:
            return None

        ranked = sorted(candidates, key=lambda c: c.score, reverse=True)
        if self._logger:
            self._logger.consolidation(
                f"Merge candidates: {', '.join(str(c) for c in ranked)}",
                level=LogLevel.DEBUG,
            )

        winner = ranked[0]
        if winner.score == MergeScore.IMPOSSIBLE:
            return None
        return winner

    # -------------------------------------------------------------------------
    # APPLICATION
    # -------------------------------------------------------------------------

    def apply(self, candidate: MergeCandidate) -> list[str]:
        """Absorb the candidate's deadman (and betweener) into its keeper.

        Returns:
            Ids of the segments that died, already removed from the active set.
        """
        if candidate.score == MergeScore.IMPOSSIBLE:
            raise TimelineInvariantError(
                "no_impossible_merge", f"refusing to apply {candidate}"
            )

        keeper = self._active.get(candidate.keeper_id)
        absorbed = [self._active.get(segment_id) for segment_id in candidate.absorbed_ids]
        if keeper is None or any(segment is None for segment in absorbed):
            raise TimelineInvariantError(
                "merge_members_active", f"{candidate} names a segment outside the active set"
            )

        keeper.absorb(absorbed)
        died = [segment.segment_id for segment in absorbed]
        self._active.remove(died)

        if self._logger:
            self._logger.consolidation(
                f"Merged {candidate}",
                segment_id=keeper.segment_id,
                score=candidate.score.name,
                died=died,
            )
        return died
