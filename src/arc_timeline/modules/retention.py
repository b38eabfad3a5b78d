"""Retention: moving settled segments to the archive and expiring old ones.

Promotion keeps the newest two keepers (and everything after the older of
the two) revisable, since a future sample or merge can still move their
shared boundary. Everything older is archived. Expiry then drops archived
segments whose end lies further in the past than the retention window.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import TYPE_CHECKING

from arc_timeline.errors import TimelineInvariantError
from arc_timeline.memory.segment_store import ActiveSegmentStore, FinalizedSegmentStore

if TYPE_CHECKING:
    from arc_timeline.core.interfaces import ScoringPolicy
    from arc_timeline.utils.logging import SessionLogger, StructuredLogger


# Keepers (counted from the newest) that stay in the active set
ACTIVE_KEEPER_COUNT = 2


@dataclass
class RetentionResult:
    """What one housekeeping run moved or dropped."""
    promoted_ids: list[str] = field(default_factory=list)
    expired_ids: list[str] = field(default_factory=list)


class RetentionManager:
    """Promotes settled active segments and expires finalized ones."""

    def __init__(
        self,
        active: ActiveSegmentStore,
        finalized: FinalizedSegmentStore,
        policy: ScoringPolicy,
        logger: "StructuredLogger | SessionLogger | None" = None,
    ) -> None:
        self._active = active
        self._finalized = finalized
        self._policy = policy
        self._logger = logger

    def run(self, retention: timedelta, now: datetime) -> RetentionResult:
        """Promote, then expire. Both steps run every time."""
        result = RetentionResult()
        result.promoted_ids = self.promote_settled()
        result.expired_ids = self.expire_old(retention, now)
        return result

    def promote_settled(self) -> list[str]:
        """Archive every active segment older than the second-newest keeper.

        Returns:
            Ids moved to the finalized store, oldest first.
        """
        segments = self._active.get_all()
        keeper_count = 0
        boundary_index: int | None = None

        for index in range(len(segments) - 1, -1, -1):
            if self._policy.is_worth_keeping(segments[index]):
                keeper_count += 1
            if keeper_count == ACTIVE_KEEPER_COUNT:
                boundary_index = index
                break

        if not boundary_index:
            return []

        settled = self._active.pop_prefix(boundary_index)
        self._finalized.extend(settled)

        if self._logger:
            self._logger.retention(
                f"Finalised {len(settled)} segment(s)",
                promoted=[s.segment_id for s in settled],
            )
        return [s.segment_id for s in settled]

    def expire_old(self, retention: timedelta, now: datetime) -> list[str]:
        """Drop finalized segments whose end is older than ``retention``.

        Returns:
            Ids permanently discarded.
        """
        expired: list[str] = []
        for segment in self._finalized:
            if segment.end is None:
                raise TimelineInvariantError(
                    "finalized_closed",
                    f"open segment {segment.segment_id} found in finalized store",
                )
            if now - segment.end > retention:
                expired.append(segment.segment_id)

        if expired:
            self._finalized.discard(expired)
            if self._logger:
                self._logger.retention(
                    f"Released {len(expired)} historical segment(s)",
                    expired=expired,
                )
        return expired
