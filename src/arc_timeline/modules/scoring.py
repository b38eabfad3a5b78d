"""Default scoring policy: duration and geometry based segment judgements.

The engine only sees ordinal results. This policy decides them from
segment duration, sample count and, when samples carry coordinates, the
distance covered by a path or the spread of a visit.
"""

from __future__ import annotations

import numpy as np

from arc_timeline.core.interfaces import ScoringPolicy
from arc_timeline.schemas import MergeScore, Segment
from arc_timeline.utils.config import (
    EARTH_RADIUS_METRES,
    KEEPNESS_INVALID,
    KEEPNESS_KEEPER,
    KEEPNESS_VALID,
    PATH_MIN_KEEPER_DISTANCE,
    PATH_MIN_KEEPER_DURATION,
    VALID_MIN_SAMPLES,
    VISIT_MIN_KEEPER_DURATION,
    VISIT_MIN_RADIUS,
)


# =============================================================================
# GEOMETRY
# =============================================================================

def coordinates(segment: Segment) -> np.ndarray:
    """(n, 2) array of [latitude, longitude] for samples that have a fix."""
    points = [
        (s.latitude, s.longitude) for s in segment.samples if s.has_location
    ]
    if not points:
        return np.empty((0, 2))
    return np.asarray(points, dtype=float)


def haversine_metres(a: np.ndarray, b: np.ndarray) -> np.ndarray:
    """Great-circle distance between rows of ``a`` and ``b`` in metres."""
    a = np.radians(np.atleast_2d(a))
    b = np.radians(np.atleast_2d(b))
    dlat = b[:, 0] - a[:, 0]
    dlon = b[:, 1] - a[:, 1]
    h = np.sin(dlat / 2) ** 2 + np.cos(a[:, 0]) * np.cos(b[:, 0]) * np.sin(dlon / 2) ** 2
    return 2 * EARTH_RADIUS_METRES * np.arcsin(np.sqrt(np.clip(h, 0.0, 1.0)))


def centre(segment: Segment) -> np.ndarray | None:
    """Mean position of the segment's located samples."""
    points = coordinates(segment)
    if not len(points):
        return None
    return points.mean(axis=0)


def radius(segment: Segment) -> float:
    """Spread of a segment around its centre (mean + 1 sd), floored."""
    points = coordinates(segment)
    if len(points) < 2:
        return VISIT_MIN_RADIUS
    distances = haversine_metres(points, np.tile(points.mean(axis=0), (len(points), 1)))
    return max(VISIT_MIN_RADIUS, float(distances.mean() + distances.std()))


def path_distance(segment: Segment) -> float | None:
    """Distance along consecutive located samples, None without two fixes."""
    points = coordinates(segment)
    if len(points) < 2:
        return None
    return float(haversine_metres(points[:-1], points[1:]).sum())


# =============================================================================
# POLICY
# =============================================================================

class DefaultScoringPolicy(ScoringPolicy):
    """Duration- and distance-based keeper verdicts with ordinal merge scores."""

    def __init__(
        self,
        visit_min_duration: float = VISIT_MIN_KEEPER_DURATION,
        path_min_duration: float = PATH_MIN_KEEPER_DURATION,
        path_min_distance: float = PATH_MIN_KEEPER_DISTANCE,
    ) -> None:
        self._visit_min_duration = visit_min_duration
        self._path_min_duration = path_min_duration
        self._path_min_distance = path_min_distance

    def is_worth_keeping(self, segment: Segment) -> bool:
        if segment.is_dead:
            return False
        if segment.is_visit:
            return segment.duration >= self._visit_min_duration
        if segment.duration < self._path_min_duration:
            return False
        distance = path_distance(segment)
        return distance is None or distance >= self._path_min_distance

    def keepness_score(self, segment: Segment) -> int:
        if self.is_worth_keeping(segment):
            return KEEPNESS_KEEPER
        if len(segment.samples) >= VALID_MIN_SAMPLES:
            return KEEPNESS_VALID
        return KEEPNESS_INVALID

    def score_merge(
        self,
        keeper: Segment,
        deadman: Segment,
        betweener: Segment | None = None,
    ) -> MergeScore:
        if betweener is None:
            return self._score_pair(keeper, deadman)

        # Bridging is only as good as the weaker of its two absorptions
        bridge = self._score_pair(keeper, betweener)
        if bridge == MergeScore.IMPOSSIBLE:
            return MergeScore.IMPOSSIBLE
        return min(bridge, self._score_pair(keeper, deadman))

    def _score_pair(self, keeper: Segment, deadman: Segment) -> MergeScore:
        for segment in (keeper, deadman):
            if segment.is_dead or segment.is_finalized:
                return MergeScore.IMPOSSIBLE

        if self.keepness_score(deadman) > self.keepness_score(keeper):
            return MergeScore.IMPOSSIBLE

        same_kind = keeper.kind == deadman.kind

        if not self.is_worth_keeping(deadman):
            if same_kind:
                return MergeScore.PERFECT
            if self.is_worth_keeping(keeper):
                return MergeScore.HIGH
            return MergeScore.MEDIUM

        if not same_kind:
            return MergeScore.IMPOSSIBLE

        if keeper.is_path:
            return MergeScore.MEDIUM

        keeper_centre, deadman_centre = centre(keeper), centre(deadman)
        if keeper_centre is None or deadman_centre is None:
            return MergeScore.LOW
        separation = float(haversine_metres(keeper_centre, deadman_centre)[0])
        if separation <= max(radius(keeper), radius(deadman)):
            return MergeScore.HIGH
        return MergeScore.LOW

    def sanitize_edges(self, segment: Segment) -> None:
        """Drop duplicate-timestamp samples at either edge.

        The first sample is always kept, so ``start`` never moves.
        """
        if segment.is_finalized or segment.is_dead:
            return
        samples = segment.samples
        while len(samples) > 1 and samples[1].timestamp == samples[0].timestamp:
            del samples[1]
        while len(samples) > 2 and samples[-1].timestamp == samples[-2].timestamp:
            del samples[-2]
