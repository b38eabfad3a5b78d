"""Configuration for pytest."""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Callable

import pytest

from arc_timeline.core.interfaces import ScoringPolicy
from arc_timeline.schemas import LocomotionSample, MergeScore, MotionState, Segment

BASE_TIME = datetime(2024, 3, 4, 8, 0, 0)


def pytest_configure(config):
    """Configure custom markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )


class ScriptedScoringPolicy(ScoringPolicy):
    """Scoring policy whose verdicts come from plain callables.

    Defaults: every live segment is a keeper, keepness is 2 for keepers and
    1 otherwise, and every merge is IMPOSSIBLE.
    """

    def __init__(
        self,
        keeper: Callable[[Segment], bool] | None = None,
        keepness: Callable[[Segment], int] | None = None,
        score: Callable[[Segment, Segment, Segment | None], MergeScore] | None = None,
    ) -> None:
        self._keeper = keeper or (lambda segment: True)
        self._keepness = keepness
        self._score = score or (lambda keeper, deadman, betweener: MergeScore.IMPOSSIBLE)
        self.sanitized: list[str] = []
        self.scored: list[tuple[str, str, str | None]] = []

    def is_worth_keeping(self, segment: Segment) -> bool:
        return not segment.is_dead and self._keeper(segment)

    def keepness_score(self, segment: Segment) -> int:
        if self._keepness is not None:
            return self._keepness(segment)
        return 2 if self.is_worth_keeping(segment) else 1

    def score_merge(
        self,
        keeper: Segment,
        deadman: Segment,
        betweener: Segment | None = None,
    ) -> MergeScore:
        self.scored.append(
            (keeper.segment_id, deadman.segment_id, betweener.segment_id if betweener else None)
        )
        return self._score(keeper, deadman, betweener)

    def sanitize_edges(self, segment: Segment) -> None:
        self.sanitized.append(segment.segment_id)


class FixedClock:
    """Manually advanced clock for expiry tests."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)

    def set(self, seconds: float) -> None:
        self.now = BASE_TIME + timedelta(seconds=seconds)


@pytest.fixture
def ts() -> Callable[[float], datetime]:
    """Timestamp helper: seconds after a fixed base time."""
    def _ts(seconds: float) -> datetime:
        return BASE_TIME + timedelta(seconds=seconds)
    return _ts


@pytest.fixture
def make_sample(ts) -> Callable[..., LocomotionSample]:
    """Factory for samples at ``seconds`` after the base time."""
    def _make(
        seconds: float,
        motion: str = "moving",
        latitude: float | None = None,
        longitude: float | None = None,
    ) -> LocomotionSample:
        return LocomotionSample(
            timestamp=ts(seconds),
            motion_state=MotionState(motion),
            latitude=latitude,
            longitude=longitude,
        )
    return _make


@pytest.fixture
def make_segment(make_sample) -> Callable[..., Segment]:
    """Factory for a segment built from (seconds, motion) pairs."""
    def _make(points: list[tuple[float, str]], closed: bool = True) -> Segment:
        seconds, motion = points[0]
        segment = Segment.from_sample(make_sample(seconds, motion))
        for seconds, motion in points[1:]:
            segment.add_sample(make_sample(seconds, motion))
        if closed:
            segment.close()
        return segment
    return _make


@pytest.fixture
def policy_factory() -> type[ScriptedScoringPolicy]:
    """The scripted policy class, for tests that configure their own verdicts."""
    return ScriptedScoringPolicy


@pytest.fixture
def clock() -> FixedClock:
    """A clock fixed at the base time."""
    return FixedClock(BASE_TIME)
