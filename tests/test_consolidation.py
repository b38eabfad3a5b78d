"""Consolidation Tests: candidate generation, selection, application, fixpoint.

Tests for:
- Backward walk and pair/betweener candidate generation
- Deterministic selection and the IMPOSSIBLE sentinel
- Merge application and chain repair
- The iterative fixpoint and its termination checks
"""

from unittest.mock import patch

import pytest

from arc_timeline.errors import TimelineInvariantError
from arc_timeline.memory import ActiveSegmentStore
from arc_timeline.modules.consolidation import ConsolidationEngine
from arc_timeline.schemas import MergeCandidate, MergeScore, SegmentKind, TimelineSettings
from arc_timeline.utils.logging import LogCategory, LogLevel, StructuredLogger


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def build_chain(make_segment):
    """Build an active store from segment point lists; the last one stays open."""
    def _build(*point_lists, tail_open: bool = True, previous_id: str | None = None):
        store = ActiveSegmentStore()
        segments = []
        for index, points in enumerate(point_lists):
            closed = not (tail_open and index == len(point_lists) - 1)
            segment = make_segment(points, closed=closed)
            store.append(segment, previous_id=previous_id)
            segments.append(segment)
        return store, segments
    return _build


def make_engine(store, policy, logger=None) -> ConsolidationEngine:
    return ConsolidationEngine(store, policy, TimelineSettings(), logger)


def older_keeps(keeper, deadman, betweener):
    return MergeScore.PERFECT if keeper.start < deadman.start else MergeScore.IMPOSSIBLE


def pairs(candidates):
    return [(c.keeper_id, c.deadman_id, c.betweener_id) for c in candidates]


# =============================================================================
# ELIGIBILITY
# =============================================================================

class TestEligibility:
    """Tests for when a consolidation pass may run at all."""

    def test_empty_store_is_noop(self, policy_factory) -> None:
        result = make_engine(ActiveSegmentStore(), policy_factory()).consolidate()
        assert result.skipped
        assert result.merges == []

    def test_current_not_worth_keeping_is_noop(self, build_chain, policy_factory) -> None:
        store, _ = build_chain([(0, "moving")], [(10, "stationary")])
        policy = policy_factory(
            keeper=lambda s: not s.is_current,
            score=lambda k, d, b: MergeScore.PERFECT,
        )
        result = make_engine(store, policy).consolidate()

        assert result.skipped
        assert policy.scored == []
        assert len(store) == 2

    def test_no_current_segment_is_noop(self, build_chain, policy_factory) -> None:
        store, _ = build_chain([(0, "moving")], [(10, "stationary")], tail_open=False)
        policy = policy_factory(score=lambda k, d, b: MergeScore.PERFECT)
        result = make_engine(store, policy).consolidate()
        assert result.skipped
        assert len(store) == 2


# =============================================================================
# CANDIDATE GENERATION
# =============================================================================

class TestCandidateGeneration:
    """Tests for ConsolidationEngine.collect_candidates."""

    def test_directional_pairs_walking_backward(self, build_chain, policy_factory) -> None:
        store, (a, b, c) = build_chain([(0, "moving")], [(10, "stationary")], [(20, "moving")])
        engine = make_engine(store, policy_factory())

        candidates = engine.collect_candidates(c)
        assert pairs(candidates) == [
            (c.segment_id, b.segment_id, None),
            (b.segment_id, c.segment_id, None),
            (b.segment_id, a.segment_id, None),
            (a.segment_id, b.segment_id, None),
        ]

    def test_betweener_candidates_for_weak_middle(self, build_chain, policy_factory) -> None:
        store, (p1, visit, p2) = build_chain([(0, "moving")], [(5, "stationary")], [(6, "moving")])
        policy = policy_factory(keepness=lambda s: 2 if s.is_path else 0)

        candidates = make_engine(store, policy).collect_candidates(p2)
        assert pairs(candidates) == [
            (p2.segment_id, visit.segment_id, None),
            (visit.segment_id, p2.segment_id, None),
            (p2.segment_id, p1.segment_id, visit.segment_id),
            (p1.segment_id, p2.segment_id, visit.segment_id),
            (visit.segment_id, p1.segment_id, None),
            (p1.segment_id, visit.segment_id, None),
        ]

    def test_no_betweener_when_outer_not_stronger(self, build_chain, policy_factory) -> None:
        store, (_a, _b, c) = build_chain([(0, "moving")], [(5, "stationary")], [(6, "moving")])
        policy = policy_factory(keepness=lambda s: 0 if s.is_visit or s.is_current else 1)

        candidates = make_engine(store, policy).collect_candidates(c)
        assert all(candidate.betweener_id is None for candidate in candidates)

    def test_walk_stops_at_active_boundary(self, build_chain, policy_factory) -> None:
        store, (a, b) = build_chain(
            [(0, "moving")], [(10, "stationary")], previous_id="seg_archived"
        )
        policy = policy_factory()

        candidates = make_engine(store, policy).collect_candidates(b)
        assert len(candidates) == 2
        assert all("seg_archived" not in ids for ids in pairs(candidates))

    def test_each_working_segment_sanitized(self, build_chain, policy_factory) -> None:
        store, (a, b, c) = build_chain([(0, "moving")], [(10, "stationary")], [(20, "moving")])
        policy = policy_factory()
        make_engine(store, policy).collect_candidates(c)
        assert policy.sanitized == [c.segment_id, b.segment_id, a.segment_id]


# =============================================================================
# SELECTION
# =============================================================================

class TestSelection:
    """Tests for ConsolidationEngine.select."""

    @pytest.fixture
    def engine(self, policy_factory) -> ConsolidationEngine:
        return make_engine(ActiveSegmentStore(), policy_factory())

    def test_empty_list(self, engine) -> None:
        assert engine.select([]) is None

    def test_all_impossible(self, engine) -> None:
        candidates = [MergeCandidate(keeper_id="a", deadman_id="b")] * 3
        assert engine.select(candidates) is None

    def test_highest_score_wins(self, engine) -> None:
        candidates = [
            MergeCandidate(keeper_id="a", deadman_id="b", score=MergeScore.LOW),
            MergeCandidate(keeper_id="c", deadman_id="d", score=MergeScore.HIGH),
            MergeCandidate(keeper_id="e", deadman_id="f", score=MergeScore.MEDIUM),
        ]
        assert engine.select(candidates).keeper_id == "c"

    def test_first_generated_wins_ties(self, engine) -> None:
        candidates = [
            MergeCandidate(keeper_id="a", deadman_id="b", score=MergeScore.VERY_LOW),
            MergeCandidate(keeper_id="c", deadman_id="d", score=MergeScore.HIGH),
            MergeCandidate(keeper_id="e", deadman_id="f", score=MergeScore.HIGH),
        ]
        assert engine.select(candidates).keeper_id == "c"


# =============================================================================
# APPLICATION
# =============================================================================

class TestApply:
    """Tests for ConsolidationEngine.apply."""

    def test_pair_merge_repairs_chain(self, build_chain, policy_factory, ts) -> None:
        store, (a, b, c) = build_chain([(0, "moving")], [(10, "stationary")], [(20, "moving")])
        engine = make_engine(store, policy_factory())

        died = engine.apply(MergeCandidate(
            keeper_id=c.segment_id, deadman_id=b.segment_id, score=MergeScore.HIGH,
        ))

        assert died == [b.segment_id]
        assert b.is_dead
        assert store.get_all() == [a, c]
        assert c.start == ts(10)
        assert c.previous_id == a.segment_id
        assert a.next_id == c.segment_id
        store.verify()

    def test_betweener_merge_kills_both(self, build_chain, policy_factory, ts) -> None:
        store, (a, b, c) = build_chain([(0, "moving")], [(5, "stationary")], [(6, "moving")])
        engine = make_engine(store, policy_factory())

        died = engine.apply(MergeCandidate(
            keeper_id=c.segment_id,
            deadman_id=a.segment_id,
            betweener_id=b.segment_id,
            score=MergeScore.MEDIUM,
        ))

        assert set(died) == {a.segment_id, b.segment_id}
        assert store.get_all() == [c]
        assert c.start == ts(0)
        assert [s.timestamp for s in c.samples] == [ts(0), ts(5), ts(6)]
        store.verify()

    def test_impossible_candidate_refused(self, build_chain, policy_factory) -> None:
        store, (a, b) = build_chain([(0, "moving")], [(10, "stationary")])
        engine = make_engine(store, policy_factory())
        with pytest.raises(TimelineInvariantError):
            engine.apply(MergeCandidate(keeper_id=b.segment_id, deadman_id=a.segment_id))
        assert len(store) == 2
        assert not a.is_dead

    def test_member_outside_active_set_refused(self, build_chain, policy_factory) -> None:
        store, (a, b) = build_chain([(0, "moving")], [(10, "stationary")])
        engine = make_engine(store, policy_factory())
        with pytest.raises(TimelineInvariantError) as exc_info:
            engine.apply(MergeCandidate(
                keeper_id=b.segment_id, deadman_id="seg_archived", score=MergeScore.HIGH,
            ))
        assert exc_info.value.invariant == "merge_members_active"


# =============================================================================
# FIXPOINT
# =============================================================================

class TestFixpoint:
    """Tests for the full consolidation loop."""

    def test_merges_until_single_segment(self, build_chain, policy_factory) -> None:
        store, (a, b, c, d) = build_chain(
            [(0, "moving")], [(10, "stationary")], [(20, "moving")], [(30, "stationary")]
        )
        policy = policy_factory(score=lambda k, dm, b: MergeScore.PERFECT)
        result = make_engine(store, policy).consolidate()

        assert len(store) == 1
        assert len(result.merges) == 3
        assert store.last() is d
        assert d.is_current
        assert set(result.died_ids) == {a.segment_id, b.segment_id, c.segment_id}
        assert result.completed_at is not None

    def test_merge_count_bounded_by_active_size(self, build_chain, policy_factory) -> None:
        store, segments = build_chain(*[[(i * 10, "moving")] for i in range(6)])
        initial = len(store)
        policy = policy_factory(score=lambda k, d, b: MergeScore.MEDIUM)
        result = make_engine(store, policy).consolidate()
        assert len(result.merges) <= initial

    def test_impossible_pairs_never_merge(self, build_chain, policy_factory) -> None:
        store, _ = build_chain([(0, "moving")], [(10, "stationary")])
        engine = make_engine(store, policy_factory())
        for _ in range(10):
            result = engine.consolidate()
            assert result.merges == []
        assert len(store) == 2

    def test_older_keeper_absorbing_current_becomes_current(
        self, build_chain, policy_factory
    ) -> None:
        store, (a, b) = build_chain([(0, "moving")], [(10, "stationary")])
        policy = policy_factory(score=older_keeps)
        make_engine(store, policy).consolidate()

        assert store.get_all() == [a]
        assert a.is_current
        assert a.kind == SegmentKind.PATH
        assert a.next_id is None

    def test_bridging_merge_leaves_single_path(self, build_chain, policy_factory) -> None:
        store, (p1, visit, p2) = build_chain(
            [(0, "moving")], [(5, "stationary")], [(6, "moving")]
        )

        def bridge_only(keeper, deadman, betweener):
            return MergeScore.HIGH if betweener is not None else MergeScore.IMPOSSIBLE

        policy = policy_factory(
            keeper=lambda s: s.is_path,
            keepness=lambda s: 2 if s.is_path else 0,
            score=bridge_only,
        )
        make_engine(store, policy).consolidate()

        survivors = store.get_all()
        assert len(survivors) == 1
        assert survivors[0].is_path
        assert visit.segment_id not in store
        assert len(survivors[0].samples) == 3

    def test_non_shrinking_merge_is_fatal(self, build_chain, policy_factory) -> None:
        store, _ = build_chain([(0, "moving")], [(10, "stationary")])
        engine = make_engine(store, policy_factory(score=lambda k, d, b: MergeScore.HIGH))
        with patch.object(engine, "apply", return_value=[]):
            with pytest.raises(TimelineInvariantError) as exc_info:
                engine.consolidate()
        assert exc_info.value.invariant == "consolidation_progress"

    def test_counters(self, build_chain, policy_factory) -> None:
        store, _ = build_chain([(0, "moving")], [(10, "stationary")])
        engine = make_engine(store, policy_factory(score=lambda k, d, b: MergeScore.HIGH))
        engine.consolidate()
        engine.consolidate()
        assert engine.total_passes == 2
        assert engine.total_merges == 1

    def test_winning_merge_logged(self, build_chain, policy_factory) -> None:
        store, (a, b) = build_chain([(0, "moving")], [(10, "stationary")])
        logger = StructuredLogger(console_output=False, level=LogLevel.DEBUG)
        policy = policy_factory(score=lambda k, d, bw: MergeScore.HIGH)
        make_engine(store, policy, logger).consolidate()

        messages = [e.message for e in logger.filter_by_category(LogCategory.CONSOLIDATION)]
        assert any(m.startswith("Merge candidates:") for m in messages)
        assert any(m.startswith("Merged ") for m in messages)
