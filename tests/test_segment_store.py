"""Tests for the active and finalized segment stores."""

import pytest

from arc_timeline.errors import TimelineInvariantError
from arc_timeline.memory import ActiveSegmentStore, FinalizedSegmentStore, verify_disjoint


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def chain(make_segment):
    """Active store holding three closed segments and an open tail."""
    store = ActiveSegmentStore()
    segments = [
        make_segment([(0, "moving")]),
        make_segment([(10, "stationary")]),
        make_segment([(20, "moving")]),
        make_segment([(30, "stationary")], closed=False),
    ]
    for segment in segments:
        store.append(segment)
    return store, segments


# =============================================================================
# ACTIVE STORE
# =============================================================================

class TestActiveSegmentStore:
    """Tests for ActiveSegmentStore."""

    def test_empty_store(self) -> None:
        store = ActiveSegmentStore()
        assert len(store) == 0
        assert store.first() is None
        assert store.last() is None
        assert store.get(None) is None
        store.verify()

    def test_append_links_neighbours(self, chain) -> None:
        store, (a, b, c, d) = chain
        assert a.previous_id is None
        assert a.next_id == b.segment_id
        assert b.previous_id == a.segment_id
        assert d.previous_id == c.segment_id
        assert d.next_id is None
        store.verify()

    def test_append_to_empty_store_uses_given_predecessor(self, make_segment) -> None:
        store = ActiveSegmentStore()
        segment = make_segment([(0, "moving")])
        store.append(segment, previous_id="seg_archived")
        assert segment.previous_id == "seg_archived"
        store.verify()

    def test_append_duplicate_rejected(self, chain) -> None:
        store, (a, *_rest) = chain
        with pytest.raises(TimelineInvariantError):
            store.append(a)

    def test_order_and_lookup(self, chain) -> None:
        store, segments = chain
        assert store.get_all() == segments
        assert store.first() is segments[0]
        assert store.last() is segments[-1]
        assert segments[1].segment_id in store
        assert store.get("missing") is None

    def test_remove_splices_chain(self, chain) -> None:
        store, (a, b, c, d) = chain
        removed = store.remove([b.segment_id])

        assert removed == [b]
        assert a.next_id == c.segment_id
        assert c.previous_id == a.segment_id
        store.verify()

    def test_remove_adjacent_pair(self, chain) -> None:
        store, (a, b, c, d) = chain
        store.remove([b.segment_id, c.segment_id])
        assert a.next_id == d.segment_id
        assert d.previous_id == a.segment_id
        store.verify()

    def test_remove_head_keeps_outside_link(self, make_segment) -> None:
        store = ActiveSegmentStore()
        head = make_segment([(0, "moving")])
        tail = make_segment([(10, "stationary")], closed=False)
        store.append(head, previous_id="seg_archived")
        store.append(tail)

        store.remove([head.segment_id])
        assert tail.previous_id == "seg_archived"
        store.verify()

    def test_remove_unknown_id_ignored(self, chain) -> None:
        store, _segments = chain
        assert store.remove(["missing"]) == []
        assert len(store) == 4

    def test_pop_prefix_leaves_links(self, chain) -> None:
        store, (a, b, c, d) = chain
        popped = store.pop_prefix(2)

        assert popped == [a, b]
        assert store.first() is c
        assert c.previous_id == b.segment_id
        store.verify()

    def test_iteration_is_a_snapshot(self, chain) -> None:
        store, (a, *_rest) = chain
        for segment in store:
            store.remove([segment.segment_id])
        assert len(store) == 0


class TestActiveStoreVerify:
    """Tests for ActiveSegmentStore.verify."""

    def test_dead_segment_detected(self, chain) -> None:
        store, (a, *_rest) = chain
        a.is_dead = True
        with pytest.raises(TimelineInvariantError) as exc_info:
            store.verify()
        assert exc_info.value.invariant == "no_dead_active"

    def test_open_segment_not_at_tail_detected(self, chain) -> None:
        store, (a, *_rest) = chain
        a.end = None
        with pytest.raises(TimelineInvariantError) as exc_info:
            store.verify()
        assert exc_info.value.invariant == "single_current"

    def test_broken_link_detected(self, chain) -> None:
        store, (a, b, c, d) = chain
        b.next_id = d.segment_id
        with pytest.raises(TimelineInvariantError) as exc_info:
            store.verify()
        assert exc_info.value.invariant == "chain_links"

    def test_cycle_detected(self, chain) -> None:
        store, (a, b, c, d) = chain
        a.previous_id = d.segment_id
        with pytest.raises(TimelineInvariantError) as exc_info:
            store.verify()
        assert exc_info.value.invariant == "chain_cycle"

    def test_misordering_detected(self, chain, ts) -> None:
        store, (a, b, c, d) = chain
        c.start = ts(-5)
        with pytest.raises(TimelineInvariantError) as exc_info:
            store.verify()
        assert exc_info.value.invariant == "ascending_start"


# =============================================================================
# FINALIZED STORE
# =============================================================================

class TestFinalizedSegmentStore:
    """Tests for FinalizedSegmentStore."""

    def test_extend_freezes_segments(self, make_segment) -> None:
        store = FinalizedSegmentStore()
        segments = [make_segment([(0, "moving")]), make_segment([(10, "stationary")])]
        store.extend(segments)

        assert store.get_all() == segments
        assert all(s.is_finalized for s in segments)
        assert store.last() is segments[-1]
        store.verify()

    def test_open_segment_rejected(self, make_segment) -> None:
        store = FinalizedSegmentStore()
        with pytest.raises(TimelineInvariantError) as exc_info:
            store.extend([make_segment([(0, "moving")], closed=False)])
        assert exc_info.value.invariant == "finalized_closed"

    def test_segment_moves_only_once(self, make_segment) -> None:
        store = FinalizedSegmentStore()
        segment = make_segment([(0, "moving")])
        store.extend([segment])
        with pytest.raises(TimelineInvariantError) as exc_info:
            store.extend([segment])
        assert exc_info.value.invariant == "single_move"

    def test_discard(self, make_segment) -> None:
        store = FinalizedSegmentStore()
        a, b = make_segment([(0, "moving")]), make_segment([(10, "stationary")])
        store.extend([a, b])

        dropped = store.discard([a.segment_id, "missing"])
        assert dropped == [a]
        assert store.get_all() == [b]

    def test_verify_detects_reopened_segment(self, make_segment) -> None:
        store = FinalizedSegmentStore()
        segment = make_segment([(0, "moving")])
        store.extend([segment])
        segment.end = None
        with pytest.raises(TimelineInvariantError):
            store.verify()


class TestVerifyDisjoint:
    """Tests for verify_disjoint."""

    def test_disjoint_stores_pass(self, make_segment) -> None:
        active, finalized = ActiveSegmentStore(), FinalizedSegmentStore()
        active.append(make_segment([(10, "moving")], closed=False))
        finalized.extend([make_segment([(0, "stationary")])])
        verify_disjoint(active, finalized)

    def test_shared_segment_detected(self, make_segment) -> None:
        active, finalized = ActiveSegmentStore(), FinalizedSegmentStore()
        segment = make_segment([(0, "moving")])
        finalized.extend([segment])
        active.append(segment)
        with pytest.raises(TimelineInvariantError) as exc_info:
            verify_disjoint(active, finalized)
        assert exc_info.value.invariant == "disjoint_stores"
