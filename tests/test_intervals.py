#!/usr/bin/env python3
"""
Tests for the interval arithmetic underneath the slot calculators.
"""

from datetime import timedelta

import pytest

from conftest import at
from meetwise.services.intervals import (
    clip_intervals,
    contains,
    grid_slots,
    intersect_all,
    intersect_intervals,
    merge_intervals,
    overlaps,
    subtract_intervals,
)

pytestmark = pytest.mark.unit

HALF_HOUR = timedelta(minutes=30)


class TestMerge:
    """Union of overlapping intervals"""

    def test_overlapping_intervals_merge(self):
        merged = merge_intervals([(at(10), at(12)), (at(9), at(11))])
        assert merged == [(at(9), at(12))]

    def test_adjacent_intervals_join_by_default(self):
        merged = merge_intervals([(at(9), at(10)), (at(10), at(11))])
        assert merged == [(at(9), at(11))]

    def test_adjacent_intervals_stay_apart_when_asked(self):
        merged = merge_intervals([(at(9), at(10)), (at(10), at(11))], join_adjacent=False)
        assert merged == [(at(9), at(10)), (at(10), at(11))]

    def test_empty_intervals_are_dropped(self):
        assert merge_intervals([(at(9), at(9))]) == []


class TestSubtract:
    """Removing busy time from open time"""

    def test_cut_in_the_middle_splits(self):
        result = subtract_intervals([(at(9), at(12))], [(at(10), at(11))])
        assert result == [(at(9), at(10)), (at(11), at(12))]

    def test_cut_covering_everything_leaves_nothing(self):
        assert subtract_intervals([(at(9), at(10))], [(at(8), at(11))]) == []

    def test_disjoint_cut_changes_nothing(self):
        assert subtract_intervals([(at(9), at(10))], [(at(11), at(12))]) == [(at(9), at(10))]

    def test_several_cuts(self):
        result = subtract_intervals(
            [(at(9), at(17))],
            [(at(10), at(11)), (at(12), at(13)), (at(16, 30), at(18))],
        )
        assert result == [(at(9), at(10)), (at(11), at(12)), (at(13), at(16, 30))]


class TestIntersect:
    """Common time across hosts"""

    def test_two_sets(self):
        result = intersect_intervals([(at(9), at(12))], [(at(10), at(14))])
        assert result == [(at(10), at(12))]

    def test_touching_sets_have_no_overlap(self):
        assert intersect_intervals([(at(9), at(10))], [(at(10), at(11))]) == []

    def test_intersect_all_three(self):
        result = intersect_all([
            [(at(9), at(12))],
            [(at(10), at(13))],
            [(at(8), at(11)), (at(11, 30), at(15))],
        ])
        assert result == [(at(10), at(11)), (at(11, 30), at(12))]

    def test_intersect_all_empty(self):
        assert intersect_all([]) == []


class TestPredicates:
    """overlaps / contains / clip"""

    def test_touching_is_not_overlapping(self):
        assert not overlaps((at(9), at(10)), (at(10), at(11)))
        assert overlaps((at(9), at(10)), (at(9, 59), at(11)))

    def test_contains_needs_a_single_interval(self):
        free = [(at(9), at(10)), (at(10), at(11))]
        assert contains(free, (at(9), at(10)))
        assert not contains(free, (at(9, 30), at(10, 30)))

    def test_clip(self):
        assert clip_intervals([(at(8), at(12))], at(9), at(10)) == [(at(9), at(10))]
        assert clip_intervals([(at(8), at(9))], at(9), at(10)) == []


class TestGrid:
    """Slot grid laid from anchor window starts"""

    def test_full_window(self):
        slots = grid_slots([(at(9), at(12))], [(at(9), at(12))], HALF_HOUR)
        assert [s for s, _ in slots] == [at(9), at(9, 30), at(10), at(10, 30), at(11), at(11, 30)]

    def test_partial_tail_is_floored(self):
        slots = grid_slots([(at(9), at(10, 45))], [(at(9), at(10, 45))], HALF_HOUR)
        assert [s for s, _ in slots] == [at(9), at(9, 30), at(10)]

    def test_grid_stays_anchored_when_free_time_is_cut(self):
        # free time resumes at 10:45, but the grid keeps its 09:00 phase
        free = [(at(9), at(10)), (at(10, 45), at(12))]
        slots = grid_slots([(at(9), at(12))], free, HALF_HOUR)
        assert [s for s, _ in slots] == [at(9), at(9, 30), at(11), at(11, 30)]

    def test_duplicate_slots_from_overlapping_anchors_collapse(self):
        slots = grid_slots([(at(9), at(10)), (at(9), at(10))], [(at(9), at(10))], HALF_HOUR)
        assert len(slots) == 2
