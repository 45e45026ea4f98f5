# meetwise/services/intervals.py
"""
Half-open interval arithmetic over aware UTC datetimes.

An interval is a ``(start, end)`` tuple with ``start < end``; lists are kept
sorted by start.
"""
from __future__ import annotations

from datetime import datetime, timedelta
from typing import Iterable

Interval = tuple[datetime, datetime]


def merge_intervals(intervals: Iterable[Interval], *, join_adjacent: bool = True) -> list[Interval]:
    """Sort and union intervals. With ``join_adjacent=False`` touching intervals stay apart."""
    ordered = sorted((s, e) for s, e in intervals if s < e)
    if not ordered:
        return []

    merged = [ordered[0]]
    for start, end in ordered[1:]:
        last_start, last_end = merged[-1]
        touches = start <= last_end if join_adjacent else start < last_end
        if touches:
            merged[-1] = (last_start, max(last_end, end))
        else:
            merged.append((start, end))
    return merged


def subtract_intervals(base: Iterable[Interval], cuts: Iterable[Interval]) -> list[Interval]:
    """Remove every cut from base."""
    cuts = merge_intervals(cuts)
    result: list[Interval] = []
    for start, end in merge_intervals(base):
        pieces = [(start, end)]
        for cut_start, cut_end in cuts:
            if cut_end <= start or cut_start >= end:
                continue
            next_pieces = []
            for p_start, p_end in pieces:
                if cut_end <= p_start or cut_start >= p_end:
                    next_pieces.append((p_start, p_end))
                    continue
                if p_start < cut_start:
                    next_pieces.append((p_start, cut_start))
                if cut_end < p_end:
                    next_pieces.append((cut_end, p_end))
            pieces = next_pieces
        result.extend(pieces)
    return result


def intersect_intervals(a: Iterable[Interval], b: Iterable[Interval]) -> list[Interval]:
    a = merge_intervals(a)
    b = merge_intervals(b)
    result: list[Interval] = []
    i = j = 0
    while i < len(a) and j < len(b):
        start = max(a[i][0], b[j][0])
        end = min(a[i][1], b[j][1])
        if start < end:
            result.append((start, end))
        if a[i][1] < b[j][1]:
            i += 1
        else:
            j += 1
    return result


def intersect_all(interval_sets: list[list[Interval]]) -> list[Interval]:
    if not interval_sets:
        return []
    result = merge_intervals(interval_sets[0])
    for other in interval_sets[1:]:
        result = intersect_intervals(result, other)
    return result


def clip_intervals(intervals: Iterable[Interval], start: datetime, end: datetime) -> list[Interval]:
    return [(max(s, start), min(e, end)) for s, e in intervals if s < end and e > start]


def overlaps(a: Interval, b: Interval) -> bool:
    return a[0] < b[1] and a[1] > b[0]


def contains(intervals: Iterable[Interval], candidate: Interval) -> bool:
    """True when candidate lies entirely inside one of the intervals."""
    return any(s <= candidate[0] and candidate[1] <= e for s, e in intervals)


def grid_slots(anchors: Iterable[Interval], free: list[Interval], duration: timedelta) -> list[Interval]:
    """
    Lay a grid of ``duration``-long slots from the start of every anchor window
    and keep the slots that fit entirely inside one free interval.
    """
    slots: set[Interval] = set()
    for anchor_start, anchor_end in anchors:
        current = anchor_start
        while current + duration <= anchor_end:
            slot = (current, current + duration)
            if contains(free, slot):
                slots.add(slot)
            current += duration
    return sorted(slots)
