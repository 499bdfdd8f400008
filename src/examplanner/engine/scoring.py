"""Shared ordering keys, continuity rules and gap helpers."""

from __future__ import annotations

from datetime import date, timedelta
from typing import Iterable

# Largest allowed day difference between two consecutive sessions of one
# subject (at most two empty days in between). Placement, balancing, repair
# and the schedule audit all check this same value.
MAX_GAP_DAYS = 3

# Consecutive study days for one subject before the placer prefers a gap.
MAX_STREAK_DAYS = 2

# A subject never receives more than this many chunks on one day through a
# balancing move.
MAX_SAME_DAY_CHUNKS_ON_MOVE = 2


def merge_priority_key(
    *,
    day: date,
    exam_date: date,
    required_chunks: int,
    insertion_index: int,
) -> tuple[date, date, int, int]:
    """Return deterministic merge order.

    Order:
    1) day (ascending)
    2) nearest exam date (ascending)
    3) heavier subject first (required chunks descending)
    4) insertion order
    """

    return (day, exam_date, -int(required_chunks), int(insertion_index))


def gap_pairs(days: Iterable[date]) -> list[tuple[date, date, int]]:
    """Return ``(earlier, later, gap_days)`` for each adjacent pair of sorted days."""
    ordered = sorted(set(days))
    return [(a, b, (b - a).days) for a, b in zip(ordered, ordered[1:])]


def gap_violations(days: Iterable[date], max_gap_days: int = MAX_GAP_DAYS) -> list[tuple[date, date, int]]:
    return [pair for pair in gap_pairs(days) if pair[2] > max_gap_days]


def count_gap_violations(days: Iterable[date], max_gap_days: int = MAX_GAP_DAYS) -> int:
    return len(gap_violations(days, max_gap_days))


def current_streak_after(day: date, placed: Iterable[date]) -> int:
    """Count consecutive placed days immediately after ``day``."""
    placed_set = set(placed)
    streak = 0
    cursor = day + timedelta(days=1)
    while cursor in placed_set:
        streak += 1
        cursor += timedelta(days=1)
    return streak


def next_placed_after(day: date, placed: Iterable[date]) -> date | None:
    later = [item for item in placed if item > day]
    return min(later) if later else None
