"""Single-subject backward placement.

Phases:
1) reserve the final-review chunk on the day before the exam,
2) reuse prior dates (single-subject runs only),
3) backward pass from the exam with streak/diversification skips,
4) fill up to the hard daily cap, then stack the rest as overload,
5) relocate the earliest chunk when it leaves a gap violation,
6) trim rounding excess from the earliest days.

Rule preserved: the final-review day is never trimmed and never receives a
second reserved chunk.
"""

from __future__ import annotations

import logging
import math
from datetime import date
from typing import Mapping

from examplanner.reporting.decision_trace import DecisionTraceCollector

from .scoring import MAX_GAP_DAYS, MAX_STREAK_DAYS, current_streak_after, next_placed_after

logger = logging.getLogger(__name__)

PHASE = "placement"


def _other_load(others: Mapping[date, Mapping[str, int]], day: date, subject_id: str) -> int:
    return sum(count for sid, count in others.get(day, {}).items() if sid != subject_id)


def _record(
    trace: DecisionTraceCollector | None,
    *,
    rule: str,
    subject_id: str,
    day: date,
    chunks: int = 1,
    from_day: date | None = None,
    note: str = "",
) -> None:
    if trace is None:
        return
    trace.record(phase=PHASE, rule=rule, subject_id=subject_id, day=day, from_day=from_day, chunks=chunks, note=note)


def _reuse_prior_days(
    placement: dict[date, int],
    *,
    subject_id: str,
    prior_chunks: Mapping[date, int],
    candidates: list[date],
    remaining: int,
    limit: int,
    trace: DecisionTraceCollector | None,
) -> int:
    candidate_set = set(candidates)
    for day in sorted(prior_chunks, reverse=True):
        if remaining <= 0:
            break
        if day not in candidate_set:
            continue
        take = min(int(prior_chunks[day]), limit - placement.get(day, 0), remaining)
        if take <= 0:
            continue
        placement[day] = placement.get(day, 0) + take
        remaining -= take
        _record(trace, rule="RULE_REUSE_PRIOR_DAY", subject_id=subject_id, day=day, chunks=take)
    return remaining


def _skip_reason(
    *,
    subject_id: str,
    day: date,
    index: int,
    candidates: list[date],
    placement: dict[date, int],
    others: Mapping[date, Mapping[str, int]],
    remaining: int,
    target: int,
) -> str | None:
    """Return why ``day`` should stay empty, or None to place on it."""
    if current_streak_after(day, placement) >= MAX_STREAK_DAYS:
        reason = "RULE_SKIP_STREAK"
    elif _other_load(others, day, subject_id) > 0:
        reason = "RULE_SKIP_DIVERSIFY"
    else:
        return None

    room = sum(max(0, target - placement.get(later, 0)) for later in candidates[index + 1:])
    if remaining > room:
        return None

    later_placed = next_placed_after(day, placement)
    if later_placed is None:
        return reason
    if index + 1 >= len(candidates):
        return None
    if (later_placed - candidates[index + 1]).days > MAX_GAP_DAYS:
        return None
    return reason


def _backward_pass(
    placement: dict[date, int],
    *,
    subject_id: str,
    candidates: list[date],
    remaining: int,
    soft_limit: int,
    others: Mapping[date, Mapping[str, int]],
    trace: DecisionTraceCollector | None,
) -> int:
    if remaining <= 0 or not candidates:
        return remaining
    target = min(soft_limit, max(1, math.ceil(remaining / len(candidates))))

    for index, day in enumerate(candidates):
        if remaining <= 0:
            break
        held = placement.get(day, 0)
        if held >= target:
            continue
        if held == 0:
            reason = _skip_reason(
                subject_id=subject_id,
                day=day,
                index=index,
                candidates=candidates,
                placement=placement,
                others=others,
                remaining=remaining,
                target=target,
            )
            if reason is not None:
                _record(trace, rule=reason, subject_id=subject_id, day=day, chunks=0)
                continue
        take = min(target - held, remaining)
        placement[day] = held + take
        remaining -= take
        _record(trace, rule="RULE_BACKWARD_PLACEMENT", subject_id=subject_id, day=day, chunks=take)
    return remaining


def _round_robin_fill(
    placement: dict[date, int],
    *,
    subject_id: str,
    days: list[date],
    remaining: int,
    limit: int | None,
    rule: str,
    trace: DecisionTraceCollector | None,
) -> int:
    """Add one chunk per day per sweep, nearest the exam first, until ``limit`` (None = no limit)."""
    while remaining > 0 and days:
        progressed = False
        for day in days:
            if remaining <= 0:
                break
            if limit is not None and placement.get(day, 0) >= limit:
                continue
            placement[day] = placement.get(day, 0) + 1
            remaining -= 1
            progressed = True
            _record(trace, rule=rule, subject_id=subject_id, day=day)
        if not progressed:
            break
    return remaining


def _relocate_earliest(
    placement: dict[date, int],
    *,
    subject_id: str,
    valid_days: list[date],
    final_review: date | None,
    others: Mapping[date, Mapping[str, int]],
    trace: DecisionTraceCollector | None,
) -> None:
    for _ in range(len(valid_days) + sum(placement.values())):
        placed = sorted(placement)
        if len(placed) < 2:
            return
        first, second = placed[0], placed[1]
        if (second - first).days <= MAX_GAP_DAYS or first == final_review:
            return
        options = [
            day
            for day in valid_days
            if first < day < second and placement.get(day, 0) == 0 and (second - day).days <= MAX_GAP_DAYS
        ]
        if not options:
            return
        best = min(options, key=lambda day: (_other_load(others, day, subject_id), day))
        placement[first] -= 1
        if placement[first] == 0:
            del placement[first]
        placement[best] = 1
        _record(trace, rule="RULE_RELOCATE_EARLIEST", subject_id=subject_id, day=best, from_day=first)


def _trim_excess(
    placement: dict[date, int],
    *,
    subject_id: str,
    required_chunks: int,
    final_review: date | None,
    trace: DecisionTraceCollector | None,
) -> None:
    excess = sum(placement.values()) - required_chunks
    for day in sorted(placement):
        if excess <= 0:
            return
        if day == final_review:
            continue
        take = min(placement[day], excess)
        placement[day] -= take
        excess -= take
        if placement[day] == 0:
            del placement[day]
        _record(trace, rule="RULE_TRIM_EXCESS", subject_id=subject_id, day=day, chunks=take)


def place_subject(
    *,
    subject_id: str,
    study_days: list[date],
    required_chunks: int,
    final_review_day: date | None,
    day_capacity: int,
    preferred_capacity: int,
    other_placements: Mapping[date, Mapping[str, int]] | None = None,
    prior_chunks: Mapping[date, int] | None = None,
    decision_trace: DecisionTraceCollector | None = None,
) -> dict[date, int]:
    """Draft the per-day chunk counts of one subject.

    ``other_placements`` is a read-only view of the preliminary placements of
    the subjects placed before this one; ``prior_chunks`` are reused first and
    must only be passed for single-subject runs.
    """

    if required_chunks <= 0 or not study_days or day_capacity <= 0:
        return {}

    valid_days = sorted(set(study_days))
    final_review = final_review_day if final_review_day in set(valid_days) else None
    others = other_placements or {}
    placement: dict[date, int] = {}
    remaining = required_chunks

    if final_review is not None:
        placement[final_review] = 1
        remaining -= 1
        _record(decision_trace, rule="RULE_FINAL_REVIEW_RESERVED", subject_id=subject_id, day=final_review)

    candidates = [day for day in reversed(valid_days) if day != final_review]

    if prior_chunks:
        remaining = _reuse_prior_days(
            placement,
            subject_id=subject_id,
            prior_chunks=prior_chunks,
            candidates=candidates,
            remaining=remaining,
            limit=day_capacity,
            trace=decision_trace,
        )

    soft_limit = max(1, min(day_capacity, preferred_capacity or day_capacity))
    remaining = _backward_pass(
        placement,
        subject_id=subject_id,
        candidates=candidates,
        remaining=remaining,
        soft_limit=soft_limit,
        others=others,
        trace=decision_trace,
    )
    remaining = _round_robin_fill(
        placement,
        subject_id=subject_id,
        days=candidates,
        remaining=remaining,
        limit=day_capacity,
        rule="RULE_FILL_TO_CAPACITY",
        trace=decision_trace,
    )
    if remaining > 0:
        logger.warning(
            "Subject %s needs %d chunk(s) beyond the daily cap; stacking them as overload",
            subject_id,
            remaining,
        )
        remaining = _round_robin_fill(
            placement,
            subject_id=subject_id,
            days=candidates or valid_days,
            remaining=remaining,
            limit=None,
            rule="RULE_OVERLOAD_STACK",
            trace=decision_trace,
        )

    _relocate_earliest(
        placement,
        subject_id=subject_id,
        valid_days=valid_days,
        final_review=final_review,
        others=others,
        trace=decision_trace,
    )
    _trim_excess(
        placement,
        subject_id=subject_id,
        required_chunks=required_chunks,
        final_review=final_review,
        trace=decision_trace,
    )

    logger.debug("Placed %d chunk(s) for %s over %d day(s)", sum(placement.values()), subject_id, len(placement))
    return {day: placement[day] for day in sorted(placement)}
