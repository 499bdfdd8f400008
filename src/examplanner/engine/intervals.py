"""Interval repair and final-review guarantee passes."""

from __future__ import annotations

import logging
from datetime import date
from typing import Mapping

from examplanner.reporting.decision_trace import DecisionTraceCollector

from .calendar import ChunkCalendar
from .rebalance import MoveRules, can_move_chunk, days_after_move
from .scoring import count_gap_violations, gap_violations

logger = logging.getLogger(__name__)

MAX_REPAIR_PASSES = 10

RULE_REPAIR_GAP = "RULE_REPAIR_GAP"
RULE_FINAL_REVIEW_GUARANTEED = "RULE_FINAL_REVIEW_GUARANTEED"
RULE_FINAL_REVIEW_ABANDONED = "RULE_FINAL_REVIEW_ABANDONED"


def _repair_subject(
    calendar: ChunkCalendar,
    rules: MoveRules,
    subject_id: str,
    decision_trace: DecisionTraceCollector | None,
) -> int:
    moved = 0
    for earlier, later, _ in gap_violations(calendar.subject_days(subject_id)):
        days = calendar.subject_days(subject_id)
        if earlier not in days or later not in days:
            continue
        if any(earlier < day < later for day in days):
            continue
        before = count_gap_violations(days)
        options = [
            day
            for day in sorted(rules.study_days.get(subject_id, set()))
            if earlier < day < later
            and calendar.count(day, subject_id) == 0
            and can_move_chunk(calendar, rules, subject_id, earlier, day)
            and count_gap_violations(days_after_move(calendar, subject_id, earlier, day)) < before
        ]
        if not options:
            logger.debug("No in-between day repairs the %s gap %s -> %s", subject_id, earlier, later)
            continue
        best = min(options, key=lambda day: (calendar.load(day), day))
        calendar.move(subject_id, earlier, best)
        moved += 1
        if decision_trace is not None:
            decision_trace.record(
                phase="repair",
                rule=RULE_REPAIR_GAP,
                subject_id=subject_id,
                day=best,
                from_day=earlier,
                note=f"Gap {earlier.isoformat()} -> {later.isoformat()} shortened.",
            )
    return moved


def repair_intervals(
    calendar: ChunkCalendar,
    rules: MoveRules,
    *,
    max_passes: int = MAX_REPAIR_PASSES,
    decision_trace: DecisionTraceCollector | None = None,
) -> int:
    """Shorten gaps longer than the spacing limit by moving a chunk into them.

    Only moves that strictly reduce the subject's violation count are taken;
    a pass that moves nothing ends the repair.
    """

    total = 0
    for _ in range(max(0, max_passes)):
        moved = sum(_repair_subject(calendar, rules, sid, decision_trace) for sid in calendar.subject_ids())
        if moved == 0:
            break
        total += moved
    return total


def guarantee_final_reviews(
    calendar: ChunkCalendar,
    rules: MoveRules,
    *,
    required_chunks: Mapping[str, int],
    decision_trace: DecisionTraceCollector | None = None,
) -> int:
    """Ensure each subject holds a chunk on the day before its exam.

    The chunk comes from the subject's busiest day (earliest on ties). When
    the final-review day has no spare capacity the guarantee is abandoned and
    the audit reports it.
    """

    moved = 0
    for sid in sorted(rules.final_review_days):
        final_review: date | None = rules.final_review_days[sid]
        if final_review is None or required_chunks.get(sid, 0) <= 0:
            continue
        if calendar.count(final_review, sid) > 0:
            continue
        held = calendar.subject_chunks(sid)
        if not held:
            continue
        if calendar.load(final_review) >= rules.day_capacity:
            logger.info("Final review for %s on %s abandoned: day is full", sid, final_review)
            if decision_trace is not None:
                decision_trace.record(
                    phase="repair",
                    rule=RULE_FINAL_REVIEW_ABANDONED,
                    subject_id=sid,
                    day=final_review,
                    chunks=0,
                )
            continue
        busiest = max(held, key=lambda day: (held[day], -day.toordinal()))
        calendar.move(sid, busiest, final_review)
        moved += 1
        if decision_trace is not None:
            decision_trace.record(
                phase="repair",
                rule=RULE_FINAL_REVIEW_GUARANTEED,
                subject_id=sid,
                day=final_review,
                from_day=busiest,
            )
    return moved
