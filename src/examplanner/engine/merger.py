"""Merge per-subject preliminary placements into one calendar."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Mapping

from examplanner.reporting.decision_trace import DecisionTraceCollector

from .calendar import ChunkCalendar
from .scoring import merge_priority_key

logger = logging.getLogger(__name__)

PHASE = "merge"


@dataclass(slots=True)
class MergeResult:
    calendar: ChunkCalendar
    overloaded_days: set[date] = field(default_factory=set)
    pushed_chunks: int = 0


def _nearest_earlier_day(
    day: date,
    study_days: list[date],
    calendar: ChunkCalendar,
    day_capacity: int,
) -> date | None:
    for candidate in sorted((d for d in study_days if d < day), reverse=True):
        if calendar.load(candidate) < day_capacity:
            return candidate
    return None


def merge_placements(
    *,
    placements: Mapping[str, Mapping[date, int]],
    exam_dates: Mapping[str, date],
    required_chunks: Mapping[str, int],
    study_days: Mapping[str, list[date]],
    day_capacity: int,
    decision_trace: DecisionTraceCollector | None = None,
) -> MergeResult:
    """Place every preliminary chunk, resolving same-day collisions.

    Sooner exams win a contested day, then heavier subjects, then insertion
    order. Overflow moves to the nearest earlier study day with room; a chunk
    with nowhere to go stays on its day, which is then flagged overloaded.
    """

    candidates: list[tuple[tuple[date, date, int, int], str, date, int]] = []
    insertion_index = 0
    for sid, by_day in placements.items():
        for day in sorted(by_day):
            count = int(by_day[day])
            if count <= 0:
                continue
            key = merge_priority_key(
                day=day,
                exam_date=exam_dates[sid],
                required_chunks=required_chunks.get(sid, 0),
                insertion_index=insertion_index,
            )
            candidates.append((key, sid, day, count))
            insertion_index += 1

    result = MergeResult(calendar=ChunkCalendar())
    calendar = result.calendar
    for _, sid, day, count in sorted(candidates, key=lambda item: item[0]):
        for _ in range(count):
            if calendar.load(day) < day_capacity:
                calendar.add(day, sid)
                continue
            earlier = _nearest_earlier_day(day, study_days.get(sid, []), calendar, day_capacity)
            if earlier is not None:
                calendar.add(earlier, sid)
                result.pushed_chunks += 1
                if decision_trace is not None:
                    decision_trace.record(
                        phase=PHASE,
                        rule="RULE_PUSH_EARLIER",
                        subject_id=sid,
                        day=earlier,
                        from_day=day,
                        note="Day full; chunk moved to the nearest earlier day with capacity.",
                    )
                continue
            calendar.add(day, sid)
            result.overloaded_days.add(day)
            logger.warning("Day %s overloaded by %s: no earlier study day has capacity", day, sid)
            if decision_trace is not None:
                decision_trace.record(
                    phase=PHASE,
                    rule="RULE_OVERLOAD_KEEP",
                    subject_id=sid,
                    day=day,
                    note="No earlier day with capacity; chunk kept and day flagged overloaded.",
                )

    return result
