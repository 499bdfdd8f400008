"""Post-merge deterministic workload balancing."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Mapping

from examplanner.reporting.decision_trace import DecisionTraceCollector

from .calendar import ChunkCalendar
from .scoring import MAX_SAME_DAY_CHUNKS_ON_MOVE, count_gap_violations
from .slot_builder import build_horizon

logger = logging.getLogger(__name__)

MAX_BALANCE_ITERATIONS = 50

RULE_DRAIN_OVERLOAD = "RULE_DRAIN_OVERLOAD"
RULE_DONATE_BUSY = "RULE_DONATE_BUSY"
RULE_EVEN_OUT = "RULE_EVEN_OUT"


@dataclass(slots=True)
class MoveRules:
    """Per-run constraints every chunk move must respect."""

    study_days: dict[str, set[date]]
    final_review_days: dict[str, date | None]
    day_capacity: int
    blocked_days: frozenset[date] = field(default_factory=frozenset)

    @classmethod
    def build(
        cls,
        *,
        study_days: Mapping[str, list[date]],
        final_review_days: Mapping[str, date | None],
        day_capacity: int,
        blocked_days: frozenset[date] = frozenset(),
    ) -> "MoveRules":
        return cls(
            study_days={sid: set(days) for sid, days in study_days.items()},
            final_review_days=dict(final_review_days),
            day_capacity=int(day_capacity),
            blocked_days=frozenset(blocked_days),
        )

    def horizon(self) -> list[date]:
        return [day for day in build_horizon(self.study_days) if day not in self.blocked_days]

    def is_valid_day(self, subject_id: str, day: date) -> bool:
        return day in self.study_days.get(subject_id, set()) and day not in self.blocked_days


def days_after_move(calendar: ChunkCalendar, subject_id: str, source: date, destination: date) -> list[date]:
    days = set(calendar.subject_days(subject_id))
    if calendar.count(source, subject_id) <= 1:
        days.discard(source)
    days.add(destination)
    return sorted(days)


def can_move_chunk(
    calendar: ChunkCalendar,
    rules: MoveRules,
    subject_id: str,
    source: date,
    destination: date,
) -> bool:
    """Check every per-subject and per-day constraint of moving one chunk."""
    if source == destination or calendar.count(source, subject_id) <= 0:
        return False
    if not rules.is_valid_day(subject_id, destination):
        return False
    final_review = rules.final_review_days.get(subject_id)
    if destination == final_review:
        return False
    if source == final_review and calendar.count(source, subject_id) <= 1:
        return False
    if calendar.count(destination, subject_id) + 1 > MAX_SAME_DAY_CHUNKS_ON_MOVE:
        return False
    if calendar.load(destination) + 1 > rules.day_capacity:
        return False
    before = count_gap_violations(calendar.subject_days(subject_id))
    after = count_gap_violations(days_after_move(calendar, subject_id, source, destination))
    return after <= before


def _subject_order(calendar: ChunkCalendar, source: date, destination: date) -> list[str]:
    on_source = calendar.subjects_on(source)
    return sorted(
        on_source,
        key=lambda sid: (calendar.count(destination, sid), -on_source[sid], sid),
    )


def _try_move(
    calendar: ChunkCalendar,
    rules: MoveRules,
    source: date,
    destination: date,
    *,
    rule: str,
    decision_trace: DecisionTraceCollector | None,
) -> bool:
    for sid in _subject_order(calendar, source, destination):
        if not can_move_chunk(calendar, rules, sid, source, destination):
            continue
        calendar.move(sid, source, destination)
        logger.debug("%s: moved %s chunk %s -> %s", rule, sid, source, destination)
        if decision_trace is not None:
            decision_trace.record(phase="balance", rule=rule, subject_id=sid, day=destination, from_day=source)
        return True
    return False


def _drain_overloaded(
    calendar: ChunkCalendar,
    rules: MoveRules,
    horizon: list[date],
    decision_trace: DecisionTraceCollector | None,
) -> int:
    moved = 0
    for day in sorted(set(horizon) | set(calendar.days())):
        while calendar.load(day) > rules.day_capacity:
            destinations = sorted(
                (d for d in horizon if calendar.load(d) < rules.day_capacity),
                key=lambda d: (calendar.load(d), abs((d - day).days), d),
            )
            if not any(
                _try_move(calendar, rules, day, dst, rule=RULE_DRAIN_OVERLOAD, decision_trace=decision_trace)
                for dst in destinations
            ):
                break
            moved += 1
    return moved


def _donate_from_busy(
    calendar: ChunkCalendar,
    rules: MoveRules,
    horizon: list[date],
    decision_trace: DecisionTraceCollector | None,
) -> int:
    moved = 0
    for day in horizon:
        load = calendar.load(day)
        if rules.day_capacity <= 0 or load != rules.day_capacity:
            continue
        destinations = sorted(
            (d for d in horizon if calendar.load(d) <= 1 and load - calendar.load(d) >= 2),
            key=lambda d: (calendar.load(d), abs((d - day).days), d),
        )
        for dst in destinations:
            if _try_move(calendar, rules, day, dst, rule=RULE_DONATE_BUSY, decision_trace=decision_trace):
                moved += 1
                break
    return moved


def _even_out(
    calendar: ChunkCalendar,
    rules: MoveRules,
    horizon: list[date],
    decision_trace: DecisionTraceCollector | None,
) -> int:
    by_load_desc = sorted(horizon, key=lambda d: (-calendar.load(d), d))
    for source in by_load_desc:
        nearest_light = sorted(horizon, key=lambda d: (calendar.load(d), abs((d - source).days), d))
        for destination in nearest_light:
            if calendar.load(source) - calendar.load(destination) < 2:
                break
            if _try_move(calendar, rules, source, destination, rule=RULE_EVEN_OUT, decision_trace=decision_trace):
                return 1
    return 0


def balance_workload(
    calendar: ChunkCalendar,
    rules: MoveRules,
    *,
    max_iterations: int = MAX_BALANCE_ITERATIONS,
    decision_trace: DecisionTraceCollector | None = None,
) -> int:
    """Move chunks from heavy to light days in place; return the number of moves.

    Every accepted move lowers the load gap between its two days by at least
    two chunks, so the loop cannot oscillate; ``max_iterations`` bounds it
    anyway.
    """

    horizon = rules.horizon()
    total_moves = 0
    for _ in range(max(0, max_iterations)):
        moved = _drain_overloaded(calendar, rules, horizon, decision_trace)
        moved += _donate_from_busy(calendar, rules, horizon, decision_trace)
        moved += _even_out(calendar, rules, horizon, decision_trace)
        if moved == 0:
            break
        total_moves += moved
    return total_moves
