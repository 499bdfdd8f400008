"""Utilities for re-running the planner over an existing session history."""

from __future__ import annotations

from collections import Counter, defaultdict
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Iterable, Mapping

from examplanner.models import ExistingSessionRecord, hours_to_chunks


@dataclass(slots=True)
class SessionHistory:
    """Raw sessions split by what a new run may do with them."""

    completed: list[dict[str, Any]] = field(default_factory=list)
    missed: list[dict[str, Any]] = field(default_factory=list)
    reschedulable: list[ExistingSessionRecord] = field(default_factory=list)
    completed_hours: dict[str, float] = field(default_factory=dict)


def session_hours(session: Mapping[str, Any]) -> float:
    """Read a session's length from duration_minutes, falling back to duration_hours."""
    if session.get("duration_minutes") is not None:
        return max(0.0, float(session["duration_minutes"]) / 60.0)
    return max(0.0, float(session.get("duration_hours", 0) or 0))


def _session_day(session: Mapping[str, Any]) -> date | None:
    raw = session.get("date")
    if isinstance(raw, date):
        return raw
    if not isinstance(raw, str):
        return None
    try:
        return date.fromisoformat(raw)
    except ValueError:
        return None


def classify_history(sessions: Iterable[Mapping[str, Any]], today: date) -> SessionHistory:
    """Split sessions into completed (any date), missed (past) and reschedulable (today or later).

    Completed sessions are locked and their hours count as done work. Missed
    sessions stay where they are and their hours are simply not done yet.
    """
    history = SessionHistory()
    done: dict[str, float] = defaultdict(float)

    for session in sessions:
        sid = str(session.get("subject_id", ""))
        day = _session_day(session)
        if not sid or day is None:
            continue
        hours = session_hours(session)
        if bool(session.get("completed", False)):
            history.completed.append(dict(session))
            done[sid] += hours
        elif day < today:
            history.missed.append(dict(session))
        else:
            history.reschedulable.append(ExistingSessionRecord(day=day, subject_id=sid, duration_hours=hours))

    history.completed_hours = {sid: round(hours, 6) for sid, hours in sorted(done.items())}
    return history


def existing_chunks_by_subject(
    records: Iterable[ExistingSessionRecord],
    chunk_hours: float,
) -> dict[str, dict[date, int]]:
    """Convert existing records into whole chunks per subject and day."""
    hours: dict[str, dict[date, float]] = defaultdict(lambda: defaultdict(float))
    for record in records:
        if record.duration_hours <= 0:
            continue
        hours[record.subject_id][record.day] += record.duration_hours

    out: dict[str, dict[date, int]] = {}
    for sid, by_day in hours.items():
        chunks = {day: hours_to_chunks(total, chunk_hours) for day, total in sorted(by_day.items())}
        out[sid] = {day: count for day, count in chunks.items() if count > 0}
    return out


def compute_reallocation_metrics(
    previous: Mapping[str, Mapping[date, int]],
    new: Mapping[str, Mapping[date, int]],
) -> dict[str, float]:
    """Compare old/new placements chunk by chunk and compute reallocated_ratio + stability_score."""

    def _expand(placements: Mapping[str, Mapping[date, int]]) -> Counter[tuple[str, str]]:
        counter: Counter[tuple[str, str]] = Counter()
        for sid, by_day in placements.items():
            for day, count in by_day.items():
                if count > 0:
                    counter[(day.isoformat(), sid)] += int(count)
        return counter

    old_counter = _expand(previous)
    new_counter = _expand(new)

    unchanged = sum((old_counter & new_counter).values())
    old_total = sum(old_counter.values())

    if old_total <= 0:
        return {"reallocated_ratio": 0.0, "stability_score": 1.0}

    reallocated_ratio = max(0.0, min(1.0, 1.0 - (unchanged / old_total)))
    return {
        "reallocated_ratio": round(reallocated_ratio, 6),
        "stability_score": round(max(0.0, min(1.0, 1.0 - reallocated_ratio)), 6),
    }
