"""Turn a calendar into concrete, timed session records."""

from __future__ import annotations

from datetime import datetime, time, timedelta
from typing import Any, Iterable

from examplanner.models import ScheduleResult, SubjectSpec, hours_to_chunks

DEFAULT_DAY_START_HOUR = 9


def materialize_sessions(
    result: ScheduleResult,
    subjects: Iterable[SubjectSpec],
    session_minutes: int,
    day_start_hour: int = DEFAULT_DAY_START_HOUR,
) -> list[dict[str, Any]]:
    """Lay each day's chunks back to back from ``day_start_hour``.

    Sessions of one subject are numbered across the whole calendar, so titles
    read ``Study: <name> (i/n)``.
    """
    names = {subject.subject_id: subject.name for subject in subjects}
    chunk_hours = session_minutes / 60.0

    counts: list[tuple[Any, str, int]] = []
    totals: dict[str, int] = {}
    for allocation in result.calendar:
        for sid in sorted(allocation.subjects):
            count = hours_to_chunks(allocation.subjects[sid], chunk_hours)
            counts.append((allocation.day, sid, count))
            totals[sid] = totals.get(sid, 0) + count

    sessions: list[dict[str, Any]] = []
    numbered: dict[str, int] = {}
    offsets: dict[Any, int] = {}
    for day, sid, count in counts:
        for _ in range(count):
            numbered[sid] = numbered.get(sid, 0) + 1
            start = datetime.combine(day, time(hour=day_start_hour)) + timedelta(minutes=offsets.get(day, 0))
            end = start + timedelta(minutes=session_minutes)
            offsets[day] = offsets.get(day, 0) + session_minutes
            sessions.append(
                {
                    "subject_id": sid,
                    "title": f"Study: {names.get(sid, sid)} ({numbered[sid]}/{totals[sid]})",
                    "date": day.isoformat(),
                    "start_time": start.isoformat(timespec="minutes"),
                    "end_time": end.isoformat(timespec="minutes"),
                    "duration_minutes": session_minutes,
                    "completed": False,
                }
            )
    return sessions
