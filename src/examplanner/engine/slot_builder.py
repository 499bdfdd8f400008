"""Build the ascending list of legal study days for each subject."""

from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Iterable, Mapping

from examplanner.models import SubjectSpec


def _to_date(value: str | date | datetime) -> date:
    # Normalize to day granularity so time-of-day never shifts the window.
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return datetime.strptime(value, "%Y-%m-%d").date()


def _iter_days(start: date, end: date) -> list[date]:
    days: list[date] = []
    cursor = start
    while cursor <= end:
        days.append(cursor)
        cursor += timedelta(days=1)
    return days


def study_window(
    subject: SubjectSpec,
    *,
    start_date: str | date | None,
    today: str | date,
) -> tuple[date, date]:
    """Return the inclusive (first, last) study day bounds; first > last means no window."""
    lower = _to_date(today)
    if start_date is not None:
        lower = max(lower, _to_date(start_date))
    exam_day = _to_date(subject.exam_date)
    upper = exam_day if subject.allow_after_exam else exam_day - timedelta(days=1)
    return lower, upper


def build_study_days(
    subject: SubjectSpec,
    *,
    start_date: str | date | None,
    today: str | date,
    blocked_days: Iterable[date] = (),
) -> list[date]:
    """Build the ascending valid study days of one subject.

    Blocked days are removed; an empty list means the subject cannot be
    scheduled at all, which the schedule audit reports.
    """

    lower, upper = study_window(subject, start_date=start_date, today=today)
    if lower > upper:
        return []
    blocked = {_to_date(day) for day in blocked_days}
    return [day for day in _iter_days(lower, upper) if day not in blocked]


def final_review_day(subject: SubjectSpec, study_days: list[date]) -> date | None:
    """Return the day before the exam when it is a valid study day."""
    candidate = _to_date(subject.exam_date) - timedelta(days=1)
    if study_days and candidate in set(study_days):
        return candidate
    return None


def build_horizon(study_days_by_subject: Mapping[str, Iterable[date]]) -> list[date]:
    """Union of all subjects' study days, ascending."""
    days: set[date] = set()
    for subject_days in study_days_by_subject.values():
        days.update(subject_days)
    return sorted(days)
