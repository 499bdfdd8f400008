"""Chunk-level calendar shared by the placement and repair passes."""

from __future__ import annotations

from datetime import date
from typing import Iterable, Mapping

from examplanner.models import DayAllocation


class ChunkCalendar:
    """Whole-chunk allocations keyed by day, then by subject id.

    Only positive counts are stored, so an empty day disappears from the
    mapping as soon as its last chunk moves away.
    """

    def __init__(self, chunks: Mapping[date, Mapping[str, int]] | None = None) -> None:
        self._chunks: dict[date, dict[str, int]] = {}
        for day, by_subject in (chunks or {}).items():
            for sid, count in by_subject.items():
                self.add(day, sid, count)

    @classmethod
    def from_placements(cls, placements: Mapping[str, Mapping[date, int]]) -> "ChunkCalendar":
        calendar = cls()
        for sid, by_day in placements.items():
            for day, count in by_day.items():
                calendar.add(day, sid, count)
        return calendar

    def add(self, day: date, subject_id: str, count: int = 1) -> None:
        if count <= 0:
            return
        day_chunks = self._chunks.setdefault(day, {})
        day_chunks[subject_id] = day_chunks.get(subject_id, 0) + count

    def remove(self, day: date, subject_id: str, count: int = 1) -> None:
        held = self.count(day, subject_id)
        if count <= 0 or held <= 0:
            return
        if count > held:
            raise ValueError(f"cannot remove {count} chunk(s) of {subject_id} on {day}: only {held} held")
        if held == count:
            del self._chunks[day][subject_id]
            if not self._chunks[day]:
                del self._chunks[day]
        else:
            self._chunks[day][subject_id] = held - count

    def move(self, subject_id: str, source: date, destination: date, count: int = 1) -> None:
        self.remove(source, subject_id, count)
        self.add(destination, subject_id, count)

    def count(self, day: date, subject_id: str) -> int:
        return self._chunks.get(day, {}).get(subject_id, 0)

    def load(self, day: date) -> int:
        return sum(self._chunks.get(day, {}).values())

    def subjects_on(self, day: date) -> dict[str, int]:
        return dict(self._chunks.get(day, {}))

    def days(self) -> list[date]:
        return sorted(self._chunks)

    def subject_days(self, subject_id: str) -> list[date]:
        return sorted(day for day, by_subject in self._chunks.items() if subject_id in by_subject)

    def subject_chunks(self, subject_id: str) -> dict[date, int]:
        return {day: self._chunks[day][subject_id] for day in self.subject_days(subject_id)}

    def subject_total(self, subject_id: str) -> int:
        return sum(by_subject.get(subject_id, 0) for by_subject in self._chunks.values())

    def subject_ids(self) -> list[str]:
        return sorted({sid for by_subject in self._chunks.values() for sid in by_subject})

    def total_chunks(self) -> int:
        return sum(self.load(day) for day in self._chunks)

    def snapshot(self) -> dict[date, dict[str, int]]:
        return {day: dict(self._chunks[day]) for day in sorted(self._chunks)}

    def copy(self) -> "ChunkCalendar":
        return ChunkCalendar(self.snapshot())

    def loads(self, days: Iterable[date]) -> dict[date, int]:
        return {day: self.load(day) for day in days}

    def to_day_allocations(self, *, chunk_hours: float, day_capacity: int) -> list[DayAllocation]:
        """Export hours per subject; days above ``day_capacity`` chunks are flagged overloaded."""
        allocations: list[DayAllocation] = []
        for day in self.days():
            by_subject = self._chunks[day]
            allocations.append(
                DayAllocation(
                    day=day,
                    subjects={sid: round(by_subject[sid] * chunk_hours, 6) for sid in sorted(by_subject)},
                    overloaded=self.load(day) > day_capacity,
                )
            )
        return allocations

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ChunkCalendar):
            return NotImplemented
        return self.snapshot() == other.snapshot()

    def __repr__(self) -> str:
        return f"ChunkCalendar({self.snapshot()!r})"
