"""Decision trace utilities for engine runtime events."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from typing import Any


@dataclass(slots=True)
class DecisionTraceCollector:
    """Collect placement and repair decisions while engine phases are executed."""

    start_timestamp: datetime
    _sequence: int = 0
    _items: list[dict[str, Any]] = field(default_factory=list)

    def __post_init__(self) -> None:
        if self.start_timestamp.tzinfo is None:
            self.start_timestamp = self.start_timestamp.replace(tzinfo=timezone.utc)

    def record(
        self,
        *,
        phase: str,
        rule: str,
        subject_id: str,
        day: date | None = None,
        from_day: date | None = None,
        chunks: int = 1,
        note: str = "",
    ) -> None:
        self._sequence += 1
        timestamp = self.start_timestamp + timedelta(seconds=self._sequence)
        self._items.append(
            {
                "decision_id": f"d-{self._sequence:06d}",
                "timestamp": timestamp.isoformat().replace("+00:00", "Z"),
                "phase": phase,
                "rule": rule,
                "subject_id": subject_id,
                "day": day.isoformat() if day is not None else None,
                "from_day": from_day.isoformat() if from_day is not None else None,
                "chunks": int(chunks),
                "note": note,
            }
        )

    def rules(self) -> list[str]:
        return [str(item["rule"]) for item in self._items]

    def as_list(self) -> list[dict[str, Any]]:
        """Return trace sorted in deterministic chronological order."""
        return sorted(self._items, key=lambda item: (str(item["timestamp"]), str(item["decision_id"])))
