"""Normalization for incoming request payloads."""

from __future__ import annotations

from datetime import date
from typing import Any

from examplanner.models import SubjectSpec


def normalize_request(payload: dict[str, Any]) -> dict[str, Any]:
    """Return a normalized copy of input request."""
    normalized = dict(payload)
    if "schema_version" not in normalized:
        normalized["schema_version"] = "1.0"
    return normalized


def parse_subjects(payload: Any) -> list[SubjectSpec]:
    """Build SubjectSpecs from a validated ``{"subjects": [...]}`` payload, keeping input order."""
    items = payload.get("subjects", []) if isinstance(payload, dict) else []
    subjects: list[SubjectSpec] = []
    for item in items:
        if not isinstance(item, dict):
            continue
        subject_id = str(item["subject_id"])
        subjects.append(
            SubjectSpec(
                subject_id=subject_id,
                name=str(item.get("name") or subject_id),
                exam_date=date.fromisoformat(item["exam_date"]),
                difficulty=int(item.get("difficulty", 3)),
                confidence=int(item.get("confidence", 3)),
                estimated_hours=float(item["estimated_hours"]),
                allow_after_exam=bool(item.get("allow_after_exam", False)),
            )
        )
    return subjects


def parse_sessions(payload: Any) -> list[dict[str, Any]]:
    """Return the raw session history entries of a ``{"sessions": [...]}`` payload."""
    items = payload.get("sessions", []) if isinstance(payload, dict) else []
    return [item for item in items if isinstance(item, dict)]
