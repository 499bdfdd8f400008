"""Validation for the plan request file."""

from __future__ import annotations

from typing import Any

from .errors import ValidationError

REQUIRED_PATH_FIELDS = ("config_path", "subjects_path", "sessions_path")


def _path_error(name: str, value: Any) -> ValidationError | None:
    if value is None:
        return ValidationError(code="missing_field", message=f"Missing required field: {name}", path=f"$.{name}")
    if isinstance(value, str) and value.strip():
        return None
    return ValidationError(
        code="invalid_type",
        message=f"Field must be a non-empty string path: {name}",
        path=f"$.{name}",
    )


def validate_plan_request(payload: dict[str, Any]) -> list[ValidationError]:
    """Check that every input file is named by a non-empty path and ``today`` is a string when given."""
    errors = [err for err in (_path_error(name, payload.get(name)) for name in REQUIRED_PATH_FIELDS) if err]

    today = payload.get("today")
    if today is not None and not isinstance(today, str):
        errors.append(ValidationError(code="invalid_type", message="today must be an ISO date string", path="$.today"))
    return errors
