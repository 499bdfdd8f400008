"""Build CLI reports."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from examplanner.validation import ValidationError, ValidationReport


def build_error_report(errors: list[ValidationError], code: str = "validation_error") -> dict[str, Any]:
    """Return a JSON-serializable error report."""
    return {
        "status": "error",
        "error": {
            "code": code,
            "count": len(errors),
            "details": [err.as_dict() for err in errors],
        },
    }


def build_error_report_with_validation(
    errors: list[ValidationError],
    validation_report: ValidationReport,
    code: str = "validation_error",
    extra: dict[str, Any] | None = None,
) -> dict[str, Any]:
    payload = build_error_report(errors, code=code)
    payload["error"].update(extra or {})
    payload["validation_report"] = validation_report.as_dict()
    return payload


def build_success_report(
    result: dict[str, Any],
    metrics: dict[str, Any],
    validation_report: ValidationReport,
    *,
    warnings: list[dict[str, Any]] | None = None,
    suggestions: list[dict[str, Any]] | None = None,
    sessions: list[dict[str, Any]] | None = None,
    decision_trace: list[dict[str, Any]] | None = None,
    effective_config: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Return a JSON-serializable success report."""
    generated_at = datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")
    plan_id = f"plan-{generated_at.replace(':', '').replace('-', '').replace('T', '-').replace('Z', '')}"
    return {
        "status": "ok",
        "plan_id": plan_id,
        "generated_at": generated_at,
        "result": result,
        "sessions": sessions or [],
        "metrics": metrics,
        "warnings": warnings or [],
        "suggestions": suggestions or [],
        "decision_trace": decision_trace or [],
        "effective_config": effective_config or {},
        "validation_report": validation_report.as_dict(),
    }
