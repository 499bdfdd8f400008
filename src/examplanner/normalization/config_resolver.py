"""Resolve the effective engine configuration from layered inputs."""

from __future__ import annotations

from datetime import date
from typing import Any, Mapping

from examplanner.models import EngineConfig
from examplanner.validation import ValidationReport

DEFAULT_ENGINE_CONFIG: dict[str, Any] = {
    "daily_max_hours": 4.0,
    "preferred_daily_hours": 2.0,
    "session_minutes": 30,
    "start_date": None,
    "blocked_days": [],
    "overload_policy": "flag",
    "adjustment_percent": 0.10,
}


def resolve_engine_config(source: Any, validation_report: ValidationReport) -> dict[str, Any]:
    """Merge user values over ``DEFAULT_ENGINE_CONFIG``.

    Unknown keys are reported as errors and dropped; a preferred daily load
    above the hard cap is clamped down to it.
    """
    config = dict(DEFAULT_ENGINE_CONFIG)
    if isinstance(source, dict):
        for key, value in source.items():
            if key == "schema_version":
                continue
            if key in DEFAULT_ENGINE_CONFIG:
                config[key] = value
                continue
            validation_report.add_error(
                code="INVALID_CONFIG_KEY",
                message=f"Config key {key!r} is not allowed",
                field_path=f"$.config.{key}",
                suggested_fix=f"Use one of: {', '.join(sorted(DEFAULT_ENGINE_CONFIG))}",
            )

    preferred = config.get("preferred_daily_hours")
    daily_max = config.get("daily_max_hours")
    if _is_number(preferred) and _is_number(daily_max) and preferred > daily_max:
        config["preferred_daily_hours"] = daily_max
        validation_report.add_info(
            code="INFO_CLAMP_PREFERRED_HOURS",
            message="preferred_daily_hours was clamped to daily_max_hours",
            field_path="$.config.preferred_daily_hours",
            extra={"applied_value": daily_max},
        )

    return config


def build_engine_config(
    effective: Mapping[str, Any],
    *,
    completed_hours: Mapping[str, float] | None = None,
) -> EngineConfig:
    """Turn a resolved (and validated) config payload into an ``EngineConfig``."""
    start = effective.get("start_date")
    return EngineConfig(
        daily_max_hours=float(effective["daily_max_hours"]),
        preferred_daily_hours=float(effective["preferred_daily_hours"]),
        session_minutes=int(effective["session_minutes"]),
        start_date=date.fromisoformat(start) if isinstance(start, str) else start,
        blocked_days=frozenset(date.fromisoformat(raw) for raw in effective.get("blocked_days", [])),
        completed_hours=dict(completed_hours or {}),
        overload_policy=str(effective["overload_policy"]),
        adjustment_percent=float(effective["adjustment_percent"]),
    )


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)
