"""Validation models."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

SEVERITY_ERROR = "error"
SEVERITY_INFO = "info"


@dataclass(slots=True)
class ValidationError:
    """One blocking problem with the plan request or a file it references."""

    code: str
    message: str
    path: str

    def as_dict(self) -> dict[str, str]:
        return {"code": self.code, "message": self.message, "path": self.path}


@dataclass(slots=True)
class ValidationIssue:
    code: str
    message: str
    field_path: str
    severity: str = SEVERITY_ERROR
    suggested_fix: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    def as_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"code": self.code, "message": self.message, "field_path": self.field_path}
        if self.suggested_fix:
            payload["suggested_fix"] = self.suggested_fix
        payload.update(self.extra)
        return payload


@dataclass(slots=True)
class ValidationReport:
    """Every issue found across config, subjects and sessions.

    Checks keep going after the first error so one run reports all of them.
    Infos never block planning.
    """

    issues: list[ValidationIssue] = field(default_factory=list)

    @property
    def errors(self) -> list[ValidationIssue]:
        return [issue for issue in self.issues if issue.severity == SEVERITY_ERROR]

    @property
    def infos(self) -> list[ValidationIssue]:
        return [issue for issue in self.issues if issue.severity == SEVERITY_INFO]

    def add_error(
        self,
        *,
        code: str,
        message: str,
        field_path: str,
        suggested_fix: str | None = None,
        extra: dict[str, Any] | None = None,
    ) -> None:
        self.issues.append(
            ValidationIssue(code, message, field_path, SEVERITY_ERROR, suggested_fix, dict(extra or {}))
        )

    def add_info(self, *, code: str, message: str, field_path: str, extra: dict[str, Any] | None = None) -> None:
        self.issues.append(ValidationIssue(code, message, field_path, SEVERITY_INFO, None, dict(extra or {})))

    def extend(self, other: ValidationReport) -> None:
        self.issues.extend(other.issues)

    def error_codes(self) -> list[str]:
        return [issue.code for issue in self.errors]

    def as_errors(self) -> list[ValidationError]:
        """Blocking issues in the shape used by error reports."""
        return [ValidationError(code=issue.code, message=issue.message, path=issue.field_path) for issue in self.errors]

    def as_dict(self) -> dict[str, list[dict[str, Any]]]:
        return {
            "errors": [issue.as_dict() for issue in self.errors],
            "infos": [issue.as_dict() for issue in self.infos],
        }
