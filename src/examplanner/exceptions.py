"""Exception hierarchy raised by the planning engine."""

from __future__ import annotations

from typing import Any


class PlannerError(Exception):
    """Base class for all planner errors."""


class InvalidSubjectError(PlannerError, ValueError):
    """A subject cannot be planned because its inputs are malformed."""


class InvalidConfigError(PlannerError, ValueError):
    """The engine configuration is malformed."""


class OverloadRejectedError(PlannerError):
    """The schedule needs overloaded days and the overload policy rejects them."""

    def __init__(self, result: Any, choices: list[str]) -> None:
        self.result = result
        self.overload = result.overload
        self.choices = list(choices)
        super().__init__(self.overload.message if self.overload is not None else "Schedule overloaded")
