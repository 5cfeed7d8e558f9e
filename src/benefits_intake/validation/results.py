"""Validation result types.

``FieldError`` is the unit of failure reported by every rule: a dotted field
path (``members.0.away_dates.start``), a human-readable message and the name
of the rule that produced it. ``StepResult`` wraps a step validation the way
a caller needs it: either the typed step data or the complete list of
errors, never an exception.

Example Usage:
    ```python
    result = HOUSEHOLD_SCHEMA.validate(draft)
    if result.is_valid:
        store.set_step(StepId.HOUSEHOLD, result.data)
    else:
        for error in result.errors:
            show_inline(error.path, error.message)
    ```
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Generic, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field

from benefits_intake.models.enums import StepId


StepDataT = TypeVar("StepDataT")
"""Type variable for the typed step data carried by a successful result."""


class FieldError(BaseModel):
    """A single field-level violation."""

    model_config = ConfigDict(frozen=True)

    path: str = Field(description="Dotted path of the offending field, relative to the step")
    message: str = Field(description="Human-readable message shown next to the field")
    rule: str = Field(default="custom", description="Name of the rule that failed")

    def prefixed(self, prefix: str) -> FieldError:
        """Return a copy with ``prefix`` prepended to the path."""
        if not prefix:
            return self
        path = f"{prefix}.{self.path}" if self.path else prefix
        return FieldError(path=path, message=self.message, rule=self.rule)


ValidationErrors = list[FieldError]
"""Aggregate of field errors reported for one step."""


class ResultStatus(str, Enum):
    """Outcome of validating a step draft."""

    VALID = "valid"
    INVALID = "invalid"


class StepResult(BaseModel, Generic[StepDataT]):
    """Result of validating one step's draft.

    Attributes:
        step: The step that was validated
        status: VALID or INVALID
        data: The typed, normalized step data when valid
        errors: Every violation found when invalid
    """

    step: StepId
    status: ResultStatus = ResultStatus.VALID
    data: Optional[Any] = None
    errors: list[FieldError] = Field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        """Check if the draft passed every rule."""
        return self.status == ResultStatus.VALID

    @property
    def error_paths(self) -> list[str]:
        """Paths of all errors, in reporting order."""
        return [error.path for error in self.errors]

    def messages_for(self, path: str) -> list[str]:
        """Messages reported for exactly ``path``."""
        return [error.message for error in self.errors if error.path == path]

    def has_error(self, path: str, rule: Optional[str] = None) -> bool:
        """Check whether ``path`` failed (optionally a specific rule)."""
        return any(
            error.path == path and (rule is None or error.rule == rule)
            for error in self.errors
        )

    @classmethod
    def valid(cls, step: StepId, data: Any) -> StepResult[Any]:
        """Create a successful result carrying the typed step data."""
        return cls(step=step, status=ResultStatus.VALID, data=data)

    @classmethod
    def invalid(
        cls,
        step: StepId,
        errors: list[FieldError],
        *,
        data: Any = None,
    ) -> StepResult[Any]:
        """Create a failed result.

        Args:
            step: The step that was validated
            errors: Every violation found
            data: The parsed draft, when it could be parsed at all
        """
        return cls(step=step, status=ResultStatus.INVALID, data=data, errors=errors)


__all__ = [
    "StepDataT",
    "FieldError",
    "ValidationErrors",
    "ResultStatus",
    "StepResult",
]
