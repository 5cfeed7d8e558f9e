"""Validation for wizard steps.

- results.py: FieldError and StepResult
- rules.py: reusable rules, rule factories and the validation context
- schemas.py: one StepSchema per step
"""

from benefits_intake.validation.results import FieldError, ResultStatus, StepResult, ValidationErrors
from benefits_intake.validation.rules import ValidationContext, format_ssn
from benefits_intake.validation.schemas import STEP_SCHEMAS, StepSchema, get_schema

__all__ = [
    "FieldError",
    "ResultStatus",
    "StepResult",
    "ValidationErrors",
    "ValidationContext",
    "format_ssn",
    "STEP_SCHEMAS",
    "StepSchema",
    "get_schema",
]
