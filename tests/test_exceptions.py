"""Tests for the exception hierarchy."""

import pytest

from benefits_intake.exceptions import (
    ConfigurationError,
    IntakeError,
    LockedFieldError,
    PrefillError,
    StepValidationError,
    SubmissionError,
    UnknownStepError,
)
from benefits_intake.validation.results import FieldError


class TestIntakeError:
    """Test suite for the base exception."""

    def test_message_and_defaults(self):
        error = IntakeError("Something went wrong")

        assert str(error) == "Something went wrong"
        assert error.details == {}
        assert error.recoverable is False

    def test_repr(self):
        error = IntakeError("Oops", details={"step": 3})

        assert repr(error) == "IntakeError(message='Oops', details={'step': 3}, recoverable=False)"

    @pytest.mark.parametrize(
        "error_class",
        [StepValidationError, UnknownStepError, LockedFieldError, PrefillError, SubmissionError, ConfigurationError],
    )
    def test_all_errors_are_intake_errors(self, error_class):
        with pytest.raises(IntakeError):
            raise error_class("failure")


class TestSubclassDetails:
    """Subclasses record their context in details."""

    def test_step_validation_error(self):
        errors = [FieldError(path="zip", message="Invalid ZIP code", rule="format")]

        error = StepValidationError("Applicant Information has 1 error(s)", step="applicant_info", errors=errors)

        assert error.recoverable is True
        assert error.errors == errors
        assert error.details == {"step": "applicant_info", "paths": ["zip"]}

    def test_unknown_step_error(self):
        error = UnknownStepError("Unknown step: 9", step=9)

        assert error.details == {"step": 9}
        assert error.recoverable is False

    def test_locked_field_error(self):
        error = LockedFieldError("Locked", field="members.0.relationship")

        assert error.field == "members.0.relationship"
        assert error.recoverable is True

    def test_prefill_error(self):
        error = PrefillError("Failed", source="id.pdf", provider="pdf_text")

        assert error.details == {"source": "id.pdf", "provider": "pdf_text"}

    def test_submission_error(self):
        error = SubmissionError("Rejected", confirmation_id="ABC123")

        assert error.details["confirmation_id"] == "ABC123"
        assert error.recoverable is True

    def test_configuration_error(self):
        error = ConfigurationError("Bad", config_key="log_level", expected="A level name", actual="LOUD")

        assert error.details == {"config_key": "log_level", "expected": "A level name", "actual": "LOUD"}
        assert error.recoverable is False
