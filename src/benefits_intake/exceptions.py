"""Custom exceptions for the benefits intake core.

This module provides a hierarchy of exception classes for consistent error
handling across the application wizard. All exceptions inherit from
IntakeError, making it easy to catch all application-specific errors.

Validation itself never raises: step schemas return results carrying a
complete list of field errors. Exceptions are reserved for the explicit
raising variants (``StepSchema.parse``), misuse of the store or session, and
collaborator failures.

Example:
    try:
        selection = PROGRAM_SELECTION_SCHEMA.parse(draft)
    except StepValidationError as e:
        for error in e.errors:
            show_inline(error.path, error.message)
    except IntakeError as e:
        logger.error("intake_failed", error=str(e))
"""

from typing import Any, Optional, Sequence


class IntakeError(Exception):
    """Base exception for all benefits intake errors.

    Attributes:
        message: Human-readable error description.
        details: Optional dictionary with additional context.
        recoverable: Whether the error is potentially recoverable.

    Example:
        >>> raise IntakeError("Something went wrong", details={"step": 3})
        IntakeError: Something went wrong
    """

    def __init__(
        self,
        message: str,
        *,
        details: Optional[dict[str, Any]] = None,
        recoverable: bool = False,
    ) -> None:
        """Initialize IntakeError.

        Args:
            message: Human-readable error description.
            details: Optional dictionary with additional context about the error.
            recoverable: Whether the error can be fixed by the user or by
                retrying. Defaults to False.
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.recoverable = recoverable

    def __str__(self) -> str:
        """Return string representation of the error."""
        return self.message

    def __repr__(self) -> str:
        """Return detailed representation of the error."""
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"details={self.details!r}, "
            f"recoverable={self.recoverable!r})"
        )


class StepValidationError(IntakeError):
    """Error raised when a step draft fails validation.

    Raised only by the raising variant ``StepSchema.parse``. Carries every
    field-level violation so callers can display all of them at once.

    Attributes:
        step: Identifier of the step that failed validation.
        errors: The field errors reported by the step schema.

    Example:
        >>> raise StepValidationError(
        ...     "Household Composition has 2 errors",
        ...     step="household",
        ...     errors=errors,
        ... )
        StepValidationError: Household Composition has 2 errors
    """

    def __init__(
        self,
        message: str,
        *,
        step: Optional[str] = None,
        errors: Optional[Sequence[Any]] = None,
        details: Optional[dict[str, Any]] = None,
        recoverable: bool = True,
    ) -> None:
        """Initialize StepValidationError.

        Args:
            message: Human-readable error description.
            step: Identifier of the step being validated.
            errors: Field errors (``FieldError`` instances).
            details: Optional dictionary with additional context.
            recoverable: Defaults to True since validation errors are fixed
                by user correction.
        """
        super().__init__(message, details=details, recoverable=recoverable)
        self.step = step
        self.errors = list(errors or [])

        if step:
            self.details["step"] = step
        if self.errors:
            self.details["paths"] = [error.path for error in self.errors]


class UnknownStepError(IntakeError):
    """Error raised when a step identifier or number does not exist.

    Attributes:
        step: The identifier or number that was requested.
    """

    def __init__(
        self,
        message: str,
        *,
        step: Optional[Any] = None,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        """Initialize UnknownStepError.

        Args:
            message: Human-readable error description.
            step: The unknown step identifier or number.
            details: Optional dictionary with additional context.
        """
        super().__init__(message, details=details, recoverable=False)
        self.step = step

        if step is not None:
            self.details["step"] = step


class LockedFieldError(IntakeError):
    """Error raised when a locked value is edited or removed.

    The "Self (Applicant)" household member is seeded from the applicant
    step and cannot be removed or have its relationship changed.

    Attributes:
        field: Path of the locked field.
    """

    def __init__(
        self,
        message: str,
        *,
        field: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        """Initialize LockedFieldError.

        Args:
            message: Human-readable error description.
            field: Path of the locked field or record.
            details: Optional dictionary with additional context.
        """
        super().__init__(message, details=details, recoverable=True)
        self.field = field

        if field:
            self.details["field"] = field


class PrefillError(IntakeError):
    """Error raised when document prefill extraction fails.

    Prefill providers raise this; the prefill service catches it, logs it
    and carries on, so it never blocks navigation.

    Attributes:
        source: Name of the uploaded document.
        provider: Name of the provider that failed.

    Example:
        >>> raise PrefillError(
        ...     "Failed to read PDF text layer",
        ...     source="drivers_license.pdf",
        ...     provider="pdf_text",
        ... )
        PrefillError: Failed to read PDF text layer
    """

    def __init__(
        self,
        message: str,
        *,
        source: Optional[str] = None,
        provider: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
        recoverable: bool = True,
    ) -> None:
        """Initialize PrefillError.

        Args:
            message: Human-readable error description.
            source: The document name being processed.
            provider: Identifier of the prefill provider.
            details: Optional dictionary with additional context.
            recoverable: Defaults to True since the form stays usable with
                the fields left unfilled.
        """
        super().__init__(message, details=details, recoverable=recoverable)
        self.source = source
        self.provider = provider

        if source:
            self.details["source"] = source
        if provider:
            self.details["provider"] = provider


class SubmissionError(IntakeError):
    """Error raised when the final submission collaborator rejects an application.

    Attributes:
        confirmation_id: Confirmation id if the backend issued one before failing.
    """

    def __init__(
        self,
        message: str,
        *,
        confirmation_id: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
        recoverable: bool = True,
    ) -> None:
        """Initialize SubmissionError.

        Args:
            message: Human-readable error description.
            confirmation_id: Partial confirmation id, if any.
            details: Optional dictionary with additional context.
            recoverable: Whether resubmitting may succeed. Defaults to True.
        """
        super().__init__(message, details=details, recoverable=recoverable)
        self.confirmation_id = confirmation_id

        if confirmation_id:
            self.details["confirmation_id"] = confirmation_id


class ConfigurationError(IntakeError):
    """Error raised when configuration is invalid or missing.

    Attributes:
        config_key: The configuration key that is problematic.
        expected: Description of the expected value or format.
        actual: The actual value found (if any).

    Example:
        >>> raise ConfigurationError(
        ...     "Unknown step in navigation policy overrides",
        ...     config_key="BENEFITS_INTAKE_NAVIGATION_STEP_POLICIES",
        ...     expected="One of the eight step identifiers",
        ... )
        ConfigurationError: Unknown step in navigation policy overrides
    """

    def __init__(
        self,
        message: str,
        *,
        config_key: Optional[str] = None,
        expected: Optional[str] = None,
        actual: Optional[Any] = None,
        details: Optional[dict[str, Any]] = None,
        recoverable: bool = False,
    ) -> None:
        """Initialize ConfigurationError.

        Args:
            message: Human-readable error description.
            config_key: The name of the configuration key that is problematic.
            expected: Description of what value was expected.
            actual: The actual value found.
            details: Optional dictionary with additional context.
            recoverable: Defaults to False since configuration errors
                require a restart or manual intervention.
        """
        super().__init__(message, details=details, recoverable=recoverable)
        self.config_key = config_key
        self.expected = expected
        self.actual = actual

        if config_key:
            self.details["config_key"] = config_key
        if expected:
            self.details["expected"] = expected
        if actual is not None:
            self.details["actual"] = actual


__all__ = [
    "IntakeError",
    "StepValidationError",
    "UnknownStepError",
    "LockedFieldError",
    "PrefillError",
    "SubmissionError",
    "ConfigurationError",
]
