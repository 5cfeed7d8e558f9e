"""Application state store.

Single source of truth for which step is active and each step's last
committed data. The store does not validate: ``set_step`` overwrites a
step's slice unconditionally, which is the seam the lenient navigation
policy relies on. Validation is the caller's responsibility.

One store belongs to one application in progress; it is owned by an
``ApplicationSession`` rather than shared globally.
"""

from typing import Any, Optional, Union

import structlog
from pydantic import ValidationError

from benefits_intake.exceptions import UnknownStepError
from benefits_intake.models.enums import STEP_ORDER, StepId
from benefits_intake.models.steps import STEP_MODELS, ApplicationState, DraftModel

logger = structlog.get_logger()


def _as_step(step: Union[StepId, str]) -> StepId:
    try:
        return StepId(step)
    except ValueError:
        raise UnknownStepError(f"Unknown step: {step!r}", step=step) from None


class ApplicationStateStore:
    """Holds the ``ApplicationState`` aggregate for one application.

    Reads and writes deep-copy step data so callers can never mutate
    committed data through a reference they still hold.
    """

    def __init__(self, state: Optional[ApplicationState] = None):
        self._state = state.model_copy(deep=True) if state is not None else ApplicationState()

    @property
    def total_steps(self) -> int:
        return len(STEP_ORDER)

    @property
    def current_step(self) -> int:
        """1-based index of the active step."""
        return self._state.current_step

    @property
    def current_step_id(self) -> StepId:
        return StepId.from_number(self._state.current_step)

    def get_step(self, step: Union[StepId, str]) -> Optional[DraftModel]:
        """Return a copy of a step's committed data, or None if never set."""
        data = self._state.get(_as_step(step))
        return data.model_copy(deep=True) if data is not None else None

    def get_step_or_default(self, step: Union[StepId, str]) -> DraftModel:
        """Return a step's committed data, or an empty draft of its shape."""
        step_id = _as_step(step)
        data = self.get_step(step_id)
        return data if data is not None else STEP_MODELS[step_id]()

    def set_step(self, step: Union[StepId, str], data: Any) -> None:
        """Overwrite a step's committed data.

        ``data`` is stored as given (deep-copied); it is not validated.
        Setting the same data twice leaves the store unchanged.

        Raises:
            UnknownStepError: If ``step`` is not a wizard step
        """
        step_id = _as_step(step)
        model = STEP_MODELS[step_id]
        if data is None:
            value = None
        elif isinstance(data, DraftModel):
            value = data.model_copy(deep=True)
        else:
            try:
                value = model.model_validate(data)
            except ValidationError:
                value = model.model_construct(**dict(data))
        if step_id == StepId.PROGRAM_SELECTION and value is None:
            value = model()

        # Assign in place; ApplicationState does not validate on assignment
        setattr(self._state, step_id.value, value)
        logger.debug("step_committed", step=step_id.value)

    def set_current_step_index(self, index: int) -> int:
        """Move the step pointer, clamped to ``[1, total_steps]``.

        Returns:
            The step index actually set
        """
        clamped = min(max(int(index), 1), self.total_steps)
        if clamped != index:
            logger.debug("step_index_clamped", requested=index, applied=clamped)
        self._state.current_step = clamped
        return clamped

    def reset(self) -> None:
        """Restore the initial aggregate and step pointer 1."""
        self._state = ApplicationState()
        logger.info("application_reset")

    def snapshot(self) -> ApplicationState:
        """Deep copy of the whole aggregate."""
        return self._state.model_copy(deep=True)


__all__ = [
    "ApplicationStateStore",
]
