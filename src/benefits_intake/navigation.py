"""Navigation controller: next, back and submit over the wizard steps.

Each step is governed by exactly one ``NavigationPolicy`` from
``NavigationConfig``:

- STRICT: ``next`` validates the draft and refuses to advance on errors.
- LENIENT: ``next`` commits the draft as entered and advances; the
  validation errors are returned as warnings.

Pass-through steps (Resources on a TANF-only application) advance without
validating or committing anything. ``back`` never validates or mutates
committed data. Both are clamped: ``next`` on the last step and ``back``
on the first step leave the pointer where it is.

The last step has no ``next``: ``submit`` validates the review step and,
when configured, re-validates every committed step against the current
household so that references to removed members are reported before the
application is handed to the submitter.
"""

import math
from enum import Enum
from typing import Any, Optional, Union

import structlog
from pydantic import BaseModel, Field

from benefits_intake.config import NavigationConfig
from benefits_intake.exceptions import SubmissionError
from benefits_intake.models.enums import STEP_ORDER, STEP_TITLES, NavigationPolicy, ProgramType, StepId
from benefits_intake.models.steps import ProgramSelection
from benefits_intake.resolver import build_context
from benefits_intake.store import ApplicationStateStore
from benefits_intake.submission import LocalAcknowledgementSubmitter, SubmissionReceipt, Submitter
from benefits_intake.validation.results import FieldError
from benefits_intake.validation.schemas import STEP_SCHEMAS, StepSchema

logger = structlog.get_logger()


class NavigationAction(str, Enum):
    NEXT = "next"
    BACK = "back"
    SUBMIT = "submit"


class NavigationOutcome(BaseModel):
    """What happened when the user pressed Next or Back.

    Attributes:
        action: NEXT or BACK
        from_step: Step index before the action
        to_step: Step index after the action
        policy: Policy that governed the step, for NEXT on a validated step
        committed: Whether the draft was written to the store
        passed_through: Whether the step was skipped without validation
        errors: Blocking errors (strict policy); the pointer did not move
        warnings: Errors of a draft committed under the lenient policy
    """

    action: NavigationAction
    from_step: int
    to_step: int
    policy: Optional[NavigationPolicy] = None
    committed: bool = False
    passed_through: bool = False
    errors: list[FieldError] = Field(default_factory=list)
    warnings: list[FieldError] = Field(default_factory=list)

    @property
    def moved(self) -> bool:
        return self.to_step != self.from_step

    @property
    def blocked(self) -> bool:
        return bool(self.errors)


class SubmissionOutcome(BaseModel):
    """Result of the final submit action.

    Attributes:
        submitted: Whether the submitter accepted the application
        receipt: The submitter's receipt when submitted
        errors: Validation errors per step that prevented submission
        failure: Message from the submitter when it rejected the application
    """

    submitted: bool = False
    receipt: Optional[SubmissionReceipt] = None
    errors: dict[StepId, list[FieldError]] = Field(default_factory=dict)
    failure: Optional[str] = None

    @property
    def error_count(self) -> int:
        return sum(len(errors) for errors in self.errors.values())

    def errors_for(self, step: StepId) -> list[FieldError]:
        return self.errors.get(step, [])


def is_pass_through(step: StepId, selection: Optional[ProgramSelection]) -> bool:
    """Check whether a step is skipped for the selected programs.

    Resources is not asked for a TANF-only application.
    """
    if step == StepId.RESOURCES and selection is not None:
        return list(dict.fromkeys(selection.programs)) == [ProgramType.TANF]
    return False


class NavigationController:
    """Moves an application through its steps.

    Args:
        store: The application's state store
        config: Navigation policies
        submitter: Final submission collaborator
        schemas: Step schemas, keyed by step
    """

    def __init__(
        self,
        store: ApplicationStateStore,
        config: Optional[NavigationConfig] = None,
        submitter: Optional[Submitter] = None,
        schemas: Optional[dict[StepId, StepSchema]] = None,
    ):
        self.store = store
        self.config = config or NavigationConfig()
        self.submitter = submitter or LocalAcknowledgementSubmitter()
        self.schemas = schemas or STEP_SCHEMAS

    # -------------------------------------------------------------------------
    # Position and progress
    # -------------------------------------------------------------------------

    @property
    def total_steps(self) -> int:
        return len(STEP_ORDER)

    @property
    def current_step(self) -> int:
        return self.store.current_step

    @property
    def current_step_id(self) -> StepId:
        return self.store.current_step_id

    @property
    def is_last_step(self) -> bool:
        return self.current_step == self.total_steps

    @property
    def progress_percent(self) -> int:
        """Percentage shown in the progress bar, rounded half up."""
        return math.floor(self.current_step * 100 / self.total_steps + 0.5)

    def step_title(self, step: Optional[Union[StepId, int]] = None) -> str:
        if step is None:
            step = self.current_step_id
        elif isinstance(step, int):
            step = StepId.from_number(step)
        return STEP_TITLES[step]

    def policy_for(self, step: StepId) -> NavigationPolicy:
        return self.config.policy_for(step)

    def is_pass_through(self, step: Optional[StepId] = None) -> bool:
        """Check whether a step (default: the current one) is skipped."""
        step = step or self.current_step_id
        return is_pass_through(step, self.store.get_step(StepId.PROGRAM_SELECTION))

    # -------------------------------------------------------------------------
    # Transitions
    # -------------------------------------------------------------------------

    def next(self, draft: Any = None) -> NavigationOutcome:
        """Validate the current step's draft and advance per its policy.

        Args:
            draft: The step's draft (model or mapping). When omitted the
                committed data (or an empty draft) is used.

        Returns:
            NavigationOutcome describing the transition
        """
        from_step = self.current_step
        step = self.current_step_id

        if self.is_last_step:
            logger.debug("navigation_noop", step=step.value, reason="last_step")
            return NavigationOutcome(action=NavigationAction.NEXT, from_step=from_step, to_step=from_step)

        if self.is_pass_through(step):
            to_step = self.store.set_current_step_index(from_step + 1)
            logger.info("step_passed_through", step=step.value, to_step=to_step)
            return NavigationOutcome(
                action=NavigationAction.NEXT,
                from_step=from_step,
                to_step=to_step,
                passed_through=True,
            )

        schema = self.schemas[step]
        if draft is None:
            draft = self.store.get_step_or_default(step)
        policy = self.policy_for(step)
        result = schema.validate(draft, build_context(self.store.snapshot()))

        if result.is_valid:
            self.store.set_step(step, result.data)
            to_step = self.store.set_current_step_index(from_step + 1)
            logger.info("step_advanced", step=step.value, to_step=to_step, policy=policy.value)
            return NavigationOutcome(
                action=NavigationAction.NEXT,
                from_step=from_step,
                to_step=to_step,
                policy=policy,
                committed=True,
            )

        if policy == NavigationPolicy.STRICT:
            logger.info(
                "navigation_blocked",
                step=step.value,
                error_count=len(result.errors),
                paths=result.error_paths,
            )
            return NavigationOutcome(
                action=NavigationAction.NEXT,
                from_step=from_step,
                to_step=from_step,
                policy=policy,
                errors=result.errors,
            )

        # Normalized data when the draft type-checked, raw input otherwise
        committed = result.data if result.data is not None else schema.coerce_draft(draft)
        self.store.set_step(step, committed)
        to_step = self.store.set_current_step_index(from_step + 1)
        logger.info(
            "step_committed_with_warnings",
            step=step.value,
            to_step=to_step,
            warning_count=len(result.errors),
        )
        return NavigationOutcome(
            action=NavigationAction.NEXT,
            from_step=from_step,
            to_step=to_step,
            policy=policy,
            committed=True,
            warnings=result.errors,
        )

    def back(self) -> NavigationOutcome:
        """Move to the previous step without validating or committing."""
        from_step = self.current_step
        to_step = self.store.set_current_step_index(max(from_step - 1, 1))
        logger.debug("step_back", from_step=from_step, to_step=to_step)
        return NavigationOutcome(action=NavigationAction.BACK, from_step=from_step, to_step=to_step)

    def submit(self, draft: Any = None) -> SubmissionOutcome:
        """Validate the application and hand it to the submitter.

        Only available on the last step. The store is not reset afterwards.

        Args:
            draft: The review step's draft. When omitted the committed
                review data is used.

        Returns:
            SubmissionOutcome with a receipt, or the errors that blocked it
        """
        if not self.is_last_step:
            logger.warning("submit_outside_last_step", step=self.current_step)
            return SubmissionOutcome(
                errors={
                    self.current_step_id: [FieldError(
                        path="",
                        message="The application can only be submitted from the last step",
                        rule="not_last_step",
                    )],
                },
            )

        errors: dict[StepId, list[FieldError]] = {}
        review = self.schemas[StepId.REVIEW]
        if draft is None:
            draft = self.store.get_step_or_default(StepId.REVIEW)
        result = review.validate(draft, build_context(self.store.snapshot()))
        if result.is_valid:
            self.store.set_step(StepId.REVIEW, result.data)
        else:
            errors[StepId.REVIEW] = result.errors

        if self.config.revalidate_on_submit:
            errors.update(self._revalidate_committed())

        if errors:
            logger.info(
                "submission_blocked",
                steps=[step.value for step in errors],
                error_count=sum(len(step_errors) for step_errors in errors.values()),
            )
            return SubmissionOutcome(errors=errors)

        try:
            receipt = self.submitter.submit(self.store.snapshot())
        except SubmissionError as e:
            logger.error("submission_failed", error=str(e), recoverable=e.recoverable)
            return SubmissionOutcome(failure=e.message)

        logger.info("application_submitted", confirmation_id=receipt.confirmation_id)
        return SubmissionOutcome(submitted=True, receipt=receipt)

    def _revalidate_committed(self) -> dict[StepId, list[FieldError]]:
        """Validate every committed step before the review against the current household."""
        state = self.store.snapshot()
        context = build_context(state)
        errors: dict[StepId, list[FieldError]] = {}
        for step in STEP_ORDER[:-1]:
            data = state.get(step)
            if data is None or self.is_pass_through(step):
                continue
            result = self.schemas[step].validate(data, context)
            if not result.is_valid:
                errors[step] = result.errors
        return errors


__all__ = [
    "NavigationAction",
    "NavigationOutcome",
    "SubmissionOutcome",
    "is_pass_through",
    "NavigationController",
]
