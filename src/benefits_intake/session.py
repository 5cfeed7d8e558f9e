"""Application session: one application in progress.

The session is the explicit owner of everything a running wizard needs:
the state store, the per-step drafts being edited, the navigation
controller, the prefill service and the submitter. A presentation layer
creates one session per applicant and talks to it through field bindings:

    session = ApplicationSession()
    binding = session.binding(StepId.APPLICANT_INFO, "name.first")
    errors = binding.on_change("Jane")
    outcome = session.next()

Drafts are plain dicts of user input, so they can hold values that do not
type-check yet; the step schemas report those as field errors.
"""

import copy
from dataclasses import dataclass
from typing import Any, Callable, Optional, Sequence, Union

import structlog
from pydantic import ValidationError

from benefits_intake.config import IntakeConfig
from benefits_intake.exceptions import IntakeError, LockedFieldError, UnknownStepError
from benefits_intake.household import add_member, remove_member, seed_household
from benefits_intake.models.enums import Relationship, StepId
from benefits_intake.models.steps import ApplicationState, HouseholdComposition, HouseholdMember
from benefits_intake.navigation import NavigationController, NavigationOutcome, SubmissionOutcome
from benefits_intake.prefill import (
    APPLICANT_FIELD_MAP,
    MEMBER_FIELD_MAP,
    DocumentPrefillService,
    PrefillProvider,
    PrefillRecord,
    PrefillTicket,
    UploadedDocument,
    apply_record,
    issue_ticket,
)
from benefits_intake.resolver import DerivedLists, ReviewSummary, build_context, build_review_summary, resolve
from benefits_intake.store import ApplicationStateStore
from benefits_intake.submission import Submitter
from benefits_intake.validation.results import FieldError
from benefits_intake.validation.rules import get_path, set_path
from benefits_intake.validation.schemas import STEP_SCHEMAS

logger = structlog.get_logger()


@dataclass
class FieldBinding:
    """Current value of one draft field and the callback that changes it."""
    step: StepId
    path: str
    value: Any
    on_change: Callable[[Any], list[FieldError]]


def _coerce_member(member: Any) -> HouseholdMember:
    if isinstance(member, HouseholdMember):
        return member
    try:
        return HouseholdMember.model_validate(member)
    except ValidationError:
        return HouseholdMember.model_construct(**member)


def _applicant_id(draft: dict[str, Any]) -> Optional[str]:
    for member in draft.get("members") or []:
        # str enum: compares equal to its label
        if get_path(member, "relationship") == Relationship.SELF:
            return get_path(member, "id")
    return None


def _check_applicant_lock(before: dict[str, Any], after: dict[str, Any], path: str) -> None:
    """The applicant member must survive any household write with its relationship."""
    applicant_id = _applicant_id(before)
    if applicant_id is None:
        return
    for member in after.get("members") or []:
        if get_path(member, "id") == applicant_id and get_path(member, "relationship") == Relationship.SELF:
            return
    raise LockedFieldError("The applicant's relationship cannot be changed", field=path)


def _step(step: Union[StepId, str]) -> StepId:
    try:
        return StepId(step)
    except ValueError:
        raise UnknownStepError(f"Unknown step: {step!r}", step=step) from None


class ApplicationSession:
    """Owner of one application in progress.

    Args:
        config: Root configuration (navigation policies, prefill settings)
        submitter: Final submission collaborator
        prefill_provider: Document extraction provider
        state: Initial application state, e.g. restored from a snapshot
    """

    def __init__(
        self,
        config: Optional[IntakeConfig] = None,
        *,
        submitter: Optional[Submitter] = None,
        prefill_provider: Optional[PrefillProvider] = None,
        state: Optional[ApplicationState] = None,
    ):
        self.config = config or IntakeConfig()
        self.store = ApplicationStateStore(state)
        self.controller = NavigationController(self.store, self.config.navigation, submitter)
        self.prefill_service = DocumentPrefillService(prefill_provider, self.config.prefill)
        self._drafts: dict[StepId, dict[str, Any]] = {}
        self._epoch = 0

    @property
    def current_step(self) -> int:
        return self.store.current_step

    @property
    def current_step_id(self) -> StepId:
        return self.store.current_step_id

    @property
    def epoch(self) -> int:
        """Visit counter; changes whenever the displayed step changes or the session resets."""
        return self._epoch

    # -------------------------------------------------------------------------
    # Drafts and bindings
    # -------------------------------------------------------------------------

    def draft(self, step: Optional[Union[StepId, str]] = None) -> dict[str, Any]:
        """The working draft for a step (default: the current one).

        A step's draft starts from its committed data. The household draft
        starts with the applicant as its only member.
        """
        step_id = _step(step) if step is not None else self.current_step_id
        if step_id not in self._drafts:
            self._drafts[step_id] = self._initial_draft(step_id)
        return self._drafts[step_id]

    def _initial_draft(self, step: StepId) -> dict[str, Any]:
        committed = self.store.get_step(step)
        if committed is not None:
            return committed.model_dump(warnings=False)
        if step == StepId.HOUSEHOLD:
            applicant = self.store.get_step(StepId.APPLICANT_INFO)
            return seed_household(applicant).model_dump()
        return STEP_SCHEMAS[step].default().model_dump()

    def binding(self, step: Union[StepId, str], path: str) -> FieldBinding:
        """Bind one field of a step draft for the presentation layer."""
        step_id = _step(step)
        return FieldBinding(
            step=step_id,
            path=path,
            value=get_path(self.draft(step_id), path),
            on_change=lambda value: self.update_draft(step_id, path, value),
        )

    def update_draft(self, step: Union[StepId, str], path: str, value: Any) -> list[FieldError]:
        """Change one draft field and return the errors now reported for it.

        Raises:
            LockedFieldError: If the change would alter or drop the
                applicant's "Self (Applicant)" household entry
        """
        step_id = _step(step)
        draft = self.draft(step_id)
        updated = copy.deepcopy(draft)
        try:
            set_path(updated, path, value)
        except KeyError:
            raise IntakeError(
                f"No field at {path!r} in {step_id.value}",
                details={"step": step_id.value, "path": path},
            ) from None
        if step_id == StepId.HOUSEHOLD:
            _check_applicant_lock(draft, updated, path)
        self._drafts[step_id] = updated
        return self.field_errors(step_id, path)

    def validate_step(self, step: Optional[Union[StepId, str]] = None) -> list[FieldError]:
        """All errors of a step draft against the committed application."""
        step_id = _step(step) if step is not None else self.current_step_id
        context = build_context(self.store.snapshot())
        return STEP_SCHEMAS[step_id].validate(self.draft(step_id), context).errors

    def field_errors(self, step: Union[StepId, str], path: str) -> list[FieldError]:
        """Errors reported for ``path`` or any field below it."""
        return [
            error for error in self.validate_step(step)
            if error.path == path or error.path.startswith(f"{path}.")
        ]

    # -------------------------------------------------------------------------
    # Household
    # -------------------------------------------------------------------------

    def household_draft(self) -> HouseholdComposition:
        """The household draft as a model; members that do not type-check yet are kept as entered."""
        return HouseholdComposition.model_construct(
            members=[_coerce_member(member) for member in self.draft(StepId.HOUSEHOLD).get("members", [])],
        )

    def add_household_member(self, member: Optional[HouseholdMember] = None) -> str:
        """Append a member row to the household draft and return its id."""
        household = add_member(self.household_draft(), member)
        self._drafts[StepId.HOUSEHOLD] = household.model_dump(warnings=False)
        return household.members[-1].id

    def remove_household_member(self, member_id: str) -> None:
        """Remove a member from the household draft.

        Raises:
            LockedFieldError: If ``member_id`` is the applicant
        """
        household = remove_member(self.household_draft(), member_id)
        self._drafts[StepId.HOUSEHOLD] = household.model_dump(warnings=False)

    # -------------------------------------------------------------------------
    # Navigation
    # -------------------------------------------------------------------------

    def next(self) -> NavigationOutcome:
        step = self.current_step_id
        draft = None if self.controller.is_pass_through(step) else self.draft(step)
        outcome = self.controller.next(draft)
        self._after_move(outcome)
        return outcome

    def back(self) -> NavigationOutcome:
        outcome = self.controller.back()
        self._after_move(outcome)
        return outcome

    def submit(self) -> SubmissionOutcome:
        return self.controller.submit(self.draft(StepId.REVIEW))

    def reset(self) -> None:
        """Discard the application and start over at step 1."""
        self.store.reset()
        self._drafts.clear()
        self._epoch += 1

    def _after_move(self, outcome: NavigationOutcome) -> None:
        if outcome.moved:
            self._epoch += 1

    @property
    def progress_percent(self) -> int:
        return self.controller.progress_percent

    @property
    def step_title(self) -> str:
        return self.controller.step_title()

    @property
    def derived(self) -> DerivedLists:
        """Person lists for pickers, from committed data."""
        return resolve(self.store.snapshot())

    def review_summary(self) -> ReviewSummary:
        return build_review_summary(self.store.snapshot())

    # -------------------------------------------------------------------------
    # Prefill
    # -------------------------------------------------------------------------

    def issue_prefill_ticket(self, member_id: Optional[str] = None) -> PrefillTicket:
        """Issue a ticket for prefilling the current step.

        On the household step the record targets ``member_id`` (default: the
        applicant member).

        Raises:
            UnknownStepError: If the current step does not accept prefill
        """
        step = self.current_step_id
        field_map, prefix = self._prefill_target(step, member_id)
        return issue_ticket(step, self._epoch, self.draft(step), field_map, prefix=prefix)

    def _prefill_target(self, step: StepId, member_id: Optional[str]) -> tuple[dict[str, str], str]:
        if step == StepId.APPLICANT_INFO:
            return APPLICANT_FIELD_MAP, ""
        if step == StepId.HOUSEHOLD:
            members = self.draft(step).get("members", [])
            for index, member in enumerate(members):
                if (member_id is not None and member.get("id") == member_id) or (
                    member_id is None and member.get("relationship") == Relationship.SELF
                ):
                    return MEMBER_FIELD_MAP, f"members.{index}."
            raise UnknownStepError(
                f"No household member to prefill: {member_id!r}",
                step=step.value,
                details={"member_id": member_id},
            )
        raise UnknownStepError(f"Prefill is not available on {step.value}", step=step.value)

    def apply_prefill(
        self,
        ticket: PrefillTicket,
        record: Optional[PrefillRecord],
        member_id: Optional[str] = None,
    ) -> bool:
        """Apply a prefill result if its ticket is still current.

        Fields edited since the ticket was issued keep the user's value.

        Returns:
            True if any field was written
        """
        if record is None or record.is_empty:
            return False
        if not ticket.is_current(self.current_step_id, self._epoch):
            logger.info(
                "prefill_discarded",
                reason="stale_ticket",
                ticket_step=ticket.step.value,
                current_step=self.current_step_id.value,
            )
            return False

        try:
            field_map, prefix = self._prefill_target(ticket.step, member_id)
        except UnknownStepError:
            logger.info(
                "prefill_discarded",
                reason="member_removed",
                step=ticket.step.value,
                member_id=member_id,
            )
            return False
        draft = self.draft(ticket.step)
        if any(not path.startswith(prefix) for path in ticket.baseline):
            logger.info("prefill_discarded", reason="member_moved", step=ticket.step.value)
            return False

        skip = ticket.edited_paths(draft)
        self._drafts[ticket.step] = apply_record(draft, record, field_map, prefix=prefix, skip=skip)
        logger.info(
            "prefill_applied",
            step=ticket.step.value,
            fields=len(record.present_fields()),
            skipped=sorted(skip),
        )
        return True

    async def prefill(
        self,
        files: Sequence[UploadedDocument],
        member_id: Optional[str] = None,
    ) -> Optional[PrefillRecord]:
        """Extract fields from uploaded documents into the current draft.

        Never raises for extraction failures. The result is dropped if the
        user moved to another step while the documents were being read.

        Returns:
            The record that was applied, or None
        """
        try:
            ticket = self.issue_prefill_ticket(member_id)
        except UnknownStepError as e:
            logger.warning("prefill_unavailable", error=str(e))
            return None
        record = await self.prefill_service.submit_files(files)
        if self.apply_prefill(ticket, record, member_id):
            return record
        return None


__all__ = [
    "FieldBinding",
    "ApplicationSession",
]
