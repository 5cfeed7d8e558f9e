"""Cross-step reference resolver.

Derives the read-only views later steps need from earlier steps' committed
data: the people a person picker can offer, children and parents for the
TANF sub-form, and adults. All functions here are pure and tolerate
missing steps by returning empty results.

The household step is the registry of people. The applicant is listed
there as the "Self (Applicant)" member, seeded from the applicant step.
"""

from datetime import date
from decimal import Decimal
from typing import Optional

import structlog
from pydantic import BaseModel, Field

from benefits_intake.models.enums import STEP_ORDER, ProgramType, Relationship, StepId
from benefits_intake.models.steps import ApplicationState, HouseholdMember, ProgramSelection
from benefits_intake.validation.results import FieldError
from benefits_intake.validation.rules import ValidationContext, get_path
from benefits_intake.validation.schemas import STEP_SCHEMAS

logger = structlog.get_logger()

PARENT_RELATIONSHIPS = frozenset({Relationship.SELF, Relationship.SPOUSE})
REFERENCE_RULES = ("dangling_reference", "reference_role")
_PROGRAM_VALUES = frozenset(program.value for program in ProgramType)


class PersonOption(BaseModel):
    """A household member as offered by a person picker."""

    id: str
    name: str = Field(description="First and last name for display")
    relationship: Optional[Relationship] = None
    date_of_birth: Optional[date] = None


class DerivedLists(BaseModel):
    """Views over the household used by later steps.

    Attributes:
        people: Every household member with an id, in household order
        children: Members whose relationship is Child
        parents: The applicant and spouse (eligible TANF parents)
        adults: Members who are not listed as a Child
    """

    people: list[PersonOption] = Field(default_factory=list)
    children: list[PersonOption] = Field(default_factory=list)
    parents: list[PersonOption] = Field(default_factory=list)
    adults: list[PersonOption] = Field(default_factory=list)

    @property
    def person_ids(self) -> list[str]:
        return [person.id for person in self.people]

    def find(self, person_id: str) -> Optional[PersonOption]:
        for person in self.people:
            if person.id == person_id:
                return person
        return None


class ReviewSummary(BaseModel):
    """What the Review step shows before the applicant signs."""

    programs: list[ProgramType] = Field(default_factory=list)
    considered_programs: list[ProgramType] = Field(
        default_factory=list,
        description="Selected programs plus SNAP for a TANF application",
    )
    applicant_name: str = ""
    address: str = ""
    household_size: int = 0
    income_source_count: int = 0
    total_assets: Decimal = Decimal("0")
    has_representative: bool = False


def _option(member: HouseholdMember) -> PersonOption:
    return PersonOption(
        id=member.id,
        name=member.name.display_name,
        relationship=member.relationship,
        date_of_birth=member.date_of_birth,
    )


def resolve(state: ApplicationState) -> DerivedLists:
    """Compute the derived person lists from committed data.

    Returns empty lists when the household step has not been committed.
    Members without an id cannot be referenced and are left out.
    """
    people = [_option(member) for member in state.members if member.id]
    return DerivedLists(
        people=people,
        children=[p for p in people if p.relationship == Relationship.CHILD],
        parents=[p for p in people if p.relationship in PARENT_RELATIONSHIPS],
        adults=[p for p in people if p.relationship != Relationship.CHILD],
    )


def effective_programs(selection: Optional[ProgramSelection]) -> frozenset[ProgramType]:
    """Programs the applicant will be considered for, as shown on review.

    A TANF application is also considered for SNAP unless the applicant opted
    out with ``tanf_no_snap``. Sections and rules are gated on the programs
    actually selected, not on this set.
    """
    if selection is None:
        return frozenset()
    programs = set(selection.programs)
    if ProgramType.TANF in programs and not selection.tanf_no_snap:
        programs.add(ProgramType.SNAP)
    return frozenset(programs)


def build_context(state: ApplicationState) -> ValidationContext:
    """Build the validation context for later steps from committed data.

    ``people`` is only known once the household step has been committed, so
    reference rules are skipped before that. Programs are the de-duplicated
    selection as entered.
    """
    people = None
    if state.household is not None:
        people = {member.id: member.relationship for member in state.household.members if member.id}
    return ValidationContext(
        programs=frozenset(state.program_selection.programs),
        people=people,
    )


def find_dangling_references(state: ApplicationState) -> dict[StepId, list[FieldError]]:
    """Every person reference that no longer names a household member.

    Checks each committed step against the current household; steps without
    problems are left out of the result.
    """
    context = build_context(state)
    if context.people is None:
        return {}

    dangling: dict[StepId, list[FieldError]] = {}
    for step in STEP_ORDER:
        data = state.get(step)
        if data is None:
            continue
        result = STEP_SCHEMAS[step].validate(data, context)
        errors = [
            error for error in result.errors
            if error.rule in REFERENCE_RULES
        ]
        if errors:
            dangling[step] = errors
    if dangling:
        logger.info(
            "dangling_references_found",
            steps=[step.value for step in dangling],
            count=sum(len(errors) for errors in dangling.values()),
        )
    return dangling


def _amount(value: object) -> Optional[Decimal]:
    """A committed amount, or None when it never parsed as a number."""
    if isinstance(value, bool) or not isinstance(value, (int, Decimal)):
        return None
    return Decimal(value)


def build_review_summary(state: ApplicationState) -> ReviewSummary:
    """Summarize committed data for the Review & Submit step.

    Leniently committed steps may hold values that never type-checked, so
    everything is read by path and unparsed amounts are left out.
    """
    name = " ".join(
        str(part)
        for part in (get_path(state.applicant_info, f"name.{key}") for key in ("first", "middle", "last"))
        if part
    )
    address = ", ".join(
        str(part)
        for part in (get_path(state.applicant_info, key) for key in ("street_address", "city", "zip"))
        if part
    )
    amounts = (_amount(get_path(asset, "balance")) for asset in get_path(state.resources, "assets") or [])
    total_assets = sum((amount for amount in amounts if amount is not None), Decimal("0"))
    programs = [
        ProgramType(program)
        for program in get_path(state.program_selection, "programs") or []
        if program in _PROGRAM_VALUES
    ]
    considered = effective_programs(ProgramSelection(
        programs=programs,
        tanf_no_snap=bool(get_path(state.program_selection, "tanf_no_snap")),
    ))
    return ReviewSummary(
        programs=programs,
        considered_programs=[program for program in ProgramType if program in considered],
        applicant_name=name,
        address=address,
        household_size=len(get_path(state.household, "members") or []),
        income_source_count=len(get_path(state.income, "sources") or []),
        total_assets=total_assets,
        has_representative=bool(get_path(state.authorized_representative, "has_representative")),
    )


__all__ = [
    "PARENT_RELATIONSHIPS",
    "PersonOption",
    "DerivedLists",
    "ReviewSummary",
    "resolve",
    "effective_programs",
    "build_context",
    "find_dangling_references",
    "build_review_summary",
]
