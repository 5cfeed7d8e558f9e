"""Household composition helpers.

The household always starts with the applicant: ``seed_household`` turns
the applicant step into the relationship-locked "Self (Applicant)" member.
Other members get fresh ids from ``new_member_id`` so that later steps can
reference them.
"""

import uuid
from typing import Optional

import structlog

from benefits_intake.exceptions import LockedFieldError
from benefits_intake.models.enums import Relationship
from benefits_intake.models.steps import (
    ApplicantInfo,
    HouseholdComposition,
    HouseholdMember,
    PersonName,
)

logger = structlog.get_logger()


def new_member_id() -> str:
    """Return a fresh, unique household member id."""
    return f"member-{uuid.uuid4().hex[:12]}"


def blank_member(relationship: Optional[Relationship] = None) -> HouseholdMember:
    """An empty member row with a new id."""
    return HouseholdMember(id=new_member_id(), relationship=relationship)


def seed_household(applicant: Optional[ApplicantInfo] = None) -> HouseholdComposition:
    """Start a household containing only the applicant.

    The applicant's name is copied from the applicant step when available.
    The applicant member is applying for benefits by default.
    """
    name = applicant.name.model_copy(deep=True) if applicant is not None else PersonName()
    member = HouseholdMember(
        id=new_member_id(),
        name=name,
        relationship=Relationship.SELF,
        applying_for_benefits=True,
    )
    return HouseholdComposition(members=[member])


def add_member(
    household: HouseholdComposition,
    member: Optional[HouseholdMember] = None,
) -> HouseholdComposition:
    """Return a copy of ``household`` with ``member`` (or a blank row) appended.

    Raises:
        LockedFieldError: If the household already has an applicant and the
            new member is also marked "Self (Applicant)"
    """
    member = member.model_copy(deep=True) if member is not None else blank_member()
    if member.is_applicant and any(existing.is_applicant for existing in household.members):
        raise LockedFieldError(
            "The household already has an applicant",
            field="members.relationship",
        )
    if not member.id:
        member = member.model_copy(update={"id": new_member_id()})
    members = [m.model_copy(deep=True) for m in household.members] + [member]
    logger.debug("household_member_added", member_id=member.id, size=len(members))
    return household.model_copy(update={"members": members})


def remove_member(household: HouseholdComposition, member_id: str) -> HouseholdComposition:
    """Return a copy of ``household`` without the given member.

    Records in later steps that reference the removed member are not touched;
    they are reported as dangling references when the application is
    submitted.

    Raises:
        LockedFieldError: If ``member_id`` is the applicant
    """
    target = household.member(member_id)
    if target is None:
        return household.model_copy(deep=True)
    if target.is_applicant:
        raise LockedFieldError(
            "The applicant cannot be removed from the household",
            field=f"members.{household.members.index(target)}",
        )
    members = [m.model_copy(deep=True) for m in household.members if m.id != member_id]
    logger.debug("household_member_removed", member_id=member_id, size=len(members))
    return household.model_copy(update={"members": members})


__all__ = [
    "new_member_id",
    "blank_member",
    "seed_household",
    "add_member",
    "remove_member",
]
