"""Draft models for each wizard step and the application aggregate.

Every model here describes the shape of one step's answers. Drafts are
permissive on purpose: user-entered fields are optional and blank strings
become ``None``, so an incomplete draft can be held, committed under the
lenient navigation policy, and validated into a complete list of
violations. Requiredness and cross-field rules live in
``benefits_intake.validation.schemas``.
"""

from datetime import date
from decimal import Decimal
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from benefits_intake.models.enums import (
    AssetType,
    CorrespondencePreference,
    EducationLevel,
    FelonyType,
    Gender,
    HeatingMethod,
    ImmunizationStatus,
    IncomeSourceType,
    Language,
    LivingSituation,
    MaritalStatus,
    MedicarePart,
    PayFrequency,
    ProgramType,
    Relationship,
    StepId,
)


class DraftModel(BaseModel):
    """Base class for step drafts. Blank strings are treated as missing."""

    model_config = ConfigDict(extra="ignore")

    @model_validator(mode="before")
    @classmethod
    def blank_strings_to_none(cls, data: Any) -> Any:
        """Normalize empty or whitespace-only strings to None."""
        if isinstance(data, dict):
            return {
                key: None if isinstance(value, str) and not value.strip() else value
                for key, value in data.items()
            }
        return data


# =============================================================================
# SHARED SHAPES
# =============================================================================

class PersonName(DraftModel):
    """First/middle/last name triple.

    ``has_middle_name`` is only set by forms that ask the question
    explicitly; when it is set, it must agree with ``middle``.
    """

    first: Optional[str] = None
    middle: Optional[str] = None
    last: Optional[str] = None
    has_middle_name: Optional[bool] = None

    @property
    def full_name(self) -> str:
        """Name parts that are present, joined by spaces."""
        return " ".join(part for part in (self.first, self.middle, self.last) if part)

    @property
    def display_name(self) -> str:
        """First and last name, as shown in person pickers."""
        return " ".join(part for part in (self.first, self.last) if part)


class MailingAddress(DraftModel):
    street: Optional[str] = None
    city: Optional[str] = None
    zip: Optional[str] = None


class AwayDates(DraftModel):
    """Temporary absence window for a household member."""

    start: Optional[date] = None
    end: Optional[date] = None
    reason: Optional[str] = None


# =============================================================================
# STEP 1: PROGRAM SELECTION
# =============================================================================

class ProgramSelection(DraftModel):
    """Programs applied for.

    A TANF application is also considered for SNAP unless ``tanf_no_snap``
    is set; the flag means nothing without TANF. The SNAP section is only
    collected when SNAP itself is selected.
    """

    programs: list[ProgramType] = Field(default_factory=list)
    tanf_no_snap: bool = False

    def has(self, program: ProgramType) -> bool:
        """Check whether a program was selected."""
        return program in self.programs


# =============================================================================
# STEP 2: APPLICANT INFORMATION
# =============================================================================

class ApplicantInfo(DraftModel):
    """Contact details and background screening answers for the applicant."""

    name: PersonName = Field(default_factory=PersonName)
    street_address: Optional[str] = None
    city: Optional[str] = None
    county: Optional[str] = None
    zip: Optional[str] = None
    mailing_address_same: bool = True
    mailing_address: Optional[MailingAddress] = None

    email: Optional[str] = None
    primary_phone: Optional[str] = None
    alternate_phone: Optional[str] = None
    primary_language: Optional[Language] = None
    other_language: Optional[str] = None
    correspondence_preference: CorrespondencePreference = CorrespondencePreference.EMAIL

    # Background screening
    prior_benefits: bool = False
    prior_benefits_details: Optional[str] = None
    fraud_convictions: bool = False
    disqualifications: bool = False
    parole_probation: bool = False
    felony_convictions: bool = False
    felony_types: list[FelonyType] = Field(default_factory=list)


# =============================================================================
# STEP 3: HOUSEHOLD COMPOSITION
# =============================================================================

class HouseholdMember(DraftModel):
    """A person living in the applicant's home."""

    id: Optional[str] = None
    name: PersonName = Field(default_factory=PersonName)
    relationship: Optional[Relationship] = None
    other_relationship: Optional[str] = None
    date_of_birth: Optional[date] = None
    gender: Optional[Gender] = None

    citizenship: bool = True
    alien_registration_number: Optional[str] = None
    residency_date: Optional[date] = None
    marital_status: Optional[MaritalStatus] = None
    education_level: Optional[EducationLevel] = None

    veteran: bool = False
    disabled: bool = False
    pregnant: bool = False
    student: bool = False
    school_name: Optional[str] = None
    temporarily_away: bool = False
    away_dates: Optional[AwayDates] = None

    applying_for_benefits: bool = False
    ssn: Optional[str] = None
    programs: list[ProgramType] = Field(default_factory=list)

    race: Optional[str] = None
    ethnicity: Optional[str] = None

    @property
    def is_applicant(self) -> bool:
        """True for the relationship-locked "Self (Applicant)" member."""
        return self.relationship == Relationship.SELF


class HouseholdComposition(DraftModel):
    members: list[HouseholdMember] = Field(default_factory=list)

    def member(self, member_id: str) -> Optional[HouseholdMember]:
        """Look up a member by id."""
        for candidate in self.members:
            if candidate.id == member_id:
                return candidate
        return None


# =============================================================================
# STEP 4: INCOME
# =============================================================================

class IncomeSource(DraftModel):
    """One stream of money received by one household member."""

    id: Optional[str] = None
    person_id: Optional[str] = None
    source_type: Optional[IncomeSourceType] = None
    employer_name: Optional[str] = None
    other_description: Optional[str] = None
    amount: Optional[Decimal] = None
    frequency: Optional[PayFrequency] = None

    @property
    def is_earned(self) -> bool:
        """True when the money comes from working."""
        return self.source_type == IncomeSourceType.WORK


class IncomeInfo(DraftModel):
    has_earned_income: bool = False
    sources: list[IncomeSource] = Field(default_factory=list)

    job_loss_last_60_days: bool = False
    job_loss_details: Optional[str] = None
    third_party_bill_payment: bool = False
    third_party_details: Optional[str] = None
    daycare_expenses: bool = False
    daycare_amount: Optional[Decimal] = None
    child_support_paid: bool = False
    child_support_amount: Optional[Decimal] = None


# =============================================================================
# STEP 5: RESOURCES
# =============================================================================

class Asset(DraftModel):
    """An account or holding owned by one or more household members."""

    id: Optional[str] = None
    type: Optional[AssetType] = None
    owner_ids: list[str] = Field(default_factory=list)
    institution: Optional[str] = None
    account_type: Optional[str] = None
    account_number: Optional[str] = None
    balance: Optional[Decimal] = None
    institution_address: Optional[str] = None


class ResourcesInfo(DraftModel):
    assets: list[Asset] = Field(default_factory=list)
    lottery_winnings: bool = False
    lottery_amount: Optional[Decimal] = None
    asset_transfers: bool = False
    transfer_details: Optional[str] = None


# =============================================================================
# STEP 6: PROGRAM-SPECIFIC SECTIONS
# =============================================================================

class ChildParentInfo(DraftModel):
    child_id: Optional[str] = None
    parent_id: Optional[str] = None
    immunization_status: Optional[ImmunizationStatus] = None


class TanfInfo(DraftModel):
    child_parent_info: list[ChildParentInfo] = Field(default_factory=list)


class TanfDiversionaryInfo(DraftModel):
    """Shared by TANF Diversionary and TANF Emergency assistance."""

    emergency_need: bool = False
    emergency_description: Optional[str] = None


class MedicalExpense(DraftModel):
    person_id: Optional[str] = None
    amount: Optional[Decimal] = None
    description: Optional[str] = None


class ShelterCosts(DraftModel):
    rent: Decimal = Decimal("0")
    property_tax: Decimal = Decimal("0")
    home_insurance: Decimal = Decimal("0")


class SnapInfo(DraftModel):
    head_of_household: Optional[str] = None
    meal_prep_separation: bool = False
    roomers_boarders: bool = False
    medical_expenses: list[MedicalExpense] = Field(default_factory=list)
    shelter_costs: ShelterCosts = Field(default_factory=ShelterCosts)
    heating_method: Optional[HeatingMethod] = None
    temporary_housing: bool = False


class PropertyHolding(DraftModel):
    type: Optional[str] = None
    value: Optional[Decimal] = None
    location: Optional[str] = None


class Vehicle(DraftModel):
    make: Optional[str] = None
    model: Optional[str] = None
    year: Optional[int] = None
    value: Optional[Decimal] = None


class BurialArrangements(DraftModel):
    has_arrangements: bool = False
    value: Optional[Decimal] = None


class LifeInsurance(DraftModel):
    has_policy: bool = False
    value: Optional[Decimal] = None


class HealthInsurance(DraftModel):
    has_insurance: bool = False
    provider: Optional[str] = None


class MedicareCoverage(DraftModel):
    has_medicare: bool = False
    parts: list[MedicarePart] = Field(default_factory=list)


class AuxiliaryGrantsInfo(DraftModel):
    living_situation: Optional[LivingSituation] = None
    property: list[PropertyHolding] = Field(default_factory=list)
    vehicles: list[Vehicle] = Field(default_factory=list)
    burial_arrangements: BurialArrangements = Field(default_factory=BurialArrangements)
    life_insurance: LifeInsurance = Field(default_factory=LifeInsurance)
    health_insurance: HealthInsurance = Field(default_factory=HealthInsurance)
    medicare: MedicareCoverage = Field(default_factory=MedicareCoverage)
    tax_filers: list[str] = Field(default_factory=list)
    non_filers: list[str] = Field(default_factory=list)


class ProgramSpecificInfo(DraftModel):
    """Sub-records collected only for the programs that govern them."""

    tanf: Optional[TanfInfo] = None
    tanf_diversionary: Optional[TanfDiversionaryInfo] = None
    snap: Optional[SnapInfo] = None
    auxiliary_grants: Optional[AuxiliaryGrantsInfo] = None


# Program-specific section -> programs that make it applicable
PROGRAM_SECTIONS: dict[str, frozenset[ProgramType]] = {
    "tanf": frozenset({ProgramType.TANF}),
    "tanf_diversionary": frozenset({ProgramType.TANF_DIVERSIONARY, ProgramType.TANF_EMERGENCY}),
    "snap": frozenset({ProgramType.SNAP}),
    "auxiliary_grants": frozenset({ProgramType.AUXILIARY_GRANTS}),
}


# =============================================================================
# STEP 7: AUTHORIZED REPRESENTATIVE
# =============================================================================

class RepresentativePermissions(DraftModel):
    apply: bool = False
    receive_notices: bool = False
    use_snap_benefits: bool = False

    @property
    def any_granted(self) -> bool:
        return self.apply or self.receive_notices or self.use_snap_benefits


class AuthorizedRepresentative(DraftModel):
    has_representative: bool = False
    name: Optional[str] = None
    address: Optional[str] = None
    phone: Optional[str] = None
    permissions: RepresentativePermissions = Field(default_factory=RepresentativePermissions)


# =============================================================================
# STEP 8: REVIEW & SUBMIT
# =============================================================================

class ReviewAcknowledgements(DraftModel):
    truthfulness: bool = False
    change_reporting: bool = False
    penalties: bool = False
    consent_to_data_sharing: bool = False
    completed_by_self: bool = True
    completed_by_details: Optional[str] = None
    signature: Optional[str] = None
    signature_date: Optional[date] = None


# =============================================================================
# APPLICATION AGGREGATE
# =============================================================================

STEP_MODELS: dict[StepId, type[DraftModel]] = {
    StepId.PROGRAM_SELECTION: ProgramSelection,
    StepId.APPLICANT_INFO: ApplicantInfo,
    StepId.HOUSEHOLD: HouseholdComposition,
    StepId.INCOME: IncomeInfo,
    StepId.RESOURCES: ResourcesInfo,
    StepId.PROGRAM_SPECIFIC: ProgramSpecificInfo,
    StepId.AUTHORIZED_REPRESENTATIVE: AuthorizedRepresentative,
    StepId.REVIEW: ReviewAcknowledgements,
}


class ApplicationState(BaseModel):
    """Root aggregate: the current step pointer and each step's committed data.

    Only Program Selection starts populated (with no programs); every other
    step is ``None`` until the user advances past it.
    """

    current_step: int = Field(default=1, ge=1)
    program_selection: ProgramSelection = Field(default_factory=ProgramSelection)
    applicant_info: Optional[ApplicantInfo] = None
    household: Optional[HouseholdComposition] = None
    income: Optional[IncomeInfo] = None
    resources: Optional[ResourcesInfo] = None
    program_specific: Optional[ProgramSpecificInfo] = None
    authorized_representative: Optional[AuthorizedRepresentative] = None
    review: Optional[ReviewAcknowledgements] = None

    def get(self, step: StepId) -> Optional[DraftModel]:
        """Return the committed data for a step, or None if never set."""
        return getattr(self, step.value)

    @property
    def committed_steps(self) -> list[StepId]:
        """Steps whose data has been written, in wizard order."""
        return [step for step in STEP_MODELS if self.get(step) is not None]

    @property
    def members(self) -> list[HouseholdMember]:
        """Household members, or an empty list before the household step."""
        return list(self.household.members) if self.household else []


__all__ = [
    "DraftModel",
    "PersonName",
    "MailingAddress",
    "AwayDates",
    "ProgramSelection",
    "ApplicantInfo",
    "HouseholdMember",
    "HouseholdComposition",
    "IncomeSource",
    "IncomeInfo",
    "Asset",
    "ResourcesInfo",
    "ChildParentInfo",
    "TanfInfo",
    "TanfDiversionaryInfo",
    "MedicalExpense",
    "ShelterCosts",
    "SnapInfo",
    "PropertyHolding",
    "Vehicle",
    "BurialArrangements",
    "LifeInsurance",
    "HealthInsurance",
    "MedicareCoverage",
    "AuxiliaryGrantsInfo",
    "ProgramSpecificInfo",
    "PROGRAM_SECTIONS",
    "RepresentativePermissions",
    "AuthorizedRepresentative",
    "ReviewAcknowledgements",
    "STEP_MODELS",
    "ApplicationState",
]
