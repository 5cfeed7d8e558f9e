"""Data models for the benefits intake core.

This package provides:
- Enumerations for programs, steps and answer sets (enums.py)
- Draft models for every wizard step and the application aggregate (steps.py)
"""

from benefits_intake.models.enums import (
    # Wizard structure
    StepId,
    STEP_ORDER,
    STEP_TITLES,
    NavigationPolicy,
    # Answer sets
    ProgramType,
    Language,
    CorrespondencePreference,
    FelonyType,
    Relationship,
    RELATIONSHIPS_NEEDING_DESCRIPTION,
    Gender,
    MaritalStatus,
    EducationLevel,
    IncomeSourceType,
    PayFrequency,
    AssetType,
    ImmunizationStatus,
    HeatingMethod,
    LivingSituation,
    MedicarePart,
)
from benefits_intake.models.steps import (
    DraftModel,
    # Shared shapes
    PersonName,
    MailingAddress,
    AwayDates,
    # Steps
    ProgramSelection,
    ApplicantInfo,
    HouseholdMember,
    HouseholdComposition,
    IncomeSource,
    IncomeInfo,
    Asset,
    ResourcesInfo,
    ChildParentInfo,
    TanfInfo,
    TanfDiversionaryInfo,
    MedicalExpense,
    ShelterCosts,
    SnapInfo,
    PropertyHolding,
    Vehicle,
    BurialArrangements,
    LifeInsurance,
    HealthInsurance,
    MedicareCoverage,
    AuxiliaryGrantsInfo,
    ProgramSpecificInfo,
    PROGRAM_SECTIONS,
    RepresentativePermissions,
    AuthorizedRepresentative,
    ReviewAcknowledgements,
    STEP_MODELS,
    # Aggregate
    ApplicationState,
)

__all__ = [
    "StepId",
    "STEP_ORDER",
    "STEP_TITLES",
    "NavigationPolicy",
    "ProgramType",
    "Language",
    "CorrespondencePreference",
    "FelonyType",
    "Relationship",
    "RELATIONSHIPS_NEEDING_DESCRIPTION",
    "Gender",
    "MaritalStatus",
    "EducationLevel",
    "IncomeSourceType",
    "PayFrequency",
    "AssetType",
    "ImmunizationStatus",
    "HeatingMethod",
    "LivingSituation",
    "MedicarePart",
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
