"""Enumerations for the DSS benefits application.

Values match the labels offered to applicants so that drafts coming from the
presentation layer can be validated without translation.
"""

from enum import Enum


# =============================================================================
# WIZARD STRUCTURE
# =============================================================================

class StepId(str, Enum):
    """Identifiers of the eight wizard steps, in order."""

    PROGRAM_SELECTION = "program_selection"
    APPLICANT_INFO = "applicant_info"
    HOUSEHOLD = "household"
    INCOME = "income"
    RESOURCES = "resources"
    PROGRAM_SPECIFIC = "program_specific"
    AUTHORIZED_REPRESENTATIVE = "authorized_representative"
    REVIEW = "review"

    @property
    def number(self) -> int:
        """1-based position of the step in the wizard."""
        return STEP_ORDER.index(self) + 1

    @classmethod
    def from_number(cls, number: int) -> "StepId":
        """Return the step at a 1-based position."""
        if not 1 <= number <= len(STEP_ORDER):
            raise ValueError(f"Step number must be between 1 and {len(STEP_ORDER)}: {number}")
        return STEP_ORDER[number - 1]


STEP_ORDER: tuple[StepId, ...] = (
    StepId.PROGRAM_SELECTION,
    StepId.APPLICANT_INFO,
    StepId.HOUSEHOLD,
    StepId.INCOME,
    StepId.RESOURCES,
    StepId.PROGRAM_SPECIFIC,
    StepId.AUTHORIZED_REPRESENTATIVE,
    StepId.REVIEW,
)

STEP_TITLES: dict[StepId, str] = {
    StepId.PROGRAM_SELECTION: "Program Selection & Orientation",
    StepId.APPLICANT_INFO: "Applicant Information",
    StepId.HOUSEHOLD: "Household Composition",
    StepId.INCOME: "Income",
    StepId.RESOURCES: "Resources",
    StepId.PROGRAM_SPECIFIC: "Program-Specific Sections",
    StepId.AUTHORIZED_REPRESENTATIVE: "Authorized Representative",
    StepId.REVIEW: "Review & Submit",
}


class NavigationPolicy(str, Enum):
    """How ``next`` treats a step draft that fails validation."""

    STRICT = "strict"
    """Block the advance and surface the errors."""

    LENIENT = "lenient"
    """Commit the draft as-is and advance; errors are returned as warnings."""


# =============================================================================
# PROGRAMS
# =============================================================================

class ProgramType(str, Enum):
    """Assistance programs an applicant can apply for."""

    SNAP = "SNAP"
    TANF = "TANF"
    TANF_DIVERSIONARY = "TANF_DIVERSIONARY"
    TANF_EMERGENCY = "TANF_EMERGENCY"
    AUXILIARY_GRANTS = "AUXILIARY_GRANTS"
    GENERAL_RELIEF = "GENERAL_RELIEF"
    REFUGEE_CASH_ASSISTANCE = "REFUGEE_CASH_ASSISTANCE"


# =============================================================================
# APPLICANT
# =============================================================================

class Language(str, Enum):
    """Primary language options."""
    ENGLISH = "English"
    SPANISH = "Spanish"
    VIETNAMESE = "Vietnamese"
    FARSI = "Farsi"
    ARABIC = "Arabic"
    CHINESE = "Chinese"
    OTHER = "Other"


class CorrespondencePreference(str, Enum):
    """Channel used to send notices to the applicant."""
    TEXT = "text"
    EMAIL = "email"
    MAIL = "mail"


class FelonyType(str, Enum):
    """Felony conviction types asked about in the screening questions."""
    SEXUAL_ABUSE = "Sexual abuse"
    MURDER = "Murder"
    SEXUAL_EXPLOITATION = "Sexual exploitation"
    OTHER = "Other"


# =============================================================================
# HOUSEHOLD
# =============================================================================

class Relationship(str, Enum):
    """Relationship of a household member to the applicant."""
    SELF = "Self (Applicant)"
    SPOUSE = "Spouse"
    CHILD = "Child"
    PARENT = "Parent"
    SIBLING = "Sibling"
    OTHER_RELATIVE = "Other Relative"
    UNRELATED = "Unrelated"


RELATIONSHIPS_NEEDING_DESCRIPTION = frozenset({
    Relationship.OTHER_RELATIVE,
    Relationship.UNRELATED,
})


class Gender(str, Enum):
    MALE = "Male"
    FEMALE = "Female"
    NON_BINARY = "Non-binary"
    PREFER_NOT_TO_ANSWER = "Prefer not to answer"


class MaritalStatus(str, Enum):
    SINGLE = "Single"
    MARRIED = "Married"
    DIVORCED = "Divorced"
    WIDOWED = "Widowed"
    SEPARATED = "Separated"


class EducationLevel(str, Enum):
    LESS_THAN_HIGH_SCHOOL = "Less than high school"
    HIGH_SCHOOL = "High school/GED"
    SOME_COLLEGE = "Some college"
    ASSOCIATE = "Associate degree"
    BACHELOR = "Bachelor's degree"
    GRADUATE = "Graduate degree"


# =============================================================================
# INCOME AND RESOURCES
# =============================================================================

class IncomeSourceType(str, Enum):
    """Where money comes from. Everything except WORK is unearned income."""
    WORK = "work"
    SOCIAL_SECURITY = "Social Security"
    SSI = "SSI"
    UNEMPLOYMENT = "Unemployment"
    CHILD_SUPPORT = "Child Support"
    VA_BENEFITS = "VA Benefits"
    PENSION = "Pension"
    OTHER = "Other"


class PayFrequency(str, Enum):
    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    MONTHLY = "monthly"


class AssetType(str, Enum):
    CASH = "Cash"
    CHECKING = "Checking Account"
    SAVINGS = "Savings Account"
    STOCKS_BONDS = "Stocks/Bonds"
    RETIREMENT = "401k/Retirement"
    OTHER = "Other"


# =============================================================================
# PROGRAM-SPECIFIC
# =============================================================================

class ImmunizationStatus(str, Enum):
    UP_TO_DATE = "up-to-date"
    PARTIAL = "partial"
    NOT_UP_TO_DATE = "not-up-to-date"
    EXEMPT = "exempt"


class HeatingMethod(str, Enum):
    GAS = "gas"
    ELECTRIC = "electric"
    OIL = "oil"
    WOOD = "wood"
    NONE = "none"


class LivingSituation(str, Enum):
    OWN_HOME = "own-home"
    RENT = "rent"
    FAMILY = "family"
    INSTITUTION = "institution"
    OTHER = "other"


class MedicarePart(str, Enum):
    PART_A = "Part A"
    PART_B = "Part B"
    PART_C = "Part C"
    PART_D = "Part D"


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
]
