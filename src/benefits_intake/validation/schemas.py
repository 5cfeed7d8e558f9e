"""Step schema set: one schema per wizard step.

A ``StepSchema`` couples a draft model with a table of rules from
``benefits_intake.validation.rules`` and an optional normalizer. Validation
happens in three stages, all pure:

1. Type check: the draft is parsed into the step's pydantic model; type
   errors (e.g. an amount that is not a number) are reported as field
   errors and stop validation there, apart from person references, which
   are still checked against the raw input.
2. Normalize: step-local cleanup that never fails (deduplicating programs,
   dropping answers whose governing question was answered "no"...).
3. Rules: every rule in the table is evaluated; all violations are
   reported together.

An explicit ``ValidationContext`` may be passed to gate program-specific
sections and to check person references against the household.
"""

from decimal import Decimal
from typing import Any, Callable, Generic, Mapping, Optional, Sequence, TypeVar, Union

import structlog
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from benefits_intake.exceptions import StepValidationError, UnknownStepError
from benefits_intake.models.enums import (
    RELATIONSHIPS_NEEDING_DESCRIPTION,
    STEP_TITLES,
    AssetType,
    IncomeSourceType,
    Language,
    ProgramType,
    Relationship,
    StepId,
)
from benefits_intake.models.steps import (
    PROGRAM_SECTIONS,
    ApplicantInfo,
    AuthorizedRepresentative,
    AuxiliaryGrantsInfo,
    DraftModel,
    HouseholdComposition,
    HouseholdMember,
    IncomeInfo,
    MailingAddress,
    ProgramSelection,
    ProgramSpecificInfo,
    ResourcesInfo,
    ReviewAcknowledgements,
    SnapInfo,
    TanfDiversionaryInfo,
    TanfInfo,
)
from benefits_intake.validation.results import FieldError, StepResult
from benefits_intake.validation.rules import (
    MAILING_ADDRESS_RULES,
    MIN_PHONE_DIGITS,
    PERSON_NAME_RULES,
    SSN_PATTERN,
    ZIP_PATTERN,
    Rule,
    ValidationContext,
    at_least,
    check,
    each,
    email,
    equals,
    evaluate_rules,
    flag,
    is_true,
    matches,
    min_digits,
    nested,
    non_negative,
    one_of,
    reference_rules,
    references,
    required,
    unset,
)

logger = structlog.get_logger()

StepModelT = TypeVar("StepModelT", bound=DraftModel)

Normalizer = Callable[[Any, Optional[ValidationContext]], Any]

# Lottery or gambling winnings at or above this amount must be reported
LOTTERY_REPORTING_THRESHOLD = Decimal("4250")
EARLIEST_VEHICLE_YEAR = 1900


class StepSchema(Generic[StepModelT]):
    """Validator for one step's draft.

    Args:
        step: The step this schema validates
        model: The step's draft model class
        rules: Rule table evaluated against the parsed draft
        normalizer: Optional pure cleanup applied before the rules
    """

    def __init__(
        self,
        step: StepId,
        model: type[StepModelT],
        rules: Sequence[Rule],
        *,
        normalizer: Optional[Normalizer] = None,
    ):
        self.step = step
        self.model = model
        self.rules = tuple(rules)
        self.reference_rules = reference_rules(self.rules)
        self.normalizer = normalizer

    def __repr__(self) -> str:
        return f"StepSchema(step={self.step.value!r}, rules={len(self.rules)})"

    @property
    def title(self) -> str:
        return STEP_TITLES[self.step]

    def default(self) -> StepModelT:
        """An empty draft for this step."""
        return self.model()

    def coerce_draft(self, raw: Union[StepModelT, Mapping[str, Any], None]) -> StepModelT:
        """Convert raw input into a draft model without ever failing.

        Used by the lenient navigation policy, which commits whatever the
        user entered. Input that does not type-check is kept as-is via
        ``model_construct``.
        """
        if isinstance(raw, self.model):
            return raw.model_copy(deep=True)
        if raw is None:
            return self.default()
        data = raw.model_dump() if isinstance(raw, BaseModel) else dict(raw)
        try:
            return self.model.model_validate(data)
        except PydanticValidationError as e:
            logger.warning(
                "draft_kept_unparsed",
                step=self.step.value,
                error_count=e.error_count(),
            )
            return self.model.model_construct(**data)

    def validate(
        self,
        draft: Union[StepModelT, Mapping[str, Any], None],
        context: Optional[ValidationContext] = None,
    ) -> StepResult[StepModelT]:
        """Validate a draft and return the typed data or every violation.

        Never raises for bad input; the result carries the errors.

        Args:
            draft: A draft model or a mapping of the step's fields
            context: Cross-step facts (selected programs, household people)

        Returns:
            StepResult with the normalized data when valid
        """
        if isinstance(draft, BaseModel):
            data: Any = draft.model_dump(warnings=False)
        else:
            data = draft if draft is not None else {}

        try:
            typed = self.model.model_validate(data)
        except PydanticValidationError as e:
            errors = [_type_error(detail) for detail in e.errors()]
            logger.debug("step_type_check_failed", step=self.step.value, error_count=len(errors))
            # Person references are still checked on the raw input
            errors.extend(evaluate_rules(self.reference_rules, data, context))
            return StepResult.invalid(self.step, errors)

        if self.normalizer is not None:
            typed = self.normalizer(typed, context)

        errors = evaluate_rules(self.rules, typed, context)
        if errors:
            logger.debug("step_validation_failed", step=self.step.value, error_count=len(errors))
            return StepResult.invalid(self.step, errors, data=typed)
        return StepResult.valid(self.step, typed)

    def parse(
        self,
        draft: Union[StepModelT, Mapping[str, Any], None],
        context: Optional[ValidationContext] = None,
    ) -> StepModelT:
        """Raising variant of ``validate``.

        Raises:
            StepValidationError: If the draft has any violation
        """
        result = self.validate(draft, context)
        if not result.is_valid:
            raise StepValidationError(
                f"{self.title} has {len(result.errors)} error(s)",
                step=self.step.value,
                errors=result.errors,
            )
        return result.data


def _type_error(detail: Mapping[str, Any]) -> FieldError:
    path = ".".join(str(part) for part in detail.get("loc", ()))
    return FieldError(path=path, message=detail.get("msg", "Invalid value"), rule=detail.get("type", "type"))


# =============================================================================
# STEP 1: PROGRAM SELECTION
# =============================================================================

def _normalize_program_selection(
    selection: ProgramSelection,
    context: Optional[ValidationContext],
) -> ProgramSelection:
    programs = list(dict.fromkeys(selection.programs))
    # The no-SNAP opt-out only applies to a TANF application
    tanf_no_snap = selection.tanf_no_snap and ProgramType.TANF in programs
    return selection.model_copy(update={"programs": programs, "tanf_no_snap": tanf_no_snap})


PROGRAM_SELECTION_RULES: tuple[Rule, ...] = (
    required("programs", "Please select at least one program"),
)


# =============================================================================
# STEP 2: APPLICANT INFORMATION
# =============================================================================

def _normalize_applicant(
    applicant: ApplicantInfo,
    context: Optional[ValidationContext],
) -> ApplicantInfo:
    update: dict[str, Any] = {}
    if applicant.mailing_address_same:
        update["mailing_address"] = None
    elif applicant.mailing_address is None:
        update["mailing_address"] = MailingAddress()
    if not applicant.felony_convictions:
        update["felony_types"] = []
    else:
        update["felony_types"] = list(dict.fromkeys(applicant.felony_types))
    return applicant.model_copy(update=update)


APPLICANT_RULES: tuple[Rule, ...] = (
    nested("name", PERSON_NAME_RULES),
    required("street_address", "Street address is required"),
    required("city", "City is required"),
    required("county", "County is required"),
    required("zip", "ZIP code is required"),
    matches("zip", ZIP_PATTERN, "Invalid ZIP code"),
    nested("mailing_address", MAILING_ADDRESS_RULES, when=unset("mailing_address_same")),
    email("email", "Invalid email address"),
    required("primary_phone", "Primary phone is required"),
    min_digits("primary_phone", MIN_PHONE_DIGITS, "Phone number must be at least 10 digits"),
    min_digits("alternate_phone", MIN_PHONE_DIGITS, "Phone number must be at least 10 digits"),
    required("primary_language", "Primary language is required"),
    required(
        "other_language",
        "Please specify the language",
        when=equals("primary_language", Language.OTHER),
    ),
    required(
        "prior_benefits_details",
        "Please describe the benefits you received before",
        when=flag("prior_benefits"),
    ),
    required(
        "felony_types",
        "Select at least one felony type",
        when=flag("felony_convictions"),
    ),
)


# =============================================================================
# STEP 3: HOUSEHOLD COMPOSITION
# =============================================================================

def _single_applicant(household: HouseholdComposition) -> bool:
    return sum(1 for member in household.members if member.is_applicant) == 1


def _unique_member_ids(household: HouseholdComposition) -> bool:
    ids = [member.id for member in household.members if member.id]
    return len(ids) == len(set(ids))


def _away_dates_ordered(member: HouseholdMember) -> bool:
    dates = member.away_dates
    if dates is None or dates.start is None or dates.end is None:
        return True
    return dates.end >= dates.start


MEMBER_RULES: tuple[Rule, ...] = (
    required("id", "Member id is required"),
    nested("name", PERSON_NAME_RULES),
    required("relationship", "Relationship is required"),
    required(
        "other_relationship",
        "Please specify the relationship",
        when=one_of("relationship", RELATIONSHIPS_NEEDING_DESCRIPTION),
    ),
    required("date_of_birth", "Date of birth is required"),
    required("gender", "Gender is required"),
    required(
        "alien_registration_number",
        "Alien registration number is required for non-citizens",
        when=unset("citizenship"),
    ),
    required("residency_date", "Residency date is required"),
    required("marital_status", "Marital status is required"),
    required("education_level", "Education level is required"),
    required("school_name", "School name is required for students", when=flag("student")),
    required("away_dates.start", "Start date is required", when=flag("temporarily_away")),
    required("away_dates.end", "End date is required", when=flag("temporarily_away")),
    required("away_dates.reason", "Reason for being away is required", when=flag("temporarily_away")),
    check(
        "away_dates_order",
        "away_dates.end",
        "End date must be on or after the start date",
        _away_dates_ordered,
        when=flag("temporarily_away"),
    ),
    matches(
        "ssn",
        SSN_PATTERN,
        "SSN must be in format XXX-XX-XXXX",
        when=flag("applying_for_benefits"),
    ),
)

HOUSEHOLD_RULES: tuple[Rule, ...] = (
    required("members", "At least one household member is required"),
    check(
        "single_applicant",
        "members",
        "Exactly one household member must be the applicant",
        _single_applicant,
        when=lambda household: bool(household.members),
    ),
    check("unique_member_ids", "members", "Household member ids must be unique", _unique_member_ids),
    each("members", MEMBER_RULES),
)


# =============================================================================
# STEP 4: INCOME
# =============================================================================

INCOME_SOURCE_RULES: tuple[Rule, ...] = (
    required("person_id", "Person is required"),
    references("person_id"),
    required("source_type", "Income type is required"),
    required(
        "employer_name",
        "Employer name is required for work income",
        when=equals("source_type", IncomeSourceType.WORK),
    ),
    required(
        "other_description",
        "Please describe this income",
        when=equals("source_type", IncomeSourceType.OTHER),
    ),
    required("amount", "Amount is required"),
    non_negative("amount", "Amount must be 0 or more"),
    required("frequency", "Frequency is required"),
)

INCOME_RULES: tuple[Rule, ...] = (
    check(
        "earned_income_listed",
        "sources",
        "Add at least one job if anyone receives money from working",
        lambda income: any(source.is_earned for source in income.sources),
        when=flag("has_earned_income"),
    ),
    each("sources", INCOME_SOURCE_RULES),
    required("job_loss_details", "Please describe the job loss", when=flag("job_loss_last_60_days")),
    required(
        "third_party_details",
        "Please describe who pays your bills",
        when=flag("third_party_bill_payment"),
    ),
    required("daycare_amount", "Daycare amount is required", when=flag("daycare_expenses")),
    non_negative("daycare_amount", "Amount must be 0 or more", when=flag("daycare_expenses")),
    required("child_support_amount", "Child support amount is required", when=flag("child_support_paid")),
    non_negative("child_support_amount", "Amount must be 0 or more", when=flag("child_support_paid")),
)


# =============================================================================
# STEP 5: RESOURCES
# =============================================================================

ASSET_RULES: tuple[Rule, ...] = (
    required("type", "Asset type is required"),
    required("owner_ids", "Select at least one owner"),
    references("owner_ids"),
    required(
        "institution",
        "Institution name is required",
        when=lambda asset: asset.type is not None and asset.type != AssetType.CASH,
    ),
    required("balance", "Balance is required"),
    non_negative("balance", "Balance must be 0 or more"),
)

RESOURCES_RULES: tuple[Rule, ...] = (
    each("assets", ASSET_RULES),
    required("lottery_amount", "Lottery amount is required", when=flag("lottery_winnings")),
    at_least(
        "lottery_amount",
        LOTTERY_REPORTING_THRESHOLD,
        "Lottery or gambling winnings must be $4,250 or more",
        when=flag("lottery_winnings"),
    ),
    required("transfer_details", "Please describe the asset transfer", when=flag("asset_transfers")),
)


# =============================================================================
# STEP 6: PROGRAM-SPECIFIC SECTIONS
# =============================================================================

_SECTION_DEFAULTS = {
    "tanf": TanfInfo,
    "tanf_diversionary": TanfDiversionaryInfo,
    "snap": SnapInfo,
    "auxiliary_grants": AuxiliaryGrantsInfo,
}


def _normalize_program_specific(
    info: ProgramSpecificInfo,
    context: Optional[ValidationContext],
) -> ProgramSpecificInfo:
    """Keep exactly the sections the selected programs call for.

    Without known programs the draft is validated as given.
    """
    if context is None or context.programs is None:
        return info
    update: dict[str, Any] = {}
    for section, governing in PROGRAM_SECTIONS.items():
        applicable = bool(governing & context.programs)
        current = getattr(info, section)
        if not applicable and current is not None:
            update[section] = None
        elif applicable and current is None:
            update[section] = _SECTION_DEFAULTS[section]()
    return info.model_copy(update=update) if update else info


TANF_RULES: tuple[Rule, ...] = (
    each("child_parent_info", (
        required("child_id", "Select a child"),
        references(
            "child_id",
            roles={Relationship.CHILD},
            role_message="Selected person is not listed as a child",
        ),
        required("parent_id", "Select a parent"),
        references(
            "parent_id",
            roles={Relationship.SELF, Relationship.SPOUSE},
            role_message="Selected person is not the applicant or the applicant's spouse",
        ),
        required("immunization_status", "Immunization status is required"),
    )),
)

TANF_DIVERSIONARY_RULES: tuple[Rule, ...] = (
    required("emergency_description", "Please describe the emergency", when=flag("emergency_need")),
)

SNAP_RULES: tuple[Rule, ...] = (
    required("head_of_household", "Head of household is required"),
    references("head_of_household"),
    each("medical_expenses", (
        required("person_id", "Person is required"),
        references("person_id"),
        required("amount", "Amount is required"),
        non_negative("amount", "Amount must be 0 or more"),
        required("description", "Description is required"),
    )),
    non_negative("shelter_costs.rent", "Rent must be 0 or more"),
    non_negative("shelter_costs.property_tax", "Property tax must be 0 or more"),
    non_negative("shelter_costs.home_insurance", "Home insurance must be 0 or more"),
    required("heating_method", "Heating method is required"),
)

AUXILIARY_GRANTS_RULES: tuple[Rule, ...] = (
    required("living_situation", "Living situation is required"),
    each("property", (
        required("type", "Property type is required"),
        required("value", "Property value is required"),
        non_negative("value", "Value must be 0 or more"),
        required("location", "Property location is required"),
    )),
    each("vehicles", (
        required("make", "Vehicle make is required"),
        required("model", "Vehicle model is required"),
        required("year", "Vehicle year is required"),
        at_least("year", EARLIEST_VEHICLE_YEAR, "Vehicle year must be 1900 or later"),
        non_negative("value", "Value must be 0 or more"),
    )),
    required(
        "burial_arrangements.value",
        "Value of burial arrangements is required",
        when=flag("burial_arrangements.has_arrangements"),
    ),
    non_negative("burial_arrangements.value", "Value must be 0 or more"),
    required(
        "life_insurance.value",
        "Life insurance value is required",
        when=flag("life_insurance.has_policy"),
    ),
    non_negative("life_insurance.value", "Value must be 0 or more"),
    required(
        "health_insurance.provider",
        "Health insurance provider is required",
        when=flag("health_insurance.has_insurance"),
    ),
    required("medicare.parts", "Select at least one Medicare part", when=flag("medicare.has_medicare")),
    references("tax_filers"),
    references("non_filers"),
    check(
        "filer_status_exclusive",
        "non_filers",
        "A person cannot be both a tax filer and a non-filer",
        lambda grants: not set(grants.tax_filers) & set(grants.non_filers),
    ),
)

PROGRAM_SPECIFIC_RULES: tuple[Rule, ...] = (
    nested("tanf", TANF_RULES),
    nested("tanf_diversionary", TANF_DIVERSIONARY_RULES),
    nested("snap", SNAP_RULES),
    nested("auxiliary_grants", AUXILIARY_GRANTS_RULES),
)


# =============================================================================
# STEP 7: AUTHORIZED REPRESENTATIVE
# =============================================================================

AUTHORIZED_REPRESENTATIVE_RULES: tuple[Rule, ...] = (
    required("name", "Representative name is required", when=flag("has_representative")),
    required("address", "Representative address is required", when=flag("has_representative")),
    required("phone", "Representative phone is required", when=flag("has_representative")),
    min_digits(
        "phone",
        MIN_PHONE_DIGITS,
        "Phone number must be at least 10 digits",
        when=flag("has_representative"),
    ),
    check(
        "permission_granted",
        "permissions",
        "Select at least one permission for the representative",
        lambda representative: representative.permissions.any_granted,
        when=flag("has_representative"),
    ),
)


# =============================================================================
# STEP 8: REVIEW & SUBMIT
# =============================================================================

REVIEW_RULES: tuple[Rule, ...] = (
    is_true("truthfulness", "You must certify that your answers are true"),
    is_true("change_reporting", "You must agree to report changes"),
    is_true("penalties", "You must acknowledge the penalties for false statements"),
    is_true("consent_to_data_sharing", "You must consent to data sharing"),
    required(
        "completed_by_details",
        "Please tell us who completed this application",
        when=unset("completed_by_self"),
    ),
    required("signature", "Signature is required"),
    required("signature_date", "Signature date is required"),
)


# =============================================================================
# REGISTRY
# =============================================================================

PROGRAM_SELECTION_SCHEMA = StepSchema(
    StepId.PROGRAM_SELECTION,
    ProgramSelection,
    PROGRAM_SELECTION_RULES,
    normalizer=_normalize_program_selection,
)
APPLICANT_INFO_SCHEMA = StepSchema(
    StepId.APPLICANT_INFO,
    ApplicantInfo,
    APPLICANT_RULES,
    normalizer=_normalize_applicant,
)
HOUSEHOLD_SCHEMA = StepSchema(StepId.HOUSEHOLD, HouseholdComposition, HOUSEHOLD_RULES)
INCOME_SCHEMA = StepSchema(StepId.INCOME, IncomeInfo, INCOME_RULES)
RESOURCES_SCHEMA = StepSchema(StepId.RESOURCES, ResourcesInfo, RESOURCES_RULES)
PROGRAM_SPECIFIC_SCHEMA = StepSchema(
    StepId.PROGRAM_SPECIFIC,
    ProgramSpecificInfo,
    PROGRAM_SPECIFIC_RULES,
    normalizer=_normalize_program_specific,
)
AUTHORIZED_REPRESENTATIVE_SCHEMA = StepSchema(
    StepId.AUTHORIZED_REPRESENTATIVE,
    AuthorizedRepresentative,
    AUTHORIZED_REPRESENTATIVE_RULES,
)
REVIEW_SCHEMA = StepSchema(StepId.REVIEW, ReviewAcknowledgements, REVIEW_RULES)

STEP_SCHEMAS: dict[StepId, StepSchema] = {
    schema.step: schema
    for schema in (
        PROGRAM_SELECTION_SCHEMA,
        APPLICANT_INFO_SCHEMA,
        HOUSEHOLD_SCHEMA,
        INCOME_SCHEMA,
        RESOURCES_SCHEMA,
        PROGRAM_SPECIFIC_SCHEMA,
        AUTHORIZED_REPRESENTATIVE_SCHEMA,
        REVIEW_SCHEMA,
    )
}


def get_schema(step: Union[StepId, str]) -> StepSchema:
    """Look up the schema for a step.

    Raises:
        UnknownStepError: If ``step`` is not one of the wizard's steps
    """
    try:
        return STEP_SCHEMAS[StepId(step)]
    except (ValueError, KeyError):
        raise UnknownStepError(f"Unknown step: {step!r}", step=step) from None


__all__ = [
    "StepSchema",
    "LOTTERY_REPORTING_THRESHOLD",
    "EARLIEST_VEHICLE_YEAR",
    "PROGRAM_SELECTION_SCHEMA",
    "APPLICANT_INFO_SCHEMA",
    "HOUSEHOLD_SCHEMA",
    "INCOME_SCHEMA",
    "RESOURCES_SCHEMA",
    "PROGRAM_SPECIFIC_SCHEMA",
    "AUTHORIZED_REPRESENTATIVE_SCHEMA",
    "REVIEW_SCHEMA",
    "STEP_SCHEMAS",
    "get_schema",
]
