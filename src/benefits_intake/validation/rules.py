"""Field schema library: reusable, data-driven validation rules.

Each step schema is a table of rules built from the factories in this
module. A rule is evaluated against a typed draft and returns a list of
``FieldError`` (empty when satisfied); rules never raise, and every rule in a
table is evaluated so a caller can display all violations at once.

Conditional requiredness ("if X then Y is required") is expressed with the
``when`` predicate every rule accepts:

    required("school_name", "School name is required", when=flag("student"))

Field rules that check a format (``matches``, ``email``, ``at_least``...)
skip blank values; pair them with ``required`` when the field is mandatory.
"""

import re
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Callable, Iterable, Optional, Sequence, Union

from pydantic import BaseModel, ConfigDict

from benefits_intake.models.enums import ProgramType, Relationship
from benefits_intake.validation.results import FieldError


Predicate = Callable[[Any], bool]

# Field formats
SSN_PATTERN = re.compile(r"^\d{3}-?\d{2}-?\d{4}$")
ZIP_PATTERN = re.compile(r"^\d{5}(-\d{4})?$")
EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
MIN_PHONE_DIGITS = 10


class ValidationContext(BaseModel):
    """Cross-step facts a step schema may be validated against.

    Passed explicitly so validation stays a pure function of its inputs.
    ``None`` means "not known": program gating and reference rules are then
    skipped.
    """

    model_config = ConfigDict(frozen=True)

    programs: Optional[frozenset[ProgramType]] = None
    people: Optional[dict[str, Optional[Relationship]]] = None

    def knows(self, person_id: str) -> bool:
        return self.people is not None and person_id in self.people

    def relationship_of(self, person_id: str) -> Optional[Relationship]:
        return (self.people or {}).get(person_id)


# =============================================================================
# PATH HELPERS
# =============================================================================

def get_path(target: Any, path: str) -> Any:
    """Read a dotted path from models, mappings and lists.

    Missing attributes, keys and indices resolve to None.
    """
    if not path:
        return target
    current = target
    for part in path.split("."):
        if current is None:
            return None
        if isinstance(current, (list, tuple)):
            try:
                current = current[int(part)]
            except (ValueError, IndexError):
                return None
        elif isinstance(current, dict):
            current = current.get(part)
        else:
            current = getattr(current, part, None)
    return current


def set_path(data: dict[str, Any], path: str, value: Any) -> dict[str, Any]:
    """Write ``value`` at a dotted path of nested dicts and lists, in place.

    Missing intermediate dicts are created. Returns ``data``.

    Raises:
        KeyError: If a list index in ``path`` is out of range
    """
    parts = path.split(".")
    current: Any = data
    for part, next_part in zip(parts, parts[1:]):
        if isinstance(current, list):
            try:
                current = current[int(part)]
            except (ValueError, IndexError):
                raise KeyError(path) from None
            continue
        child = current.get(part)
        if child is None:
            child = [] if next_part.isdigit() else {}
            current[part] = child
        current = child

    last = parts[-1]
    if isinstance(current, list):
        try:
            current[int(last)] = value
        except (ValueError, IndexError):
            raise KeyError(path) from None
    else:
        current[last] = value
    return data


def is_blank(value: Any) -> bool:
    """None, whitespace-only strings and empty collections are blank."""
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, set, frozenset, dict)):
        return len(value) == 0
    return False


def flag(path: str) -> Predicate:
    """Predicate: the boolean at ``path`` is set."""
    return lambda target: bool(get_path(target, path))


def unset(path: str) -> Predicate:
    """Predicate: the boolean at ``path`` is not set."""
    return lambda target: not get_path(target, path)


def equals(path: str, expected: Any) -> Predicate:
    return lambda target: get_path(target, path) == expected


def one_of(path: str, options: Iterable[Any]) -> Predicate:
    allowed = frozenset(options)
    return lambda target: get_path(target, path) in allowed


def both(*predicates: Predicate) -> Predicate:
    return lambda target: all(predicate(target) for predicate in predicates)


# =============================================================================
# RULES
# =============================================================================

class Rule:
    """A named validation over a draft. Subclasses implement ``evaluate``."""

    name: str

    def evaluate(self, target: Any, context: Optional[ValidationContext] = None) -> list[FieldError]:
        raise NotImplementedError


@dataclass(frozen=True)
class FieldRule(Rule):
    """Predicate + message pair attached to one field path.

    ``test`` receives the value at ``path`` and the whole target and returns
    True when the rule is satisfied.
    """

    name: str
    path: str
    message: str
    test: Callable[[Any, Any], bool]
    when: Optional[Predicate] = None
    skip_blank: bool = False

    def evaluate(self, target: Any, context: Optional[ValidationContext] = None) -> list[FieldError]:
        if self.when is not None and not self.when(target):
            return []
        value = get_path(target, self.path)
        if self.skip_blank and is_blank(value):
            return []
        if self.test(value, target):
            return []
        return [FieldError(path=self.path, message=self.message, rule=self.name)]


@dataclass(frozen=True)
class ReferenceRule(Rule):
    """A person id (or list of ids) must name a known household member.

    Evaluated only when the context knows the household. With ``roles`` the
    referenced member must also have one of the given relationships.
    """

    path: str
    message: str
    roles: Optional[frozenset[Relationship]] = None
    role_message: Optional[str] = None
    when: Optional[Predicate] = None
    name: str = "dangling_reference"

    def evaluate(self, target: Any, context: Optional[ValidationContext] = None) -> list[FieldError]:
        if context is None or context.people is None:
            return []
        if self.when is not None and not self.when(target):
            return []
        value = get_path(target, self.path)
        if is_blank(value):
            return []
        if isinstance(value, (list, tuple)):
            candidates = [(f"{self.path}.{index}", item) for index, item in enumerate(value)]
        else:
            candidates = [(self.path, value)]

        errors: list[FieldError] = []
        for path, person_id in candidates:
            # Non-string ids are reported by the type check
            if not isinstance(person_id, str):
                continue
            if not context.knows(person_id):
                errors.append(FieldError(path=path, message=self.message, rule=self.name))
            elif self.roles is not None and context.relationship_of(person_id) not in self.roles:
                errors.append(FieldError(
                    path=path,
                    message=self.role_message or self.message,
                    rule="reference_role",
                ))
        return errors


@dataclass(frozen=True)
class NestedRules(Rule):
    """Apply a rule table to the sub-object at ``path`` (skipped when absent)."""

    path: str
    rules: Sequence[Rule]
    when: Optional[Predicate] = None
    name: str = "nested"

    def evaluate(self, target: Any, context: Optional[ValidationContext] = None) -> list[FieldError]:
        if self.when is not None and not self.when(target):
            return []
        sub_target = get_path(target, self.path)
        if sub_target is None:
            return []
        return [error.prefixed(self.path) for error in evaluate_rules(self.rules, sub_target, context)]


@dataclass(frozen=True)
class EachRules(Rule):
    """Apply a rule table to every item of the list at ``path``."""

    path: str
    rules: Sequence[Rule]
    when: Optional[Predicate] = None
    name: str = "each"

    def evaluate(self, target: Any, context: Optional[ValidationContext] = None) -> list[FieldError]:
        if self.when is not None and not self.when(target):
            return []
        items = get_path(target, self.path) or []
        errors: list[FieldError] = []
        for index, item in enumerate(items):
            prefix = f"{self.path}.{index}"
            errors.extend(error.prefixed(prefix) for error in evaluate_rules(self.rules, item, context))
        return errors


def evaluate_rules(
    rules: Iterable[Rule],
    target: Any,
    context: Optional[ValidationContext] = None,
) -> list[FieldError]:
    """Evaluate every rule in order and collect all errors."""
    errors: list[FieldError] = []
    for rule in rules:
        errors.extend(rule.evaluate(target, context))
    return errors


def reference_rules(rules: Iterable[Rule]) -> tuple[Rule, ...]:
    """The person-reference rules of a table, keeping their nesting.

    Reference rules only read paths, so they can run against a raw mapping
    that failed the type check.
    """
    kept: list[Rule] = []
    for rule in rules:
        if isinstance(rule, ReferenceRule):
            kept.append(rule)
        elif isinstance(rule, NestedRules):
            inner = reference_rules(rule.rules)
            if inner:
                kept.append(NestedRules(path=rule.path, rules=inner, when=rule.when))
        elif isinstance(rule, EachRules):
            inner = reference_rules(rule.rules)
            if inner:
                kept.append(EachRules(path=rule.path, rules=inner, when=rule.when))
    return tuple(kept)


# =============================================================================
# RULE FACTORIES
# =============================================================================

def required(path: str, message: str, *, when: Optional[Predicate] = None) -> FieldRule:
    """The value must be present and non-blank."""
    return FieldRule(
        name="required",
        path=path,
        message=message,
        test=lambda value, _: not is_blank(value),
        when=when,
    )


def matches(
    path: str,
    pattern: Union[str, re.Pattern],
    message: str,
    *,
    when: Optional[Predicate] = None,
    name: str = "format",
) -> FieldRule:
    """A present value must match ``pattern``."""
    compiled = re.compile(pattern) if isinstance(pattern, str) else pattern
    return FieldRule(
        name=name,
        path=path,
        message=message,
        test=lambda value, _: bool(compiled.match(str(value).strip())),
        when=when,
        skip_blank=True,
    )


def count_digits(value: Any) -> int:
    return sum(1 for char in str(value) if char.isdigit())


def min_digits(
    path: str,
    digits: int,
    message: str,
    *,
    when: Optional[Predicate] = None,
) -> FieldRule:
    """A present value must contain at least ``digits`` digits."""
    return FieldRule(
        name="min_digits",
        path=path,
        message=message,
        test=lambda value, _: count_digits(value) >= digits,
        when=when,
        skip_blank=True,
    )


def email(path: str, message: str, *, when: Optional[Predicate] = None) -> FieldRule:
    return matches(path, EMAIL_PATTERN, message, when=when, name="email")


def at_least(
    path: str,
    minimum: Union[int, Decimal],
    message: str,
    *,
    when: Optional[Predicate] = None,
    name: str = "minimum",
) -> FieldRule:
    """A present numeric value must be >= ``minimum``."""
    return FieldRule(
        name=name,
        path=path,
        message=message,
        test=lambda value, _: value >= minimum,
        when=when,
        skip_blank=True,
    )


def non_negative(path: str, message: str, *, when: Optional[Predicate] = None) -> FieldRule:
    return at_least(path, Decimal("0"), message, when=when, name="non_negative")


def is_true(path: str, message: str, *, when: Optional[Predicate] = None) -> FieldRule:
    """The boolean at ``path`` must be checked."""
    return FieldRule(
        name="must_accept",
        path=path,
        message=message,
        test=lambda value, _: value is True,
        when=when,
    )


def agrees(flag_path: str, value_path: str, message: str) -> FieldRule:
    """A yes/no flag and its free-text field must agree.

    Flag set means the value is required, flag cleared means the value must
    be empty. An unanswered flag (None) imposes nothing.
    """

    def _agree(value: Any, target: Any) -> bool:
        answer = get_path(target, flag_path)
        if answer is None:
            return True
        return bool(answer) == (not is_blank(value))

    return FieldRule(name="agreement", path=value_path, message=message, test=_agree)


def check(
    name: str,
    path: str,
    message: str,
    predicate: Predicate,
    *,
    when: Optional[Predicate] = None,
) -> FieldRule:
    """Named refinement over the whole target; the error lands on ``path``."""
    return FieldRule(
        name=name,
        path=path,
        message=message,
        test=lambda _, target: predicate(target),
        when=when,
    )


def references(
    path: str,
    message: str = "Refers to a household member who is no longer listed",
    *,
    roles: Optional[Iterable[Relationship]] = None,
    role_message: Optional[str] = None,
    when: Optional[Predicate] = None,
) -> ReferenceRule:
    return ReferenceRule(
        path=path,
        message=message,
        roles=frozenset(roles) if roles is not None else None,
        role_message=role_message,
        when=when,
    )


def nested(path: str, rules: Sequence[Rule], *, when: Optional[Predicate] = None) -> NestedRules:
    return NestedRules(path=path, rules=tuple(rules), when=when)


def each(path: str, rules: Sequence[Rule], *, when: Optional[Predicate] = None) -> EachRules:
    return EachRules(path=path, rules=tuple(rules), when=when)


# =============================================================================
# COMPOSITE SHAPES
# =============================================================================

PERSON_NAME_RULES: tuple[Rule, ...] = (
    required("first", "First name is required"),
    required("last", "Last name is required"),
    agrees("has_middle_name", "middle", "Middle name is required if you indicated you have one"),
)

MAILING_ADDRESS_RULES: tuple[Rule, ...] = (
    required("street", "Mailing street address is required"),
    required("city", "Mailing city is required"),
    required("zip", "Mailing ZIP code is required"),
    matches("zip", ZIP_PATTERN, "Invalid ZIP code"),
)


# =============================================================================
# FORMATTERS
# =============================================================================

def format_ssn(value: Optional[str]) -> str:
    """Format SSN input progressively as XXX-XX-XXXX.

    Non-digits are dropped and input beyond nine digits is truncated, so
    partial input formats as it is typed: "1234" -> "123-4".
    """
    digits = "".join(char for char in (value or "") if char.isdigit())
    if len(digits) <= 3:
        return digits
    if len(digits) <= 5:
        return f"{digits[:3]}-{digits[3:]}"
    return f"{digits[:3]}-{digits[3:5]}-{digits[5:9]}"


__all__ = [
    "Predicate",
    "SSN_PATTERN",
    "ZIP_PATTERN",
    "EMAIL_PATTERN",
    "MIN_PHONE_DIGITS",
    "ValidationContext",
    "get_path",
    "set_path",
    "is_blank",
    "flag",
    "unset",
    "equals",
    "one_of",
    "both",
    "Rule",
    "FieldRule",
    "ReferenceRule",
    "NestedRules",
    "EachRules",
    "evaluate_rules",
    "required",
    "matches",
    "count_digits",
    "min_digits",
    "email",
    "at_least",
    "non_negative",
    "is_true",
    "agrees",
    "check",
    "references",
    "nested",
    "each",
    "PERSON_NAME_RULES",
    "MAILING_ADDRESS_RULES",
    "format_ssn",
]
