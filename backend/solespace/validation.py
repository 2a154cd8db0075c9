from __future__ import annotations

import re
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any

from solespace.time_utils import parse_iso_date


# Salary ceiling: Numeric(12, 2)
MAX_MONEY = Decimal("9999999999.99")

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

# Never echoed back to a form as old input
SENSITIVE_FIELDS = frozenset({
    "password",
    "password_confirmation",
    "current_password",
    "new_password",
    "new_password_confirmation",
    "_token",
})


class ValidationError(ValueError):
    """
    422-level input problem.

    errors maps field name -> list of user-facing messages.
    """

    def __init__(self, errors: dict[str, list[str]] | str, field_name: str = "error"):
        if isinstance(errors, str):
            errors = {field_name: [errors]}
        self.errors = errors
        first = next(iter(errors.values()), ["Invalid input"])
        super().__init__(first[0] if first else "Invalid input")


class ConflictError(ValueError):
    """409-level business rule conflict."""


class UniquenessConflict(ConflictError):
    """A value that must be unique already exists; attributed to one field."""

    def __init__(self, field_name: str, message: str):
        self.field = field_name
        self.message = message
        super().__init__(message)

    @property
    def errors(self) -> dict[str, list[str]]:
        return {self.field: [self.message]}


@dataclass(frozen=True)
class FieldRule:
    """
    One input field:
    - kind: string | password | email | integer | decimal | date | list
    - required: missing/blank is an error (otherwise default applies)
    - choices: allowed values after normalization
    - confirmed: "<name>_confirmation" must match
    - messages: per-check overrides keyed by required/max/min/choices/type/confirmed
    """
    kind: str = "string"
    required: bool = False
    max_length: int | None = None
    min_length: int | None = None
    min_value: Any = None
    max_value: Any = None
    choices: tuple | None = None
    confirmed: bool = False
    default: Any = None
    normalize: Any = None
    messages: dict[str, str] = field(default_factory=dict)


def _label(name: str) -> str:
    return name.replace("_", " ")


def _message(rule: FieldRule, key: str, fallback: str) -> str:
    return rule.messages.get(key, fallback)


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and value.strip() == "")


def _coerce(name: str, rule: FieldRule, value: Any):
    """Returns the coerced value or raises ValueError with a user-facing message."""
    kind = rule.kind

    if kind == "password":
        # Never trimmed
        if not isinstance(value, str):
            raise ValueError(_message(rule, "type", f"The {_label(name)} must be a string."))
        return value

    if kind in ("string", "email"):
        if isinstance(value, (dict, list)):
            raise ValueError(_message(rule, "type", f"The {_label(name)} must be a string."))
        text = str(value).strip()
        if kind == "email":
            text = text.lower()
            if not EMAIL_RE.match(text):
                raise ValueError(_message(rule, "type", "Please provide a valid email address."))
        return text

    if kind == "integer":
        # Reject floats, scientific notation and bool
        if isinstance(value, bool):
            raise ValueError(_message(rule, "type", f"The {_label(name)} must be an integer."))
        if isinstance(value, int):
            return value
        if isinstance(value, str) and re.fullmatch(r"-?\d+", value.strip()):
            return int(value.strip())
        raise ValueError(_message(rule, "type", f"The {_label(name)} must be an integer."))

    if kind == "decimal":
        if isinstance(value, bool):
            raise ValueError(_message(rule, "type", f"The {_label(name)} must be a valid number."))
        try:
            number = Decimal(str(value).strip())
        except (InvalidOperation, ValueError):
            raise ValueError(_message(rule, "type", f"The {_label(name)} must be a valid number."))
        if not number.is_finite():
            raise ValueError(_message(rule, "type", f"The {_label(name)} must be a valid number."))
        return number.quantize(Decimal("0.01"))

    if kind == "date":
        try:
            return parse_iso_date(str(value))
        except ValueError:
            raise ValueError(_message(rule, "type", f"The {_label(name)} must be a valid date."))

    if kind == "list":
        if not isinstance(value, list):
            raise ValueError(_message(rule, "type", f"The {_label(name)} must be a list."))
        return value

    return value


def validate_form(payload: dict | None, rules: dict[str, FieldRule]) -> dict:
    """
    Validates + normalizes a submitted form against per-field rules.

    Unknown keys are dropped. Every field is checked so the caller gets the
    full error map at once. Returns the cleaned dict (defaults applied).

    Raises ValidationError with {field: [messages]}.
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid form payload")

    errors: dict[str, list[str]] = {}
    cleaned: dict = {}

    for name, rule in rules.items():
        raw = payload.get(name)

        if _is_blank(raw):
            if rule.required:
                errors.setdefault(name, []).append(
                    _message(rule, "required", f"The {_label(name)} field is required.")
                )
            else:
                cleaned[name] = rule.default() if callable(rule.default) else rule.default
            continue

        try:
            value = _coerce(name, rule, raw)
        except ValueError as exc:
            errors.setdefault(name, []).append(str(exc))
            continue

        if rule.normalize is not None:
            value = rule.normalize(value)

        if isinstance(value, str):
            if rule.max_length is not None and len(value) > rule.max_length:
                errors.setdefault(name, []).append(_message(
                    rule, "max",
                    f"The {_label(name)} may not be greater than {rule.max_length} characters.",
                ))
            if rule.min_length is not None and len(value) < rule.min_length:
                errors.setdefault(name, []).append(_message(
                    rule, "min",
                    f"The {_label(name)} must be at least {rule.min_length} characters.",
                ))

        if rule.min_value is not None and value is not None and value < rule.min_value:
            errors.setdefault(name, []).append(_message(
                rule, "min", f"The {_label(name)} must be at least {rule.min_value}.",
            ))
        if rule.max_value is not None and value is not None and value > rule.max_value:
            errors.setdefault(name, []).append(_message(
                rule, "max", f"The {_label(name)} may not be greater than {rule.max_value}.",
            ))

        if rule.choices is not None and value not in rule.choices:
            errors.setdefault(name, []).append(_message(
                rule, "choices", f"The selected {_label(name)} is invalid.",
            ))

        if rule.confirmed and payload.get(f"{name}_confirmation") != raw:
            errors.setdefault(name, []).append(_message(
                rule, "confirmed", f"The {_label(name)} confirmation does not match.",
            ))

        cleaned[name] = value

    if errors:
        raise ValidationError(errors)

    return cleaned


def old_input(payload: dict | None) -> dict:
    """Previously submitted, non-sensitive input to re-populate a form."""
    if not payload:
        return {}
    return {
        k: v for k, v in payload.items()
        if k not in SENSITIVE_FIELDS and isinstance(v, (str, int, float, bool, list, dict))
    }
