"""
Input validation rules for listings, priorities and offer payloads.

Provides numeric coercion with field-level error reporting so that
bad input is rejected before any score is computed.
"""

import math
from dataclasses import dataclass, field
from typing import Any, Optional

from .errors import OfferEngineError


class ValidationError(OfferEngineError):
    """Raised when validation fails."""

    def __init__(
        self,
        field: str,
        message: str,
        value: Any = None,
        errors: Optional[list["ValidationError"]] = None,
    ):
        self.field = field
        self.message = message
        self.value = value
        self.errors = errors or [self]
        super().__init__(f"{field}: {message}")

    def to_dict(self) -> dict:
        return {"field": self.field, "message": self.message}

    def details(self) -> list[dict]:
        """Field-level detail for every failing field."""
        return [e.to_dict() for e in self.errors]


@dataclass
class ValidationResult:
    """Result of validation operation."""

    is_valid: bool = True
    errors: list[ValidationError] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def __bool__(self) -> bool:
        return self.is_valid

    def add_error(self, error: ValidationError) -> None:
        self.errors.append(error)
        self.is_valid = False

    def raise_for_errors(self) -> None:
        """Raise a single ValidationError carrying every field error."""
        if self.is_valid:
            return
        first = self.errors[0]
        raise ValidationError(first.field, first.message, first.value, errors=list(self.errors))


MIN_PRIORITY_WEIGHT = 1
MAX_PRIORITY_WEIGHT = 10


def coerce_number(
    value: Any,
    field_name: str,
    result: ValidationResult,
    required: bool = True,
    allow_negative: bool = False,
) -> Optional[float]:
    """
    Convert a raw value (number or numeric string) to a float.

    Records an error on the result and returns None when the value is
    missing, non-numeric, non-finite, or negative when negatives are
    not allowed.
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        if required:
            result.add_error(ValidationError(field_name, "Field is required"))
        return None

    if isinstance(value, bool):
        result.add_error(ValidationError(field_name, "Must be a number", value))
        return None

    try:
        if isinstance(value, str):
            number = float(value.replace(",", "").replace("$", "").strip())
        else:
            number = float(value)
    except (TypeError, ValueError):
        result.add_error(ValidationError(field_name, "Must be a number", value))
        return None

    if not math.isfinite(number):
        result.add_error(ValidationError(field_name, "Must be a finite number", value))
        return None

    if number < 0 and not allow_negative:
        result.add_error(ValidationError(field_name, "Cannot be negative", value))
        return None

    return number


def coerce_int(
    value: Any,
    field_name: str,
    result: ValidationResult,
    required: bool = True,
) -> Optional[int]:
    """Convert a raw value to a non-negative int (truncating like parseInt)."""
    number = coerce_number(value, field_name, result, required=required)
    if number is None:
        return None
    return int(number)


def validate_priority_weight(value: Any, field_name: str, result: ValidationResult) -> Optional[int]:
    """Validate a single priority slider value (integer in [1, 10])."""
    number = coerce_number(value, field_name, result)
    if number is None:
        return None

    if number != int(number):
        result.add_error(ValidationError(field_name, "Must be a whole number", value))
        return None

    weight = int(number)
    if not MIN_PRIORITY_WEIGHT <= weight <= MAX_PRIORITY_WEIGHT:
        result.add_error(ValidationError(
            field_name,
            f"Must be between {MIN_PRIORITY_WEIGHT} and {MAX_PRIORITY_WEIGHT}",
            value,
        ))
        return None

    return weight


def validate_listing_fields(data: dict) -> ValidationResult:
    """
    Validate raw listing input.

    Address fields and asking price are required; loan balance is optional.
    """
    result = ValidationResult()

    for name in ("address", "city", "state", "zip_code"):
        value = data.get(name)
        if not value or not str(value).strip():
            result.add_error(ValidationError(name, "Field is required"))

    asking = coerce_number(data.get("asking_price"), "asking_price", result)
    loan = coerce_number(data.get("loan_balance"), "loan_balance", result, required=False)

    if result.is_valid and loan is not None and loan > asking:
        result.warnings.append("Loan balance exceeds asking price; offers may net negative proceeds")

    return result
