"""Per-field checks run on generated answers before they touch the page."""

from __future__ import annotations

import re
from typing import List, Optional, Sequence
from urllib.parse import urlsplit

from .field_labels import parse_numeric
from .form_models import AIFieldResponse, AIFormResponse, FieldMetadata, ValidationResult

LOW_CONFIDENCE_THRESHOLD = 70
MIN_PHONE_DIGITS = 10

EMAIL_SHAPE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
# Leading numeric prefix, as browsers parse number inputs loosely.
NUMBER_PREFIX = re.compile(r"^\s*[+-]?(?:\d+\.?\d*(?:[eE][+-]?\d+)?|\.\d+(?:[eE][+-]?\d+)?|Infinity)")
NON_DIGITS = re.compile(r"\D")


def validate(
    value: str, field: FieldMetadata, ai_response: AIFieldResponse
) -> ValidationResult:
    """Check ``value`` against ``field``'s constraints.

    Every rule runs; errors and warnings accumulate. An over-long value also
    gets ``corrected_value`` truncated to the limit.
    """
    value = value or ""
    errors: List[str] = []
    warnings: List[str] = []
    corrected: Optional[str] = None

    if field.required and not value.strip():
        errors.append("Required field cannot be empty")

    type_errors, type_warnings = _check_type(value, field)
    errors.extend(type_errors)
    warnings.extend(type_warnings)

    if field.pattern and value:
        try:
            if not re.search(field.pattern, value):
                errors.append(f"Doesn't match pattern: {field.pattern}")
        except re.error:
            pass

    if field.max_length and len(value) > field.max_length:
        errors.append(f"Exceeds max length {field.max_length}")
        corrected = value[: field.max_length]

    if ai_response.confidence < LOW_CONFIDENCE_THRESHOLD:
        warnings.append(f"Low confidence ({ai_response.confidence}%)")

    return ValidationResult(
        is_valid=not errors,
        errors=errors,
        warnings=warnings,
        corrected_value=corrected,
    )


def _check_type(value: str, field: FieldMetadata) -> tuple[List[str], List[str]]:
    errors: List[str] = []
    warnings: List[str] = []
    if not value:
        return errors, warnings

    kind = field.type
    if kind == "email":
        if not EMAIL_SHAPE.match(value):
            errors.append("Invalid email format")
    elif kind in ("tel", "phone"):
        if len(NON_DIGITS.sub("", value)) < MIN_PHONE_DIGITS:
            warnings.append("Phone number may be incomplete")
    elif kind == "url":
        if not is_url(value):
            errors.append("Invalid URL format")
    elif kind in ("number", "range"):
        match = NUMBER_PREFIX.match(value)
        if not match:
            errors.append("Must be a number")
        else:
            number = parse_numeric(match.group(0).strip().replace("Infinity", "inf"))
            if number is not None:
                if field.min is not None and number < field.min:
                    errors.append(f"Below minimum {_format(field.min)}")
                if field.max is not None and number > field.max:
                    errors.append(f"Above maximum {_format(field.max)}")
    return errors, warnings


def is_url(value: str) -> bool:
    candidate = value.strip() if value.startswith("http") else f"https://{value.strip()}"
    try:
        parts = urlsplit(candidate)
    except ValueError:
        return False
    if not parts.scheme or not parts.netloc:
        return False
    return not any(ch.isspace() for ch in parts.netloc)


def _format(bound: float) -> str:
    return str(int(bound)) if float(bound).is_integer() else str(bound)


def validate_responses(
    fields: Sequence[FieldMetadata], response: AIFormResponse
) -> List[ValidationResult]:
    """Validate each answer against the field at the same position."""
    results: List[ValidationResult] = []
    for index, field in enumerate(fields):
        answer = response.fields[index] if index < len(response.fields) else AIFieldResponse(index + 1)
        results.append(validate(answer.value, field, answer))
    return results


__all__ = [
    "LOW_CONFIDENCE_THRESHOLD",
    "validate",
    "validate_responses",
    "is_url",
]
