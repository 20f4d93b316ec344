from __future__ import annotations

from typing import Type

from ..core.exceptions import ValidationError


def require_non_empty(value: str, field_name: str) -> str:
    stripped = str(value or "").strip()
    if not stripped:
        raise ValidationError(f"{field_name} is required")
    return stripped


def require_min_length(
    value: str,
    field_name: str,
    min_len: int,
    *,
    error: Type[ValidationError] = ValidationError,
) -> str:
    """Strip `value` and require at least `min_len` characters."""
    stripped = (value or "").strip()
    if len(stripped) < min_len:
        raise error(f"{field_name} must be at least {min_len} characters")
    return stripped


def require_non_negative(value, field_name: str) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} must be a number")
    if number < 0:
        raise ValidationError(f"{field_name} must not be negative")
    return number
