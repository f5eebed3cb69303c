"""
Input coercion for engine operations.

The API layer validates request bodies with pydantic, but services are also
called directly (scripts, tests), so they re-check the numbers they act on.
"""
import math
from typing import Any, Optional

from filmflow.core.exceptions import ValidationError


def to_number(name: str, value: Any) -> float:
    """Coerce to a finite float or raise ValidationError."""
    if isinstance(value, bool) or value is None:
        raise ValidationError(f"{name} must be a number", field=name)
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{name} must be a number", field=name)
    if not math.isfinite(number):
        raise ValidationError(f"{name} must be finite", field=name)
    return number


def require_positive(name: str, value: Any) -> float:
    number = to_number(name, value)
    if number <= 0:
        raise ValidationError(f"{name} must be greater than 0", field=name)
    return number


def require_non_negative(name: str, value: Any) -> float:
    number = to_number(name, value)
    if number < 0:
        raise ValidationError(f"{name} must not be negative", field=name)
    return number


def require_positive_int(name: str, value: Any) -> int:
    number = require_positive(name, value)
    if not number.is_integer():
        raise ValidationError(f"{name} must be a whole number", field=name)
    return int(number)


def optional_positive(name: str, value: Any) -> Optional[float]:
    if value is None:
        return None
    return require_positive(name, value)


def require_text(name: str, value: Any) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{name} is required", field=name)
    return value.strip()


def optional_text(name: str, value: Any) -> Optional[str]:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{name} must be a string", field=name)
    return value


def round_kg(value: float) -> float:
    """Trim float noise from kg arithmetic (gram precision is plenty)."""
    return round(value, 3)
