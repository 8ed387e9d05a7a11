"""
Input validators shared by every component.

Each validator returns the checked value or raises ValidationError before any
state has been touched.
"""

import math
from typing import Any

from adage.errors import ValidationError


def validate_score(score: Any, field_name: str = "score") -> float:
    """
    Check that ``score`` is a real number in [0, 1].

    Raises:
        ValidationError: If the value is not numeric, is NaN, or is out of range
    """
    if isinstance(score, bool) or not isinstance(score, (int, float)):
        raise ValidationError(f"{field_name} must be a number, got {score!r}", field=field_name)
    if math.isnan(score) or score < 0.0 or score > 1.0:
        raise ValidationError(f"{field_name} must be within [0, 1], got {score}", field=field_name)
    return float(score)


def validate_identifier(value: Any, field_name: str) -> str:
    """
    Check that ``value`` is a non-empty string id.

    Raises:
        ValidationError: If the id is missing or blank
    """
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field_name} must be a non-empty string", field=field_name)
    return value


def validate_sample_size(value: Any, field_name: str = "required_sample_size") -> int:
    """
    Check that ``value`` is a positive integer.

    Raises:
        ValidationError: If the value is not an int (bools excluded) or is < 1
    """
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise ValidationError(
            f"{field_name} must be a positive integer, got {value!r}", field=field_name
        )
    return value
