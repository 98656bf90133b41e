"""
Input validation for allowance calculations.

Rejects bad input at construction time with an error naming the field.
"""

import math
from datetime import date
from numbers import Real
from typing import Any


class AllowanceValidationError(ValueError):
    """Raised when an allowance input fails validation."""
    def __init__(self, parameter: str, reason: str):
        super().__init__(f"Invalid '{parameter}': {reason}")
        self.parameter = parameter
        self.reason = reason


def require_number(name: str, value: Any) -> None:
    """Ensure value is a finite real number (bools are not numbers here)."""
    if value is None:
        raise AllowanceValidationError(name, "is required")
    if isinstance(value, bool) or not isinstance(value, Real):
        raise AllowanceValidationError(
            name, f"must be a number, got {type(value).__name__}"
        )
    if not math.isfinite(value):
        raise AllowanceValidationError(name, "must be a finite number")


def require_date(name: str, value: Any) -> None:
    """Ensure value is a date or datetime."""
    if not isinstance(value, date):
        raise AllowanceValidationError(
            name, f"must be a date or datetime, got {type(value).__name__}"
        )


def require_user(value: Any) -> None:
    """Ensure an employee record was supplied."""
    if value is None:
        raise AllowanceValidationError("user", "is required")
