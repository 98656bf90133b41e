"""
Core modules for Leave Allowance.

This package contains the allowance calculator, the async resolver that
assembles its inputs, and the validation rules shared by both.
"""

from .calculator import AllowanceCalculator, AllowanceSnapshot
from .resolver import promise_allowance
from .validation import AllowanceValidationError

__all__ = [
    "AllowanceCalculator",
    "AllowanceSnapshot",
    "AllowanceValidationError",
    "promise_allowance",
]
