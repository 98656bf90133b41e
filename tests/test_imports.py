"""
Tests for the public package surface.
"""

import leave_allowance
from leave_allowance.core import (
    AllowanceCalculator,
    AllowanceSnapshot,
    AllowanceValidationError,
    promise_allowance,
)


def test_version():
    assert leave_allowance.__version__


def test_core_exports():
    assert AllowanceCalculator.__module__ == "leave_allowance.core.calculator"
    assert AllowanceSnapshot.__module__ == "leave_allowance.core.calculator"
    assert issubclass(AllowanceValidationError, ValueError)
    assert callable(promise_allowance)
