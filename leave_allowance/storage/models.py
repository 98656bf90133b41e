"""
Data models for storage layer.

Defines employee, department and leave entities.
"""

from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Optional


class LeaveStatus(Enum):
    """Lifecycle states of a leave record."""
    NEW = "new"
    APPROVED = "approved"
    REJECTED = "rejected"
    CANCELED = "canceled"


@dataclass(frozen=True)
class Department:
    """Department with its yearly allowance policy."""
    name: str
    allowance: float
    is_accrued_allowance: bool = False


@dataclass(frozen=True)
class Employee:
    """Employee with employment dates and department."""
    id: int
    name: str
    department: Department
    start_date: date
    end_date: Optional[date] = None

    def __post_init__(self):
        """Validate employment dates are ordered."""
        if self.end_date is not None and self.end_date < self.start_date:
            raise ValueError("end_date cannot be before start_date")


@dataclass(frozen=True)
class LeaveRecord:
    """Days of leave booked by an employee.

    `days` is the number of working days the leave deducts.
    """
    employee_id: int
    start_date: date
    days: float
    uses_allowance: bool = True
    status: LeaveStatus = LeaveStatus.APPROVED

    def __post_init__(self):
        """Validate day count."""
        if self.days < 0:
            raise ValueError("days cannot be negative")


@dataclass(frozen=True)
class AllowanceAdjustment:
    """Manual adjustment and carried over days for one employee year."""
    employee_id: int
    year: int
    adjustment: float = 0
    carried_over_allowance: float = 0
