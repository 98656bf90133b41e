"""
Allowance resolution.

Gathers the facts an allowance calculation needs from the employee record's
collaborators and builds the calculator for a target year.

Resolution Order:
1. Leave details - loaded for the year unless already present
2. Adjustment and carry over - fetched for the year
3. Days taken - counted from the loaded leave details
4. Evaluation instant - forced `now`, start of a non-current year, or today
"""

import logging
from datetime import datetime
from typing import Dict, Optional, Protocol

from .calculator import AllowanceCalculator, AllowanceSnapshot
from .clock import DateLike, start_of_year, to_utc, utc_now
from .validation import AllowanceValidationError, require_date, require_user

logger = logging.getLogger(__name__)


class AllowanceSubject(Protocol):
    """Employee record consumed by `promise_allowance`.

    Attributes: start_date, end_date (None while employed), department with
    `allowance` and `is_accrued_allowance`, and `my_leaves` (None until
    leave details are loaded).
    """

    async def reload_with_leave_details(self, year: datetime) -> None: ...

    def calculate_number_of_days_taken_from_allowance(self, year: str) -> float: ...

    async def promise_adjustment_and_carry_over_for_year(
        self, year: datetime
    ) -> Dict[str, float]: ...


async def promise_allowance(
    user: Optional[AllowanceSubject] = None,
    year: Optional[DateLike] = None,
    now: Optional[DateLike] = None,
    force_now: bool = False,
) -> AllowanceCalculator:
    """Build the allowance calculator for an employee and year.

    Collaborator calls run one after another; the first failure aborts the
    resolution and propagates unchanged.

    Args:
        user: Employee record implementing AllowanceSubject (required)
        year: Any instant within the target year (defaults to now in UTC)
        now: Evaluation instant, only honoured when force_now is set
        force_now: Use `now` verbatim as the evaluation instant

    Returns:
        AllowanceCalculator for the year

    Raises:
        AllowanceValidationError: If arguments are invalid
        Exception: Any collaborator failure, unchanged
    """
    require_user(user)
    if year is not None:
        require_date("year", year)
    if now is not None:
        require_date("now", now)
    if not isinstance(force_now, bool):
        raise AllowanceValidationError("force_now", "must be a boolean")

    current = utc_now()
    year = current if year is None else to_utc(year)
    now = current if now is None else to_utc(now)

    if getattr(user, "my_leaves", None) is None:
        logger.debug("Loading leave details for %s", year.year)
        await user.reload_with_leave_details(year=year)

    adjustment_and_carry_over = await user.promise_adjustment_and_carry_over_for_year(year)
    manual_adjustment = adjustment_and_carry_over["adjustment"]
    carried_over_allowance = adjustment_and_carry_over["carried_over_allowance"]

    days_taken = user.calculate_number_of_days_taken_from_allowance(
        year=f"{year.year:04d}"
    )

    evaluation_instant = None
    if force_now:
        evaluation_instant = now
    elif year.year != current.year:
        evaluation_instant = start_of_year(year.year)
    logger.debug(
        "Resolved allowance inputs for %s: adjustment=%s carry_over=%s taken=%s now=%s",
        year.year, manual_adjustment, carried_over_allowance, days_taken,
        evaluation_instant or "current",
    )

    return AllowanceCalculator(AllowanceSnapshot.build(
        user=user,
        manual_adjustment=manual_adjustment,
        number_of_days_taken_from_allowance=days_taken,
        carry_over=carried_over_allowance,
        nominal_allowance=user.department.allowance,
        now=evaluation_instant,
    ))
