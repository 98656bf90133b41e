"""
Allowance calculation.

Turns an immutable snapshot of employee facts into available-days figures.

Evaluation order:
1. Employment range adjustment - prorates the nominal allowance to the part
   of the year actually employed
2. Total allowance - nominal + carry over + manual adjustment + proration
3. Accrued adjustment - withholds the part of the allowance not yet accrued
   (accrual departments only)
4. Available days - total minus days taken plus accrued adjustment
"""

import logging
import math
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional, Tuple

from .clock import DateLike, days_between, end_of_year, start_of_year, to_utc, utc_now
from .validation import AllowanceValidationError, require_date, require_number, require_user

logger = logging.getLogger(__name__)

# Fixed proration denominator, leap years are not special-cased
DAYS_IN_YEAR = 365

NUMERIC_FIELDS = (
    "number_of_days_taken_from_allowance",
    "manual_adjustment",
    "carry_over",
    "nominal_allowance",
)


def round_half_up(value: float) -> int:
    """Round to the nearest integer with halves going toward +infinity."""
    return math.floor(value + 0.5)


@dataclass(frozen=True)
class AllowanceSnapshot:
    """Immutable inputs of one allowance calculation.

    Built once per query and discarded after use. `now` must be a concrete
    instant; use `build` to default it to the current UTC time.
    """
    user: Any
    number_of_days_taken_from_allowance: float
    manual_adjustment: float
    carry_over: float
    nominal_allowance: float
    now: datetime

    def __post_init__(self):
        """Validate fields and normalise `now` to UTC."""
        require_user(self.user)
        require_date("user.start_date", getattr(self.user, "start_date", None))
        end_date = getattr(self.user, "end_date", None)
        if end_date is not None:
            require_date("user.end_date", end_date)
        for name in NUMERIC_FIELDS:
            require_number(name, getattr(self, name))
        if self.now is None:
            raise AllowanceValidationError("now", "is required")
        require_date("now", self.now)
        object.__setattr__(self, "now", to_utc(self.now))

    @classmethod
    def build(
        cls,
        user: Any = None,
        number_of_days_taken_from_allowance: Optional[float] = None,
        manual_adjustment: Optional[float] = None,
        carry_over: Optional[float] = None,
        nominal_allowance: Optional[float] = None,
        now: Optional[DateLike] = None,
    ) -> "AllowanceSnapshot":
        """Build a snapshot, defaulting `now` to the current UTC instant."""
        return cls(
            user=user,
            number_of_days_taken_from_allowance=number_of_days_taken_from_allowance,
            manual_adjustment=manual_adjustment,
            carry_over=carry_over,
            nominal_allowance=nominal_allowance,
            now=utc_now() if now is None else now,
        )


class AllowanceCalculator:
    """Employee allowance for one year, as of the snapshot's `now`.

    Every figure is a read-only property computed fresh from the snapshot,
    so two calculators over equal snapshots always agree.
    """

    def __init__(self, snapshot: AllowanceSnapshot):
        """Wrap a validated snapshot.

        Raises:
            AllowanceValidationError: If snapshot is not an AllowanceSnapshot
        """
        if not isinstance(snapshot, AllowanceSnapshot):
            raise AllowanceValidationError(
                "snapshot", f"must be an AllowanceSnapshot, got {type(snapshot).__name__}"
            )
        self._snapshot = snapshot

    @classmethod
    def from_values(cls, **fields: Any) -> "AllowanceCalculator":
        """Validate raw fields into a snapshot and wrap it.

        Raises:
            AllowanceValidationError: If any field is missing or invalid
        """
        unknown = set(fields) - set(NUMERIC_FIELDS) - {"user", "now"}
        if unknown:
            raise AllowanceValidationError(sorted(unknown)[0], "is not a known field")
        return cls(AllowanceSnapshot.build(**fields))

    @property
    def snapshot(self) -> AllowanceSnapshot:
        return self._snapshot

    @property
    def user(self) -> Any:
        return self._snapshot.user

    @property
    def now(self) -> datetime:
        return self._snapshot.now

    @property
    def number_of_days_taken_from_allowance(self) -> float:
        return self._snapshot.number_of_days_taken_from_allowance

    @property
    def manual_adjustment(self) -> float:
        return self._snapshot.manual_adjustment

    @property
    def carry_over(self) -> float:
        return self._snapshot.carry_over

    @property
    def nominal_allowance(self) -> float:
        return self._snapshot.nominal_allowance

    @property
    def is_accrued_allowance(self) -> bool:
        return bool(self.user.department.is_accrued_allowance)

    @property
    def total_number_of_days_in_allowance(self) -> float:
        """Nominal allowance plus carry over, manual and range adjustments."""
        return (
            self.nominal_allowance
            + self.carry_over
            + self.manual_adjustment
            + self.employment_range_adjustment
        )

    @property
    def number_of_days_available_in_allowance(self) -> float:
        """Days still available as of `now`.

        Zero when the employee starts in a later year than `now`.
        """
        if to_utc(self.user.start_date).year > self.now.year:
            return 0

        accrued = self.accrued_adjustment if self.is_accrued_allowance else 0
        return (
            self.total_number_of_days_in_allowance
            - self.number_of_days_taken_from_allowance
            + accrued
        )

    @property
    def employment_range_adjustment(self) -> float:
        """Negative correction for employment covering only part of the year.

        Zero when the employee was employed for the whole year of `now`.
        """
        now = self.now
        start_year = to_utc(self.user.start_date).year
        end_date = self.user.end_date

        if start_year != now.year and (not end_date or to_utc(end_date).year > now.year):
            return 0

        period_start, period_end = self._employment_period()
        employed_days = days_between(period_end, period_start)
        prorated = round_half_up(self.nominal_allowance * employed_days / DAYS_IN_YEAR)
        return -1 * (self.nominal_allowance - prorated)

    @property
    def accrued_adjustment(self) -> float:
        """Negative share of the allowance not yet accrued at `now`.

        Rounded to half days. A zero-length period accrues nothing and
        yields 0.
        """
        allowance = (
            self.nominal_allowance
            + self.manual_adjustment
            + self.employment_range_adjustment
        )
        period_start, period_end = self._employment_period()

        days_in_period = days_between(period_end, period_start)
        if days_in_period == 0:
            logger.debug(
                "Accrual period %s..%s spans zero days, no accrued adjustment",
                period_start.date(), period_end.date(),
            )
            return 0.0

        delta = allowance * days_between(period_end, self.now) / days_in_period
        adjustment = -1 * (round_half_up(delta * 2) / 2)
        return adjustment or 0.0

    def breakdown(self) -> Dict[str, Any]:
        """All computed figures keyed by name."""
        return {
            "nominal_allowance": self.nominal_allowance,
            "carry_over": self.carry_over,
            "manual_adjustment": self.manual_adjustment,
            "employment_range_adjustment": self.employment_range_adjustment,
            "total_number_of_days_in_allowance": self.total_number_of_days_in_allowance,
            "number_of_days_taken_from_allowance": self.number_of_days_taken_from_allowance,
            "is_accrued_allowance": self.is_accrued_allowance,
            "accrued_adjustment": self.accrued_adjustment if self.is_accrued_allowance else 0,
            "number_of_days_available_in_allowance": self.number_of_days_available_in_allowance,
        }

    def _employment_period(self) -> Tuple[datetime, datetime]:
        """Employment window clipped to the year of `now`."""
        now = self.now
        start = to_utc(self.user.start_date)
        end_date = self.user.end_date

        period_start = start if start.year == now.year else start_of_year(now.year)
        if end_date and to_utc(end_date).year <= now.year:
            period_end = to_utc(end_date)
        else:
            period_end = end_of_year(now.year)
        return period_start, period_end
