"""Utility functions for the debt calculator.

This module provides helpers for coercing user input into ``Decimal`` values,
parsing ISO dates, advancing dates by whole months and normalizing interest
rates and loan lengths to the monthly periods the engine works in.
"""

from __future__ import annotations

import calendar
import math
from datetime import date
from decimal import Decimal, InvalidOperation, getcontext
from typing import Optional, Union

from .exceptions import InvalidLoanInputError

getcontext().prec = 28  # increase decimal precision to avoid rounding errors

Number = Union[int, float, str, Decimal]

WEEKS_PER_MONTH = Decimal("4.33")
CENT = Decimal("0.01")
HALF_CENT = Decimal("0.005")


def parse_date(value: Union[str, date]) -> date:
    """Parse a ``YYYY-MM-DD`` string into a ``date``.

    ``date`` instances are returned unchanged. A ``YYYY-MM`` string is
    accepted as well and resolves to the first day of that month.

    Raises
    ------
    InvalidLoanInputError
        If the string is not a valid date.
    """
    if isinstance(value, date):
        return value
    try:
        parts = value.strip().split("-")
        if len(parts) == 2:
            return date(int(parts[0]), int(parts[1]), 1)
        return date.fromisoformat(value.strip())
    except (AttributeError, ValueError) as exc:
        raise InvalidLoanInputError(f"Invalid date: {value!r}") from exc


def add_months(dt: date, months: int) -> date:
    """Return a new date a number of months after ``dt``.

    The day of the month is clamped to the last valid day if needed (e.g.,
    adding one month to Jan 31 yields Feb 28 or 29).
    """
    year = dt.year + (dt.month - 1 + months) // 12
    month = (dt.month - 1 + months) % 12 + 1
    day = min(dt.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def to_decimal(value: Number, field: str = "value") -> Decimal:
    """Convert a number or numeric string into a finite ``Decimal``.

    Floats go through ``str`` so that ``0.1`` becomes ``Decimal("0.1")``
    rather than its binary expansion. Commas are stripped from strings.
    """
    if isinstance(value, bool):
        raise InvalidLoanInputError(f"{field} must be numeric, got {value!r}")
    try:
        if isinstance(value, Decimal):
            result = value
        elif isinstance(value, str):
            result = Decimal(value.replace(",", "").strip())
        else:
            result = Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError) as exc:
        raise InvalidLoanInputError(f"{field} must be numeric, got {value!r}") from exc
    if not result.is_finite():
        raise InvalidLoanInputError(f"{field} must be a finite number, got {value!r}")
    return result


def optional_decimal(value: Optional[Number], field: str = "value") -> Optional[Decimal]:
    if value is None:
        return None
    return to_decimal(value, field)


def clamp_residual(balance: Decimal) -> Decimal:
    """Round sub-cent residuals and negative balances to zero.

    Repeated multiplication leaves tiny positive or negative remainders at
    the end of a schedule (e.g. ``1E-24``). Anything under half a cent is
    treated as paid off so it never shows up as a phantom balance.
    """
    if balance < HALF_CENT:
        return Decimal("0")
    return balance


def monthly_rate_from_apr(apr_percent: Number) -> Decimal:
    """Convert an annual percentage rate (e.g. ``12``) to a monthly fraction."""
    return to_decimal(apr_percent, "interest rate") / Decimal(100) / Decimal(12)


def normalize_rate(rate_percent: Number, frequency: str = "month") -> Decimal:
    """Convert a per-period percentage into a monthly decimal fraction.

    ``frequency`` is ``"month"`` or ``"week"``; weekly rates are scaled by
    the average number of weeks in a month.
    """
    rate = to_decimal(rate_percent, "interest rate") / Decimal(100)
    if frequency == "week":
        rate = rate * WEEKS_PER_MONTH
    elif frequency != "month":
        raise InvalidLoanInputError(f"Rate frequency must be 'month' or 'week'; got {frequency!r}")
    return rate


def normalize_periods(length: Union[int, str], unit: str = "months") -> int:
    """Convert a loan length in months or weeks into whole monthly periods.

    Weeks are rounded up, so a 10 week loan spans 3 monthly periods.
    """
    try:
        value = int(length)
    except (TypeError, ValueError) as exc:
        raise InvalidLoanInputError(f"Loan length must be an integer, got {length!r}") from exc
    if unit == "weeks":
        return math.ceil(Decimal(value) / WEEKS_PER_MONTH)
    if unit != "months":
        raise InvalidLoanInputError(f"Length unit must be 'months' or 'weeks'; got {unit!r}")
    return value


def format_money(value: Decimal) -> str:
    return f"${value:,.2f}"
