"""
Calendar Arithmetic Module

Date-boundary helpers shared by the loan and investor engines. Every value is
a calendar date; time-of-day never takes part in a comparison.

Month stepping clamps to the last day of the target month (Jan 31 + 1 month
is Feb 28, or Feb 29 in a leap year) and is always computed from the anchor
date, so a loan started on the 31st falls due on the 31st again whenever the
month has one.
"""

import calendar
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Union


DateLike = Union[date, datetime, str]


class PeriodUnit(Enum):
    """Recurring period for InterestRate plans"""
    DAYS = "Days"
    WEEKS = "Weeks"
    MONTHS = "Months"


def to_date(value: DateLike) -> date:
    """
    Normalize a date-like value to a calendar date.

    Accepts a date, a datetime (time-of-day dropped) or an ISO-8601 string,
    either a bare date or a full timestamp with an optional ``Z`` suffix.
    Timestamps with an offset land on the local calendar date. Malformed
    input raises ValueError rather than falling back to an epoch.
    """
    if isinstance(value, datetime):
        return _local_date(value)
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        if not text:
            raise ValueError("Empty date string")
        if text.endswith("Z") or text.endswith("z"):
            text = text[:-1] + "+00:00"
        try:
            if len(text) == 10:
                return date.fromisoformat(text)
            moment = datetime.fromisoformat(text)
        except ValueError:
            raise ValueError(f"Invalid date: {value!r}") from None
        return _local_date(moment)
    raise ValueError(f"Unsupported date value: {value!r}")


def _local_date(moment: datetime) -> date:
    # Naive datetimes are already local
    if moment.tzinfo is not None:
        moment = moment.astimezone()
    return moment.date()


def add_months(start_date: date, months: int) -> date:
    """Add months to a date, clamping to the end of shorter months"""
    month = start_date.month - 1 + months
    year = start_date.year + month // 12
    month = month % 12 + 1
    day = min(start_date.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def add_period(start_date: date, unit: PeriodUnit, count: int = 1) -> date:
    """Step a date forward by ``count`` periods of ``unit``"""
    if unit == PeriodUnit.DAYS:
        return start_date + timedelta(days=count)
    elif unit == PeriodUnit.WEEKS:
        return start_date + timedelta(days=7 * count)
    elif unit == PeriodUnit.MONTHS:
        return add_months(start_date, count)
    else:
        raise ValueError(f"Unsupported period unit: {unit}")


def month_difference(later: date, earlier: date) -> int:
    """Calendar month difference; day-of-month is ignored"""
    return (later.year - earlier.year) * 12 + (later.month - earlier.month)


def completed_months(start_date: date, as_of: date) -> int:
    """
    Whole months completed since ``start_date``.

    A month is not complete until the start day-of-month recurs, so
    2024-01-15 -> 2024-04-14 is two months and 2024-04-15 is three.
    """
    months = month_difference(as_of, start_date)
    if as_of.day < start_date.day:
        months -= 1
    return max(0, months)


def periods_elapsed(start_date: date, as_of: date, unit: PeriodUnit) -> int:
    """Number of period boundaries after ``start_date`` on or before ``as_of``"""
    if as_of <= start_date:
        return 0

    if unit == PeriodUnit.DAYS:
        return (as_of - start_date).days
    elif unit == PeriodUnit.WEEKS:
        return (as_of - start_date).days // 7
    elif unit == PeriodUnit.MONTHS:
        months = month_difference(as_of, start_date)
        if add_months(start_date, months) > as_of:
            months -= 1
        return max(0, months)
    else:
        raise ValueError(f"Unsupported period unit: {unit}")


def is_period_boundary(start_date: date, target: date, unit: PeriodUnit) -> bool:
    """True iff ``target`` is ``start_date`` stepped by a whole number (>= 1) of periods"""
    count = periods_elapsed(start_date, target, unit)
    return count >= 1 and add_period(start_date, unit, count) == target
