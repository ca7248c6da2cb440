"""
Working-day calendar arithmetic.

Pure functions: weekends and closed dates never count as working days,
and the start date itself is never counted.
"""

from datetime import date, timedelta
from typing import AbstractSet, Iterator, List

from dateutil.relativedelta import relativedelta

SATURDAY = 5


def is_weekend(day: date) -> bool:
    return day.weekday() >= SATURDAY


def is_bookable(day: date, closed_dates: AbstractSet[date] = frozenset()) -> bool:
    return not is_weekend(day) and day not in closed_dates


def add_working_days(start: date, n: int, closed_dates: AbstractSet[date] = frozenset()) -> date:
    """
    Return the n-th working day strictly after ``start``.

    ``n <= 0`` returns ``start`` unchanged.
    """
    current = start
    counted = 0
    while counted < n:
        current += timedelta(days=1)
        if is_bookable(current, closed_dates):
            counted += 1
    return current


def earliest_bookable_date(
    course_end_date: date,
    today: date,
    min_working_days: int,
    closed_dates: AbstractSet[date] = frozenset(),
) -> date:
    """First legal exam date: ``min_working_days`` after the later of course end and today."""
    reference = max(course_end_date, today)
    return add_working_days(reference, min_working_days, closed_dates)


def search_horizon(min_date: date, months: int) -> date:
    """Last date of the search window, calendar months after ``min_date``."""
    return min_date + relativedelta(months=months)


def shift_hours(shift) -> List[int]:
    """Start hours an exam may begin at within ``shift``; the end hour is exclusive."""
    return list(range(shift.start_hour, shift.end_hour))


def iter_bookable_dates(start: date, end: date, closed_dates: AbstractSet[date] = frozenset()) -> Iterator[date]:
    """Every working day in [start, end]."""
    current = start
    while current <= end:
        if is_bookable(current, closed_dates):
            yield current
        current += timedelta(days=1)
