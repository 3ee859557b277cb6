from __future__ import annotations

import calendar
from datetime import date


MONTHS_IN_YEAR = 12


def grow(value: float, monthly_rate: float, months: int) -> float:
    if months <= 0:
        return value
    return value * (1 + monthly_rate) ** months


def add_months(dt: date, months: int) -> date:
    """Return a new date a number of months after ``dt``.

    The day of the month is clamped to the last valid day if needed (e.g.,
    adding one month to Jan 31 yields Feb 28 or 29). Negative offsets move
    backwards.
    """
    year = dt.year + (dt.month - 1 + months) // MONTHS_IN_YEAR
    month = (dt.month - 1 + months) % MONTHS_IN_YEAR + 1
    day = min(dt.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def months_between(start: date, end: date) -> int:
    """Calendar month difference, ignoring the day of the month."""
    return (end.year - start.year) * MONTHS_IN_YEAR + (end.month - start.month)


def annualized_roi(profit: float, investment: float, months: int) -> float:
    """Compound a total return over ``months`` into a yearly percentage.

    ((profit / investment + 1) ** (12 / months) - 1) * 100

    Returns 0 when there is nothing invested or no elapsed time, and -100
    when the position lost everything (the base is not positive).
    """
    if investment == 0 or months == 0:
        return 0.0
    base = profit / investment + 1
    if base <= 0:
        return -100.0
    return (base ** (MONTHS_IN_YEAR / months) - 1) * 100


def ratio(numerator: float, denominator: float, default: float = 0.0) -> float:
    if denominator == 0:
        return default
    return numerator / denominator
