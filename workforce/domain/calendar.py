"""Working-day arithmetic (Monday-Friday, no holiday calendar)."""

from __future__ import annotations

from datetime import date, timedelta


def is_working_day(day: date) -> bool:
    return day.weekday() < 5


def count_working_days(start: date, end: date) -> int:
    """Number of Monday-Friday days in ``[start, end]``."""
    if end < start:
        return 0
    return sum(
        1 for offset in range((end - start).days + 1) if is_working_day(start + timedelta(days=offset))
    )


def return_date_for(end: date) -> date:
    """First working day strictly after *end*."""
    day = end + timedelta(days=1)
    while not is_working_day(day):
        day += timedelta(days=1)
    return day


def ranges_overlap(a_start: date, a_end: date, b_start: date, b_end: date) -> bool:
    return a_start <= b_end and b_start <= a_end
