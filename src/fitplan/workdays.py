"""Business-day arithmetic with one non-working weekday."""

from __future__ import annotations

from datetime import date, timedelta

from fitplan.settings import get_settings

ONE_DAY = timedelta(days=1)


def _off_day(non_working_day: int | None) -> int:
    if non_working_day is None:
        return get_settings().non_working_day
    return non_working_day


def is_working_day(day: date, non_working_day: int | None = None) -> bool:
    return day.weekday() != _off_day(non_working_day)


def add_working_days(
    start: date,
    days: int,
    non_working_day: int | None = None,
) -> date:
    """Return the date on which the *days*-th working day after *start* falls.

    *start* itself is not counted. The non-working weekday is stepped over
    without consuming a day, so the result is never that weekday unless
    *days* is zero and *start* already is one.
    """
    off = _off_day(non_working_day)
    current = start
    if days <= 0:
        return current

    count = 0
    while count < days:
        current += ONE_DAY
        if current.weekday() != off:
            count += 1
    return current


def count_working_days(
    start: date,
    end: date,
    non_working_day: int | None = None,
) -> int:
    """Count working days in the inclusive range [start, end]."""
    if end < start:
        return 0
    off = _off_day(non_working_day)

    # Whole weeks hold exactly six working days; walk only the remainder.
    span = (end - start).days + 1
    weeks, rest = divmod(span, 7)
    total = weeks * 6
    current = start + timedelta(days=weeks * 7)
    for _ in range(rest):
        if current.weekday() != off:
            total += 1
        current += ONE_DAY
    return total


def next_working_day(day: date, non_working_day: int | None = None) -> date:
    """First working day strictly after *day*."""
    off = _off_day(non_working_day)
    current = day + ONE_DAY
    while current.weekday() == off:
        current += ONE_DAY
    return current
