# src/zen_tasks/recurrence/resolver.py

from __future__ import annotations

"""
Recurrence resolver.

next_occurrence(pattern, anchor) answers "when is the next instance due after
anchor?" or None when the series has ended. It never raises on a malformed
pattern: it falls back to the closest sensible rule instead.

All produced dates are end-of-day local time (23:59:59.999), the convention
used for every due date, so "due today" is a whole-day comparison.
"""

import calendar
import logging
from datetime import date, datetime, time, timedelta

from .recurrence_models import RecurrencePattern, RecurrenceType, RecurrenceUnit

logger = logging.getLogger(__name__)

END_OF_DAY = time(23, 59, 59, 999000)


def end_of_day(value: datetime | date) -> datetime:
    """Same calendar day at 23:59:59.999 (tzinfo preserved for datetimes)."""
    if isinstance(value, datetime):
        return value.replace(hour=23, minute=59, second=59, microsecond=999000)
    return datetime.combine(value, END_OF_DAY)


def js_weekday(value: date) -> int:
    """0=Sunday .. 6=Saturday (Python's weekday() is 0=Monday)."""
    return (value.weekday() + 1) % 7


def add_months(value: datetime, months: int) -> datetime:
    """Shift by whole months, clamping the day to the target month's length."""
    index = value.month - 1 + months
    year = value.year + index // 12
    month = index % 12 + 1
    last_day = calendar.monthrange(year, month)[1]
    return value.replace(year=year, month=month, day=min(value.day, last_day))


def add_years(value: datetime, years: int) -> datetime:
    """Shift by whole years; Feb 29 becomes Feb 28 in non-leap years."""
    year = value.year + years
    if value.month == 2 and value.day == 29 and not calendar.isleap(year):
        return value.replace(year=year, day=28)
    return value.replace(year=year)


def _next_weekday(anchor: datetime) -> datetime:
    nxt = anchor + timedelta(days=1)
    while js_weekday(nxt) in (0, 6):
        nxt += timedelta(days=1)
    return nxt


def _next_listed_day(anchor: datetime, days_of_week: tuple[int, ...], week_interval: int) -> datetime:
    """
    Smallest date strictly after anchor whose weekday is listed.

    When no listed day remains in the anchor's week, wrap to the first listed
    day of the following cycle, skipping (week_interval - 1) extra weeks.
    """
    current = js_weekday(anchor)
    for day in days_of_week:
        if day > current:
            return anchor + timedelta(days=day - current)

    to_next_cycle = (7 - current) + days_of_week[0]
    return anchor + timedelta(days=to_next_cycle + 7 * (week_interval - 1))


def _step(pattern: RecurrencePattern, anchor: datetime) -> datetime | None:
    interval = pattern.interval
    rtype = pattern.type

    if rtype is RecurrenceType.DAILY:
        return anchor + timedelta(days=interval)

    if rtype is RecurrenceType.WEEKDAYS:
        return _next_weekday(anchor)

    if rtype is RecurrenceType.WEEKLY:
        if pattern.days_of_week:
            return _next_listed_day(anchor, pattern.days_of_week, interval)
        return anchor + timedelta(days=7 * interval)

    if rtype is RecurrenceType.BIWEEKLY:
        return anchor + timedelta(days=14 * interval)

    if rtype is RecurrenceType.MONTHLY:
        return add_months(anchor, interval)

    if rtype is RecurrenceType.YEARLY:
        return add_years(anchor, interval)

    if rtype is RecurrenceType.CUSTOM:
        if pattern.unit is RecurrenceUnit.WEEKS:
            return anchor + timedelta(days=7 * interval)
        if pattern.unit is RecurrenceUnit.MONTHS:
            return add_months(anchor, interval)
        return anchor + timedelta(days=interval)

    return None


def next_occurrence(pattern: RecurrencePattern | None, anchor: datetime) -> datetime | None:
    """
    Next due date strictly after `anchor`, or None when there is none.

    None is returned for "once"/missing patterns and when the computed date
    falls after the (inclusive) end_date. start_date is not enforced here.
    """
    if pattern is None or not pattern.is_active:
        return None

    nxt = _step(pattern, anchor)
    if nxt is None:
        logger.warning("No recurrence rule for type=%s", pattern.type)
        return None

    nxt = end_of_day(nxt)

    if pattern.end_date is not None and nxt.date() > pattern.end_date:
        logger.debug("Recurrence ended: next=%s end_date=%s", nxt.date(), pattern.end_date)
        return None

    return nxt


def occurrences(pattern: RecurrencePattern, anchor: datetime, limit: int = 10) -> list[datetime]:
    """The next `limit` dates of the series (stops early when it ends)."""
    out: list[datetime] = []
    current = anchor
    for _ in range(max(0, int(limit))):
        nxt = next_occurrence(pattern, current)
        if nxt is None:
            break
        out.append(nxt)
        current = nxt
    return out
