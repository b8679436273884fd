# src/zen_tasks/recurrence/labels.py

from __future__ import annotations

from .recurrence_models import WEEKDAY_LABELS, RecurrencePattern, RecurrenceType, RecurrenceUnit

# Two-letter forms keep Sunday/Saturday and Tuesday/Thursday apart.
_SHORT_DAY = ("Su", "M", "Tu", "W", "Th", "F", "Sa")


def _plural(n: int, word: str) -> str:
    return f"{n} {word}" if n == 1 else f"{n} {word}s"


def format_days_of_week(days: tuple[int, ...]) -> str:
    if not days:
        return ""
    names = [WEEKDAY_LABELS[d][:3] for d in sorted(days)]
    if len(names) == 7:
        return "Every day"
    if len(names) == 1:
        return names[0]
    if len(names) == 2:
        return " & ".join(names)
    return ", ".join(names[:-1]) + " & " + names[-1]


def format_recurrence_pattern(pattern: RecurrencePattern | None) -> str:
    """Long human label, e.g. "Every 2 weeks on Mon, Wed & Fri"."""
    if pattern is None or pattern.type is RecurrenceType.ONCE:
        return "Does not repeat"

    n = pattern.interval
    rtype = pattern.type

    if rtype is RecurrenceType.DAILY:
        return "Every day" if n == 1 else f"Every {n} days"
    if rtype is RecurrenceType.WEEKDAYS:
        return "Every weekday"
    if rtype is RecurrenceType.WEEKLY:
        if pattern.days_of_week:
            days = format_days_of_week(pattern.days_of_week)
            return f"Weekly on {days}" if n == 1 else f"Every {n} weeks on {days}"
        return "Every week" if n == 1 else f"Every {n} weeks"
    if rtype is RecurrenceType.BIWEEKLY:
        return "Every 2 weeks" if n == 1 else f"Every {2 * n} weeks"
    if rtype is RecurrenceType.MONTHLY:
        return "Every month" if n == 1 else f"Every {n} months"
    if rtype is RecurrenceType.YEARLY:
        return "Every year" if n == 1 else f"Every {n} years"

    unit = {
        RecurrenceUnit.DAYS: "day",
        RecurrenceUnit.WEEKS: "week",
        RecurrenceUnit.MONTHS: "month",
    }[pattern.unit]
    return f"Every {_plural(n, unit)}" if n != 1 else f"Every {unit}"


def recurrence_short_label(pattern: RecurrencePattern | None) -> str:
    """Badge label, e.g. "DAILY", "3D", "MWF", "2W MWF"."""
    if pattern is None or pattern.type is RecurrenceType.ONCE:
        return "ONCE"

    n = pattern.interval
    rtype = pattern.type

    if rtype is RecurrenceType.DAILY:
        return "DAILY" if n == 1 else f"{n}D"
    if rtype is RecurrenceType.WEEKDAYS:
        return "WKDAYS"
    if rtype is RecurrenceType.WEEKLY:
        if pattern.days_of_week and len(pattern.days_of_week) < 7:
            days = "".join(_SHORT_DAY[d] for d in pattern.days_of_week)
            return days if n == 1 else f"{n}W {days}"
        return "WEEKLY" if n == 1 else f"{n}W"
    if rtype is RecurrenceType.BIWEEKLY:
        return "BIWEEKLY" if n == 1 else f"{2 * n}W"
    if rtype is RecurrenceType.MONTHLY:
        return "MONTHLY" if n == 1 else f"{n}MO"
    if rtype is RecurrenceType.YEARLY:
        return "YEARLY" if n == 1 else f"{n}Y"

    suffix = {RecurrenceUnit.DAYS: "D", RecurrenceUnit.WEEKS: "W", RecurrenceUnit.MONTHS: "MO"}[pattern.unit]
    return f"{n}{suffix}"
