# src/zen_tasks/recurrence/recurrence_models.py

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime
from enum import StrEnum
from typing import Any

logger = logging.getLogger(__name__)


class RecurrenceType(StrEnum):
    ONCE = "once"
    DAILY = "daily"
    WEEKDAYS = "weekdays"
    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"
    CUSTOM = "custom"


class RecurrenceUnit(StrEnum):
    DAYS = "days"
    WEEKS = "weeks"
    MONTHS = "months"

    @classmethod
    def from_raw(cls, raw: Any) -> RecurrenceUnit:
        if not raw:
            return cls.DAYS
        value = str(raw).strip().lower()
        # accept singular spellings ("day", "week", "month")
        if not value.endswith("s"):
            value += "s"
        try:
            return cls(value)
        except ValueError:
            return cls.DAYS


# Weekday indices as stored on tasks: 0=Sunday .. 6=Saturday.
SUNDAY = 0
SATURDAY = 6
WEEKDAY_LABELS = ("Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday")


def clean_days_of_week(raw: Any) -> tuple[int, ...]:
    """Sorted, de-duplicated weekday indices; anything outside 0..6 is dropped."""
    if not raw:
        return ()
    out: set[int] = set()
    try:
        items = list(raw)
    except TypeError:
        return ()
    for item in items:
        if isinstance(item, bool):
            continue
        try:
            day = int(item)
        except (TypeError, ValueError):
            continue
        if SUNDAY <= day <= SATURDAY:
            out.add(day)
    return tuple(sorted(out))


def _clean_interval(raw: Any) -> int:
    if isinstance(raw, bool):
        return 1
    try:
        value = int(raw)
    except (TypeError, ValueError):
        return 1
    return value if value >= 1 else 1


def _parse_date(raw: Any) -> date | None:
    if raw is None or raw == "":
        return None
    if isinstance(raw, datetime):
        return raw.date()
    if isinstance(raw, date):
        return raw
    try:
        text = str(raw).strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        if len(text) == 10:
            return date.fromisoformat(text)
        return datetime.fromisoformat(text).date()
    except ValueError:
        logger.warning("Ignoring unparseable recurrence date %r", raw)
        return None


@dataclass(slots=True, frozen=True)
class RecurrencePattern:
    """
    How a task repeats.

    interval/unit/days_of_week only mean something for repeating types; a
    "once" pattern is always normalised to carry none of them.
    end_date is inclusive.
    """

    type: RecurrenceType
    interval: int = 1
    unit: RecurrenceUnit = RecurrenceUnit.DAYS
    days_of_week: tuple[int, ...] = ()
    start_date: date | None = None
    end_date: date | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "type", RecurrenceType(self.type))
        object.__setattr__(self, "unit", RecurrenceUnit.from_raw(self.unit))
        object.__setattr__(self, "interval", _clean_interval(self.interval))
        object.__setattr__(self, "days_of_week", clean_days_of_week(self.days_of_week))
        if self.type is RecurrenceType.ONCE:
            object.__setattr__(self, "interval", 1)
            object.__setattr__(self, "unit", RecurrenceUnit.DAYS)
            object.__setattr__(self, "days_of_week", ())

    @property
    def is_active(self) -> bool:
        return self.type is not RecurrenceType.ONCE

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"type": self.type.value}
        if self.is_active:
            out["interval"] = self.interval
            if self.type is RecurrenceType.CUSTOM:
                out["unit"] = self.unit.value
            if self.days_of_week:
                out["daysOfWeek"] = list(self.days_of_week)
        if self.start_date is not None:
            out["startDate"] = self.start_date.isoformat()
        if self.end_date is not None:
            out["endDate"] = self.end_date.isoformat()
        return out

    @classmethod
    def from_dict(cls, data: Any) -> RecurrencePattern | None:
        """
        Decode a stored pattern, migrating legacy shapes.

        - missing/empty -> None (no recurrence)
        - "none" -> once
        - unknown type -> None, logged
        """
        if not isinstance(data, dict):
            return None

        raw_type = str(data.get("type") or "").strip()
        if not raw_type:
            return None
        if raw_type == "none":
            raw_type = RecurrenceType.ONCE.value

        try:
            rtype = RecurrenceType(raw_type)
        except ValueError:
            logger.warning("Dropping recurrence with unknown type %r", raw_type)
            return None

        return cls(
            type=rtype,
            interval=data.get("interval", 1),
            unit=RecurrenceUnit.from_raw(data.get("unit")),
            days_of_week=data.get("daysOfWeek") or (),
            start_date=_parse_date(data.get("startDate")),
            end_date=_parse_date(data.get("endDate")),
        )


ONCE = RecurrencePattern(RecurrenceType.ONCE)


def is_recurrence_active(pattern: RecurrencePattern | None) -> bool:
    return pattern is not None and pattern.is_active
