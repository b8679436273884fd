# src/zen_tasks/tasks/task_models.py

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import Any

from ..recurrence.recurrence_models import RecurrencePattern

logger = logging.getLogger(__name__)

DEFAULT_LIST_ID = "default"


class Priority(StrEnum):
    NONE = "none"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @classmethod
    def from_db(cls, raw: str | None) -> Priority:
        if not raw:
            return cls.NONE
        try:
            return cls(raw)
        except Exception:
            return cls.NONE


def parse_ts(raw: Any) -> datetime | None:
    """ISO-8601 string (or datetime) -> datetime; unparseable -> None."""
    if raw is None or raw == "":
        return None
    if isinstance(raw, datetime):
        return raw
    try:
        text = str(raw).strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        parsed = datetime.fromisoformat(text)
    except ValueError:
        logger.warning("Ignoring unparseable timestamp %r", raw)
        return None
    # Aware timestamps (from older exports) are converted to local naive time.
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone().replace(tzinfo=None)
    return parsed


def format_ts(value: datetime | None) -> str | None:
    return value.isoformat(timespec="milliseconds") if value is not None else None


@dataclass(slots=True)
class Subtask:
    id: str
    text: str
    completed: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "text": self.text, "completed": self.completed}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Subtask:
        return cls(
            id=str(data.get("id") or ""),
            text=str(data.get("text") or ""),
            completed=bool(data.get("completed", False)),
        )


@dataclass(slots=True)
class Reminder:
    id: str
    remind_at: datetime
    notification_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "date": format_ts(self.remind_at),
            "notificationId": self.notification_id,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Reminder | None:
        remind_at = parse_ts(data.get("date"))
        if remind_at is None:
            return None
        nid = data.get("notificationId")
        return cls(id=str(data.get("id") or ""), remind_at=remind_at, notification_id=str(nid) if nid else None)


@dataclass(slots=True)
class Task:
    id: str
    text: str
    created_at: datetime | None = None

    completed: bool = False
    list_id: str = DEFAULT_LIST_ID
    priority: Priority = Priority.NONE

    due_date: datetime | None = None
    recurrence: RecurrencePattern | None = None
    archived_at: datetime | None = None

    subtasks: list[Subtask] = field(default_factory=list)
    reminders: list[Reminder] = field(default_factory=list)

    # Legacy single-reminder notification (pre multi-reminder records).
    notification_id: str | None = None

    is_recurring: bool = False
    parent_recurrence_id: str | None = None
    recurrence_count: int = 0

    @property
    def is_archived(self) -> bool:
        return self.archived_at is not None

    def notification_handles(self) -> list[str]:
        """Every scheduled alert attached to this task (legacy + reminders)."""
        handles: list[str] = []
        if self.notification_id:
            handles.append(self.notification_id)
        for reminder in self.reminders:
            if reminder.notification_id and reminder.notification_id not in handles:
                handles.append(reminder.notification_id)
        return handles

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "id": self.id,
            "text": self.text,
            "completed": self.completed,
            "listId": self.list_id,
            "priority": self.priority.value,
            "createdAt": format_ts(self.created_at),
            "dueDate": format_ts(self.due_date),
            "archivedAt": format_ts(self.archived_at),
            "subtasks": [s.to_dict() for s in self.subtasks],
            "reminders": [r.to_dict() for r in self.reminders],
            "notificationId": self.notification_id,
            "isRecurring": self.is_recurring,
            "parentRecurrenceId": self.parent_recurrence_id,
            "recurrenceCount": self.recurrence_count,
        }
        if self.recurrence is not None:
            out["recurrence"] = self.recurrence.to_dict()
        return out

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Task | None:
        """Decode one stored record; records without an id are skipped."""
        task_id = data.get("id")
        if not task_id:
            return None

        subtasks = [Subtask.from_dict(s) for s in data.get("subtasks") or [] if isinstance(s, dict)]

        reminders: list[Reminder] = []
        for item in data.get("reminders") or []:
            if isinstance(item, dict):
                reminder = Reminder.from_dict(item)
                if reminder is not None:
                    reminders.append(reminder)

        # Legacy single reminder -> reminders list (the handle stays on the task too).
        legacy_nid = data.get("notificationId")
        legacy_date = parse_ts(data.get("reminderDate"))
        if legacy_date is not None and not reminders:
            reminders.append(
                Reminder(
                    id=f"{task_id}-legacy",
                    remind_at=legacy_date,
                    notification_id=str(legacy_nid) if legacy_nid else None,
                )
            )

        count = data.get("recurrenceCount", 0)
        recurrence = RecurrencePattern.from_dict(data.get("recurrence"))

        return cls(
            id=str(task_id),
            text=str(data.get("text") or ""),
            created_at=parse_ts(data.get("createdAt")),
            completed=bool(data.get("completed", False)),
            list_id=str(data.get("listId") or DEFAULT_LIST_ID),
            priority=Priority.from_db(data.get("priority")),
            due_date=parse_ts(data.get("dueDate")),
            recurrence=recurrence,
            archived_at=parse_ts(data.get("archivedAt")),
            subtasks=subtasks,
            reminders=reminders,
            notification_id=str(legacy_nid) if legacy_nid else None,
            is_recurring=bool(data.get("isRecurring", recurrence is not None and recurrence.is_active)),
            parent_recurrence_id=data.get("parentRecurrenceId") or None,
            recurrence_count=count if isinstance(count, int) and not isinstance(count, bool) else 0,
        )
