# src/zen_tasks/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

The core depends on Protocols instead of concrete implementations.
This keeps storage/notification backends swappable and makes testing easier.
"""

from datetime import datetime
from typing import Any, Awaitable, Protocol

NotificationData = dict[str, Any]
# Deep-link payload attached to a scheduled alert, e.g. {"type": "pomodoro", "taskId": "..."}.


class Clock(Protocol):
    """Wall clock. Both engines read time only through this."""

    def now_ms(self) -> int: ...

    def now(self) -> datetime:
        """Local naive datetime for calendar arithmetic."""
        ...


class PersistentStore(Protocol):
    """
    Durable key/value storage of whole records.

    Writes replace the full value; there is no field-level update and no
    multi-key transaction.
    """

    def get(self, key: str) -> Awaitable[bytes | None]: ...
    def set(self, key: str, value: bytes) -> Awaitable[None]: ...
    def remove(self, key: str) -> Awaitable[None]: ...


class NotificationScheduler(Protocol):
    """
    One-shot local alerts.

    schedule() returns an opaque handle; cancel() on an unknown or already
    fired handle is a no-op.
    """

    def schedule(
            self,
            message: str,
            fire_at_ms: int,
            *,
            title: str | None = None,
            data: NotificationData | None = None,
    ) -> Awaitable[str]: ...

    def cancel(self, handle: str) -> Awaitable[None]: ...


class NotificationSink(Protocol):
    """Connector-side port: where fired alerts are shown (console, OS tray, ...)."""

    def deliver(
            self,
            *,
            title: str,
            message: str,
            data: NotificationData | None = None,
    ) -> Awaitable[None]: ...


class TaskRepo(Protocol):
    """Task collection API used by the completion coordinator."""

    def new_id(self) -> str: ...
    def load_tasks(self) -> Awaitable[list[Any]]: ...
    def load_for_update(self) -> Awaitable[Any]: ...
    def save_collection(self, collection: Any) -> Awaitable[None]: ...
    def get_task(self, task_id: str) -> Awaitable[Any | None]: ...
    def remove_task(self, task_id: str) -> Awaitable[Any | None]: ...
