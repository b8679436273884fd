# src/zen_tasks/errors.py

from __future__ import annotations


class ZenTasksError(Exception):
    """Base class for errors raised by zen_tasks."""


class FocusSlotBusyError(ZenTasksError):
    """start() was called while the single focus slot holds another task's session."""

    def __init__(self, active_task_id: str, requested_task_id: str) -> None:
        super().__init__(
            f"focus slot is busy with task {active_task_id!r}; "
            f"cannot start a session for {requested_task_id!r}"
        )
        self.active_task_id = active_task_id
        self.requested_task_id = requested_task_id


class TaskStoreError(ZenTasksError):
    """The task collection could not be written; nothing was changed."""
