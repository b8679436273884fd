# src/zen_tasks/tasks/completion.py

"""
Task completion.

Completing a task archives it; completing a recurring task also inserts the
next instance of the series. Both changes are written in one collection
write, so callers never observe an archived task whose successor is missing.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace

from ..core.ports import Clock, NotificationScheduler, TaskRepo
from ..recurrence.recurrence_models import is_recurrence_active
from ..recurrence.resolver import next_occurrence
from ..timer.session_store import SessionStore
from ..timer.timer_engine import clear_active_session
from .task_models import Subtask, Task

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class CompletionResult:
    """
    Outcome of completing one task. Informational only (confirmation UI).

    series_ended is True when a recurring task had no further occurrence.
    """

    task_id: str
    next_task: Task | None = None
    series_ended: bool = False

    @property
    def produced_next(self) -> bool:
        return self.next_task is not None

    def confirmation_text(self, task_text: str = "") -> str:
        label = f'"{task_text}"' if task_text else "task"
        if self.next_task is not None and self.next_task.due_date is not None:
            when = self.next_task.due_date.strftime("%a, %b %d").replace(" 0", " ")
            return f"Task completed! Next {label} scheduled for {when}."
        if self.series_ended:
            return f"Task completed! That was the last {label} in the series."
        return "Task completed!"


def build_next_instance(completed: Task, *, new_id: str, due_date, created_at) -> Task:
    """Fresh copy of a recurring task for its next occurrence."""
    return Task(
        id=new_id,
        text=completed.text,
        created_at=created_at,
        completed=False,
        list_id=completed.list_id,
        priority=completed.priority,
        due_date=due_date,
        recurrence=completed.recurrence,
        archived_at=None,
        subtasks=[Subtask(id=s.id, text=s.text, completed=False) for s in completed.subtasks],
        reminders=[],
        notification_id=None,
        is_recurring=True,
        parent_recurrence_id=completed.parent_recurrence_id or completed.id,
        recurrence_count=completed.recurrence_count + 1,
    )


class TaskCompletionCoordinator:
    """
    Archive-then-insert for task completion.

    Side channels (alert cancellation, focus session teardown) are best-effort;
    reading and writing the collection are not: if either fails,
    TaskStoreError propagates and nothing was changed.
    """

    def __init__(
        self,
        task_store: TaskRepo,
        notifier: NotificationScheduler,
        clock: Clock,
        *,
        session_store: SessionStore | None = None,
    ) -> None:
        self._tasks = task_store
        self._notifier = notifier
        self._clock = clock
        self._sessions = session_store

    async def complete_task(self, task_id: str) -> CompletionResult | None:
        collection = await self._tasks.load_for_update()
        tasks = collection.tasks
        index = next((i for i, t in enumerate(tasks) if t.id == task_id), None)
        if index is None:
            logger.warning("complete_task: unknown task_id=%s", task_id)
            return None

        task = tasks[index]
        if task.is_archived:
            logger.info("complete_task: task_id=%s already archived", task_id)
            return CompletionResult(task_id=task_id)

        now = self._clock.now()
        tasks[index] = replace(task, completed=True, archived_at=now)

        next_task: Task | None = None
        series_ended = False
        if is_recurrence_active(task.recurrence):
            anchor = task.due_date or now
            due = next_occurrence(task.recurrence, anchor)
            if due is None:
                series_ended = True
                logger.info("Recurrence ended task_id=%s anchor=%s", task_id, anchor)
            else:
                next_task = build_next_instance(
                    task,
                    new_id=self._tasks.new_id(),
                    due_date=due,
                    created_at=now,
                )
                tasks.insert(0, next_task)

        await self._tasks.save_collection(collection)
        await self._cancel_task_alerts(task)

        if next_task is not None:
            logger.info("Task completed id=%s next_id=%s due=%s", task_id, next_task.id, next_task.due_date)
        else:
            logger.info("Task completed id=%s (archived)", task_id)

        if self._sessions is not None:
            await clear_active_session(self._sessions, self._notifier, task_id=task_id)

        return CompletionResult(task_id=task_id, next_task=next_task, series_ended=series_ended)

    async def remove_task(self, task_id: str) -> Task | None:
        """Delete a task outright (no archive, no successor)."""
        removed = await self._tasks.remove_task(task_id)
        if removed is None:
            return None

        await self._cancel_task_alerts(removed)
        if self._sessions is not None:
            await clear_active_session(self._sessions, self._notifier, task_id=task_id)
        logger.info("Task removed id=%s", task_id)
        return removed

    async def _cancel_task_alerts(self, task: Task) -> None:
        for handle in task.notification_handles():
            try:
                await self._notifier.cancel(handle)
            except Exception:
                logger.exception("Failed to cancel alert handle=%s task_id=%s", handle, task.id)
