# src/zen_tasks/tasks/task_store.py

from __future__ import annotations

import json
import logging
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any

from ..core.ports import Clock, PersistentStore
from ..errors import TaskStoreError
from ..recurrence.recurrence_models import RecurrencePattern
from ..recurrence.resolver import end_of_day
from .task_models import DEFAULT_LIST_ID, Priority, Subtask, Task

logger = logging.getLogger(__name__)

TASKS_STORAGE_KEY = "@zen_tasks_v2"


def new_task_id() -> str:
    return uuid.uuid4().hex


@dataclass(slots=True)
class TaskCollection:
    """
    The stored collection as read for an update.

    unreadable holds the raw records that did not decode; they are written
    back verbatim (after the decoded tasks) so a rewrite never drops them.
    """

    tasks: list[Task]
    unreadable: list[Any] = field(default_factory=list)


class TaskStore:
    """
    Task collection stored as one JSON array under one PersistentStore key.

    Every write replaces the whole collection, so a multi-record change
    (archive one task, insert its successor) is applied by a single set().

    load_tasks() is for display and is forgiving:
    - missing key -> empty collection
    - failed read or undecodable document -> empty collection (logged)
    - individual bad records are skipped

    load_for_update() is what every write starts from: a failed read or an
    undecodable document raises TaskStoreError instead of looking empty, and
    bad records are carried along in TaskCollection.unreadable.
    """

    def __init__(
        self,
        store: PersistentStore,
        clock: Clock,
        *,
        key: str = TASKS_STORAGE_KEY,
        id_factory: Callable[[], str] = new_task_id,
    ) -> None:
        self._store = store
        self._clock = clock
        self._key = key
        self._id_factory = id_factory

    # ---- codec ----

    @staticmethod
    def _decode(raw: bytes | None, *, strict: bool = False) -> TaskCollection:
        if not raw:
            return TaskCollection(tasks=[])
        try:
            data = json.loads(raw.decode("utf-8"))
        except Exception as e:
            if strict:
                raise TaskStoreError("task collection is not valid JSON") from e
            logger.warning("Task collection is not valid JSON; treating it as empty.")
            return TaskCollection(tasks=[])
        if not isinstance(data, list):
            if strict:
                raise TaskStoreError("task collection is not a list")
            logger.warning("Task collection is not a list; treating it as empty.")
            return TaskCollection(tasks=[])

        collection = TaskCollection(tasks=[])
        for item in data:
            task: Task | None = None
            if isinstance(item, dict):
                try:
                    task = Task.from_dict(item)
                except Exception:
                    logger.exception("Skipping undecodable task record id=%s", item.get("id"))
            if task is None:
                collection.unreadable.append(item)
            else:
                collection.tasks.append(task)
        return collection

    @staticmethod
    def _encode(tasks: list[Task], unreadable: list[Any] | None = None) -> bytes:
        records: list[Any] = [t.to_dict() for t in tasks]
        records.extend(unreadable or [])
        return json.dumps(records, ensure_ascii=False).encode("utf-8")

    # ---- public API ----

    def new_id(self) -> str:
        return self._id_factory()

    async def load_tasks(self) -> list[Task]:
        try:
            raw = await self._store.get(self._key)
        except Exception:
            logger.exception("Failed to read task collection key=%s", self._key)
            return []
        return self._decode(raw).tasks

    async def load_for_update(self) -> TaskCollection:
        """Read the collection before rewriting it; raises TaskStoreError rather than guess."""
        try:
            raw = await self._store.get(self._key)
        except Exception as e:
            logger.exception("Failed to read task collection for update key=%s", self._key)
            raise TaskStoreError("task collection read failed") from e
        return self._decode(raw, strict=True)

    async def save_tasks(self, tasks: list[Task], *, unreadable: list[Any] | None = None) -> None:
        """Replace the whole collection; raises TaskStoreError if the write fails."""
        payload = self._encode(tasks, unreadable)
        try:
            await self._store.set(self._key, payload)
        except Exception as e:
            logger.exception("Failed to write task collection (%d tasks)", len(tasks))
            raise TaskStoreError("task collection write failed") from e
        logger.debug("Task collection saved: %d tasks", len(tasks))

    async def save_collection(self, collection: TaskCollection) -> None:
        await self.save_tasks(collection.tasks, unreadable=collection.unreadable)

    async def get_task(self, task_id: str) -> Task | None:
        for task in await self.load_tasks():
            if task.id == task_id:
                return task
        return None

    async def list_active(self, list_id: str | None = None) -> list[Task]:
        """
        Not-archived tasks, soonest due first; undated tasks last, newest first.
        """
        active = [
            t
            for t in await self.load_tasks()
            if not t.is_archived and (list_id is None or t.list_id == list_id)
        ]
        dated = sorted((t for t in active if t.due_date is not None), key=lambda t: t.due_date)
        undated = sorted(
            (t for t in active if t.due_date is None),
            key=lambda t: t.created_at or datetime.min,
            reverse=True,
        )
        return dated + undated

    async def list_archived(self) -> list[Task]:
        tasks = [t for t in await self.load_tasks() if t.is_archived]
        return sorted(tasks, key=lambda t: t.archived_at or datetime.min, reverse=True)

    async def add_task(
        self,
        *,
        text: str,
        due_date: datetime | None = None,
        recurrence: RecurrencePattern | None = None,
        list_id: str = DEFAULT_LIST_ID,
        priority: Priority = Priority.NONE,
        subtasks: list[str] | None = None,
    ) -> Task:
        if not text or not text.strip():
            raise ValueError("text is required")

        task_id = self.new_id()
        task = Task(
            id=task_id,
            text=text.strip(),
            created_at=self._clock.now(),
            list_id=list_id or DEFAULT_LIST_ID,
            priority=priority,
            due_date=end_of_day(due_date) if due_date is not None else None,
            recurrence=recurrence,
            is_recurring=recurrence is not None and recurrence.is_active,
            subtasks=[
                Subtask(id=f"{task_id}-{i}", text=s.strip())
                for i, s in enumerate(subtasks or [])
                if s and s.strip()
            ],
        )

        collection = await self.load_for_update()
        collection.tasks.insert(0, task)
        await self.save_collection(collection)
        logger.info("Task added id=%s due=%s recurring=%s", task.id, task.due_date, task.is_recurring)
        return task

    async def update_task(self, task_id: str, **changes: Any) -> Task | None:
        """Apply dataclass field changes to one task; returns the updated task."""
        collection = await self.load_for_update()
        for i, task in enumerate(collection.tasks):
            if task.id == task_id:
                updated = replace(task, **changes)
                collection.tasks[i] = updated
                await self.save_collection(collection)
                return updated
        return None

    async def remove_task(self, task_id: str) -> Task | None:
        collection = await self.load_for_update()
        removed = next((t for t in collection.tasks if t.id == task_id), None)
        if removed is None:
            return None
        collection.tasks = [t for t in collection.tasks if t.id != task_id]
        await self.save_collection(collection)
        return removed
