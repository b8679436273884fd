# tests/test_completion.py

from __future__ import annotations

import json
from datetime import date, datetime

import pytest

from zen_tasks.errors import TaskStoreError
from zen_tasks.recurrence.recurrence_models import RecurrencePattern, RecurrenceType
from zen_tasks.tasks.task_models import Reminder, Subtask
from zen_tasks.tasks.task_store import TASKS_STORAGE_KEY
from zen_tasks.timer.session_store import TIMER_STORAGE_KEY
from zen_tasks.timer.timer_engine import FocusTimerEngine

DAILY = RecurrencePattern(RecurrenceType.DAILY)


def eod(y: int, m: int, d: int) -> datetime:
    return datetime(y, m, d, 23, 59, 59, 999000)


@pytest.mark.asyncio
async def test_one_off_task_is_archived_without_successor(task_store, completion, clock) -> None:
    task = await task_store.add_task(text="Call mom", due_date=datetime(2024, 3, 5))

    result = await completion.complete_task(task.id)

    assert result is not None
    assert result.next_task is None
    assert not result.produced_next
    assert not result.series_ended
    assert result.confirmation_text(task.text) == "Task completed!"

    tasks = await task_store.load_tasks()
    assert len(tasks) == 1
    assert tasks[0].completed
    assert tasks[0].archived_at == clock.now()


@pytest.mark.asyncio
async def test_recurring_task_produces_exactly_one_successor(task_store, completion, store, notifier) -> None:
    task = await task_store.add_task(
        text="Water plants",
        due_date=datetime(2024, 3, 5),
        recurrence=DAILY,
        subtasks=["kitchen", "balcony"],
    )
    await task_store.update_task(
        task.id,
        subtasks=[Subtask(id="s1", text="kitchen", completed=True), Subtask(id="s2", text="balcony")],
        reminders=[Reminder(id="r1", remind_at=datetime(2024, 3, 5, 9), notification_id="rem-1")],
        notification_id="legacy-1",
    )
    writes_before = store.set_calls.count(TASKS_STORAGE_KEY)

    result = await completion.complete_task(task.id)

    assert store.set_calls.count(TASKS_STORAGE_KEY) == writes_before + 1
    assert result is not None and result.produced_next
    assert result.confirmation_text(task.text) == 'Task completed! Next "Water plants" scheduled for Wed, Mar 6.'

    tasks = await task_store.load_tasks()
    assert len(tasks) == 2
    successor, original = tasks

    assert original.id == task.id
    assert original.archived_at is not None
    assert original.completed

    assert successor.id == result.next_task.id
    assert successor.id != task.id
    assert successor.archived_at is None
    assert not successor.completed
    assert successor.due_date == eod(2024, 3, 6)
    assert successor.recurrence == DAILY
    assert successor.is_recurring
    assert successor.parent_recurrence_id == task.id
    assert successor.recurrence_count == 1
    assert [(s.text, s.completed) for s in successor.subtasks] == [("kitchen", False), ("balcony", False)]
    assert successor.reminders == []
    assert successor.notification_id is None

    assert set(notifier.cancelled) == {"legacy-1", "rem-1"}


@pytest.mark.asyncio
async def test_series_keeps_its_root_id(task_store, completion) -> None:
    task = await task_store.add_task(text="Stretch", due_date=datetime(2024, 3, 5), recurrence=DAILY)

    first = await completion.complete_task(task.id)
    second = await completion.complete_task(first.next_task.id)

    assert second.next_task.parent_recurrence_id == task.id
    assert second.next_task.recurrence_count == 2
    assert second.next_task.due_date == eod(2024, 3, 7)
    assert len(await task_store.list_active()) == 1
    assert len(await task_store.list_archived()) == 2


@pytest.mark.asyncio
async def test_undated_recurring_task_anchors_on_now(task_store, completion) -> None:
    task = await task_store.add_task(text="Journal", recurrence=DAILY)
    result = await completion.complete_task(task.id)
    # clock starts at 2024-03-01 09:00
    assert result.next_task.due_date == eod(2024, 3, 2)


@pytest.mark.asyncio
async def test_series_past_end_date_ends(task_store, completion) -> None:
    pattern = RecurrencePattern(RecurrenceType.DAILY, end_date=date(2024, 3, 5))
    task = await task_store.add_task(text="Course", due_date=datetime(2024, 3, 5), recurrence=pattern)

    result = await completion.complete_task(task.id)

    assert result.next_task is None
    assert result.series_ended
    assert "last" in result.confirmation_text(task.text)
    assert len(await task_store.load_tasks()) == 1


@pytest.mark.asyncio
async def test_failed_write_changes_nothing(task_store, completion, store) -> None:
    task = await task_store.add_task(text="Water plants", due_date=datetime(2024, 3, 5), recurrence=DAILY)
    before = store.data[TASKS_STORAGE_KEY]
    store.fail_set = True

    with pytest.raises(TaskStoreError):
        await completion.complete_task(task.id)

    assert store.data[TASKS_STORAGE_KEY] == before
    store.fail_set = False
    tasks = await task_store.load_tasks()
    assert len(tasks) == 1
    assert not tasks[0].is_archived


@pytest.mark.asyncio
async def test_failed_write_keeps_alerts(task_store, completion, store, notifier) -> None:
    task = await task_store.add_task(text="Dentist")
    await task_store.update_task(task.id, notification_id="legacy-1")
    store.fail_set = True

    with pytest.raises(TaskStoreError):
        await completion.complete_task(task.id)

    assert notifier.cancelled == []


@pytest.mark.asyncio
async def test_failed_read_changes_nothing(task_store, completion, store, notifier) -> None:
    task = await task_store.add_task(text="Water plants", due_date=datetime(2024, 3, 5), recurrence=DAILY)
    await task_store.update_task(task.id, notification_id="legacy-1")
    before = store.data[TASKS_STORAGE_KEY]
    store.fail_get = True

    with pytest.raises(TaskStoreError):
        await completion.complete_task(task.id)

    assert store.data[TASKS_STORAGE_KEY] == before
    assert notifier.cancelled == []


@pytest.mark.asyncio
async def test_undecodable_record_survives_completion(task_store, completion, store) -> None:
    task = await task_store.add_task(text="Water plants", due_date=datetime(2024, 3, 5), recurrence=DAILY)
    records = json.loads(store.data[TASKS_STORAGE_KEY])
    records.append({"text": "record from a newer version"})
    store.data[TASKS_STORAGE_KEY] = json.dumps(records).encode()

    result = await completion.complete_task(task.id)

    assert result is not None and result.produced_next
    stored = json.loads(store.data[TASKS_STORAGE_KEY])
    assert len(stored) == 3
    assert stored[-1] == {"text": "record from a newer version"}
    assert [t.id for t in await task_store.load_tasks()] == [result.next_task.id, task.id]


@pytest.mark.asyncio
async def test_unknown_and_already_archived(task_store, completion, store) -> None:
    assert await completion.complete_task("nope") is None

    task = await task_store.add_task(text="x", recurrence=DAILY)
    await completion.complete_task(task.id)
    writes = len(store.set_calls)

    again = await completion.complete_task(task.id)
    assert again is not None
    assert again.next_task is None
    assert len(store.set_calls) == writes
    assert len(await task_store.load_tasks()) == 2


@pytest.mark.asyncio
async def test_completion_tears_down_focus_session_of_that_task(
    task_store, completion, store, notifier, session_store, clock
) -> None:
    task = await task_store.add_task(text="Deep work")
    engine = FocusTimerEngine(task.id, session_store=session_store, notifier=notifier, clock=clock)
    await engine.start()
    assert TIMER_STORAGE_KEY in store.data

    await completion.complete_task(task.id)

    assert TIMER_STORAGE_KEY not in store.data
    assert "n1" in notifier.cancelled


@pytest.mark.asyncio
async def test_completion_leaves_other_tasks_focus_session(
    task_store, completion, store, notifier, session_store, clock
) -> None:
    focused = await task_store.add_task(text="Deep work")
    other = await task_store.add_task(text="Email")
    engine = FocusTimerEngine(focused.id, session_store=session_store, notifier=notifier, clock=clock)
    await engine.start()

    await completion.complete_task(other.id)

    assert TIMER_STORAGE_KEY in store.data
    assert notifier.cancelled == []


@pytest.mark.asyncio
async def test_remove_task_cancels_alerts_and_session(task_store, completion, store, notifier, session_store, clock) -> None:
    task = await task_store.add_task(text="Scratch")
    await task_store.update_task(
        task.id,
        reminders=[Reminder(id="r1", remind_at=datetime(2024, 3, 5, 9), notification_id="rem-1")],
    )
    await FocusTimerEngine(task.id, session_store=session_store, notifier=notifier, clock=clock).start()

    removed = await completion.remove_task(task.id)

    assert removed is not None and removed.id == task.id
    assert await task_store.load_tasks() == []
    assert TIMER_STORAGE_KEY not in store.data
    assert set(notifier.cancelled) == {"rem-1", "n1"}
    assert await completion.remove_task(task.id) is None
