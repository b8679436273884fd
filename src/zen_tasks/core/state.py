# src/zen_tasks/core/state.py

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any

from ..tasks.completion import TaskCompletionCoordinator
from ..tasks.task_store import TaskStore
from ..timer.session_store import SessionStore
from ..timer.timer_engine import FocusTimerEngine
from .ports import Clock, NotificationScheduler, PersistentStore


@dataclass
class AppState:
    # Settings object (config.Settings or a test double with the same fields).
    settings: Any

    clock: Clock
    store: PersistentStore
    notifier: NotificationScheduler
    session_store: SessionStore
    task_store: TaskStore
    completion: TaskCompletionCoordinator

    # The focused task's engine and its polling loop (set by /focus).
    focus: FocusTimerEngine | None = None
    timer_task: asyncio.Task[None] | None = None
