# src/zen_tasks/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- wires concrete implementations into AppState (store/notifications/tasks/timer).
"""

from __future__ import annotations

import logging

from ..config import get_settings
from ..core.clock import SystemClock
from ..core.ports import NotificationSink
from ..core.state import AppState
from ..notifications.local_scheduler import LocalNotificationScheduler
from ..storage.kv_store import SqliteKeyValueStore
from ..tasks.completion import TaskCompletionCoordinator
from ..tasks.task_store import TaskStore
from ..timer.session_store import SessionStore

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.store_db_path.parent.mkdir(parents=True, exist_ok=True)


def create_initial_state(sink: NotificationSink, *, settings=None) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings injectable makes the app easier to test and avoids hidden global config reads.
    If settings is None, falls back to get_settings().

    Must be called with a running event loop (the notification scheduler
    creates asyncio tasks).
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    clock = SystemClock()
    store = SqliteKeyValueStore(settings.store_db_path)
    notifier = LocalNotificationScheduler(sink, clock)
    session_store = SessionStore(store)
    task_store = TaskStore(store, clock)

    state = AppState(
        settings=settings,
        clock=clock,
        store=store,
        notifier=notifier,
        session_store=session_store,
        task_store=task_store,
        completion=TaskCompletionCoordinator(task_store, notifier, clock, session_store=session_store),
    )
    logger.info(
        "State ready db=%s resume_after_restart=%s premium=%s",
        settings.store_db_path,
        settings.resume_after_restart,
        settings.premium,
    )
    return state
