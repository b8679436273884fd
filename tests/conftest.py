# tests/conftest.py

from __future__ import annotations

import itertools
from pathlib import Path
from types import SimpleNamespace

import pytest

from zen_tasks.config import DEFAULT_POMODORO_SETTINGS
from zen_tasks.core.state import AppState
from zen_tasks.tasks.completion import TaskCompletionCoordinator
from zen_tasks.tasks.task_store import TaskStore
from zen_tasks.timer.session_store import SessionStore

from .fakes import FakeClock, FakeNotificationScheduler, InMemoryStore


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with AppState and the CLI.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated from the environment.
    """
    return SimpleNamespace(
        app_name="zen-test",
        log_level="DEBUG",
        data_dir=tmp_path,
        store_db_path=tmp_path / "store.sqlite3",
        resume_after_restart=True,
        timer_poll_seconds=0.05,
        pomodoro=DEFAULT_POMODORO_SETTINGS,
        premium=False,
    )


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture()
def notifier() -> FakeNotificationScheduler:
    return FakeNotificationScheduler()


@pytest.fixture()
def session_store(store: InMemoryStore) -> SessionStore:
    return SessionStore(store)


@pytest.fixture()
def task_store(store: InMemoryStore, clock: FakeClock) -> TaskStore:
    ids = itertools.count(1)
    return TaskStore(store, clock, id_factory=lambda: f"t{next(ids)}")


@pytest.fixture()
def completion(task_store, notifier, clock, session_store) -> TaskCompletionCoordinator:
    return TaskCompletionCoordinator(task_store, notifier, clock, session_store=session_store)


@pytest.fixture()
def state(settings, clock, store, notifier, session_store, task_store, completion) -> AppState:
    """AppState wired with in-memory fakes (no SQLite, no real alerts)."""
    return AppState(
        settings=settings,
        clock=clock,
        store=store,
        notifier=notifier,
        session_store=session_store,
        task_store=task_store,
        completion=completion,
    )
