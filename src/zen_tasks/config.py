# src/zen_tasks/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app (normal "settings layer").
- Pomodoro durations are a separate value object so they can be injected per call.
- Nothing here is required at import time; every field has a default.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from pathlib import Path

ENV_PREFIX = "ZEN"


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _load_dotenv_if_available() -> None:
    """Load .env locally if python-dotenv is installed. Safe no-op otherwise."""
    try:
        from dotenv import load_dotenv  # type: ignore
    except Exception:
        return
    load_dotenv(override=False)


_load_dotenv_if_available()


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


# (min, max) in minutes / sessions, inclusive.
POMODORO_LIMITS: dict[str, tuple[int, int]] = {
    "work_duration": (1, 90),
    "short_break_duration": (1, 30),
    "long_break_duration": (1, 60),
    "sessions_before_long_break": (1, 10),
}


@dataclass(frozen=True, slots=True)
class PomodoroSettings:
    """
    Durations are minutes; sessions_before_long_break is a count.

    The timer engine never reads these from a global: callers pass the current
    value into start()/complete_phase()/skip()/reset().
    """

    work_duration: int = 25
    short_break_duration: int = 5
    long_break_duration: int = 15
    sessions_before_long_break: int = 4

    def __post_init__(self) -> None:
        for name, (lo, hi) in POMODORO_LIMITS.items():
            value = getattr(self, name)
            if not isinstance(value, int) or isinstance(value, bool):
                raise ValueError(f"{name} must be an integer, got {value!r}")
            if not lo <= value <= hi:
                raise ValueError(f"{name} must be within {lo}..{hi}, got {value}")

    def clamped(self, **changes: int) -> PomodoroSettings:
        """Return a copy with `changes` applied and clamped into the allowed range."""
        fixed: dict[str, int] = {}
        for name, value in changes.items():
            lo, hi = POMODORO_LIMITS[name]
            fixed[name] = max(lo, min(hi, int(value)))
        return replace(self, **fixed)


DEFAULT_POMODORO_SETTINGS = PomodoroSettings()


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str

    # ---- Local data paths (ignored by git) ----
    data_dir: Path
    store_db_path: Path

    # ---- Focus timer ----
    # Whether a persisted focus session is resumed after the process was killed.
    resume_after_restart: bool
    timer_poll_seconds: float
    pomodoro: PomodoroSettings

    # ---- Subscription tier (feature gates) ----
    premium: bool

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "zen-tasks") or "zen-tasks"
        log_level = _env(_k("LOG_LEVEL"), "INFO")

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/zen"))
        store_db_path = _env_path(_k("STORE_DB_PATH"), data_dir / "store.sqlite3")

        resume_after_restart = _env_bool(_k("RESUME_AFTER_RESTART"), True)
        timer_poll_seconds = _env_float(_k("TIMER_POLL_SECONDS"), 1.0)

        defaults = DEFAULT_POMODORO_SETTINGS
        pomodoro = defaults.clamped(
            work_duration=_env_int(_k("WORK_MINUTES"), defaults.work_duration),
            short_break_duration=_env_int(_k("SHORT_BREAK_MINUTES"), defaults.short_break_duration),
            long_break_duration=_env_int(_k("LONG_BREAK_MINUTES"), defaults.long_break_duration),
            sessions_before_long_break=_env_int(
                _k("SESSIONS_BEFORE_LONG_BREAK"), defaults.sessions_before_long_break
            ),
        )

        premium = _env_bool(_k("PREMIUM"), False)

        return Settings(
            app_name=app_name,
            log_level=log_level,
            data_dir=data_dir,
            store_db_path=store_db_path,
            resume_after_restart=resume_after_restart,
            timer_poll_seconds=timer_poll_seconds,
            pomodoro=pomodoro,
            premium=premium,
        )


SETTINGS = Settings.from_env()


def get_settings() -> Settings:
    return SETTINGS
