# src/zen_tasks/timer/timer_models.py

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from ..config import PomodoroSettings


class Phase(StrEnum):
    """Focus timer phase. Values are the persisted wire names."""

    WORK = "work"
    SHORT_BREAK = "shortBreak"
    LONG_BREAK = "longBreak"

    @classmethod
    def from_raw(cls, raw: Any) -> Phase | None:
        if not raw:
            return None
        try:
            return cls(str(raw))
        except ValueError:
            return None

    @property
    def is_break(self) -> bool:
        return self is not Phase.WORK

    def duration_minutes(self, settings: PomodoroSettings) -> int:
        if self is Phase.WORK:
            return settings.work_duration
        if self is Phase.SHORT_BREAK:
            return settings.short_break_duration
        return settings.long_break_duration

    def duration_ms(self, settings: PomodoroSettings) -> int:
        return self.duration_minutes(settings) * 60 * 1000


def next_phase(phase: Phase, sessions_completed: int, sessions_before_long_break: int) -> tuple[Phase, int]:
    """
    Phase transition rule.

    Returns (next_phase, sessions_completed_after).
    - work -> count + 1; longBreak on every Nth completed work phase, else shortBreak
    - any break -> work, count unchanged
    """
    if phase is Phase.WORK:
        done = sessions_completed + 1
        every = max(1, int(sessions_before_long_break))
        return (Phase.LONG_BREAK if done % every == 0 else Phase.SHORT_BREAK), done
    return Phase.WORK, sessions_completed


def ceil_seconds(ms: int | float) -> int:
    """Milliseconds -> whole seconds, rounded up, never negative."""
    if ms <= 0:
        return 0
    return int(math.ceil(ms / 1000))


@dataclass(slots=True, frozen=True)
class TimerSession:
    """
    The single running focus-timer record.

    end_time is an absolute epoch-milliseconds deadline, never a countdown;
    remaining time is always recomputed from it.
    """

    task_id: str
    phase: Phase
    end_time: int
    sessions_completed: int
    notification_handle: str | None = None
    task_text: str | None = None

    def remaining_ms(self, now_ms: int) -> int:
        return max(0, self.end_time - now_ms)

    def to_dict(self) -> dict[str, Any]:
        return {
            "taskId": self.task_id,
            "taskText": self.task_text or "",
            "timerState": self.phase.value,
            "endTime": int(self.end_time),
            "sessionsCompleted": int(self.sessions_completed),
            "isRunning": True,
            "notificationId": self.notification_handle,
        }

    @classmethod
    def from_dict(cls, data: Any) -> TimerSession | None:
        """Decode a persisted record; anything malformed decodes to None."""
        if not isinstance(data, dict):
            return None

        task_id = data.get("taskId")
        phase = Phase.from_raw(data.get("timerState"))
        end_time = data.get("endTime")
        if not task_id or phase is None or isinstance(end_time, bool):
            return None
        if not isinstance(end_time, (int, float)) or not math.isfinite(end_time):
            return None

        sessions = data.get("sessionsCompleted", 0)
        if isinstance(sessions, bool) or not isinstance(sessions, int) or sessions < 0:
            sessions = 0

        handle = data.get("notificationId")
        text = data.get("taskText")
        return cls(
            task_id=str(task_id),
            phase=phase,
            end_time=int(end_time),
            sessions_completed=sessions,
            notification_handle=str(handle) if handle else None,
            task_text=str(text) if text else None,
        )


@dataclass(slots=True, frozen=True)
class TimerSnapshot:
    """What a UI (or the CLI) reads: always derived, never stored."""

    task_id: str
    phase: Phase
    sessions_completed: int
    remaining_seconds: int
    is_running: bool
    end_time: int | None = None

    def remaining_formatted(self) -> str:
        minutes, seconds = divmod(self.remaining_seconds, 60)
        return f"{minutes:02d}:{seconds:02d}"
