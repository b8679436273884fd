# src/zen_tasks/timer/timer_engine.py

from __future__ import annotations

"""
Focus timer engine.

A wall-clock anchored pomodoro state machine:
- work -> shortBreak/longBreak -> work -> ...
- a running phase is a persisted TimerSession with an absolute end_time,
- remaining time is recomputed from end_time on every read (no counters),
- one one-shot alert is scheduled per running phase, so the user is told when
  the phase ends even if this process is suspended or gone.

Store and notification calls are side channels: failures are logged and the
state machine carries on.
"""

import logging
from dataclasses import replace
from enum import Enum
from typing import Any

from ..config import DEFAULT_POMODORO_SETTINGS, PomodoroSettings
from ..core.ports import Clock, NotificationScheduler
from ..errors import FocusSlotBusyError
from .session_store import SessionStore
from .timer_models import Phase, TimerSession, TimerSnapshot, ceil_seconds, next_phase

logger = logging.getLogger(__name__)

NOTIFICATION_TITLE = "Pomodoro Timer"
NOTIFICATION_TYPE = "pomodoro"

PHASE_END_MESSAGES: dict[Phase, str] = {
    Phase.WORK: "Time for a break!",
    Phase.SHORT_BREAK: "Break's over! Ready for the next session?",
    Phase.LONG_BREAK: "Break's over! Ready for the next session?",
}


class ResumeOutcome(str, Enum):
    NOTHING = "nothing"  # no persisted session
    STALE = "stale"  # session belonged to another task; discarded
    DISCARDED = "discarded"  # cold start under the discard policy
    RESUMED = "resumed"  # still running; re-attached
    COMPLETED = "completed"  # ran out while away; one transition applied


class FocusTimerEngine:
    """
    Pomodoro engine for one focused task.

    The engine is either running (self._session is set and persisted) or idle
    (remaining time cached in memory only). Every operation that changes state
    bumps self._generation before its first await; start() re-checks it after
    each await so a pause/reset issued meanwhile is never undone.
    """

    def __init__(
        self,
        task_id: str,
        *,
        session_store: SessionStore,
        notifier: NotificationScheduler,
        clock: Clock,
        settings: PomodoroSettings | None = None,
        resume_after_restart: bool = True,
        task_text: str | None = None,
    ) -> None:
        if not task_id:
            raise ValueError("task_id is required")

        self.task_id = str(task_id)
        self.task_text = task_text
        self._slot = session_store
        self._notifier = notifier
        self._clock = clock
        self._settings = settings or DEFAULT_POMODORO_SETTINGS
        self._resume_after_restart = resume_after_restart

        self._phase = Phase.WORK
        self._sessions_completed = 0
        self._remaining_ms = self._phase.duration_ms(self._settings)
        # True until the current phase has been started once; durations are
        # (re)read from settings only while it is.
        self._phase_fresh = True
        self._session: TimerSession | None = None
        self._generation = 0

    # ---- read side ----

    @property
    def phase(self) -> Phase:
        return self._phase

    @property
    def sessions_completed(self) -> int:
        return self._sessions_completed

    @property
    def is_running(self) -> bool:
        return self._session is not None

    @property
    def session(self) -> TimerSession | None:
        return self._session

    @property
    def settings(self) -> PomodoroSettings:
        return self._settings

    def recompute_remaining(self) -> int:
        """Whole seconds left, derived from end_time while running."""
        if self._session is not None:
            return ceil_seconds(self._session.remaining_ms(self._clock.now_ms()))
        return ceil_seconds(self._remaining_ms)

    tick = recompute_remaining

    def snapshot(self) -> TimerSnapshot:
        return TimerSnapshot(
            task_id=self.task_id,
            phase=self._phase,
            sessions_completed=self._sessions_completed,
            remaining_seconds=self.recompute_remaining(),
            is_running=self._session is not None,
            end_time=self._session.end_time if self._session is not None else None,
        )

    # ---- commands ----

    async def start(self, settings: PomodoroSettings | None = None) -> TimerSnapshot:
        if self._session is not None:
            logger.warning("Timer already running task_id=%s", self.task_id)
            return self.snapshot()

        active = await self._slot.load()
        if active is not None and active.task_id != self.task_id:
            raise FocusSlotBusyError(active.task_id, self.task_id)
        if self._session is not None:
            return self.snapshot()

        if settings is not None:
            self._settings = settings
            if self._phase_fresh:
                self._remaining_ms = self._phase.duration_ms(settings)

        self._generation += 1
        token = self._generation

        session = TimerSession(
            task_id=self.task_id,
            phase=self._phase,
            end_time=self._clock.now_ms() + self._remaining_ms,
            sessions_completed=self._sessions_completed,
            task_text=self.task_text,
        )
        self._session = session
        self._phase_fresh = False
        logger.info(
            "Timer started task_id=%s phase=%s remaining_s=%s",
            self.task_id,
            session.phase.value,
            ceil_seconds(self._remaining_ms),
        )

        # A leftover record for this task may still hold an alert.
        if active is not None and active.notification_handle:
            await self._cancel_alert(active.notification_handle)

        await self._persist(session)
        if token != self._generation:
            logger.info("Timer start superseded before scheduling task_id=%s", self.task_id)
            await self._settle_superseded_write(session)
            return self.snapshot()

        handle = await self._schedule_alert(session)
        if handle is None:
            return self.snapshot()

        if token != self._generation:
            logger.info("Timer start superseded; dropping alert task_id=%s", self.task_id)
            await self._cancel_alert(handle)
            return self.snapshot()

        session = replace(session, notification_handle=handle)
        self._session = session
        await self._persist(session)
        if token != self._generation:
            logger.info("Timer start superseded while saving task_id=%s", self.task_id)
            await self._settle_superseded_write(session)
        return self.snapshot()

    async def pause(self) -> TimerSnapshot:
        session = self._session
        if session is None:
            logger.warning("pause() with no running timer task_id=%s", self.task_id)
            return self.snapshot()

        self._generation += 1
        self._remaining_ms = session.remaining_ms(self._clock.now_ms())
        self._session = None
        logger.info(
            "Timer paused task_id=%s phase=%s remaining_s=%s",
            self.task_id,
            self._phase.value,
            ceil_seconds(self._remaining_ms),
        )

        await self._cancel_alert(session.notification_handle)
        await self._discard_record()
        return self.snapshot()

    async def poll(self) -> bool:
        """Complete the running phase if its end time has passed."""
        if self._session is None or self.recompute_remaining() > 0:
            return False
        await self.complete_phase()
        return True

    async def complete_phase(self, settings: PomodoroSettings | None = None) -> TimerSnapshot:
        """
        Phase ran out: move to the next phase and wait for an explicit start().

        The alert is left alone: it is due now and is what tells the user.
        """
        return await self._transition(settings, cancel_alert=False)

    async def skip(self, settings: PomodoroSettings | None = None) -> TimerSnapshot:
        return await self._transition(settings, cancel_alert=True)

    async def reset(self, settings: PomodoroSettings | None = None) -> TimerSnapshot:
        session = self._session
        if settings is not None:
            self._settings = settings

        self._generation += 1
        self._session = None
        self._phase = Phase.WORK
        self._sessions_completed = 0
        self._remaining_ms = Phase.WORK.duration_ms(self._settings)
        self._phase_fresh = True
        logger.info("Timer reset task_id=%s", self.task_id)

        if session is not None:
            await self._cancel_alert(session.notification_handle)
            await self._discard_record()
        return self.snapshot()

    # ---- lifecycle ----

    async def resume(self, *, cold_start: bool = False) -> ResumeOutcome:
        """
        Re-attach to the persisted session after foregrounding or relaunch.

        cold_start=True means the process was started fresh; whether the session
        survives that is decided by resume_after_restart.
        """
        session = await self._slot.load()
        if session is None:
            return ResumeOutcome.NOTHING

        if session.task_id != self.task_id:
            logger.info(
                "Discarding stale timer session task_id=%s (focused=%s)",
                session.task_id,
                self.task_id,
            )
            await self._cancel_alert(session.notification_handle)
            await self._discard_record()
            return ResumeOutcome.STALE

        remaining_ms = session.end_time - self._clock.now_ms()

        if cold_start and not self._resume_after_restart:
            logger.info(
                "Cold start: discarding timer session task_id=%s remaining_ms=%s",
                self.task_id,
                remaining_ms,
            )
            # An alert for state we no longer show must not fire later; one that
            # already fired is left as the user's only signal.
            if remaining_ms > 0:
                await self._cancel_alert(session.notification_handle)
            await self._discard_record()
            return ResumeOutcome.DISCARDED

        self._generation += 1
        self._phase = session.phase
        self._sessions_completed = session.sessions_completed
        self._phase_fresh = False
        self._session = session
        if session.task_text and not self.task_text:
            self.task_text = session.task_text

        if remaining_ms > 0:
            logger.info(
                "Timer resumed task_id=%s phase=%s remaining_s=%s",
                self.task_id,
                session.phase.value,
                ceil_seconds(remaining_ms),
            )
            return ResumeOutcome.RESUMED

        logger.info("Timer ran out while away task_id=%s phase=%s", self.task_id, session.phase.value)
        await self.complete_phase()
        return ResumeOutcome.COMPLETED

    async def resume_from_notification(self, payload: Any) -> bool:
        """
        The app was opened from a fired pomodoro alert for this task.

        The alert payload carries the phase to present next; the persisted
        session (if any) is dropped without cancelling anything.
        """
        if not isinstance(payload, dict) or payload.get("type") != NOTIFICATION_TYPE:
            return False
        if str(payload.get("taskId") or "") != self.task_id:
            return False

        phase = Phase.from_raw(payload.get("nextTimerState"))
        if phase is None:
            logger.warning("Pomodoro alert payload without a valid nextTimerState: %r", payload)
            return False

        sessions = payload.get("sessionsCompleted")
        if isinstance(sessions, bool) or not isinstance(sessions, int) or sessions < 0:
            sessions = 0

        self._generation += 1
        self._session = None
        self._phase = phase
        self._sessions_completed = sessions
        self._remaining_ms = phase.duration_ms(self._settings)
        self._phase_fresh = True
        logger.info("Opened from alert task_id=%s next_phase=%s", self.task_id, phase.value)

        stored = await self._slot.load()
        if stored is not None and stored.task_id == self.task_id:
            await self._discard_record()
        return True

    # ---- internals ----

    async def _transition(self, settings: PomodoroSettings | None, *, cancel_alert: bool) -> TimerSnapshot:
        session = self._session
        if settings is not None:
            self._settings = settings

        self._generation += 1
        self._session = None
        previous = self._phase
        self._phase, self._sessions_completed = next_phase(
            previous,
            self._sessions_completed,
            self._settings.sessions_before_long_break,
        )
        self._remaining_ms = self._phase.duration_ms(self._settings)
        self._phase_fresh = True
        logger.info(
            "Timer phase %s -> %s task_id=%s sessions_completed=%s",
            previous.value,
            self._phase.value,
            self.task_id,
            self._sessions_completed,
        )

        if session is not None:
            if cancel_alert:
                await self._cancel_alert(session.notification_handle)
            await self._discard_record()
        return self.snapshot()

    async def _schedule_alert(self, session: TimerSession) -> str | None:
        upcoming, sessions_after = next_phase(
            session.phase,
            session.sessions_completed,
            self._settings.sessions_before_long_break,
        )
        data = {
            "type": NOTIFICATION_TYPE,
            "taskId": session.task_id,
            "nextTimerState": upcoming.value,
            "sessionsCompleted": sessions_after,
        }
        try:
            return await self._notifier.schedule(
                PHASE_END_MESSAGES[session.phase],
                session.end_time,
                title=NOTIFICATION_TITLE,
                data=data,
            )
        except Exception:
            logger.exception("Failed to schedule timer alert task_id=%s", session.task_id)
            return None

    async def _cancel_alert(self, handle: str | None) -> None:
        if not handle:
            return
        try:
            await self._notifier.cancel(handle)
        except Exception:
            logger.exception("Failed to cancel timer alert handle=%s", handle)

    async def _persist(self, session: TimerSession) -> None:
        try:
            await self._slot.save(session)
        except Exception:
            logger.exception("Failed to persist timer session task_id=%s", session.task_id)

    async def _discard_record(self) -> None:
        try:
            await self._slot.clear()
        except Exception:
            logger.exception("Failed to delete timer session task_id=%s", self.task_id)

    async def _settle_superseded_write(self, written: TimerSession) -> None:
        """
        A command ran while start() was writing `written`; the late write may
        have landed after that command cleared the slot.

        The stored record is brought back in line with the engine: removed if
        the engine is idle, rewritten if a newer start() owns the session.
        """
        generation = self._generation
        current = self._session
        if current is not None:
            await self._persist(current)
            return

        stored = await self._slot.load()
        if generation != self._generation or self._session is not None:
            return
        if stored is None or stored.task_id != self.task_id or stored.end_time != written.end_time:
            return

        logger.info("Removing timer record written after it was discarded task_id=%s", self.task_id)
        await self._cancel_alert(stored.notification_handle)
        await self._discard_record()


async def clear_active_session(
    session_store: SessionStore,
    notifier: NotificationScheduler,
    *,
    task_id: str | None = None,
    cancel_alert: bool = True,
) -> bool:
    """
    Tear down the persisted focus session without an engine instance.

    With task_id set, only a session owned by that task is removed.
    Returns True if a session was removed.
    """
    session = await session_store.load()
    if session is None:
        return False
    if task_id is not None and session.task_id != str(task_id):
        return False

    if cancel_alert and session.notification_handle:
        try:
            await notifier.cancel(session.notification_handle)
        except Exception:
            logger.exception("Failed to cancel timer alert handle=%s", session.notification_handle)

    try:
        await session_store.clear()
    except Exception:
        logger.exception("Failed to delete timer session task_id=%s", session.task_id)
        return False

    logger.info("Cleared focus session task_id=%s", session.task_id)
    return True
