# src/zen_tasks/timer/timer_loop.py

from __future__ import annotations

"""
Foreground timer loop.

A small polling loop that:
- recomputes remaining time from the session end_time (never decrements),
- completes the phase once it reaches zero,
- reports each transition to an optional callback.

Polling cadence only affects how soon expiry is noticed, never the displayed value.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable

from .timer_engine import FocusTimerEngine
from .timer_models import TimerSnapshot

logger = logging.getLogger(__name__)

PhaseCompleteCallback = Callable[[TimerSnapshot], Awaitable[None]]


async def run_timer_loop(
        engine: FocusTimerEngine,
        *,
        interval_seconds: float = 1.0,
        on_phase_complete: PhaseCompleteCallback | None = None,
) -> None:
    """
    Poll `engine` every interval_seconds until cancelled.

    To stop the loop, cancel the coroutine/task.
    """
    sleep_s = max(0.05, float(interval_seconds))

    while True:
        try:
            transitioned = await engine.poll()
        except Exception:
            logger.exception("timer poll failed task_id=%s", engine.task_id)
            transitioned = False

        if transitioned:
            snap = engine.snapshot()
            logger.info(
                "Phase complete task_id=%s next=%s sessions_completed=%s",
                snap.task_id,
                snap.phase.value,
                snap.sessions_completed,
            )
            if on_phase_complete is not None:
                try:
                    await on_phase_complete(snap)
                except Exception:
                    logger.exception("on_phase_complete callback failed task_id=%s", engine.task_id)
        else:
            logger.debug("timer tick task_id=%s remaining_s=%s", engine.task_id, engine.recompute_remaining())

        await asyncio.sleep(sleep_s)
