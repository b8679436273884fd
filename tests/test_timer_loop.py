# tests/test_timer_loop.py

from __future__ import annotations

import asyncio

import pytest

from zen_tasks.timer.timer_engine import FocusTimerEngine
from zen_tasks.timer.timer_loop import run_timer_loop
from zen_tasks.timer.timer_models import Phase, TimerSnapshot


@pytest.mark.asyncio
async def test_timer_loop_completes_expired_phase_and_reports(session_store, notifier, clock) -> None:
    engine = FocusTimerEngine("A", session_store=session_store, notifier=notifier, clock=clock)
    await engine.start()
    clock.advance(minutes=25)

    seen: list[TimerSnapshot] = []

    async def on_phase_complete(snap: TimerSnapshot) -> None:
        seen.append(snap)

    task = asyncio.create_task(
        run_timer_loop(engine, interval_seconds=0.01, on_phase_complete=on_phase_complete)
    )
    await asyncio.sleep(0.2)

    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    assert len(seen) == 1
    assert seen[0].phase is Phase.SHORT_BREAK
    assert seen[0].sessions_completed == 1
    assert not seen[0].is_running
    assert engine.phase is Phase.SHORT_BREAK


@pytest.mark.asyncio
async def test_timer_loop_leaves_running_phase_alone(session_store, notifier, clock) -> None:
    engine = FocusTimerEngine("A", session_store=session_store, notifier=notifier, clock=clock)
    await engine.start()

    calls = 0

    async def on_phase_complete(snap: TimerSnapshot) -> None:
        nonlocal calls
        calls += 1

    task = asyncio.create_task(
        run_timer_loop(engine, interval_seconds=0.01, on_phase_complete=on_phase_complete)
    )
    await asyncio.sleep(0.15)

    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    assert calls == 0
    assert engine.is_running
    assert engine.phase is Phase.WORK


@pytest.mark.asyncio
async def test_timer_loop_survives_callback_errors(session_store, notifier, clock) -> None:
    engine = FocusTimerEngine("A", session_store=session_store, notifier=notifier, clock=clock)
    await engine.start()
    clock.advance(minutes=25)

    async def boom(snap: TimerSnapshot) -> None:
        raise RuntimeError("ui went away")

    task = asyncio.create_task(run_timer_loop(engine, interval_seconds=0.01, on_phase_complete=boom))
    await asyncio.sleep(0.1)

    assert not task.done()
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    assert engine.phase is Phase.SHORT_BREAK
