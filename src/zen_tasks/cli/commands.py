# src/zen_tasks/cli/commands.py

from __future__ import annotations

import asyncio
import contextlib
import inspect
import logging
from collections.abc import Awaitable, Callable
from datetime import datetime, timedelta
from typing import cast

from ..core.state import AppState
from ..errors import FocusSlotBusyError, TaskStoreError
from ..features import (
    can_add_more_reminders,
    effective_pomodoro_settings,
    gate_recurrence_pattern,
    max_reminders,
    task_has_premium_features,
)
from ..recurrence.labels import format_recurrence_pattern, recurrence_short_label
from ..recurrence.recurrence_models import RecurrencePattern, RecurrenceType, RecurrenceUnit
from ..recurrence.resolver import occurrences
from ..tasks.task_models import Reminder, Task
from ..timer.timer_engine import FocusTimerEngine, ResumeOutcome, clear_active_session
from ..timer.timer_loop import run_timer_loop
from ..timer.timer_models import TimerSnapshot

CommandEmitter = Callable[[str], None]
CommandHandler2 = Callable[[AppState, list[str]], Awaitable[str]]
CommandHandler3 = Callable[[AppState, list[str], CommandEmitter | None], Awaitable[str]]
CommandHandler = CommandHandler2 | CommandHandler3

logger = logging.getLogger(__name__)


class CommandRegistry:
    """Simple slash-command registry used by the console connector (/help, /start, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    async def handle(
        self,
        state: AppState,
        line: str,
        emit: CommandEmitter | None = None,
    ) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.
        """
        if not line.startswith("/"):
            return None

        parts = line[1:].split()
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        try:
            nparams = len(inspect.signature(handler).parameters)
        except Exception:
            nparams = 3

        if nparams >= 3:
            h3 = cast(CommandHandler3, handler)
            return await h3(state, args, emit)

        h2 = cast(CommandHandler2, handler)
        return await h2(state, args)

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


# ---- helpers ----


def _pomodoro(state: AppState):
    settings = state.settings
    return effective_pomodoro_settings(settings.pomodoro, bool(getattr(settings, "premium", False)))


def _parse_day(raw: str, now: datetime) -> datetime | None:
    value = raw.strip().lower()
    if value == "today":
        return now
    if value == "tomorrow":
        return now + timedelta(days=1)
    try:
        return datetime.strptime(value, "%Y-%m-%d")
    except ValueError:
        return None


def parse_recurrence(tokens: list[str]) -> RecurrencePattern | None:
    """
    Build a pattern from "key:value" tokens.

    repeat:<type> every:<n> unit:<days|weeks|months> days:<0..6,...> until:<YYYY-MM-DD>
    """
    opts: dict[str, str] = {}
    for token in tokens:
        key, sep, value = token.partition(":")
        if sep:
            opts[key.lower()] = value

    raw_type = opts.get("repeat")
    if not raw_type:
        return None
    try:
        rtype = RecurrenceType(raw_type.lower())
    except ValueError:
        raise ValueError(f"unknown repeat type {raw_type!r}") from None

    days = [d for d in opts.get("days", "").split(",") if d.strip()]
    until = None
    if "until" in opts:
        try:
            until = datetime.strptime(opts["until"], "%Y-%m-%d").date()
        except ValueError:
            raise ValueError(f"bad until date {opts['until']!r} (use YYYY-MM-DD)") from None

    return RecurrencePattern(
        type=rtype,
        interval=opts.get("every", 1),
        unit=RecurrenceUnit.from_raw(opts.get("unit")),
        days_of_week=tuple(days),
        end_date=until,
    )


def _fmt_due(task: Task) -> str:
    return task.due_date.strftime("%Y-%m-%d") if task.due_date else "-"


def _fmt_task(i: int, task: Task, *, premium: bool = True) -> str:
    badge = f" [{recurrence_short_label(task.recurrence)}]" if task.is_recurring and task.recurrence else ""
    done = sum(1 for s in task.subtasks if s.completed)
    subs = f" ({done}/{len(task.subtasks)})" if task.subtasks else ""
    # Marked when a free-tier user holds a task created with premium features.
    locked = " *" if not premium and task_has_premium_features(task) else ""
    return f"{i:>2}. {task.id[:8]}  due {_fmt_due(task)}  {task.text}{badge}{subs}{locked}"


async def _resolve_task(state: AppState, ref: str) -> Task | None:
    """Accept a 1-based index into /tasks output or an id prefix."""
    active = await state.task_store.list_active()
    if ref.isdigit():
        idx = int(ref) - 1
        if 0 <= idx < len(active):
            return active[idx]
    matches = [t for t in active if t.id.startswith(ref)]
    return matches[0] if len(matches) == 1 else None


def _fmt_snapshot(snap: TimerSnapshot) -> str:
    state = "running" if snap.is_running else "idle"
    return (
        f"{snap.phase.value} {snap.remaining_formatted()} ({state}), "
        f"sessions completed: {snap.sessions_completed}"
    )


async def _stop_timer_loop(state: AppState) -> None:
    task = state.timer_task
    state.timer_task = None
    if task is None:
        return
    task.cancel()
    with contextlib.suppress(asyncio.CancelledError):
        await task


def _start_timer_loop(state: AppState, emit: CommandEmitter | None) -> None:
    engine = state.focus
    if engine is None:
        return

    async def on_phase_complete(snap: TimerSnapshot) -> None:
        if emit:
            head = "Time for a break!" if snap.phase.is_break else "Break's over!"
            emit(f"[TIMER] {head} Next: {_fmt_snapshot(snap)}. Use /start to continue.")

    state.timer_task = asyncio.create_task(
        run_timer_loop(
            engine,
            interval_seconds=float(getattr(state.settings, "timer_poll_seconds", 1.0)),
            on_phase_complete=on_phase_complete,
        ),
        name="timer-loop",
    )


async def focus_task(
    state: AppState,
    task: Task,
    *,
    cold_start: bool = False,
    emit: CommandEmitter | None = None,
) -> ResumeOutcome:
    """Make `task` the focused task and re-attach to its persisted session, if any."""
    await _stop_timer_loop(state)
    engine = FocusTimerEngine(
        task.id,
        session_store=state.session_store,
        notifier=state.notifier,
        clock=state.clock,
        settings=_pomodoro(state),
        resume_after_restart=bool(getattr(state.settings, "resume_after_restart", True)),
        task_text=task.text,
    )
    state.focus = engine
    outcome = await engine.resume(cold_start=cold_start)
    _start_timer_loop(state, emit)
    return outcome


async def restore_focus(state: AppState, emit: CommandEmitter | None = None) -> ResumeOutcome:
    """
    Startup recovery: re-focus the task that owns the persisted session.

    A session whose task is gone or archived is torn down instead.
    """
    session = await state.session_store.load()
    if session is None:
        return ResumeOutcome.NOTHING

    task = await state.task_store.get_task(session.task_id)
    if task is None or task.is_archived:
        logger.info("Persisted session for missing/archived task_id=%s; clearing", session.task_id)
        await clear_active_session(state.session_store, state.notifier, task_id=session.task_id)
        return ResumeOutcome.STALE

    return await focus_task(state, task, cold_start=True, emit=emit)


# ---- handlers ----


async def cmd_help(state: AppState, args: list[str]) -> str:
    return registry.build_help()


async def cmd_status(state: AppState, args: list[str]) -> str:
    s = state.settings
    p = _pomodoro(state)
    focus = "none"
    if state.focus is not None:
        focus = f"{state.focus.task_text or state.focus.task_id} - {_fmt_snapshot(state.focus.snapshot())}"
    return (
        "Status:\n"
        f"  Store: {getattr(s, 'store_db_path', '?')}\n"
        f"  Tier: {'premium' if getattr(s, 'premium', False) else 'free'}\n"
        f"  Pomodoro: {p.work_duration}/{p.short_break_duration}/{p.long_break_duration} min, "
        f"long break every {p.sessions_before_long_break}\n"
        f"  Resume after restart: {'ON' if getattr(s, 'resume_after_restart', True) else 'OFF'}\n"
        f"  Focus: {focus}"
    )


async def cmd_tasks(state: AppState, args: list[str]) -> str:
    """
    /tasks          -> active tasks
    /tasks archived -> archived tasks, newest first
    """
    if args and args[0].lower() in ("archived", "archive", "done"):
        archived = await state.task_store.list_archived()
        if not archived:
            return "No archived tasks."
        lines = ["Archived:"]
        for i, t in enumerate(archived, start=1):
            when = t.archived_at.strftime("%Y-%m-%d %H:%M") if t.archived_at else "-"
            lines.append(f"{i:>2}. {t.id[:8]}  {when}  {t.text}")
        return "\n".join(lines)

    active = await state.task_store.list_active()
    if not active:
        return "No tasks. Add one with /add <text>."
    premium = bool(getattr(state.settings, "premium", False))
    return "\n".join(["Tasks:", *(_fmt_task(i, t, premium=premium) for i, t in enumerate(active, start=1))])


async def cmd_add(state: AppState, args: list[str]) -> str:
    """
    /add <text> [due:YYYY-MM-DD|today|tomorrow] [repeat:<type> every:<n> unit:<u> days:<d,..> until:<date>]
    """
    words = [a for a in args if ":" not in a]
    options = [a for a in args if ":" in a]
    text = " ".join(words).strip()
    if not text:
        return "Usage: /add <text> [due:YYYY-MM-DD] [repeat:daily ...]"

    now = state.clock.now()
    due = None
    for opt in options:
        key, _, value = opt.partition(":")
        if key.lower() == "due":
            due = _parse_day(value, now)
            if due is None:
                return f"Bad due date {value!r}. Use YYYY-MM-DD, today or tomorrow."

    try:
        pattern = parse_recurrence(options)
    except ValueError as e:
        return f"Bad recurrence: {e}"
    pattern = gate_recurrence_pattern(pattern, bool(getattr(state.settings, "premium", False)))

    try:
        task = await state.task_store.add_task(text=text, due_date=due, recurrence=pattern)
    except TaskStoreError:
        logger.exception("Adding task failed")
        return "Could not save the task list; nothing was changed."
    repeat = f", {format_recurrence_pattern(pattern)}" if pattern is not None and pattern.is_active else ""
    return f"Added {task.id[:8]}: {task.text} (due {_fmt_due(task)}{repeat})"


async def cmd_repeat(state: AppState, args: list[str]) -> str:
    """
    /repeat <task> repeat:<type> [every:<n>] [unit:<u>] [days:<d,..>] [until:<date>]
    /repeat <task> off
    """
    if len(args) < 2:
        return "Usage: /repeat <task> repeat:<type> [every:N] [days:1,3,5] [until:YYYY-MM-DD] | /repeat <task> off"

    task = await _resolve_task(state, args[0])
    if task is None:
        return f"No such task: {args[0]}"

    if args[1].lower() == "off":
        try:
            await state.task_store.update_task(task.id, recurrence=None, is_recurring=False)
        except TaskStoreError:
            logger.exception("Updating recurrence failed task_id=%s", task.id)
            return "Could not save the task list; nothing was changed."
        return f"{task.text}: does not repeat."

    try:
        pattern = parse_recurrence(args[1:])
    except ValueError as e:
        return f"Bad recurrence: {e}"
    if pattern is None:
        return "Missing repeat:<type>."

    premium = bool(getattr(state.settings, "premium", False))
    gated = gate_recurrence_pattern(pattern, premium)
    try:
        await state.task_store.update_task(task.id, recurrence=gated, is_recurring=gated.is_active)
    except TaskStoreError:
        logger.exception("Updating recurrence failed task_id=%s", task.id)
        return "Could not save the task list; nothing was changed."

    note = ""
    if gated is not pattern:
        note = "\n  (custom intervals need premium; using every 1)"
    upcoming = occurrences(gated, task.due_date or state.clock.now(), limit=3)
    preview = ", ".join(d.strftime("%a %Y-%m-%d") for d in upcoming) or "none"
    return f"{task.text}: {format_recurrence_pattern(gated)}{note}\n  Next: {preview}"


async def cmd_focus(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    if not args:
        if state.focus is None:
            return "Usage: /focus <task>"
        return f"Focused on {state.focus.task_text or state.focus.task_id}."

    task = await _resolve_task(state, args[0])
    if task is None:
        return f"No such task: {args[0]}"

    outcome = await focus_task(state, task, emit=emit)
    engine = state.focus
    if engine is None:
        return f"Could not focus {task.text}."
    extra = {
        ResumeOutcome.RESUMED: " (resumed running timer)",
        ResumeOutcome.COMPLETED: " (timer ran out while away)",
        ResumeOutcome.STALE: " (discarded another task's timer)",
    }.get(outcome, "")
    return f"Focusing on {task.text}{extra}: {_fmt_snapshot(engine.snapshot())}"


async def cmd_start(state: AppState, args: list[str]) -> str:
    if state.focus is None:
        return "Pick a task first: /focus <task>"
    try:
        snap = await state.focus.start(_pomodoro(state))
    except FocusSlotBusyError as e:
        return f"Another task is being focused ({e.active_task_id[:8]}). Pause or finish it first."
    return f"Started: {_fmt_snapshot(snap)}"


async def cmd_pause(state: AppState, args: list[str]) -> str:
    if state.focus is None:
        return "Nothing is focused."
    return f"Paused: {_fmt_snapshot(await state.focus.pause())}"


async def cmd_skip(state: AppState, args: list[str]) -> str:
    if state.focus is None:
        return "Nothing is focused."
    return f"Skipped to {_fmt_snapshot(await state.focus.skip(_pomodoro(state)))}"


async def cmd_reset(state: AppState, args: list[str]) -> str:
    if state.focus is None:
        return "Nothing is focused."
    return f"Reset: {_fmt_snapshot(await state.focus.reset(_pomodoro(state)))}"


async def cmd_timer(state: AppState, args: list[str]) -> str:
    if state.focus is None:
        return "Nothing is focused."
    return _fmt_snapshot(state.focus.snapshot())


async def cmd_done(state: AppState, args: list[str]) -> str:
    if args:
        ref = args[0]
        task = await _resolve_task(state, ref)
    elif state.focus is not None:
        ref = state.focus.task_id
        task = await state.task_store.get_task(ref)
    else:
        return "Usage: /done <task>"
    if task is None:
        return f"No such task: {ref}"

    try:
        result = await state.completion.complete_task(task.id)
    except TaskStoreError:
        logger.exception("Completing task failed task_id=%s", task.id)
        return "Could not save the task list; nothing was changed."

    if state.focus is not None and state.focus.task_id == task.id:
        await _stop_timer_loop(state)
        state.focus = None

    if result is None:
        return f"No such task: {task.id}"
    return result.confirmation_text(task.text)


async def cmd_remind(state: AppState, args: list[str]) -> str:
    """
    /remind <task> <YYYY-MM-DD> [HH:MM]
    """
    if len(args) < 2:
        return "Usage: /remind <task> <YYYY-MM-DD> [HH:MM]"

    task = await _resolve_task(state, args[0])
    if task is None:
        return f"No such task: {args[0]}"

    raw = " ".join(args[1:3])
    when = None
    for fmt in ("%Y-%m-%d %H:%M", "%Y-%m-%d"):
        try:
            when = datetime.strptime(raw, fmt)
            break
        except ValueError:
            continue
    if when is None:
        return f"Bad time {raw!r}. Use YYYY-MM-DD [HH:MM]."

    fire_at_ms = int(when.timestamp() * 1000)
    if fire_at_ms <= state.clock.now_ms():
        return "That time has already passed."

    premium = bool(getattr(state.settings, "premium", False))
    if not can_add_more_reminders(len(task.reminders), premium):
        return f"Reminder limit reached ({max_reminders(premium)} per task on this tier)."

    handle = await state.notifier.schedule(
        task.text,
        fire_at_ms,
        title="Reminder",
        data={"type": "reminder", "taskId": task.id},
    )
    reminder = Reminder(id=f"{task.id}-r{len(task.reminders) + 1}", remind_at=when, notification_id=handle)
    try:
        await state.task_store.update_task(task.id, reminders=[*task.reminders, reminder])
    except TaskStoreError:
        logger.exception("Saving reminder failed task_id=%s", task.id)
        await state.notifier.cancel(handle)
        return "Could not save the reminder."
    return f"Reminder set for {task.text} at {when:%Y-%m-%d %H:%M}."


async def cmd_rm(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /rm <task>"
    task = await _resolve_task(state, args[0])
    if task is None:
        return f"No such task: {args[0]}"

    try:
        await state.completion.remove_task(task.id)
    except TaskStoreError:
        logger.exception("Removing task failed task_id=%s", task.id)
        return "Could not save the task list; nothing was changed."

    if state.focus is not None and state.focus.task_id == task.id:
        await _stop_timer_loop(state)
        state.focus = None
    return f"Removed {task.text}."


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("status", cmd_status, help_text="Show settings and focus state.")
registry.register("tasks", cmd_tasks, help_text="List tasks: /tasks | /tasks archived.", aliases=["ls"])
registry.register("add", cmd_add, help_text="Add a task: /add <text> [due:YYYY-MM-DD] [repeat:daily].")
registry.register("repeat", cmd_repeat, help_text="Set recurrence: /repeat <task> repeat:weekly days:1,3,5.")
registry.register("focus", cmd_focus, help_text="Focus a task: /focus <task>.")
registry.register("start", cmd_start, help_text="Start/resume the focus timer.")
registry.register("pause", cmd_pause, help_text="Pause the focus timer.")
registry.register("skip", cmd_skip, help_text="Skip to the next phase.")
registry.register("reset", cmd_reset, help_text="Reset the timer to a fresh work phase.")
registry.register("timer", cmd_timer, help_text="Show remaining time.", aliases=["t"])
registry.register("done", cmd_done, help_text="Complete a task: /done <task> (defaults to the focused one).")
registry.register("remind", cmd_remind, help_text="Add a reminder: /remind <task> <YYYY-MM-DD> [HH:MM].")
registry.register("rm", cmd_rm, help_text="Delete a task: /rm <task>.")
