# src/zen_tasks/connectors/console_connector.py

from __future__ import annotations

import asyncio
import logging
import sys
from datetime import datetime

from ..cli.commands import registry as command_registry
from ..cli.commands import restore_focus
from ..core.ports import NotificationData
from ..core.state import AppState
from ..timer.timer_engine import ResumeOutcome

logger = logging.getLogger(__name__)


def _ts_local() -> str:
    return datetime.now().astimezone().strftime("%Y-%m-%d %H:%M:%S")


def _print_ts(text: str) -> None:
    print(f"[{_ts_local()}] {text}", flush=True)


class ConsoleSink:
    """NotificationSink that prints fired alerts to the terminal."""

    def __init__(self, stream=None) -> None:
        self._stream = stream

    async def deliver(self, *, title: str, message: str, data: NotificationData | None = None) -> None:
        line = f"[{_ts_local()}] [ALERT] {title}: {message}"
        out = self._stream or sys.stdout
        out.write("\a" + line + "\n" if out.isatty() else line + "\n")
        out.flush()


async def run_console_loop(state: AppState) -> None:
    logger.info("Console connector started.")
    _print_ts("[CONSOLE] Use /help for commands. Use /exit to quit.\n")

    def emit(text: str) -> None:
        _print_ts(text)

    try:
        outcome = await restore_focus(state, emit=emit)
    except Exception:
        logger.exception("Focus recovery crashed.")
        outcome = ResumeOutcome.NOTHING

    if state.focus is not None and outcome in (ResumeOutcome.RESUMED, ResumeOutcome.COMPLETED):
        snap = state.focus.snapshot()
        _print_ts(
            f"[TIMER] Back on {state.focus.task_text or state.focus.task_id}: "
            f"{snap.phase.value} {snap.remaining_formatted()}"
        )

    while True:
        try:
            user_input = (await asyncio.to_thread(input, ">>> ")).strip()
        except EOFError:
            logger.info("Console EOF received, exiting.")
            break
        except KeyboardInterrupt:
            logger.info("Console KeyboardInterrupt, exiting.")
            print()
            break

        if not user_input:
            continue

        if user_input.lower() in ("/exit", "/quit"):
            logger.info("Console exit command received.")
            break

        try:
            reply = await command_registry.handle(state, user_input, emit=emit)
        except Exception:
            logger.exception("Command handler crashed.")
            reply = "Internal error while handling a command."

        if reply is None:
            reply = "Commands start with '/'. Use /help."
        _print_ts(reply)

    logger.info("Console connector finished.")
