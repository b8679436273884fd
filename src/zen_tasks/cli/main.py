# src/zen_tasks/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds AppState inside the event loop, recovers the
persisted focus session and runs the console REPL until /exit.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging

from ..cli.bootstrap import create_initial_state
from ..config import get_settings
from ..connectors.console_connector import ConsoleSink, run_console_loop
from ..logging_setup import setup_logging

logger = logging.getLogger(__name__)


async def _shutdown(state) -> None:
    """Best-effort shutdown (no exceptions should escape)."""
    task = getattr(state, "timer_task", None)
    if task is not None:
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task

    # Pending in-process alerts die with the loop; the persisted session stays
    # so the next launch can pick it up.
    try:
        await state.notifier.shutdown()
    except Exception:
        logger.debug("Notifier shutdown failed.", exc_info=True)

    try:
        state.store.close()
    except Exception:
        logger.debug("Store close failed.", exc_info=True)


async def _run(settings) -> None:
    state = create_initial_state(ConsoleSink(), settings=settings)
    try:
        await run_console_loop(state)
    finally:
        await _shutdown(state)


def main() -> None:
    settings = get_settings()

    level_name = str(getattr(settings, "log_level", "INFO")).upper()
    console_level = getattr(logging, level_name, logging.INFO)

    log_dir = getattr(settings, "data_dir", ".local/zen")
    setup_logging(log_dir=log_dir, console_level=console_level)

    logger.info("Starting %s...", getattr(settings, "app_name", "zen"))

    try:
        asyncio.run(_run(settings))
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down...")
    finally:
        logger.info("Bye.")


if __name__ == "__main__":
    main()
