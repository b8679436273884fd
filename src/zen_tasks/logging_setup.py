# src/zen_tasks/logging_setup.py

from __future__ import annotations

import logging
import sys
from pathlib import Path

APP_LOGGER_PREFIX = "zen_tasks."

# Console threshold per logger-name prefix; the longest matching prefix wins.
# The timer loop and the alert scheduler log on every poll/alert, which is
# useful in zen.log and noise at the REPL prompt.
CONSOLE_THRESHOLDS: dict[str, int] = {
    "zen_tasks.timer.timer_loop": logging.WARNING,
    "zen_tasks.notifications.local_scheduler": logging.WARNING,
    "asyncio": logging.WARNING,
    "py.warnings": logging.ERROR,
}


class _ConsoleNoiseFilter(logging.Filter):
    """Keeps the REPL readable: app logs pass, background chatter and libraries are held back."""

    def __init__(self, thresholds: dict[str, int] | None = None) -> None:
        super().__init__()
        self._thresholds = sorted(
            (thresholds if thresholds is not None else CONSOLE_THRESHOLDS).items(),
            key=lambda kv: len(kv[0]),
            reverse=True,
        )

    def filter(self, record: logging.LogRecord) -> bool:
        name = record.name
        for prefix, level in self._thresholds:
            if name == prefix or name.startswith(prefix + "."):
                return record.levelno >= level

        if name.startswith(APP_LOGGER_PREFIX):
            return True
        return record.levelno >= logging.ERROR


def setup_logging(
    *,
    log_dir: str | Path = ".local/zen",
    console_level: int = logging.INFO,
    file_level: int = logging.DEBUG,
) -> Path:
    """
    Console on stderr through _ConsoleNoiseFilter, everything else in
    <log_dir>/zen.log. Replaces existing root handlers; returns the log file path.
    """
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / "zen.log"

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    for h in list(root.handlers):
        root.removeHandler(h)

    fmt = logging.Formatter(
        fmt="%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    ch = logging.StreamHandler(sys.stderr)
    ch.setLevel(console_level)
    ch.setFormatter(fmt)
    ch.addFilter(_ConsoleNoiseFilter())
    root.addHandler(ch)

    fh = logging.FileHandler(str(log_file), encoding="utf-8")
    fh.setLevel(file_level)
    fh.setFormatter(fmt)
    root.addHandler(fh)

    logging.captureWarnings(True)
    return log_file
