# tests/test_logging_setup.py

from __future__ import annotations

import logging

from zen_tasks.logging_setup import _ConsoleNoiseFilter, setup_logging


def _record(name: str, level: int) -> logging.LogRecord:
    return logging.LogRecord(name, level, __file__, 1, "msg", None, None)


def test_console_filter_levels() -> None:
    f = _ConsoleNoiseFilter()

    assert f.filter(_record("zen_tasks.tasks.completion", logging.INFO))
    assert not f.filter(_record("zen_tasks.timer.timer_loop", logging.INFO))
    assert f.filter(_record("zen_tasks.timer.timer_loop", logging.WARNING))
    assert not f.filter(_record("zen_tasks.notifications.local_scheduler", logging.INFO))
    assert not f.filter(_record("asyncio", logging.INFO))
    assert not f.filter(_record("py.warnings", logging.WARNING))
    assert not f.filter(_record("urllib3.connectionpool", logging.WARNING))
    assert f.filter(_record("urllib3.connectionpool", logging.ERROR))


def test_longest_prefix_wins() -> None:
    f = _ConsoleNoiseFilter({"zen_tasks.timer": logging.ERROR, "zen_tasks.timer.timer_engine": logging.INFO})

    assert f.filter(_record("zen_tasks.timer.timer_engine", logging.INFO))
    assert not f.filter(_record("zen_tasks.timer.timer_loop", logging.WARNING))
    # a prefix only matches whole dotted segments
    assert f.filter(_record("zen_tasks.timerx", logging.INFO))


def test_setup_logging_writes_file(tmp_path) -> None:
    root = logging.getLogger()
    saved = list(root.handlers), root.level
    try:
        log_file = setup_logging(log_dir=tmp_path / "logs")
        logging.getLogger("zen_tasks.test").debug("hello file")
        for h in root.handlers:
            h.flush()

        assert log_file == tmp_path / "logs" / "zen.log"
        assert "hello file" in log_file.read_text(encoding="utf-8")
    finally:
        for h in list(root.handlers):
            root.removeHandler(h)
            h.close()
        for h in saved[0]:
            root.addHandler(h)
        root.setLevel(saved[1])
        logging.captureWarnings(False)
