# src/zen_tasks/core/clock.py

from __future__ import annotations

import time
from datetime import datetime


class SystemClock:
    """Clock backed by the host wall clock."""

    def now_ms(self) -> int:
        return int(time.time() * 1000)

    def now(self) -> datetime:
        return datetime.fromtimestamp(self.now_ms() / 1000)

