# tests/fakes.py

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


class FakeClock:
    """
    Settable wall clock.

    now() is derived from now_ms as local naive time, like SystemClock.
    """

    def __init__(self, start: datetime | int = datetime(2024, 3, 1, 9, 0, 0)) -> None:
        if isinstance(start, datetime):
            self.ms = int(start.timestamp() * 1000)
        else:
            self.ms = int(start)

    def now_ms(self) -> int:
        return self.ms

    def now(self) -> datetime:
        return datetime.fromtimestamp(self.ms / 1000)

    def advance(self, *, ms: int = 0, seconds: float = 0, minutes: float = 0) -> None:
        self.ms += int(ms + seconds * 1000 + minutes * 60_000)


class InMemoryStore:
    """
    PersistentStore in a dict.

    Each call yields to the loop once, so concurrent coroutines interleave
    the way they would with a real async backend.

    - fail_get / fail_set / fail_remove make the calls raise
    - set_gate + gated_set: the gated_set-th set() (1-based) waits on set_gate
      before writing
    """

    def __init__(self) -> None:
        self.data: dict[str, bytes] = {}
        self.fail_get = False
        self.fail_set = False
        self.fail_remove = False
        self.set_calls: list[str] = []
        self.set_gate: asyncio.Event | None = None
        self.gated_set = 0
        self._sets_started = 0

    async def get(self, key: str) -> bytes | None:
        await asyncio.sleep(0)
        if self.fail_get:
            raise OSError("store read failed")
        return self.data.get(key)

    async def set(self, key: str, value: bytes) -> None:
        self._sets_started += 1
        if self.set_gate is not None and self._sets_started == self.gated_set:
            await self.set_gate.wait()
        await asyncio.sleep(0)
        if self.fail_set:
            raise OSError("store write failed")
        self.set_calls.append(key)
        self.data[key] = bytes(value)

    async def remove(self, key: str) -> None:
        await asyncio.sleep(0)
        if self.fail_remove:
            raise OSError("store remove failed")
        self.data.pop(key, None)


@dataclass(slots=True)
class ScheduledCall:
    handle: str
    message: str
    fire_at_ms: int
    title: str | None
    data: dict[str, Any] | None


class FakeNotificationScheduler:
    """
    Records schedule()/cancel() calls.

    - fail_schedule / fail_cancel make the calls raise
    - gate: when set, schedule() waits on it before returning a handle
    """

    def __init__(self) -> None:
        self.scheduled: list[ScheduledCall] = []
        self.cancelled: list[str] = []
        self.fail_schedule = False
        self.fail_cancel = False
        self.gate: asyncio.Event | None = None
        self._next = 0

    async def schedule(
        self,
        message: str,
        fire_at_ms: int,
        *,
        title: str | None = None,
        data: dict[str, Any] | None = None,
    ) -> str:
        if self.gate is not None:
            await self.gate.wait()
        await asyncio.sleep(0)
        if self.fail_schedule:
            raise RuntimeError("scheduler unavailable")
        self._next += 1
        handle = f"n{self._next}"
        self.scheduled.append(ScheduledCall(handle, message, int(fire_at_ms), title, data))
        return handle

    async def cancel(self, handle: str) -> None:
        await asyncio.sleep(0)
        if self.fail_cancel:
            raise RuntimeError("scheduler unavailable")
        self.cancelled.append(handle)

    @property
    def live_handles(self) -> list[str]:
        return [c.handle for c in self.scheduled if c.handle not in self.cancelled]


@dataclass(slots=True)
class DeliveredAlert:
    title: str
    message: str
    data: dict[str, Any] | None


@dataclass(slots=True)
class RecordingSink:
    """NotificationSink that keeps what it was given."""

    delivered: list[DeliveredAlert] = field(default_factory=list)

    async def deliver(self, *, title: str, message: str, data: dict[str, Any] | None = None) -> None:
        self.delivered.append(DeliveredAlert(title=title, message=message, data=data))
