# src/zen_tasks/notifications/local_scheduler.py

from __future__ import annotations

import asyncio
import contextlib
import logging
import uuid
from dataclasses import dataclass

from ..core.ports import Clock, NotificationData, NotificationSink

logger = logging.getLogger(__name__)

DEFAULT_TITLE = "Reminder"


@dataclass(slots=True, frozen=True)
class ScheduledAlert:
    handle: str
    title: str
    message: str
    fire_at_ms: int
    data: NotificationData | None


class LocalNotificationScheduler:
    """
    In-process NotificationScheduler: one asyncio task per pending alert.

    The alert fires at fire_at_ms by wall clock (delay is computed from the
    injected Clock when scheduled) and is handed to the sink. Alerts do not
    outlive the event loop; an OS-level scheduler plugs into the same port.
    """

    def __init__(self, sink: NotificationSink, clock: Clock) -> None:
        self._sink = sink
        self._clock = clock
        self._pending: dict[str, tuple[ScheduledAlert, asyncio.Task[None]]] = {}

    def pending(self) -> list[ScheduledAlert]:
        return sorted((a for a, _ in self._pending.values()), key=lambda a: a.fire_at_ms)

    async def schedule(
        self,
        message: str,
        fire_at_ms: int,
        *,
        title: str | None = None,
        data: NotificationData | None = None,
    ) -> str:
        handle = uuid.uuid4().hex
        alert = ScheduledAlert(
            handle=handle,
            title=title or DEFAULT_TITLE,
            message=message,
            fire_at_ms=int(fire_at_ms),
            data=dict(data) if data else None,
        )
        task = asyncio.create_task(self._fire_later(alert), name=f"alert-{handle[:8]}")
        self._pending[handle] = (alert, task)
        logger.debug("Alert scheduled handle=%s in_ms=%s", handle, alert.fire_at_ms - self._clock.now_ms())
        return handle

    async def cancel(self, handle: str) -> None:
        entry = self._pending.pop(handle, None)
        if entry is None:
            logger.debug("cancel: unknown or already fired handle=%s", handle)
            return
        _, task = entry
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task
        logger.debug("Alert cancelled handle=%s", handle)

    async def shutdown(self) -> None:
        """Cancel everything still pending (process exit)."""
        for handle in list(self._pending):
            await self.cancel(handle)

    async def _fire_later(self, alert: ScheduledAlert) -> None:
        delay_s = max(0.0, (alert.fire_at_ms - self._clock.now_ms()) / 1000)
        await asyncio.sleep(delay_s)

        self._pending.pop(alert.handle, None)
        try:
            await self._sink.deliver(title=alert.title, message=alert.message, data=alert.data)
            logger.info("Alert fired handle=%s title=%s", alert.handle, alert.title)
        except Exception:
            logger.exception("Alert delivery failed handle=%s", alert.handle)
