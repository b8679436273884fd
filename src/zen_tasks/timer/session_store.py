# src/zen_tasks/timer/session_store.py

from __future__ import annotations

import json
import logging

from ..core.ports import PersistentStore
from .timer_models import TimerSession

logger = logging.getLogger(__name__)

TIMER_STORAGE_KEY = "@pomodoro_timer_state"


class SessionStore:
    """
    The single focus slot: one TimerSession under one key.

    Passed explicitly to engines (no module-level singleton), so tests can run
    independent slots side by side. Reads never raise: unreadable or malformed
    records are reported as "no session".
    """

    def __init__(self, store: PersistentStore, *, key: str = TIMER_STORAGE_KEY) -> None:
        self._store = store
        self._key = key

    @property
    def key(self) -> str:
        return self._key

    async def load(self) -> TimerSession | None:
        try:
            raw = await self._store.get(self._key)
        except Exception:
            logger.exception("Failed to read timer session key=%s", self._key)
            return None
        if not raw:
            return None

        try:
            data = json.loads(raw.decode("utf-8"))
        except Exception:
            logger.warning("Timer session record is not valid JSON; ignoring it.")
            return None

        session = TimerSession.from_dict(data)
        if session is None:
            logger.warning("Timer session record is malformed; ignoring it.")
        return session

    async def save(self, session: TimerSession) -> None:
        payload = json.dumps(session.to_dict(), ensure_ascii=False).encode("utf-8")
        await self._store.set(self._key, payload)

    async def clear(self) -> None:
        await self._store.remove(self._key)
