# src/taskpulse/storage/ledger.py

from __future__ import annotations

import logging
from datetime import date, datetime

from ..core.clock import iso_week_label
from ..core.ports import KeyValueStore

logger = logging.getLogger(__name__)

SENT = "sent"


def reminder_key(task_id: str, due: datetime) -> str:
    return f"reminder:{task_id}:{int(due.timestamp() * 1000)}"


def overdue_key(task_id: str, day: date) -> str:
    return f"overdue:{task_id}:{day.isoformat()}"


def habit_key(task_id: str, day: date) -> str:
    return f"habit:{task_id}:{iso_week_label(day)}"


class DedupLedger:
    """
    Persisted set of "already delivered" markers.

    Markers are never removed automatically; a key stays sent for good.
    """

    def __init__(self, store: KeyValueStore) -> None:
        self._store = store

    async def has_sent(self, key: str) -> bool:
        return (await self._store.get(key)) is not None

    async def mark_sent(self, key: str) -> None:
        await self._store.set(key, SENT)
        logger.debug("Ledger marker written key=%s", key)

    async def markers(self, prefix: str = "") -> list[str]:
        return await self._store.keys(prefix)
