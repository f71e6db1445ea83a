# src/taskpulse/calendar/sync_records.py

from __future__ import annotations

import logging

from ..core.ports import KeyValueStore

logger = logging.getLogger(__name__)

SYNC_PREFIX = "syncEvent:"
AUTO_SYNC_KEY = "autoSyncEnabled"


class CalendarSyncRecords:
    """Persisted task id -> external event id map, plus the auto-sync flag."""

    def __init__(self, store: KeyValueStore) -> None:
        self._store = store

    async def get_event_id(self, task_id: str) -> str | None:
        return await self._store.get(SYNC_PREFIX + task_id)

    async def has(self, task_id: str) -> bool:
        return (await self.get_event_id(task_id)) is not None

    async def set_event_id(self, task_id: str, event_id: str) -> None:
        await self._store.set(SYNC_PREFIX + task_id, event_id)

    async def remove(self, task_id: str) -> None:
        await self._store.delete(SYNC_PREFIX + task_id)

    async def task_ids(self) -> list[str]:
        return [k[len(SYNC_PREFIX):] for k in await self._store.keys(SYNC_PREFIX)]

    async def clear_all(self) -> int:
        keys = await self._store.keys(SYNC_PREFIX)
        for key in keys:
            await self._store.delete(key)
        logger.info("Cleared %d calendar sync records", len(keys))
        return len(keys)

    async def auto_sync_enabled(self) -> bool:
        return (await self._store.get(AUTO_SYNC_KEY)) == "true"

    async def set_auto_sync(self, enabled: bool) -> None:
        await self._store.set(AUTO_SYNC_KEY, "true" if enabled else "false")
