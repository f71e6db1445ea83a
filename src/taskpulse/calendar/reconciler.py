# src/taskpulse/calendar/reconciler.py

"""
Calendar reconciler.

Keeps the external calendar in step with tasks that have a due date:
- create / update / delete single events, remembering task -> event ids,
- bulk_sync: sequential, rate-limited, counts successes and failures,
- auto_sync: runs whenever the task list changes, only for unsynced tasks.

"Not authorized" is silent on automatic paths and a visible notice on the
user-initiated ones (connect, sync_all).
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable
from typing import Any

from ..core.errors import AuthorizationError, ExternalApiError
from ..core.models import SyncResult, SyncStats, Task
from ..core.ports import CalendarApi, CalendarAuthorizer, Clock, InAppNotifier
from ..schedulers.base import SleepFn
from .mapping import EVENT_MARKER, build_event
from .sync_records import CalendarSyncRecords

logger = logging.getLogger(__name__)

DEFAULT_REQUEST_DELAY_SECONDS = 0.1


class CalendarReconciler:
    def __init__(
            self,
            *,
            api: CalendarApi,
            authorizer: CalendarAuthorizer,
            records: CalendarSyncRecords,
            notices: InAppNotifier,
            clock: Clock,
            request_delay_seconds: float = DEFAULT_REQUEST_DELAY_SECONDS,
            sleep: SleepFn = asyncio.sleep,
    ) -> None:
        self._api = api
        self._auth = authorizer
        self._records = records
        self._notices = notices
        self._clock = clock
        self._delay = max(0.0, float(request_delay_seconds))
        self._sleep = sleep

    @property
    def records(self) -> CalendarSyncRecords:
        return self._records

    @property
    def is_connected(self) -> bool:
        return self._auth.is_authorized()

    # ---- single-task operations ----

    async def create(self, task: Task) -> str | None:
        """Create the event and record its id. Tasks without a due date are skipped (None)."""
        if task.due_date is None:
            return None
        if not self._auth.is_authorized():
            raise AuthorizationError("calendar is not connected")

        event_id = await self._api.create_event(build_event(task, self._clock.tz))
        await self._records.set_event_id(task.id, event_id)
        logger.info("Synced task %s -> event %s", task.id, event_id)
        return event_id

    async def update(self, task: Task) -> bool:
        event_id = await self._records.get_event_id(task.id)
        if event_id is None:
            return (await self.create(task)) is not None
        if task.due_date is None:
            # Due date removed: the event has no reason to exist anymore.
            return await self.delete(task.id)
        if not self._auth.is_authorized():
            raise AuthorizationError("calendar is not connected")
        return await self._api.update_event(event_id, build_event(task, self._clock.tz))

    async def delete(self, task_id: str) -> bool:
        """Delete the task's event. The sync record is dropped even if the API call fails."""
        event_id = await self._records.get_event_id(task_id)
        if event_id is None:
            return False
        try:
            if not self._auth.is_authorized():
                raise AuthorizationError("calendar is not connected")
            return await self._api.delete_event(event_id)
        finally:
            await self._records.remove(task_id)

    async def on_task_deleted(self, task_id: str) -> None:
        try:
            await self.delete(task_id)
        except AuthorizationError:
            logger.debug("Calendar not connected; dropped sync record for deleted task %s", task_id)
        except ExternalApiError as e:
            logger.warning("Could not delete calendar event for task %s: %s", task_id, e)

    # ---- batch operations ----

    async def bulk_sync(self, tasks: Iterable[Task], *, interactive: bool = False) -> SyncResult:
        """
        Create events for each task with a due date, one request at a time.

        A failing item is counted and the batch moves on. A rejected token ends the
        batch and counts every remaining item as failed. With interactive=True the
        outcome is reported to the user as aggregate notices.
        """
        batch = [t for t in tasks if t.due_date is not None]

        if not self._auth.is_authorized():
            if interactive:
                self._notices.error("Please connect your calendar first")
            return SyncResult(success=0, failed=len(batch))

        success = failed = 0
        for i, task in enumerate(batch):
            if i > 0 and self._delay:
                await self._sleep(self._delay)
            try:
                event_id = await self.create(task)
            except AuthorizationError as e:
                # The token is gone; the rest of the batch would be rejected the same way.
                remaining = len(batch) - i
                logger.warning(
                    "Calendar authorization lost at task_id=%s, %d task(s) not attempted: %s",
                    task.id,
                    remaining - 1,
                    e,
                )
                failed += remaining
                break
            except ExternalApiError as e:
                logger.warning("Calendar sync failed task_id=%s: %s", task.id, e)
                failed += 1
                continue
            except Exception:
                logger.exception("Calendar sync crashed task_id=%s", task.id)
                failed += 1
                continue
            if event_id:
                success += 1
            else:
                failed += 1

        logger.info("Bulk calendar sync done success=%d failed=%d", success, failed)
        if interactive:
            if success > 0:
                self._notices.success(f"Synced {success} tasks to calendar")
            if failed > 0:
                self._notices.error(f"Failed to sync {failed} tasks")
        return SyncResult(success=success, failed=failed)

    async def pending_tasks(self, tasks: Iterable[Task]) -> list[Task]:
        """Incomplete tasks with a due date and no sync record yet."""
        out: list[Task] = []
        for task in tasks:
            if task.completed or task.due_date is None:
                continue
            if await self._records.has(task.id):
                continue
            out.append(task)
        return out

    async def auto_sync(self, tasks: Iterable[Task]) -> SyncResult:
        if not await self._records.auto_sync_enabled():
            return SyncResult()
        if not self._auth.is_authorized():
            logger.debug("Auto-sync skipped: calendar not connected")
            return SyncResult()
        pending = await self.pending_tasks(tasks)
        if not pending:
            return SyncResult()
        return await self.bulk_sync(pending, interactive=False)

    # ---- user-initiated actions ----

    async def connect(self, tasks: Iterable[Task] = ()) -> bool:
        if not await self.resume():
            self._notices.error(
                "Could not connect to Google Calendar",
                description="Set TASKPULSE_GOOGLE_TOKEN or point TASKPULSE_GOOGLE_TOKEN_PATH at a token file.",
            )
            return False

        self._notices.success("Connected to Google Calendar")
        if await self._records.auto_sync_enabled():
            await self.sync_all(tasks)
        return True

    async def resume(self) -> bool:
        """Silent connect at session start: no notices, no sync."""
        try:
            return await self._auth.authorize()
        except Exception:
            logger.exception("Calendar authorization crashed")
            return False

    async def disconnect(self) -> int:
        try:
            await self._auth.revoke()
        except Exception:
            logger.exception("Calendar revoke failed")
        cleared = await self._records.clear_all()
        self._notices.info("Disconnected from Google Calendar", description=f"Cleared {cleared} synced task(s)")
        return cleared

    async def sync_all(self, tasks: Iterable[Task]) -> SyncResult:
        if not self._auth.is_authorized():
            self._notices.error("Please connect to Google Calendar first")
            return SyncResult()
        pending = await self.pending_tasks(tasks)
        if not pending:
            self._notices.info("All tasks with due dates are already synced")
            return SyncResult()
        return await self.bulk_sync(pending, interactive=True)

    async def set_auto_sync(self, enabled: bool) -> None:
        await self._records.set_auto_sync(enabled)
        if enabled and self._auth.is_authorized():
            self._notices.success("Auto-sync enabled! New tasks will be automatically synced.")
        elif not enabled:
            self._notices.info("Auto-sync disabled")

    async def sync_stats(self, tasks: Iterable[Task]) -> SyncStats:
        candidates = [t for t in tasks if not t.completed and t.due_date is not None]
        synced = 0
        for task in candidates:
            if await self._records.has(task.id):
                synced += 1
        return SyncStats(synced=synced, pending=len(candidates) - synced)

    async def upcoming(self, days: int = 7) -> list[dict[str, Any]]:
        """Our own events (marker glyph) in the next `days` days. Empty when not connected."""
        if not self._auth.is_authorized():
            return []
        try:
            return await self._api.list_upcoming(days, query=EVENT_MARKER)
        except (AuthorizationError, ExternalApiError) as e:
            logger.warning("Listing upcoming events failed: %s", e)
            return []
