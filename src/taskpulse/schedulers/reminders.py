# src/taskpulse/schedulers/reminders.py

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta

from ..core.errors import TransientFetchError
from ..core.models import NoticeAction, NotificationKind, Task
from ..core.ports import Clock, TaskSource
from ..notify.dispatcher import NotificationDispatcher
from ..storage.ledger import overdue_key, reminder_key
from .base import PeriodicComponent, SleepFn

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL_SECONDS = 5 * 60


class ReminderScheduler(PeriodicComponent):
    """
    Due-soon and overdue alerts.

    Every tick (immediately on initialize, then every interval):
    - fetch the user's incomplete tasks that have a due date
    - now <= due <= now + reminder_minutes -> "due soon", once per (task, due timestamp)
    - due < now                           -> "overdue", once per (task, due calendar day)
    """

    name = "reminders"

    def __init__(
            self,
            *,
            tasks: TaskSource,
            dispatcher: NotificationDispatcher,
            clock: Clock,
            user_id: str,
            interval_seconds: float = DEFAULT_INTERVAL_SECONDS,
            sleep: SleepFn = asyncio.sleep,
    ) -> None:
        super().__init__(sleep=sleep)
        self._tasks = tasks
        self._dispatcher = dispatcher
        self._clock = clock
        self._user_id = user_id
        self._interval = max(1.0, float(interval_seconds))

    async def _run(self, generation: int) -> None:
        while True:
            await self._guarded("reminder check", lambda: self.check_due_reminders(generation))
            if not self._is_current(generation):
                return
            await self._sleep(self._interval)

    async def check_due_reminders(self, generation: int | None = None) -> int:
        """Run one check. Returns how many notifications were delivered."""
        if not self._settings.enabled:
            return 0

        try:
            tasks = await self._tasks.list_due_tasks(self._user_id)
        except TransientFetchError as e:
            logger.warning("Due task fetch failed: %s", e)
            return 0

        if not self._is_current(generation):
            logger.debug("Discarding stale reminder tick generation=%s", generation)
            return 0

        now = self._clock.now()
        threshold = now + timedelta(minutes=max(0, int(self._settings.reminder_minutes)))
        delivered = 0

        for task in tasks:
            if task.completed or task.due_date is None:
                continue
            if not self._is_current(generation):
                break

            due = task.due_date
            try:
                if now <= due <= threshold:
                    delivered += await self._send_due_reminder(task, due, now)
                elif due < now:
                    delivered += await self._send_overdue(task, due)
            except Exception:
                logger.exception("Reminder dispatch failed task_id=%s", task.id)

        return delivered

    async def _send_due_reminder(self, task: Task, due: datetime, now: datetime) -> int:
        minutes = int((due - now).total_seconds() // 60)
        message = (
            f'"{task.title}" is due in {minutes} minutes!'
            if minutes > 0
            else f'"{task.title}" is due now!'
        )
        sent = await self._dispatcher.notify(
            NotificationKind.REMINDER,
            "Task Reminder",
            message,
            description=task.description or "Click to view details",
            action=NoticeAction(label="View Task", event="open_task", payload=task.id),
            dedup_key=reminder_key(task.id, due),
        )
        return int(sent)

    async def _send_overdue(self, task: Task, due: datetime) -> int:
        due_day = due.astimezone(self._clock.tz).date()
        sent = await self._dispatcher.notify(
            NotificationKind.OVERDUE,
            "Overdue Task",
            f'"{task.title}" is overdue!',
            description=task.description or "This task needs your attention",
            action=NoticeAction(label="Complete Now", event="open_task", payload=task.id),
            dedup_key=overdue_key(task.id, due_day),
        )
        return int(sent)
