# src/taskpulse/orchestrator.py

"""
Orchestrator: the facade the UI/CLI talks to.

Owns the lifecycle of the periodic components (reminders, motivation, habits),
applies settings changes without duplicating timers, and forwards task-list
changes to the calendar reconciler.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any

from .calendar.reconciler import CalendarReconciler
from .core.models import NotificationSettings, SyncResult, Task
from .habits.detector import HabitDetector, HabitReport
from .notify.dispatcher import NotificationDispatcher
from .schedulers.base import PeriodicComponent
from .schedulers.motivation import MotivationScheduler
from .schedulers.reminders import ReminderScheduler

logger = logging.getLogger(__name__)


class NotificationOrchestrator:
    def __init__(
            self,
            *,
            reminders: ReminderScheduler,
            motivation: MotivationScheduler,
            habits: HabitDetector,
            reconciler: CalendarReconciler,
            dispatcher: NotificationDispatcher,
    ) -> None:
        self.reminders = reminders
        self.motivation = motivation
        self.habits = habits
        self.reconciler = reconciler
        self.dispatcher = dispatcher
        self._settings = NotificationSettings()

    @property
    def settings(self) -> NotificationSettings:
        return self._settings

    @property
    def components(self) -> tuple[PeriodicComponent, ...]:
        return (self.reminders, self.motivation, self.habits)

    def initialize(self, settings: NotificationSettings) -> None:
        """Start (or restart) every enabled component with `settings`."""
        self._settings = settings
        self.dispatcher.set_os_enabled(settings.enabled and settings.os_notifications_enabled)

        if not settings.enabled:
            self.stop_all()
            return

        self.reminders.initialize(settings)
        self._toggle(self.motivation, settings.motivation_enabled, settings, restart=True)
        self._toggle(self.habits, settings.habit_tracking_enabled, settings, restart=True)
        logger.info("Orchestrator initialized: %s", settings)

    def update_settings(self, **patch: Any) -> NotificationSettings:
        """
        Patch the settings in place.

        Running components keep their timers and receive the new values; components
        are only started or stopped when their enabled flag actually flips.
        """
        new = self._settings.merged(**patch)
        self._settings = new
        self.dispatcher.set_os_enabled(new.enabled and new.os_notifications_enabled)

        if not new.enabled:
            self.stop_all()
            return new

        if self.reminders.is_running:
            self.reminders.update_settings(**patch)
        else:
            self.reminders.initialize(new)

        self._toggle(self.motivation, new.motivation_enabled, new, patch=patch)
        self._toggle(self.habits, new.habit_tracking_enabled, new, patch=patch)
        return new

    @staticmethod
    def _toggle(
            component: PeriodicComponent,
            enabled: bool,
            settings: NotificationSettings,
            *,
            restart: bool = False,
            patch: dict[str, Any] | None = None,
    ) -> None:
        if not enabled:
            if component.is_running:
                component.stop()
            return
        if component.is_running and not restart:
            component.update_settings(**(patch or {}))
        else:
            component.initialize(settings)

    def stop_all(self) -> None:
        for component in self.components:
            if component.is_running:
                component.stop()

    def destroy(self) -> None:
        """Session end: stop everything. initialize() may still be called again later."""
        for component in self.components:
            component.stop()
        logger.info("Orchestrator destroyed")

    async def on_tasks_changed(self, tasks: Iterable[Task]) -> SyncResult:
        try:
            return await self.reconciler.auto_sync(list(tasks))
        except Exception:
            logger.exception("Auto-sync failed")
            return SyncResult()

    async def on_task_deleted(self, task_id: str) -> None:
        try:
            await self.reconciler.on_task_deleted(task_id)
        except Exception:
            logger.exception("Calendar cleanup failed for deleted task %s", task_id)

    async def analyze_habits(self) -> HabitReport:
        return await self.habits.analyze()
