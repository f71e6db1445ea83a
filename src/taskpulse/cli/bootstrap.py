# src/taskpulse/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- wires concrete implementations into AppState (stores, notifiers, calendar,
  schedulers, orchestrator).

Nothing here starts a timer; `NotificationOrchestrator.initialize` does that
from inside the running event loop.
"""

from __future__ import annotations

import asyncio
import logging

import httpx

from ..calendar.google import GoogleCalendarClient, TokenAuthorizer, _make_timeout
from ..calendar.reconciler import CalendarReconciler
from ..calendar.sync_records import CalendarSyncRecords
from ..config import get_settings
from ..core.clock import SystemClock, resolve_timezone
from ..core.state import AppState
from ..habits.detector import HabitDetector
from ..notify.channels import ConsoleNotices, DesktopNotifier
from ..notify.dispatcher import NotificationDispatcher
from ..orchestrator import NotificationOrchestrator
from ..schedulers.motivation import MotivationScheduler
from ..schedulers.reminders import ReminderScheduler
from ..storage.kv_store import SqliteKeyValueStore
from ..storage.ledger import DedupLedger
from ..storage.task_store import TaskStore

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.db_path.parent.mkdir(parents=True, exist_ok=True)
    settings.google_token_path.parent.mkdir(parents=True, exist_ok=True)


def create_initial_state(*, settings=None) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings injectable makes the app easier to test and avoids hidden global config reads.
    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    clock = SystemClock(resolve_timezone(settings.timezone))
    user_id = settings.user_id

    # One SQLite file holds tasks, task logs and the key-value table.
    task_store = TaskStore(settings.db_path)
    kv_store = SqliteKeyValueStore(settings.db_path)
    ledger = DedupLedger(kv_store)
    notices = ConsoleNotices()

    defaults = settings.notification_settings()
    dispatcher = NotificationDispatcher(
        in_app=notices,
        os_notifier=DesktopNotifier(app_name=settings.app_name),
        ledger=ledger,
        os_enabled=defaults.enabled and defaults.os_notifications_enabled,
    )

    http = httpx.AsyncClient(timeout=_make_timeout(5.0, 15.0))
    authorizer = TokenAuthorizer(
        token=settings.google_token,
        token_path=settings.google_token_path,
        http=http,
    )
    calendar_client = GoogleCalendarClient(
        authorizer,
        http=http,
        calendar_id=settings.calendar_id,
        base_url=settings.calendar_api_base,
        clock=clock,
    )
    reconciler = CalendarReconciler(
        api=calendar_client,
        authorizer=authorizer,
        records=CalendarSyncRecords(kv_store),
        notices=notices,
        clock=clock,
        request_delay_seconds=settings.calendar_request_delay_ms / 1000.0,
    )

    orchestrator = NotificationOrchestrator(
        reminders=ReminderScheduler(
            tasks=task_store,
            dispatcher=dispatcher,
            clock=clock,
            user_id=user_id,
            interval_seconds=settings.reminder_interval_seconds,
        ),
        motivation=MotivationScheduler(
            log=task_store,
            dispatcher=dispatcher,
            clock=clock,
            user_id=user_id,
            interval_seconds=settings.motivation_interval_seconds,
            start_hour=settings.motivation_start_hour,
            end_hour=settings.motivation_end_hour,
        ),
        habits=HabitDetector(
            log=task_store,
            dispatcher=dispatcher,
            clock=clock,
            user_id=user_id,
            check_at=settings.habit_check_time,
        ),
        reconciler=reconciler,
        dispatcher=dispatcher,
    )

    logger.debug("App wired: db=%s tz=%s user=%s", settings.db_path, clock.tz, user_id)
    return AppState(
        settings=settings,
        user_id=user_id,
        clock=clock,
        task_store=task_store,
        kv_store=kv_store,
        ledger=ledger,
        notices=notices,
        dispatcher=dispatcher,
        reconciler=reconciler,
        orchestrator=orchestrator,
        http=http,
        calendar_client=calendar_client,
    )


async def start_session(state: AppState) -> None:
    """Start the periodic components and, if configured, silently reconnect the calendar."""
    state.orchestrator.initialize(state.settings.notification_settings())

    if state.settings.calendar_auto_connect:
        if await state.reconciler.resume():
            tasks = await asyncio.to_thread(state.task_store.list_tasks, state.user_id)
            await state.orchestrator.on_tasks_changed(tasks)


async def shutdown_session(state: AppState) -> None:
    """Best-effort shutdown (no exceptions should escape)."""
    try:
        state.orchestrator.destroy()
    except Exception:
        logger.exception("Failed to stop schedulers.")

    # Stores use short-lived sqlite connections per call; no explicit close required.
    try:
        await state.http.aclose()
    except Exception:
        logger.debug("HTTP client close failed.", exc_info=True)
