# src/taskpulse/core/state.py

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import httpx

from ..storage.kv_store import SqliteKeyValueStore
from ..storage.ledger import DedupLedger
from ..storage.task_store import TaskStore
from .ports import Clock, InAppNotifier

if TYPE_CHECKING:
    from ..calendar.google import GoogleCalendarClient
    from ..calendar.reconciler import CalendarReconciler
    from ..notify.dispatcher import NotificationDispatcher
    from ..orchestrator import NotificationOrchestrator


@dataclass(slots=True)
class AppState:
    """
    Runtime application state shared by connectors and commands.

    Keep it small:
    - settings (immutable config)
    - wired components (stores, dispatcher, orchestrator, calendar)
    - the shared HTTP client, closed on shutdown
    """

    settings: Any
    user_id: str
    clock: Clock

    task_store: TaskStore
    kv_store: SqliteKeyValueStore
    ledger: DedupLedger
    notices: InAppNotifier

    dispatcher: NotificationDispatcher
    reconciler: CalendarReconciler
    orchestrator: NotificationOrchestrator

    http: httpx.AsyncClient
    calendar_client: GoogleCalendarClient
