# src/taskpulse/core/ports.py

"""
Ports (interfaces) used by the core.

Schedulers, the dispatcher and the reconciler depend on these Protocols instead of
concrete implementations. Storage, the calendar provider and the OS notification
facility stay swappable, and tests can drive everything with in-memory fakes.
"""

from __future__ import annotations

from datetime import datetime, tzinfo
from typing import Any, Protocol

from .models import CompletionLogEntry, NoticeAction, PermissionState, Task


class Clock(Protocol):
    """Wall clock in the user's local zone."""

    @property
    def tz(self) -> tzinfo: ...

    def now(self) -> datetime: ...


class TaskSource(Protocol):
    async def list_due_tasks(self, user_id: str) -> list[Task]: ...


class CompletionLog(Protocol):
    async def list_completions(self, user_id: str, *, since: datetime) -> list[CompletionLogEntry]: ...


class KeyValueStore(Protocol):
    """Persisted key -> string value store backing the ledger and calendar sync records."""

    async def get(self, key: str) -> str | None: ...
    async def set(self, key: str, value: str) -> None: ...
    async def delete(self, key: str) -> None: ...
    async def keys(self, prefix: str = "") -> list[str]: ...


class InAppNotifier(Protocol):
    """Transient in-app notices (toasts)."""

    def info(
            self,
            message: str,
            *,
            description: str | None = None,
            action: NoticeAction | None = None,
            duration_ms: int = 5000,
    ) -> None: ...

    def success(
            self,
            message: str,
            *,
            description: str | None = None,
            action: NoticeAction | None = None,
            duration_ms: int = 5000,
    ) -> None: ...

    def error(
            self,
            message: str,
            *,
            description: str | None = None,
            action: NoticeAction | None = None,
            duration_ms: int = 5000,
    ) -> None: ...


class OsNotifier(Protocol):
    async def request_permission(self) -> PermissionState: ...

    async def show(self, title: str, body: str, *, tag: str, timeout_ms: int) -> None: ...


class CalendarAuthorizer(Protocol):
    async def authorize(self) -> bool: ...
    def is_authorized(self) -> bool: ...
    async def revoke(self) -> None: ...
    def access_token(self) -> str: ...


class CalendarApi(Protocol):
    async def create_event(self, event: dict[str, Any]) -> str: ...
    async def update_event(self, event_id: str, event: dict[str, Any]) -> bool: ...
    async def delete_event(self, event_id: str) -> bool: ...
    async def list_upcoming(self, window_days: int = 7, *, query: str | None = None) -> list[dict[str, Any]]: ...
