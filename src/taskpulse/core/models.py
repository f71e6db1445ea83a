# src/taskpulse/core/models.py

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import StrEnum
from typing import Any


class LogAction(StrEnum):
    CREATED = "created"
    UPDATED = "updated"
    COMPLETED = "completed"

    @classmethod
    def from_db(cls, raw: str | None) -> LogAction:
        if not raw:
            return cls.UPDATED
        try:
            return cls(raw)
        except ValueError:
            return cls.UPDATED


class NotificationKind(StrEnum):
    REMINDER = "reminder"
    OVERDUE = "overdue"
    HABIT = "habit"
    MOTIVATION = "motivation"


class PermissionState(StrEnum):
    GRANTED = "granted"
    DENIED = "denied"


@dataclass(slots=True)
class Task:
    id: str
    user_id: str
    title: str
    created_at: datetime
    updated_at: datetime

    description: str | None = None
    due_date: datetime | None = None
    completed: bool = False
    priority: int = 3
    category_id: str | None = None
    tags: list[str] = field(default_factory=list)
    order_index: int = 0


@dataclass(frozen=True, slots=True)
class CompletionLogEntry:
    """
    One row of the append-only task log.

    `task` is the joined task row; it is None when the task no longer exists.
    """

    task_id: str
    user_id: str
    action: LogAction
    completed_at: datetime
    task: Task | None = None


@dataclass(frozen=True, slots=True)
class NotificationSettings:
    enabled: bool = True
    reminder_minutes: int = 30
    motivation_enabled: bool = True
    habit_tracking_enabled: bool = True
    os_notifications_enabled: bool = False

    def merged(self, **patch: Any) -> NotificationSettings:
        unknown = set(patch) - set(self.__dataclass_fields__)
        if unknown:
            raise ValueError(f"unknown notification settings: {', '.join(sorted(unknown))}")
        return replace(self, **patch)


@dataclass(frozen=True, slots=True)
class NoticeAction:
    """A button attached to an in-app notice (e.g. "View Task")."""

    label: str
    event: str
    payload: Any = None


@dataclass(frozen=True, slots=True)
class SyncResult:
    success: int = 0
    failed: int = 0


@dataclass(frozen=True, slots=True)
class SyncStats:
    synced: int
    pending: int
