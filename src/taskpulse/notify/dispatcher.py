# src/taskpulse/notify/dispatcher.py

"""
Notification dispatcher.

Single entry point for every notification-producing path (reminders, overdue
alerts, habit alerts, motivation). It:
- consults the dedup ledger when the caller supplies a key,
- always shows an in-app notice,
- additionally shows an OS notification when enabled and permitted,
- writes the ledger marker right after the in-app notice, before the OS call.

OS permission is requested lazily on the first OS-eligible notification and the
answer is cached for the session. A denial is never re-prompted.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from ..core.errors import PermissionDenied
from ..core.models import NoticeAction, NotificationKind, PermissionState
from ..core.ports import InAppNotifier, OsNotifier
from ..storage.ledger import DedupLedger

logger = logging.getLogger(__name__)

OS_TIMEOUT_MS = 5000


@dataclass(frozen=True, slots=True)
class _Severity:
    level: str  # info | success | error
    duration_ms: int


_SEVERITY: dict[NotificationKind, _Severity] = {
    NotificationKind.MOTIVATION: _Severity("success", 5000),
    NotificationKind.HABIT: _Severity("success", 8000),
    NotificationKind.REMINDER: _Severity("info", 10000),
    NotificationKind.OVERDUE: _Severity("error", 15000),
}


class NotificationDispatcher:
    def __init__(
            self,
            *,
            in_app: InAppNotifier,
            os_notifier: OsNotifier | None,
            ledger: DedupLedger,
            os_enabled: bool = False,
    ) -> None:
        self._in_app = in_app
        self._os = os_notifier
        self._ledger = ledger
        self._os_enabled = bool(os_enabled)
        self._permission: PermissionState | None = None
        # Keys between the ledger check and the marker write.
        self._inflight: set[str] = set()

    @property
    def permission(self) -> PermissionState | None:
        return self._permission

    def set_os_enabled(self, enabled: bool) -> None:
        self._os_enabled = bool(enabled)

    async def notify(
            self,
            kind: NotificationKind,
            title: str,
            message: str,
            *,
            description: str | None = None,
            action: NoticeAction | None = None,
            dedup_key: str | None = None,
    ) -> bool:
        """
        Deliver one logical notification.

        Returns True if it was delivered now, False if the ledger already had the key
        or another delivery of the same key is in flight.
        Errors from the in-app channel propagate and leave the ledger untouched.
        The marker is written before the OS notification is awaited, so a tick
        cancelled during the OS call cannot lose it.
        """
        if dedup_key is not None:
            if dedup_key in self._inflight:
                logger.debug("Skip in-flight duplicate kind=%s key=%s", kind.value, dedup_key)
                return False
            self._inflight.add(dedup_key)
        try:
            if dedup_key is not None and await self._ledger.has_sent(dedup_key):
                logger.debug("Skip duplicate kind=%s key=%s", kind.value, dedup_key)
                return False

            severity = _SEVERITY[kind]
            show = getattr(self._in_app, severity.level)
            show(message, description=description, action=action, duration_ms=severity.duration_ms)

            if dedup_key is not None:
                await self._ledger.mark_sent(dedup_key)
        finally:
            if dedup_key is not None:
                self._inflight.discard(dedup_key)

        logger.info("Notified kind=%s key=%s", kind.value, dedup_key)
        await self._maybe_os_notify(kind, title, message, tag=dedup_key or f"taskpulse-{kind.value}")
        return True

    async def _ensure_permission(self) -> bool:
        if self._permission is None:
            try:
                self._permission = await self._os.request_permission()  # type: ignore[union-attr]
            except PermissionDenied:
                self._permission = PermissionState.DENIED
            except Exception:
                logger.exception("OS notification permission request failed")
                self._permission = PermissionState.DENIED
            logger.info("OS notification permission: %s", self._permission.value)
        return self._permission == PermissionState.GRANTED

    async def _maybe_os_notify(self, kind: NotificationKind, title: str, body: str, *, tag: str) -> None:
        if not self._os_enabled or self._os is None:
            return
        if not await self._ensure_permission():
            return
        try:
            await self._os.show(title, body, tag=tag, timeout_ms=OS_TIMEOUT_MS)
        except PermissionDenied:
            logger.warning("OS notifications denied; falling back to in-app only for this session")
            self._permission = PermissionState.DENIED
        except Exception:
            logger.exception("OS notification failed kind=%s tag=%s", kind.value, tag)
