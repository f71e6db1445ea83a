# src/taskpulse/notify/channels.py

"""
Concrete delivery channels.

- ConsoleNotices: in-app transient notices printed to the console with a timestamp.
- DesktopNotifier: OS-level notifications via notify-send (Linux) or osascript (macOS).
"""

from __future__ import annotations

import asyncio
import logging
import shutil
import sys
from datetime import datetime

from ..core.errors import PermissionDenied
from ..core.models import NoticeAction, PermissionState

logger = logging.getLogger(__name__)


def _ts_local() -> str:
    return datetime.now().astimezone().strftime("%Y-%m-%d %H:%M:%S")


class ConsoleNotices:
    """In-app notices for the console connector. Durations only matter to GUIs; we log them."""

    def __init__(self, *, stream=None) -> None:
        self._stream = stream

    def _emit(
            self,
            level: str,
            message: str,
            description: str | None,
            action: NoticeAction | None,
            duration_ms: int,
    ) -> None:
        line = f"[{_ts_local()}] [{level}] {message}"
        if description:
            line += f"\n    {description}"
        if action is not None:
            line += f"\n    -> {action.label}"
        print(line, file=self._stream or sys.stdout, flush=True)
        logger.debug("Notice level=%s duration_ms=%s text=%r", level, duration_ms, message)

    def info(self, message, *, description=None, action=None, duration_ms=5000) -> None:
        self._emit("INFO", message, description, action, duration_ms)

    def success(self, message, *, description=None, action=None, duration_ms=5000) -> None:
        self._emit("OK", message, description, action, duration_ms)

    def error(self, message, *, description=None, action=None, duration_ms=5000) -> None:
        self._emit("ERROR", message, description, action, duration_ms)


def _escape_applescript(s: str) -> str:
    return s.replace("\\", "\\\\").replace('"', '\\"')


class DesktopNotifier:
    """
    OS notifications through the platform's command-line notifier.

    Permission means "a notifier binary exists on this host". The `tag` is passed to
    notify-send as a synchronous hint so repeated notices for one event replace each other.
    """

    def __init__(self, *, app_name: str = "taskpulse", command_timeout_s: float = 5.0) -> None:
        self._app_name = app_name
        self._timeout_s = command_timeout_s

    def _binary(self) -> str | None:
        if sys.platform.startswith("linux"):
            return shutil.which("notify-send")
        if sys.platform == "darwin":
            return shutil.which("osascript")
        return None

    async def request_permission(self) -> PermissionState:
        binary = self._binary()
        if binary is None:
            logger.info("No desktop notifier found on %s", sys.platform)
            return PermissionState.DENIED
        return PermissionState.GRANTED

    def _command(self, binary: str, title: str, body: str, tag: str, timeout_ms: int) -> list[str]:
        if sys.platform == "darwin":
            script = (
                f'display notification "{_escape_applescript(body)}" '
                f'with title "{_escape_applescript(title)}"'
            )
            return [binary, "-e", script]
        return [
            binary,
            "--app-name", self._app_name,
            "--expire-time", str(int(timeout_ms)),
            "--hint", f"string:x-canonical-private-synchronous:{tag}",
            title,
            body,
        ]

    async def show(self, title: str, body: str, *, tag: str, timeout_ms: int) -> None:
        binary = self._binary()
        if binary is None:
            raise PermissionDenied("desktop notifier is not available")

        cmd = self._command(binary, title, body, tag, timeout_ms)
        try:
            proc = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError as e:
            raise PermissionDenied(str(e)) from e

        try:
            _, stderr = await asyncio.wait_for(proc.communicate(), timeout=self._timeout_s)
        except asyncio.TimeoutError:
            proc.kill()
            await proc.wait()
            logger.warning("Desktop notifier timed out tag=%s", tag)
            return

        if proc.returncode != 0:
            logger.warning(
                "Desktop notifier exited %s tag=%s: %s",
                proc.returncode,
                tag,
                (stderr or b"").decode("utf-8", "replace").strip(),
            )
