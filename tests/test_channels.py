# tests/test_channels.py

from __future__ import annotations

import asyncio
import io

import pytest

from taskpulse.core.errors import PermissionDenied
from taskpulse.core.models import NoticeAction, PermissionState
from taskpulse.notify import channels
from taskpulse.notify.channels import ConsoleNotices, DesktopNotifier


class HangingProcess:
    """Subprocess stand-in whose communicate() never returns."""

    def __init__(self) -> None:
        self.returncode: int | None = None
        self.killed = False
        self.waited = False

    async def communicate(self):
        await asyncio.Event().wait()

    def kill(self) -> None:
        self.killed = True

    async def wait(self) -> int:
        self.waited = True
        self.returncode = -9
        return self.returncode


class FinishedProcess:
    def __init__(self, returncode: int, stderr: bytes = b"") -> None:
        self.returncode = returncode
        self._stderr = stderr

    async def communicate(self):
        return b"", self._stderr


def _with_binary(monkeypatch, binary: str | None) -> None:
    monkeypatch.setattr(DesktopNotifier, "_binary", lambda self: binary)


def test_console_notices_print_level_and_details() -> None:
    out = io.StringIO()
    notices = ConsoleNotices(stream=out)

    notices.error("Overdue", description="Taxes", action=NoticeAction(label="Complete Now", event="open_task"))

    text = out.getvalue()
    assert "[ERROR] Overdue" in text
    assert "    Taxes" in text
    assert "-> Complete Now" in text


@pytest.mark.asyncio
async def test_timed_out_notifier_is_killed_and_reaped(monkeypatch) -> None:
    proc = HangingProcess()

    async def fake_exec(*cmd, **kwargs):
        return proc

    _with_binary(monkeypatch, "/usr/bin/notify-send")
    monkeypatch.setattr(channels.asyncio, "create_subprocess_exec", fake_exec)

    await DesktopNotifier(command_timeout_s=0.01).show("Task Reminder", "soon", tag="k1", timeout_ms=5000)

    assert proc.killed is True
    assert proc.waited is True


@pytest.mark.asyncio
async def test_nonzero_exit_is_logged_not_raised(monkeypatch, caplog) -> None:
    async def fake_exec(*cmd, **kwargs):
        return FinishedProcess(1, b"no dbus")

    _with_binary(monkeypatch, "/usr/bin/notify-send")
    monkeypatch.setattr(channels.asyncio, "create_subprocess_exec", fake_exec)

    await DesktopNotifier().show("Task Reminder", "soon", tag="k1", timeout_ms=5000)

    assert "no dbus" in caplog.text


@pytest.mark.asyncio
async def test_missing_notifier_means_denied(monkeypatch) -> None:
    _with_binary(monkeypatch, None)
    notifier = DesktopNotifier()

    assert await notifier.request_permission() == PermissionState.DENIED
    with pytest.raises(PermissionDenied):
        await notifier.show("t", "b", tag="k", timeout_ms=5000)
