# tests/test_commands.py

from __future__ import annotations

import threading
from datetime import timedelta
from pathlib import Path
from types import SimpleNamespace

import pytest

from taskpulse.calendar.reconciler import CalendarReconciler
from taskpulse.calendar.sync_records import CalendarSyncRecords
from taskpulse.cli.commands import CommandRegistry, registry
from taskpulse.connectors.console_connector import handle_line
from taskpulse.core.models import NotificationSettings
from taskpulse.core.state import AppState
from taskpulse.habits.detector import HabitDetector
from taskpulse.orchestrator import NotificationOrchestrator
from taskpulse.schedulers.motivation import MotivationScheduler
from taskpulse.schedulers.reminders import ReminderScheduler
from taskpulse.storage.kv_store import SqliteKeyValueStore
from taskpulse.storage.ledger import DedupLedger
from taskpulse.storage.task_store import TaskStore

from .conftest import NOW
from .fakes import FakeAuthorizer, FakeCalendarApi, FakeSleep, settle


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with AppState and the commands.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated and deterministic.
    """
    return SimpleNamespace(
        app_name="taskpulse-test",
        user_id="u1",
        db_path=tmp_path / "taskpulse.sqlite3",
        notification_settings=NotificationSettings,
    )


@pytest.fixture()
def api() -> FakeCalendarApi:
    return FakeCalendarApi()


@pytest.fixture()
def auth() -> FakeAuthorizer:
    return FakeAuthorizer(authorized=False)


@pytest.fixture()
def state(settings, clock, in_app, os_notifier, dispatcher, api, auth) -> AppState:
    """
    AppState wired with deterministic fakes.

    NOTE: We keep real SQLite stores here (TaskStore/SqliteKeyValueStore) because
    the commands read and write through them.
    """
    task_store = TaskStore(settings.db_path)
    kv_store = SqliteKeyValueStore(settings.db_path)
    sleep = FakeSleep(clock, max_calls=0)
    reconciler = CalendarReconciler(
        api=api,
        authorizer=auth,
        records=CalendarSyncRecords(kv_store),
        notices=in_app,
        clock=clock,
        sleep=FakeSleep(),
    )
    orchestrator = NotificationOrchestrator(
        reminders=ReminderScheduler(tasks=task_store, dispatcher=dispatcher, clock=clock, user_id="u1", sleep=sleep),
        motivation=MotivationScheduler(log=task_store, dispatcher=dispatcher, clock=clock, user_id="u1", sleep=sleep),
        habits=HabitDetector(log=task_store, dispatcher=dispatcher, clock=clock, user_id="u1", sleep=sleep),
        reconciler=reconciler,
        dispatcher=dispatcher,
    )
    return AppState(
        settings=settings,
        user_id="u1",
        clock=clock,
        task_store=task_store,
        kv_store=kv_store,
        ledger=DedupLedger(kv_store),
        notices=in_app,
        dispatcher=dispatcher,
        reconciler=reconciler,
        orchestrator=orchestrator,
        http=None,  # type: ignore[arg-type]
        calendar_client=None,  # type: ignore[arg-type]
    )


@pytest.mark.asyncio
async def test_command_registry_routes_and_aliases(state) -> None:
    reg = CommandRegistry()
    seen: list[list[str]] = []

    async def echo(state, args):
        seen.append(args)
        return "echo"

    reg.register("echo", echo, "echo", aliases=["e"])

    assert await reg.handle(state, "/echo a b") == "echo"
    assert await reg.handle(state, "/E c") == "echo"
    assert seen == [["a", "b"], ["c"]]
    assert "/echo - echo" in reg.build_help()


@pytest.mark.asyncio
async def test_command_registry_unknown_and_non_command(state) -> None:
    reg = CommandRegistry()
    assert await reg.handle(state, "hello") is None
    assert "Unknown command" in (await reg.handle(state, "/nope") or "")
    assert "Empty command" in (await reg.handle(state, "/") or "")


@pytest.mark.asyncio
async def test_add_done_delete_flow(state) -> None:
    reply = await registry.handle(state, "/add 45 Write the report")
    assert reply is not None and reply.startswith("Added ")

    (task,) = state.task_store.list_tasks("u1")
    assert task.title == "Write the report"
    assert task.due_date == NOW + timedelta(minutes=45)

    listing = await registry.handle(state, "/tasks")
    assert f"[ ] {task.id[:8]}  Write the report" in (listing or "")

    assert await registry.handle(state, f"/done {task.id[:6]}") == "Completed: Write the report"
    assert "already completed" in (await registry.handle(state, f"/done {task.id}") or "")

    entries = await state.task_store.list_completions("u1", since=NOW - timedelta(days=1))
    assert [e.task_id for e in entries] == [task.id]

    assert await registry.handle(state, f"/rm {task.id}") == "Deleted: Write the report"
    assert state.task_store.list_tasks("u1") == []


@pytest.mark.asyncio
async def test_add_validates_arguments(state) -> None:
    assert (await registry.handle(state, "/add soon thing") or "").startswith("Usage")
    assert (await registry.handle(state, "/add 10") or "").startswith("Usage")
    assert "due -" in (await registry.handle(state, "/add - Undated thing") or "")
    assert "No task matches" in (await registry.handle(state, "/done zzz") or "")


@pytest.mark.asyncio
async def test_new_task_is_auto_synced_when_connected(state, api, auth) -> None:
    auth.authorized = True
    await state.reconciler.set_auto_sync(True)

    await registry.handle(state, "/add 30 Dentist")

    assert len(api.events) == 1
    assert "Calendar now has 1 task(s), 0 pending" in (await registry.handle(state, "/sync") or "")


@pytest.mark.asyncio
async def test_connect_and_disconnect(state, api, auth) -> None:
    await registry.handle(state, "/autosync on")
    await registry.handle(state, "/add 30 Dentist")
    assert api.events == {}

    assert await registry.handle(state, "/connect") == "Calendar connected."
    assert len(api.events) == 1
    assert "Auto-sync is ON" in (await registry.handle(state, "/autosync") or "")

    assert await registry.handle(state, "/disconnect") == "Calendar disconnected (1 mapping(s) cleared)."
    assert "not connected" in (await registry.handle(state, "/upcoming") or "")


@pytest.mark.asyncio
async def test_settings_command_patches_orchestrator(state) -> None:
    state.orchestrator.initialize(NotificationSettings())
    await settle()

    reply = await registry.handle(state, "/settings reminder_minutes=10 motivation_enabled=off")

    assert "reminder_minutes=10" in (reply or "")
    assert state.orchestrator.settings.reminder_minutes == 10
    assert not state.orchestrator.motivation.is_running
    assert "Invalid setting" in (await registry.handle(state, "/settings volume=3") or "")
    assert "expects on/off" in (await registry.handle(state, "/settings enabled=maybe") or "")

    state.orchestrator.destroy()
    await settle()


@pytest.mark.asyncio
async def test_habits_command(state, clock) -> None:
    assert "No habits yet" in (await registry.handle(state, "/habits") or "")

    task = state.task_store.add_task(user_id="u1", title="Stretch")
    for i in range(4):
        state.task_store.complete_task(task.id, completed_at=NOW - timedelta(hours=i))

    reply = await registry.handle(state, "/habits") or ""
    assert "Stretch: 4/7 Building" in reply
    assert "(habit)" in reply


@pytest.mark.asyncio
async def test_console_line_handling(state) -> None:
    assert await handle_line(state, "   ") is None
    assert "Commands start with '/'" in (await handle_line(state, "hello") or "")
    assert "Available commands" in (await handle_line(state, "/help") or "")


@pytest.mark.asyncio
async def test_task_store_runs_in_worker_threads(state, monkeypatch) -> None:
    loop_thread = threading.get_ident()
    threads: list[int] = []
    store = state.task_store

    def spy(fn):
        def wrapper(*args, **kwargs):
            threads.append(threading.get_ident())
            return fn(*args, **kwargs)

        return wrapper

    for name in ("list_tasks", "add_task", "complete_task", "delete_task"):
        monkeypatch.setattr(store, name, spy(getattr(store, name)))

    await registry.handle(state, "/add 10 Stretch")
    (task,) = TaskStore.list_tasks(store, "u1")
    await registry.handle(state, f"/done {task.id}")
    await registry.handle(state, f"/delete {task.id}")
    await registry.handle(state, "/tasks")

    # add + list, then list + complete + list, then list + delete, then list
    assert len(threads) == 8
    assert loop_thread not in threads
