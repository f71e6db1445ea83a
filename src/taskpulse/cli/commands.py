# src/taskpulse/cli/commands.py

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from datetime import datetime, timedelta
from typing import Any

from ..core.models import NotificationSettings, Task
from ..core.state import AppState

CommandHandler = Callable[[AppState, list[str]], Awaitable[str]]

logger = logging.getLogger(__name__)

_TRUE = {"1", "true", "yes", "y", "on"}
_FALSE = {"0", "false", "no", "n", "off"}


class CommandRegistry:
    """Simple slash-command registry used by connectors (/help, /tasks, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    async def handle(self, state: AppState, line: str) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.
        """
        if not line.startswith("/"):
            return None

        parts = line[1:].split()
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        return await handler(state, args)

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


def _fmt_dt(dt: datetime | None, state: AppState) -> str:
    if dt is None:
        return "-"
    return dt.astimezone(state.clock.tz).strftime("%Y-%m-%d %H:%M")


async def _list_tasks(state: AppState) -> list[Task]:
    # TaskStore is synchronous SQLite; keep it off the event loop.
    return await asyncio.to_thread(state.task_store.list_tasks, state.user_id)


async def _find_task(state: AppState, ref: str) -> Task | str:
    """Resolve a task by id or unique id prefix. Returns an error message on failure."""
    tasks = await _list_tasks(state)
    matches = [t for t in tasks if t.id == ref] or [t for t in tasks if t.id.startswith(ref)]
    if not matches:
        return f"No task matches '{ref}'."
    if len(matches) > 1:
        return f"'{ref}' is ambiguous ({len(matches)} tasks). Use more characters."
    return matches[0]


async def _tasks_changed(state: AppState) -> None:
    await state.orchestrator.on_tasks_changed(await _list_tasks(state))


def _parse_setting(current: NotificationSettings, key: str, raw: str) -> Any:
    if key not in current.__dataclass_fields__:
        raise ValueError(f"unknown setting '{key}'")
    if isinstance(getattr(current, key), bool):
        low = raw.strip().lower()
        if low in _TRUE:
            return True
        if low in _FALSE:
            return False
        raise ValueError(f"'{key}' expects on/off, got '{raw}'")
    value = int(raw)
    if value < 0:
        raise ValueError(f"'{key}' must be >= 0")
    return value


def _format_settings(s: NotificationSettings) -> str:
    return "Notification settings:\n" + "\n".join(
        f"  {name}={getattr(s, name)}" for name in s.__dataclass_fields__
    )


async def cmd_help(state: AppState, args: list[str]) -> str:
    return registry.build_help()


async def cmd_tasks(state: AppState, args: list[str]) -> str:
    tasks = await _list_tasks(state)
    if not tasks:
        return "No tasks yet. Add one with /add <minutes> <title>."
    lines = ["Tasks:"]
    for t in tasks:
        mark = "x" if t.completed else " "
        lines.append(f"  [{mark}] {t.id[:8]}  {t.title}  (due {_fmt_dt(t.due_date, state)}, p{t.priority})")
    return "\n".join(lines)


async def cmd_add(state: AppState, args: list[str]) -> str:
    """
    /add <minutes> <title>   -> task due in <minutes> from now
    /add - <title>           -> task without a due date
    """
    if len(args) < 2:
        return "Usage: /add <minutes|-> <title>"

    due: datetime | None = None
    if args[0] != "-":
        try:
            minutes = int(args[0])
        except ValueError:
            return "Usage: /add <minutes|-> <title>"
        due = state.clock.now() + timedelta(minutes=minutes)

    task = await asyncio.to_thread(
        state.task_store.add_task, user_id=state.user_id, title=" ".join(args[1:]), due_date=due
    )
    await _tasks_changed(state)
    return f"Added {task.id[:8]}: {task.title} (due {_fmt_dt(task.due_date, state)})"


async def cmd_done(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /done <id>"
    found = await _find_task(state, args[0])
    if isinstance(found, str):
        return found
    if found.completed:
        return f"'{found.title}' is already completed."
    await asyncio.to_thread(state.task_store.complete_task, found.id, completed_at=state.clock.now())
    await _tasks_changed(state)
    return f"Completed: {found.title}"


async def cmd_delete(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /delete <id>"
    found = await _find_task(state, args[0])
    if isinstance(found, str):
        return found
    await asyncio.to_thread(state.task_store.delete_task, found.id)
    await state.orchestrator.on_task_deleted(found.id)
    return f"Deleted: {found.title}"


async def cmd_habits(state: AppState, args: list[str]) -> str:
    report = await state.orchestrator.analyze_habits()
    if not report.records:
        return "No habits yet. Complete a task 3+ times this week to see it here."

    stats = report.stats
    lines = [
        f"Habits: {stats.total_habits} formed, {stats.active_habits} active this week, "
        f"{stats.perfect_weeks} perfect, avg {stats.average_completions}/week",
    ]
    for r in report.records:
        marker = " (habit)" if r.is_habit else ""
        lines.append(
            f"  {r.task.title}: {r.completions_this_week}/7 {r.strength.value}, "
            f"streak {r.streak_days}d {r.badge.value}{marker}"
        )
    return "\n".join(lines)


async def cmd_connect(state: AppState, args: list[str]) -> str:
    ok = await state.reconciler.connect(await _list_tasks(state))
    return "Calendar connected." if ok else "Calendar not connected."


async def cmd_disconnect(state: AppState, args: list[str]) -> str:
    cleared = await state.reconciler.disconnect()
    return f"Calendar disconnected ({cleared} mapping(s) cleared)."


async def cmd_sync(state: AppState, args: list[str]) -> str:
    tasks = await _list_tasks(state)
    result = await state.reconciler.sync_all(tasks)
    stats = await state.reconciler.sync_stats(tasks)
    return (
        f"Sync finished: {result.success} synced, {result.failed} failed. "
        f"Calendar now has {stats.synced} task(s), {stats.pending} pending."
    )


async def cmd_autosync(state: AppState, args: list[str]) -> str:
    """
    /autosync       -> show status
    /autosync on    -> enable
    /autosync off   -> disable
    """
    records = state.reconciler.records
    if not args:
        enabled = await records.auto_sync_enabled()
        return f"Auto-sync is {'ON' if enabled else 'OFF'}. Use /autosync on or /autosync off."

    arg = args[0].lower()
    if arg in _TRUE:
        await state.reconciler.set_auto_sync(True)
        await _tasks_changed(state)
        return "Auto-sync enabled."
    if arg in _FALSE:
        await state.reconciler.set_auto_sync(False)
        return "Auto-sync disabled."
    return "Usage: /autosync on or /autosync off."


async def cmd_upcoming(state: AppState, args: list[str]) -> str:
    try:
        days = int(args[0]) if args else 7
    except ValueError:
        return "Usage: /upcoming [days]"
    if not state.reconciler.is_connected:
        return "Calendar not connected. Use /connect first."

    events = await state.reconciler.upcoming(days)
    if not events:
        return f"No synced events in the next {days} day(s)."
    lines = [f"Upcoming synced events ({days} day(s)):"]
    for ev in events:
        start = (ev.get("start") or {}).get("dateTime") or (ev.get("start") or {}).get("date") or "?"
        lines.append(f"  {start}  {ev.get('summary', '(no title)')}")
    return "\n".join(lines)


async def cmd_settings(state: AppState, args: list[str]) -> str:
    """
    /settings                         -> show current notification settings
    /settings key=value [key=value]   -> patch them (bools accept on/off)
    """
    current = state.orchestrator.settings
    if not args:
        return _format_settings(current)

    patch: dict[str, Any] = {}
    for item in args:
        key, sep, raw = item.partition("=")
        if not sep:
            return "Usage: /settings key=value [key=value ...]"
        try:
            patch[key.strip()] = _parse_setting(current, key.strip(), raw)
        except ValueError as e:
            return f"Invalid setting: {e}"

    new = state.orchestrator.update_settings(**patch)
    logger.debug("Settings updated via command: %s", patch)
    return _format_settings(new)


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("tasks", cmd_tasks, help_text="List tasks.", aliases=["ls"])
registry.register("add", cmd_add, help_text="Add a task: /add <minutes|-> <title>.")
registry.register("done", cmd_done, help_text="Complete a task: /done <id>.")
registry.register("delete", cmd_delete, help_text="Delete a task: /delete <id>.", aliases=["rm"])
registry.register("habits", cmd_habits, help_text="Show habit analysis for the last 8 weeks.")
registry.register("connect", cmd_connect, help_text="Connect Google Calendar.")
registry.register("disconnect", cmd_disconnect, help_text="Disconnect Google Calendar.")
registry.register("sync", cmd_sync, help_text="Sync all pending tasks to the calendar.")
registry.register("autosync", cmd_autosync, help_text="Auto-sync: /autosync on | /autosync off.")
registry.register("upcoming", cmd_upcoming, help_text="List synced calendar events: /upcoming [days].")
registry.register(
    "settings", cmd_settings, help_text="Show or change notification settings: /settings key=value."
)
