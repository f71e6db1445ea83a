# src/taskpulse/calendar/mapping.py

from __future__ import annotations

from datetime import timedelta, tzinfo
from typing import Any

from ..core.clock import zone_name
from ..core.models import Task

EVENT_MARKER = "\U0001F4CB"  # clipboard glyph; also the search term for our own events
EVENT_DURATION = timedelta(minutes=30)

_PRIORITY_LABELS = {5: "Very High", 4: "High", 3: "Medium", 2: "Low", 1: "Very Low"}
_PRIORITY_COLORS = {5: "11", 4: "6", 3: "5", 2: "7", 1: "8"}  # Google Calendar color ids
_DEFAULT_LABEL = "Medium"
_DEFAULT_COLOR = "1"


def priority_label(priority: int) -> str:
    return _PRIORITY_LABELS.get(priority, _DEFAULT_LABEL)


def priority_color(priority: int) -> str:
    return _PRIORITY_COLORS.get(priority, _DEFAULT_COLOR)


def format_description(task: Task) -> str:
    parts = [f"Todo Task: {task.title}", ""]
    if task.description:
        parts += [f"Description: {task.description}", ""]
    parts.append(f"Priority: {priority_label(task.priority)}")
    parts.append(f"Status: {'Completed' if task.completed else 'Pending'}")
    parts += ["", "Created by taskpulse"]
    return "\n".join(parts)


def build_event(task: Task, tz: tzinfo) -> dict[str, Any]:
    """Calendar event body for a task with a due date (Google Calendar v3 shape)."""
    if task.due_date is None:
        raise ValueError(f"task {task.id} has no due date")

    start = task.due_date.astimezone(tz)
    end = start + EVENT_DURATION
    tz_name = zone_name(tz)

    return {
        "summary": f"{EVENT_MARKER} {task.title}",
        "description": format_description(task),
        "start": {"dateTime": start.isoformat(), "timeZone": tz_name},
        "end": {"dateTime": end.isoformat(), "timeZone": tz_name},
        "colorId": priority_color(task.priority),
        "status": "cancelled" if task.completed else "confirmed",
    }
