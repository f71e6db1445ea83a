# src/taskpulse/habits/analysis.py

"""
Habit analytics over the completion log.

Pure functions: no I/O, no clock. The caller passes "today" and the zone used to
bucket completion timestamps into local calendar days.
"""

from __future__ import annotations

from collections import Counter, defaultdict
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date, timedelta, tzinfo
from enum import StrEnum

from ..core.clock import week_start
from ..core.models import CompletionLogEntry, LogAction, Task

WINDOW_WEEKS = 8
STREAK_LOOKBACK_DAYS = 30
HABIT_MIN_WEEKLY = 4
SURFACE_MIN_THIS_WEEK = 3


class HabitStrength(StrEnum):
    PERFECT = "Perfect"
    STRONG = "Strong"
    BUILDING = "Building"
    WEAK = "Weak"

    @property
    def progress(self) -> int:
        return {"Perfect": 100, "Strong": 80, "Building": 60, "Weak": 30}[self.value]


class StreakBadge(StrEnum):
    CHAMPION = "Champion"
    ON_FIRE = "On Fire"
    STRONG = "Strong"
    BUILDING = "Building"
    STARTING = "Starting"


def classify_strength(completions_this_week: int) -> HabitStrength:
    if completions_this_week >= 7:
        return HabitStrength.PERFECT
    if completions_this_week >= 5:
        return HabitStrength.STRONG
    if completions_this_week >= 3:
        return HabitStrength.BUILDING
    return HabitStrength.WEAK


def streak_badge(streak: int) -> StreakBadge:
    if streak >= 30:
        return StreakBadge.CHAMPION
    if streak >= 14:
        return StreakBadge.ON_FIRE
    if streak >= 7:
        return StreakBadge.STRONG
    if streak >= 3:
        return StreakBadge.BUILDING
    return StreakBadge.STARTING


@dataclass(frozen=True, slots=True)
class HabitRecord:
    task: Task
    completions_this_week: int
    streak_days: int
    weekly_completions: dict[str, int] = field(default_factory=dict)  # ISO week start -> count, newest first
    is_habit: bool = False

    @property
    def score(self) -> int:
        return self.completions_this_week * 2 + self.streak_days

    @property
    def strength(self) -> HabitStrength:
        return classify_strength(self.completions_this_week)

    @property
    def badge(self) -> StreakBadge:
        return streak_badge(self.streak_days)


@dataclass(frozen=True, slots=True)
class HabitWeekStats:
    total_habits: int
    active_habits: int
    perfect_weeks: int
    average_completions: float


def weekly_histogram(days: Iterable[date], today: date, *, weeks: int = WINDOW_WEEKS) -> dict[str, int]:
    """Completion counts per ISO week (Monday start) for the trailing `weeks` weeks."""
    current = week_start(today)
    counts = Counter(week_start(d) for d in days)
    out: dict[str, int] = {}
    for i in range(weeks):
        start = current - timedelta(weeks=i)
        out[start.isoformat()] = counts.get(start, 0)
    return out


def streak_days(days: Iterable[date], today: date, *, lookback: int = STREAK_LOOKBACK_DAYS) -> int:
    """
    Consecutive days with at least one completion, walking back from today.

    Today may still be empty (the day is not over), in which case the walk
    starts at yesterday. The first empty day after that ends the streak.
    """
    done = set(days)
    streak = 0
    for i in range(lookback):
        day = today - timedelta(days=i)
        if day in done:
            streak += 1
        elif i == 0:
            continue
        else:
            break
    return streak


def analyze_habits(entries: Iterable[CompletionLogEntry], *, today: date, tz: tzinfo) -> list[HabitRecord]:
    tasks: dict[str, Task] = {}
    days_by_task: dict[str, list[date]] = defaultdict(list)
    for entry in entries:
        if entry.action != LogAction.COMPLETED or entry.task is None:
            continue
        tasks.setdefault(entry.task_id, entry.task)
        days_by_task[entry.task_id].append(entry.completed_at.astimezone(tz).date())

    this_week_key = week_start(today).isoformat()
    records: list[HabitRecord] = []

    for task_id, days in days_by_task.items():
        task = tasks[task_id]

        histogram = weekly_histogram(days, today)
        this_week = histogram[this_week_key]
        is_habit = max(histogram.values()) >= HABIT_MIN_WEEKLY

        if not (is_habit or this_week >= SURFACE_MIN_THIS_WEEK):
            continue

        records.append(
            HabitRecord(
                task=task,
                completions_this_week=this_week,
                streak_days=streak_days(days, today),
                weekly_completions=histogram,
                is_habit=is_habit,
            )
        )

    records.sort(key=lambda r: r.score, reverse=True)
    return records


def habit_week_stats(records: list[HabitRecord]) -> HabitWeekStats:
    if not records:
        return HabitWeekStats(total_habits=0, active_habits=0, perfect_weeks=0, average_completions=0.0)
    total = sum(r.completions_this_week for r in records)
    return HabitWeekStats(
        total_habits=sum(1 for r in records if r.is_habit),
        active_habits=sum(1 for r in records if r.completions_this_week >= HABIT_MIN_WEEKLY),
        perfect_weeks=sum(1 for r in records if r.completions_this_week >= 7),
        average_completions=round(total / len(records), 1),
    )
