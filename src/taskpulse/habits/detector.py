# src/taskpulse/habits/detector.py

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, time, timedelta

from ..core.clock import next_fire_time, seconds_until, week_start
from ..core.models import NoticeAction, NotificationKind
from ..core.ports import Clock, CompletionLog
from ..notify.dispatcher import NotificationDispatcher
from ..schedulers.base import PeriodicComponent, SleepFn
from ..storage.ledger import habit_key
from .analysis import HABIT_MIN_WEEKLY, WINDOW_WEEKS, HabitRecord, HabitWeekStats, analyze_habits, habit_week_stats

logger = logging.getLogger(__name__)

DEFAULT_CHECK_AT = time(20, 0)
DEFAULT_MISFIRE_GRACE_SECONDS = 300.0


@dataclass(frozen=True, slots=True)
class HabitReport:
    generated_at: datetime
    records: list[HabitRecord]
    stats: HabitWeekStats


class HabitDetector(PeriodicComponent):
    """
    Habit analysis on demand, plus a daily "habit formed" check.

    The daily check sleeps until the next local `check_at` time instead of polling.
    A wake-up later than `misfire_grace_seconds` past the target (suspended laptop)
    is skipped rather than caught up.
    """

    name = "habits"

    def __init__(
            self,
            *,
            log: CompletionLog,
            dispatcher: NotificationDispatcher,
            clock: Clock,
            user_id: str,
            check_at: time = DEFAULT_CHECK_AT,
            misfire_grace_seconds: float = DEFAULT_MISFIRE_GRACE_SECONDS,
            sleep: SleepFn = asyncio.sleep,
    ) -> None:
        super().__init__(sleep=sleep)
        self._log = log
        self._dispatcher = dispatcher
        self._clock = clock
        self._user_id = user_id
        self._check_at = check_at
        self._grace = max(0.0, float(misfire_grace_seconds))

    def next_check_time(self) -> datetime:
        return next_fire_time(self._clock.now(), self._check_at)

    async def analyze(self) -> HabitReport:
        """Full recomputation over the trailing 8 ISO weeks. Fetch errors propagate."""
        now = self._clock.now()
        today = now.date()
        first_week = week_start(today) - timedelta(weeks=WINDOW_WEEKS - 1)
        since = datetime.combine(first_week, time.min, tzinfo=self._clock.tz)

        entries = await self._log.list_completions(self._user_id, since=since)
        records = analyze_habits(entries, today=today, tz=self._clock.tz)
        logger.debug("Habit analysis: %d entries -> %d records", len(entries), len(records))
        return HabitReport(generated_at=now, records=records, stats=habit_week_stats(records))

    async def check_habits(self, generation: int | None = None) -> int:
        """Send "habit formed" once per (task, ISO week) for tasks at 4+ completions this week."""
        if not (self._settings.enabled and self._settings.habit_tracking_enabled):
            return 0

        report = await self.analyze()
        if not self._is_current(generation):
            return 0

        today = report.generated_at.date()
        delivered = 0
        for record in report.records:
            if record.completions_this_week < HABIT_MIN_WEEKLY:
                continue
            if not self._is_current(generation):
                break
            title = record.task.title
            sent = await self._dispatcher.notify(
                NotificationKind.HABIT,
                "Habit Formed!",
                f'\U0001F389 "{title}" is becoming a habit!',
                description=f"You've completed this task {record.completions_this_week} times this week!",
                action=NoticeAction(label="View Streak", event="view_habits", payload=record.task.id),
                dedup_key=habit_key(record.task.id, today),
            )
            delivered += int(sent)
        return delivered

    async def _run(self, generation: int) -> None:
        target = self.next_check_time()
        while True:
            await self._sleep(seconds_until(self._clock.now(), target))

            now = self._clock.now()
            if now < target:
                continue

            late_by = seconds_until(target, now)
            if late_by > self._grace:
                logger.info("Habit check missed by %.0fs, skipping until next day", late_by)
            else:
                await self._guarded("habit check", lambda: self.check_habits(generation))
                if not self._is_current(generation):
                    return

            target = next_fire_time(max(self._clock.now(), target), self._check_at)
            logger.debug("Next habit check at %s", target.isoformat())
