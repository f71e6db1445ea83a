# src/taskpulse/schedulers/motivation.py

from __future__ import annotations

import asyncio
import logging
import random

from ..core.clock import start_of_day
from ..core.errors import TransientFetchError
from ..core.models import NotificationKind
from ..core.ports import Clock, CompletionLog
from ..notify.dispatcher import NotificationDispatcher
from .base import PeriodicComponent, SleepFn

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL_SECONDS = 2 * 60 * 60

_NONE_YET = (
    "Every journey begins with a single step! Start your first task today.",
    "The best time to start was yesterday. The second best time is now!",
    "Small progress is still progress. Begin with one task!",
    "Your future self will thank you for starting today.",
    "Productivity is about progress, not perfection. Let's begin!",
)
_WARMING_UP = (
    "Great start! You're building momentum.",
    "Every completed task is a victory! Keep going!",
    "You're on the right track. What's next on your list?",
    "Consistency is key. You're doing amazing!",
    "Small wins lead to big achievements!",
)
_ON_A_ROLL = (
    "You're on fire today! Amazing progress!",
    "Look at you being productive! Keep it up!",
    "You're crushing your goals today!",
    "This is what success looks like! Well done!",
    "Your dedication is inspiring!",
)
_UNSTOPPABLE = (
    "Incredible productivity today! You're unstoppable!",
    "You're a productivity machine! Outstanding work!",
    "Today you're showing what excellence looks like!",
    "Your commitment to getting things done is remarkable!",
    "You've turned productivity into an art form today!",
)


def motivation_messages(completed_today: int) -> tuple[str, ...]:
    """Message band for today's completion count: 0, 1-2, 3-5, 6+."""
    if completed_today <= 0:
        return _NONE_YET
    if completed_today <= 2:
        return _WARMING_UP
    if completed_today <= 5:
        return _ON_A_ROLL
    return _UNSTOPPABLE


class MotivationScheduler(PeriodicComponent):
    """Encouragement every couple of hours during the working day. No dedup: repeats are fine."""

    name = "motivation"

    def __init__(
            self,
            *,
            log: CompletionLog,
            dispatcher: NotificationDispatcher,
            clock: Clock,
            user_id: str,
            interval_seconds: float = DEFAULT_INTERVAL_SECONDS,
            start_hour: int = 9,
            end_hour: int = 18,
            rng: random.Random | None = None,
            sleep: SleepFn = asyncio.sleep,
    ) -> None:
        super().__init__(sleep=sleep)
        self._log = log
        self._dispatcher = dispatcher
        self._clock = clock
        self._user_id = user_id
        self._interval = max(1.0, float(interval_seconds))
        self._start_hour = int(start_hour)
        self._end_hour = int(end_hour)
        self._rng = rng or random.Random()

    def in_working_hours(self) -> bool:
        return self._start_hour <= self._clock.now().hour <= self._end_hour

    async def _run(self, generation: int) -> None:
        while True:
            await self._sleep(self._interval)
            await self._guarded("motivation", lambda: self.fire(generation))
            if not self._is_current(generation):
                return

    async def fire(self, generation: int | None = None) -> bool:
        if not (self._settings.enabled and self._settings.motivation_enabled):
            return False
        if not self.in_working_hours():
            logger.debug("Outside working hours, skipping motivation")
            return False

        since = start_of_day(self._clock.now())
        try:
            entries = await self._log.list_completions(self._user_id, since=since)
        except TransientFetchError as e:
            logger.warning("Completion log fetch failed: %s", e)
            return False

        if not self._is_current(generation):
            return False

        completed_today = len(entries)
        message = self._rng.choice(motivation_messages(completed_today))
        return await self._dispatcher.notify(
            NotificationKind.MOTIVATION,
            "Keep going!",
            message,
            description=f"You've completed {completed_today} tasks today!",
        )
