# tests/test_motivation.py

from __future__ import annotations

import random
from datetime import datetime, timedelta, timezone

import pytest

from taskpulse.core.models import NotificationSettings
from taskpulse.schedulers.motivation import MotivationScheduler, motivation_messages

from .conftest import NOW
from .fakes import FakeClock, FakeCompletionLog, FakeSleep, completion, make_task, settle


def _scheduler(log, dispatcher, clock, **kwargs) -> MotivationScheduler:
    kwargs.setdefault("sleep", FakeSleep(clock, max_calls=0))
    return MotivationScheduler(
        log=log, dispatcher=dispatcher, clock=clock, user_id="u1", rng=random.Random(7), **kwargs
    )


@pytest.mark.parametrize(
    ("completed", "same_band_as"),
    [(0, 0), (1, 2), (2, 1), (3, 5), (5, 4), (6, 6), (42, 6)],
)
def test_message_bands(completed: int, same_band_as: int) -> None:
    assert motivation_messages(completed) == motivation_messages(same_band_as)


def test_bands_are_distinct() -> None:
    bands = {motivation_messages(n) for n in (0, 1, 3, 6)}
    assert len(bands) == 4


@pytest.mark.asyncio
async def test_fire_counts_todays_completions(dispatcher, in_app, clock) -> None:
    task = make_task("Run")
    log = FakeCompletionLog(
        [
            completion(task, NOW - timedelta(hours=1)),
            completion(task, NOW - timedelta(hours=2)),
            completion(task, NOW - timedelta(days=1)),
        ]
    )
    sched = _scheduler(log, dispatcher, clock)

    assert await sched.fire() is True

    notice = in_app.notices[0]
    assert notice.level == "success"
    assert notice.duration_ms == 5000
    assert notice.message in motivation_messages(2)
    assert notice.description == "You've completed 2 tasks today!"
    assert log.since == [NOW.replace(hour=0)]


@pytest.mark.asyncio
@pytest.mark.parametrize(("hour", "expected"), [(8, False), (9, True), (18, True), (19, False)])
async def test_only_fires_during_working_hours(dispatcher, clock, hour: int, expected: bool) -> None:
    clock.set(NOW.replace(hour=hour, minute=30))
    sched = _scheduler(FakeCompletionLog(), dispatcher, clock)
    assert await sched.fire() is expected


@pytest.mark.asyncio
async def test_motivation_is_never_deduplicated(dispatcher, in_app, clock) -> None:
    sched = _scheduler(FakeCompletionLog(), dispatcher, clock)
    await sched.fire()
    await sched.fire()
    assert len(in_app.notices) == 2


@pytest.mark.asyncio
async def test_disabled_or_failing_fetch_sends_nothing(dispatcher, in_app, clock) -> None:
    log = FakeCompletionLog()
    sched = _scheduler(log, dispatcher, clock)

    sched.update_settings(motivation_enabled=False)
    assert await sched.fire() is False

    sched.update_settings(motivation_enabled=True)
    log.fail = True
    assert await sched.fire() is False
    assert in_app.notices == []


@pytest.mark.asyncio
async def test_runner_waits_one_interval_before_first_message(dispatcher, in_app, clock) -> None:
    sleep = FakeSleep(clock, max_calls=1)
    sched = _scheduler(FakeCompletionLog(), dispatcher, clock, interval_seconds=3600, sleep=sleep)

    sched.initialize(NotificationSettings())
    await settle(10)
    sched.stop()
    await settle()

    assert sleep.calls == [3600]
    assert len(in_app.notices) == 1


@pytest.mark.asyncio
async def test_today_starts_at_local_midnight(dispatcher, in_app) -> None:
    est = timezone(timedelta(hours=-5), "EST")
    now = datetime(2026, 3, 11, 0, 30, tzinfo=est)
    clock = FakeClock(now, tz=est)
    task = make_task("Run")
    # Both are 2026-03-11 in UTC; only the second is "today" in EST.
    log = FakeCompletionLog(
        [
            completion(task, datetime(2026, 3, 10, 23, 50, tzinfo=est)),
            completion(task, datetime(2026, 3, 11, 0, 10, tzinfo=est)),
        ]
    )
    sched = _scheduler(log, dispatcher, clock, start_hour=0, end_hour=23)

    assert await sched.fire() is True

    assert log.since == [datetime(2026, 3, 11, 0, 0, tzinfo=est)]
    assert in_app.notices[0].description == "You've completed 1 tasks today!"
    assert in_app.notices[0].message in motivation_messages(1)
