# tests/test_reminder_scheduler.py

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from taskpulse.core.models import NotificationSettings
from taskpulse.notify.dispatcher import NotificationDispatcher
from taskpulse.schedulers.base import ComponentState
from taskpulse.schedulers.reminders import ReminderScheduler

from .conftest import NOW
from .fakes import FakeClock, FakeSleep, FakeTaskSource, GatedOsNotifier, make_task, settle


def _scheduler(tasks, dispatcher, clock, *, sleep=None) -> ReminderScheduler:
    return ReminderScheduler(
        tasks=tasks,
        dispatcher=dispatcher,
        clock=clock,
        user_id="u1",
        sleep=sleep or FakeSleep(clock, max_calls=0),
    )


def _runners(name: str) -> list[asyncio.Task]:
    return [t for t in asyncio.all_tasks() if t.get_name() == name and not t.done()]


@pytest.mark.asyncio
async def test_due_soon_reminder_is_sent_once_across_ticks(dispatcher, in_app, ledger, clock) -> None:
    task = make_task("Write report", due=NOW + timedelta(minutes=10), description="Q1 numbers")
    sched = _scheduler(FakeTaskSource([task]), dispatcher, clock)

    assert await sched.check_due_reminders() == 1
    for _ in range(5):
        clock.advance(minutes=1)
        assert await sched.check_due_reminders() == 0

    assert in_app.messages("info") == ['"Write report" is due in 10 minutes!']
    assert in_app.notices[0].description == "Q1 numbers"
    assert in_app.notices[0].action.label == "View Task"
    assert len(await ledger.markers("reminder:")) == 1


@pytest.mark.asyncio
async def test_task_due_exactly_now_says_due_now(dispatcher, in_app, clock) -> None:
    sched = _scheduler(FakeTaskSource([make_task("Call mom", due=NOW)]), dispatcher, clock)
    await sched.check_due_reminders()
    assert in_app.messages() == ['"Call mom" is due now!']


@pytest.mark.asyncio
async def test_tasks_outside_the_window_are_ignored(dispatcher, in_app, clock) -> None:
    tasks = [
        make_task("far", due=NOW + timedelta(minutes=31)),
        make_task("done", due=NOW + timedelta(minutes=5), completed=True),
        make_task("undated"),
    ]
    sched = _scheduler(FakeTaskSource(tasks), dispatcher, clock)
    assert await sched.check_due_reminders() == 0
    assert in_app.notices == []


@pytest.mark.asyncio
async def test_rescheduled_task_gets_a_new_reminder(dispatcher, in_app, clock) -> None:
    task = make_task("Dentist", due=NOW + timedelta(minutes=20))
    sched = _scheduler(FakeTaskSource([task]), dispatcher, clock)

    await sched.check_due_reminders()
    task.due_date = NOW + timedelta(minutes=25)
    await sched.check_due_reminders()

    assert len(in_app.notices) == 2


@pytest.mark.asyncio
async def test_overdue_is_sent_once_per_task_and_due_day(dispatcher, in_app, ledger, clock) -> None:
    task = make_task("Taxes", due=NOW - timedelta(hours=2))
    sched = _scheduler(FakeTaskSource([task]), dispatcher, clock)

    for _ in range(12):
        await sched.check_due_reminders()
        clock.advance(minutes=5)
    clock.advance(days=1)
    await sched.check_due_reminders()

    assert in_app.messages("error") == ['"Taxes" is overdue!']
    assert in_app.notices[0].duration_ms == 15000
    assert await ledger.markers("overdue:") == [f"overdue:{task.id}:2026-03-11"]


@pytest.mark.asyncio
async def test_fetch_failure_is_retried_next_tick(dispatcher, in_app, clock) -> None:
    source = FakeTaskSource([make_task("x", due=NOW + timedelta(minutes=1))])
    sched = _scheduler(source, dispatcher, clock)

    source.fail = True
    assert await sched.check_due_reminders() == 0
    source.fail = False
    assert await sched.check_due_reminders() == 1


@pytest.mark.asyncio
async def test_reminder_window_follows_settings(dispatcher, in_app, clock) -> None:
    sched = _scheduler(FakeTaskSource([make_task("x", due=NOW + timedelta(minutes=45))]), dispatcher, clock)

    sched.update_settings(reminder_minutes=60)
    assert await sched.check_due_reminders() == 1


@pytest.mark.asyncio
async def test_disabled_settings_send_nothing(dispatcher, in_app, clock) -> None:
    sched = _scheduler(FakeTaskSource([make_task("x", due=NOW)]), dispatcher, clock)
    sched.update_settings(enabled=False)
    assert await sched.check_due_reminders() == 0


@pytest.mark.asyncio
async def test_stale_generation_is_discarded(dispatcher, in_app, clock) -> None:
    sched = _scheduler(FakeTaskSource([make_task("x", due=NOW)]), dispatcher, clock)
    assert await sched.check_due_reminders(generation=1) == 0
    assert in_app.notices == []


@pytest.mark.asyncio
async def test_initialize_ticks_immediately_and_stop_cancels(dispatcher, in_app, clock) -> None:
    sleep = FakeSleep(clock, max_calls=0)
    sched = _scheduler(FakeTaskSource([make_task("x", due=NOW + timedelta(minutes=3))]), dispatcher, clock, sleep=sleep)

    sched.initialize(NotificationSettings())
    await settle()

    assert sched.state == ComponentState.RUNNING
    assert len(in_app.notices) == 1
    assert len(_runners(sched.task_name)) == 1

    sched.stop()
    await settle()

    assert sched.state == ComponentState.STOPPED
    assert _runners(sched.task_name) == []


@pytest.mark.asyncio
async def test_loop_keeps_ticking_every_interval(dispatcher, in_app, clock) -> None:
    source = FakeTaskSource()
    sleep = FakeSleep(clock, max_calls=3)
    sched = ReminderScheduler(
        tasks=source, dispatcher=dispatcher, clock=clock, user_id="u1", interval_seconds=300, sleep=sleep
    )

    sched.initialize(NotificationSettings())
    await settle(20)
    sched.stop()
    await settle()

    assert sleep.calls == [300, 300, 300]
    assert source.calls == 4


@pytest.mark.asyncio
async def test_reinitialize_replaces_the_runner(dispatcher, clock) -> None:
    sched = _scheduler(FakeTaskSource(), dispatcher, clock)

    sched.initialize(NotificationSettings())
    sched.initialize(NotificationSettings(reminder_minutes=10))
    await settle()

    assert len(_runners(sched.task_name)) == 1
    assert sched.settings.reminder_minutes == 10
    sched.stop()
    await settle()


@pytest.mark.asyncio
async def test_restart_during_os_delivery_does_not_repeat_the_reminder(in_app, ledger, clock) -> None:
    os_notifier = GatedOsNotifier()
    dispatcher = NotificationDispatcher(in_app=in_app, os_notifier=os_notifier, ledger=ledger, os_enabled=True)
    task = make_task("Write report", due=NOW + timedelta(minutes=10))
    sched = _scheduler(FakeTaskSource([task]), dispatcher, clock)

    sched.initialize(NotificationSettings())
    await settle()
    assert os_notifier.started.is_set()

    # Restart while the first tick still waits on the OS notification.
    sched.initialize(NotificationSettings())
    await settle()
    os_notifier.release.set()
    await settle()

    assert in_app.messages() == ['"Write report" is due in 10 minutes!']
    assert await ledger.markers("reminder:") == [f"reminder:{task.id}:{int(task.due_date.timestamp() * 1000)}"]
    assert os_notifier.shown == [f"reminder:{task.id}:{int(task.due_date.timestamp() * 1000)}"]
    assert len(_runners(sched.task_name)) == 1

    sched.stop()
    await settle()
    assert _runners(sched.task_name) == []


@pytest.mark.asyncio
async def test_stop_during_os_delivery_keeps_the_marker(in_app, ledger, clock) -> None:
    os_notifier = GatedOsNotifier()
    dispatcher = NotificationDispatcher(in_app=in_app, os_notifier=os_notifier, ledger=ledger, os_enabled=True)
    tasks = [make_task("first", due=NOW + timedelta(minutes=5)), make_task("second", due=NOW + timedelta(minutes=6))]
    source = FakeTaskSource(tasks)
    sched = _scheduler(source, dispatcher, clock)

    sched.initialize(NotificationSettings())
    await settle()
    assert os_notifier.started.is_set()

    sched.stop()
    assert len(await ledger.markers("reminder:")) == 1

    os_notifier.release.set()
    await settle()

    # The in-flight delivery completes; the stopped tick drops the rest of its work.
    assert sched.state == ComponentState.STOPPED
    assert _runners(sched.task_name) == []
    assert in_app.messages() == ['"first" is due in 5 minutes!']
    assert source.calls == 1

    # A fresh session does not announce the already-delivered reminder again.
    sched.initialize(NotificationSettings())
    await settle()
    os_notifier.release.set()
    await settle()
    assert in_app.messages() == ['"first" is due in 5 minutes!', '"second" is due in 6 minutes!']
    sched.stop()
    await settle()


@pytest.mark.asyncio
async def test_overdue_key_uses_the_local_due_date(dispatcher, in_app, ledger) -> None:
    est = timezone(timedelta(hours=-5), "EST")
    clock = FakeClock(datetime(2026, 3, 11, 10, 0, tzinfo=est), tz=est)
    # 22:00 EST on 2026-03-10 is 03:00 UTC on 2026-03-11.
    task = make_task("Taxes", due=datetime(2026, 3, 11, 3, 0, tzinfo=timezone.utc))
    sched = _scheduler(FakeTaskSource([task]), dispatcher, clock)

    await sched.check_due_reminders()
    clock.advance(hours=6)
    await sched.check_due_reminders()

    assert in_app.messages("error") == ['"Taxes" is overdue!']
    assert await ledger.markers("overdue:") == [f"overdue:{task.id}:2026-03-10"]
