# tests/conftest.py

from __future__ import annotations

from datetime import UTC, datetime

import pytest

from taskpulse.notify.dispatcher import NotificationDispatcher
from taskpulse.storage.kv_store import InMemoryKeyValueStore
from taskpulse.storage.ledger import DedupLedger

from .fakes import FakeClock, FakeInAppNotifier, FakeOsNotifier

# Wednesday of ISO week 2026-W11 (Monday is 2026-03-09).
NOW = datetime(2026, 3, 11, 10, 0, tzinfo=UTC)


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock(NOW)


@pytest.fixture()
def kv() -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore()


@pytest.fixture()
def ledger(kv: InMemoryKeyValueStore) -> DedupLedger:
    return DedupLedger(kv)


@pytest.fixture()
def in_app() -> FakeInAppNotifier:
    return FakeInAppNotifier()


@pytest.fixture()
def os_notifier() -> FakeOsNotifier:
    return FakeOsNotifier()


@pytest.fixture()
def dispatcher(in_app: FakeInAppNotifier, os_notifier: FakeOsNotifier, ledger: DedupLedger) -> NotificationDispatcher:
    """
    Dispatcher wired with deterministic fakes. OS delivery is off unless a test enables it.

    NOTE: the ledger sits on an in-memory store; the SQLite store has its own tests.
    """
    return NotificationDispatcher(in_app=in_app, os_notifier=os_notifier, ledger=ledger, os_enabled=False)
