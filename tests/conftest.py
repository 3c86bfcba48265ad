"""Shared fakes for the scheduling tests."""

from datetime import datetime

import pytest

from chorekeeper.adapters.memory_store import InMemoryItemStore
from chorekeeper.core.diagnostics import AuditTrail
from chorekeeper.core.errors import DispatcherFailure, StoreFailure
from chorekeeper.reminders import DispatcherSession, ReminderScheduler


class RecordingDispatcher:
    """Dispatcher that keeps registrations in a dict."""

    def __init__(self, granted: bool = True, fail_with: Exception | None = None):
        self.granted = granted
        self.fail_with = fail_with
        self.registered: dict[str, tuple[datetime, str, str]] = {}
        self.register_calls = 0
        self.unregister_calls: list[str] = []

    def request_authorization(self) -> bool:
        return self.granted

    def register(self, item_id, trigger_at, title, body):
        self.register_calls += 1
        if self.fail_with is not None:
            raise self.fail_with
        self.registered[item_id] = (trigger_at, title, body)

    def unregister(self, item_id):
        self.unregister_calls.append(item_id)
        self.registered.pop(item_id, None)

    def pending_ids(self):
        return list(self.registered)


class FlakyStore(InMemoryItemStore):
    """Store whose delete fails for chosen ids and whose save can fail."""

    def __init__(self, fail_delete_ids=(), fail_save=False):
        super().__init__()
        self.fail_delete_ids = set(fail_delete_ids)
        self.fail_save = fail_save
        self.saves = 0

    def delete(self, item):
        if item.id in self.fail_delete_ids:
            raise StoreFailure(f"disk full deleting {item.id}")
        super().delete(item)

    def save(self):
        if self.fail_save:
            raise StoreFailure("disk full")
        self.saves += 1


@pytest.fixture
def now():
    return datetime(2025, 1, 1, 8, 0)


@pytest.fixture
def audit():
    return AuditTrail()


@pytest.fixture
def store():
    return InMemoryItemStore()


@pytest.fixture
def dispatcher():
    return RecordingDispatcher()


@pytest.fixture
def session(dispatcher):
    s = DispatcherSession(dispatcher)
    s.start()
    assert s.wait(timeout=5)
    return s


@pytest.fixture
def reminders(session, audit, now):
    return ReminderScheduler(session, audit, clock=lambda: now)


@pytest.fixture
def failing_dispatcher():
    return RecordingDispatcher(fail_with=DispatcherFailure("transport down"))
