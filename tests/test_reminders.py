"""Tests for reminder scheduling and the dispatcher session."""

import threading
from datetime import datetime, timedelta

import pytest

from chorekeeper.core.errors import DispatcherFailure, NotAuthorized, ReminderResult
from chorekeeper.core.items import SchedulableItem
from chorekeeper.reminders import AuthorizationState, DispatcherSession, ReminderScheduler

from conftest import RecordingDispatcher


def make(due, offset_minutes=0, title="Groom Rex", **kwargs):
    return SchedulableItem(title=title, due_at=due, reminder_offset=timedelta(minutes=offset_minutes), **kwargs)


class SlowDispatcher(RecordingDispatcher):
    """Dispatcher whose permission prompt waits for the test to answer."""

    def __init__(self):
        super().__init__()
        self.answer = threading.Event()

    def request_authorization(self):
        self.answer.wait(5)
        return True


class ExplodingDispatcher(RecordingDispatcher):
    def request_authorization(self):
        raise RuntimeError("permission service unavailable")


class TestDispatcherSession:
    def test_granted(self, dispatcher):
        session = DispatcherSession(dispatcher)
        assert session.state == AuthorizationState.UNREQUESTED
        session.start()
        assert session.wait(timeout=5) is True
        assert session.state == AuthorizationState.GRANTED

    def test_denied(self):
        session = DispatcherSession(RecordingDispatcher(granted=False))
        session.start()
        assert session.wait(timeout=5) is False
        assert session.state == AuthorizationState.DENIED

    def test_request_error_counts_as_denied(self):
        session = DispatcherSession(ExplodingDispatcher())
        session.start()
        assert session.wait(timeout=5) is False
        assert session.state == AuthorizationState.DENIED

    def test_requests_only_once(self, dispatcher):
        calls = []
        dispatcher.request_authorization = lambda: calls.append(1) or True
        session = DispatcherSession(dispatcher)
        session.start()
        session.start()
        session.wait(timeout=5)
        session.start()
        assert calls == [1]

    def test_register_rejected_while_pending(self):
        slow = SlowDispatcher()
        session = DispatcherSession(slow)
        session.start()
        assert session.state == AuthorizationState.PENDING
        with pytest.raises(NotAuthorized):
            session.register("x", datetime(2099, 1, 1), "t", "b")
        slow.answer.set()
        assert session.wait(timeout=5) is True
        session.register("x", datetime(2099, 1, 1), "t", "b")
        assert "x" in slow.registered


class TestScheduleReminder:
    def test_registers_trigger(self, reminders, dispatcher, now):
        item = make(datetime(2025, 1, 1, 10), offset_minutes=30)
        assert reminders.schedule_reminder(item) == ReminderResult.SCHEDULED
        trigger_at, title, body = dispatcher.registered[item.id]
        assert trigger_at == datetime(2025, 1, 1, 9, 30)
        assert title == "Upcoming: Groom Rex"
        assert body == "Due at 10:00 on Jan 01"
        assert reminders.outstanding() == {item.id: trigger_at}

    def test_notes_become_body(self, reminders, dispatcher):
        item = make(datetime(2025, 1, 2), notes="Bring the blue leash")
        reminders.schedule_reminder(item)
        assert dispatcher.registered[item.id][2] == "Bring the blue leash"

    def test_offset_covering_time_until_due_is_skipped(self, reminders, dispatcher, now, audit):
        # due in two hours, reminder three hours before
        item = make(now + timedelta(hours=2), offset_minutes=180)
        assert reminders.schedule_reminder(item) == ReminderResult.PAST_TRIGGER
        assert dispatcher.register_calls == 0
        assert audit.entries()[-1].action == "PastTrigger"

    def test_trigger_exactly_now_is_skipped(self, reminders, dispatcher, now):
        item = make(now + timedelta(minutes=10), offset_minutes=10)
        assert reminders.schedule_reminder(item) == ReminderResult.PAST_TRIGGER
        assert dispatcher.register_calls == 0

    def test_overflowing_trigger_is_skipped(self, reminders, dispatcher):
        item = make(datetime(1, 1, 1), offset_minutes=60)
        assert reminders.schedule_reminder(item) == ReminderResult.INVALID_TRIGGER
        assert dispatcher.register_calls == 0

    def test_dispatcher_failure_propagates(self, failing_dispatcher, audit, now):
        session = DispatcherSession(failing_dispatcher)
        session.start()
        session.wait(timeout=5)
        reminders = ReminderScheduler(session, audit, clock=lambda: now)
        item = make(datetime(2025, 1, 2))
        with pytest.raises(DispatcherFailure):
            reminders.schedule_reminder(item)
        assert failing_dispatcher.register_calls == 1
        assert reminders.outstanding() == {}

    def test_not_authorized_propagates(self, audit, now):
        session = DispatcherSession(RecordingDispatcher(granted=False))
        session.start()
        session.wait(timeout=5)
        reminders = ReminderScheduler(session, audit, clock=lambda: now)
        with pytest.raises(NotAuthorized):
            reminders.schedule_reminder(make(datetime(2025, 1, 2)))

    def test_custom_title_template(self, session, audit, now, dispatcher):
        reminders = ReminderScheduler(session, audit, clock=lambda: now, title_template="Reminder - {title}")
        item = make(datetime(2025, 1, 2))
        reminders.schedule_reminder(item)
        assert dispatcher.registered[item.id][1] == "Reminder - Groom Rex"


class TestCancelAndReschedule:
    def test_cancel_is_idempotent(self, reminders, dispatcher):
        item = make(datetime(2025, 1, 2))
        reminders.schedule_reminder(item)
        reminders.cancel_reminder(item.id)
        reminders.cancel_reminder(item.id)
        reminders.cancel_reminder("never-scheduled")
        assert dispatcher.registered == {}
        assert reminders.outstanding() == {}

    def test_reschedule_replaces_trigger(self, reminders, dispatcher):
        item = make(datetime(2025, 1, 2, 9))
        reminders.schedule_reminder(item)
        item.due_at = datetime(2025, 1, 3, 9)
        assert reminders.reschedule_reminder(item) == ReminderResult.SCHEDULED
        assert dispatcher.registered[item.id][0] == datetime(2025, 1, 3, 9)
        assert len(dispatcher.registered) == 1

    def test_cancel_all(self, reminders, dispatcher):
        for n in range(3):
            reminders.schedule_reminder(make(datetime(2025, 1, 2 + n), title=f"Chore {n}"))
        assert reminders.cancel_all() == 3
        assert reminders.pending_ids() == []


class TestSync:
    def test_schedules_missing_and_cancels_stale(self, reminders, dispatcher):
        kept = make(datetime(2025, 1, 2), title="Kept")
        gone = make(datetime(2025, 1, 3), title="Gone")
        reminders.schedule_reminder(kept)
        reminders.schedule_reminder(gone)
        fresh = make(datetime(2025, 1, 4), title="Fresh")

        counts = reminders.sync([kept, fresh])

        assert counts == {"scheduled": 1, "canceled": 1}
        assert set(dispatcher.registered) == {kept.id, fresh.id}

    def test_reschedules_changed_trigger(self, reminders, dispatcher):
        item = make(datetime(2025, 1, 2, 9))
        reminders.schedule_reminder(item)
        item.due_at = datetime(2025, 1, 2, 11)
        assert reminders.sync([item])["scheduled"] == 1
        assert dispatcher.registered[item.id][0] == datetime(2025, 1, 2, 11)

    def test_completed_items_lose_reminder(self, reminders, dispatcher):
        item = make(datetime(2025, 1, 2))
        reminders.schedule_reminder(item)
        item.is_completed = True
        assert reminders.sync([item]) == {"scheduled": 0, "canceled": 1}
        assert dispatcher.registered == {}

    def test_unchanged_is_noop(self, reminders, dispatcher):
        item = make(datetime(2025, 1, 2))
        reminders.schedule_reminder(item)
        assert reminders.sync([item]) == {"scheduled": 0, "canceled": 0}
        assert dispatcher.register_calls == 1

    def test_trigger_moved_into_past_is_canceled(self, reminders, dispatcher, now):
        item = make(now + timedelta(hours=5), title="Sweep")
        reminders.schedule_reminder(item)
        item.reminder_offset = timedelta(hours=6)

        assert reminders.sync([item]) == {"scheduled": 0, "canceled": 1}
        assert dispatcher.registered == {}
        assert reminders.outstanding() == {}

    def test_past_items_are_ignored(self, reminders, dispatcher, now):
        assert reminders.sync([make(now - timedelta(hours=1))]) == {"scheduled": 0, "canceled": 0}
        assert dispatcher.register_calls == 0


def test_order_shampoo_reminder_scenario(audit):
    dispatcher = RecordingDispatcher()
    session = DispatcherSession(dispatcher)
    reminders = ReminderScheduler(session, audit, clock=lambda: datetime(2024, 12, 31, 12))
    session.wait(timeout=5)
    item = make(datetime(2025, 1, 1), title="Order shampoo")
    assert reminders.schedule_reminder(item) == ReminderResult.SCHEDULED
    assert dispatcher.registered[item.id][0] == datetime(2025, 1, 1)
