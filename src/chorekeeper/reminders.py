"""Reminder scheduling - turns item due times into dispatcher registrations."""

import logging
import threading
from datetime import datetime
from enum import Enum
from typing import Callable

from .core.diagnostics import AuditTrail
from .core.errors import NotAuthorized, ReminderResult
from .core.items import SchedulableItem
from .ports.diagnostics_sink import DiagnosticsSink
from .ports.dispatcher import Dispatcher

logger = logging.getLogger(__name__)

COMPONENT = "reminders"
DEFAULT_TITLE = "Upcoming: {title}"


class AuthorizationState(Enum):
    UNREQUESTED = "unrequested"
    PENDING = "pending"
    GRANTED = "granted"
    DENIED = "denied"


class DispatcherSession:
    """
    Process-wide handle on a dispatcher and its permission state.

    Create one at startup and pass it to every ReminderScheduler. The
    permission request runs once, on a background thread; until it resolves
    registrations are rejected with NotAuthorized.
    """

    def __init__(self, dispatcher: Dispatcher):
        self.dispatcher = dispatcher
        self._state = AuthorizationState.UNREQUESTED
        self._lock = threading.Lock()
        self._resolved = threading.Event()

    @property
    def state(self) -> AuthorizationState:
        return self._state

    @property
    def authorized(self) -> bool:
        return self._state == AuthorizationState.GRANTED

    def start(self) -> None:
        """Request permission once. Later calls do nothing."""
        with self._lock:
            if self._state != AuthorizationState.UNREQUESTED:
                return
            self._state = AuthorizationState.PENDING
        threading.Thread(target=self._authorize, name="dispatcher-auth", daemon=True).start()

    def _authorize(self) -> None:
        try:
            granted = bool(self.dispatcher.request_authorization())
        except Exception as e:
            # Any failure while asking counts as a refusal
            logger.error(f"Notification authorization error: {e}")
            granted = False
        self._state = AuthorizationState.GRANTED if granted else AuthorizationState.DENIED
        logger.info(f"Notification authorization granted: {granted}")
        self._resolved.set()

    def wait(self, timeout: float | None = None) -> bool:
        """Block until the permission request resolves. True if granted."""
        self._resolved.wait(timeout)
        return self.authorized

    def register(self, item_id: str, trigger_at: datetime, title: str, body: str) -> None:
        if not self.authorized:
            raise NotAuthorized(f"Notifications not authorized ({self._state.value})")
        self.dispatcher.register(item_id, trigger_at, title, body)

    def unregister(self, item_id: str) -> None:
        self.dispatcher.unregister(item_id)

    def pending_ids(self) -> list[str]:
        return self.dispatcher.pending_ids()


class ReminderScheduler:
    """
    Schedules, cancels and reschedules one reminder per item.

    Holds item ids only; items are owned by the LifecycleManager. Dispatcher
    errors propagate to the caller and are not retried.
    """

    def __init__(
        self,
        session: DispatcherSession,
        sink: DiagnosticsSink | None = None,
        clock: Callable[[], datetime] = datetime.now,
        title_template: str = DEFAULT_TITLE,
    ):
        self.session = session
        self.sink = sink if sink is not None else AuditTrail()
        self.clock = clock
        self.title_template = title_template
        self._outstanding: dict[str, datetime] = {}
        session.start()

    def _audit(self, action: str, detail: str = "") -> None:
        self.sink.record(COMPONENT, action, detail)

    def content_for(self, item: SchedulableItem) -> tuple[str, str]:
        """Reminder title and body for an item."""
        title = self.title_template.format(title=item.title)
        body = item.notes or f"Due at {item.due_at.strftime('%H:%M on %b %d')}"
        return title, body

    def schedule_reminder(self, item: SchedulableItem) -> ReminderResult:
        """
        Register a reminder at due time minus offset.

        A trigger time that is not in the future, or that cannot be computed,
        is skipped and reported; the dispatcher is not called.
        """
        try:
            trigger_at = item.trigger_at()
        except OverflowError as e:
            logger.warning(f"Cannot compute trigger for {item.id}: {e}")
            self._audit("InvalidTrigger", item.id)
            return ReminderResult.INVALID_TRIGGER

        if trigger_at <= self.clock():
            logger.info(f"Skipping reminder for '{item.title}': trigger {trigger_at} already passed")
            self._audit("PastTrigger", f"{item.id} at {trigger_at.isoformat()}")
            return ReminderResult.PAST_TRIGGER

        title, body = self.content_for(item)
        try:
            self.session.register(item.id, trigger_at, title, body)
        except Exception as e:
            logger.error(f"Failed to schedule reminder {item.id}: {e}")
            self._audit("ScheduleFailed", f"{item.id}: {e}")
            raise
        self._outstanding[item.id] = trigger_at
        logger.debug(f"Scheduled reminder {item.id} at {trigger_at}")
        self._audit("Schedule", f"{item.id} at {trigger_at.isoformat()}")
        return ReminderResult.SCHEDULED

    def cancel_reminder(self, item_id: str) -> None:
        """Remove any reminder for an item. Safe to call repeatedly."""
        self._outstanding.pop(item_id, None)
        self.session.unregister(item_id)
        self._audit("Cancel", item_id)

    def reschedule_reminder(self, item: SchedulableItem) -> ReminderResult:
        self.cancel_reminder(item.id)
        return self.schedule_reminder(item)

    def cancel_all(self) -> int:
        """Cancel every reminder the dispatcher still holds."""
        ids = set(self.pending_ids()) | set(self._outstanding)
        for item_id in ids:
            self.cancel_reminder(item_id)
        logger.info(f"Canceled {len(ids)} reminders")
        return len(ids)

    def outstanding(self) -> dict[str, datetime]:
        return dict(self._outstanding)

    def pending_ids(self) -> list[str]:
        return self.session.pending_ids()

    def sync(self, items: list[SchedulableItem]) -> dict[str, int]:
        """
        Reconcile dispatcher state with the current items.

        Active items get a reminder if they have none or their trigger time
        changed. Reminders of items that are gone or completed are canceled,
        as are pending reminders whose trigger has moved into the past.
        """
        counts = {"scheduled": 0, "canceled": 0}
        active = {i.id: i for i in items if not i.is_completed}
        pending = set(self.pending_ids())

        for item_id in (pending | set(self._outstanding)) - set(active):
            self.cancel_reminder(item_id)
            counts["canceled"] += 1

        for item in active.values():
            try:
                trigger_at = item.trigger_at()
            except OverflowError:
                trigger_at = None
            if trigger_at is None or trigger_at <= self.clock():
                if item.id in pending:
                    self.cancel_reminder(item.id)
                    counts["canceled"] += 1
                continue
            if item.id in pending and self._outstanding.get(item.id) == trigger_at:
                continue
            if self.reschedule_reminder(item) == ReminderResult.SCHEDULED:
                counts["scheduled"] += 1

        if counts["scheduled"] or counts["canceled"]:
            logger.info(f"Reminder sync: {counts['scheduled']} scheduled, {counts['canceled']} canceled")
        return counts
