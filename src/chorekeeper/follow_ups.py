"""Follow-up scheduling - derive and retire items tied to a parent event."""

import logging
from dataclasses import dataclass
from datetime import timedelta

from .core.diagnostics import AuditTrail
from .core.errors import DispatcherFailure, FollowUpCancellationError, ReminderResult, StoreFailure
from .core.items import ItemKind, SchedulableItem, find_duplicate
from .ports.diagnostics_sink import DiagnosticsSink
from .ports.item_store import ItemStore
from .reminders import ReminderScheduler

logger = logging.getLogger(__name__)

COMPONENT = "follow_ups"
DEFAULT_OFFSET_DAYS = 10


@dataclass
class FollowUp:
    """A created follow-up item and what happened to its reminder."""

    item: SchedulableItem
    reminder: ReminderResult | None = None


class FollowUpScheduler:
    """Creates follow-up items after a parent completes, and removes them."""

    def __init__(
        self,
        store: ItemStore,
        reminders: ReminderScheduler | None = None,
        sink: DiagnosticsSink | None = None,
        reminder_offset: timedelta = timedelta(0),
    ):
        self.store = store
        self.reminders = reminders
        self.sink = sink if sink is not None else AuditTrail()
        self.reminder_offset = reminder_offset

    def _audit(self, action: str, detail: str = "") -> None:
        self.sink.record(COMPONENT, action, detail)

    def build_follow_up(self, parent: SchedulableItem, offset_days: int) -> SchedulableItem:
        return SchedulableItem(
            title=f"Follow up: {parent.title}",
            due_at=parent.due_at + timedelta(days=offset_days),
            reminder_offset=self.reminder_offset,
            notes=parent.notes,
            kind=ItemKind.FOLLOW_UP,
            related_parent_id=parent.id,
        )

    def schedule_follow_up(
        self, parent: SchedulableItem, offset_days: int = DEFAULT_OFFSET_DAYS
    ) -> FollowUp:
        """
        Create a follow-up N days after a completed parent.

        The item is inserted through the store and saved before its reminder
        is scheduled. Store errors are logged and raised as StoreFailure;
        reminder errors propagate after the item is stored. A parent that
        already has a follow-up on that day keeps it and nothing is created.
        """
        if not parent.is_completed:
            raise ValueError(f"Cannot follow up on '{parent.title}' before it is completed")

        item = self.build_follow_up(parent, offset_days)
        existing = find_duplicate(item, self.follow_ups_for(parent))
        if existing is not None:
            logger.info(f"Follow-up {existing.id} already covers {parent.id} on {item.due_at.date()}")
            self._audit("FollowUpSkipped", f"{parent.id}: {existing.id} exists")
            return FollowUp(item=existing)

        try:
            self.store.insert(item)
            self.store.save()
        except StoreFailure as e:
            logger.error(f"Failed to store follow-up for {parent.id}: {e}")
            self._audit("FollowUpFailed", f"{parent.id}: {e}")
            raise
        self._audit("FollowUp", f"'{item.title}' due {item.due_at.isoformat()}")
        logger.info(f"Created follow-up {item.id} for {parent.id} due {item.due_at.date()}")

        follow_up = FollowUp(item=item)
        if self.reminders is not None:
            follow_up.reminder = self.reminders.schedule_reminder(item)
        return follow_up

    def follow_ups_for(self, parent: SchedulableItem) -> list[SchedulableItem]:
        return self.store.fetch(
            lambda i: i.is_follow_up and i.related_parent_id == parent.id,
            sort_key=lambda i: i.due_at,
        )

    def cancel_follow_ups(self, parent: SchedulableItem) -> list[str]:
        """
        Delete every follow-up of a parent and cancel their reminders.

        Keeps going when one item fails, then raises
        FollowUpCancellationError listing the failures. Returns the ids
        removed; calling again once everything is gone returns [].
        """
        failures: list[tuple[str, Exception]] = []
        removed: list[str] = []

        for item in self.follow_ups_for(parent):
            try:
                self.store.delete(item)
            except StoreFailure as e:
                logger.error(f"Failed to delete follow-up {item.id}: {e}")
                failures.append((item.id, e))
                continue
            removed.append(item.id)
            if self.reminders is None:
                continue
            try:
                self.reminders.cancel_reminder(item.id)
            except DispatcherFailure as e:
                logger.error(f"Failed to cancel reminder for follow-up {item.id}: {e}")
                failures.append((item.id, e))

        if removed:
            try:
                self.store.save()
            except StoreFailure as e:
                logger.error(f"Failed to save after canceling follow-ups of {parent.id}: {e}")
                failures.append((parent.id, e))

        self._audit("CancelFollowUps", f"{parent.id}: {len(removed)} removed, {len(failures)} failed")
        if failures:
            raise FollowUpCancellationError(failures, removed)
        return removed
