"""Shared workflow layer between the CLI and the reminder daemon.

The Engine ties the lifecycle manager to reminders and follow-ups: every
newly active item gets a reminder, completed appointments get a follow-up,
and deleted items take their reminder and follow-ups with them.
"""

import logging
from dataclasses import dataclass
from datetime import date

from .adapters.apscheduler_dispatcher import APSchedulerDispatcher
from .adapters.file_store import FileItemStore
from .adapters.log_notifier import LogNotifier
from .adapters.telegram_notifier import TelegramNotifier
from .config import Config
from .core.diagnostics import AuditTrail
from .core.errors import AddResult, ReminderResult
from .core.items import ItemKind, SchedulableItem
from .core.recurrence import RecurrenceRule
from .follow_ups import FollowUp, FollowUpScheduler
from .lifecycle import Completion, LifecycleManager
from .ports.dispatcher import Dispatcher
from .ports.item_store import ItemStore
from .reminders import DispatcherSession, ReminderScheduler

logger = logging.getLogger(__name__)


@dataclass
class CompletionOutcome:
    """Everything that happened when an item was completed."""

    completion: Completion
    next_reminder: ReminderResult | None = None
    follow_up: FollowUp | None = None


class Engine:
    """Facade over the lifecycle, reminder and follow-up components."""

    def __init__(
        self,
        config: Config,
        store: ItemStore,
        session: DispatcherSession | None = None,
    ):
        self.config = config
        self.store = store
        self.audit = AuditTrail(config.audit_capacity)
        self.lifecycle = LifecycleManager(store, self.audit, config.undo_capacity)
        self.reminders = None
        if session is not None:
            self.reminders = ReminderScheduler(
                session, self.audit, title_template=config.reminder_title
            )
        self.follow_ups = FollowUpScheduler(
            store, self.reminders, self.audit, reminder_offset=config.reminder_offset
        )

    def _schedule(self, item: SchedulableItem) -> ReminderResult | None:
        if self.reminders is None:
            return None
        return self.reminders.schedule_reminder(item)

    def _cancel(self, item_id: str) -> None:
        if self.reminders is not None:
            self.reminders.cancel_reminder(item_id)

    def add(self, item: SchedulableItem) -> tuple[AddResult, ReminderResult | None]:
        result = self.lifecycle.add(item)
        if result != AddResult.ADDED:
            return result, None
        return result, self._schedule(item)

    def complete(self, item_id: str) -> CompletionOutcome | None:
        completion = self.lifecycle.complete(item_id)
        if completion is None:
            return None
        outcome = CompletionOutcome(completion=completion)
        if completion.already_completed:
            return outcome

        item = completion.item
        self._cancel(item.id)
        if completion.spawned is not None:
            outcome.next_reminder = self._schedule(completion.spawned)
        if (
            item.recurrence is RecurrenceRule.NONE
            and item.kind == ItemKind.APPOINTMENT
            and self.config.follow_up_days > 0
        ):
            outcome.follow_up = self.follow_ups.schedule_follow_up(item, self.config.follow_up_days)
        return outcome

    def update(self, item: SchedulableItem) -> tuple[bool, ReminderResult | None]:
        """Replace an item and move its reminder to the new trigger time."""
        if not self.lifecycle.update(item):
            return False, None
        if self.reminders is None:
            return True, None
        if item.is_completed:
            self.reminders.cancel_reminder(item.id)
            return True, None
        return True, self.reminders.reschedule_reminder(item)

    def undo_complete(self, item_id: str) -> SchedulableItem | None:
        item = self.lifecycle.undo_complete(item_id)
        if item is not None and self.reminders is not None:
            self.reminders.reschedule_reminder(item)
        return item

    def delete(self, item_id: str, undoable: bool = True) -> SchedulableItem | None:
        """
        Delete an item along with its reminder and follow-ups.

        The item is removed first; a FollowUpCancellationError raised
        afterwards means some of its follow-ups are still stored.
        """
        if undoable:
            item = self.lifecycle.delete_with_undo(item_id)
        else:
            item = self.lifecycle.delete(item_id)
        if item is None:
            return None
        self._cancel(item.id)
        self.follow_ups.cancel_follow_ups(item)
        return item

    def undo_last_delete(self) -> tuple[SchedulableItem, AddResult] | None:
        restored = self.lifecycle.undo_last_delete()
        if restored is not None and restored[1] == AddResult.ADDED and not restored[0].is_completed:
            self._schedule(restored[0])
        return restored

    def sync_reminders(self) -> dict[str, int]:
        """Re-read the store and reconcile reminders with it."""
        if self.reminders is None:
            return {"scheduled": 0, "canceled": 0}
        if isinstance(self.store, FileItemStore):
            self.store.reload()
        return self.reminders.sync(self.lifecycle.upcoming())

    def agenda(self, day: date | None = None) -> list[SchedulableItem]:
        return self.lifecycle.due_today(day)


def build_notifier(config: Config):
    """Telegram when configured, otherwise the log."""
    if config.telegram_bot_token:
        return TelegramNotifier(config.telegram_bot_token, config.telegram_allowed_users)
    logger.info("No Telegram token configured - reminders go to the log")
    return LogNotifier()


def build_engine(
    config: Config,
    store: ItemStore | None = None,
    dispatcher: Dispatcher | None = None,
) -> Engine:
    """Wire an engine. Without a dispatcher reminders are left to the daemon."""
    store = store if store is not None else FileItemStore(config.store_path)
    session = DispatcherSession(dispatcher) if dispatcher is not None else None
    return Engine(config, store, session)


def build_daemon(config: Config) -> tuple[Engine, APSchedulerDispatcher]:
    """Engine plus a background scheduler that delivers reminders."""
    dispatcher = APSchedulerDispatcher(build_notifier(config), timezone=config.timezone)
    engine = build_engine(config, dispatcher=dispatcher)
    return engine, dispatcher
