"""Lifecycle manager - add, complete, undo and delete schedulable items."""

import logging
import threading
from collections import deque
from dataclasses import dataclass
from datetime import date, datetime

from .core.diagnostics import AuditTrail
from .core.errors import AddResult
from .core.items import (
    SchedulableItem,
    by_due,
    filter_completed,
    filter_due_on,
    filter_overdue,
    filter_upcoming,
    find_duplicate,
)
from .ports.diagnostics_sink import DiagnosticsSink
from .ports.item_store import ItemStore

logger = logging.getLogger(__name__)

COMPONENT = "lifecycle"
DEFAULT_UNDO_CAPACITY = 20


@dataclass
class Completion:
    """Result of completing an item."""

    item: SchedulableItem
    spawned: SchedulableItem | None = None
    regeneration: AddResult | None = None
    already_completed: bool = False


class LifecycleManager:
    """
    Owns the item collection held in an ItemStore.

    Mutations are serialized with a lock. Every mutation is written through
    to the store and saved; a StoreFailure propagates to the caller after the
    in-memory change has been made.
    """

    def __init__(
        self,
        store: ItemStore,
        sink: DiagnosticsSink | None = None,
        undo_capacity: int = DEFAULT_UNDO_CAPACITY,
    ):
        self.store = store
        self.sink = sink if sink is not None else AuditTrail()
        self._lock = threading.RLock()
        self._undo: deque[SchedulableItem] = deque(maxlen=undo_capacity)

    def _audit(self, action: str, detail: str = "") -> None:
        self.sink.record(COMPONENT, action, detail)

    def _find(self, item_id: str) -> SchedulableItem | None:
        matches = self.store.fetch(lambda i: i.id == item_id)
        if not matches:
            logger.debug(f"Item {item_id} not found")
            self._audit("NotFound", item_id)
            return None
        return matches[0]

    def get(self, item_id: str) -> SchedulableItem | None:
        with self._lock:
            found = self.store.fetch(lambda i: i.id == item_id)
            return found[0] if found else None

    def items(self) -> list[SchedulableItem]:
        with self._lock:
            return self.store.fetch(sort_key=by_due)

    # ============== Mutations ==============

    def add(self, item: SchedulableItem) -> AddResult:
        """Insert an item unless one with the same title exists on that day."""
        with self._lock:
            clash = find_duplicate(item, self.store.fetch())
            if clash is not None:
                logger.info(f"Rejected duplicate '{item.title}' on {item.due_at.date()}")
                self._audit("AddFailed", f"'{item.title}' duplicates {clash.id}")
                return AddResult.DUPLICATE_ITEM
            self.store.insert(item)
            self._audit("Add", f"'{item.title}' due {item.due_at.isoformat()}")
            self.store.save()
            return AddResult.ADDED

    def complete(self, item_id: str, now: datetime | None = None) -> Completion | None:
        """
        Mark an item completed and spawn its next occurrence.

        Returns None if the item does not exist. Completing an item twice
        spawns nothing the second time. A rejected (duplicate) next
        occurrence does not undo the completion.
        """
        with self._lock:
            item = self._find(item_id)
            if item is None:
                return None
            if item.is_completed:
                return Completion(item=item, already_completed=True)

            item.is_completed = True
            item.completed_at = now or datetime.now()
            self._audit("Complete", f"'{item.title}'")
            self.store.save()

            completion = Completion(item=item)
            following = item.next_occurrence()
            if following is not None:
                completion.regeneration = self.add(following)
                if completion.regeneration == AddResult.ADDED:
                    completion.spawned = following
                    self._audit("Regenerate", f"'{following.title}' due {following.due_at.isoformat()}")
                else:
                    self._audit("RegenerateSkipped", f"'{following.title}' already scheduled")
            return completion

    def undo_complete(self, item_id: str) -> SchedulableItem | None:
        """
        Mark an item active again.

        An occurrence already spawned by the completion is left in place.
        """
        with self._lock:
            item = self._find(item_id)
            if item is None:
                return None
            item.is_completed = False
            item.completed_at = None
            self._audit("UndoComplete", f"'{item.title}'")
            self.store.save()
            return item

    def update(self, item: SchedulableItem) -> bool:
        """Replace the stored item with the same id. False if unknown."""
        with self._lock:
            existing = self._find(item.id)
            if existing is None:
                return False
            self.store.delete(existing)
            self.store.insert(item)
            self._audit("Update", f"'{item.title}'")
            self.store.save()
            return True

    def delete(self, item_id: str) -> SchedulableItem | None:
        """Remove an item. Returns the removed item, or None if unknown."""
        with self._lock:
            item = self._find(item_id)
            if item is None:
                return None
            self.store.delete(item)
            self._audit("Delete", f"'{item.title}'")
            self.store.save()
            return item

    def delete_with_undo(self, item_id: str) -> SchedulableItem | None:
        """Remove an item and remember it for undo_last_delete()."""
        with self._lock:
            item = self.delete(item_id)
            if item is not None:
                self._undo.append(item)
            return item

    def undo_last_delete(self) -> tuple[SchedulableItem, AddResult] | None:
        """Restore the most recently deleted item through add()."""
        with self._lock:
            if not self._undo:
                return None
            item = self._undo.pop()
            result = self.add(item)
            self._audit("UndoDelete", f"'{item.title}' {result.value}")
            return item, result

    @property
    def undo_depth(self) -> int:
        return len(self._undo)

    # ============== Queries ==============

    def upcoming(self, from_: datetime | None = None) -> list[SchedulableItem]:
        with self._lock:
            return filter_upcoming(self.store.fetch(), from_ or datetime.now())

    def overdue(self, as_of: datetime | None = None) -> list[SchedulableItem]:
        with self._lock:
            return filter_overdue(self.store.fetch(), as_of or datetime.now())

    def due_today(self, day: date | None = None) -> list[SchedulableItem]:
        with self._lock:
            return filter_due_on(self.store.fetch(), day or date.today())

    def completed(self) -> list[SchedulableItem]:
        with self._lock:
            return filter_completed(self.store.fetch())
