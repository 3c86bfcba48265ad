"""Pure schedulable item domain logic - no I/O dependencies."""

import uuid
from dataclasses import dataclass, field, replace
from datetime import date, datetime, timedelta
from enum import Enum

from .recurrence import RecurrenceRule, next_occurrence


class ItemKind(Enum):
    """What kind of work an item represents."""

    TASK = "task"
    APPOINTMENT = "appointment"
    FOLLOW_UP = "follow_up"


def new_id() -> str:
    return uuid.uuid4().hex


@dataclass
class SchedulableItem:
    """One occurrence of a task or appointment that needs a reminder."""

    title: str
    due_at: datetime
    recurrence: RecurrenceRule = RecurrenceRule.NONE
    reminder_offset: timedelta = timedelta(0)
    notes: str = ""
    kind: ItemKind = ItemKind.TASK
    related_parent_id: str | None = None
    is_completed: bool = False
    completed_at: datetime | None = None
    id: str = field(default_factory=new_id)

    def __post_init__(self):
        self.title = self.title.strip()
        if not self.title:
            raise ValueError("Item title must not be empty")
        if self.reminder_offset < timedelta(0):
            raise ValueError("Reminder offset must not be negative")

    @property
    def is_follow_up(self) -> bool:
        return self.kind == ItemKind.FOLLOW_UP

    def trigger_at(self) -> datetime:
        """When the reminder fires. Raises OverflowError for out-of-range offsets."""
        return self.due_at - self.reminder_offset

    def is_overdue(self, as_of: datetime | None = None) -> bool:
        as_of = as_of or datetime.now()
        return not self.is_completed and self.due_at < as_of

    def is_due_on(self, day: date) -> bool:
        return self.due_at.date() == day

    def next_occurrence(self) -> "SchedulableItem | None":
        """
        Build the sibling item for the next period.

        Returns None for one-off items. The new item gets a fresh id and
        starts active; the rule itself is never changed on this item.
        """
        next_due = next_occurrence(self.recurrence, self.due_at)
        if next_due is None:
            return None
        return replace(
            self,
            id=new_id(),
            due_at=next_due,
            is_completed=False,
            completed_at=None,
        )

    def to_dict(self) -> dict:
        """Serialize for JSON storage."""
        return {
            "id": self.id,
            "title": self.title,
            "due_at": self.due_at.isoformat(),
            "recurrence": self.recurrence.value,
            "reminder_offset_minutes": int(self.reminder_offset.total_seconds() // 60),
            "notes": self.notes,
            "kind": self.kind.value,
            "related_parent_id": self.related_parent_id,
            "is_completed": self.is_completed,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "SchedulableItem":
        """Create an item from its stored JSON form."""
        completed_at = None
        if data.get("completed_at"):
            completed_at = datetime.fromisoformat(data["completed_at"])
        return cls(
            id=data["id"],
            title=data["title"],
            due_at=datetime.fromisoformat(data["due_at"]),
            recurrence=RecurrenceRule.parse(data.get("recurrence")),
            reminder_offset=timedelta(minutes=data.get("reminder_offset_minutes", 0)),
            notes=data.get("notes", "") or "",
            kind=ItemKind(data.get("kind", "task")),
            related_parent_id=data.get("related_parent_id"),
            is_completed=data.get("is_completed", False),
            completed_at=completed_at,
        )


def is_duplicate(candidate: SchedulableItem, existing: SchedulableItem) -> bool:
    """
    Two items clash when they share a title on the same calendar day.

    Title comparison ignores case and surrounding whitespace. Time of day is
    ignored. Kept as a named predicate so the rule can change in one place.
    """
    if candidate.id == existing.id:
        return False
    return (
        candidate.title.strip().lower() == existing.title.strip().lower()
        and candidate.due_at.date() == existing.due_at.date()
    )


def find_duplicate(
    candidate: SchedulableItem, items: list[SchedulableItem]
) -> SchedulableItem | None:
    return next((i for i in items if is_duplicate(candidate, i)), None)


def by_due(item: SchedulableItem) -> datetime:
    return item.due_at


def filter_upcoming(items: list[SchedulableItem], from_: datetime) -> list[SchedulableItem]:
    """Active items due at or after from_, soonest first."""
    return sorted((i for i in items if not i.is_completed and i.due_at >= from_), key=by_due)


def filter_overdue(items: list[SchedulableItem], as_of: datetime) -> list[SchedulableItem]:
    """Active items due before as_of, oldest first."""
    return sorted((i for i in items if not i.is_completed and i.due_at < as_of), key=by_due)


def filter_due_on(items: list[SchedulableItem], day: date) -> list[SchedulableItem]:
    """Items due on a calendar day, in due order."""
    return sorted((i for i in items if i.is_due_on(day)), key=by_due)


def filter_completed(items: list[SchedulableItem]) -> list[SchedulableItem]:
    """Completed items, most recently completed first."""
    done = [i for i in items if i.is_completed]
    return sorted(done, key=lambda i: i.completed_at or i.due_at, reverse=True)


def filter_follow_ups(items: list[SchedulableItem], parent_id: str) -> list[SchedulableItem]:
    return [i for i in items if i.is_follow_up and i.related_parent_id == parent_id]
