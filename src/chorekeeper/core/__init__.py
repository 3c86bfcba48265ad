"""Functional core - pure scheduling logic with no I/O."""

from .recurrence import RecurrenceRule, next_occurrence, occurrences
from .items import (
    ItemKind,
    SchedulableItem,
    is_duplicate,
    filter_upcoming,
    filter_overdue,
    filter_due_on,
    filter_completed,
    filter_follow_ups,
)
from .errors import (
    AddResult,
    ReminderResult,
    ChorekeeperError,
    ItemNotFound,
    NotAuthorized,
    DispatcherFailure,
    StoreFailure,
    FollowUpCancellationError,
)
from .diagnostics import AuditEntry, AuditTrail

__all__ = [
    # Recurrence
    "RecurrenceRule",
    "next_occurrence",
    "occurrences",
    # Items
    "ItemKind",
    "SchedulableItem",
    "is_duplicate",
    "filter_upcoming",
    "filter_overdue",
    "filter_due_on",
    "filter_completed",
    "filter_follow_ups",
    # Errors
    "AddResult",
    "ReminderResult",
    "ChorekeeperError",
    "ItemNotFound",
    "NotAuthorized",
    "DispatcherFailure",
    "StoreFailure",
    "FollowUpCancellationError",
    # Diagnostics
    "AuditEntry",
    "AuditTrail",
]
