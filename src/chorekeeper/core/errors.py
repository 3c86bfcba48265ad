"""Error taxonomy and soft results for the scheduling engine."""

from enum import Enum


class AddResult(Enum):
    """Outcome of adding an item. Duplicates are rejected, not raised."""

    ADDED = "added"
    DUPLICATE_ITEM = "duplicate_item"


class ReminderResult(Enum):
    """Outcome of scheduling a reminder."""

    SCHEDULED = "scheduled"
    PAST_TRIGGER = "past_trigger"  # trigger time already passed, skipped
    INVALID_TRIGGER = "invalid_trigger"  # trigger time could not be computed


class ChorekeeperError(Exception):
    """Base class for engine errors."""

    pass


class ItemNotFound(ChorekeeperError):
    """Raised when an item id does not exist."""

    def __init__(self, item_id: str):
        super().__init__(f"No item with id {item_id}")
        self.item_id = item_id


class NotAuthorized(ChorekeeperError):
    """Raised when the dispatcher has not been granted permission."""

    pass


class DispatcherFailure(ChorekeeperError):
    """Raised when the notification dispatcher fails."""

    pass


class StoreFailure(ChorekeeperError):
    """Raised when the item store fails to read or persist."""

    pass


class FollowUpCancellationError(ChorekeeperError):
    """Raised after a cancellation pass where some follow-ups failed."""

    def __init__(self, failures: list[tuple[str, Exception]], removed: list[str]):
        ids = ", ".join(item_id for item_id, _ in failures)
        super().__init__(f"Failed to cancel {len(failures)} follow-up(s): {ids}")
        self.failures = failures
        self.removed = removed
