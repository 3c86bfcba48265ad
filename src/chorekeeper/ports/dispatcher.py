"""Notification dispatcher interfaces."""

from datetime import datetime
from typing import Protocol


class Dispatcher(Protocol):
    """Interface for a service that delivers time-based notifications."""

    def request_authorization(self) -> bool:
        """Ask for permission to deliver notifications. Called once."""
        ...

    def register(self, item_id: str, trigger_at: datetime, title: str, body: str) -> None:
        """Register a notification. An existing id is replaced.

        Raises NotAuthorized or DispatcherFailure.
        """
        ...

    def unregister(self, item_id: str) -> None:
        """Remove a pending notification. Unknown ids are ignored."""
        ...

    def pending_ids(self) -> list[str]:
        """Ids of notifications still waiting to fire."""
        ...


class Notifier(Protocol):
    """Interface for the channel that shows a notification to the user."""

    def authorize(self) -> bool:
        """Check that notifications can be delivered."""
        ...

    def deliver(self, title: str, body: str) -> None:
        """Send one notification now."""
        ...
