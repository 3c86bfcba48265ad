"""Item store interface."""

from typing import Any, Callable, Protocol

from chorekeeper.core.items import SchedulableItem


class ItemStore(Protocol):
    """Interface for persisting schedulable items in any backend."""

    def insert(self, item: SchedulableItem) -> None:
        """Add an item. Inserting an existing id replaces it."""
        ...

    def delete(self, item: SchedulableItem) -> None:
        """Remove an item. Missing items are ignored."""
        ...

    def save(self) -> None:
        """Persist pending changes. Raises StoreFailure on error."""
        ...

    def fetch(
        self,
        predicate: Callable[[SchedulableItem], bool] | None = None,
        sort_key: Callable[[SchedulableItem], Any] | None = None,
    ) -> list[SchedulableItem]:
        """Fetch items matching predicate, optionally sorted."""
        ...
