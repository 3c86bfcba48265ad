"""In-memory item store adapter."""

from typing import Any, Callable

from chorekeeper.core.items import SchedulableItem


class InMemoryItemStore:
    """
    Dict-backed item store.

    Implements ItemStore protocol. save() is a no-op; used for tests and
    one-off sessions.
    """

    def __init__(self, items: list[SchedulableItem] | None = None):
        self._items: dict[str, SchedulableItem] = {}
        for item in items or []:
            self.insert(item)

    def insert(self, item: SchedulableItem) -> None:
        self._items[item.id] = item

    def delete(self, item: SchedulableItem) -> None:
        self._items.pop(item.id, None)

    def save(self) -> None:
        pass

    def fetch(
        self,
        predicate: Callable[[SchedulableItem], bool] | None = None,
        sort_key: Callable[[SchedulableItem], Any] | None = None,
    ) -> list[SchedulableItem]:
        items = [i for i in self._items.values() if predicate is None or predicate(i)]
        if sort_key is not None:
            items.sort(key=sort_key)
        return items

    def __len__(self) -> int:
        return len(self._items)
