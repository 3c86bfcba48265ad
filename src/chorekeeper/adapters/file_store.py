"""File-based item store adapter."""

import json
import logging
from pathlib import Path

from chorekeeper.core.errors import StoreFailure
from chorekeeper.core.items import SchedulableItem

from .memory_store import InMemoryItemStore

logger = logging.getLogger(__name__)


class FileItemStore(InMemoryItemStore):
    """
    JSON file item store.

    Implements ItemStore protocol. The whole file is read at construction and
    rewritten on save(); changes before save() live only in memory.
    """

    def __init__(self, path: Path | str):
        super().__init__()
        self.path = Path(path).expanduser()
        self._load()

    def _load(self) -> None:
        if not self.path.exists():
            return
        try:
            data = json.loads(self.path.read_text())
            for entry in data.get("items", []):
                self.insert(SchedulableItem.from_dict(entry))
        except (OSError, json.JSONDecodeError, KeyError, ValueError) as e:
            logger.error(f"Failed to load items from {self.path}: {e}")
            raise StoreFailure(f"Could not read {self.path}: {e}") from e
        logger.debug(f"Loaded {len(self)} items from {self.path}")

    def save(self) -> None:
        """Write every item to the store file."""
        payload = {"items": [i.to_dict() for i in self.fetch(sort_key=lambda i: i.due_at)]}
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp.write_text(json.dumps(payload, indent=2))
            tmp.replace(self.path)
        except OSError as e:
            logger.error(f"Failed to save items to {self.path}: {e}")
            raise StoreFailure(f"Could not write {self.path}: {e}") from e

    def reload(self) -> None:
        """Discard in-memory state and re-read the file."""
        self._items.clear()
        self._load()
