"""Bounded in-memory audit trail for diagnostics."""

import json
import threading
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime

DEFAULT_CAPACITY = 50


@dataclass(frozen=True)
class AuditEntry:
    """A single diagnostic record."""

    component: str
    action: str
    detail: str = ""
    timestamp: datetime = field(default_factory=datetime.now)

    def format(self) -> str:
        line = f"{self.timestamp.strftime('%Y-%m-%d %H:%M:%S')} [{self.component}] {self.action}"
        return f"{line}: {self.detail}" if self.detail else line


class AuditTrail:
    """
    Fixed-capacity FIFO buffer of audit entries.

    Implements DiagnosticsSink protocol. One instance is shared by every
    component. Recording never blocks: if another thread holds the buffer,
    the entry is dropped.
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY):
        if capacity <= 0:
            raise ValueError("Audit capacity must be positive")
        self.capacity = capacity
        self._entries: deque[AuditEntry] = deque(maxlen=capacity)
        self._lock = threading.Lock()
        self._dropped_lock = threading.Lock()
        self._dropped = 0

    def record(self, component: str, action: str, detail: str = "") -> None:
        entry = AuditEntry(component=component, action=action, detail=detail)
        if not self._lock.acquire(blocking=False):
            with self._dropped_lock:
                self._dropped += 1
            return
        try:
            self._entries.append(entry)
        finally:
            self._lock.release()

    @property
    def dropped(self) -> int:
        """Entries lost because the buffer was busy."""
        with self._dropped_lock:
            return self._dropped

    def entries(self) -> list[AuditEntry]:
        with self._lock:
            return list(self._entries)

    def recent(self, limit: int = 20, component: str | None = None) -> list[AuditEntry]:
        """Most recent entries, oldest first, optionally for one component."""
        entries = self.entries()
        if component:
            entries = [e for e in entries if e.component == component]
        return entries[-limit:] if limit > 0 else []

    def export_json(self) -> str:
        return json.dumps(
            [
                {
                    "timestamp": e.timestamp.isoformat(),
                    "component": e.component,
                    "action": e.action,
                    "detail": e.detail,
                }
                for e in self.entries()
            ],
            indent=2,
        )

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
