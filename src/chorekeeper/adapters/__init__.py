"""Adapters - I/O implementations of ports."""

from .memory_store import InMemoryItemStore
from .file_store import FileItemStore
from .apscheduler_dispatcher import APSchedulerDispatcher
from .log_notifier import LogNotifier
from .telegram_notifier import TelegramNotifier

__all__ = [
    "InMemoryItemStore",
    "FileItemStore",
    "APSchedulerDispatcher",
    "LogNotifier",
    "TelegramNotifier",
]
