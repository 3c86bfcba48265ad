"""Ports - interfaces/protocols for external dependencies."""

from .item_store import ItemStore
from .dispatcher import Dispatcher, Notifier
from .diagnostics_sink import DiagnosticsSink

__all__ = [
    "ItemStore",
    "Dispatcher",
    "Notifier",
    "DiagnosticsSink",
]
