"""Diagnostics sink interface."""

from typing import Protocol


class DiagnosticsSink(Protocol):
    """Interface for recording component actions for debugging."""

    def record(self, component: str, action: str, detail: str = "") -> None:
        """Record an action. Must never raise or block."""
        ...
