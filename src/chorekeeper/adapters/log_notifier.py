"""Logging notifier adapter."""

import logging

logger = logging.getLogger(__name__)


class LogNotifier:
    """
    Notifier that writes reminders to the log.

    Implements Notifier protocol. Always authorized.
    """

    def __init__(self):
        self.delivered: list[tuple[str, str]] = []

    def authorize(self) -> bool:
        return True

    def deliver(self, title: str, body: str) -> None:
        logger.info(f"Reminder: {title} - {body}")
        self.delivered.append((title, body))
