"""Telegram notifier adapter - delivers reminders as bot messages."""

import asyncio
import logging

from telegram import Bot
from telegram.error import TelegramError

logger = logging.getLogger(__name__)


class TelegramNotifier:
    """
    Telegram bot notifier.

    Implements Notifier protocol. Each call opens a short-lived Bot session,
    since delivery runs on scheduler worker threads without an event loop.
    """

    def __init__(self, token: str, chat_ids: list[int]):
        self.token = token
        self.chat_ids = chat_ids

    async def _get_me(self):
        async with Bot(self.token) as bot:
            return await bot.get_me()

    async def _send(self, text: str) -> None:
        async with Bot(self.token) as bot:
            for chat_id in self.chat_ids:
                try:
                    await bot.send_message(chat_id=chat_id, text=text)
                except TelegramError as e:
                    logger.error(f"Failed to send reminder to user {chat_id}: {e}")

    def authorize(self) -> bool:
        """Authorized when the token is valid and there is someone to notify."""
        if not self.token:
            logger.warning("TELEGRAM_BOT_TOKEN not configured")
            return False
        if not self.chat_ids:
            logger.warning("No TELEGRAM_ALLOWED_USERS configured - nobody to notify")
            return False
        try:
            me = asyncio.run(self._get_me())
        except TelegramError as e:
            logger.error(f"Telegram authorization failed: {e}")
            return False
        logger.info(f"Delivering reminders as @{me.username}")
        return True

    def deliver(self, title: str, body: str) -> None:
        asyncio.run(self._send(f"{title}\n\n{body}"))
