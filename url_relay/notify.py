"""Confirmation messages sent back to the submitting user via the Bot API.

One attempt per submission, bounded by the configured timeout. Failures are
raised as DeliveryError so callers can tell them apart from auth failures.
"""

from telegram import Bot
from telegram.error import TelegramError


class DeliveryError(Exception):
    """The Bot API did not accept the confirmation message."""

    def __init__(self, chat_id: int, message: str):
        super().__init__(f"delivery to {chat_id} failed: {message}")
        self.chat_id = chat_id


def confirmation_text(url: str) -> str:
    return f"URL received: {url}"


class Notifier:
    def __init__(self, bot: Bot, timeout: float = 10.0):
        self.bot = bot
        self.timeout = timeout

    async def send_confirmation(self, chat_id: int, url: str) -> None:
        """Send the confirmation for url to chat_id, raising DeliveryError on failure."""
        try:
            await self.bot.send_message(
                chat_id=chat_id,
                text=confirmation_text(url),
                connect_timeout=self.timeout,
                read_timeout=self.timeout,
                write_timeout=self.timeout,
            )
        except TelegramError as e:
            print(f"[Notify] sendMessage to {chat_id} failed: {e}")
            raise DeliveryError(chat_id, str(e)) from e
        print(f"[Notify] confirmation sent to {chat_id}")
