"""Telegram notification sink using aiogram."""

from typing import Union

from aiogram import Bot
from aiogram.exceptions import TelegramAPIError

from notifier.base import NotificationSink
from utils.exceptions import DeliveryFailure
from utils.logging_config import setup_logging

logger = setup_logging(
    name=__name__, log_level="INFO", log_file="notifier.log", log_dir="logs"
)


class TelegramSink(NotificationSink):
    """Send reminders to a single Telegram chat or channel."""

    def __init__(self, bot: Bot, chat_id: Union[int, str]):
        self.bot = bot
        self.chat_id = chat_id

    async def deliver(self, text: str) -> bool:
        """
        Send text to the configured chat.

        Returns:
            True once Telegram accepted the message

        Raises:
            DeliveryFailure: If Telegram rejected the message or could not
                be reached
        """
        try:
            await self.bot.send_message(self.chat_id, text)
        except TelegramAPIError as e:
            raise DeliveryFailure(
                f"Telegram rejected message for chat {self.chat_id}: {e}"
            ) from e
        except Exception as e:
            raise DeliveryFailure(
                f"Failed to send message to chat {self.chat_id}: {e}"
            ) from e

        logger.info(f"Reminder sent to chat {self.chat_id}")
        return True
