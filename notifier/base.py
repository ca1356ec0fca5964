"""Notification sink contract."""

from abc import ABC, abstractmethod
from typing import List


class NotificationSink(ABC):
    """Delivers text notifications to one fixed destination."""

    @abstractmethod
    async def deliver(self, text: str) -> bool:
        """
        Deliver a notification.

        Args:
            text: Message body

        Returns:
            True if the destination accepted the message, False otherwise

        Raises:
            DeliveryFailure: Sinks may raise instead of returning False
        """


class RecordingSink(NotificationSink):
    """Sink that keeps delivered messages in memory. Used for dry runs and tests."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.messages: List[str] = []

    async def deliver(self, text: str) -> bool:
        if self.fail:
            return False
        self.messages.append(text)
        return True
