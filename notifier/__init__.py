"""Notification sinks for delivering reminder messages."""

from .base import NotificationSink, RecordingSink
from .telegram import TelegramSink

__all__ = ["NotificationSink", "RecordingSink", "TelegramSink"]
