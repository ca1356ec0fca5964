"""Reminder engine: serialized event mutations and the notification state machine."""

from .notifications import LeadTime
from .reminder_engine import ReminderEngine, TickReport, format_event_list
from .serializer import MutationSerializer

__all__ = [
    "LeadTime",
    "MutationSerializer",
    "ReminderEngine",
    "TickReport",
    "format_event_list",
]
