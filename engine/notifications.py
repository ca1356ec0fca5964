"""
Per-event notification state machine.

Each event carries one flag per lead time. A flag only ever moves from
False to True, and only after the sink confirmed delivery. Lead times whose
day was missed (bot offline) are skipped, never sent late.
"""

import logging
from datetime import date
from enum import Enum
from typing import List, Optional, Set, Tuple

from models.event import Event
from notifier.base import NotificationSink
from utils.datetime_utils import day_distance
from utils.exceptions import DeliveryFailure

logger = logging.getLogger(__name__)

DeliveryKey = Tuple[str, int]


class LeadTime(int, Enum):
    """Days before the event at which a reminder goes out."""

    WEEK = 7
    THREE_DAYS = 3
    TODAY = 0

    @property
    def flag(self) -> str:
        return f"notified_{self.value}"

    def render(self, event: Event) -> str:
        """Reminder text for this lead time."""
        when = event.date.isoformat()
        if self is LeadTime.TODAY:
            return f"📢 Today is the day! ({when})\n{event.message}"
        return f"⏰ {self.value} days left until {when}\n{event.message}"


def due_lead_time(event: Event, today: date) -> Optional[LeadTime]:
    """Lead time that should fire for event today, if any is still pending."""
    distance = day_distance(event.date, today)
    for lead in LeadTime:
        if distance == lead.value and not getattr(event, lead.flag):
            return lead
    return None


def is_expired(event: Event, today: date) -> bool:
    return day_distance(event.date, today) < 0


class DeliveryOutcome:
    """What happened to the reminders of one tick."""

    def __init__(self):
        self.delivered: List[DeliveryKey] = []
        self.failed: List[DeliveryKey] = []


async def advance_event(
    event: Event,
    today: date,
    sink: NotificationSink,
    outcome: DeliveryOutcome,
    already_delivered: Optional[Set[DeliveryKey]] = None,
) -> Event:
    """
    Fire the lead time due for event today and set its flag on success.

    Args:
        event: Live (not expired) event; mutated in place
        today: Current calendar day
        sink: Where reminders are delivered
        outcome: Collects delivered and failed (event id, lead) pairs
        already_delivered: Pairs confirmed earlier in the same tick; their
            flag is set again without re-sending

    Returns:
        The same event, with at most one more flag set
    """
    lead = due_lead_time(event, today)
    if lead is None:
        return event

    key = (event.id, lead.value)
    if already_delivered and key in already_delivered:
        setattr(event, lead.flag, True)
        return event

    try:
        delivered = await sink.deliver(lead.render(event))
    except DeliveryFailure as e:
        logger.error(
            f"Delivery of {lead.value}-day reminder for event {event.id} failed: {e}"
        )
        delivered = False
    except Exception as e:
        logger.error(
            f"Delivery of {lead.value}-day reminder for event {event.id} failed: {e}",
            exc_info=True,
        )
        delivered = False

    if not delivered:
        logger.warning(
            f"{lead.value}-day reminder for event {event.id} not delivered, will retry"
        )
        outcome.failed.append(key)
        return event

    setattr(event, lead.flag, True)
    outcome.delivered.append(key)
    return event
