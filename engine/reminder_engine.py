"""
Reminder engine.

Owns the event operations (add, list, delete) and the daily tick that
expires past events and sends lead-time reminders. Every write goes through
the MutationSerializer.
"""

from datetime import date
from typing import List, Optional, Set, Union

from pydantic import BaseModel, Field

from db.base import EventStore
from engine.notifications import (
    DeliveryKey,
    DeliveryOutcome,
    advance_event,
    is_expired,
)
from engine.serializer import MutationSerializer
from models.event import Event
from notifier.base import NotificationSink
from utils.constants import EVENT_ID_DISPLAY_LENGTH
from utils.datetime_utils import Clock, parse_event_date
from utils.exceptions import EventNotFoundError
from utils.logging_config import setup_logging
from utils.validation import parse_position, validate_message

logger = setup_logging(
    name=__name__, log_level="INFO", log_file="engine.log", log_dir="logs"
)


class TickReport(BaseModel):
    """Summary of one day-boundary tick."""

    day: date
    expired: List[str] = Field(default_factory=list)
    delivered: List[DeliveryKey] = Field(default_factory=list)
    failed: List[DeliveryKey] = Field(default_factory=list)
    remaining: int = 0


class ReminderEngine:
    """Orchestrates store access, expiry and notifications."""

    def __init__(
        self,
        store: EventStore,
        sink: NotificationSink,
        clock: Optional[Clock] = None,
        serializer: Optional[MutationSerializer] = None,
    ):
        self.store = store
        self.sink = sink
        self.clock = clock or Clock()
        self.serializer = serializer or MutationSerializer(store)

    async def tick(self, today: Optional[date] = None) -> TickReport:
        """
        Run the day-boundary pass.

        Drops events whose date has passed, sends the reminders due today and
        commits the updated flags. Reminders confirmed by the sink are never
        re-sent, even if the commit has to be retried after a conflict.
        """
        today = today or self.clock.today()
        report = TickReport(day=today)
        confirmed: Set[DeliveryKey] = set()

        async def mutate(events: List[Event]) -> List[Event]:
            outcome = DeliveryOutcome()
            report.expired = [event.id for event in events if is_expired(event, today)]

            survivors = []
            for event in events:
                if is_expired(event, today):
                    continue
                survivors.append(
                    await advance_event(event, today, self.sink, outcome, confirmed)
                )

            confirmed.update(outcome.delivered)
            report.delivered = sorted(confirmed)
            report.failed = outcome.failed
            return survivors

        committed = await self.serializer.with_exclusive_access(mutate)
        report.remaining = len(committed)

        logger.info(
            f"Tick {today.isoformat()}: {len(report.delivered)} delivered, "
            f"{len(report.failed)} failed, {len(report.expired)} expired, "
            f"{report.remaining} remaining"
        )
        return report

    async def add_event(self, event_date: str, message: str) -> Event:
        """
        Validate and store a new event.

        Raises:
            ValidationError: If the date or message is invalid (store untouched)
        """
        parsed_date = parse_event_date(event_date)
        text = validate_message(message)
        event = Event(date=parsed_date, message=text)

        def mutate(events: List[Event]) -> List[Event]:
            return events + [event]

        await self.serializer.with_exclusive_access(mutate)
        logger.info(f"Added event {event.id} on {parsed_date.isoformat()}")
        return event

    async def delete_event(self, reference: Union[int, str]) -> Event:
        """
        Remove one event.

        Args:
            reference: 1-based position in list_events() order, or an event id

        Raises:
            EventNotFoundError: If the reference does not resolve (store untouched)
        """
        removed: List[Event] = []

        def mutate(events: List[Event]) -> List[Event]:
            target = resolve_reference(events, reference)
            removed.append(target)
            return [event for event in events if event.id != target.id]

        await self.serializer.with_exclusive_access(mutate)
        logger.info(f"Deleted event {removed[-1].id}")
        return removed[-1]

    async def list_events(self) -> List[Event]:
        """Events sorted by date. Read-only: no flags change, nothing is sent."""
        return await self.serializer.read()


def resolve_reference(events: List[Event], reference: Union[int, str]) -> Event:
    """
    Find the event a user reference points at.

    Raises:
        EventNotFoundError: If no event matches
    """
    position = reference if isinstance(reference, int) else parse_position(str(reference))

    if position is not None:
        if 1 <= position <= len(events):
            return events[position - 1]
        raise EventNotFoundError(
            f"No event #{position} (there are {len(events)} events)"
        )

    for event in events:
        if event.id == reference:
            return event
    raise EventNotFoundError(f"No event with id {reference}")


def format_event_list(events: List[Event]) -> str:
    """Numbered listing of events, one per line."""
    if not events:
        return "No upcoming events."

    lines = []
    for position, event in enumerate(events, start=1):
        lines.append(
            f"{position}. {event.date.isoformat()} {event.message} "
            f"[{event.id[:EVENT_ID_DISPLAY_LENGTH]}]"
        )
    return "\n".join(lines)
