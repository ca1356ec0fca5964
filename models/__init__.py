"""Pydantic models for data validation and serialization."""

from .event import Event, EventSnapshot, new_event_id

__all__ = [
    "Event",
    "EventSnapshot",
    "new_event_id",
]
