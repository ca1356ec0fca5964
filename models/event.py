"""Event models for dated reminders."""

import datetime
import uuid
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from utils.datetime_utils import parse_event_date
from utils.exceptions import ValidationError


def new_event_id() -> str:
    """Generate a fresh opaque event ID."""
    return uuid.uuid4().hex


class Event(BaseModel):
    """A dated event with per-lead-time notification flags."""

    id: str = Field(default_factory=new_event_id)
    date: datetime.date
    message: str
    notified_7: bool = False
    notified_3: bool = False
    notified_0: bool = False

    class Config:
        json_schema_extra = {
            "example": {
                "id": "3f2b9c0e6d4a4f1c8a7e5b2d1c0f9e8a",
                "date": "2025-06-10",
                "message": "Launch",
                "notified_7": False,
                "notified_3": False,
                "notified_0": False,
            }
        }

    @field_validator("date", mode="before")
    @classmethod
    def _strict_calendar_date(cls, value):
        # Stored documents only ever hold YYYY-MM-DD; reject timestamps and ints
        if isinstance(value, str):
            try:
                return parse_event_date(value)
            except ValidationError as e:
                raise ValueError(str(e)) from e
        if isinstance(value, datetime.datetime) or not isinstance(value, datetime.date):
            raise ValueError(f"Expected a calendar date, got {value!r}")
        return value

    def sort_key(self):
        return (self.date, self.id)


class EventSnapshot(BaseModel):
    """Events as loaded from a store, plus the backend's version token."""

    events: List[Event] = Field(default_factory=list)
    version: Optional[str] = None
