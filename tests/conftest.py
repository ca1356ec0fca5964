"""
Pytest configuration and shared fixtures.
"""

from datetime import date

import pytest

from config import Settings
from db.memory_store import MemoryEventStore
from engine.reminder_engine import ReminderEngine
from models.event import Event
from notifier.base import RecordingSink
from utils.datetime_utils import FixedClock


@pytest.fixture
def test_settings():
    """Settings isolated from the developer's .env file."""
    return Settings(
        _env_file=None,
        bot_token="test_token",
        channel_id=-1001234567890,
        store_backend="memory",
        timezone="Asia/Tokyo",
        scheduler_pulse_seconds=60,
        command_reply_timeout=0.5,
    )


@pytest.fixture
def clock():
    """Clock pinned to 2025-06-03 in Tokyo."""
    return FixedClock(date(2025, 6, 3))


@pytest.fixture
def memory_store():
    return MemoryEventStore()


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def engine(memory_store, sink, clock):
    return ReminderEngine(memory_store, sink, clock)


@pytest.fixture
def make_event():
    """Factory building an event for a YYYY-MM-DD day."""

    def _make(day: str, message: str = "Launch", **flags) -> Event:
        return Event(date=date.fromisoformat(day), message=message, **flags)

    return _make
