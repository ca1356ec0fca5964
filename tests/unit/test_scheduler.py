"""
Unit tests for scheduler functionality.
Tests the once-per-day trigger with mocked dependencies.
"""

from datetime import date
from unittest.mock import AsyncMock, MagicMock

import pytest

from engine.reminder_engine import TickReport
from scheduler.reminders import DailyTrigger, ReminderScheduler
from utils.datetime_utils import FixedClock
from utils.exceptions import StoreUnavailable


@pytest.fixture
def mock_engine():
    """Engine whose tick reports a clean run for the requested day."""
    engine = MagicMock()
    engine.tick = AsyncMock(side_effect=lambda today: TickReport(day=today))
    return engine


@pytest.mark.asyncio
async def test_pulse_runs_once_per_day(mock_engine):
    clock = FixedClock(date(2025, 6, 3))
    trigger = DailyTrigger(mock_engine, clock)

    assert await trigger.pulse() is True
    assert await trigger.pulse() is False
    assert await trigger.pulse() is False

    mock_engine.tick.assert_awaited_once_with(date(2025, 6, 3))
    assert trigger.last_run_day == date(2025, 6, 3)


@pytest.mark.asyncio
async def test_pulse_runs_again_next_day(mock_engine):
    clock = FixedClock(date(2025, 6, 3))
    trigger = DailyTrigger(mock_engine, clock)

    await trigger.pulse()
    clock.day = date(2025, 6, 4)
    await trigger.pulse()

    assert mock_engine.tick.await_count == 2
    assert trigger.last_run_day == date(2025, 6, 4)


@pytest.mark.asyncio
async def test_failed_tick_is_retried(mock_engine):
    """A store outage does not burn the day."""
    mock_engine.tick.side_effect = [
        StoreUnavailable("down"),
        TickReport(day=date(2025, 6, 3)),
    ]
    trigger = DailyTrigger(mock_engine, FixedClock(date(2025, 6, 3)))

    assert await trigger.pulse() is False
    assert trigger.last_run_day is None
    assert await trigger.pulse() is True
    assert mock_engine.tick.await_count == 2


@pytest.mark.asyncio
async def test_undelivered_reminders_are_retried(mock_engine):
    mock_engine.tick.side_effect = [
        TickReport(day=date(2025, 6, 3), failed=[("e1", 7)]),
        TickReport(day=date(2025, 6, 3), delivered=[("e1", 7)]),
    ]
    trigger = DailyTrigger(mock_engine, FixedClock(date(2025, 6, 3)))

    assert await trigger.pulse() is False
    assert await trigger.pulse() is True
    assert await trigger.pulse() is False
    assert mock_engine.tick.await_count == 2


@pytest.mark.asyncio
async def test_run_now_forces_tick(mock_engine):
    trigger = DailyTrigger(mock_engine, FixedClock(date(2025, 6, 3)))

    await trigger.pulse()
    report = await trigger.run_now()

    assert report.day == date(2025, 6, 3)
    assert mock_engine.tick.await_count == 2
    assert trigger.last_run_day == date(2025, 6, 3)


def test_trigger_uses_engine_clock(mock_engine):
    mock_engine.clock = FixedClock(date(2025, 6, 3))
    assert DailyTrigger(mock_engine).clock is mock_engine.clock


def test_setup_scheduler(mock_engine):
    """Test scheduler setup."""
    trigger = DailyTrigger(mock_engine, FixedClock(date(2025, 6, 3)))
    mock_scheduler = MagicMock()
    mock_scheduler.running = True

    scheduler = ReminderScheduler(trigger, pulse_seconds=30, scheduler=mock_scheduler)
    scheduler.start()

    mock_scheduler.add_job.assert_called_once()
    job_kwargs = mock_scheduler.add_job.call_args.kwargs
    assert mock_scheduler.add_job.call_args.args[0] == trigger.pulse
    assert job_kwargs["id"] == ReminderScheduler.JOB_ID
    assert job_kwargs["max_instances"] == 1
    assert job_kwargs["trigger"].interval.total_seconds() == 30
    mock_scheduler.start.assert_called_once()

    scheduler.shutdown()
    mock_scheduler.shutdown.assert_called_once_with(wait=False)


def test_shutdown_when_not_running(mock_engine):
    trigger = DailyTrigger(mock_engine, FixedClock(date(2025, 6, 3)))
    mock_scheduler = MagicMock()
    mock_scheduler.running = False

    ReminderScheduler(trigger, scheduler=mock_scheduler).shutdown()

    mock_scheduler.shutdown.assert_not_called()
