"""
Daily reminder scheduling using APScheduler.

APScheduler pulses the trigger every minute; DailyTrigger turns those pulses
into at most one engine tick per calendar day in the bot's timezone.
"""

from datetime import date
from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from engine.reminder_engine import ReminderEngine, TickReport
from utils.datetime_utils import Clock
from utils.logging_config import setup_logging

logger = setup_logging(
    name=__name__, log_level="INFO", log_file="scheduler.log", log_dir="logs"
)


class DailyTrigger:
    """Runs the engine tick once per calendar day, however often it is pulsed."""

    def __init__(self, engine: ReminderEngine, clock: Optional[Clock] = None):
        self.engine = engine
        self.clock = clock or engine.clock
        self.last_run_day: Optional[date] = None

    async def pulse(self) -> bool:
        """
        Tick if today has not been handled yet.

        Returns:
            True if a tick ran and completed cleanly, False otherwise
        """
        today = self.clock.today()
        if today == self.last_run_day:
            logger.debug(f"Already ran for {today.isoformat()}, skipping")
            return False

        previous = self.last_run_day
        self.last_run_day = today
        try:
            report = await self.engine.tick(today)
        except Exception as e:
            # Forget the day so the next pulse tries again
            self.last_run_day = previous
            logger.error(f"Reminder tick for {today.isoformat()} failed: {e}", exc_info=True)
            return False

        if report.failed:
            self.last_run_day = previous
            logger.warning(
                f"{len(report.failed)} reminders undelivered on {today.isoformat()}, "
                f"retrying on next pulse"
            )
            return False

        return True

    async def run_now(self) -> TickReport:
        """Force a tick for today regardless of earlier runs."""
        self.last_run_day = None
        today = self.clock.today()
        report = await self.engine.tick(today)
        if not report.failed:
            self.last_run_day = today
        logger.info(f"Manual run for {today.isoformat()} complete")
        return report


class ReminderScheduler:
    """Owns the APScheduler instance that pulses a DailyTrigger."""

    JOB_ID = "daily_reminder_check"

    def __init__(
        self,
        trigger: DailyTrigger,
        pulse_seconds: int = 60,
        scheduler: Optional[AsyncIOScheduler] = None,
    ):
        self.trigger = trigger
        self.pulse_seconds = pulse_seconds
        self.scheduler = scheduler or AsyncIOScheduler(timezone=trigger.clock.tz)

    def start(self) -> None:
        """Register the pulse job and start the scheduler."""
        self.scheduler.add_job(
            self.trigger.pulse,
            trigger=IntervalTrigger(seconds=self.pulse_seconds),
            id=self.JOB_ID,
            name="Check events and send reminders",
            next_run_time=self.trigger.clock.now(),
            max_instances=1,
            coalesce=True,
            replace_existing=True,
        )
        self.scheduler.start()
        logger.info(f"Scheduler started, pulsing every {self.pulse_seconds}s")

    def shutdown(self) -> None:
        """Shutdown the scheduler."""
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
        logger.info("Scheduler stopped")
