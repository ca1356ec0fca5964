"""Daily scheduling of reminder checks."""

from .reminders import DailyTrigger, ReminderScheduler

__all__ = ["DailyTrigger", "ReminderScheduler"]
