"""
Command gateway.

Chat platforms expect a reply within a few seconds, while a store round trip
can take longer. The gateway runs each engine operation as a task and
answers within ``reply_timeout``: with the result if it is ready, otherwise
with an "accepted" acknowledgement. The operation keeps running and its
final result goes to ``on_complete``. Errors always become a failed result;
a command never leaves its caller without an answer.
"""

import asyncio
from enum import Enum
from typing import Awaitable, Callable, Optional, Set, Union

from pydantic import BaseModel

from engine.reminder_engine import ReminderEngine, format_event_list
from scheduler.reminders import DailyTrigger
from utils.exceptions import (
    CorruptDocument,
    EventNotFoundError,
    StoreUnavailable,
    ValidationError,
    VersionConflict,
)
from utils.logging_config import setup_logging

logger = setup_logging(
    name=__name__, log_level="INFO", log_file="engine.log", log_dir="logs"
)


class CommandStatus(str, Enum):
    """Outcome of a command as seen by the caller."""

    COMPLETED = "completed"
    ACCEPTED = "accepted"
    FAILED = "failed"


class CommandResult(BaseModel):
    """Reply for a command."""

    command: str
    status: CommandStatus
    text: str

    class Config:
        use_enum_values = True


CompletionCallback = Callable[[CommandResult], Awaitable[None]]


def describe_error(error: Exception) -> str:
    """User-facing text for an engine error."""
    if isinstance(error, ValidationError):
        return f"❌ {error}"
    if isinstance(error, EventNotFoundError):
        return f"❌ {error}"
    if isinstance(error, StoreUnavailable):
        return "⚠️ Event storage is unreachable right now. Please try again later."
    if isinstance(error, CorruptDocument):
        return "⚠️ Stored events could not be read. Nothing was changed."
    if isinstance(error, VersionConflict):
        return "⚠️ Events were changed elsewhere at the same time. Please retry."
    return "⚠️ Something went wrong. Please try again later."


class CommandGateway:
    """Maps add/list/delete/run-now commands onto the reminder engine."""

    def __init__(
        self,
        engine: ReminderEngine,
        trigger: DailyTrigger,
        reply_timeout: float = 2.5,
        on_complete: Optional[CompletionCallback] = None,
    ):
        self.engine = engine
        self.trigger = trigger
        self.reply_timeout = reply_timeout
        self.on_complete = on_complete
        self._background: Set[asyncio.Task] = set()

    async def add(self, event_date: str, message: str) -> CommandResult:
        async def run() -> str:
            event = await self.engine.add_event(event_date, message)
            return f"✅ Added {event.date.isoformat()}: {event.message}"

        return await self._execute("add", run)

    async def list(self) -> CommandResult:
        async def run() -> str:
            return format_event_list(await self.engine.list_events())

        return await self._execute("list", run)

    async def delete(self, reference: Union[int, str]) -> CommandResult:
        async def run() -> str:
            event = await self.engine.delete_event(reference)
            return f"🗑 Deleted {event.date.isoformat()}: {event.message}"

        return await self._execute("delete", run)

    async def run_now(self) -> CommandResult:
        async def run() -> str:
            report = await self.trigger.run_now()
            return (
                f"🔁 Check for {report.day.isoformat()} done: "
                f"{len(report.delivered)} sent, {len(report.failed)} failed, "
                f"{len(report.expired)} expired"
            )

        return await self._execute("run_now", run)

    async def drain(self) -> None:
        """Wait for operations that outlived their reply window."""
        if self._background:
            await asyncio.gather(*self._background, return_exceptions=True)

    async def _execute(
        self, command: str, operation: Callable[[], Awaitable[str]]
    ) -> CommandResult:
        task = asyncio.create_task(self._settle(command, operation))
        done, _ = await asyncio.wait({task}, timeout=self.reply_timeout)

        if task in done:
            return task.result()

        logger.info(f"Command {command} still running, acknowledging")
        self._background.add(task)
        task.add_done_callback(self._finish_in_background)
        return CommandResult(
            command=command,
            status=CommandStatus.ACCEPTED,
            text="⏳ Working on it, I'll report back shortly.",
        )

    async def _settle(
        self, command: str, operation: Callable[[], Awaitable[str]]
    ) -> CommandResult:
        try:
            text = await operation()
        except (ValidationError, EventNotFoundError) as e:
            logger.info(f"Command {command} rejected: {e}")
            return CommandResult(command=command, status=CommandStatus.FAILED, text=describe_error(e))
        except Exception as e:
            logger.error(f"Command {command} failed: {e}", exc_info=True)
            return CommandResult(command=command, status=CommandStatus.FAILED, text=describe_error(e))
        return CommandResult(command=command, status=CommandStatus.COMPLETED, text=text)

    def _finish_in_background(self, task: asyncio.Task) -> None:
        self._background.discard(task)
        if task.cancelled() or self.on_complete is None:
            return
        follow_up = asyncio.ensure_future(self._report(task.result()))
        self._background.add(follow_up)
        follow_up.add_done_callback(self._background.discard)

    async def _report(self, result: CommandResult) -> None:
        try:
            await self.on_complete(result)
        except Exception as e:
            logger.error(f"Failed to report result of {result.command}: {e}", exc_info=True)
