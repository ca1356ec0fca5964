"""
Main entry point for the event reminder bot.
Wires the store, engine, Telegram sink, scheduler and keep-alive server.
"""

import asyncio
import sys
from typing import Optional

from aiogram import Bot

from config import Settings, settings
from db import EventStore, get_event_store
from engine.commands import CommandGateway, CommandResult
from engine.reminder_engine import ReminderEngine
from keepalive import create_app, start_server
from notifier.base import NotificationSink
from notifier.telegram import TelegramSink
from scheduler.reminders import DailyTrigger, ReminderScheduler
from utils.datetime_utils import Clock
from utils.logging_config import setup_logging

# Configure logging using centralized configuration
logger = setup_logging(
    name=__name__, log_level="INFO", log_file="bot.log", log_dir="logs"
)


class Services:
    """Everything one bot process runs, built from settings."""

    def __init__(
        self,
        config: Settings,
        sink: NotificationSink,
        store: Optional[EventStore] = None,
        clock: Optional[Clock] = None,
    ):
        self.config = config
        self.sink = sink
        self.store = store or get_event_store(config)
        self.clock = clock or Clock(config.timezone)
        self.engine = ReminderEngine(self.store, sink, self.clock)
        self.trigger = DailyTrigger(self.engine, self.clock)
        self.scheduler = ReminderScheduler(
            self.trigger, pulse_seconds=config.scheduler_pulse_seconds
        )
        self.gateway = CommandGateway(
            self.engine,
            self.trigger,
            reply_timeout=config.command_reply_timeout,
            on_complete=self.announce,
        )

    async def announce(self, result: CommandResult) -> None:
        """Post the late result of a command to the reminder channel."""
        await self.sink.deliver(result.text)


async def main() -> None:
    """Main async function to run the bot."""
    try:
        settings.validate_all_required()
    except ValueError as e:
        logger.error(f"Configuration error: {e}")
        sys.exit(1)

    bot = Bot(token=settings.bot_token)
    services = Services(settings, TelegramSink(bot, settings.channel_id))
    runner = None

    try:
        logger.info(
            f"Starting event reminder bot ({services.store.name} store, "
            f"timezone {settings.timezone})"
        )
        services.scheduler.start()
        runner = await start_server(
            create_app(services.trigger), settings.host, settings.port
        )

        # Run until cancelled
        await asyncio.Event().wait()

    except asyncio.CancelledError:
        logger.info("Bot cancelled")
    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
        raise
    finally:
        logger.info("Shutting down...")
        services.scheduler.shutdown()
        await services.gateway.drain()

        if runner is not None:
            await runner.cleanup()
        await services.store.close()

        try:
            await bot.session.close()
            logger.info("Bot session closed")
        except Exception as e:
            logger.error(f"Error closing bot session: {e}", exc_info=True)

        logger.info("Bot shutdown complete")


def run() -> None:
    """Console script entry point."""
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        sys.exit(0)


if __name__ == "__main__":
    run()
