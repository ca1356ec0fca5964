"""
Keep-alive HTTP endpoint.

Free hosting tiers stop processes that do not answer HTTP; an uptime pinger
hits this server so the scheduler keeps running. /health also reports when
the last daily check ran.
"""

import time
from typing import Optional

from aiohttp import web
from aiohttp.web import Request, Response

from scheduler.reminders import DailyTrigger
from utils.logging_config import setup_logging

logger = setup_logging(
    name=__name__, log_level="INFO", log_file="keepalive.log", log_dir="logs"
)

TRIGGER_KEY = web.AppKey("trigger", DailyTrigger)
STARTED_AT_KEY = web.AppKey("started_at", float)


@web.middleware
async def security_headers_middleware(request: Request, handler):
    """Add basic security headers to all responses."""
    response = await handler(request)
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    return response


async def health_check(request: Request) -> Response:
    """
    Health check endpoint.

    Returns:
        JSON response with service status and the last processed day
    """
    trigger: Optional[DailyTrigger] = request.app.get(TRIGGER_KEY)
    started_at = request.app.get(STARTED_AT_KEY, time.time())

    last_run_day = None
    if trigger is not None and trigger.last_run_day is not None:
        last_run_day = trigger.last_run_day.isoformat()

    return web.json_response(
        {
            "status": "ok",
            "service": "event-reminder-bot",
            "last_run_day": last_run_day,
            "uptime_seconds": round(time.time() - started_at, 1),
        }
    )


def create_app(trigger: Optional[DailyTrigger] = None) -> web.Application:
    """
    Create the keep-alive application.

    Args:
        trigger: Daily trigger whose state /health reports
    """
    app = web.Application(middlewares=[security_headers_middleware])
    if trigger is not None:
        app[TRIGGER_KEY] = trigger
    app[STARTED_AT_KEY] = time.time()

    app.router.add_get("/", health_check)
    app.router.add_get("/health", health_check)

    return app


async def start_server(app: web.Application, host: str, port: int) -> web.AppRunner:
    """Serve app in the running event loop and return the runner for cleanup."""
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, host=host, port=port)
    await site.start()
    logger.info(f"Keep-alive server listening on {host}:{port}")
    return runner
