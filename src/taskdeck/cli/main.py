# src/taskdeck/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds a Session, starts it (initial fetch + realtime
channel), then runs the console REPL until /exit or Ctrl+C.
"""

from __future__ import annotations

import asyncio
import logging

from ..config import Settings, get_settings
from ..connectors.console_connector import print_notification, run_console_loop
from ..errors import TaskdeckError
from ..logging_setup import setup_logging
from .bootstrap import create_session
from .commands import CommandContext

logger = logging.getLogger(__name__)


async def _run(settings: Settings) -> int:
    session = create_session(settings=settings, on_notification=print_notification)
    try:
        try:
            await session.start()
        except TaskdeckError as e:
            logger.error("Failed to start session: %s", e)
            return 1

        ctx = CommandContext(session=session, prefs=settings.notification_preferences())
        await run_console_loop(ctx)
        return 0
    finally:
        await session.close()


def main() -> None:
    settings = get_settings()

    level_name = str(settings.log_level).upper()
    console_level = getattr(logging, level_name, logging.INFO)
    setup_logging(log_dir=settings.data_dir, console_level=console_level)

    logger.info("Starting %s...", settings.app_name)

    try:
        code = asyncio.run(_run(settings))
    except KeyboardInterrupt:
        code = 0

    logger.info("Bye.")
    raise SystemExit(code)


if __name__ == "__main__":
    main()
