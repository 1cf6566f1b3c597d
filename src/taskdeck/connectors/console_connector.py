# src/taskdeck/connectors/console_connector.py

from __future__ import annotations

import asyncio
import logging
from datetime import datetime

from ..cli.commands import CommandContext, registry as command_registry
from ..notifications.models import Notification

logger = logging.getLogger(__name__)


def _ts_local() -> str:
    return datetime.now().astimezone().strftime("%Y-%m-%d %H:%M:%S")


def _print_ts(text: str) -> None:
    print(f"[{_ts_local()}] {text}", flush=True)


def print_notification(notification: Notification) -> None:
    """on_notification hook: show pushed notifications as they arrive."""
    _print_ts(f"[{notification.type.value.upper()}] {notification.message}")


async def run_console_loop(ctx: CommandContext) -> None:
    logger.info("Console connector started.")
    _print_ts("[CONSOLE] Use /help for commands, /board to see tasks, /exit to quit.\n")

    while True:
        try:
            # input() blocks; keep it off the loop so realtime events keep flowing.
            user_input = (await asyncio.to_thread(input, ">>> ")).strip()
        except EOFError:
            logger.info("Console EOF received, exiting.")
            break
        except KeyboardInterrupt:
            logger.info("Console KeyboardInterrupt, exiting.")
            print()
            break

        if not user_input:
            continue

        if user_input.lower() in ("/exit", "/quit"):
            logger.info("Console exit command received.")
            break

        try:
            response = await command_registry.handle(ctx, user_input)
        except Exception:
            logger.exception("Command handler crashed.")
            response = "Internal error while handling a command."

        if response is None:
            response = "Commands start with '/'. Use /help to list them."
        _print_ts(response)

    logger.info("Console connector finished.")
