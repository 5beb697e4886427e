# src/categorized_todo/connectors/console_connector.py

from __future__ import annotations

import asyncio
import logging
from datetime import datetime

from ..cli.commands import registry as command_registry
from ..core.state import AppState

logger = logging.getLogger(__name__)


def _ts_local() -> str:
    return datetime.now().astimezone().strftime("%Y-%m-%d %H:%M:%S")


def _print_ts(text: str) -> None:
    print(f"[{_ts_local()}] {text}")


async def run_console_loop(state: AppState) -> None:
    logger.info("Console connector started (backend=%s).", state.settings.backend)
    _print_ts("[CONSOLE] Type commands. Use /help to list them, /exit to quit.\n")

    def emit(text: str) -> None:
        # Immediate feedback for long operations.
        print(f"[{_ts_local()}] {text}", flush=True)

    while True:
        try:
            # input() blocks; keep the event loop free while waiting.
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

        # Bare text is shorthand for /add.
        line = user_input if user_input.startswith("/") else f"/add {user_input}"

        try:
            response = await command_registry.handle(state, line, emit=emit)
        except Exception:
            logger.exception("Command handler crashed.")
            response = "Internal error while handling a command."

        if response is not None:
            _print_ts(response)
