# src/categorized_todo/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds AppState, then runs the console connector
until /exit, EOF or Ctrl+C.
"""

from __future__ import annotations

import asyncio
import logging

from ..cli.bootstrap import create_initial_state
from ..config import get_settings
from ..connectors.console_connector import run_console_loop
from ..logging_setup import setup_logging

logger = logging.getLogger(__name__)


def main() -> None:
    settings = get_settings()

    # choose console log level from settings.log_level
    console_level = getattr(logging, settings.log_level, logging.INFO)
    setup_logging(log_dir=settings.data_dir, console_level=console_level)

    logger.info("Starting %s...", settings.app_name)

    # IMPORTANT: reuse same settings object
    state = create_initial_state(settings=settings)

    try:
        asyncio.run(run_console_loop(state))
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down...")
    finally:
        # SqliteStore uses short-lived sqlite connections per call; no explicit close required.
        logger.info("Bye.")


if __name__ == "__main__":
    main()
