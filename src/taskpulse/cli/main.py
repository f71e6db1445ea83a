# src/taskpulse/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds AppState, starts the notification session, then
runs the console REPL (or just waits for a signal when the console is disabled).
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import signal

from ..cli.bootstrap import create_initial_state, shutdown_session, start_session
from ..config import get_settings
from ..connectors.console_connector import run_console_loop
from ..logging_setup import setup_logging

logger = logging.getLogger(__name__)


async def _amain(settings) -> None:
    state = create_initial_state(settings=settings)

    # Use an Event so main can wait without a busy while-loop.
    stop_main = asyncio.Event()
    loop = asyncio.get_running_loop()

    def _handle_signal(signum: int) -> None:
        logger.info("Signal %s received, shutting down...", signum)
        stop_main.set()

    for sig in (signal.SIGINT, signal.SIGTERM):
        # Not available on every platform (e.g. Windows event loops).
        with contextlib.suppress(NotImplementedError, RuntimeError):
            loop.add_signal_handler(sig, _handle_signal, sig)

    try:
        await start_session(state)

        if settings.console_enabled:
            console = asyncio.create_task(run_console_loop(state), name="taskpulse-console")
            stopper = asyncio.create_task(stop_main.wait(), name="taskpulse-stop")
            await asyncio.wait({console, stopper}, return_when=asyncio.FIRST_COMPLETED)
            stopper.cancel()
            console.cancel()
        else:
            logger.info("Console disabled. Running schedulers only. Press Ctrl+C to stop.")
            await stop_main.wait()
    finally:
        await shutdown_session(state)
        logger.info("Bye.")


def main() -> None:
    settings = get_settings()

    # choose console log level from settings.log_level
    level_name = str(getattr(settings, "log_level", "INFO")).upper()
    console_level = getattr(logging, level_name, logging.INFO)

    setup_logging(log_dir=settings.data_dir, console_level=console_level)

    logger.info("Starting %s...", settings.app_name)

    with contextlib.suppress(KeyboardInterrupt):
        asyncio.run(_amain(settings))


if __name__ == "__main__":
    main()
