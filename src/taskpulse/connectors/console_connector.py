# src/taskpulse/connectors/console_connector.py

from __future__ import annotations

import asyncio
import logging
import threading
from datetime import datetime

from ..cli.commands import registry as command_registry
from ..core.state import AppState

logger = logging.getLogger(__name__)

_EOF = None


def _ts_local() -> str:
    return datetime.now().astimezone().strftime("%Y-%m-%d %H:%M:%S")


def _print_ts(text: str) -> None:
    print(f"[{_ts_local()}] {text}", flush=True)


def _start_stdin_reader(loop: asyncio.AbstractEventLoop, queue: asyncio.Queue[str | None]) -> threading.Thread:
    """
    Feed stdin lines into `queue` from a daemon thread.

    A thread blocked in input() cannot be cancelled; being a daemon it does not
    hold up interpreter exit.
    """

    def _reader() -> None:
        while True:
            try:
                line = input(">>> ")
            except (EOFError, KeyboardInterrupt):
                loop.call_soon_threadsafe(queue.put_nowait, _EOF)
                return
            loop.call_soon_threadsafe(queue.put_nowait, line)

    t = threading.Thread(target=_reader, name="taskpulse-stdin", daemon=True)
    t.start()
    return t


async def handle_line(state: AppState, line: str) -> str | None:
    """Run one console line. Returns the reply, or None for blank input."""
    line = line.strip()
    if not line:
        return None
    try:
        reply = await command_registry.handle(state, line)
    except Exception:
        logger.exception("Command handler crashed.")
        return "Internal error while handling a command."
    if reply is None:
        return "Commands start with '/'. Use /help to list available commands."
    return reply


async def run_console_loop(state: AppState) -> None:
    """Read slash commands until /exit or EOF. Schedulers keep ticking on the loop meanwhile."""
    logger.info("Console connector started (user=%s).", state.user_id)
    _print_ts("[CONSOLE] Use /help for commands. Use /exit to quit.\n")

    queue: asyncio.Queue[str | None] = asyncio.Queue()
    _start_stdin_reader(asyncio.get_running_loop(), queue)

    while True:
        line = await queue.get()
        if line is _EOF:
            logger.info("Console EOF received, exiting.")
            break

        if line.strip().lower() in ("/exit", "/quit"):
            logger.info("Console exit command received.")
            break

        reply = await handle_line(state, line)
        if reply is not None:
            _print_ts(reply)
