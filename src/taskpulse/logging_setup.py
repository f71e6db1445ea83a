# src/taskpulse/logging_setup.py

"""
Process-wide logging for the taskpulse CLI.

stderr shares the terminal with the console REPL and the printed notices, so it
only carries taskpulse records plus real problems from libraries. The log file
under the data dir keeps the full DEBUG trail of every scheduler tick.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

LOG_FILE_NAME = "taskpulse.log"
_FORMAT = "%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Third-party loggers that may reach the terminal at WARNING instead of ERROR.
_HTTP_LOGGERS = ("httpx", "httpcore")


class _ConsoleNoiseFilter(logging.Filter):
    """Terminal gate: every taskpulse.* record, HTTP client WARNING+, everything else ERROR+."""

    def filter(self, record: logging.LogRecord) -> bool:
        name = record.name
        if name.startswith("taskpulse."):
            return True
        if name.startswith(_HTTP_LOGGERS):
            # A failing calendar call is worth seeing while the REPL is open.
            return record.levelno >= logging.WARNING
        # py.warnings and all other libraries.
        return record.levelno >= logging.ERROR


def _handler(handler: logging.Handler, level: int, fmt: logging.Formatter) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(fmt)
    return handler


def setup_logging(
    *,
    log_dir: str | Path = ".local/taskpulse",
    console_level: int = logging.INFO,
    file_level: int = logging.DEBUG,
) -> Path:
    """
    Install the console and file handlers on the root logger and return the log file path.

    Handlers left over from an earlier call are replaced, so calling it twice does not
    duplicate lines.
    """
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / LOG_FILE_NAME

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    for h in list(root.handlers):
        root.removeHandler(h)

    fmt = logging.Formatter(fmt=_FORMAT, datefmt=_DATE_FORMAT)

    console = _handler(logging.StreamHandler(sys.stderr), console_level, fmt)
    console.addFilter(_ConsoleNoiseFilter())
    root.addHandler(console)
    root.addHandler(_handler(logging.FileHandler(str(log_file), encoding="utf-8"), file_level, fmt))

    logging.captureWarnings(True)

    # Per-request httpx/httpcore DEBUG lines would drown the tick history in the file.
    for name in _HTTP_LOGGERS:
        logging.getLogger(name).setLevel(logging.INFO)

    return log_file
