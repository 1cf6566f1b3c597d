# src/taskdeck/logging_setup.py

from __future__ import annotations

import logging
import sys
from pathlib import Path

# Third-party loggers capped even in the file log: per-request and per-frame
# DEBUG output from these drowns the channel's own state transitions.
_LIBRARY_LEVELS: dict[str, int] = {
    "httpx": logging.WARNING,
    "httpcore": logging.WARNING,
    "websockets": logging.WARNING,
}


class _ConsoleNoiseFilter(logging.Filter):
    """
    Keep the console readable while the REPL is waiting for input:
    - taskdeck logs pass, except the realtime package below WARNING
      (reconnect attempts and state changes land in the file only)
    - Python warnings (captured as 'py.warnings') only at ERROR+
    - anything from third-party libraries only at ERROR+
    """

    def filter(self, record: logging.LogRecord) -> bool:
        name = record.name

        # Our own logs; the channel runs in the background and retries on its own.
        if name.startswith("taskdeck."):
            if name.startswith("taskdeck.realtime."):
                return record.levelno >= logging.WARNING
            return True

        # warnings.warn(...) routed through logging.
        if name == "py.warnings":
            return record.levelno >= logging.ERROR

        # httpx / websockets / asyncio: errors only.
        return record.levelno >= logging.ERROR


def setup_logging(
    *,
    log_dir: str | Path = ".local/taskdeck",
    console_level: int = logging.INFO,
    file_level: int = logging.DEBUG,
) -> Path:
    """
    Install the console and file handlers on the root logger.

    - console: `console_level`, filtered by _ConsoleNoiseFilter
    - file: `<log_dir>/taskdeck.log` at `file_level`, unfiltered

    Safe to call again (tests, re-entry from main): existing root handlers are
    replaced, not stacked. Returns the log file path.
    """
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / "taskdeck.log"

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)

    for h in list(root.handlers):
        root.removeHandler(h)
        h.close()

    fmt = logging.Formatter(
        fmt="%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    # Console: shares the terminal with the ">>> " prompt.
    console = logging.StreamHandler(sys.stderr)
    console.setLevel(console_level)
    console.setFormatter(fmt)
    console.addFilter(_ConsoleNoiseFilter())
    root.addHandler(console)

    # File: full history for reconstructing reconnects and reverted moves.
    file_handler = logging.FileHandler(str(log_file), encoding="utf-8")
    file_handler.setLevel(file_level)
    file_handler.setFormatter(fmt)
    root.addHandler(file_handler)

    logging.captureWarnings(True)

    for name, level in _LIBRARY_LEVELS.items():
        logging.getLogger(name).setLevel(level)

    return log_file
