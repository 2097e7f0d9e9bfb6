from __future__ import annotations

import logging
import os
import sys
from pathlib import Path
from typing import Optional, TextIO

DEFAULT_LOG_PATH = "hp-driver-patcher.log"

# Plain operator text (banners, instructions, listings) goes through this logger.
REPORT_LOGGER = "hp_driver_patcher.report"

RED = "\033[0;31m"
GREEN = "\033[0;32m"
YELLOW = "\033[1;33m"
NC = "\033[0m"


class OperatorFormatter(logging.Formatter):
    """Console format for the person running the tool.

    INFO renders as a `==>` step line, WARNING and ERROR get a prefix, and
    records from the report logger are printed verbatim.
    """

    def __init__(self, color: bool = False):
        super().__init__(fmt="%(message)s")
        self.color = color

    def _paint(self, code: str, text: str) -> str:
        return f"{code}{text}{NC}" if self.color else text

    def format(self, record: logging.LogRecord) -> str:
        message = record.getMessage()
        if record.exc_info and record.levelno >= logging.ERROR:
            message = f"{message}\n{self.formatException(record.exc_info)}"

        if record.name == REPORT_LOGGER:
            return message
        if record.levelno >= logging.ERROR:
            return f"{self._paint(RED, 'Error:')} {message}"
        if record.levelno >= logging.WARNING:
            return f"{self._paint(YELLOW, 'Warning:')} {message}"
        if record.levelno >= logging.INFO:
            return f"{self._paint(GREEN, '==>')} {message}"
        return message


def _stream_is_tty(stream: TextIO) -> bool:
    isatty = getattr(stream, "isatty", None)
    try:
        return bool(isatty and isatty())
    except ValueError:
        return False


def configure_logging(
    log_path: Optional[str] = DEFAULT_LOG_PATH,
    level: int = logging.INFO,
    also_console: bool = True,
    stream: Optional[TextIO] = None,
) -> Optional[str]:
    """Configure logging.

    The log file records every command and its captured output at DEBUG.
    The console shows operator messages at `level`.

    Notes:
    - If the requested log file cannot be opened we fall back to a file in
      the current working directory; log_path=None disables the file.

    Returns the actual file path being used.
    """

    logger = logging.getLogger()
    logger.setLevel(logging.DEBUG)

    # Avoid duplicate handlers if configure_logging() is called multiple times.
    if getattr(logger, "_hp_patcher_configured", False):
        return getattr(logger, "_hp_patcher_log_path", log_path)

    chosen_path: Optional[str] = None
    handlers: list[logging.Handler] = []

    fmt = logging.Formatter(
        fmt="%(asctime)s %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S%z",
    )

    if log_path:
        file_handler: Optional[logging.Handler] = None
        try:
            Path(os.path.dirname(log_path) or ".").mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(log_path)
            chosen_path = log_path
        except OSError:
            # Fall back to a writable location.
            fallback = str(Path.cwd() / Path(DEFAULT_LOG_PATH).name)
            file_handler = logging.FileHandler(fallback)
            chosen_path = fallback
        file_handler.setFormatter(fmt)
        file_handler.setLevel(logging.DEBUG)
        handlers.append(file_handler)

    if also_console:
        out = stream or sys.stdout
        console = logging.StreamHandler(out)
        console.setFormatter(OperatorFormatter(color=_stream_is_tty(out)))
        console.setLevel(level)
        handlers.append(console)

    for h in handlers:
        logger.addHandler(h)

    setattr(logger, "_hp_patcher_configured", True)
    setattr(logger, "_hp_patcher_log_path", chosen_path)
    setattr(logger, "_hp_patcher_handlers", handlers)

    logging.getLogger(__name__).debug(
        "Logging initialized (requested=%s, actual=%s)", log_path, chosen_path
    )
    return chosen_path


def reset_logging() -> None:
    """Drop handlers installed by configure_logging()."""

    logger = logging.getLogger()
    for h in getattr(logger, "_hp_patcher_handlers", []):
        logger.removeHandler(h)
        h.close()
    for attr in ("_hp_patcher_configured", "_hp_patcher_log_path", "_hp_patcher_handlers"):
        if hasattr(logger, attr):
            delattr(logger, attr)
