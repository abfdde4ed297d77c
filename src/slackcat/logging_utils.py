"""Status-line logging for slackcat.

Everything the operator sees comes through the ``slackcat`` logger on stderr,
one line per event, prefixed with the program name the way ``slackcat error:
...`` reads in a shell. Piped data (``--tee``) owns stdout, so status output
never goes there.
"""

from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Mapping, Optional, TextIO

LOGGER_NAME = "slackcat"


class StatusFormatter(logging.Formatter):
    """Render ``slackcat <message>``; warnings and errors name their level."""

    PREFIX_COLORS = {
        logging.DEBUG: "\033[90m",  # grey
        logging.INFO: "\033[36m",  # cyan
        logging.WARNING: "\033[33m",  # yellow
        logging.ERROR: "\033[31m",  # red
    }
    RESET = "\033[0m"

    def __init__(self, *, use_color: bool) -> None:
        super().__init__("%(message)s")
        self.use_color = use_color

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        prefix = LOGGER_NAME
        if record.levelno >= logging.WARNING:
            prefix = f"{prefix} {record.levelname.lower()}:"
        if self.use_color:
            color = self.PREFIX_COLORS.get(min(record.levelno, logging.ERROR), "")
            prefix = f"{color}{prefix}{self.RESET}"
        return f"{prefix} {message}"


def resolve_level(level: object, default: int = logging.INFO) -> int:
    """Map a level name or number to a ``logging`` level; unknown names raise."""

    if level is None or level == "":
        return default
    if isinstance(level, int):
        return level
    name = str(level).strip().upper()
    if name.isdigit():
        return int(name)
    value = logging.getLevelName(name)
    if isinstance(value, int):
        return value
    raise ValueError(f"unknown log level {level!r}")


def configure_logging(
    config: Mapping[str, object], *, stream: Optional[TextIO] = None
) -> logging.Logger:
    """(Re)build the handlers of the slackcat logger and return it.

    ``console_level`` filters the stderr status lines; ``log_dir`` adds a
    rotating ``slackcat.log`` that records the worker thread of each line at
    ``file_level``.
    """

    target = stream if stream is not None else sys.stderr
    use_color = bool(config.get("color", True)) and _isatty(target)

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.DEBUG)
    logger.propagate = False

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    console = logging.StreamHandler(target)
    console.setLevel(resolve_level(config.get("console_level")))
    console.setFormatter(StatusFormatter(use_color=use_color))
    logger.addHandler(console)

    log_dir = config.get("log_dir")
    if log_dir:
        path = Path(str(log_dir)).expanduser()
        path.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            path / "slackcat.log",
            maxBytes=5 * 1024 * 1024,
            backupCount=3,
            encoding="utf-8",
        )
        file_handler.setLevel(resolve_level(config.get("file_level"), logging.DEBUG))
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s [%(levelname)s] %(threadName)s: %(message)s")
        )
        logger.addHandler(file_handler)

    return logger


def _isatty(stream: TextIO) -> bool:
    isatty = getattr(stream, "isatty", None)
    return bool(isatty and isatty())


__all__ = ["LOGGER_NAME", "StatusFormatter", "configure_logging", "resolve_level"]
