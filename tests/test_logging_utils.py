from __future__ import annotations

import io
import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

import pytest

from slackcat.config import ConfigError, Settings
from slackcat.logging_utils import StatusFormatter, configure_logging, resolve_level


@pytest.fixture(autouse=True)
def reset_slackcat_logger():
    yield
    configure_logging({})


def test_configure_logging_replaces_handlers() -> None:
    configure_logging({"console_level": "WARNING"})
    logger = configure_logging({"console_level": "DEBUG"})

    assert logger.name == "slackcat"
    assert len(logger.handlers) == 1
    assert logger.handlers[0].level == logging.DEBUG


def test_status_lines_carry_program_prefix() -> None:
    stream = io.StringIO()
    logger = configure_logging({}, stream=stream)

    logger.info("posted %d message lines to %s", 2, "general")
    logger.error("aborted")
    logger.debug("hidden at the default level")

    assert stream.getvalue().splitlines() == [
        "slackcat posted 2 message lines to general",
        "slackcat error: aborted",
    ]


def test_colour_is_dropped_when_stderr_is_not_a_terminal() -> None:
    logger = configure_logging({"color": True}, stream=io.StringIO())

    assert logger.handlers[0].formatter.use_color is False


def test_coloured_prefix_leaves_message_plain() -> None:
    record = logging.LogRecord("slackcat", logging.WARNING, __file__, 1, "3 line(s) left undelivered", None, None)

    line = StatusFormatter(use_color=True).format(record)

    assert line == "\033[33mslackcat warning:\033[0m 3 line(s) left undelivered"


def test_log_dir_adds_thread_aware_file_handler(tmp_path: Path) -> None:
    logger = configure_logging({"log_dir": tmp_path / "logs", "file_level": "INFO"}, stream=io.StringIO())
    file_handlers = [h for h in logger.handlers if isinstance(h, RotatingFileHandler)]
    assert len(file_handlers) == 1

    logger.info("flushing remaining messages to Slack...")
    file_handlers[0].flush()

    last = (tmp_path / "logs" / "slackcat.log").read_text(encoding="utf-8").splitlines()[-1]
    assert "[INFO] MainThread: flushing remaining messages to Slack..." in last


@pytest.mark.parametrize(
    "value, expected",
    [(None, logging.INFO), ("debug", logging.DEBUG), ("WARN", logging.WARNING), ("10", 10), (40, 40)],
)
def test_resolve_level_accepts_names_and_numbers(value, expected) -> None:
    assert resolve_level(value) == expected


def test_unknown_level_is_a_configuration_error() -> None:
    with pytest.raises(ValueError):
        resolve_level("LOUD")
    with pytest.raises(ConfigError, match="console_level"):
        Settings.from_mapping({"logging": {"console_level": "LOUD"}})
