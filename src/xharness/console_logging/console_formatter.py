"""Console log formatting and handler setup."""

from __future__ import annotations

import logging
import sys
import time
from typing import TextIO

import click

from xharness.configuration import HarnessSettings

from .log_levels import TRACE, LogLevel

ROOT_LOGGER_NAME = "xharness"
HANDLER_NAME = "xharness-console"

_LEVEL_STYLES = (
    (logging.CRITICAL, "crit", {"fg": "white", "bg": "red", "bold": True}),
    (logging.ERROR, "fail", {"fg": "red", "bold": True}),
    (logging.WARNING, "warn", {"fg": "yellow"}),
    (logging.INFO, "info", {"fg": "green"}),
    (logging.DEBUG, "dbug", {"fg": "bright_black"}),
    (TRACE, "trce", {"fg": "bright_black"}),
)


class ConsoleFormatter(logging.Formatter):
    """Renders ``info: message`` lines, padding continuation lines under the message."""

    def __init__(self, *, colored: bool = True, timestamps: bool = False) -> None:
        super().__init__()
        self.colored = colored
        self.timestamps = timestamps

    def format(self, record: logging.LogRecord) -> str:
        message = record.getMessage()
        if record.exc_info:
            if not record.exc_text:
                record.exc_text = self.formatException(record.exc_info)
        if record.exc_text:
            message = f"{message}\n{record.exc_text}"

        label, style = _level_label(record.levelno)
        prefix = f"{label}: "
        if self.timestamps:
            prefix = time.strftime("[%H:%M:%S] ", self.converter(record.created)) + prefix
        padding = " " * len(prefix)
        if self.colored:
            prefix = prefix.replace(label, click.style(label, **style), 1)

        lines = message.splitlines() or [""]
        return prefix + ("\n" + padding).join(lines)


def configure_logging(
    settings: HarnessSettings,
    level: LogLevel = LogLevel.INFORMATION,
    stream: TextIO | None = None,
) -> logging.Logger:
    """Install (or replace) the single console handler on the package logger."""
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    for handler in list(logger.handlers):
        if handler.get_name() == HANDLER_NAME:
            logger.removeHandler(handler)

    target = stream if stream is not None else sys.stderr
    handler = logging.StreamHandler(target)
    handler.set_name(HANDLER_NAME)
    handler.setFormatter(
        ConsoleFormatter(
            colored=not settings.disable_colored_output and _is_terminal(target),
            timestamps=settings.log_with_timestamps,
        )
    )
    logger.addHandler(handler)
    logger.setLevel(level.logging_level)
    logger.propagate = False
    return logger


def _level_label(levelno: int) -> tuple[str, dict[str, object]]:
    for threshold, label, style in _LEVEL_STYLES:
        if levelno >= threshold:
            return label, style
    return "trce", {"fg": "bright_black"}


def _is_terminal(stream: TextIO) -> bool:
    isatty = getattr(stream, "isatty", None)
    return bool(isatty and isatty())
