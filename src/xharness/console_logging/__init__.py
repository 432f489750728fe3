"""Console logging exports."""

from .console_formatter import ROOT_LOGGER_NAME, ConsoleFormatter, configure_logging
from .log_levels import TRACE, LogLevel

__all__ = [
    "ROOT_LOGGER_NAME",
    "TRACE",
    "ConsoleFormatter",
    "LogLevel",
    "configure_logging",
]
