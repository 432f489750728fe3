"""Configuration domain exports."""

from .loader import (
    DISABLE_COLORED_OUTPUT_VARIABLE,
    LOG_WITH_TIMESTAMPS_VARIABLE,
    ConfigurationError,
    load_settings,
)
from .runtime_settings import MACOS_PLATFORM, HarnessSettings

__all__ = [
    "DISABLE_COLORED_OUTPUT_VARIABLE",
    "LOG_WITH_TIMESTAMPS_VARIABLE",
    "MACOS_PLATFORM",
    "ConfigurationError",
    "HarnessSettings",
    "load_settings",
]
