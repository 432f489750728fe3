"""Settings loader service."""

from __future__ import annotations

import os
import sys
from collections.abc import Mapping

from .runtime_settings import HarnessSettings

DISABLE_COLORED_OUTPUT_VARIABLE = "XHARNESS_DISABLE_COLORED_OUTPUT"
LOG_WITH_TIMESTAMPS_VARIABLE = "XHARNESS_LOG_WITH_TIMESTAMPS"


class ConfigurationError(Exception):
    """Raised when the process environment cannot be turned into settings."""


def load_settings(
    environ: Mapping[str, object] | None = None,
    platform: str | None = None,
) -> HarnessSettings:
    """Read the harness environment variables into :class:`HarnessSettings`."""
    environment = os.environ if environ is None else environ
    return HarnessSettings(
        disable_colored_output=_flag(environment, DISABLE_COLORED_OUTPUT_VARIABLE),
        log_with_timestamps=_flag(environment, LOG_WITH_TIMESTAMPS_VARIABLE),
        search_path=_require_string(environment, "PATH"),
        host_platform=_normalize_platform(platform or sys.platform),
    )


def _flag(environment: Mapping[str, object], key: str) -> bool:
    value = environment.get(key)
    if value is None:
        return False
    if not isinstance(value, str):
        raise ConfigurationError(f"Environment variable '{key}' must be a string.")
    return value.strip().lower() == "true"


def _require_string(environment: Mapping[str, object], key: str) -> str:
    value = environment.get(key, "")
    if not isinstance(value, str):
        raise ConfigurationError(f"Environment variable '{key}' must be a string.")
    return value


def _normalize_platform(platform: str) -> str:
    lowered = platform.lower()
    if lowered.startswith("linux"):
        return "linux"
    if lowered.startswith(("win", "cygwin")):
        return "win32"
    return lowered
