"""Configuration domain entities."""

from __future__ import annotations

from dataclasses import dataclass

MACOS_PLATFORM = "darwin"


@dataclass(frozen=True)
class HarnessSettings:
    """Process-wide settings read once from the environment."""

    disable_colored_output: bool = False
    log_with_timestamps: bool = False
    search_path: str = ""
    host_platform: str = "linux"

    @property
    def supports_apple(self) -> bool:
        return self.host_platform == MACOS_PLATFORM
