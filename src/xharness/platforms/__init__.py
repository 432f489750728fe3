"""Platform domain exports."""

from .platform_arguments import DEFAULT_RUN_TIMEOUT, PlatformTestArguments, RunArguments
from .test_command import BackendTestCommand
from .tool_resolution import resolve_executable

__all__ = [
    "DEFAULT_RUN_TIMEOUT",
    "BackendTestCommand",
    "PlatformTestArguments",
    "RunArguments",
    "resolve_executable",
]
