"""Exit code domain exports."""

from .exit_code_taxonomy import ExitCode, ExitCodeCategory, LegacyExitCode, exit_code_from_legacy

__all__ = [
    "ExitCode",
    "ExitCodeCategory",
    "LegacyExitCode",
    "exit_code_from_legacy",
]
