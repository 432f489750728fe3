"""Command domain exports."""

from .command_router import CommandRouter, CommandSet, HarnessGroup
from .harness_command import PROBLEM_EXIT_CODES, HarnessCommand

__all__ = [
    "CommandRouter",
    "CommandSet",
    "HarnessCommand",
    "HarnessGroup",
    "PROBLEM_EXIT_CODES",
]
