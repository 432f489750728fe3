"""Typed problems reported by argument parsing and validation."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class ProblemKind(str, Enum):
    """Why a command line was rejected."""

    FORMAT = "FORMAT"
    VALIDATION = "VALIDATION"
    UNKNOWN_ARGUMENT = "UNKNOWN_ARGUMENT"


@dataclass(frozen=True)
class ArgumentProblem:
    """One human-readable complaint about the supplied arguments."""

    kind: ProblemKind
    message: str
    argument: str | None = None

    @staticmethod
    def format_error(message: str, argument: str | None = None) -> ArgumentProblem:
        return ArgumentProblem(kind=ProblemKind.FORMAT, message=message, argument=argument)

    @staticmethod
    def validation_error(message: str, argument: str | None = None) -> ArgumentProblem:
        return ArgumentProblem(kind=ProblemKind.VALIDATION, message=message, argument=argument)

    @staticmethod
    def unknown_arguments(tokens: tuple[str, ...]) -> ArgumentProblem:
        return ArgumentProblem(
            kind=ProblemKind.UNKNOWN_ARGUMENT,
            message="Unknown arguments: " + " ".join(tokens),
        )
