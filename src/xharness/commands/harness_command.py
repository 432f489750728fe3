"""Base command: parse, validate, execute, map to an exit code."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from typing import Generic, TypeVar

import click

from xharness.arguments import ArgumentGroup, ArgumentProblem, ArgumentSet, ProblemKind
from xharness.configuration import HarnessSettings
from xharness.console_logging import configure_logging
from xharness.exit_codes import ExitCode
from xharness.results_writing import TestRunSummary
from xharness.run_execution import BackendFailure, BackendTimeout

LOGGER = logging.getLogger(__name__)

G = TypeVar("G", bound=ArgumentGroup)

PROBLEM_EXIT_CODES: Mapping[ProblemKind, ExitCode] = {
    ProblemKind.FORMAT: ExitCode.INVALID_ARGUMENTS,
    ProblemKind.VALIDATION: ExitCode.INVALID_ARGUMENTS,
    ProblemKind.UNKNOWN_ARGUMENT: ExitCode.INVALID_ARGUMENTS,
}


class HarnessCommand(ABC, Generic[G]):
    """One sub-command bound to a freshly built argument set per invocation."""

    name: str = ""
    description: str = ""

    def __init__(self, settings: HarnessSettings, parent: str = "xharness") -> None:
        self.settings = settings
        self.parent = parent

    @property
    def usage(self) -> str:
        return f"{self.parent} {self.name} [OPTIONS]"

    @abstractmethod
    def build_arguments(self) -> G: ...

    @abstractmethod
    def run(self, arguments: G, passthrough: tuple[str, ...]) -> ExitCode: ...

    def flush_partial_results(self, arguments: G, summary: TestRunSummary) -> None:
        """Persist results collected before a failure; no-op for commands without reports."""

    def format_help(self) -> str:
        return ArgumentSet(self.build_arguments()).format_help(self.usage, self.description)

    def invoke(self, raw_args: Sequence[str]) -> ExitCode:
        configure_logging(self.settings)
        arguments = self.build_arguments()
        argument_set = ArgumentSet(arguments)
        parsed = argument_set.parse(raw_args)

        if parsed.unrecognized:
            return self._reject((ArgumentProblem.unknown_arguments(parsed.unrecognized),))
        if argument_set.show_help:
            click.echo(argument_set.format_help(self.usage, self.description))
            return ExitCode.HELP_SHOWN
        try:
            problems = parsed.problems or argument_set.validate()
        except Exception:  # pylint: disable=broad-except
            LOGGER.exception("Failed to validate the arguments of %s %s", self.parent, self.name)
            return ExitCode.GENERAL_FAILURE
        if problems:
            return self._reject(problems)

        configure_logging(self.settings, argument_set.common.verbosity.value)
        try:
            return self.run(arguments, parsed.passthrough)
        except BackendTimeout as exc:
            LOGGER.error("Run timed out: %s", exc)
            self._flush(arguments, exc.summary)
            return exc.exit_code
        except BackendFailure as exc:
            LOGGER.error("%s", exc)
            self._flush(arguments, exc.summary)
            return exc.exit_code
        except Exception:  # pylint: disable=broad-except
            LOGGER.exception("%s %s failed unexpectedly", self.parent, self.name)
            return ExitCode.GENERAL_FAILURE

    def _flush(self, arguments: G, summary: TestRunSummary | None) -> None:
        if summary is None:
            return
        try:
            self.flush_partial_results(arguments, summary)
        except OSError as exc:
            LOGGER.error("Failed to write partial test results: %s", exc)

    def _reject(self, problems: Sequence[ArgumentProblem]) -> ExitCode:
        for problem in problems:
            LOGGER.error("%s", problem.message)
        if problems[0].kind is ProblemKind.UNKNOWN_ARGUMENT:
            click.echo(f"usage: {self.usage}", err=True)
            click.echo(f"Run '{self.parent} {self.name} --help' to list the supported options.", err=True)
        return PROBLEM_EXIT_CODES[problems[0].kind]
