"""Run execution entities and the backend boundary."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path
from typing import Generic, Protocol, TypeVar

from xharness.exit_codes import ExitCode
from xharness.results_writing import TestRunSummary, XmlResultJargon

A = TypeVar("A")
A_contra = TypeVar("A_contra", contravariant=True)


@dataclass(frozen=True)
class RunRequest(Generic[A]):
    """Input contract for executing one test run."""

    arguments: A
    timeout: timedelta
    output_directory: Path
    jargon: XmlResultJargon = XmlResultJargon.XUNIT


@dataclass(frozen=True)
class BackendOutcome:
    """What a backend reports after the app under test finished."""

    exit_code: ExitCode
    summary: TestRunSummary | None = None


@dataclass(frozen=True)
class RunOutcome:
    """Output contract for one completed run."""

    exit_code: ExitCode
    results_path: Path | None = None


class BackendFailure(Exception):
    """The platform could not complete the run; carries the dedicated exit code."""

    def __init__(
        self,
        exit_code: ExitCode,
        message: str,
        summary: TestRunSummary | None = None,
    ) -> None:
        super().__init__(message)
        self.exit_code = exit_code
        self.summary = summary


class BackendTimeout(BackendFailure):
    """The run exceeded its timeout; ``summary`` holds whatever was collected."""

    def __init__(self, message: str, summary: TestRunSummary | None = None) -> None:
        super().__init__(ExitCode.TIMED_OUT, message, summary)


class Backend(Protocol[A_contra]):
    """Platform executor driving devices, simulators or engines."""

    def run(self, arguments: A_contra, timeout: timedelta) -> BackendOutcome: ...


def resolve_exit_code(outcome: BackendOutcome) -> ExitCode:
    """A clean exit with failed tests is still a test failure."""
    if outcome.exit_code is ExitCode.SUCCESS and outcome.summary is not None:
        if outcome.summary.has_failures:
            return ExitCode.TESTS_FAILED
    return outcome.exit_code
