"""Test run use-case service."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TypeVar

from xharness.results_writing import TestRunSummary, XmlResultJargon, write_results_file

from .run_contracts import Backend, RunOutcome, RunRequest, resolve_exit_code

LOGGER = logging.getLogger(__name__)

A = TypeVar("A")


def execute_test_run(request: RunRequest[A], backend: Backend[A]) -> RunOutcome:
    """Run the backend once, write its results and pick the final exit code.

    Backend failures propagate to the caller, which logs them before calling
    :func:`flush_results` with any partial summary.
    """
    LOGGER.debug("Starting test run with a timeout of %s", request.timeout)
    outcome = backend.run(request.arguments, request.timeout)
    results_path = None
    if outcome.summary is not None:
        results_path = flush_results(outcome.summary, request.output_directory, request.jargon)
    else:
        LOGGER.warning("The run produced no test results")
    exit_code = resolve_exit_code(outcome)
    LOGGER.info("Run finished with exit code %d (%s)", int(exit_code), exit_code.name)
    return RunOutcome(exit_code=exit_code, results_path=results_path)


def flush_results(
    summary: TestRunSummary, output_directory: Path, jargon: XmlResultJargon
) -> Path:
    counts = summary.counts
    LOGGER.info(
        "Tests run: %d Passed: %d Inconclusive: %d Failed: %d Ignored: %d",
        counts.total,
        counts.passed,
        counts.inconclusive,
        counts.failed,
        counts.skipped,
    )
    return write_results_file(summary, output_directory, jargon)
