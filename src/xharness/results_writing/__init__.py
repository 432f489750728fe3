"""Results writing domain exports."""

from .report_models import (
    ResultCounts,
    TestCaseResult,
    TestRunResult,
    TestRunSummary,
    TestStatus,
    TestSuiteResult,
    XmlResultJargon,
)
from .result_parsing import ResultParsingError, parse_results, parse_results_file
from .run_environment import RunEnvironment, harness_version
from .run_report_writer import (
    NUnitV2Writer,
    NUnitV3Writer,
    ResultReportWriter,
    XUnitV3Writer,
    XUnitWriter,
    results_file_name,
    write_results_file,
    writer_for_jargon,
)

__all__ = [
    "NUnitV2Writer",
    "NUnitV3Writer",
    "ResultCounts",
    "ResultParsingError",
    "ResultReportWriter",
    "RunEnvironment",
    "TestCaseResult",
    "TestRunResult",
    "TestRunSummary",
    "TestStatus",
    "TestSuiteResult",
    "XUnitV3Writer",
    "XUnitWriter",
    "XmlResultJargon",
    "harness_version",
    "parse_results",
    "parse_results_file",
    "results_file_name",
    "write_results_file",
    "writer_for_jargon",
]
