"""Read result files produced by test frameworks back into a summary."""

from __future__ import annotations

import xml.etree.ElementTree as ET
from datetime import datetime, timedelta
from pathlib import Path

from .report_models import (
    ResultCounts,
    TestCaseResult,
    TestRunResult,
    TestRunSummary,
    TestStatus,
    TestSuiteResult,
)

_XUNIT_STATUS = {
    "pass": TestStatus.PASSED,
    "fail": TestStatus.FAILED,
    "skip": TestStatus.SKIPPED,
    "notrun": TestStatus.SKIPPED,
}
_NUNIT_STATUS = {
    "passed": TestStatus.PASSED,
    "success": TestStatus.PASSED,
    "failed": TestStatus.FAILED,
    "failure": TestStatus.FAILED,
    "error": TestStatus.FAILED,
    "skipped": TestStatus.SKIPPED,
    "ignored": TestStatus.SKIPPED,
    "notrunnable": TestStatus.SKIPPED,
    "inconclusive": TestStatus.INCONCLUSIVE,
    "warning": TestStatus.PASSED,
}


class ResultParsingError(Exception):
    """Raised when a result document cannot be understood."""


def parse_results_file(path: Path | str, name: str | None = None) -> TestRunSummary:
    result_path = Path(path)
    try:
        text = result_path.read_text(encoding="utf-8-sig")
    except OSError as exc:
        raise ResultParsingError(f"Failed to read test results from {result_path}: {exc}") from exc
    return parse_results(text, name=name or result_path.stem)


def parse_results(text: str, name: str = "TestResults") -> TestRunSummary:
    """Parse xUnit (classic or v3), NUnit v2 or NUnit v3 XML into a summary."""
    try:
        root = ET.fromstring(text)
    except ET.ParseError as exc:
        raise ResultParsingError(f"Malformed test result XML: {exc}") from exc

    if root.tag == "assemblies":
        runs = tuple(_xunit_assembly(assembly) for assembly in root.iter("assembly"))
    elif root.tag == "assembly":
        runs = (_xunit_assembly(root),)
    elif root.tag == "test-run":
        runs = (_nunit3_run(root),)
    elif root.tag == "test-results":
        runs = tuple(_nunit2_run(suite) for suite in root.findall("test-suite"))
    else:
        raise ResultParsingError(f"Unsupported test result document root '{root.tag}'")
    return TestRunSummary(name=name, runs=runs, start_time=datetime.now())


def _xunit_assembly(assembly: ET.Element) -> TestRunResult:
    suites = []
    for collection in assembly.findall("collection"):
        cases = tuple(_xunit_test(test) for test in collection.findall("test"))
        suites.append(
            TestSuiteResult(
                name=collection.get("name", ""),
                children=cases,
                kind="TestFixture",
                duration=_duration(collection.get("time")),
            )
        )
    name = assembly.get("name", "")
    return TestRunResult(
        name=Path(name).name or name,
        full_name=name,
        suites=tuple(suites),
        duration=_duration(assembly.get("time")),
    )


def _xunit_test(test: ET.Element) -> TestCaseResult:
    result = test.get("result", "")
    status = _XUNIT_STATUS.get(result.lower())
    if status is None:
        raise ResultParsingError(f"Unknown xUnit test result '{result}'")
    return TestCaseResult(
        name=test.get("name", ""),
        full_name=test.get("name", ""),
        class_name=test.get("type", ""),
        method_name=test.get("method", ""),
        status=status,
        duration=_duration(test.get("time")) or timedelta(),
        failure_message=test.findtext("failure/message"),
        stack_trace=test.findtext("failure/stack-trace"),
        skip_reason=test.findtext("reason"),
        output=test.findtext("output"),
    )


def _nunit3_run(run: ET.Element) -> TestRunResult:
    suites = tuple(_nunit_suite(suite) for suite in run.findall("test-suite"))
    return TestRunResult(
        name=run.get("name", "") or "test-run",
        full_name=run.get("fullname", ""),
        suites=suites,
        duration=_duration(run.get("duration") or run.get("time")),
        native_result=run,
        native_counts=_counts_from_attributes(run),
    )


def _nunit2_run(suite: ET.Element) -> TestRunResult:
    root = _nunit_suite(suite)
    return TestRunResult(
        name=root.name,
        full_name=root.full_name,
        suites=tuple(child for child in root.children if isinstance(child, TestSuiteResult))
        or (root,),
        duration=root.duration,
    )


def _nunit_suite(suite: ET.Element) -> TestSuiteResult:
    container = suite.find("results")
    if container is None:
        container = suite
    children: list[TestSuiteResult | TestCaseResult] = []
    for child in container:
        if child.tag == "test-suite":
            children.append(_nunit_suite(child))
        elif child.tag == "test-case":
            children.append(_nunit_case(child))
    return TestSuiteResult(
        name=suite.get("name", ""),
        full_name=suite.get("fullname", ""),
        kind=suite.get("type", "TestSuite"),
        children=tuple(children),
        duration=_duration(suite.get("duration") or suite.get("time")),
    )


def _nunit_case(case: ET.Element) -> TestCaseResult:
    result = case.get("result", "")
    status = _NUNIT_STATUS.get(result.lower())
    if status is None:
        raise ResultParsingError(f"Unknown NUnit test result '{result}'")
    return TestCaseResult(
        name=case.get("name", ""),
        full_name=case.get("fullname", ""),
        class_name=case.get("classname", ""),
        method_name=case.get("methodname", ""),
        status=status,
        duration=_duration(case.get("duration") or case.get("time")) or timedelta(),
        failure_message=case.findtext("failure/message"),
        stack_trace=case.findtext("failure/stack-trace"),
        skip_reason=case.findtext("reason/message"),
        output=case.findtext("output"),
        asserts=_int(case.get("asserts")),
    )


def _counts_from_attributes(element: ET.Element) -> ResultCounts:
    return ResultCounts(
        passed=_int(element.get("passed")),
        failed=_int(element.get("failed")),
        inconclusive=_int(element.get("inconclusive")),
        skipped=_int(element.get("skipped")),
        asserts=_int(element.get("asserts")),
    )


def _duration(raw: str | None) -> timedelta | None:
    if not raw:
        return None
    try:
        return timedelta(seconds=float(raw))
    except ValueError as exc:
        raise ResultParsingError(f"Invalid duration '{raw}' in test results") from exc


def _int(raw: str | None) -> int:
    if not raw:
        return 0
    try:
        return int(raw)
    except ValueError as exc:
        raise ResultParsingError(f"Invalid count '{raw}' in test results") from exc
