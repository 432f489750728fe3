"""Streaming XML result writers, one per dialect."""

from __future__ import annotations

import logging
import re
import xml.etree.ElementTree as ET
from abc import ABC, abstractmethod
from collections.abc import Iterator, Mapping
from datetime import timedelta
from pathlib import Path
from typing import TextIO
from xml.sax.saxutils import XMLGenerator

from .report_models import (
    ResultCounts,
    TestCaseResult,
    TestRunResult,
    TestRunSummary,
    TestStatus,
    TestSuiteResult,
    XmlResultJargon,
)
from .run_environment import RunEnvironment

LOGGER = logging.getLogger(__name__)

RUN_DATE_FORMAT = "%Y-%m-%d"
RUN_TIME_FORMAT = "%H:%M:%S"

# complement of the XML 1.0 Char production
_INVALID_XML_CHARS = re.compile("[^\u0009\u000a\u000d\u0020-\ud7ff\ue000-\ufffd\U00010000-\U0010ffff]")

_NUNIT2_RESULTS = {
    TestStatus.PASSED: "Success",
    TestStatus.FAILED: "Failure",
    TestStatus.SKIPPED: "Ignored",
    TestStatus.INCONCLUSIVE: "Inconclusive",
}
_XUNIT_RESULTS = {
    TestStatus.PASSED: "Pass",
    TestStatus.FAILED: "Fail",
    TestStatus.SKIPPED: "Skip",
    TestStatus.INCONCLUSIVE: "Skip",
}


def xml_safe(text: str) -> str:
    """Drop characters XML 1.0 cannot represent."""
    return _INVALID_XML_CHARS.sub("", text)


class _XmlSafeGenerator(XMLGenerator):
    """Strips unrepresentable characters from text and attribute values."""

    def startElement(self, name: str, attrs: Mapping[str, str]) -> None:  # noqa: N802
        super().startElement(name, {key: xml_safe(value) for key, value in attrs.items()})

    def characters(self, content: str) -> None:
        super().characters(xml_safe(content))


class ResultReportWriter(ABC):
    """Serializes a :class:`TestRunSummary` into one XML dialect."""

    jargon: XmlResultJargon

    def __init__(self, environment: RunEnvironment | None = None) -> None:
        self.environment = environment or RunEnvironment.capture()

    def write_result_file(self, summary: TestRunSummary, destination: TextIO) -> None:
        """Write the document start, every run once, then close and flush."""
        xml = _XmlSafeGenerator(destination, encoding="utf-8", short_empty_elements=True)
        xml.startDocument()
        self.write_document(xml, summary)
        xml.endDocument()
        destination.flush()

    @abstractmethod
    def write_document(self, xml: XMLGenerator, summary: TestRunSummary) -> None: ...


class NUnitV3Writer(ResultReportWriter):
    """Wraps the runs in one ``test-run`` root with a single ``environment`` block."""

    jargon = XmlResultJargon.NUNIT_V3

    def write_document(self, xml: XMLGenerator, summary: TestRunSummary) -> None:
        counts = summary.counts
        xml.startElement(
            "test-run",
            {
                "id": "2",
                "name": summary.name,
                "fullname": summary.full_name or summary.name,
                "testcasecount": str(counts.total),
                "result": _nunit3_result(counts),
                "time": _seconds(summary.duration, 6),
                **_count_attributes(counts),
                "asserts": str(counts.asserts),
                "run-date": summary.start_time.strftime(RUN_DATE_FORMAT),
                "start-time": summary.start_time.strftime(RUN_TIME_FORMAT),
                "random-seed": str(summary.random_seed or 0),
            },
        )
        self._write_environment(xml)
        for run in summary:
            if run.native_result is not None:
                for node in _native_children(run.native_result):
                    _emit_native(xml, node, skip_tags=frozenset({"environment"}))
            else:
                for suite in run.suites:
                    self._write_suite(xml, suite)
        xml.endElement("test-run")

    def _write_environment(self, xml: XMLGenerator) -> None:
        env = self.environment
        _empty_element(
            xml,
            "environment",
            {
                "nunit-version": env.harness_version,
                "clr-version": env.runtime_version,
                "os-version": env.os_version,
                "platform": env.platform,
                "cwd": env.cwd,
                "machine-name": env.machine_name,
                "user": env.user,
                "user-domain": env.user_domain,
                "culture": env.culture,
                "uiculture": env.ui_culture,
            },
        )

    def _write_suite(self, xml: XMLGenerator, suite: TestSuiteResult) -> None:
        counts = suite.counts
        xml.startElement(
            "test-suite",
            {
                "type": suite.kind,
                "name": suite.name,
                "fullname": suite.full_name or suite.name,
                "testcasecount": str(counts.total),
                "result": _nunit3_result(counts),
                "duration": _seconds(suite.elapsed, 6),
                **_count_attributes(counts),
                "asserts": str(counts.asserts),
            },
        )
        for child in suite.children:
            if isinstance(child, TestCaseResult):
                self._write_case(xml, child)
            else:
                self._write_suite(xml, child)
        xml.endElement("test-suite")

    def _write_case(self, xml: XMLGenerator, case: TestCaseResult) -> None:
        xml.startElement(
            "test-case",
            {
                "name": case.name,
                "fullname": case.full_name or case.name,
                "methodname": case.method_name or case.name,
                "classname": case.class_name,
                "result": case.status.value,
                "duration": _seconds(case.duration, 6),
                "asserts": str(case.asserts),
            },
        )
        _write_failure_and_reason(xml, case)
        if case.output:
            _text_element(xml, "output", case.output)
        xml.endElement("test-case")


class NUnitV2Writer(ResultReportWriter):
    """Classic ``test-results`` document, also used for TouchUnit jargon."""

    jargon = XmlResultJargon.NUNIT_V2

    def write_document(self, xml: XMLGenerator, summary: TestRunSummary) -> None:
        counts = summary.counts
        env = self.environment
        xml.startElement(
            "test-results",
            {
                "name": summary.name,
                "total": str(counts.total),
                "errors": "0",
                "failures": str(counts.failed),
                "not-run": str(counts.skipped),
                "inconclusive": str(counts.inconclusive),
                "ignored": str(counts.skipped),
                "skipped": "0",
                "invalid": "0",
                "date": summary.start_time.strftime(RUN_DATE_FORMAT),
                "time": summary.start_time.strftime(RUN_TIME_FORMAT),
            },
        )
        _empty_element(
            xml,
            "environment",
            {
                "nunit-version": env.harness_version,
                "clr-version": env.runtime_version,
                "os-version": env.os_version,
                "platform": env.platform,
                "cwd": env.cwd,
                "machine-name": env.machine_name,
                "user": env.user,
                "user-domain": env.user_domain,
            },
        )
        _empty_element(
            xml,
            "culture-info",
            {"current-culture": env.culture, "current-uiculture": env.ui_culture},
        )
        for run in summary:
            self._write_suite(
                xml,
                TestSuiteResult(
                    name=run.name,
                    children=run.suites,
                    full_name=run.full_name,
                    kind="Assembly",
                    duration=run.duration,
                ),
            )
        xml.endElement("test-results")

    def _write_suite(self, xml: XMLGenerator, suite: TestSuiteResult) -> None:
        counts = suite.counts
        xml.startElement(
            "test-suite",
            {
                "type": suite.kind,
                "name": suite.name,
                "executed": "True",
                "result": "Failure" if counts.failed else "Success",
                "success": "False" if counts.failed else "True",
                "time": _seconds(suite.elapsed, 3),
                "asserts": str(counts.asserts),
            },
        )
        xml.startElement("results", {})
        for child in suite.children:
            if isinstance(child, TestCaseResult):
                self._write_case(xml, child)
            else:
                self._write_suite(xml, child)
        xml.endElement("results")
        xml.endElement("test-suite")

    def _write_case(self, xml: XMLGenerator, case: TestCaseResult) -> None:
        executed = case.status in (TestStatus.PASSED, TestStatus.FAILED)
        xml.startElement(
            "test-case",
            {
                "name": case.full_name or case.name,
                "executed": str(executed),
                "result": _NUNIT2_RESULTS[case.status],
                "success": str(case.status is TestStatus.PASSED),
                "time": _seconds(case.duration, 3),
                "asserts": str(case.asserts),
            },
        )
        _write_failure_and_reason(xml, case)
        xml.endElement("test-case")


class XUnitWriter(ResultReportWriter):
    """``assemblies`` document with one ``collection`` per suite holding test cases."""

    jargon = XmlResultJargon.XUNIT
    test_framework = "xUnit.net"
    stamps_run_time = True

    def write_document(self, xml: XMLGenerator, summary: TestRunSummary) -> None:
        xml.startElement("assemblies", {})
        for run in summary:
            self._write_assembly(xml, run, summary)
        xml.endElement("assemblies")

    def _write_assembly(self, xml: XMLGenerator, run: TestRunResult, summary: TestRunSummary) -> None:
        counts = run.counts
        attributes = {
            "name": run.full_name or run.name,
            **_xunit_counts(counts),
            "time": _seconds(run.elapsed, 3),
            "environment": f"{self.environment.platform} {self.environment.runtime_version}",
            "test-framework": self.test_framework,
        }
        if self.stamps_run_time:
            attributes["run-date"] = summary.start_time.strftime(RUN_DATE_FORMAT)
            attributes["run-time"] = summary.start_time.strftime(RUN_TIME_FORMAT)
        xml.startElement("assembly", attributes)
        for collection_name, cases in _collections(run.suites):
            collection_counts = ResultCounts.combine(case.counts for case in cases)
            xml.startElement(
                "collection",
                {
                    "name": collection_name,
                    **_xunit_counts(collection_counts),
                    "time": _seconds(sum((case.duration for case in cases), timedelta()), 3),
                },
            )
            for case in cases:
                self._write_test(xml, case)
            xml.endElement("collection")
        xml.endElement("assembly")

    def _write_test(self, xml: XMLGenerator, case: TestCaseResult) -> None:
        xml.startElement(
            "test",
            {
                "name": case.full_name or case.name,
                "type": case.class_name,
                "method": case.method_name or case.name,
                "time": _seconds(case.duration, 3),
                "result": _XUNIT_RESULTS[case.status],
            },
        )
        if case.status is TestStatus.FAILED:
            xml.startElement("failure", {"exception-type": "Failure"})
            _text_element(xml, "message", case.failure_message or "")
            _text_element(xml, "stack-trace", case.stack_trace or "")
            xml.endElement("failure")
        elif case.status in (TestStatus.SKIPPED, TestStatus.INCONCLUSIVE):
            _text_element(xml, "reason", case.skip_reason or "")
        if case.output:
            _text_element(xml, "output", case.output)
        xml.endElement("test")


class XUnitV3Writer(XUnitWriter):
    jargon = XmlResultJargon.XUNIT_V3
    test_framework = "xUnit.net v3"
    stamps_run_time = False


_WRITERS: Mapping[XmlResultJargon, type[ResultReportWriter]] = {
    XmlResultJargon.TOUCH_UNIT: NUnitV2Writer,
    XmlResultJargon.NUNIT_V2: NUnitV2Writer,
    XmlResultJargon.NUNIT_V3: NUnitV3Writer,
    XmlResultJargon.XUNIT: XUnitWriter,
    XmlResultJargon.XUNIT_V3: XUnitV3Writer,
}


def writer_for_jargon(
    jargon: XmlResultJargon, environment: RunEnvironment | None = None
) -> ResultReportWriter:
    """Return the writer for an explicitly requested dialect."""
    try:
        writer_cls = _WRITERS[jargon]
    except KeyError as exc:
        raise ValueError(f"No result writer exists for jargon '{jargon.value}'") from exc
    return writer_cls(environment)


def results_file_name(jargon: XmlResultJargon) -> str:
    return f"TestResults.{jargon.value}.xml"


def write_results_file(
    summary: TestRunSummary,
    output_dir: Path | str,
    jargon: XmlResultJargon,
    environment: RunEnvironment | None = None,
) -> Path:
    """Write ``TestResults.<jargon>.xml`` into ``output_dir`` and return its path."""
    writer = writer_for_jargon(jargon, environment)
    directory = Path(output_dir)
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / results_file_name(jargon)
    with path.open("w", encoding="utf-8", newline="\n") as handle:
        writer.write_result_file(summary, handle)
    LOGGER.info("Test results written to %s", path)
    return path


def _native_children(root: ET.Element) -> Iterator[ET.Element]:
    if root.tag == "test-run":
        yield from root
    else:
        yield root


def _emit_native(xml: XMLGenerator, element: ET.Element, skip_tags: frozenset[str]) -> None:
    if element.tag in skip_tags:
        return
    xml.startElement(element.tag, dict(element.attrib))
    if element.text:
        xml.characters(element.text)
    for child in element:
        _emit_native(xml, child, skip_tags)
        if child.tail:
            xml.characters(child.tail)
    xml.endElement(element.tag)


def _write_failure_and_reason(xml: XMLGenerator, case: TestCaseResult) -> None:
    if case.status is TestStatus.FAILED:
        xml.startElement("failure", {})
        _text_element(xml, "message", case.failure_message or "")
        _text_element(xml, "stack-trace", case.stack_trace or "")
        xml.endElement("failure")
    elif case.status in (TestStatus.SKIPPED, TestStatus.INCONCLUSIVE) and case.skip_reason:
        xml.startElement("reason", {})
        _text_element(xml, "message", case.skip_reason)
        xml.endElement("reason")


def _collections(suites: tuple[TestSuiteResult, ...]) -> Iterator[tuple[str, tuple[TestCaseResult, ...]]]:
    for suite in suites:
        cases = tuple(child for child in suite.children if isinstance(child, TestCaseResult))
        if cases:
            yield suite.full_name or suite.name, cases
        nested = tuple(child for child in suite.children if isinstance(child, TestSuiteResult))
        yield from _collections(nested)


def _empty_element(xml: XMLGenerator, name: str, attributes: dict[str, str]) -> None:
    xml.startElement(name, attributes)
    xml.endElement(name)


def _text_element(xml: XMLGenerator, name: str, text: str) -> None:
    xml.startElement(name, {})
    xml.characters(text)
    xml.endElement(name)


def _count_attributes(counts: ResultCounts) -> dict[str, str]:
    return {
        "total": str(counts.total),
        "passed": str(counts.passed),
        "failed": str(counts.failed),
        "inconclusive": str(counts.inconclusive),
        "skipped": str(counts.skipped),
    }


def _xunit_counts(counts: ResultCounts) -> dict[str, str]:
    return {
        "total": str(counts.total),
        "passed": str(counts.passed),
        "failed": str(counts.failed),
        "skipped": str(counts.skipped + counts.inconclusive),
    }


def _nunit3_result(counts: ResultCounts) -> str:
    if counts.failed:
        return "Failed"
    if counts.total and counts.skipped == counts.total:
        return "Skipped"
    return "Passed"


def _seconds(duration: timedelta, precision: int) -> str:
    return f"{duration.total_seconds():.{precision}f}"
