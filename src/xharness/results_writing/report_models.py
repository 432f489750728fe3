"""Test run summary entities consumed by the result writers."""

from __future__ import annotations

import xml.etree.ElementTree as ET
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum


class TestStatus(str, Enum):
    """Outcome of a single test case."""

    __test__ = False

    PASSED = "Passed"
    FAILED = "Failed"
    SKIPPED = "Skipped"
    INCONCLUSIVE = "Inconclusive"


class XmlResultJargon(str, Enum):
    """XML dialect of a result file."""

    TOUCH_UNIT = "TouchUnit"
    NUNIT_V2 = "NUnitV2"
    NUNIT_V3 = "NUnitV3"
    XUNIT = "xUnit"
    XUNIT_V3 = "xUnitV3"
    MISSING = "Missing"


@dataclass(frozen=True)
class ResultCounts:
    """Outcome counters; ``total`` is always derived from the parts."""

    passed: int = 0
    failed: int = 0
    inconclusive: int = 0
    skipped: int = 0
    asserts: int = 0

    def __post_init__(self) -> None:
        for name in ("passed", "failed", "inconclusive", "skipped", "asserts"):
            if getattr(self, name) < 0:
                raise ValueError(f"Result count '{name}' must not be negative")

    @property
    def total(self) -> int:
        return self.passed + self.failed + self.inconclusive + self.skipped

    def __add__(self, other: ResultCounts) -> ResultCounts:
        return ResultCounts(
            passed=self.passed + other.passed,
            failed=self.failed + other.failed,
            inconclusive=self.inconclusive + other.inconclusive,
            skipped=self.skipped + other.skipped,
            asserts=self.asserts + other.asserts,
        )

    @staticmethod
    def combine(parts: Iterable[ResultCounts]) -> ResultCounts:
        combined = ResultCounts()
        for part in parts:
            combined = combined + part
        return combined

    @staticmethod
    def for_status(status: TestStatus, asserts: int = 0) -> ResultCounts:
        return ResultCounts(
            passed=int(status is TestStatus.PASSED),
            failed=int(status is TestStatus.FAILED),
            inconclusive=int(status is TestStatus.INCONCLUSIVE),
            skipped=int(status is TestStatus.SKIPPED),
            asserts=asserts,
        )


@dataclass(frozen=True)
class TestCaseResult:  # pylint: disable=too-many-instance-attributes
    """One executed (or skipped) test."""

    __test__ = False

    name: str
    status: TestStatus
    full_name: str = ""
    class_name: str = ""
    method_name: str = ""
    duration: timedelta = timedelta()
    failure_message: str | None = None
    stack_trace: str | None = None
    skip_reason: str | None = None
    output: str | None = None
    asserts: int = 0

    @property
    def counts(self) -> ResultCounts:
        return ResultCounts.for_status(self.status, self.asserts)

    @property
    def elapsed(self) -> timedelta:
        return self.duration


@dataclass(frozen=True)
class TestSuiteResult:
    """A fixture, namespace or assembly grouping test cases."""

    __test__ = False

    name: str
    children: tuple[TestSuiteResult | TestCaseResult, ...] = ()
    full_name: str = ""
    kind: str = "TestSuite"
    duration: timedelta | None = None

    @property
    def counts(self) -> ResultCounts:
        return ResultCounts.combine(child.counts for child in self.children)

    @property
    def elapsed(self) -> timedelta:
        if self.duration is not None:
            return self.duration
        return sum((child.elapsed for child in self.children), timedelta())

    def test_cases(self) -> Iterator[TestCaseResult]:
        for child in self.children:
            if isinstance(child, TestCaseResult):
                yield child
            else:
                yield from child.test_cases()


@dataclass(frozen=True)
class TestRunResult:
    """Results of one test run, optionally with the tree the test framework produced."""

    __test__ = False

    name: str
    suites: tuple[TestSuiteResult, ...] = ()
    full_name: str = ""
    duration: timedelta | None = None
    native_result: ET.Element | None = field(default=None, compare=False, repr=False)
    native_counts: ResultCounts | None = None

    def __post_init__(self) -> None:
        if self.native_result is not None and self.native_counts is None:
            raise ValueError(f"Test run '{self.name}' carries a native result tree but no counts")

    @property
    def counts(self) -> ResultCounts:
        if self.native_counts is not None:
            return self.native_counts
        return ResultCounts.combine(suite.counts for suite in self.suites)

    @property
    def elapsed(self) -> timedelta:
        if self.duration is not None:
            return self.duration
        return sum((suite.elapsed for suite in self.suites), timedelta())


@dataclass(frozen=True)
class TestRunSummary:
    """Everything one execution produced, handed once to a result writer."""

    __test__ = False

    name: str
    runs: tuple[TestRunResult, ...] = ()
    full_name: str = ""
    start_time: datetime = field(default_factory=datetime.now)
    random_seed: int | None = None

    def __iter__(self) -> Iterator[TestRunResult]:
        return iter(self.runs)

    @property
    def counts(self) -> ResultCounts:
        return ResultCounts.combine(run.counts for run in self.runs)

    @property
    def duration(self) -> timedelta:
        return sum((run.elapsed for run in self.runs), timedelta())

    @property
    def has_failures(self) -> bool:
        return self.counts.failed > 0
