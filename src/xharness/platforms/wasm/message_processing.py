"""Interpret the console output of a wasm test app."""

from __future__ import annotations

import base64
import binascii
import json
import logging
import re
import threading
from pathlib import Path

from xharness.console_logging import TRACE
from xharness.exit_codes import ExitCode
from xharness.results_writing import ResultParsingError, TestRunSummary, parse_results
from xharness.run_execution import BackendFailure
from xharness.symbolication import Symbolicator

LOGGER = logging.getLogger(__name__)

RESULT_XML_PATTERN = re.compile(r"^STARTRESULTXML ([0-9]*) ([^ ]*) ENDRESULTXML")
EXIT_PATTERN = re.compile(r"^WASM EXIT (-?\d+)")
CONSOLE_LEVELS = {
    "console.debug": logging.DEBUG,
    "console.error": logging.ERROR,
    "console.warn": logging.WARNING,
    "console.trace": TRACE,
    "console.log": logging.INFO,
}


class ErrorPatternScanner:
    """Flags output lines matching a crash pattern.

    Pattern files hold one pattern per line. ``@`` introduces a regex, any other
    line is a plain substring, and lines starting with ``#`` are ignored.
    """

    def __init__(self, substrings: tuple[str, ...] = (), regexes: tuple[re.Pattern[str], ...] = ()) -> None:
        self.substrings = substrings
        self.regexes = regexes

    @classmethod
    def from_file(cls, path: Path) -> ErrorPatternScanner:
        try:
            lines = Path(path).read_text(encoding="utf-8").splitlines()
        except (OSError, UnicodeDecodeError) as exc:
            raise BackendFailure(ExitCode.GENERAL_FAILURE, f"Cannot read error patterns file {path}: {exc}") from exc
        substrings = []
        regexes = []
        for line in lines:
            if not line.strip() or line.startswith("#"):
                continue
            if line.startswith("@"):
                try:
                    regexes.append(re.compile(line[1:]))
                except re.error as exc:
                    raise BackendFailure(
                        ExitCode.GENERAL_FAILURE, f"Invalid error pattern '{line}' in {path}: {exc}"
                    ) from exc
            else:
                substrings.append(line)
        return cls(tuple(substrings), tuple(regexes))

    def is_error(self, line: str) -> bool:
        if any(substring in line for substring in self.substrings):
            return True
        return any(regex.search(line) for regex in self.regexes)


class TestMessageProcessor:
    """Collects results, crash markers and the exit code from console lines.

    Safe to feed from several threads; the browser runner receives console
    messages on web server threads.
    """

    __test__ = False

    def __init__(
        self,
        results_name: str = "testResults",
        scanner: ErrorPatternScanner | None = None,
        symbolicator: Symbolicator | None = None,
    ) -> None:
        self.results_name = results_name
        self.scanner = scanner
        self.symbolicator = symbolicator
        self.summary: TestRunSummary | None = None
        self.failure: BackendFailure | None = None
        self.error_line: str | None = None
        self.exit_code: int | None = None
        self.console_lines: list[str] = []
        self.exited = threading.Event()
        self._lock = threading.Lock()

    def process(self, message: str, is_error: bool = False) -> None:
        with self._lock:
            self._process(message, is_error)

    def process_output(self, stdout: str, stderr: str = "") -> None:
        for line in stdout.splitlines():
            self.process(line)
        for line in stderr.splitlines():
            self.process(line, is_error=True)

    def raise_for_failure(self) -> None:
        if self.failure is not None:
            raise self.failure

    def write_console_log(self, path: Path) -> None:
        with self._lock:
            text = "".join(f"{line}\n" for line in self.console_lines)
        path.write_text(text, encoding="utf-8")

    def _process(self, message: str, is_error: bool) -> None:
        line, method = _unwrap(message)
        match = RESULT_XML_PATTERN.match(line)
        if match:
            self._capture_results(int(match.group(1) or 0), match.group(2))
            return

        if line.startswith("[PASS]") or line.startswith("[SKIP]"):
            LOGGER.debug("%s", line)
        elif line.startswith("[FAIL]"):
            LOGGER.error("%s", line)
        else:
            if self.scanner is not None and self.error_line is None and self.scanner.is_error(line):
                self.error_line = line
            if self.symbolicator is not None:
                line = self.symbolicator.symbolicate(line)
            level = logging.ERROR if is_error else CONSOLE_LEVELS.get(method or "", logging.INFO)
            LOGGER.log(level, "%s", line)
        self.console_lines.append(line)

        exit_match = EXIT_PATTERN.match(line)
        if exit_match:
            if self.exited.is_set():
                LOGGER.debug("Got a duplicate exit message")
            else:
                self.exit_code = int(exit_match.group(1))
                self.exited.set()

    def _capture_results(self, expected_length: int, payload: str) -> None:
        try:
            data = base64.b64decode(payload, validate=True)
        except (binascii.Error, ValueError) as exc:
            self._fail(f"Test results are not valid base64: {exc}")
            return
        if len(data) != expected_length:
            self._fail(f"Received {len(data)} bytes of test results but expected {expected_length}")
            return
        LOGGER.info("Received expected %d bytes of test results", len(data))
        try:
            self.summary = parse_results(data.decode("utf-8"), name=self.results_name)
        except (ResultParsingError, UnicodeDecodeError) as exc:
            self._fail(f"Failed to read the test results sent by the app: {exc}")

    def _fail(self, message: str) -> None:
        LOGGER.error("%s", message)
        if self.failure is None:
            self.failure = BackendFailure(ExitCode.GENERAL_FAILURE, message)


def _unwrap(message: str) -> tuple[str, str | None]:
    """Split a JSON console message from the browser runtime into text and method."""
    if not message.startswith("{"):
        return message.rstrip(), None
    try:
        decoded = json.loads(message)
    except json.JSONDecodeError:
        return message.rstrip(), None
    if not isinstance(decoded, dict):
        return message.rstrip(), None
    payload = decoded.get("payload")
    method = decoded.get("method")
    line = payload.rstrip() if isinstance(payload, str) else message.rstrip()
    return line, method.lower() if isinstance(method, str) else None
