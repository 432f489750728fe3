"""Integration tests for CLI orchestration with a scripted engine."""

from __future__ import annotations

import base64
import stat
import sys
import xml.etree.ElementTree as ET
from pathlib import Path

import pytest
from xharness.cli import main

pytestmark = pytest.mark.skipif(sys.platform == "win32", reason="uses a POSIX shell script as the engine")

PASSING_RESULTS = """<assemblies>
  <assembly name="Sample.Tests.dll" total="1" passed="1" failed="0" skipped="0">
    <collection name="Sample.Tests.Math">
      <test name="Sample.Tests.Math.Adds" type="Sample.Tests.Math" method="Adds" time="0.01" result="Pass" />
    </collection>
  </assembly>
</assemblies>"""

FAILING_RESULTS = PASSING_RESULTS.replace('result="Pass"', 'result="Fail"')


def _write_engine(tmp_path: Path, results: str, exit_line: str = "WASM EXIT 0") -> Path:
    payload = results.encode("utf-8")
    encoded = base64.b64encode(payload).decode("ascii")
    engine = tmp_path / "fake-v8"
    engine.write_text(
        "#!/bin/sh\n"
        f'printf "%s\\n" "$@" > "{tmp_path / "engine-args.txt"}"\n'
        "echo 'Running tests'\n"
        f"echo 'STARTRESULTXML {len(payload)} {encoded} ENDRESULTXML'\n"
        f"echo '{exit_line}'\n",
        encoding="utf-8",
    )
    engine.chmod(engine.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return engine


def test_wasm_test_writes_results_and_console_log(tmp_path: Path) -> None:
    engine = _write_engine(tmp_path, PASSING_RESULTS)
    output = tmp_path / "out"

    exit_code = main(
        [
            "wasm",
            "test",
            "--engine=V8",
            f"--engine-path={engine}",
            "--output-directory",
            str(output),
            "--",
            "--run",
            "Sample.Tests.dll",
        ]
    )

    assert exit_code == 0
    assert ET.parse(output / "TestResults.xUnit.xml").getroot().tag == "assemblies"
    console = (output / "wasm-console.log").read_text(encoding="utf-8")
    assert "Running tests" in console
    assert "WASM EXIT 0" in console
    engine_args = (tmp_path / "engine-args.txt").read_text(encoding="utf-8").split()
    assert engine_args == ["--expose_wasm", "runtime.js", "--", "--run", "Sample.Tests.dll"]


def test_wasm_test_with_failed_tests_returns_tests_failed(tmp_path: Path) -> None:
    engine = _write_engine(tmp_path, FAILING_RESULTS)

    exit_code = main(["wasm", "test", "-e", "V8", "--engine-path", str(engine), "-o", str(tmp_path / "out")])

    assert exit_code == 1


def test_wasm_test_with_unexpected_exit_code_is_a_general_failure(tmp_path: Path) -> None:
    engine = _write_engine(tmp_path, PASSING_RESULTS, exit_line="WASM EXIT 0")

    exit_code = main(
        [
            "wasm",
            "test",
            "-e",
            "V8",
            "--engine-path",
            str(engine),
            "--expected-exit-code",
            "4",
            "-o",
            str(tmp_path / "out"),
        ]
    )

    assert exit_code == 71
