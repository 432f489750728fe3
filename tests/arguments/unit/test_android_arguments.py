"""Tests for Android argument rules."""

from __future__ import annotations

from pathlib import Path

import pytest
from xharness.arguments import ArgumentSet, ProblemKind
from xharness.platforms.android import AndroidTestArguments, DeviceArchitecture
from xharness.platforms.android.android_arguments import DeviceSelectionArguments


def _device_selection(*tokens: str) -> tuple[DeviceSelectionArguments, ArgumentSet]:
    arguments = DeviceSelectionArguments()
    argument_set = ArgumentSet(arguments)
    outcome = argument_set.parse(list(tokens))
    assert outcome.problems == ()
    return arguments, argument_set


@pytest.mark.parametrize("level", ["16", "21", "35"])
def test_api_levels_inside_supported_range_are_valid(level: str) -> None:
    arguments, argument_set = _device_selection("--api-version", level)

    assert argument_set.validate() == ()
    assert arguments.api_version.value == [int(level)]


@pytest.mark.parametrize("level", ["15", "36"])
def test_api_levels_outside_supported_range_fail_validation(level: str) -> None:
    _, argument_set = _device_selection("--api-levels", level)

    problems = argument_set.validate()

    assert problems[0].kind is ProblemKind.VALIDATION
    assert problems[0].message == f"API level {level} is not supported. Supported range is 16-35"


def test_non_numeric_api_level_is_a_format_problem() -> None:
    outcome = ArgumentSet(DeviceSelectionArguments()).parse(["--api", "abc"])

    assert outcome.problems[0].kind is ProblemKind.FORMAT
    assert outcome.problems[0].message == "API version 'abc' must be an integer"


def test_api_version_and_api_levels_are_mutually_exclusive() -> None:
    _, argument_set = _device_selection("--api-version", "21", "--api-levels", "22")

    problems = argument_set.validate()

    assert len(problems) == 1
    assert "--api-version" in problems[0].message
    assert "--api-levels" in problems[0].message


def test_device_architectures_are_repeatable() -> None:
    arguments, _ = _device_selection("--device-arch", "x86_64", "--device-arch=ARM64-V8A")

    assert arguments.device_arch.value == [DeviceArchitecture.X86_64, DeviceArchitecture.ARM64_V8A]


def test_android_test_requires_app_package_and_output_directory() -> None:
    argument_set = ArgumentSet(AndroidTestArguments())
    argument_set.parse([])

    messages = [problem.message for problem in argument_set.validate()]

    assert "You must provide an output directory where results will be stored" in messages
    assert "You must provide a path to the .apk file" in messages
    assert "You must provide the name of the application package" in messages


def test_android_test_reports_a_missing_apk(tmp_path: Path) -> None:
    argument_set = ArgumentSet(AndroidTestArguments())
    argument_set.parse(["-o", str(tmp_path), "-a", str(tmp_path / "missing.apk"), "-p", "net.tests"])

    messages = [problem.message for problem in argument_set.validate()]

    assert messages == [f"Path supplied in --app does not exist: {tmp_path / 'missing.apk'}"]


def test_instrumentation_arguments_become_key_value_pairs(tmp_path: Path) -> None:
    apk = tmp_path / "app.apk"
    apk.write_bytes(b"apk")
    arguments = AndroidTestArguments()
    argument_set = ArgumentSet(arguments)
    argument_set.parse(
        ["-o", str(tmp_path), "-a", str(apk), "-p", "net.tests", "--arg", "filter=Smoke", "--arg", "seed=4"]
    )

    assert argument_set.validate() == ()
    assert arguments.instrumentation.instrumentation_arguments.as_dict() == {"filter": "Smoke", "seed": "4"}
