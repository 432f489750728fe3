"""Tests for the mlaunch-driven Apple backend."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import timedelta
from pathlib import Path

import pytest
from xharness.arguments import ArgumentSet, ProblemKind, protect_verbatim
from xharness.configuration import HarnessSettings
from xharness.exit_codes import ExitCode
from xharness.platforms.apple import (
    AppleAppBackend,
    AppleInstallCommand,
    AppleRunCommand,
    AppleTarget,
    AppleTestArguments,
    AppleTestCommand,
    AppleUninstallCommand,
    MlaunchBackend,
    TestTarget,
    app_environment,
    mlaunch_command,
)
from xharness.platforms.apple import apple_backend
from xharness.results_writing import XmlResultJargon
from xharness.run_execution import BackendFailure, BackendTimeout, ProcessResult, ProcessTimedOut

RESULTS_XML = """<assemblies>
  <assembly name="Sample.iOS.Tests.dll" total="1" passed="1" failed="0" skipped="0">
    <collection name="Sample.iOS.Tests.Launch">
      <test name="Sample.iOS.Tests.Launch.Starts" type="Sample.iOS.Tests.Launch" method="Starts" result="Pass" />
    </collection>
  </assembly>
</assemblies>"""


class _FakeMlaunch:
    """Writes the results file named in the app environment, then exits."""

    def __init__(self, exit_code: int = 0, error: Exception | None = None, write_results: bool = True) -> None:
        self.exit_code = exit_code
        self.error = error
        self.write_results = write_results
        self.commands: list[list[str]] = []
        self.environments: list[dict[str, str] | None] = []

    def run(self, args: Sequence[str], *, timeout: timedelta | None = None, env=None, cwd=None) -> ProcessResult:
        command = list(args)
        self.commands.append(command)
        self.environments.append(None if env is None else dict(env))
        if self.error is not None:
            raise self.error
        results_file = _setenv(command, "NUNIT_RESULTS_FILE")
        if self.write_results and results_file is not None:
            Path(results_file).write_text(RESULTS_XML, encoding="utf-8")
        return ProcessResult(args=tuple(command), exit_code=self.exit_code)


def _setenv(command: list[str], name: str) -> str | None:
    prefix = f"-setenv={name}="
    for token in command:
        if token.startswith(prefix):
            return token[len(prefix) :]
    return None


def _parse(tmp_path: Path, *extra: str) -> tuple[AppleTestArguments, ArgumentSet]:
    app = tmp_path / "Sample.app"
    app.mkdir(exist_ok=True)
    mlaunch = tmp_path / "mlaunch"
    mlaunch.write_text("", encoding="utf-8")
    arguments = AppleTestArguments()
    argument_set = ArgumentSet(arguments)
    outcome = argument_set.parse(
        ["--app", str(app), "--mlaunch", str(mlaunch), "-o", str(tmp_path / "out"), *extra]
    )
    assert outcome.problems == ()
    return arguments, argument_set


def _arguments(tmp_path: Path, *extra: str) -> AppleTestArguments:
    arguments, argument_set = _parse(tmp_path, *extra)
    assert argument_set.validate() == ()
    return arguments


def test_target_parses_platform_and_os_version() -> None:
    target = TestTarget.parse("ios-simulator-64_13.4")

    assert target.platform is AppleTarget.SIMULATOR_IOS64
    assert target.os_version == "13.4"
    assert str(target) == "ios-simulator-64_13.4"
    assert TestTarget.parse("TVOS-DEVICE") == TestTarget(AppleTarget.DEVICE_TVOS)


@pytest.mark.parametrize("text", ["android", "ios-simulator_", "ios-phone_12.0"])
def test_invalid_targets_are_rejected(text: str) -> None:
    with pytest.raises(ValueError):
        TestTarget.parse(text)


def test_unknown_target_argument_lists_the_available_targets() -> None:
    argument_set = ArgumentSet(AppleTestArguments())

    outcome = argument_set.parse(["--target", "ios-phone"])

    message = outcome.problems[0].message
    assert outcome.problems[0].kind is ProblemKind.FORMAT
    assert message.startswith("Failed to parse test target 'ios-phone'. Available targets are:")
    assert "\n\t- watchos-device" in message
    assert message.endswith("e.g. ios-simulator-64_13.4")


def test_at_least_one_target_is_required(tmp_path: Path) -> None:
    _, argument_set = _parse(tmp_path)

    messages = [problem.message for problem in argument_set.validate()]

    assert messages == ["No test target specified"]


def test_missing_jargon_is_not_selectable() -> None:
    outcome = ArgumentSet(AppleTestArguments()).parse(["--xml-jargon", "Missing"])

    assert outcome.problems[0].kind is ProblemKind.FORMAT
    assert "- Missing" not in outcome.problems[0].message


def test_missing_mlaunch_path_is_reported(tmp_path: Path) -> None:
    _, argument_set = _parse(tmp_path, "-t", "ios-device", "--mlaunch", str(tmp_path / "absent"))

    messages = [problem.message for problem in argument_set.validate()]

    assert messages == [f"Failed to find mlaunch at {tmp_path / 'absent'}"]


def test_simulator_command_selects_the_runtime() -> None:
    command = mlaunch_command(
        Path("/tools/mlaunch"),
        TestTarget.parse("ios-simulator-64_13.4"),
        Path("/apps/Sample.app"),
        {"NUNIT_AUTOEXIT": "true"},
        xcode=Path("/Applications/Xcode.app"),
        passthrough=("--verbose",),
    )

    assert command == [
        "/tools/mlaunch",
        "--sdkroot",
        "/Applications/Xcode.app",
        "--launchsim",
        "/apps/Sample.app",
        "--device=:v2:runtime=com.apple.CoreSimulator.SimRuntime.iOS-13-4",
        "-setenv=NUNIT_AUTOEXIT=true",
        "-argument=--verbose",
        "--wait-for-exit",
    ]


def test_device_command_launches_on_the_device() -> None:
    command = mlaunch_command(Path("mlaunch"), TestTarget.parse("tvos-device"), Path("Sample.app"), {})

    assert command == ["mlaunch", "--launchdev", "Sample.app", "--wait-for-exit"]


def test_app_environment_carries_filters_and_user_variables(tmp_path: Path) -> None:
    arguments = _arguments(
        tmp_path,
        "-t",
        "ios-simulator",
        "--method",
        "Tests.A.One",
        "-m",
        "Tests.A.Two",
        "--class",
        "Tests.B",
        "--set-env",
        "LANG=fr_FR",
        "--xml-jargon",
        "NUnitV3",
    )

    variables = app_environment(arguments, tmp_path / "results.xml", end_tag="END")

    assert variables["NUNIT_RUN_ALL"] == "false"
    assert variables["NUNIT_TEST_METHODS"] == "Tests.A.One,Tests.A.Two"
    assert variables["NUNIT_TEST_CLASSES"] == "Tests.B"
    assert variables["NUNIT_XML_VERSION"] == "NUnitV3"
    assert variables["NUNIT_TRANSPORT"] == "UsbTunnel"
    assert variables["NUNIT_RESULTS_FILE"] == str(tmp_path / "results.xml")
    assert variables["NUNIT_APP_END_TAG"] == "END"
    assert variables["LANG"] == "fr_FR"


def test_each_target_is_run_and_results_are_merged(tmp_path: Path) -> None:
    runner = _FakeMlaunch()
    arguments = _arguments(tmp_path, "-t", "ios-simulator-64", "--target", "tvos-simulator")

    outcome = MlaunchBackend(HarnessSettings(), runner).run(arguments, timedelta(minutes=5))

    assert outcome.exit_code is ExitCode.SUCCESS
    assert outcome.summary is not None
    assert outcome.summary.name == "Sample"
    assert len(outcome.summary.runs) == 2
    assert [_setenv(command, "NUNIT_RESULTS_FILE") for command in runner.commands] == [
        str(tmp_path / "out" / "ios-simulator-64-results.xml"),
        str(tmp_path / "out" / "tvos-simulator-results.xml"),
    ]


def test_failed_launch_is_reported_with_collected_results(tmp_path: Path) -> None:
    runner = _FakeMlaunch(exit_code=1)
    arguments = _arguments(tmp_path, "-t", "ios-device")

    outcome = MlaunchBackend(HarnessSettings(), runner).run(arguments, timedelta(minutes=5))

    assert outcome.exit_code is ExitCode.APP_LAUNCH_FAILURE
    assert outcome.summary is not None


def test_run_without_results_file_has_no_summary(tmp_path: Path) -> None:
    runner = _FakeMlaunch(write_results=False)

    outcome = MlaunchBackend(HarnessSettings(), runner).run(
        _arguments(tmp_path, "-t", "ios-simulator"), timedelta(minutes=5)
    )

    assert outcome.exit_code is ExitCode.SUCCESS
    assert outcome.summary is None


def test_timeout_is_raised_as_a_run_timeout(tmp_path: Path) -> None:
    runner = _FakeMlaunch(error=ProcessTimedOut(["mlaunch"], timedelta(minutes=5)))

    with pytest.raises(BackendTimeout):
        MlaunchBackend(HarnessSettings(), runner).run(_arguments(tmp_path, "-t", "ios-simulator"), timedelta(minutes=5))


def test_mlaunch_must_be_found_when_not_given(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setattr(apple_backend, "DEFAULT_MLAUNCH_PATH", tmp_path / "not-installed")
    arguments = AppleTestArguments()
    ArgumentSet(arguments).parse(["-t", "ios-simulator"])
    backend = MlaunchBackend(HarnessSettings(search_path=str(tmp_path / "empty")), _FakeMlaunch())

    with pytest.raises(BackendFailure) as excinfo:
        backend.resolve_mlaunch(arguments)

    assert excinfo.value.exit_code is ExitCode.GENERAL_FAILURE


def test_test_command_writes_results_in_the_requested_jargon(tmp_path: Path) -> None:
    app = tmp_path / "Sample.app"
    app.mkdir()
    mlaunch = tmp_path / "mlaunch"
    mlaunch.write_text("", encoding="utf-8")
    settings = HarnessSettings(disable_colored_output=True, host_platform="darwin")
    command = AppleTestCommand(settings, "xharness apple", backend=MlaunchBackend(settings, _FakeMlaunch()))

    exit_code = command.invoke(
        [
            "--app",
            str(app),
            "--mlaunch",
            str(mlaunch),
            "-t",
            "ios-simulator-64",
            "--xml-jargon",
            XmlResultJargon.NUNIT_V3.value,
            "-o",
            str(tmp_path / "out"),
        ]
    )

    assert exit_code is ExitCode.SUCCESS
    assert (tmp_path / "out" / "TestResults.NUnitV3.xml").exists()


def _tools(tmp_path: Path) -> tuple[HarnessSettings, Path, Path]:
    bin_dir = tmp_path / "bin"
    bin_dir.mkdir(exist_ok=True)
    xcrun = bin_dir / "xcrun"
    xcrun.write_text("#!/bin/sh\n", encoding="utf-8")
    xcrun.chmod(0o755)
    mlaunch = tmp_path / "mlaunch"
    mlaunch.write_text("", encoding="utf-8")
    app = tmp_path / "Sample.app"
    app.mkdir(exist_ok=True)
    settings = HarnessSettings(disable_colored_output=True, search_path=str(bin_dir), host_platform="darwin")
    return settings, mlaunch, app


def test_expected_exit_code_is_compared_with_the_mlaunch_exit_code(tmp_path: Path) -> None:
    backend = MlaunchBackend(HarnessSettings(), _FakeMlaunch(exit_code=3))

    expected = backend.run(_arguments(tmp_path, "-t", "ios-device", "--expected-exit-code", "3"), timedelta(minutes=5))
    unexpected = backend.run(_arguments(tmp_path, "-t", "ios-device"), timedelta(minutes=5))

    assert expected.exit_code is ExitCode.SUCCESS
    assert unexpected.exit_code is ExitCode.APP_LAUNCH_FAILURE


def test_run_command_launches_the_app_without_test_variables(tmp_path: Path) -> None:
    settings, mlaunch, app = _tools(tmp_path)
    runner = _FakeMlaunch()
    command = AppleRunCommand(settings, "xharness apple", backend=AppleAppBackend(settings, runner))
    arguments = ["--app", str(app), "--mlaunch", str(mlaunch), "-t", "ios-simulator-64", "--set-env", "LANG=en_US"]

    exit_code = command.invoke(protect_verbatim([*arguments, "-o", str(tmp_path / "out"), "--", "--verbose"]))

    assert exit_code is ExitCode.SUCCESS
    assert runner.commands == [
        [
            str(mlaunch),
            "--launchsim",
            str(app),
            "-setenv=LANG=en_US",
            "-argument=--verbose",
            "--wait-for-exit",
        ]
    ]


def test_run_command_fails_on_an_unexpected_exit_code(tmp_path: Path) -> None:
    settings, mlaunch, app = _tools(tmp_path)
    command = AppleRunCommand(settings, "xharness apple", backend=AppleAppBackend(settings, _FakeMlaunch(exit_code=2)))

    exit_code = command.invoke(
        ["--app", str(app), "--mlaunch", str(mlaunch), "-t", "ios-device", "-o", str(tmp_path / "out")]
    )

    assert exit_code is ExitCode.APP_LAUNCH_FAILURE


def test_install_uses_simctl_for_simulators_and_mlaunch_for_devices(tmp_path: Path) -> None:
    settings, mlaunch, app = _tools(tmp_path)
    runner = _FakeMlaunch()
    command = AppleInstallCommand(settings, "xharness apple", runner=runner)

    exit_code = command.invoke(
        ["--app", str(app), "--mlaunch", str(mlaunch), "-t", "ios-simulator-64", "-t", "ios-device"]
    )

    assert exit_code is ExitCode.SUCCESS
    assert runner.commands == [
        [str(tmp_path / "bin" / "xcrun"), "simctl", "install", "booted", str(app)],
        [str(mlaunch), "--installdev", str(app)],
    ]


def test_install_points_xcrun_at_the_requested_xcode(tmp_path: Path) -> None:
    settings, mlaunch, app = _tools(tmp_path)
    xcode = tmp_path / "Xcode.app"
    xcode.mkdir()
    runner = _FakeMlaunch()
    command = AppleInstallCommand(settings, "xharness apple", runner=runner)

    command.invoke(["--app", str(app), "--mlaunch", str(mlaunch), "-t", "ios-simulator", "--xcode", str(xcode)])

    assert runner.environments == [{"DEVELOPER_DIR": str(xcode / "Contents" / "Developer")}]


def test_failed_install_has_its_own_exit_code(tmp_path: Path) -> None:
    settings, mlaunch, app = _tools(tmp_path)
    command = AppleInstallCommand(settings, "xharness apple", runner=_FakeMlaunch(exit_code=1))

    exit_code = command.invoke(["--app", str(app), "--mlaunch", str(mlaunch), "-t", "ios-device"])

    assert exit_code is ExitCode.PACKAGE_INSTALLATION_FAILURE


def test_uninstall_removes_the_bundle_id(tmp_path: Path) -> None:
    settings, mlaunch, _ = _tools(tmp_path)
    runner = _FakeMlaunch()
    command = AppleUninstallCommand(settings, "xharness apple", runner=runner)

    exit_code = command.invoke(
        ["--app", "net.sample.app", "--mlaunch", str(mlaunch), "-t", "tvos-simulator", "-t", "tvos-device"]
    )

    assert exit_code is ExitCode.SUCCESS
    assert runner.commands == [
        [str(tmp_path / "bin" / "xcrun"), "simctl", "uninstall", "booted", "net.sample.app"],
        [str(mlaunch), "--uninstalldevbundleid", "net.sample.app"],
    ]


def test_uninstall_requires_a_bundle_id(tmp_path: Path) -> None:
    settings, mlaunch, _ = _tools(tmp_path)
    command = AppleUninstallCommand(settings, "xharness apple", runner=_FakeMlaunch())

    exit_code = command.invoke(["--mlaunch", str(mlaunch), "-t", "ios-device"])

    assert exit_code is ExitCode.INVALID_ARGUMENTS
