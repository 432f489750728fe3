"""mlaunch-driven Apple backend."""

from __future__ import annotations

import logging
import uuid
from collections.abc import Mapping, Sequence
from datetime import timedelta
from pathlib import Path

from xharness.configuration import HarnessSettings
from xharness.exit_codes import ExitCode
from xharness.platforms.tool_resolution import resolve_executable
from xharness.results_writing import ResultParsingError, TestRunSummary, parse_results_file
from xharness.run_execution import (
    BackendFailure,
    BackendOutcome,
    BackendTimeout,
    ProcessLaunchError,
    ProcessRunner,
    ProcessTimedOut,
    SubprocessRunner,
)

from .apple_arguments import (
    DEFAULT_MLAUNCH_PATH,
    AppleInstallArguments,
    AppleRunArguments,
    AppleTestArguments,
    AppleUninstallArguments,
    TestTarget,
)

LOGGER = logging.getLogger(__name__)

RESULTS_FILE_VARIABLE = "NUNIT_RESULTS_FILE"
AUTO_EXIT_VARIABLE = "NUNIT_AUTOEXIT"
XML_OUTPUT_VARIABLE = "NUNIT_ENABLE_XML_OUTPUT"
XML_VERSION_VARIABLE = "NUNIT_XML_VERSION"
TRANSPORT_VARIABLE = "NUNIT_TRANSPORT"
RUN_ALL_VARIABLE = "NUNIT_RUN_ALL"
METHODS_VARIABLE = "NUNIT_TEST_METHODS"
CLASSES_VARIABLE = "NUNIT_TEST_CLASSES"
APP_END_TAG_VARIABLE = "NUNIT_APP_END_TAG"
DEVELOPER_DIR_VARIABLE = "DEVELOPER_DIR"
BOOTED_SIMULATOR = "booted"


def app_environment(
    arguments: AppleTestArguments, results_file: Path, end_tag: str | None = None
) -> dict[str, str]:
    """Variables the test runner inside the app reads on startup."""
    variables = {
        AUTO_EXIT_VARIABLE: "true",
        XML_OUTPUT_VARIABLE: "true",
        XML_VERSION_VARIABLE: arguments.xml_jargon.value.value,
        TRANSPORT_VARIABLE: arguments.communication_channel.value.value,
        RESULTS_FILE_VARIABLE: str(results_file),
    }
    if arguments.methods.value or arguments.classes.value:
        variables[RUN_ALL_VARIABLE] = "false"
        if arguments.methods.value:
            variables[METHODS_VARIABLE] = ",".join(arguments.methods.value)
        if arguments.classes.value:
            variables[CLASSES_VARIABLE] = ",".join(arguments.classes.value)
    if end_tag is not None:
        variables[APP_END_TAG_VARIABLE] = end_tag
    for key, value in arguments.environment.value:
        variables[key] = value
    return variables


def mlaunch_command(
    mlaunch: Path,
    target: TestTarget,
    app: Path,
    environment: Mapping[str, str],
    xcode: Path | None = None,
    passthrough: Sequence[str] = (),
) -> list[str]:
    command = _with_sdkroot(mlaunch, xcode)
    if target.platform.is_simulator:
        command += ["--launchsim", str(app)]
        if target.os_version:
            command.append(f"--device=:v2:runtime={_simulator_runtime(target)}")
    else:
        command += ["--launchdev", str(app)]
    command += [f"-setenv={key}={value}" for key, value in environment.items()]
    command += [f"-argument={argument}" for argument in passthrough]
    command.append("--wait-for-exit")
    return command


def _simulator_runtime(target: TestTarget) -> str:
    os_name = target.platform.value.split("-", 1)[0]
    display = {"ios": "iOS", "tvos": "tvOS", "watchos": "watchOS"}[os_name]
    version = (target.os_version or "").replace(".", "-")
    return f"com.apple.CoreSimulator.SimRuntime.{display}-{version}"


class MlaunchBackend:
    """Runs an app bundle once per requested target and merges their results."""

    def __init__(self, settings: HarnessSettings, runner: ProcessRunner | None = None) -> None:
        self.settings = settings
        self.runner = runner or SubprocessRunner()

    def resolve_mlaunch(
        self, arguments: AppleRunArguments | AppleInstallArguments | AppleUninstallArguments
    ) -> Path:
        if arguments.mlaunch.value is not None:
            return Path(arguments.mlaunch.value)
        if DEFAULT_MLAUNCH_PATH.exists():
            return DEFAULT_MLAUNCH_PATH
        found = resolve_executable("mlaunch", self.settings.search_path)
        if found is None:
            raise BackendFailure(ExitCode.GENERAL_FAILURE, "Failed to find mlaunch")
        return found

    def resolve_xcrun(self) -> Path:
        found = resolve_executable("xcrun", self.settings.search_path)
        if found is None:
            raise BackendFailure(ExitCode.GENERAL_FAILURE, "Failed to find xcrun")
        return found

    def run(self, arguments: AppleTestArguments, timeout: timedelta) -> BackendOutcome:
        mlaunch = self.resolve_mlaunch(arguments)
        output_directory = arguments.run.output_directory.value
        output_directory.mkdir(parents=True, exist_ok=True)

        exit_code = ExitCode.SUCCESS
        runs = []
        for target in arguments.targets.value:
            target_code, summary = self._run_target(mlaunch, target, arguments, timeout)
            if summary is not None:
                runs.extend(summary.runs)
            if exit_code is ExitCode.SUCCESS:
                exit_code = target_code

        summary = TestRunSummary(name=arguments.app.value.stem, runs=tuple(runs)) if runs else None
        return BackendOutcome(exit_code=exit_code, summary=summary)

    def launch(self, arguments: AppleRunArguments, timeout: timedelta) -> BackendOutcome:
        """Run the app on every target and judge only its exit code."""
        mlaunch = self.resolve_mlaunch(arguments)
        exit_code = ExitCode.SUCCESS
        for target in arguments.targets.value:
            command = mlaunch_command(
                mlaunch,
                target,
                arguments.app.value,
                dict(arguments.environment.value),
                arguments.xcode.value,
                arguments.passthrough,
            )
            LOGGER.info("Running %s on %s", arguments.app.value.name, target)
            try:
                result = self.runner.run(command, timeout=timeout)
            except ProcessTimedOut as exc:
                raise BackendTimeout(str(exc)) from exc
            except ProcessLaunchError as exc:
                raise BackendFailure(ExitCode.APP_LAUNCH_FAILURE, str(exc)) from exc
            target_code = _judge_exit(result.exit_code, arguments.expected_exit_code.value)
            if exit_code is ExitCode.SUCCESS:
                exit_code = target_code
        return BackendOutcome(exit_code=exit_code)

    def install(self, arguments: AppleInstallArguments) -> None:
        app = arguments.app.value
        timeout = arguments.launch_timeout.value
        for target in arguments.targets.value:
            LOGGER.info("Installing %s on %s", app.name, target)
            if target.platform.is_simulator:
                command = [str(self.resolve_xcrun()), "simctl", "install", BOOTED_SIMULATOR, str(app)]
            else:
                command = _with_sdkroot(self.resolve_mlaunch(arguments), arguments.xcode.value)
                command += ["--installdev", str(app)]
            try:
                result = self.runner.run(command, timeout=timeout, env=_developer_dir(arguments.xcode.value))
            except ProcessTimedOut as exc:
                raise BackendFailure(ExitCode.PACKAGE_INSTALLATION_TIMEOUT, str(exc)) from exc
            except ProcessLaunchError as exc:
                raise BackendFailure(ExitCode.PACKAGE_INSTALLATION_FAILURE, str(exc)) from exc
            if result.exit_code != 0:
                raise BackendFailure(
                    ExitCode.PACKAGE_INSTALLATION_FAILURE,
                    f"Failed to install {app.name} on {target}: "
                    f"{result.stderr.strip() or result.stdout.strip()}",
                )

    def uninstall(self, arguments: AppleUninstallArguments) -> None:
        bundle_id = arguments.bundle_id.value
        for target in arguments.targets.value:
            LOGGER.info("Uninstalling %s from %s", bundle_id, target)
            if target.platform.is_simulator:
                command = [str(self.resolve_xcrun()), "simctl", "uninstall", BOOTED_SIMULATOR, bundle_id]
            else:
                command = _with_sdkroot(self.resolve_mlaunch(arguments), arguments.xcode.value)
                command += ["--uninstalldevbundleid", bundle_id]
            try:
                result = self.runner.run(command, env=_developer_dir(arguments.xcode.value))
            except ProcessLaunchError as exc:
                raise BackendFailure(ExitCode.GENERAL_FAILURE, str(exc)) from exc
            if result.exit_code != 0:
                raise BackendFailure(
                    ExitCode.GENERAL_FAILURE,
                    f"Failed to uninstall {bundle_id} from {target}: "
                    f"{result.stderr.strip() or result.stdout.strip()}",
                )

    def _run_target(
        self,
        mlaunch: Path,
        target: TestTarget,
        arguments: AppleTestArguments,
        timeout: timedelta,
    ) -> tuple[ExitCode, TestRunSummary | None]:
        results_file = arguments.run.output_directory.value / f"{target}-results.xml"
        end_tag = str(uuid.uuid4()) if arguments.signal_test_end.value else None
        command = mlaunch_command(
            mlaunch,
            target,
            arguments.app.value,
            app_environment(arguments, results_file, end_tag),
            arguments.xcode.value,
            arguments.passthrough,
        )
        LOGGER.info("Running %s on %s", arguments.app.value.name, target)
        try:
            result = self.runner.run(command, timeout=timeout)
        except ProcessTimedOut as exc:
            raise BackendTimeout(str(exc), summary=self._read_results(results_file, target)) from exc
        except ProcessLaunchError as exc:
            raise BackendFailure(ExitCode.APP_LAUNCH_FAILURE, str(exc)) from exc

        if end_tag is not None and end_tag in result.stdout:
            LOGGER.debug("App signalled the end of the test run")
        return (
            _judge_exit(result.exit_code, arguments.expected_exit_code.value),
            self._read_results(results_file, target),
        )

    @staticmethod
    def _read_results(results_file: Path, target: TestTarget) -> TestRunSummary | None:
        if not results_file.exists():
            LOGGER.warning("No results were written to %s", results_file)
            return None
        try:
            return parse_results_file(results_file, name=str(target))
        except ResultParsingError as exc:
            LOGGER.error("%s", exc)
            return None


class AppleAppBackend:
    """Backend for ``apple run``: launches the app without reading test results."""

    def __init__(self, settings: HarnessSettings, runner: ProcessRunner | None = None) -> None:
        self.mlaunch = MlaunchBackend(settings, runner)

    def run(self, arguments: AppleRunArguments, timeout: timedelta) -> BackendOutcome:
        return self.mlaunch.launch(arguments, timeout)


def _judge_exit(exit_code: int, expected: int) -> ExitCode:
    if exit_code != expected:
        LOGGER.error("App run has failed. mlaunch exited with %d, expected %d", exit_code, expected)
        return ExitCode.APP_LAUNCH_FAILURE
    return ExitCode.SUCCESS


def _with_sdkroot(mlaunch: Path, xcode: Path | None) -> list[str]:
    command = [str(mlaunch)]
    if xcode is not None:
        command += ["--sdkroot", str(xcode)]
    return command


def _developer_dir(xcode: Path | None) -> dict[str, str] | None:
    if xcode is None:
        return None
    return {DEVELOPER_DIR_VARIABLE: str(xcode / "Contents" / "Developer")}
