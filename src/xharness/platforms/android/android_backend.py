"""adb-driven Android backend."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path, PurePosixPath

from xharness.configuration import HarnessSettings
from xharness.exit_codes import ExitCode
from xharness.platforms.tool_resolution import resolve_executable
from xharness.results_writing import ResultParsingError, TestRunSummary, parse_results_file
from xharness.run_execution import (
    BackendFailure,
    BackendOutcome,
    BackendTimeout,
    ProcessLaunchError,
    ProcessResult,
    ProcessRunner,
    ProcessTimedOut,
    SubprocessRunner,
)

from .android_arguments import (
    AndroidRunArguments,
    AndroidTestArguments,
    DeviceSelectionArguments,
    InstrumentationArguments,
)

LOGGER = logging.getLogger(__name__)

INSTRUMENTATION_RESULT_PREFIX = "INSTRUMENTATION_RESULT:"
INSTRUMENTATION_CODE_PREFIX = "INSTRUMENTATION_CODE:"
RETURN_CODE_KEY = "return-code"
SHORT_MESSAGE_KEY = "shortMsg"
EXECUTION_SUMMARY_KEY = "test-execution-summary"
RESULT_FILE_KEYS = ("nunit2-results-path", "test-results-path")
PROCESS_CRASHED_MESSAGE = "Process crashed"
DEVICE_ONLINE_STATE = "device"
PACKAGE_PREFIX = "package:"


@dataclass(frozen=True)
class AndroidDevice:
    """A device or emulator reported by ``adb devices``."""

    serial: str
    architecture: str | None = None
    api_level: int | None = None


@dataclass(frozen=True)
class InstrumentationReport:
    """Values the instrumentation reported through ``INSTRUMENTATION_RESULT`` lines."""

    values: dict[str, str]
    instrumentation_code: str | None = None

    @property
    def return_code(self) -> int | None:
        raw = self.values.get(RETURN_CODE_KEY, self.instrumentation_code)
        if raw is None:
            return None
        try:
            return int(raw)
        except ValueError:
            LOGGER.error("Instrumentation reported an unparseable %s '%s'", RETURN_CODE_KEY, raw)
            return None

    @property
    def crashed(self) -> bool:
        return PROCESS_CRASHED_MESSAGE in self.values.get(SHORT_MESSAGE_KEY, "")

    @property
    def result_files(self) -> tuple[str, ...]:
        return tuple(self.values[key] for key in RESULT_FILE_KEYS if key in self.values)


def parse_instrumentation_output(stdout: str) -> InstrumentationReport:
    values: dict[str, str] = {}
    code = None
    for line in stdout.splitlines():
        line = line.strip()
        if line.startswith(INSTRUMENTATION_CODE_PREFIX):
            code = line[len(INSTRUMENTATION_CODE_PREFIX) :].strip()
            continue
        if not line.startswith(INSTRUMENTATION_RESULT_PREFIX):
            continue
        key, separator, value = line[len(INSTRUMENTATION_RESULT_PREFIX) :].strip().partition("=")
        if separator:
            values[key.strip()] = value.strip()
    return InstrumentationReport(values=values, instrumentation_code=code)


def parse_device_list(stdout: str) -> tuple[str, ...]:
    serials = []
    for line in stdout.splitlines():
        parts = line.split()
        if len(parts) >= 2 and parts[1] == DEVICE_ONLINE_STATE:
            serials.append(parts[0])
    return tuple(serials)


class AdbClient:
    """Thin wrapper issuing adb commands through a process runner."""

    def __init__(self, adb: Path, runner: ProcessRunner) -> None:
        self.adb = adb
        self.runner = runner

    def run(self, *args: str, serial: str | None = None, timeout: timedelta | None = None) -> ProcessResult:
        command = [str(self.adb)]
        if serial:
            command += ["-s", serial]
        command += list(args)
        return self.runner.run(command, timeout=timeout)

    def list_devices(self) -> tuple[str, ...]:
        result = self.run("devices")
        if result.exit_code != 0:
            raise BackendFailure(
                ExitCode.ADB_DEVICE_ENUMERATION_FAILURE,
                f"Failed to list devices: {result.stderr.strip() or result.stdout.strip()}",
            )
        return parse_device_list(result.stdout)

    def describe(self, serial: str) -> AndroidDevice:
        abi = self.run("shell", "getprop", "ro.product.cpu.abi", serial=serial).stdout.strip()
        sdk = self.run("shell", "getprop", "ro.build.version.sdk", serial=serial).stdout.strip()
        return AndroidDevice(
            serial=serial,
            architecture=abi or None,
            api_level=int(sdk) if sdk.isdigit() else None,
        )

    def has_package(self, serial: str, package: str) -> bool:
        result = self.run("shell", "pm", "list", "packages", package, serial=serial)
        return f"{PACKAGE_PREFIX}{package}" in (line.strip() for line in result.stdout.splitlines())


class AndroidBackend:
    """Selects a device, installs the APK and runs its instrumentation."""

    def __init__(self, settings: HarnessSettings, runner: ProcessRunner | None = None) -> None:
        self.settings = settings
        self.runner = runner or SubprocessRunner()

    def client(self) -> AdbClient:
        adb = resolve_executable("adb", self.settings.search_path)
        if adb is None:
            raise BackendFailure(ExitCode.GENERAL_FAILURE, "Failed to find adb on PATH")
        return AdbClient(adb, self.runner)

    def run(self, arguments: AndroidTestArguments, timeout: timedelta) -> BackendOutcome:
        adb = self.client()
        device = self.select_device(adb, arguments.devices)
        LOGGER.info("Using device '%s'", device.serial)
        package = arguments.package_name.value

        try:
            self.install(
                adb,
                device,
                arguments.app.value,
                arguments.launch_timeout.value,
                reset=arguments.reset_emulator.value,
            )
            return self.instrument(
                adb, device, package, arguments.instrumentation, arguments.run.output_directory.value, timeout
            )
        except ProcessLaunchError as exc:
            raise BackendFailure(ExitCode.GENERAL_FAILURE, str(exc)) from exc
        finally:
            self.uninstall(adb, device, package)

    def run_installed(self, arguments: AndroidRunArguments, timeout: timedelta) -> BackendOutcome:
        """Run the instrumentation of a package that is already on the device."""
        adb = self.client()
        package = arguments.package_name.value
        device = self.select_device(adb, arguments.devices, required_package=package)
        LOGGER.info("Using device '%s'", device.serial)
        try:
            adb.run("wait-for-device", serial=device.serial, timeout=arguments.launch_timeout.value)
            return self.instrument(
                adb, device, package, arguments.instrumentation, arguments.run.output_directory.value, timeout
            )
        except ProcessTimedOut as exc:
            raise BackendFailure(ExitCode.DEVICE_NOT_FOUND, f"Device did not come online: {exc}") from exc
        except ProcessLaunchError as exc:
            raise BackendFailure(ExitCode.GENERAL_FAILURE, str(exc)) from exc

    def select_device(
        self,
        adb: AdbClient,
        selection: DeviceSelectionArguments,
        required_package: str | None = None,
    ) -> AndroidDevice:
        serials = adb.list_devices()
        if selection.device_id.value:
            if selection.device_id.value not in serials:
                raise BackendFailure(
                    ExitCode.DEVICE_NOT_FOUND,
                    f"Device '{selection.device_id.value}' is not connected",
                )
            serials = (selection.device_id.value,)
        elif required_package:
            serials = tuple(serial for serial in serials if adb.has_package(serial, required_package))
            if not serials:
                raise BackendFailure(
                    ExitCode.DEVICE_NOT_FOUND,
                    f"No connected device has the package '{required_package}' installed",
                )

        architectures = {arch.value for arch in selection.device_arch.value}
        api_levels = set(selection.api_version.value or selection.api_levels.value)
        for serial in serials:
            if not architectures and not api_levels:
                return AndroidDevice(serial=serial)
            device = adb.describe(serial)
            if architectures and device.architecture not in architectures:
                continue
            if api_levels and device.api_level not in api_levels:
                continue
            return device
        raise BackendFailure(ExitCode.DEVICE_NOT_FOUND, _no_device_message(architectures, api_levels))

    def install(
        self,
        adb: AdbClient,
        device: AndroidDevice,
        apk: Path,
        timeout: timedelta,
        reset: bool = False,
    ) -> None:
        if reset:
            self._reset(adb, device, timeout)
        LOGGER.info("Installing %s", apk)
        try:
            result = adb.run("install", "-r", "-g", str(apk), serial=device.serial, timeout=timeout)
        except ProcessTimedOut as exc:
            raise BackendFailure(ExitCode.PACKAGE_INSTALLATION_TIMEOUT, str(exc)) from exc
        if result.exit_code != 0 or "Failure" in result.stdout:
            raise BackendFailure(
                ExitCode.PACKAGE_INSTALLATION_FAILURE,
                f"Failed to install {apk}: {result.stdout.strip() or result.stderr.strip()}",
            )

    def instrument(
        self,
        adb: AdbClient,
        device: AndroidDevice,
        package: str,
        instrumentation: InstrumentationArguments,
        output_directory: Path,
        timeout: timedelta,
    ) -> BackendOutcome:
        command = ["shell", "am", "instrument"]
        for key, value in instrumentation.instrumentation_arguments.value:
            command += ["-e", key, value]
        component = package
        if instrumentation.instrumentation.value:
            component = f"{component}/{instrumentation.instrumentation.value}"
            LOGGER.info("Starting instrumentation class '%s'", instrumentation.instrumentation.value)
        else:
            LOGGER.info("Starting default instrumentation class on %s", component)
        command += ["-w", component]
        try:
            result = adb.run(*command, serial=device.serial, timeout=timeout)
        except ProcessTimedOut as exc:
            partial = self._collect_partial_results(adb, device, exc.stdout, output_directory)
            raise BackendTimeout(str(exc), partial) from exc

        report = parse_instrumentation_output(result.stdout)
        summary = self._collect_results(adb, device, report, output_directory)
        return BackendOutcome(
            exit_code=self._exit_code(report, instrumentation.expected_exit_code.value, summary),
            summary=summary,
        )

    def uninstall(self, adb: AdbClient, device: AndroidDevice, package: str) -> bool:
        try:
            result = adb.run("uninstall", package, serial=device.serial)
        except (ProcessLaunchError, ProcessTimedOut) as exc:
            LOGGER.warning("Failed to uninstall %s: %s", package, exc)
            return False
        if result.exit_code != 0 or "Failure" in result.stdout:
            LOGGER.warning(
                "Failed to uninstall %s: %s", package, result.stdout.strip() or result.stderr.strip()
            )
            return False
        return True

    def _reset(self, adb: AdbClient, device: AndroidDevice, timeout: timedelta) -> None:
        if not device.serial.startswith("emulator-"):
            LOGGER.warning("Device '%s' is not an emulator, skipping reset", device.serial)
            return
        LOGGER.info("Rebooting emulator '%s'", device.serial)
        try:
            adb.run("reboot", serial=device.serial, timeout=timeout)
            adb.run("wait-for-device", serial=device.serial, timeout=timeout)
        except ProcessTimedOut as exc:
            raise BackendFailure(ExitCode.SIMULATOR_FAILURE, f"Emulator did not come back: {exc}") from exc

    def _collect_results(
        self,
        adb: AdbClient,
        device: AndroidDevice,
        report: InstrumentationReport,
        output_directory: Path,
    ) -> TestRunSummary | None:
        if EXECUTION_SUMMARY_KEY in report.values:
            LOGGER.info("Test execution summary:\n%s", report.values[EXECUTION_SUMMARY_KEY])
        summary = None
        for device_path in report.result_files:
            output_directory.mkdir(parents=True, exist_ok=True)
            local_path = output_directory / PurePosixPath(device_path).name
            result = adb.run("pull", device_path, str(local_path), serial=device.serial)
            if result.exit_code != 0:
                raise BackendFailure(
                    ExitCode.DEVICE_FILE_COPY_FAILURE,
                    f"Failed to pull {device_path} from the device: {result.stderr.strip()}",
                )
            try:
                summary = parse_results_file(local_path, name=device.serial)
            except ResultParsingError as exc:
                LOGGER.warning("Pulled %s but could not read it: %s", device_path, exc)
        return summary

    def _collect_partial_results(
        self,
        adb: AdbClient,
        device: AndroidDevice,
        stdout: str,
        output_directory: Path,
    ) -> TestRunSummary | None:
        report = parse_instrumentation_output(stdout)
        if not report.result_files:
            return None
        LOGGER.info("Instrumentation timed out, pulling the results it reported so far")
        try:
            return self._collect_results(adb, device, report, output_directory)
        except (BackendFailure, ProcessLaunchError, ProcessTimedOut) as exc:
            LOGGER.warning("Failed to pull partial results: %s", exc)
            return None

    @staticmethod
    def _exit_code(
        report: InstrumentationReport, expected: int, summary: TestRunSummary | None
    ) -> ExitCode:
        if report.crashed:
            return ExitCode.APP_CRASH
        return_code = report.return_code
        if return_code is None:
            LOGGER.error("No value for '%s' was reported by the instrumentation", RETURN_CODE_KEY)
            return ExitCode.RETURN_CODE_NOT_SET
        if return_code != expected:
            LOGGER.error(
                "Instrumentation finished with exit code %d, expected %d", return_code, expected
            )
            return ExitCode.TESTS_FAILED
        LOGGER.info("Instrumentation finished normally with exit code %d", return_code)
        if summary is None:
            LOGGER.debug("No result file was reported by the instrumentation")
        return ExitCode.SUCCESS


class InstalledPackageBackend:
    """Backend for ``android run``: instruments a package installed earlier."""

    def __init__(self, settings: HarnessSettings, runner: ProcessRunner | None = None) -> None:
        self.android = AndroidBackend(settings, runner)

    def run(self, arguments: AndroidRunArguments, timeout: timedelta) -> BackendOutcome:
        return self.android.run_installed(arguments, timeout)


def _no_device_message(architectures: set[str], api_levels: set[int]) -> str:
    requirements = []
    if architectures:
        requirements.append("architecture " + " or ".join(sorted(architectures)))
    if api_levels:
        requirements.append("API level " + " or ".join(str(level) for level in sorted(api_levels)))
    if not requirements:
        return "No connected device found"
    return "No connected device matches " + " and ".join(requirements)
