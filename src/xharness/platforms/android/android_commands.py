"""Android sub-commands."""

from __future__ import annotations

import logging
from typing import TypeVar

import click

from xharness.arguments import ArgumentGroup
from xharness.commands import HarnessCommand
from xharness.configuration import HarnessSettings
from xharness.exit_codes import ExitCode
from xharness.platforms.test_command import BackendTestCommand
from xharness.run_execution import BackendFailure, ProcessLaunchError, ProcessRunner, SubprocessRunner

from .android_arguments import (
    AndroidDeviceArguments,
    AndroidInstallArguments,
    AndroidRunArguments,
    AndroidStateArguments,
    AndroidTestArguments,
    AndroidUninstallArguments,
)
from .android_backend import AndroidBackend, AndroidDevice, InstalledPackageBackend

LOGGER = logging.getLogger(__name__)

G = TypeVar("G", bound=ArgumentGroup)


class AndroidTestCommand(BackendTestCommand[AndroidTestArguments]):
    name = "test"
    description = "Executes tests on an Android device, waits up to a given timeout, then copies files off the device."

    def build_arguments(self) -> AndroidTestArguments:
        return AndroidTestArguments()

    def create_backend(self) -> AndroidBackend:
        return AndroidBackend(self.settings)


class AndroidRunCommand(BackendTestCommand[AndroidRunArguments]):
    name = "run"
    description = "Run tests using an already installed .apk on an Android device."

    def build_arguments(self) -> AndroidRunArguments:
        return AndroidRunArguments()

    def create_backend(self) -> InstalledPackageBackend:
        return InstalledPackageBackend(self.settings)


class AdbCommand(HarnessCommand[G]):
    """Commands talking to adb directly, without a test run around them."""

    def __init__(
        self,
        settings: HarnessSettings,
        parent: str = "xharness",
        runner: ProcessRunner | None = None,
    ) -> None:
        super().__init__(settings, parent)
        self.runner = runner or SubprocessRunner()

    def backend(self) -> AndroidBackend:
        return AndroidBackend(self.settings, self.runner)


class AndroidInstallCommand(AdbCommand[AndroidInstallArguments]):
    name = "install"
    description = "Install an .apk on an Android device without running it."

    def build_arguments(self) -> AndroidInstallArguments:
        return AndroidInstallArguments()

    def run(self, arguments: AndroidInstallArguments, passthrough: tuple[str, ...]) -> ExitCode:
        backend = self.backend()
        adb = backend.client()
        try:
            device = backend.select_device(adb, arguments.devices)
            LOGGER.info("Using device '%s'", device.serial)
            backend.install(
                adb,
                device,
                arguments.app.value,
                arguments.launch_timeout.value,
                reset=arguments.reset_emulator.value,
            )
        except ProcessLaunchError as exc:
            raise BackendFailure(ExitCode.GENERAL_FAILURE, str(exc)) from exc
        LOGGER.info("Installed %s on '%s'", arguments.package_name.value, device.serial)
        return ExitCode.SUCCESS


class AndroidUninstallCommand(AdbCommand[AndroidUninstallArguments]):
    name = "uninstall"
    description = "Uninstall a package from an Android device."

    def build_arguments(self) -> AndroidUninstallArguments:
        return AndroidUninstallArguments()

    def run(self, arguments: AndroidUninstallArguments, passthrough: tuple[str, ...]) -> ExitCode:
        backend = self.backend()
        adb = backend.client()
        package = arguments.package_name.value
        try:
            serials = adb.list_devices()
            if arguments.device_id.value:
                if arguments.device_id.value not in serials:
                    raise BackendFailure(
                        ExitCode.DEVICE_NOT_FOUND,
                        f"Device '{arguments.device_id.value}' is not connected",
                    )
                serials = (arguments.device_id.value,)
            else:
                serials = tuple(serial for serial in serials if adb.has_package(serial, package))
                if len(serials) != 1:
                    raise BackendFailure(
                        ExitCode.ADB_DEVICE_ENUMERATION_FAILURE,
                        f"Expected exactly one device with '{package}' installed, found {len(serials)}. "
                        "Use --device-id to pick one",
                    )
        except ProcessLaunchError as exc:
            raise BackendFailure(ExitCode.GENERAL_FAILURE, str(exc)) from exc

        device = AndroidDevice(serial=serials[0])
        if not backend.uninstall(adb, device, package):
            return ExitCode.GENERAL_FAILURE
        LOGGER.info("Uninstalled %s from '%s'", package, device.serial)
        return ExitCode.SUCCESS


class AndroidDeviceCommand(AdbCommand[AndroidDeviceArguments]):
    name = "device"
    description = "Print the serial of a connected device matching the given requirements."

    def build_arguments(self) -> AndroidDeviceArguments:
        return AndroidDeviceArguments()

    def run(self, arguments: AndroidDeviceArguments, passthrough: tuple[str, ...]) -> ExitCode:
        backend = self.backend()
        adb = backend.client()
        try:
            device = backend.select_device(adb, arguments.devices)
        except ProcessLaunchError as exc:
            raise BackendFailure(ExitCode.GENERAL_FAILURE, str(exc)) from exc
        click.echo(device.serial)
        return ExitCode.SUCCESS


class AndroidStateCommand(AdbCommand[AndroidStateArguments]):
    name = "state"
    description = "Print information about the current machine, such as host machine info and connected devices."

    def build_arguments(self) -> AndroidStateArguments:
        return AndroidStateArguments()

    def run(self, arguments: AndroidStateArguments, passthrough: tuple[str, ...]) -> ExitCode:
        adb = self.backend().client()
        try:
            version = adb.run("version")
            serials = adb.list_devices()
        except ProcessLaunchError as exc:
            raise BackendFailure(ExitCode.GENERAL_FAILURE, str(exc)) from exc

        click.echo("ADB version:")
        click.echo(version.stdout.rstrip())
        click.echo("Connected devices:")
        if not serials:
            click.echo("  (none)")
        for serial in serials:
            device = adb.describe(serial)
            click.echo(
                f"  {device.serial}\tarchitecture: {device.architecture or 'unknown'}"
                f"\tAPI level: {device.api_level if device.api_level is not None else 'unknown'}"
            )
        return ExitCode.SUCCESS
