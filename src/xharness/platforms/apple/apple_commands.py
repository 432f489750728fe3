"""Apple sub-commands."""

from __future__ import annotations

from xharness.commands import HarnessCommand
from xharness.configuration import HarnessSettings
from xharness.exit_codes import ExitCode
from xharness.platforms.test_command import BackendTestCommand
from xharness.results_writing import XmlResultJargon
from xharness.run_execution import ProcessRunner

from .apple_arguments import (
    AppleInstallArguments,
    AppleRunArguments,
    AppleTestArguments,
    AppleUninstallArguments,
)
from .apple_backend import AppleAppBackend, MlaunchBackend


class AppleTestCommand(BackendTestCommand[AppleTestArguments]):
    name = "test"
    description = "Installs and runs an app bundle on a simulator or device, then collects its test results."

    def build_arguments(self) -> AppleTestArguments:
        return AppleTestArguments()

    def create_backend(self) -> MlaunchBackend:
        return MlaunchBackend(self.settings)

    def results_jargon(self, arguments: AppleTestArguments) -> XmlResultJargon:
        return arguments.xml_jargon.value


class AppleRunCommand(BackendTestCommand[AppleRunArguments]):
    name = "run"
    description = "Installs and runs an app bundle on a simulator or device and checks its exit code."

    def build_arguments(self) -> AppleRunArguments:
        return AppleRunArguments()

    def create_backend(self) -> AppleAppBackend:
        return AppleAppBackend(self.settings)


class AppleInstallCommand(HarnessCommand[AppleInstallArguments]):
    name = "install"
    description = "Installs an app bundle on simulators or devices."

    def __init__(
        self,
        settings: HarnessSettings,
        parent: str = "xharness",
        runner: ProcessRunner | None = None,
    ) -> None:
        super().__init__(settings, parent)
        self.runner = runner

    def build_arguments(self) -> AppleInstallArguments:
        return AppleInstallArguments()

    def run(self, arguments: AppleInstallArguments, passthrough: tuple[str, ...]) -> ExitCode:
        MlaunchBackend(self.settings, self.runner).install(arguments)
        return ExitCode.SUCCESS


class AppleUninstallCommand(HarnessCommand[AppleUninstallArguments]):
    name = "uninstall"
    description = "Uninstalls an app from simulators or devices by its bundle identifier."

    def __init__(
        self,
        settings: HarnessSettings,
        parent: str = "xharness",
        runner: ProcessRunner | None = None,
    ) -> None:
        super().__init__(settings, parent)
        self.runner = runner

    def build_arguments(self) -> AppleUninstallArguments:
        return AppleUninstallArguments()

    def run(self, arguments: AppleUninstallArguments, passthrough: tuple[str, ...]) -> ExitCode:
        MlaunchBackend(self.settings, self.runner).uninstall(arguments)
        return ExitCode.SUCCESS
