"""Apple command arguments."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from enum import Enum
from pathlib import Path

from xharness.arguments import (
    Argument,
    ArgumentGroup,
    ArgumentProblem,
    EnumArgument,
    IntArgument,
    KeyValueArgument,
    PathArgument,
    RepeatableArgument,
    RequiredPathArgument,
    RequiredStringArgument,
    SwitchArgument,
    TimeSpanArgument,
    format_allowed_values,
)
from xharness.platforms.platform_arguments import PlatformTestArguments
from xharness.results_writing import XmlResultJargon

DEFAULT_MLAUNCH_PATH = Path("/Library/Frameworks/Xamarin.iOS.framework/Versions/Current/bin/mlaunch")
OS_VERSION_EXAMPLE = "ios-simulator-64_13.4"


class AppleTarget(str, Enum):
    """Kinds of Apple simulators and devices an app bundle can be run on."""

    SIMULATOR_IOS = "ios-simulator"
    SIMULATOR_IOS32 = "ios-simulator-32"
    SIMULATOR_IOS64 = "ios-simulator-64"
    SIMULATOR_TVOS = "tvos-simulator"
    SIMULATOR_WATCHOS = "watchos-simulator"
    DEVICE_IOS = "ios-device"
    DEVICE_TVOS = "tvos-device"
    DEVICE_WATCHOS = "watchos-device"

    @property
    def is_simulator(self) -> bool:
        return "-simulator" in self.value


@dataclass(frozen=True)
class TestTarget:
    """A target kind with an optional OS version, written ``<target>[_<version>]``."""

    __test__ = False

    platform: AppleTarget
    os_version: str | None = None

    @classmethod
    def parse(cls, text: str) -> TestTarget:
        name, separator, version = text.strip().partition("_")
        if separator and not version:
            raise ValueError(f"Missing OS version in '{text}'")
        for target in AppleTarget:
            if target.value == name.lower():
                return cls(platform=target, os_version=version or None)
        raise ValueError(f"Unknown test target '{name}'")

    def __str__(self) -> str:
        if self.os_version:
            return f"{self.platform.value}_{self.os_version}"
        return self.platform.value


class CommunicationChannel(str, Enum):
    """How the harness talks to a test app running on a device."""

    USB_TUNNEL = "UsbTunnel"
    NETWORK = "Network"


class TestTargetArgument(Argument[TestTarget]):
    """Repeatable ``--target``; at least one is required."""

    __test__ = False
    metavar = "TARGET"

    def __init__(self) -> None:
        super().__init__(
            "target|targets|t",
            "Test target (device, simulator and OS version), e.g. "
            f"{OS_VERSION_EXAMPLE}. Repeatable",
            repeatable=True,
        )

    @property
    def has_default(self) -> bool:
        return True

    def allowed_values(self) -> tuple[str, ...]:
        return tuple(target.value for target in AppleTarget)

    def convert(self, raw_value: str | None) -> TestTarget:
        try:
            return TestTarget.parse(raw_value or "")
        except ValueError as exc:
            raise ValueError(
                f"Failed to parse test target '{raw_value}'. Available targets are:"
                + format_allowed_values(self.allowed_values())
                + "\n\nYou can also specify desired OS version, e.g. "
                + OS_VERSION_EXAMPLE
            ) from exc

    def check(self) -> ArgumentProblem | None:
        if not self.value:
            return ArgumentProblem.validation_error("No test target specified", self.name)
        return None


class MlaunchArgument(PathArgument):
    """Path to mlaunch; when omitted it is looked up next to Xcode tooling and on PATH."""

    def __init__(self) -> None:
        super().__init__("mlaunch", "Path to the mlaunch binary")

    def check(self) -> ArgumentProblem | None:
        if self.value is not None and not Path(self.value).exists():
            return ArgumentProblem.validation_error(
                f"Failed to find mlaunch at {self.value}", self.name
            )
        return None


def app_bundle_argument() -> RequiredPathArgument:
    return RequiredPathArgument(
        "app|a",
        "Path to an already-packaged app bundle",
        must_exist=True,
        missing_message="You must provide a path to the application",
    )


def xcode_argument() -> PathArgument:
    return PathArgument(
        "xcode",
        "Path where Xcode is installed",
        must_exist=True,
    )


def launch_timeout_argument() -> TimeSpanArgument:
    return TimeSpanArgument(
        "launch-timeout",
        "Time span to wait for the app to start",
        timedelta(minutes=5),
    )


class AppleRunArguments(PlatformTestArguments):
    """Launch an app bundle through mlaunch and judge its exit code."""

    def __init__(self) -> None:
        super().__init__()
        self.app = app_bundle_argument()
        self.targets = TestTargetArgument()
        self.expected_exit_code = IntArgument(
            "expected-exit-code",
            "Exit code the app is expected to return",
            0,
        )
        self.mlaunch = MlaunchArgument()
        self.xcode = xcode_argument()
        self.environment = KeyValueArgument(
            "set-env",
            "Environment variable to set for the application in format key=value. Repeatable",
        )
        self.launch_timeout = launch_timeout_argument()


class AppleTestArguments(AppleRunArguments):
    """Launch an app bundle through mlaunch and read the results it writes."""

    def __init__(self) -> None:
        super().__init__()
        self.communication_channel = EnumArgument(
            "communication-channel",
            "The communication channel to use to communicate with the test app on device",
            CommunicationChannel,
            CommunicationChannel.USB_TUNNEL,
        )
        self.xml_jargon = EnumArgument(
            "xml-jargon|xj",
            "The XML format of the produced results",
            XmlResultJargon,
            XmlResultJargon.XUNIT,
            invalid_values=(XmlResultJargon.MISSING,),
        )
        self.methods = RepeatableArgument(
            "method|m",
            "Method to be run in the test application. When used only the tests given by "
            "--method and --class are run. Repeatable",
        )
        self.classes = RepeatableArgument(
            "class|c",
            "Test class to be run in the test application. When used only the tests given by "
            "--method and --class are run. Repeatable",
        )
        self.signal_test_end = SwitchArgument(
            "signal-test-end",
            "Ask the app to print a tag when the run finishes so the launch can end early",
        )


class AppleInstallArguments(ArgumentGroup):
    """Install an app bundle on simulators or devices without launching it."""

    def __init__(self) -> None:
        self.app = app_bundle_argument()
        self.targets = TestTargetArgument()
        self.mlaunch = MlaunchArgument()
        self.xcode = xcode_argument()
        self.launch_timeout = launch_timeout_argument()


class AppleUninstallArguments(ArgumentGroup):
    """Remove an app from simulators or devices by its bundle identifier."""

    def __init__(self) -> None:
        self.bundle_id = RequiredStringArgument(
            "app|a",
            "Bundle identifier of the app to uninstall",
            missing_message="You must provide the bundle identifier of the application",
        )
        self.targets = TestTargetArgument()
        self.mlaunch = MlaunchArgument()
        self.xcode = xcode_argument()
