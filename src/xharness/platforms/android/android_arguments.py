"""Android command arguments."""

from __future__ import annotations

from datetime import timedelta
from enum import Enum

from xharness.arguments import (
    ArgumentGroup,
    ArgumentRelation,
    EnumArgument,
    IntArgument,
    IntRangeArgument,
    KeyValueArgument,
    MutuallyExclusive,
    RequiredPathArgument,
    RequiredStringArgument,
    StringArgument,
    SwitchArgument,
    TimeSpanArgument,
)
from xharness.platforms.platform_arguments import PlatformTestArguments

MIN_API_LEVEL = 16
MAX_API_LEVEL = 35


class DeviceArchitecture(str, Enum):
    """ABIs a device or emulator can report."""

    X86 = "x86"
    X86_64 = "x86_64"
    ARM64_V8A = "arm64-v8a"
    ARMEABI_V7A = "armeabi-v7a"


def api_levels_argument() -> IntRangeArgument:
    return IntRangeArgument(
        "api-levels",
        "Target API levels of the devices the app may run on. Repeatable",
        label="API level",
        minimum=MIN_API_LEVEL,
        maximum=MAX_API_LEVEL,
    )


def api_version_argument() -> IntRangeArgument:
    return IntRangeArgument(
        "api-version|api",
        "Target API version of the device the app should run on. Repeatable",
        label="API version",
        minimum=MIN_API_LEVEL,
        maximum=MAX_API_LEVEL,
    )


def device_arch_argument() -> EnumArgument[DeviceArchitecture]:
    return EnumArgument(
        "device-arch",
        "Run only on a device with one of the given architectures. "
        "Otherwise any connected device is used. Repeatable",
        DeviceArchitecture,
        repeatable=True,
    )


class DeviceSelectionArguments(ArgumentGroup):
    """Which connected device or emulator to use."""

    def __init__(self) -> None:
        self.device_id = StringArgument("device-id", "Serial of the device to use")
        self.device_arch = device_arch_argument()
        self.api_version = api_version_argument()
        self.api_levels = api_levels_argument()

    def own_relations(self) -> tuple[ArgumentRelation, ...]:
        return (MutuallyExclusive(self.api_version, self.api_levels),)


def package_name_argument() -> RequiredStringArgument:
    return RequiredStringArgument(
        "package-name|p",
        "Package name contained within the supplied APK",
        missing_message="You must provide the name of the application package",
    )


def apk_argument() -> RequiredPathArgument:
    return RequiredPathArgument(
        "app|a",
        "Path to the .apk file to install",
        must_exist=True,
        missing_message="You must provide a path to the .apk file",
    )


def reset_emulator_argument() -> SwitchArgument:
    return SwitchArgument(
        "reset-emulator",
        "Reboot the emulator before installing the application",
    )


def launch_timeout_argument() -> TimeSpanArgument:
    return TimeSpanArgument(
        "launch-timeout",
        "Time span to wait for the device and the app installation",
        timedelta(minutes=5),
    )


class InstrumentationArguments(ArgumentGroup):
    """How the instrumentation of an installed package is started and judged."""

    def __init__(self) -> None:
        self.instrumentation = StringArgument(
            "instrumentation|i",
            "Instrumentation class to run instead of the default one of the APK",
        )
        self.expected_exit_code = IntArgument(
            "expected-exit-code",
            "Exit code the instrumentation is expected to return",
            0,
        )
        self.instrumentation_arguments = KeyValueArgument(
            "arg",
            "Argument passed to the instrumentation, in the form key=value. Repeatable",
            label="instrumentation argument",
        )


class AndroidTestArguments(PlatformTestArguments):
    """Install an APK, run its instrumentation and collect results."""

    def __init__(self) -> None:
        super().__init__()
        self.app = apk_argument()
        self.package_name = package_name_argument()
        self.devices = DeviceSelectionArguments()
        self.instrumentation = InstrumentationArguments()
        self.reset_emulator = reset_emulator_argument()
        self.launch_timeout = launch_timeout_argument()


class AndroidRunArguments(PlatformTestArguments):
    """Run the instrumentation of an already installed package."""

    def __init__(self) -> None:
        super().__init__()
        self.package_name = package_name_argument()
        self.devices = DeviceSelectionArguments()
        self.instrumentation = InstrumentationArguments()
        self.launch_timeout = launch_timeout_argument()


class AndroidInstallArguments(ArgumentGroup):
    """Install an APK on a matching device and leave it there."""

    def __init__(self) -> None:
        self.app = apk_argument()
        self.package_name = package_name_argument()
        self.devices = DeviceSelectionArguments()
        self.reset_emulator = reset_emulator_argument()
        self.launch_timeout = launch_timeout_argument()


class AndroidUninstallArguments(ArgumentGroup):
    """Remove a package from a device."""

    def __init__(self) -> None:
        self.package_name = package_name_argument()
        self.device_id = StringArgument("device-id", "Serial of the device to uninstall from")


class AndroidDeviceArguments(ArgumentGroup):
    """Find a connected device matching the given requirements."""

    def __init__(self) -> None:
        self.devices = DeviceSelectionArguments()


class AndroidStateArguments(ArgumentGroup):
    """Report adb and device state; takes only the common arguments."""
