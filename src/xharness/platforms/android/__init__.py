"""Android platform exports."""

from .android_arguments import (
    MAX_API_LEVEL,
    MIN_API_LEVEL,
    AndroidDeviceArguments,
    AndroidInstallArguments,
    AndroidRunArguments,
    AndroidStateArguments,
    AndroidTestArguments,
    AndroidUninstallArguments,
    DeviceArchitecture,
    DeviceSelectionArguments,
    InstrumentationArguments,
)
from .android_backend import (
    AdbClient,
    AndroidBackend,
    AndroidDevice,
    InstalledPackageBackend,
    InstrumentationReport,
    parse_device_list,
    parse_instrumentation_output,
)
from .android_commands import (
    AndroidDeviceCommand,
    AndroidInstallCommand,
    AndroidRunCommand,
    AndroidStateCommand,
    AndroidTestCommand,
    AndroidUninstallCommand,
)

__all__ = [
    "MAX_API_LEVEL",
    "MIN_API_LEVEL",
    "AdbClient",
    "AndroidBackend",
    "AndroidDevice",
    "AndroidDeviceArguments",
    "AndroidDeviceCommand",
    "AndroidInstallArguments",
    "AndroidInstallCommand",
    "AndroidRunArguments",
    "AndroidRunCommand",
    "AndroidStateArguments",
    "AndroidStateCommand",
    "AndroidTestArguments",
    "AndroidTestCommand",
    "AndroidUninstallArguments",
    "AndroidUninstallCommand",
    "DeviceArchitecture",
    "DeviceSelectionArguments",
    "InstalledPackageBackend",
    "InstrumentationArguments",
    "InstrumentationReport",
    "parse_device_list",
    "parse_instrumentation_output",
]
