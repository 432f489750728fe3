"""Apple platform exports."""

from .apple_arguments import (
    DEFAULT_MLAUNCH_PATH,
    AppleInstallArguments,
    AppleRunArguments,
    AppleTarget,
    AppleTestArguments,
    AppleUninstallArguments,
    CommunicationChannel,
    MlaunchArgument,
    TestTarget,
    TestTargetArgument,
)
from .apple_backend import AppleAppBackend, MlaunchBackend, app_environment, mlaunch_command
from .apple_commands import AppleInstallCommand, AppleRunCommand, AppleTestCommand, AppleUninstallCommand

__all__ = [
    "DEFAULT_MLAUNCH_PATH",
    "AppleAppBackend",
    "AppleInstallArguments",
    "AppleInstallCommand",
    "AppleRunArguments",
    "AppleRunCommand",
    "AppleTarget",
    "AppleTestArguments",
    "AppleTestCommand",
    "AppleUninstallArguments",
    "AppleUninstallCommand",
    "CommunicationChannel",
    "MlaunchArgument",
    "MlaunchBackend",
    "TestTarget",
    "TestTargetArgument",
    "app_environment",
    "mlaunch_command",
]
