"""Process exit codes shared by every command."""

from __future__ import annotations

from enum import Enum, IntEnum


class ExitCodeCategory(str, Enum):
    """Coarse grouping of exit codes by numeric range."""

    CONTROL = "CONTROL"
    GENERAL_FAILURE = "GENERAL_FAILURE"
    RUN_FAILURE = "RUN_FAILURE"
    ENVIRONMENT_FAILURE = "ENVIRONMENT_FAILURE"


class ExitCode(IntEnum):
    """Exit status emitted by the harness process."""

    SUCCESS = 0
    TESTS_FAILED = 1
    HELP_SHOWN = 2
    INVALID_ARGUMENTS = 3
    PACKAGE_NOT_FOUND = 4

    TIMED_OUT = 70
    GENERAL_FAILURE = 71

    PACKAGE_INSTALLATION_FAILURE = 78
    FAILED_TO_GET_BUNDLE_INFO = 79
    APP_CRASH = 80
    DEVICE_NOT_FOUND = 81
    RETURN_CODE_NOT_SET = 82
    APP_LAUNCH_FAILURE = 83
    DEVICE_FILE_COPY_FAILURE = 84
    ADB_DEVICE_ENUMERATION_FAILURE = 85
    PACKAGE_INSTALLATION_TIMEOUT = 86

    SIMULATOR_FAILURE = 88
    DEVICE_FAILURE = 89
    APP_LAUNCH_TIMEOUT = 90

    @property
    def category(self) -> ExitCodeCategory:
        if self.value < 70:
            return ExitCodeCategory.CONTROL
        if self.value < 78:
            return ExitCodeCategory.GENERAL_FAILURE
        if self.value < 88:
            return ExitCodeCategory.RUN_FAILURE
        return ExitCodeCategory.ENVIRONMENT_FAILURE

    @property
    def is_success(self) -> bool:
        return self is ExitCode.SUCCESS


class LegacyExitCode(IntEnum):
    """Negative codes once returned by the standalone CLI.

    They are never emitted. Automation that still compares against them can translate
    through :meth:`to_shared_exit_code`.
    """

    SUCCESS = 0
    PACKAGE_NOT_FOUND = -42
    PACKAGE_INSTALLATION_FAILURE = -43
    GENERAL_FAILURE = -44
    FAILED_TO_GET_BUNDLE_INFO = -45
    APP_CRASH = -46
    DEVICE_NOT_FOUND = -47

    def to_shared_exit_code(self) -> ExitCode:
        return ExitCode[self.name]


def exit_code_from_legacy(value: int) -> ExitCode:
    """Translate a legacy numeric code into the shared scheme."""
    try:
        return LegacyExitCode(value).to_shared_exit_code()
    except ValueError as exc:
        raise ValueError(f"Unknown legacy exit code: {value}") from exc
