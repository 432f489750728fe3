"""Arguments shared by every platform test command."""

from __future__ import annotations

from datetime import timedelta

from xharness.arguments import ArgumentGroup, RequiredPathArgument, TimeSpanArgument

DEFAULT_RUN_TIMEOUT = timedelta(minutes=15)


class RunArguments(ArgumentGroup):
    """Output location and overall timeout of one run."""

    def __init__(self, default_timeout: timedelta = DEFAULT_RUN_TIMEOUT) -> None:
        self.output_directory = RequiredPathArgument(
            "output-directory|o",
            "Directory where logs and results will be saved",
            missing_message="You must provide an output directory where results will be stored",
        )
        self.timeout = TimeSpanArgument(
            "timeout",
            "Time span in the form of \"00:00:00\" or number of seconds to wait for the run to finish",
            default_timeout,
        )


class PlatformTestArguments(ArgumentGroup):
    """Base of platform groups: run arguments first, then the platform's own."""

    def __init__(self, default_timeout: timedelta = DEFAULT_RUN_TIMEOUT) -> None:
        self.run = RunArguments(default_timeout)
        self.passthrough: tuple[str, ...] = ()
