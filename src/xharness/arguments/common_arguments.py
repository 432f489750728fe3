"""Arguments every command accepts."""

from __future__ import annotations

from xharness.console_logging.log_levels import LogLevel

from .argument_definitions import EnumArgument, SwitchArgument, ValueMode
from .argument_groups import ArgumentGroup


class VerbosityArgument(EnumArgument[LogLevel]):
    """``--verbosity`` on its own means Debug."""

    value_mode = ValueMode.OPTIONAL
    metavar = "LEVEL"

    def __init__(self) -> None:
        super().__init__(
            "verbosity|v",
            "Verbosity level. Defaults to Information; the bare flag means Debug",
            LogLevel,
            LogLevel.INFORMATION,
        )

    def convert(self, raw_value: str | None) -> LogLevel:
        if raw_value is None:
            return LogLevel.DEBUG
        return super().convert(raw_value)


class HelpArgument(SwitchArgument):
    def __init__(self) -> None:
        super().__init__("help|h", "Show this message and exit")


class CommonArguments(ArgumentGroup):
    """Verbosity and help, appended after every command's own arguments."""

    def __init__(self) -> None:
        self.verbosity = VerbosityArgument()
        self.help = HelpArgument()
