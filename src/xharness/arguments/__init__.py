"""Argument model exports."""

from .argument_definitions import (
    Argument,
    EnumArgument,
    IntArgument,
    IntRangeArgument,
    KeyValueArgument,
    PathAndTypeArgument,
    PathArgument,
    PluginReference,
    RepeatableArgument,
    RequiredPathArgument,
    RequiredStringArgument,
    StringArgument,
    SwitchArgument,
    TimeSpanArgument,
    ValueMode,
    format_allowed_values,
)
from .argument_errors import ArgumentProblem, ProblemKind
from .argument_groups import ArgumentGroup, ArgumentRelation, MutuallyExclusive
from .argument_sets import (
    VERBATIM_PLACEHOLDER,
    ArgumentSet,
    ParseOutcome,
    protect_verbatim,
    restore_verbatim,
)
from .common_arguments import CommonArguments, HelpArgument, VerbosityArgument

__all__ = [
    "Argument",
    "ArgumentGroup",
    "ArgumentProblem",
    "ArgumentRelation",
    "ArgumentSet",
    "CommonArguments",
    "EnumArgument",
    "HelpArgument",
    "IntArgument",
    "IntRangeArgument",
    "KeyValueArgument",
    "MutuallyExclusive",
    "ParseOutcome",
    "PathAndTypeArgument",
    "PathArgument",
    "PluginReference",
    "ProblemKind",
    "RepeatableArgument",
    "RequiredPathArgument",
    "RequiredStringArgument",
    "StringArgument",
    "SwitchArgument",
    "TimeSpanArgument",
    "VERBATIM_PLACEHOLDER",
    "ValueMode",
    "VerbosityArgument",
    "format_allowed_values",
    "protect_verbatim",
    "restore_verbatim",
]
