"""Assembled option surface of one command."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from .argument_definitions import Argument, ValueMode
from .argument_errors import ArgumentProblem
from .argument_groups import ArgumentGroup, ArgumentRelation
from .common_arguments import CommonArguments

VERBATIM_PLACEHOLDER = "[[%verbatim_argument%]]"

_HELP_COLUMN = 36


def restore_verbatim(token: str) -> str:
    return "--" if token == VERBATIM_PLACEHOLDER else token


def protect_verbatim(tokens: Sequence[str]) -> list[str]:
    """Hide literal ``--`` tokens from option parsers that treat them as terminators."""
    return [VERBATIM_PLACEHOLDER if token == "--" else token for token in tokens]


@dataclass(frozen=True)
class ParseOutcome:
    """What parsing left over besides the argument values themselves."""

    unrecognized: tuple[str, ...] = ()
    problems: tuple[ArgumentProblem, ...] = ()
    passthrough: tuple[str, ...] = ()


class ArgumentSet:
    """Ordered arguments of a command followed by the shared verbosity/help switches."""

    def __init__(self, root: ArgumentGroup) -> None:
        self.root = root
        self.common = CommonArguments()
        self.arguments: tuple[Argument, ...] = root.arguments() + self.common.arguments()
        self.relations: tuple[ArgumentRelation, ...] = root.relations()
        self._by_name: dict[str, Argument] = {}
        for argument in self.arguments:
            for name in argument.names:
                if name in self._by_name:
                    raise ValueError(f"Duplicate argument name '{name}'")
                self._by_name[name] = argument

    @property
    def show_help(self) -> bool:
        return bool(self.common.help.value)

    def lookup(self, name: str) -> Argument | None:
        return self._by_name.get(name)

    def parse(self, tokens: Sequence[str]) -> ParseOutcome:
        """Apply flags left to right, collecting anything that is not ours."""
        unrecognized: list[str] = []
        problems: list[ArgumentProblem] = []
        passthrough: tuple[str, ...] = ()
        index = 0
        while index < len(tokens):
            token = tokens[index]
            index += 1
            if token == VERBATIM_PLACEHOLDER:
                passthrough = tuple(restore_verbatim(rest) for rest in tokens[index:])
                break
            argument, inline_value, has_inline = self._match(token)
            if argument is None:
                unrecognized.append(token)
                continue
            if has_inline:
                raw_value: str | None = inline_value
            elif argument.value_mode is ValueMode.OPTIONAL:
                raw_value = None
            elif index < len(tokens):
                raw_value = restore_verbatim(tokens[index])
                index += 1
            else:
                problems.append(
                    ArgumentProblem.format_error(
                        f"Missing required value for option '{argument.flag}'", argument.name
                    )
                )
                continue
            problem = argument.action(raw_value)
            if problem is not None:
                problems.append(problem)
        return ParseOutcome(
            unrecognized=tuple(unrecognized),
            problems=tuple(problems),
            passthrough=passthrough,
        )

    def validate(self) -> tuple[ArgumentProblem, ...]:
        """Run per-argument checks, then cross-argument relations if those passed."""
        problems = tuple(
            problem
            for problem in (argument.validate() for argument in self.arguments)
            if problem is not None
        )
        if problems:
            return problems
        return tuple(
            problem
            for problem in (relation.check() for relation in self.relations)
            if problem is not None
        )

    def format_help(self, usage: str, description: str) -> str:
        lines = [f"usage: {usage}", "", description, ""]
        for argument in self.arguments:
            spelling = f"  {argument.spellings()}"
            if len(spelling) >= _HELP_COLUMN:
                lines.append(spelling)
                lines.append(" " * _HELP_COLUMN + argument.description)
            else:
                lines.append(spelling.ljust(_HELP_COLUMN) + argument.description)
            allowed = argument.allowed_values()
            if allowed:
                lines.append(" " * _HELP_COLUMN + "Allowed values:")
                lines.extend(" " * _HELP_COLUMN + f"  - {value}" for value in allowed)
        return "\n".join(lines)

    def _match(self, token: str) -> tuple[Argument | None, str | None, bool]:
        if token.startswith("--"):
            body = token[2:]
        elif token.startswith("-") and len(token) > 1:
            body = token[1:]
        else:
            return None, None, False
        name, separator, inline_value = body.partition("=")
        argument = self._by_name.get(name)
        if argument is None:
            return None, None, False
        if separator:
            return argument, restore_verbatim(inline_value), True
        return argument, None, False
