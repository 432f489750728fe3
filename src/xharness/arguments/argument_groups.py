"""Composable groups of arguments and the rules relating them."""

from __future__ import annotations

from typing import Protocol

from .argument_definitions import Argument
from .argument_errors import ArgumentProblem


class ArgumentRelation(Protocol):
    """A rule spanning several arguments, checked after each argument passed alone."""

    def check(self) -> ArgumentProblem | None: ...


class MutuallyExclusive:
    """At most one of two arguments may be supplied."""

    def __init__(self, first: Argument, second: Argument) -> None:
        self.first = first
        self.second = second

    def check(self) -> ArgumentProblem | None:
        if self.first.was_set and self.second.was_set:
            return ArgumentProblem.validation_error(
                f"Cannot specify both {self.first.flag} and {self.second.flag}. "
                "Use only one of them",
                self.first.name,
            )
        return None


class ArgumentGroup:
    """Arguments declared as instance attributes, in declaration order.

    Attributes holding other groups are flattened in place, so a command extends a
    shared group simply by assigning it before its own arguments.
    """

    def arguments(self) -> tuple[Argument, ...]:
        collected: list[Argument] = []
        for member in vars(self).values():
            if isinstance(member, Argument):
                collected.append(member)
            elif isinstance(member, ArgumentGroup):
                collected.extend(member.arguments())
        return tuple(collected)

    def relations(self) -> tuple[ArgumentRelation, ...]:
        collected: list[ArgumentRelation] = []
        for member in vars(self).values():
            if isinstance(member, ArgumentGroup):
                collected.extend(member.relations())
        collected.extend(self.own_relations())
        return tuple(collected)

    def own_relations(self) -> tuple[ArgumentRelation, ...]:
        return ()
