"""Command line options selecting and configuring a symbolicator."""

from __future__ import annotations

from xharness.arguments import (
    ArgumentGroup,
    ArgumentProblem,
    ArgumentRelation,
    PathAndTypeArgument,
    PathArgument,
)

from .wasm_symbolicator import DEFAULT_SYMBOLICATOR, SymbolMapError, Symbolicator, create_symbolicator


class SymbolicatorArguments(ArgumentGroup):
    """``--symbolicator``, ``--symbol-map`` and ``--symbol-patterns``."""

    def __init__(self) -> None:
        self.symbolicator = PathAndTypeArgument(
            "symbolicator",
            "Symbolicator to use, either a built-in name or '<path to .py file>,<class name>'",
            label="symbolicator",
            default_type=DEFAULT_SYMBOLICATOR,
        )
        self.symbol_map = PathArgument(
            "symbol-map",
            "File with '<index>:<symbol>' entries used to symbolicate wasm stack traces",
            must_exist=True,
        )
        self.symbol_patterns = PathArgument(
            "symbol-patterns",
            "File with one regex per line whose first group captures a wasm function index",
            must_exist=True,
        )

    def own_relations(self) -> tuple[ArgumentRelation, ...]:
        return (SymbolicatorLoads(self),)

    def create(self) -> Symbolicator | None:
        return create_symbolicator(
            self.symbolicator.value,
            self.symbol_map.value,
            self.symbol_patterns.value,
        )


class SymbolicatorLoads:
    """The configured symbolicator type and its files must load."""

    def __init__(self, group: SymbolicatorArguments) -> None:
        self.group = group

    def check(self) -> ArgumentProblem | None:
        try:
            self.group.create()
        except SymbolMapError as exc:
            return ArgumentProblem.validation_error(str(exc), self.group.symbolicator.name)
        return None
