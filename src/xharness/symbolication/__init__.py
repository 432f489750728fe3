"""Symbolication domain exports."""

from .symbolicator_arguments import SymbolicatorArguments, SymbolicatorLoads
from .wasm_symbolicator import (
    BUILTIN_SYMBOLICATORS,
    DEFAULT_SYMBOLICATOR,
    MapFileSymbolicator,
    SymbolMapError,
    Symbolicator,
    create_symbolicator,
    read_patterns,
    read_symbol_map,
)

__all__ = [
    "BUILTIN_SYMBOLICATORS",
    "DEFAULT_SYMBOLICATOR",
    "MapFileSymbolicator",
    "SymbolMapError",
    "Symbolicator",
    "SymbolicatorArguments",
    "SymbolicatorLoads",
    "create_symbolicator",
    "read_patterns",
    "read_symbol_map",
]
