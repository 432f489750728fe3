"""Rewrite raw wasm function indices in diagnostic output into symbol names."""

from __future__ import annotations

import logging
import re
from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from pathlib import Path

from xharness.arguments import PluginReference
from xharness.plugins import PluginLoadError, resolve_plugin_type

LOGGER = logging.getLogger(__name__)

DEFAULT_SYMBOLICATOR = "WasmSymbolicator"
DEFAULT_PATTERNS = (re.compile(r"wasm-function\[(\d+)\]"),)


class SymbolMapError(ValueError):
    """Raised when a symbol map or pattern file cannot be loaded."""


class Symbolicator(ABC):
    """Plugin contract: construct, ``load`` the configured files, then ``symbolicate``."""

    def __init__(self) -> None:
        self.symbol_map_file: Path | None = None
        self.pattern_file: Path | None = None

    def load(self, symbol_map_file: Path | None, pattern_file: Path | None) -> None:
        self.symbol_map_file = symbol_map_file
        self.pattern_file = pattern_file

    @abstractmethod
    def symbolicate(self, message: str) -> str: ...


class MapFileSymbolicator(Symbolicator):
    """Uses an ``<index>:<symbol>`` map and regexes whose first group is the index."""

    def __init__(
        self,
        symbols: Mapping[int, str] | None = None,
        patterns: Sequence[re.Pattern[str]] = DEFAULT_PATTERNS,
    ) -> None:
        super().__init__()
        self.symbols: dict[int, str] = dict(symbols or {})
        self.patterns: tuple[re.Pattern[str], ...] = tuple(patterns)

    def load(self, symbol_map_file: Path | None, pattern_file: Path | None) -> None:
        super().load(symbol_map_file, pattern_file)
        if symbol_map_file is not None:
            self.symbols = read_symbol_map(symbol_map_file)
        if pattern_file is not None:
            self.patterns = read_patterns(pattern_file)

    def symbolicate(self, message: str) -> str:
        if not self.symbols:
            return message
        for pattern in self.patterns:
            message = pattern.sub(self._replace, message)
        return message

    def _replace(self, match: re.Match[str]) -> str:
        try:
            index = int(match.group(1))
        except (IndexError, ValueError):
            return match.group(0)
        return self.symbols.get(index, match.group(0))


BUILTIN_SYMBOLICATORS: dict[str, type[Symbolicator]] = {
    DEFAULT_SYMBOLICATOR: MapFileSymbolicator,
}


def read_symbol_map(path: Path) -> dict[int, str]:
    try:
        lines = Path(path).read_text(encoding="utf-8").splitlines()
    except (OSError, UnicodeDecodeError) as exc:
        raise SymbolMapError(f"Failed to read symbol map {path}: {exc}") from exc
    symbols: dict[int, str] = {}
    for line_number, line in enumerate(lines, start=1):
        if not line.strip():
            continue
        raw_index, separator, name = line.partition(":")
        if not separator or not raw_index.strip().isdecimal() or not name.strip():
            raise SymbolMapError(
                f"Malformed entry on line {line_number} of symbol map {path}: '{line}'"
            )
        symbols[int(raw_index)] = name.strip()
    return symbols


def read_patterns(path: Path) -> tuple[re.Pattern[str], ...]:
    try:
        lines = Path(path).read_text(encoding="utf-8").splitlines()
    except (OSError, UnicodeDecodeError) as exc:
        raise SymbolMapError(f"Failed to read symbol patterns {path}: {exc}") from exc
    patterns = []
    for line in lines:
        if not line.strip() or line.startswith("#"):
            continue
        try:
            pattern = re.compile(line)
        except re.error as exc:
            raise SymbolMapError(f"Invalid symbol pattern '{line}' in {path}: {exc}") from exc
        if pattern.groups < 1:
            raise SymbolMapError(f"Symbol pattern '{line}' in {path} must capture the function index")
        patterns.append(pattern)
    return tuple(patterns) or DEFAULT_PATTERNS


def create_symbolicator(
    kind: PluginReference | str | None,
    symbol_map_file: Path | None = None,
    pattern_file: Path | None = None,
) -> Symbolicator | None:
    """Build the configured symbolicator, or ``None`` when nothing is configured."""
    if kind is None and symbol_map_file is None and pattern_file is None:
        return None
    if kind is None:
        LOGGER.warning("No symbolicator given")
        return None
    reference = PluginReference(type_name=kind) if isinstance(kind, str) else kind
    try:
        symbolicator_cls = resolve_plugin_type(reference, Symbolicator, BUILTIN_SYMBOLICATORS)
    except PluginLoadError as exc:
        raise SymbolMapError(str(exc)) from exc
    try:
        symbolicator = symbolicator_cls()
        symbolicator.load(symbol_map_file, pattern_file)
    except SymbolMapError:
        raise
    except Exception as exc:  # pylint: disable=broad-except
        raise SymbolMapError(f"Failed to create symbolicator '{reference.type_name}': {exc}") from exc
    return symbolicator
