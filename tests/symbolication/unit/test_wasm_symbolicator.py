"""Tests for wasm stack trace symbolication."""

from __future__ import annotations

import re
from pathlib import Path

import pytest
from xharness.arguments import ArgumentSet, PluginReference, ProblemKind
from xharness.symbolication import (
    MapFileSymbolicator,
    SymbolicatorArguments,
    SymbolMapError,
    create_symbolicator,
    read_patterns,
    read_symbol_map,
)

PLUGIN_SOURCE = """
from xharness.symbolication import Symbolicator


class ShoutingSymbolicator(Symbolicator):
    def symbolicate(self, message):
        return message.upper()


class NotASymbolicator:
    pass
"""


def _write(path: Path, text: str) -> Path:
    path.write_text(text, encoding="utf-8")
    return path


def test_symbol_map_entries_are_read_by_index(tmp_path: Path) -> None:
    path = _write(tmp_path / "dotnet.js.symbols", "0:mono_wasm_load\n\n12:System_String_Concat\n")

    assert read_symbol_map(path) == {0: "mono_wasm_load", 12: "System_String_Concat"}


def test_malformed_symbol_map_line_is_reported(tmp_path: Path) -> None:
    path = _write(tmp_path / "broken.symbols", "0:ok\nnot-an-entry\n")

    with pytest.raises(SymbolMapError, match="Malformed entry on line 2"):
        read_symbol_map(path)


def test_patterns_must_capture_the_function_index(tmp_path: Path) -> None:
    path = _write(tmp_path / "patterns.txt", "# frames\nwasm-function\\[\\d+\\]\n")

    with pytest.raises(SymbolMapError, match="must capture the function index"):
        read_patterns(path)


def test_symbolicator_replaces_known_indices_and_keeps_unknown_ones() -> None:
    symbolicator = MapFileSymbolicator({7: "Program_Main"})

    line = symbolicator.symbolicate("at wasm-function[7]:0x1f, at wasm-function[8]:0x20")

    assert line == "at Program_Main:0x1f, at wasm-function[8]:0x20"


def test_custom_patterns_replace_the_default_one(tmp_path: Path) -> None:
    patterns = _write(tmp_path / "patterns.txt", r"<(\d+)>" + "\n")
    symbols = _write(tmp_path / "map.symbols", "3:Tests_Run\n")

    symbolicator = create_symbolicator("WasmSymbolicator", symbols, patterns)

    assert symbolicator is not None
    assert symbolicator.symbolicate("frame <3> wasm-function[3]") == "frame Tests_Run wasm-function[3]"
    assert symbolicator.patterns == (re.compile(r"<(\d+)>"),)


def test_nothing_configured_means_no_symbolicator() -> None:
    assert create_symbolicator(None) is None


def test_unknown_builtin_symbolicator_is_reported() -> None:
    with pytest.raises(SymbolMapError, match="Unknown Symbolicator 'Missing'. Known types: WasmSymbolicator"):
        create_symbolicator("Missing")


def test_symbolicator_can_be_loaded_from_a_python_file(tmp_path: Path) -> None:
    plugin = _write(tmp_path / "shouting.py", PLUGIN_SOURCE)

    symbolicator = create_symbolicator(PluginReference(type_name="ShoutingSymbolicator", path=plugin))

    assert symbolicator is not None
    assert symbolicator.symbolicate("quiet") == "QUIET"


def test_plugin_class_must_be_a_symbolicator(tmp_path: Path) -> None:
    plugin = _write(tmp_path / "shouting.py", PLUGIN_SOURCE)

    with pytest.raises(SymbolMapError, match="is not a Symbolicator"):
        create_symbolicator(PluginReference(type_name="NotASymbolicator", path=plugin))


def test_symbolicator_arguments_create_the_configured_symbolicator(tmp_path: Path) -> None:
    symbols = _write(tmp_path / "map.symbols", "1:Main\n")
    arguments = SymbolicatorArguments()
    argument_set = ArgumentSet(arguments)
    argument_set.parse(["--symbolicator", "WasmSymbolicator", "--symbol-map", str(symbols)])

    assert argument_set.validate() == ()
    symbolicator = arguments.create()
    assert symbolicator is not None
    assert symbolicator.symbolicate("wasm-function[1]") == "Main"


def test_symbolicator_arguments_report_unloadable_types() -> None:
    argument_set = ArgumentSet(SymbolicatorArguments())
    argument_set.parse(["--symbolicator", "Missing"])

    problems = argument_set.validate()

    assert problems[0].kind is ProblemKind.VALIDATION
    assert "Unknown Symbolicator 'Missing'" in problems[0].message


def test_symbolicator_arguments_require_existing_files(tmp_path: Path) -> None:
    argument_set = ArgumentSet(SymbolicatorArguments())
    argument_set.parse(["--symbol-map", str(tmp_path / "absent.symbols")])

    problems = argument_set.validate()

    assert problems[0].message == f"Path supplied in --symbol-map does not exist: {tmp_path / 'absent.symbols'}"


def test_symbol_map_that_is_not_utf8_is_reported(tmp_path: Path) -> None:
    path = tmp_path / "binary.symbols"
    path.write_bytes(b"1:\xff\xfe\n")

    with pytest.raises(SymbolMapError, match="Failed to read symbol map"):
        read_symbol_map(path)


def test_pattern_file_that_is_not_utf8_is_reported(tmp_path: Path) -> None:
    path = tmp_path / "binary.patterns"
    path.write_bytes(b"\xff(\\d+)\n")

    with pytest.raises(SymbolMapError, match="Failed to read symbol patterns"):
        read_patterns(path)


def test_non_ascii_digits_are_not_a_function_index(tmp_path: Path) -> None:
    path = _write(tmp_path / "superscript.symbols", "²:sym\n")

    with pytest.raises(SymbolMapError, match="Malformed entry on line 1"):
        read_symbol_map(path)


def test_failing_plugin_constructor_is_a_symbol_map_error(tmp_path: Path) -> None:
    plugin = _write(
        tmp_path / "broken.py",
        "from xharness.symbolication import Symbolicator\n\n\n"
        "class BrokenSymbolicator(Symbolicator):\n"
        "    def __init__(self):\n"
        "        raise RuntimeError('no symbols today')\n",
    )

    message = "Failed to create symbolicator 'BrokenSymbolicator': no symbols today"
    with pytest.raises(SymbolMapError, match=message):
        create_symbolicator(PluginReference(type_name="BrokenSymbolicator", path=plugin))


def test_unreadable_symbol_map_is_a_validation_problem(tmp_path: Path) -> None:
    path = tmp_path / "binary.symbols"
    path.write_bytes(b"1:\xff\xfe\n")
    argument_set = ArgumentSet(SymbolicatorArguments())
    argument_set.parse(["--symbolicator", "WasmSymbolicator", "--symbol-map", str(path)])

    problems = argument_set.validate()

    assert problems[0].kind is ProblemKind.VALIDATION
    assert "Failed to read symbol map" in problems[0].message
