"""WASI command arguments."""

from __future__ import annotations

from enum import Enum

from xharness.arguments import EnumArgument, StringArgument
from xharness.platforms.platform_arguments import PlatformTestArguments
from xharness.platforms.wasm.wasm_arguments import EngineArguments, EngineOutputArguments


class WasmEngine(str, Enum):
    """WASI runtimes able to run a wasm module."""

    WASM_TIME = "WasmTime"


class WasiTestArguments(PlatformTestArguments):
    """Run a WASI module in a standalone runtime."""

    def __init__(self) -> None:
        super().__init__()
        self.engine = EngineArguments(
            EnumArgument(
                "engine|e",
                "Specifies the WASI engine to be used",
                WasmEngine,
                WasmEngine.WASM_TIME,
            ),
            default_file="dotnet.wasm",
            file_prototype="wasm-file",
        )
        self.dll_file = StringArgument(
            "dll-file",
            "Assembly with the tests, passed to the wasm module",
        )
        self.output = EngineOutputArguments()
