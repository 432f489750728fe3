"""Run a WASI module through wasmtime."""

from __future__ import annotations

from pathlib import Path

from xharness.platforms.wasm.engine_backend import EngineBackend
from xharness.platforms.wasm.wasm_arguments import EngineArguments, EngineOutputArguments

from .wasi_arguments import WasiTestArguments, WasmEngine

ENGINE_BINARIES = {
    WasmEngine.WASM_TIME: "wasmtime",
}


class WasiEngineBackend(EngineBackend[WasiTestArguments]):
    engine_label = "wasi engine"
    console_log_name = "wasi-console.log"

    def engine_arguments(self, arguments: WasiTestArguments) -> EngineArguments:
        return arguments.engine

    def output_arguments(self, arguments: WasiTestArguments) -> EngineOutputArguments:
        return arguments.output

    def default_binary(self, arguments: WasiTestArguments) -> str:
        return ENGINE_BINARIES[arguments.engine.engine.value]

    def command_line(self, arguments: WasiTestArguments, engine: Path) -> list[str]:
        command = [str(engine), "run", *arguments.engine.engine_args.value, "--dir", "."]
        command.append(arguments.engine.entry_file.value)
        if arguments.dll_file.value:
            command.append(arguments.dll_file.value)
        command += arguments.passthrough
        return command
