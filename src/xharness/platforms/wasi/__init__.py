"""WASI platform exports."""

from .wasi_arguments import WasiTestArguments, WasmEngine
from .wasi_backend import WasiEngineBackend
from .wasi_commands import WasiTestCommand

__all__ = [
    "WasiEngineBackend",
    "WasiTestArguments",
    "WasiTestCommand",
    "WasmEngine",
]
