"""WASI sub-commands."""

from __future__ import annotations

from xharness.platforms.test_command import BackendTestCommand

from .wasi_arguments import WasiTestArguments
from .wasi_backend import WasiEngineBackend


class WasiTestCommand(BackendTestCommand[WasiTestArguments]):
    name = "test"
    description = "Executes tests on WASI using a selected engine."

    @property
    def usage(self) -> str:
        return f"{self.parent} {self.name} [OPTIONS] -- [ENGINE OPTIONS]"

    def build_arguments(self) -> WasiTestArguments:
        return WasiTestArguments()

    def create_backend(self) -> WasiEngineBackend:
        return WasiEngineBackend(self.settings)
