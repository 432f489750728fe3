"""Platform command sets registered on the router."""

from __future__ import annotations

from xharness.commands import CommandSet
from xharness.configuration import HarnessSettings

from .android import (
    AndroidDeviceCommand,
    AndroidInstallCommand,
    AndroidRunCommand,
    AndroidStateCommand,
    AndroidTestCommand,
    AndroidUninstallCommand,
)
from .apple import AppleInstallCommand, AppleRunCommand, AppleTestCommand, AppleUninstallCommand
from .wasi import WasiTestCommand
from .wasm import WasmBrowserTestCommand, WasmTestCommand, WasmWebServerCommand


def _supports_apple(settings: HarnessSettings) -> bool:
    return settings.supports_apple


def build_command_sets() -> tuple[CommandSet, ...]:
    return (
        CommandSet(
            name="android",
            description="Commands for Android devices and emulators.",
            commands=(
                AndroidTestCommand,
                AndroidRunCommand,
                AndroidInstallCommand,
                AndroidUninstallCommand,
                AndroidDeviceCommand,
                AndroidStateCommand,
            ),
        ),
        CommandSet(
            name="apple",
            description="Commands for Apple simulators and devices.",
            commands=(AppleTestCommand, AppleRunCommand, AppleInstallCommand, AppleUninstallCommand),
            is_supported=_supports_apple,
            unsupported_message="Command '{command}' could be run on OSX only.",
        ),
        CommandSet(
            name="wasm",
            description="Commands for WebAssembly apps in JavaScript engines and browsers.",
            commands=(WasmTestCommand, WasmBrowserTestCommand, WasmWebServerCommand),
        ),
        CommandSet(
            name="wasi",
            description="Commands for WASI modules.",
            commands=(WasiTestCommand,),
        ),
    )
