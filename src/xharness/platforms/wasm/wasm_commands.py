"""WebAssembly sub-commands: ``test``, ``test-browser`` and ``webserver``."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from datetime import timedelta

import click

from xharness.commands import HarnessCommand
from xharness.configuration import HarnessSettings
from xharness.exit_codes import ExitCode
from xharness.platforms.test_command import BackendTestCommand

from .browser_backend import BrowserBackend
from .engine_backend import JsEngineBackend
from .wasm_arguments import WasmBrowserTestArguments, WasmTestArguments, WasmWebServerArguments
from .web_server import AppWebServer

LOGGER = logging.getLogger(__name__)

ServeUntil = Callable[[AppWebServer, timedelta], None]


class WasmTestCommand(BackendTestCommand[WasmTestArguments]):
    name = "test"
    description = "Executes tests on WASM using a selected JavaScript engine."

    @property
    def usage(self) -> str:
        return f"{self.parent} {self.name} [OPTIONS] -- [ENGINE OPTIONS]"

    def build_arguments(self) -> WasmTestArguments:
        return WasmTestArguments()

    def create_backend(self) -> JsEngineBackend:
        return JsEngineBackend(self.settings)


class WasmBrowserTestCommand(BackendTestCommand[WasmBrowserTestArguments]):
    name = "test-browser"
    description = "Executes tests on WASM using a browser."

    @property
    def usage(self) -> str:
        return f"{self.parent} {self.name} [OPTIONS] -- [BROWSER OPTIONS]"

    def build_arguments(self) -> WasmBrowserTestArguments:
        return WasmBrowserTestArguments(supports_safari=self.settings.supports_apple)

    def create_backend(self) -> BrowserBackend:
        return BrowserBackend(self.settings)


def wait_for_timeout(server: AppWebServer, timeout: timedelta) -> None:
    try:
        threading.Event().wait(timeout.total_seconds())
    except KeyboardInterrupt:
        LOGGER.info("Interrupted, stopping the web server")


class WasmWebServerCommand(HarnessCommand[WasmWebServerArguments]):
    name = "webserver"
    description = "Serves a WASM app over HTTP until the timeout passes, for tests run by other tools."

    def __init__(
        self,
        settings: HarnessSettings,
        parent: str = "xharness",
        serve_until: ServeUntil = wait_for_timeout,
    ) -> None:
        super().__init__(settings, parent)
        self.serve_until = serve_until

    def build_arguments(self) -> WasmWebServerArguments:
        return WasmWebServerArguments()

    def run(self, arguments: WasmWebServerArguments, passthrough: tuple[str, ...]) -> ExitCode:
        web_server = arguments.web_server
        with AppWebServer(
            arguments.app.value, _log_console, web_server.create_middleware(), web_server.options()
        ) as server:
            click.echo(f"HTTP: {server.base_url}")
            if server.secure_base_url is not None:
                click.echo(f"HTTPS: {server.secure_base_url}")
            for name in web_server.http_env_names():
                click.echo(f"{name}={server.base_url}")
            if server.secure_base_url is not None:
                for name in web_server.https_env_names():
                    click.echo(f"{name}={server.secure_base_url}")
            self.serve_until(server, arguments.timeout.value)
        return ExitCode.SUCCESS


def _log_console(line: str, is_error: bool) -> None:
    if is_error:
        LOGGER.error("%s", line)
    else:
        LOGGER.info("%s", line)
