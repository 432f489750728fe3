"""Run a wasm app in a browser against a local web server."""

from __future__ import annotations

import logging
import subprocess
import time
from collections.abc import Callable, Sequence
from datetime import timedelta
from pathlib import Path
from typing import Protocol

from xharness.configuration import HarnessSettings
from xharness.exit_codes import ExitCode
from xharness.platforms.tool_resolution import resolve_executable
from xharness.run_execution import BackendFailure, BackendOutcome, BackendTimeout

from .engine_backend import create_processor, judge_exit
from .message_processing import TestMessageProcessor
from .wasm_arguments import Browser, WasmBrowserTestArguments
from .web_server import AppWebServer

LOGGER = logging.getLogger(__name__)

BROWSER_BINARIES = {
    Browser.CHROME: "google-chrome",
    Browser.FIREFOX: "firefox",
    Browser.SAFARI: "/Applications/Safari.app/Contents/MacOS/Safari",
}
POLL_INTERVAL = timedelta(milliseconds=200)
SHUTDOWN_GRACE = timedelta(seconds=5)


class BrowserProcess(Protocol):
    def poll(self) -> int | None: ...

    def terminate(self) -> None: ...

    def wait(self, timeout: float | None = None) -> int: ...


BrowserLauncher = Callable[[Sequence[str]], BrowserProcess]


def launch_browser(command: Sequence[str]) -> BrowserProcess:
    return subprocess.Popen(
        list(command),
        stdout=subprocess.DEVNULL,
        stderr=subprocess.DEVNULL,
    )


def browser_command(arguments: WasmBrowserTestArguments, browser: Path, url: str) -> list[str]:
    kind = arguments.browser.value
    command = [str(browser)]
    if kind is Browser.CHROME:
        command += [
            "--headless",
            "--incognito",
            f"--remote-debugging-port={arguments.debugger_port.value}",
        ]
        if arguments.web_server.use_https.value:
            # the page may reach the self-signed HTTPS server
            command.append("--ignore-certificate-errors")
    elif kind is Browser.FIREFOX:
        command += ["-headless", "-start-debugger-server", str(arguments.debugger_port.value)]
    command += arguments.browser_args.value
    command.append(url)
    return command


class BrowserBackend:
    """Serves ``--app``, opens ``--html-file`` in a browser and waits for ``WASM EXIT``."""

    def __init__(self, settings: HarnessSettings, launcher: BrowserLauncher = launch_browser) -> None:
        self.settings = settings
        self.launcher = launcher

    def resolve_browser(self, arguments: WasmBrowserTestArguments) -> Path:
        requested = arguments.browser_path.value or BROWSER_BINARIES[arguments.browser.value]
        browser = resolve_executable(requested, self.settings.search_path)
        if browser is None:
            raise BackendFailure(ExitCode.APP_LAUNCH_FAILURE, f"The browser binary `{requested}` was not found")
        return browser

    def run(self, arguments: WasmBrowserTestArguments, timeout: timedelta) -> BackendOutcome:
        browser = self.resolve_browser(arguments)
        output_directory = arguments.run.output_directory.value
        output_directory.mkdir(parents=True, exist_ok=True)
        processor = create_processor(arguments.output, results_name=arguments.browser.value.value)
        web_server = arguments.web_server

        try:
            with AppWebServer(
                arguments.app.value, processor.process, web_server.create_middleware(), web_server.options()
            ) as server:
                app_arguments = web_server.environment_arguments(server)
                app_arguments += arguments.passthrough
                url = server.url_for(arguments.html_file.value, app_arguments)
                LOGGER.info("Opening %s in %s", url, arguments.browser.value.value)
                try:
                    process = self.launcher(browser_command(arguments, browser, url))
                except OSError as exc:
                    raise BackendFailure(ExitCode.APP_LAUNCH_FAILURE, f"Failed to start {browser}: {exc}") from exc
                try:
                    self._wait_for_exit(process, processor, timeout)
                    if arguments.no_quit.value:
                        LOGGER.info("Waiting for the browser to be closed")
                        process.wait()
                finally:
                    _stop(process)
        finally:
            processor.write_console_log(output_directory / "wasm-console.log")

        exit_code = judge_exit(processor, processor.exit_code or 0, arguments.output.expected_exit_code.value)
        return BackendOutcome(exit_code=exit_code, summary=processor.summary)

    @staticmethod
    def _wait_for_exit(process: BrowserProcess, processor: TestMessageProcessor, timeout: timedelta) -> None:
        deadline = time.monotonic() + timeout.total_seconds()
        while not processor.exited.wait(POLL_INTERVAL.total_seconds()):
            if process.poll() is not None:
                raise BackendFailure(
                    ExitCode.GENERAL_FAILURE,
                    "Browser exited before the app reported its exit code",
                    processor.summary,
                )
            if time.monotonic() >= deadline:
                raise BackendTimeout(f"Tests timed out after {timeout}", processor.summary)


def _stop(process: BrowserProcess) -> None:
    if process.poll() is not None:
        return
    process.terminate()
    try:
        process.wait(timeout=SHUTDOWN_GRACE.total_seconds())
    except subprocess.TimeoutExpired:
        LOGGER.warning("Browser did not exit after being asked to")
