"""Run a wasm test bundle in a standalone engine and judge its console output."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Mapping
from datetime import timedelta
from pathlib import Path
from typing import Generic, TypeVar

from xharness.configuration import HarnessSettings
from xharness.exit_codes import ExitCode
from xharness.platforms.platform_arguments import PlatformTestArguments
from xharness.platforms.tool_resolution import resolve_executable
from xharness.run_execution import (
    BackendFailure,
    BackendOutcome,
    BackendTimeout,
    ProcessLaunchError,
    ProcessRunner,
    ProcessTimedOut,
    SubprocessRunner,
)

from .message_processing import ErrorPatternScanner, TestMessageProcessor
from .wasm_arguments import EngineArguments, EngineOutputArguments, JavaScriptEngine, WasmTestArguments

LOGGER = logging.getLogger(__name__)

A = TypeVar("A", bound=PlatformTestArguments)

ENGINE_BINARIES = {
    JavaScriptEngine.V8: "v8",
    JavaScriptEngine.JAVASCRIPT_CORE: "jsc",
    JavaScriptEngine.SPIDER_MONKEY: "sm",
    JavaScriptEngine.NODE_JS: "node",
}


def judge_exit(processor: TestMessageProcessor, exit_code: int, expected: int) -> ExitCode:
    """Map the app exit code and any crash line to a harness exit code."""
    processor.raise_for_failure()
    if exit_code != expected:
        LOGGER.error(
            "Application has finished with exit code %d but %d was expected", exit_code, expected
        )
        return ExitCode.GENERAL_FAILURE
    if processor.error_line is not None:
        LOGGER.error(
            "Application exited with the expected exit code %d but a line matched an error pattern: %s",
            exit_code,
            processor.error_line,
        )
        return ExitCode.APP_CRASH
    LOGGER.info("Application has finished with exit code %d", exit_code)
    return ExitCode.SUCCESS


def create_processor(output: EngineOutputArguments, results_name: str) -> TestMessageProcessor:
    scanner = None
    if output.error_patterns.value is not None:
        scanner = ErrorPatternScanner.from_file(output.error_patterns.value)
    return TestMessageProcessor(results_name, scanner, output.symbolication.create())


class EngineBackend(ABC, Generic[A]):
    """Resolve the engine, run it once with captured output, then judge the run."""

    engine_label = "engine"
    console_log_name = "wasm-console.log"

    def __init__(self, settings: HarnessSettings, runner: ProcessRunner | None = None) -> None:
        self.settings = settings
        self.runner = runner or SubprocessRunner()

    @abstractmethod
    def engine_arguments(self, arguments: A) -> EngineArguments: ...

    @abstractmethod
    def output_arguments(self, arguments: A) -> EngineOutputArguments: ...

    @abstractmethod
    def default_binary(self, arguments: A) -> str: ...

    @abstractmethod
    def command_line(self, arguments: A, engine: Path) -> list[str]: ...

    def environment(self, arguments: A) -> Mapping[str, str] | None:
        return None

    def resolve_engine(self, arguments: A) -> Path:
        requested = self.engine_arguments(arguments).engine_path.value or self.default_binary(arguments)
        engine = resolve_executable(requested, self.settings.search_path)
        if engine is None:
            raise BackendFailure(
                ExitCode.APP_LAUNCH_FAILURE, f"The {self.engine_label} binary `{requested}` was not found"
            )
        return engine

    def run(self, arguments: A, timeout: timedelta) -> BackendOutcome:
        engine = self.resolve_engine(arguments)
        LOGGER.info("Using %s %s", self.engine_label, engine)
        output = self.output_arguments(arguments)
        output_directory = arguments.run.output_directory.value
        output_directory.mkdir(parents=True, exist_ok=True)
        processor = create_processor(output, results_name=engine.name)

        try:
            result = self.runner.run(
                self.command_line(arguments, engine),
                timeout=timeout,
                env=self.environment(arguments),
            )
        except ProcessTimedOut as exc:
            processor.process_output(exc.stdout)
            processor.write_console_log(output_directory / self.console_log_name)
            raise BackendTimeout(f"Tests timed out after {timeout}", processor.summary) from exc
        except ProcessLaunchError as exc:
            raise BackendFailure(ExitCode.APP_LAUNCH_FAILURE, str(exc)) from exc

        processor.process_output(result.stdout, result.stderr)
        processor.write_console_log(output_directory / self.console_log_name)
        exit_code = judge_exit(processor, result.exit_code, output.expected_exit_code.value)
        return BackendOutcome(exit_code=exit_code, summary=processor.summary)


class JsEngineBackend(EngineBackend[WasmTestArguments]):
    """Runs ``--js-file`` in V8, JavaScriptCore, SpiderMonkey or NodeJS."""

    engine_label = "js engine"

    def engine_arguments(self, arguments: WasmTestArguments) -> EngineArguments:
        return arguments.engine

    def output_arguments(self, arguments: WasmTestArguments) -> EngineOutputArguments:
        return arguments.output

    def default_binary(self, arguments: WasmTestArguments) -> str:
        return ENGINE_BINARIES[arguments.engine.engine.value]

    def command_line(self, arguments: WasmTestArguments, engine: Path) -> list[str]:
        kind = arguments.engine.engine.value
        command = [str(engine)]
        if kind is JavaScriptEngine.V8:
            command.append("--expose_wasm")
        command += arguments.engine.engine_args.value
        command.append(arguments.engine.entry_file.value)
        if kind in (JavaScriptEngine.V8, JavaScriptEngine.JAVASCRIPT_CORE):
            # script arguments follow "--" for these engines
            command.append("--")
        command += arguments.passthrough
        return command

    def environment(self, arguments: WasmTestArguments) -> Mapping[str, str] | None:
        if arguments.engine.engine.value is JavaScriptEngine.NODE_JS:
            return {"LANG": arguments.locale.value}
        return None
