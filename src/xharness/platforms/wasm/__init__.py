"""WebAssembly platform exports."""

from .browser_backend import BrowserBackend, browser_command, launch_browser
from .certificates import write_self_signed_certificate
from .engine_backend import EngineBackend, JsEngineBackend, create_processor, judge_exit
from .message_processing import ErrorPatternScanner, TestMessageProcessor
from .wasm_arguments import (
    Browser,
    EngineArguments,
    EngineOutputArguments,
    JavaScriptEngine,
    WasmBrowserTestArguments,
    WasmTestArguments,
    WasmWebServerArguments,
    WebServerArguments,
)
from .wasm_commands import WasmBrowserTestCommand, WasmTestCommand, WasmWebServerCommand, wait_for_timeout
from .web_server import AppWebServer, WebServerMiddleware, WebServerOptions, load_middleware

__all__ = [
    "AppWebServer",
    "Browser",
    "BrowserBackend",
    "EngineArguments",
    "EngineBackend",
    "EngineOutputArguments",
    "ErrorPatternScanner",
    "JavaScriptEngine",
    "JsEngineBackend",
    "TestMessageProcessor",
    "WasmBrowserTestArguments",
    "WasmBrowserTestCommand",
    "WasmTestArguments",
    "WasmTestCommand",
    "WasmWebServerArguments",
    "WasmWebServerCommand",
    "WebServerArguments",
    "WebServerMiddleware",
    "WebServerOptions",
    "browser_command",
    "create_processor",
    "judge_exit",
    "launch_browser",
    "load_middleware",
    "wait_for_timeout",
    "write_self_signed_certificate",
]
