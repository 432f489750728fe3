"""WebAssembly command arguments for JS engines and browsers."""

from __future__ import annotations

from enum import Enum
from pathlib import Path

from xharness.arguments import (
    ArgumentGroup,
    ArgumentProblem,
    ArgumentRelation,
    EnumArgument,
    IntArgument,
    PathAndTypeArgument,
    PathArgument,
    RepeatableArgument,
    StringArgument,
    SwitchArgument,
    TimeSpanArgument,
)
from xharness.platforms.platform_arguments import DEFAULT_RUN_TIMEOUT, PlatformTestArguments
from xharness.plugins import PluginLoadError
from xharness.symbolication import SymbolicatorArguments

from .web_server import (
    GENERIC_MIDDLEWARE,
    AppWebServer,
    WebServerMiddleware,
    WebServerOptions,
    load_middleware,
)

DEFAULT_DEBUGGER_PORT = 9222


class JavaScriptEngine(str, Enum):
    """Standalone JavaScript engines able to run a wasm test bundle."""

    V8 = "V8"
    JAVASCRIPT_CORE = "JavaScriptCore"
    SPIDER_MONKEY = "SpiderMonkey"
    NODE_JS = "NodeJS"


class Browser(str, Enum):
    """Browsers the browser runner knows how to start."""

    CHROME = "Chrome"
    SAFARI = "Safari"
    FIREFOX = "Firefox"


class EngineOutputArguments(ArgumentGroup):
    """How the output and exit code of the app under test are judged."""

    def __init__(self) -> None:
        self.expected_exit_code = IntArgument(
            "expected-exit-code",
            "Exit code the app is expected to return",
            0,
        )
        self.error_patterns = PathArgument(
            "error-patterns",
            "File with patterns that mark an output line as a crash. "
            "Lines starting with '@' are regexes, '#' starts a comment",
            must_exist=True,
        )
        self.symbolication = SymbolicatorArguments()


class EngineArguments(ArgumentGroup):
    """Engine selection shared by the wasm and wasi commands."""

    def __init__(self, engine: EnumArgument, default_file: str, file_prototype: str) -> None:
        self.engine = engine
        self.engine_path = StringArgument(
            "engine-path",
            "Path to the engine binary; bare names are looked up on PATH",
        )
        self.engine_args = RepeatableArgument(
            "engine-arg",
            "Argument to pass to the engine. Repeatable",
        )
        self.entry_file = StringArgument(
            file_prototype,
            f"File the engine should run. Default is {default_file}",
            default_file,
        )


class WasmTestArguments(PlatformTestArguments):
    """Run a wasm test bundle in a JavaScript engine."""

    def __init__(self) -> None:
        super().__init__()
        self.engine = EngineArguments(
            EnumArgument(
                "engine|e",
                "Specifies the JavaScript engine to be used",
                JavaScriptEngine,
                required=True,
                missing_message="You must specify the JavaScript engine with --engine",
            ),
            default_file="runtime.js",
            file_prototype="js-file",
        )
        self.output = EngineOutputArguments()
        self.locale = StringArgument(
            "locale",
            "Locale the engine is started with",
            "en-US",
        )


class WebServerArguments(ArgumentGroup):
    """The local web server hosting the app for a browser run."""

    def __init__(self) -> None:
        self.middleware = PathAndTypeArgument(
            "web-server-middleware",
            "Middleware for the web server, in the form '<path to .py file>,<class name>'. Repeatable",
            label="middleware",
            default_type=GENERIC_MIDDLEWARE,
            path_required=True,
            repeatable=True,
        )
        self.use_https = SwitchArgument(
            "web-server-use-https",
            "Also expose the app over HTTPS",
        )
        self.certificate = PathArgument(
            "web-server-certificate",
            "PEM certificate for the HTTPS server. A self-signed one is generated when omitted",
            must_exist=True,
        )
        self.key = PathArgument(
            "web-server-key",
            "PEM private key matching --web-server-certificate",
            must_exist=True,
        )
        self.use_cors = SwitchArgument(
            "web-server-use-cors",
            "Allow cross-origin requests to the web server",
        )
        self.use_cross_origin_policy = SwitchArgument(
            "web-server-use-cross-origin-policy",
            "Send cross-origin opener and embedder policy headers",
        )
        self.http_env = StringArgument(
            "set-web-server-http-env",
            "Comma separated environment variables to set to the web server URL",
        )
        self.https_env = StringArgument(
            "set-web-server-https-env",
            "Comma separated environment variables to set to the HTTPS web server URL",
        )

    def http_env_names(self) -> tuple[str, ...]:
        return _names(self.http_env.value)

    def https_env_names(self) -> tuple[str, ...]:
        return _names(self.https_env.value)

    def options(self) -> WebServerOptions:
        return WebServerOptions(
            use_cors=self.use_cors.value,
            use_cross_origin_policy=self.use_cross_origin_policy.value,
            use_https=self.use_https.value,
            certificate=self.certificate.value,
            key=self.key.value,
        )

    def create_middleware(self) -> list[WebServerMiddleware]:
        return [load_middleware(reference)() for reference in self.middleware.references()]

    def environment_arguments(self, server: AppWebServer) -> list[str]:
        """``--setenv`` app arguments pointing the requested variables at the server."""
        variables = [f"--setenv={name}={server.base_url}" for name in self.http_env_names()]
        if server.secure_base_url is not None:
            variables += [f"--setenv={name}={server.secure_base_url}" for name in self.https_env_names()]
        return variables

    def own_relations(self) -> tuple[ArgumentRelation, ...]:
        return (MiddlewareLoads(self.middleware), CertificatePair(self.certificate, self.key, self.use_https))


def _names(value: str | None) -> tuple[str, ...]:
    return tuple(name.strip() for name in (value or "").split(",") if name.strip())


class CertificatePair:
    """A certificate and its key are given together, and only for an HTTPS server."""

    def __init__(self, certificate: PathArgument, key: PathArgument, use_https: SwitchArgument) -> None:
        self.certificate = certificate
        self.key = key
        self.use_https = use_https

    def check(self) -> ArgumentProblem | None:
        if self.certificate.was_set != self.key.was_set:
            return ArgumentProblem.validation_error(
                f"{self.certificate.flag} and {self.key.flag} must be used together", self.certificate.name
            )
        if self.certificate.was_set and not self.use_https.value:
            return ArgumentProblem.validation_error(
                f"{self.certificate.flag} requires {self.use_https.flag}", self.certificate.name
            )
        return None


class MiddlewareLoads:
    """Every ``--web-server-middleware`` must name a loadable middleware class."""

    def __init__(self, argument: PathAndTypeArgument) -> None:
        self.argument = argument

    def check(self) -> ArgumentProblem | None:
        for reference in self.argument.references():
            try:
                load_middleware(reference)()
            except PluginLoadError as exc:
                return ArgumentProblem.validation_error(str(exc), self.argument.name)
            except Exception as exc:  # pylint: disable=broad-except
                return ArgumentProblem.validation_error(
                    f"Failed to create middleware '{reference.type_name}': {exc}", self.argument.name
                )
        return None


class RelativeHtmlFile:
    def __init__(self, argument: StringArgument) -> None:
        self.argument = argument

    def check(self) -> ArgumentProblem | None:
        if Path(self.argument.value).is_absolute():
            return ArgumentProblem.validation_error(
                f"{self.argument.flag} argument must be a relative path", self.argument.name
            )
        return None


class BrowserSupported:
    def __init__(self, argument: EnumArgument, supports_safari: bool) -> None:
        self.argument = argument
        self.supports_safari = supports_safari

    def check(self) -> ArgumentProblem | None:
        if self.argument.value is Browser.SAFARI and not self.supports_safari:
            return ArgumentProblem.validation_error("Safari is only supported on OSX", self.argument.name)
        return None


class AppDirectory:
    def __init__(self, argument: PathArgument) -> None:
        self.argument = argument

    def check(self) -> ArgumentProblem | None:
        if not Path(self.argument.value).is_dir():
            return ArgumentProblem.validation_error(
                f"Failed to find the app bundle at {self.argument.value}", self.argument.name
            )
        return None


class WasmBrowserTestArguments(PlatformTestArguments):
    """Serve a wasm app over HTTP and run it in a browser."""

    def __init__(self, supports_safari: bool = False) -> None:
        super().__init__()
        self.supports_safari = supports_safari
        self.app = PathArgument(
            "app|a",
            "Directory with the app to serve. Default is the current directory",
            Path.cwd(),
        )
        self.browser = EnumArgument(
            "browser|b",
            "Specifies the browser to be used",
            Browser,
            Browser.CHROME,
        )
        self.browser_path = StringArgument(
            "browser-path",
            "Path to the browser binary; bare names are looked up on PATH",
        )
        self.browser_args = RepeatableArgument(
            "browser-arg",
            "Argument to pass to the browser. Repeatable",
        )
        self.html_file = StringArgument(
            "html-file",
            "Main html file to load from the app directory. Default is index.html",
            "index.html",
        )
        self.debugger_port = IntArgument(
            "debugger|d",
            f"Remote debugging port of the browser. Default is {DEFAULT_DEBUGGER_PORT}",
            DEFAULT_DEBUGGER_PORT,
        )
        self.output = EngineOutputArguments()
        self.web_server = WebServerArguments()
        self.no_quit = SwitchArgument(
            "no-quit",
            "Keep the browser open after the app has finished",
        )

    def own_relations(self) -> tuple[ArgumentRelation, ...]:
        return (
            AppDirectory(self.app),
            RelativeHtmlFile(self.html_file),
            BrowserSupported(self.browser, self.supports_safari),
        )


class WasmWebServerArguments(ArgumentGroup):
    """Serve an app directory until the timeout passes or the user interrupts."""

    def __init__(self) -> None:
        self.app = PathArgument(
            "app|a",
            "Directory with the app to serve. Default is the current directory",
            Path.cwd(),
        )
        self.web_server = WebServerArguments()
        self.timeout = TimeSpanArgument(
            "timeout",
            "Time span in the form of \"00:00:00\" or number of seconds to keep serving",
            DEFAULT_RUN_TIMEOUT,
        )

    def own_relations(self) -> tuple[ArgumentRelation, ...]:
        return (AppDirectory(self.app),)
