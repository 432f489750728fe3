"""Local web server hosting a wasm app for browser runs."""

from __future__ import annotations

import functools
import logging
import ssl
import tempfile
import threading
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from http import HTTPStatus
from http.server import SimpleHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path
from types import TracebackType
from urllib.parse import quote, urlencode

from xharness.arguments import PluginReference
from xharness.plugins import resolve_plugin_type

from .certificates import write_self_signed_certificate

LOGGER = logging.getLogger(__name__)

GENERIC_MIDDLEWARE = "GenericHandler"
CONSOLE_PATH = "/console"


class WebServerMiddleware:
    """Plugin hook run before static files are served.

    Subclasses live in a Python file passed through ``--web-server-middleware`` and
    return ``True`` from ``handle`` once they have answered the request.
    """

    def handle(self, request: SimpleHTTPRequestHandler) -> bool:
        return False


def load_middleware(reference: PluginReference) -> type[WebServerMiddleware]:
    return resolve_plugin_type(reference, WebServerMiddleware, {})


@dataclass(frozen=True)
class WebServerOptions:
    """Response headers and transports of the local web server.

    Without ``certificate`` and ``key`` an HTTPS server uses a freshly generated
    self-signed certificate.
    """

    use_cors: bool = False
    use_cross_origin_policy: bool = False
    use_https: bool = False
    certificate: Path | None = None
    key: Path | None = None


class _AppRequestHandler(SimpleHTTPRequestHandler):
    """Serves the app directory and accepts console messages on ``/console``."""

    def __init__(
        self,
        *args,
        on_console: Callable[[str, bool], None],
        middleware: Sequence[WebServerMiddleware],
        options: WebServerOptions,
        **kwargs,
    ) -> None:
        self.on_console = on_console
        self.middleware = middleware
        self.options = options
        super().__init__(*args, **kwargs)

    def do_GET(self) -> None:
        if self._run_middleware():
            return
        super().do_GET()

    def do_POST(self) -> None:
        if self._run_middleware():
            return
        path = self.path.split("?", 1)[0]
        if path not in (CONSOLE_PATH, f"{CONSOLE_PATH}/error"):
            self.send_error(HTTPStatus.NOT_FOUND)
            return
        length = int(self.headers.get("Content-Length") or 0)
        body = self.rfile.read(length).decode("utf-8", errors="replace")
        for line in body.splitlines():
            self.on_console(line, path.endswith("/error"))
        self.send_response(HTTPStatus.NO_CONTENT)
        self.end_headers()

    def end_headers(self) -> None:
        if self.options.use_cors:
            self.send_header("Access-Control-Allow-Origin", "*")
        if self.options.use_cross_origin_policy:
            self.send_header("Cross-Origin-Opener-Policy", "same-origin")
            self.send_header("Cross-Origin-Embedder-Policy", "require-corp")
        super().end_headers()

    def log_message(self, format: str, *args) -> None:  # noqa: A002
        LOGGER.debug("web server: " + format, *args)

    def _run_middleware(self) -> bool:
        return any(handler.handle(self) for handler in self.middleware)


class AppWebServer:
    """Context manager running threaded HTTP (and optionally HTTPS) servers on free local ports."""

    def __init__(
        self,
        app_directory: Path,
        on_console: Callable[[str, bool], None],
        middleware: Sequence[WebServerMiddleware] = (),
        options: WebServerOptions = WebServerOptions(),
        host: str = "127.0.0.1",
    ) -> None:
        handler = functools.partial(
            _AppRequestHandler,
            directory=str(app_directory),
            on_console=on_console,
            middleware=tuple(middleware),
            options=options,
        )
        self.server = ThreadingHTTPServer((host, 0), handler)
        self.server.daemon_threads = True
        self.secure_server: ThreadingHTTPServer | None = None
        if options.use_https:
            self.secure_server = ThreadingHTTPServer((host, 0), handler)
            self.secure_server.daemon_threads = True
            context = _server_context(options, host)
            self.secure_server.socket = context.wrap_socket(self.secure_server.socket, server_side=True)
        self._threads = [
            threading.Thread(target=server.serve_forever, daemon=True) for server in self._servers()
        ]

    @property
    def base_url(self) -> str:
        return _url("http", self.server)

    @property
    def secure_base_url(self) -> str | None:
        if self.secure_server is None:
            return None
        return _url("https", self.secure_server)

    def url_for(self, page: str, app_arguments: Sequence[str] = ()) -> str:
        url = f"{self.base_url}/{quote(Path(page).as_posix())}"
        if app_arguments:
            url += "?" + urlencode([("arg", argument) for argument in app_arguments])
        return url

    def __enter__(self) -> AppWebServer:
        for thread in self._threads:
            thread.start()
        LOGGER.info("Serving the app at %s", self.base_url)
        if self.secure_base_url is not None:
            LOGGER.info("Serving the app at %s", self.secure_base_url)
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        for server in self._servers():
            server.shutdown()
            server.server_close()
        for thread in self._threads:
            thread.join()

    def _servers(self) -> list[ThreadingHTTPServer]:
        servers = [self.server]
        if self.secure_server is not None:
            servers.append(self.secure_server)
        return servers


def _url(scheme: str, server: ThreadingHTTPServer) -> str:
    host, port = server.server_address[:2]
    return f"{scheme}://{host}:{port}"


def _server_context(options: WebServerOptions, host: str) -> ssl.SSLContext:
    context = ssl.SSLContext(ssl.PROTOCOL_TLS_SERVER)
    if options.certificate is not None and options.key is not None:
        context.load_cert_chain(options.certificate, options.key)
        return context
    with tempfile.TemporaryDirectory(prefix="xharness-tls-") as directory:
        certificate, key = write_self_signed_certificate(Path(directory), host)
        context.load_cert_chain(certificate, key)
    return context
