"""Integration tests for the local web server and the browser runner."""

from __future__ import annotations

import base64
import logging
import ssl
import urllib.error
import urllib.request
from collections.abc import Sequence
from datetime import timedelta
from pathlib import Path

import pytest
from xharness.arguments import ArgumentSet, PluginReference
from xharness.configuration import HarnessSettings
from xharness.exit_codes import ExitCode
from xharness.platforms.wasm import (
    AppWebServer,
    BrowserBackend,
    WasmBrowserTestArguments,
    WasmWebServerCommand,
    WebServerOptions,
    load_middleware,
    write_self_signed_certificate,
)
from xharness.run_execution import BackendFailure

MIDDLEWARE_SOURCE = """
from http import HTTPStatus

from xharness.platforms.wasm import WebServerMiddleware


class PingMiddleware(WebServerMiddleware):
    def handle(self, request):
        if request.path != "/ping":
            return False
        body = b"pong"
        request.send_response(HTTPStatus.OK)
        request.send_header("Content-Length", str(len(body)))
        request.end_headers()
        request.wfile.write(body)
        return True
"""

RESULTS_XML = """<assemblies>
  <assembly name="Browser.Tests.dll" total="1" passed="1" failed="0" skipped="0">
    <collection name="Browser.Tests.Dom">
      <test name="Browser.Tests.Dom.Loads" type="Browser.Tests.Dom" method="Loads" result="Pass" />
    </collection>
  </assembly>
</assemblies>"""


def _app(tmp_path: Path) -> Path:
    app = tmp_path / "app"
    app.mkdir(exist_ok=True)
    (app / "index.html").write_text("<html>tests</html>", encoding="utf-8")
    return app


def _post(url: str, body: str) -> int:
    request = urllib.request.Request(url, data=body.encode("utf-8"), method="POST")
    with urllib.request.urlopen(request, timeout=5) as response:
        return response.status


def _results_line() -> str:
    payload = RESULTS_XML.encode("utf-8")
    return f"STARTRESULTXML {len(payload)} {base64.b64encode(payload).decode('ascii')} ENDRESULTXML"


class _FakeBrowserProcess:
    def __init__(self, exit_code: int | None = None) -> None:
        self.exit_code = exit_code
        self.terminated = False

    def poll(self) -> int | None:
        return self.exit_code

    def terminate(self) -> None:
        self.terminated = True
        self.exit_code = 0

    def wait(self, timeout: float | None = None) -> int:
        return self.exit_code or 0


class _FakeBrowser:
    """Posts canned console lines to the server the way the test page would."""

    def __init__(self, lines: Sequence[str], exit_code: int | None = None) -> None:
        self.lines = lines
        self.exit_code = exit_code
        self.commands: list[list[str]] = []
        self.process: _FakeBrowserProcess | None = None

    def __call__(self, command: Sequence[str]) -> _FakeBrowserProcess:
        self.commands.append(list(command))
        base_url = command[-1].split("/index.html", 1)[0]
        for line in self.lines:
            _post(f"{base_url}/console", line)
        self.process = _FakeBrowserProcess(self.exit_code)
        return self.process


def _browser_arguments(tmp_path: Path, *extra: str, supports_safari: bool = False) -> WasmBrowserTestArguments:
    browser = tmp_path / "chrome"
    browser.write_text("#!/bin/sh\n", encoding="utf-8")
    browser.chmod(0o755)
    arguments = WasmBrowserTestArguments(supports_safari=supports_safari)
    argument_set = ArgumentSet(arguments)
    outcome = argument_set.parse(
        ["--app", str(_app(tmp_path)), "--browser-path", str(browser), "-o", str(tmp_path / "out"), *extra]
    )
    assert outcome.problems == ()
    assert argument_set.validate() == ()
    return arguments


def test_static_files_are_served_from_the_app_directory(tmp_path: Path) -> None:
    with AppWebServer(_app(tmp_path), lambda line, is_error: None) as server:
        with urllib.request.urlopen(f"{server.base_url}/index.html", timeout=5) as response:
            body = response.read().decode("utf-8")
            headers = response.headers

    assert body == "<html>tests</html>"
    assert headers.get("Access-Control-Allow-Origin") is None


def test_console_messages_are_forwarded_with_their_stream(tmp_path: Path) -> None:
    received: list[tuple[str, bool]] = []

    with AppWebServer(_app(tmp_path), lambda line, is_error: received.append((line, is_error))) as server:
        assert _post(f"{server.base_url}/console", "first\nsecond") == 204
        assert _post(f"{server.base_url}/console/error", "broken") == 204

    assert received == [("first", False), ("second", False), ("broken", True)]


def test_posts_to_other_paths_are_rejected(tmp_path: Path) -> None:
    with AppWebServer(_app(tmp_path), lambda line, is_error: None) as server:
        with pytest.raises(urllib.error.HTTPError) as excinfo:
            _post(f"{server.base_url}/upload", "data")

    assert excinfo.value.code == 404


def test_cors_and_cross_origin_policy_headers_are_opt_in(tmp_path: Path) -> None:
    options = WebServerOptions(use_cors=True, use_cross_origin_policy=True)

    with AppWebServer(_app(tmp_path), lambda line, is_error: None, options=options) as server:
        with urllib.request.urlopen(f"{server.base_url}/index.html", timeout=5) as response:
            headers = response.headers

    assert headers["Access-Control-Allow-Origin"] == "*"
    assert headers["Cross-Origin-Opener-Policy"] == "same-origin"
    assert headers["Cross-Origin-Embedder-Policy"] == "require-corp"


def test_page_url_carries_app_arguments(tmp_path: Path) -> None:
    with AppWebServer(_app(tmp_path), lambda line, is_error: None) as server:
        url = server.url_for("tests/index.html", ["--run", "Browser Tests.dll"])

        assert url == f"{server.base_url}/tests/index.html?arg=--run&arg=Browser+Tests.dll"


def test_middleware_can_answer_requests(tmp_path: Path) -> None:
    plugin = tmp_path / "ping.py"
    plugin.write_text(MIDDLEWARE_SOURCE, encoding="utf-8")
    middleware = load_middleware(PluginReference(type_name="PingMiddleware", path=plugin))

    with AppWebServer(_app(tmp_path), lambda line, is_error: None, [middleware()]) as server:
        with urllib.request.urlopen(f"{server.base_url}/ping", timeout=5) as response:
            body = response.read()

    assert body == b"pong"


def test_browser_run_collects_results_posted_by_the_page(tmp_path: Path) -> None:
    browser = _FakeBrowser([_results_line(), "[PASS] Loads", "WASM EXIT 0"])
    arguments = _browser_arguments(tmp_path, "--set-web-server-http-env", "DEVSERVER_URL")
    arguments.passthrough = ("--run", "Browser.Tests.dll")

    outcome = BrowserBackend(HarnessSettings(), browser).run(arguments, timedelta(seconds=30))

    assert outcome.exit_code is ExitCode.SUCCESS
    assert outcome.summary is not None
    assert outcome.summary.name == "Chrome"
    command = browser.commands[0]
    assert command[:4] == [
        str(tmp_path / "chrome"),
        "--headless",
        "--incognito",
        "--remote-debugging-port=9222",
    ]
    assert "?arg=--setenv%3DDEVSERVER_URL%3Dhttp%3A%2F%2F127.0.0.1%3A" in command[-1]
    assert command[-1].endswith("&arg=--run&arg=Browser.Tests.dll")
    assert browser.process is not None and browser.process.terminated
    log = (tmp_path / "out" / "wasm-console.log").read_text(encoding="utf-8")
    assert log == "[PASS] Loads\nWASM EXIT 0\n"


def test_browser_exiting_early_is_a_general_failure(tmp_path: Path) -> None:
    browser = _FakeBrowser(["loading"], exit_code=0)

    with pytest.raises(BackendFailure) as excinfo:
        BrowserBackend(HarnessSettings(), browser).run(_browser_arguments(tmp_path), timedelta(seconds=30))

    assert excinfo.value.exit_code is ExitCode.GENERAL_FAILURE
    assert str(excinfo.value) == "Browser exited before the app reported its exit code"


def test_firefox_is_started_with_its_debugger_server(tmp_path: Path) -> None:
    browser = _FakeBrowser(["WASM EXIT 0"])
    arguments = _browser_arguments(tmp_path, "--browser", "Firefox", "--debugger", "6000")

    BrowserBackend(HarnessSettings(), browser).run(arguments, timedelta(seconds=30))

    assert browser.commands[0][1:4] == ["-headless", "-start-debugger-server", "6000"]


def test_safari_requires_macos(tmp_path: Path) -> None:
    argument_set = ArgumentSet(WasmBrowserTestArguments(supports_safari=False))
    argument_set.parse(["--app", str(_app(tmp_path)), "-b", "Safari", "-o", str(tmp_path / "out")])

    messages = [problem.message for problem in argument_set.validate()]

    assert messages == ["Safari is only supported on OSX"]


def test_html_file_must_be_relative(tmp_path: Path) -> None:
    argument_set = ArgumentSet(WasmBrowserTestArguments())
    argument_set.parse(
        ["--app", str(_app(tmp_path)), "--html-file", str(tmp_path / "index.html"), "-o", str(tmp_path / "out")]
    )

    messages = [problem.message for problem in argument_set.validate()]

    assert messages == ["--html-file argument must be a relative path"]


def test_app_directory_must_exist(tmp_path: Path) -> None:
    argument_set = ArgumentSet(WasmBrowserTestArguments())
    argument_set.parse(["--app", str(tmp_path / "missing"), "-o", str(tmp_path / "out")])

    messages = [problem.message for problem in argument_set.validate()]

    assert messages == [f"Failed to find the app bundle at {tmp_path / 'missing'}"]


def _insecure_context() -> ssl.SSLContext:
    context = ssl.create_default_context()
    context.check_hostname = False
    context.verify_mode = ssl.CERT_NONE
    return context


def test_https_serves_the_app_with_a_generated_certificate(tmp_path: Path) -> None:
    options = WebServerOptions(use_https=True)

    with AppWebServer(_app(tmp_path), lambda line, is_error: None, options=options) as server:
        assert server.secure_base_url is not None
        assert server.secure_base_url.startswith("https://127.0.0.1:")
        with urllib.request.urlopen(
            f"{server.secure_base_url}/index.html", timeout=5, context=_insecure_context()
        ) as response:
            body = response.read().decode("utf-8")
        with urllib.request.urlopen(f"{server.base_url}/index.html", timeout=5) as response:
            plain = response.read().decode("utf-8")

    assert body == "<html>tests</html>"
    assert plain == body


def test_https_uses_the_given_certificate(tmp_path: Path) -> None:
    tls = tmp_path / "tls"
    tls.mkdir()
    certificate, key = write_self_signed_certificate(tls, "127.0.0.1")
    options = WebServerOptions(use_https=True, certificate=certificate, key=key)

    with AppWebServer(_app(tmp_path), lambda line, is_error: None, options=options) as server:
        assert server.secure_server is not None
        host, port = server.secure_server.server_address[:2]
        served = ssl.get_server_certificate((host, port))

    expected = certificate.read_text(encoding="ascii")
    assert ssl.PEM_cert_to_DER_cert(served) == ssl.PEM_cert_to_DER_cert(expected)


def test_plain_server_has_no_secure_url(tmp_path: Path) -> None:
    with AppWebServer(_app(tmp_path), lambda line, is_error: None) as server:
        assert server.secure_base_url is None


def test_browser_run_over_https_passes_both_urls(tmp_path: Path) -> None:
    browser = _FakeBrowser(["WASM EXIT 0"])
    arguments = _browser_arguments(
        tmp_path,
        "--web-server-use-https",
        "--set-web-server-http-env",
        "HTTP_URL",
        "--set-web-server-https-env",
        "HTTPS_URL",
    )

    outcome = BrowserBackend(HarnessSettings(), browser).run(arguments, timedelta(seconds=30))

    assert outcome.exit_code is ExitCode.SUCCESS
    command = browser.commands[0]
    assert "--ignore-certificate-errors" in command
    assert "arg=--setenv%3DHTTP_URL%3Dhttp%3A%2F%2F127.0.0.1%3A" in command[-1]
    assert "arg=--setenv%3DHTTPS_URL%3Dhttps%3A%2F%2F127.0.0.1%3A" in command[-1]


def test_https_environment_is_ignored_without_https(tmp_path: Path) -> None:
    browser = _FakeBrowser(["WASM EXIT 0"])
    arguments = _browser_arguments(tmp_path, "--set-web-server-https-env", "HTTPS_URL")

    BrowserBackend(HarnessSettings(), browser).run(arguments, timedelta(seconds=30))

    assert "HTTPS_URL" not in browser.commands[0][-1]
    assert "--ignore-certificate-errors" not in browser.commands[0]


def test_certificate_needs_its_key_and_https(tmp_path: Path) -> None:
    certificate, key = write_self_signed_certificate(tmp_path, "127.0.0.1")
    base = ["--app", str(_app(tmp_path)), "-o", str(tmp_path / "out")]

    without_key = ArgumentSet(WasmBrowserTestArguments())
    without_key.parse([*base, "--web-server-use-https", "--web-server-certificate", str(certificate)])
    without_https = ArgumentSet(WasmBrowserTestArguments())
    without_https.parse([*base, "--web-server-certificate", str(certificate), "--web-server-key", str(key)])

    assert [problem.message for problem in without_key.validate()] == [
        "--web-server-certificate and --web-server-key must be used together"
    ]
    assert [problem.message for problem in without_https.validate()] == [
        "--web-server-certificate requires --web-server-use-https"
    ]


def test_failing_middleware_constructor_is_a_validation_error(tmp_path: Path) -> None:
    plugin = tmp_path / "broken.py"
    plugin.write_text(
        "from xharness.platforms.wasm import WebServerMiddleware\n\n\n"
        "class BrokenMiddleware(WebServerMiddleware):\n"
        "    def __init__(self):\n"
        "        raise RuntimeError('no config')\n",
        encoding="utf-8",
    )
    argument_set = ArgumentSet(WasmBrowserTestArguments())
    argument_set.parse(
        [
            "--app",
            str(_app(tmp_path)),
            "--web-server-middleware",
            f"{plugin},BrokenMiddleware",
            "-o",
            str(tmp_path / "out"),
        ]
    )

    messages = [problem.message for problem in argument_set.validate()]

    assert messages == ["Failed to create middleware 'BrokenMiddleware': no config"]


def test_webserver_command_serves_until_told_to_stop(tmp_path: Path, capsys, caplog) -> None:
    caplog.set_level(logging.INFO)
    fetched: list[str] = []

    def serve_until(server: AppWebServer, timeout: timedelta) -> None:
        assert timeout == timedelta(seconds=90)
        with urllib.request.urlopen(f"{server.base_url}/index.html", timeout=5) as response:
            fetched.append(response.read().decode("utf-8"))
        _post(f"{server.base_url}/console", "hello from the page")

    command = WasmWebServerCommand(HarnessSettings(disable_colored_output=True), "xharness wasm", serve_until)

    exit_code = command.invoke(
        ["--app", str(_app(tmp_path)), "--timeout", "90", "--set-web-server-http-env", "DEVSERVER_URL"]
    )

    assert exit_code is ExitCode.SUCCESS
    assert fetched == ["<html>tests</html>"]
    lines = capsys.readouterr().out.splitlines()
    assert lines[0].startswith("HTTP: http://127.0.0.1:")
    assert lines[1] == "DEVSERVER_URL=" + lines[0].removeprefix("HTTP: ")
    assert "hello from the page" in caplog.messages


def test_webserver_command_prints_the_https_url(tmp_path: Path, capsys) -> None:
    command = WasmWebServerCommand(HarnessSettings(), "xharness wasm", lambda server, timeout: None)

    exit_code = command.invoke(
        ["--app", str(_app(tmp_path)), "--web-server-use-https", "--set-web-server-https-env", "SECURE_URL"]
    )

    assert exit_code is ExitCode.SUCCESS
    lines = capsys.readouterr().out.splitlines()
    assert lines[1].startswith("HTTPS: https://127.0.0.1:")
    assert lines[2] == "SECURE_URL=" + lines[1].removeprefix("HTTPS: ")


def test_webserver_command_rejects_a_missing_app_directory(tmp_path: Path) -> None:
    command = WasmWebServerCommand(HarnessSettings(), "xharness wasm", lambda server, timeout: None)

    assert command.invoke(["--app", str(tmp_path / "missing")]) is ExitCode.INVALID_ARGUMENTS
