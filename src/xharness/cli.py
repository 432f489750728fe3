"""Command line interface entry point."""

from __future__ import annotations

import logging
import sys
from collections.abc import Sequence

import click

from xharness.commands import CommandRouter
from xharness.configuration import ConfigurationError, HarnessSettings, load_settings
from xharness.console_logging import configure_logging
from xharness.exit_codes import ExitCode
from xharness.platforms.command_sets import build_command_sets

LOGGER = logging.getLogger("xharness.cli")


class CliError(Exception):
    """Custom CLI error."""


def build_router(settings: HarnessSettings) -> CommandRouter:
    return CommandRouter(settings, build_command_sets())


def _load_settings() -> HarnessSettings:
    try:
        return load_settings()
    except ConfigurationError as exc:
        raise CliError(str(exc)) from exc


def main(argv: Sequence[str] | None = None) -> int:
    """CLI entry point for console_scripts wiring."""
    argv = list(argv) if argv is not None else sys.argv[1:]
    try:
        settings = _load_settings()
    except CliError as exc:
        click.echo(str(exc), err=True)
        return int(ExitCode.GENERAL_FAILURE)

    configure_logging(settings)
    LOGGER.debug("XHarness command issued: %s", " ".join(argv))
    exit_code = build_router(settings).route(argv)
    LOGGER.debug("XHarness exit code: %d (%s)", exit_code, exit_code.name)
    return int(exit_code)


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
