"""Routes process arguments to platform command sets through click groups."""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import Any

import click

from xharness.arguments import protect_verbatim
from xharness.configuration import HarnessSettings
from xharness.exit_codes import ExitCode
from xharness.results_writing import harness_version

from .harness_command import HarnessCommand

LOGGER = logging.getLogger(__name__)

PROGRAM_NAME = "xharness"
LEAF_CONTEXT_SETTINGS = {
    "ignore_unknown_options": True,
    "allow_extra_args": True,
    "help_option_names": [],
}

CommandFactory = Callable[[HarnessSettings, str], HarnessCommand[Any]]


@dataclass(frozen=True)
class CommandSet:
    """Commands of one platform, registered only on hosts that can run them."""

    name: str
    description: str
    commands: tuple[CommandFactory, ...]
    is_supported: Callable[[HarnessSettings], bool] = field(default=lambda _settings: True)
    unsupported_message: str = "Command '{command}' is not available on this host."


class HarnessGroup(click.Group):
    """Group whose help and unavailable platforms end with harness exit codes."""

    def __init__(self, *args: Any, unavailable: dict[str, str] | None = None, **kwargs: Any) -> None:
        kwargs.setdefault("invoke_without_command", True)
        kwargs.setdefault("no_args_is_help", False)
        kwargs.setdefault("context_settings", {"help_option_names": ["-h", "--help"]})
        super().__init__(*args, **kwargs)
        self.unavailable = dict(unavailable or {})

    def get_help_option(self, ctx: click.Context) -> click.Option | None:
        option = super().get_help_option(ctx)
        if option is not None:
            option.callback = _show_group_help
        return option

    def get_command(self, ctx: click.Context, cmd_name: str) -> click.Command | None:
        if cmd_name in self.unavailable:
            return _unavailable_command(cmd_name, self.unavailable[cmd_name])
        return super().get_command(ctx, cmd_name)

    def list_commands(self, ctx: click.Context) -> list[str]:
        return [name for name in super().list_commands(ctx) if name not in self.unavailable]


class CommandRouter:
    """Builds the command tree for the host and dispatches one invocation."""

    def __init__(self, settings: HarnessSettings, command_sets: Sequence[CommandSet]) -> None:
        self.settings = settings
        self.command_sets = tuple(command_sets)

    def route(self, argv: Sequence[str]) -> ExitCode:
        cli = self.build_cli()
        try:
            result = cli.main(
                args=protect_verbatim(argv),
                prog_name=PROGRAM_NAME,
                standalone_mode=False,
            )
        except click.ClickException as exc:
            exc.show()
            return ExitCode.INVALID_ARGUMENTS
        except click.Abort:
            click.echo("Aborted.", err=True)
            return ExitCode.GENERAL_FAILURE
        return _as_exit_code(result)

    def build_cli(self) -> HarnessGroup:
        unavailable = {
            command_set.name: command_set.unsupported_message.format(command=command_set.name)
            for command_set in self.command_sets
            if not command_set.is_supported(self.settings)
        }
        root = HarnessGroup(
            name=PROGRAM_NAME,
            help="Test harness for running test applications on devices, simulators and engines.",
            callback=_require_subcommand,
            unavailable=unavailable,
        )
        for command_set in self.command_sets:
            if command_set.name in unavailable:
                continue
            root.add_command(self._build_group(command_set))
        root.add_command(self._build_help_command(root))
        root.add_command(_build_version_command())
        click.version_option(version=harness_version(), prog_name=PROGRAM_NAME)(root)
        return root

    def _build_group(self, command_set: CommandSet) -> HarnessGroup:
        group = HarnessGroup(
            name=command_set.name,
            help=command_set.description,
            callback=_require_subcommand,
        )
        parent = f"{PROGRAM_NAME} {command_set.name}"
        for factory in command_set.commands:
            command = factory(self.settings, parent)
            group.add_command(_leaf_command(command))
        return group

    def _build_help_command(self, root: HarnessGroup) -> click.Command:
        router = self

        @click.command(name="help", context_settings=LEAF_CONTEXT_SETTINGS, add_help_option=False)
        @click.pass_context
        def help_command(ctx: click.Context) -> ExitCode:
            """Show help for a platform or one of its commands."""
            return router.show_help(ctx, root, tuple(ctx.args))

        return help_command

    def show_help(self, ctx: click.Context, root: HarnessGroup, path: tuple[str, ...]) -> ExitCode:
        root_ctx = ctx.find_root()
        if not path:
            click.echo(root.get_help(root_ctx))
            return ExitCode.HELP_SHOWN
        platform = path[0]
        if platform in root.unavailable:
            click.echo(root.unavailable[platform])
            return ExitCode.INVALID_ARGUMENTS
        group = root.commands.get(platform)
        if not isinstance(group, click.Group):
            click.echo(f"Unknown command '{platform}'", err=True)
            return ExitCode.INVALID_ARGUMENTS
        if len(path) == 1:
            with click.Context(group, info_name=platform, parent=root_ctx) as group_ctx:
                click.echo(group.get_help(group_ctx))
            return ExitCode.HELP_SHOWN
        leaf = group.commands.get(path[1])
        harness_command = getattr(leaf, "harness_command", None)
        if harness_command is None:
            click.echo(f"Unknown command '{platform} {path[1]}'", err=True)
            return ExitCode.INVALID_ARGUMENTS
        click.echo(harness_command.format_help())
        return ExitCode.HELP_SHOWN


def _leaf_command(command: HarnessCommand[Any]) -> click.Command:
    def callback() -> ExitCode:
        return command.invoke(tuple(click.get_current_context().args))

    leaf = click.Command(
        name=command.name,
        callback=callback,
        help=command.description,
        context_settings=LEAF_CONTEXT_SETTINGS,
        add_help_option=False,
    )
    leaf.harness_command = command  # type: ignore[attr-defined]
    return leaf


def _unavailable_command(name: str, message: str) -> click.Command:
    def callback() -> ExitCode:
        click.echo(message)
        return ExitCode.INVALID_ARGUMENTS

    return click.Command(
        name=name,
        callback=callback,
        context_settings=LEAF_CONTEXT_SETTINGS,
        add_help_option=False,
    )


def _build_version_command() -> click.Command:
    @click.command(name="version")
    def version_command() -> ExitCode:
        """Print the harness version."""
        click.echo(f"{PROGRAM_NAME} {harness_version()}")
        return ExitCode.SUCCESS

    return version_command


def _require_subcommand() -> None:
    context = click.get_current_context()
    if context.invoked_subcommand is None:
        click.echo(context.get_help())
        context.exit(int(ExitCode.HELP_SHOWN))


def _show_group_help(ctx: click.Context, _param: click.Parameter, value: bool) -> None:
    if not value or ctx.resilient_parsing:
        return
    click.echo(ctx.get_help(), color=ctx.color)
    ctx.exit(int(ExitCode.HELP_SHOWN))


def _as_exit_code(result: object) -> ExitCode:
    if result is None:
        return ExitCode.SUCCESS
    if isinstance(result, int):
        try:
            return ExitCode(result)
        except ValueError:
            LOGGER.error("Command returned unknown exit code %d", result)
            return ExitCode.GENERAL_FAILURE
    return ExitCode.SUCCESS
