"""CLI entry point for stepup."""

from pathlib import Path

import click

from stepup import __version__
from stepup.cli import config as config_commands
from stepup.cli import remote as remote_commands
from stepup.cli import serve as serve_commands
from stepup.cli import users as users_commands


@click.group()
@click.version_option(version=__version__, prog_name="stepup")
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),  # type: ignore[type-var]
    default=None,
    help="Path to config.yaml (default: ~/.stepup/config.yaml)",
)
@click.pass_context
def cli(ctx: click.Context, config_path: Path | None) -> None:
    """stepup - Step-up authentication decision flow."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path


cli.add_command(config_commands.config)
cli.add_command(remote_commands.remote)
cli.add_command(serve_commands.serve)
cli.add_command(users_commands.users)
