"""Server CLI commands."""

import click

from stepup.core.errors import ConfigError


@click.command()
@click.option(
    "--host",
    "-h",
    default=None,
    help="Host to bind to (default: from config or 127.0.0.1)",
)
@click.option(
    "--port",
    "-p",
    type=int,
    default=None,
    help="Port to bind to (default: from config or 8080)",
)
@click.option(
    "--debug",
    is_flag=True,
    help="Enable debug mode",
)
@click.pass_context
def serve(ctx: click.Context, host: str | None, port: int | None, debug: bool) -> None:
    """Start the stepup reference web host.

    Examples:

        # Start with settings from config.yaml
        stepup serve

        # Start on a custom port
        stepup serve --port 9080
    """
    from stepup.app import run_server
    from stepup.core.config import load_config

    config = load_config(ctx.obj.get("config_path"))

    if debug:
        config.server.debug = True

    try:
        run_server(app_config=config, host=host, port=port)
    except ConfigError as e:
        raise click.ClickException(str(e)) from None
