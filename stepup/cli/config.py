"""Configuration management CLI commands."""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any, NoReturn

import click

from stepup.core.config import PROP_SECRET_KEY

# Common option for JSON output
json_option = click.option(
    "--json",
    "output_json",
    is_flag=True,
    help="Output results as JSON for scripting",
)


def output_result(data: dict[str, Any], as_json: bool = False) -> None:
    """Output result as JSON or formatted text.

    Args:
        data: Data to output
        as_json: If True, output as JSON
    """
    if as_json:
        click.echo(json.dumps(data, indent=2, default=str))


def error_result(message: str, as_json: bool = False) -> NoReturn:
    """Output error message and exit.

    This function never returns - it either raises ClickException or calls sys.exit.

    Args:
        message: Error message
        as_json: If True, output as JSON
    """
    if as_json:
        click.echo(json.dumps({"error": message}, indent=2), err=True)
        sys.exit(1)
    raise click.ClickException(message)


def _redacted(data: dict[str, Any]) -> dict[str, Any]:
    """Mask secrets and password hashes in a config dictionary."""
    result = json.loads(json.dumps(data, default=str))
    properties = result.get("node", {}).get("properties", {})
    if properties.get(PROP_SECRET_KEY):
        properties[PROP_SECRET_KEY] = "[REDACTED]"
    if result.get("server", {}).get("secret_key"):
        result["server"]["secret_key"] = "[REDACTED]"
    for user in result.get("users", []):
        for key in ("password_hash", "password_salt"):
            if user.get(key):
                user[key] = "[REDACTED]"
    return result


@click.group()
def config() -> None:
    """Manage stepup configuration."""
    pass


@config.command("init")
@click.option(
    "--force",
    is_flag=True,
    help="Overwrite an existing config file.",
)
@json_option
@click.pass_context
def config_init(ctx: click.Context, force: bool, output_json: bool) -> None:
    """Write a commented default config.yaml.

    Examples:

        # Create ~/.stepup/config.yaml
        stepup config init

        # Overwrite an existing file
        stepup config init --force
    """
    from stepup.core.config import DEFAULT_CONFIG_FILE, get_default_config_yaml

    path: Path = ctx.obj.get("config_path") or DEFAULT_CONFIG_FILE

    if path.exists() and not force:
        if output_json:
            output_result({"status": "exists", "config_file": str(path)}, as_json=True)
            return
        click.echo(f"Config file already exists: {path}")
        click.echo("Use --force to overwrite it.")
        return

    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(get_default_config_yaml())

    if output_json:
        output_result({"status": "created", "config_file": str(path)}, as_json=True)
    else:
        click.echo(f"Config file written to: {path}")
        click.echo("")
        click.echo("Next steps:")
        click.echo("  1. Set stepup.secretKey and stepup.baseUrl under node.properties")
        click.echo("  2. Run 'stepup users add <username>' to add a user")
        click.echo("  3. Run 'stepup serve' to start the web host")


@config.command("show")
@json_option
@click.pass_context
def config_show(ctx: click.Context, output_json: bool) -> None:
    """Show the effective configuration with secrets masked."""
    from stepup.core.config import load_config

    app_config = load_config(ctx.obj.get("config_path"))
    data = _redacted(app_config.to_dict())

    if output_json:
        output_result(data, as_json=True)
        return

    click.echo(f"Server: {data['server']['host']}:{data['server']['port']}")
    click.echo(f"Realm: {data['node']['realm']}")
    click.echo(f"Client: {data['node']['client_id']}")
    click.echo("Provider properties:")
    for key, value in sorted(data["node"]["properties"].items()):
        click.echo(f"  {key}: {value}")
    click.echo(f"Users: {len(data['users'])}")


@config.command("check")
@json_option
@click.pass_context
def config_check(ctx: click.Context, output_json: bool) -> None:
    """Check that the authenticator node configuration resolves.

    Exits with a non-zero status if the secret key or base URL is missing.
    """
    from stepup.core.config import load_config
    from stepup.core.errors import ConfigError

    app_config = load_config(ctx.obj.get("config_path"))

    try:
        flow_config = app_config.node.flow_config()
    except ConfigError as e:
        error_result(str(e), output_json)

    data = {
        "status": "ok",
        "base_url": flow_config.base_url,
        "action_code": flow_config.action_code,
        "enroll_by_default": flow_config.enroll_by_default,
        "tenant_id": flow_config.tenant_id,
    }

    if output_json:
        output_result(data, as_json=True)
    else:
        click.echo("Configuration OK")
        click.echo(f"  Base URL: {flow_config.base_url}")
        click.echo(f"  Action code: {flow_config.action_code}")
        click.echo(f"  Enroll by default: {'yes' if flow_config.enroll_by_default else 'no'}")
