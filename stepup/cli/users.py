"""User management CLI commands for the reference host."""

from __future__ import annotations

import uuid
from pathlib import Path

import click

from stepup.cli.config import error_result, json_option, output_result


@click.group()
def users() -> None:
    """Manage users of the reference web host."""
    pass


@users.command("add")
@click.argument("username")
@click.option("--id", "user_id", default=None, help="User id (default: random UUID)")
@click.password_option(help="Password for the user")
@json_option
@click.pass_context
def users_add(
    ctx: click.Context,
    username: str,
    user_id: str | None,
    password: str,
    output_json: bool,
) -> None:
    """Add a user with a hashed password to config.yaml.

    Examples:

        # Prompt for the password
        stepup users add alice

        # Use a fixed user id
        stepup users add alice --id 7f0c...
    """
    from stepup.core.config import DEFAULT_CONFIG_FILE, load_config
    from stepup.core.users import UserDirectory

    path: Path = ctx.obj.get("config_path") or DEFAULT_CONFIG_FILE
    app_config = load_config(path)

    directory = UserDirectory.from_config(app_config.users)
    if directory.get_by_username(username) is not None:
        error_result(f"User already exists: {username}", output_json)

    user = directory.create_user(user_id or str(uuid.uuid4()), username, password)
    app_config.users.append(user.to_dict())
    app_config.save(path)

    if output_json:
        output_result({"status": "created", "id": user.id, "username": user.username}, as_json=True)
    else:
        click.echo(f"Added user {user.username} ({user.id})")


@users.command("list")
@json_option
@click.pass_context
def users_list(ctx: click.Context, output_json: bool) -> None:
    """List configured users."""
    from stepup.core.config import load_config

    app_config = load_config(ctx.obj.get("config_path"))
    entries = [{"id": str(u.get("id")), "username": u.get("username")} for u in app_config.users]

    if output_json:
        output_result({"users": entries}, as_json=True)
        return

    if not entries:
        click.echo("No users configured.")
        return

    for entry in entries:
        click.echo(f"{entry['username']}  {entry['id']}")
