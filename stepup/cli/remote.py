"""CLI commands that call the remote decision service directly."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from stepup.cli.config import error_result, json_option, output_result

if TYPE_CHECKING:
    from stepup.core.config import FlowConfig
    from stepup.core.remote import RemoteDecisionClient


def _client(ctx: click.Context) -> tuple[FlowConfig, RemoteDecisionClient]:
    """Resolve the node configuration and create a client for it."""
    from stepup.core.config import load_config
    from stepup.core.errors import ConfigError
    from stepup.core.remote import RemoteDecisionClient

    output_json = ctx.params.get("output_json", False)
    app_config = load_config(ctx.obj.get("config_path"))
    try:
        flow_config = app_config.node.flow_config()
    except ConfigError as e:
        error_result(str(e), output_json)
    return flow_config, RemoteDecisionClient.from_config(flow_config)


@click.group()
def remote() -> None:
    """Call the remote risk-and-challenge service."""
    pass


@remote.command("validate")
@click.argument("token")
@json_option
@click.pass_context
def remote_validate(ctx: click.Context, token: str, output_json: bool) -> None:
    """Validate a challenge TOKEN and show the result."""
    from stepup.core.errors import RemoteError
    from stepup.core.remote import ValidateChallengeRequest

    _, client = _client(ctx)
    try:
        with client:
            response = client.validate_challenge(ValidateChallengeRequest(token=token))
    except RemoteError as e:
        error_result(str(e), output_json)

    data = {
        "state": str(response.state),
        "user_id": response.user_id,
        "is_valid": response.is_valid,
        "action": response.action,
    }
    if output_json:
        output_result(data, as_json=True)
    else:
        click.echo(f"State: {response.state}")
        click.echo(f"User ID: {response.user_id or '-'}")


@remote.command("track")
@click.argument("user_id")
@click.option("--username", default=None, help="Username sent as an attribute")
@click.option("--ip", "ip_address", default=None, help="IP address sent as an attribute")
@click.option("--user-agent", default=None, help="User agent sent as an attribute")
@click.option("--redirect-url", default=None, help="Redirect URL sent as an attribute")
@json_option
@click.pass_context
def remote_track(
    ctx: click.Context,
    user_id: str,
    username: str | None,
    ip_address: str | None,
    user_agent: str | None,
    redirect_url: str | None,
    output_json: bool,
) -> None:
    """Track the configured action for USER_ID and show the decision."""
    from stepup.core.errors import RemoteError
    from stepup.core.remote import TrackAttributes, TrackRequest

    flow_config, client = _client(ctx)
    request = TrackRequest(
        action=flow_config.action_code,
        user_id=user_id,
        attributes=TrackAttributes(
            redirect_url=redirect_url,
            ip_address=ip_address,
            user_agent=user_agent,
            username=username,
        ),
    )
    try:
        with client:
            response = client.track(request)
    except RemoteError as e:
        error_result(str(e), output_json)

    data = {
        "state": str(response.state),
        "url": response.url,
        "is_enrolled": response.is_enrolled,
    }
    if output_json:
        output_result(data, as_json=True)
    else:
        click.echo(f"State: {response.state}")
        click.echo(f"Enrolled: {'yes' if response.is_enrolled else 'no'}")
        if response.url:
            click.echo(f"Challenge URL: {response.url}")
