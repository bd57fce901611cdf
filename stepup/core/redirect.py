"""Callback URL construction.

The remote service sends the browser back to this URL once an out-of-band
challenge is done. The URL carries the identifiers the host needs to resume
the flow (client, execution, tab, session code and action URL).
"""

from __future__ import annotations

from dataclasses import dataclass
from urllib.parse import quote, urlsplit

from stepup.core.config import PROVIDER_ID


def _encode(value: str) -> str:
    return quote(value, safe="")


def build_callback_url(
    base_uri: str,
    realm: str,
    client_id: str,
    execution_id: str,
    tab_id: str,
    session_code: str,
    action_url: str,
    authenticator_path: str = PROVIDER_ID,
) -> str:
    """Build the absolute callback URL for a flow.

    Args:
        base_uri: Base URI of the host, with or without trailing slashes.
        realm: Realm name.
        client_id: Client the user is logging in to.
        execution_id: Id of the authenticator execution within the flow.
        tab_id: Browser tab id of the authentication session.
        session_code: One-time access code for the current step.
        action_url: URL the host posts the flow's next step to.
        authenticator_path: Path segment identifying the authenticator.

    Returns:
        Callback URL with every component percent-encoded individually.

    Raises:
        ValueError: If base_uri is not an absolute URL.
    """
    parts = urlsplit(base_uri)
    if not parts.scheme or not parts.netloc:
        raise ValueError(f"Base URI must be absolute: {base_uri!r}")

    query = "&".join(
        f"{name}={_encode(value)}"
        for name, value in (
            ("kc_client_id", client_id),
            ("kc_execution", execution_id),
            ("kc_tab_id", tab_id),
            ("kc_session_code", session_code),
            ("kc_action_url", action_url),
        )
    )
    return (
        f"{base_uri.rstrip('/')}/realms/{_encode(realm)}"
        f"/{_encode(authenticator_path)}/callback?{query}"
    )


@dataclass(frozen=True)
class CallbackContext:
    """Per-interaction identifiers needed to build the callback URL."""

    base_uri: str
    realm: str
    client_id: str
    execution_id: str
    tab_id: str
    session_code: str
    action_url: str
    authenticator_path: str = PROVIDER_ID

    def build_url(self) -> str:
        """Build the callback URL for this context."""
        return build_callback_url(
            base_uri=self.base_uri,
            realm=self.realm,
            client_id=self.client_id,
            execution_id=self.execution_id,
            tab_id=self.tab_id,
            session_code=self.session_code,
            action_url=self.action_url,
            authenticator_path=self.authenticator_path,
        )
