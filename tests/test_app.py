"""Tests for the Flask application."""

from __future__ import annotations

from urllib.parse import parse_qs, urlsplit

import pytest
from fakes import CHALLENGE_URL, PASSWORD, FakeDecisionService
from flask.testing import FlaskClient

from stepup.core.outcome import INVALID_CREDENTIALS_MESSAGE, FailureKind
from stepup.web.host import CSRF_TOKEN_KEY, FAILURE_MESSAGES, SESSION_CODE_KEY, SESSION_USER_KEY

LOGIN_URL = "/realms/test/stepup-authenticator/login"
CALLBACK_URL = "/realms/test/stepup-authenticator/callback"
CSRF = "test-csrf-token"


def _with_csrf(client: FlaskClient) -> None:
    with client.session_transaction() as sess:
        sess[CSRF_TOKEN_KEY] = CSRF


def _login(client: FlaskClient, username: str = "alice", password: str = PASSWORD):
    _with_csrf(client)
    return client.post(LOGIN_URL, data={"csrf_token": CSRF, "username": username, "password": password})


def _callback_path(service: FakeDecisionService) -> str:
    """Path and query of the callback URL sent to the service in the last track call."""
    redirect_url = service.json_bodies()[-1]["attributes"]["redirectUrl"]
    parts = urlsplit(redirect_url)
    return f"{parts.path}?{parts.query}"


def test_health_endpoint(client: FlaskClient) -> None:
    """Test the health check endpoint."""
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json == {"status": "healthy"}


def test_index_page(client: FlaskClient) -> None:
    """Test the index page links to the login form."""
    response = client.get("/")
    assert response.status_code == 200
    assert LOGIN_URL.encode() in response.data


class TestLogin:
    """Tests for the login route."""

    def test_get_renders_form(self, client: FlaskClient, service: FakeDecisionService) -> None:
        """Test that the first interaction shows the login form."""
        response = client.get(LOGIN_URL)

        assert response.status_code == 200
        assert b'name="username"' in response.data
        assert b'name="csrf_token"' in response.data
        assert service.requests == []

    @pytest.mark.parametrize("path", ["/realms/other/stepup-authenticator/login", "/realms/test/other/login"])
    def test_unknown_realm_or_authenticator(self, client: FlaskClient, path: str) -> None:
        """Test that only the configured node is served."""
        assert client.get(path).status_code == 404

    def test_post_without_csrf(self, client: FlaskClient, service: FakeDecisionService) -> None:
        """Test that a submission without a CSRF token is rejected."""
        response = client.post(LOGIN_URL, data={"username": "alice", "password": PASSWORD})

        assert response.status_code == 400
        assert b"Invalid request" in response.data
        assert service.requests == []

    @pytest.mark.parametrize(
        ("username", "password"),
        [("alice", "wrong"), ("mallory", PASSWORD), ("alice", ""), ("", "")],
    )
    def test_bad_credentials(
        self, client: FlaskClient, service: FakeDecisionService, username: str, password: str
    ) -> None:
        """Test that bad credentials show the form again with one generic message."""
        response = _login(client, username, password)

        assert response.status_code == 401
        assert b"Invalid username or password" in response.data
        assert b'name="username"' in response.data
        assert service.requests == []

    def test_allow_signs_in(self, client: FlaskClient, service: FakeDecisionService) -> None:
        """Test that an allowed login completes without a challenge."""
        service.track_response = {"state": "ALLOW", "isEnrolled": True}

        response = _login(client)

        assert response.status_code == 302
        assert response.headers["Location"] == "/"
        with client.session_transaction() as sess:
            assert sess[SESSION_USER_KEY] == "user-1"

        assert b"Signed in as user user-1" in client.get("/").data

    def test_track_request(self, client: FlaskClient, service: FakeDecisionService) -> None:
        """Test the risk evaluation request sent for a login."""
        service.track_response = {"state": "CHALLENGE_REQUIRED", "url": CHALLENGE_URL, "isEnrolled": True}
        _login(client)

        body = service.json_bodies()[0]
        assert str(service.requests[0].url).endswith("/track")
        assert body["action"] == "sign-in"
        assert body["userId"] == "user-1"
        assert body["attributes"]["username"] == "alice"
        assert body["attributes"]["ipAddress"] == "127.0.0.1"

        redirect_url = urlsplit(body["attributes"]["redirectUrl"])
        query = parse_qs(redirect_url.query)
        assert redirect_url.path == CALLBACK_URL
        assert query["kc_client_id"] == ["web"]
        with client.session_transaction() as sess:
            assert query["kc_session_code"] == [sess[SESSION_CODE_KEY]]
            assert query["kc_tab_id"] == [sess["stepup_tab_id"]]

    def test_challenge_required_redirects(self, client: FlaskClient, service: FakeDecisionService) -> None:
        """Test that a risky login is sent to the challenge page."""
        service.track_response = {"state": "CHALLENGE_REQUIRED", "url": CHALLENGE_URL, "isEnrolled": True}

        response = _login(client)

        assert response.status_code == 302
        assert response.headers["Location"] == CHALLENGE_URL
        with client.session_transaction() as sess:
            assert SESSION_USER_KEY not in sess

    def test_block_denies(self, client: FlaskClient, service: FakeDecisionService) -> None:
        """Test that a blocked login fails."""
        service.track_response = {"state": "BLOCK", "isEnrolled": True}

        response = _login(client)

        assert response.status_code == 401
        assert b"Access denied" in response.data

    def test_remote_error(self, client: FlaskClient, service: FakeDecisionService) -> None:
        """Test that a failing decision service ends in an internal error."""
        service.status_code = 500

        response = _login(client)

        assert response.status_code == 500
        assert b"internal error" in response.data
        with client.session_transaction() as sess:
            assert SESSION_USER_KEY not in sess

    def test_challenge_without_url_is_internal_error(self, client: FlaskClient, service: FakeDecisionService) -> None:
        """Test that a challenge decision without a challenge URL is not redirected."""
        service.track_response = {"state": "CHALLENGE_REQUIRED", "isEnrolled": True}

        response = _login(client)

        assert response.status_code == 500
        assert "Location" not in response.headers
        assert b"internal error" in response.data


class TestCallback:
    """Tests for the challenge callback route."""

    def _challenge(self, client: FlaskClient, service: FakeDecisionService) -> str:
        service.track_response = {"state": "CHALLENGE_REQUIRED", "url": CHALLENGE_URL, "isEnrolled": True}
        assert _login(client).status_code == 302
        return _callback_path(service)

    def test_valid_token_signs_in(self, client: FlaskClient, service: FakeDecisionService) -> None:
        """Test returning from a passed challenge."""
        path = self._challenge(client, service)

        response = client.get(f"{path}&token=tok-123")

        assert response.status_code == 302
        assert response.headers["Location"] == "/"
        assert service.json_bodies()[-1] == {"token": "tok-123"}
        with client.session_transaction() as sess:
            assert sess[SESSION_USER_KEY] == "user-1"

    def test_failed_challenge_denied(self, client: FlaskClient, service: FakeDecisionService) -> None:
        """Test returning from a failed challenge."""
        path = self._challenge(client, service)
        service.validate_response = {"state": "CHALLENGE_FAILED", "userId": "user-1"}

        response = client.get(f"{path}&token=tok-123")

        assert response.status_code == 401
        with client.session_transaction() as sess:
            assert SESSION_USER_KEY not in sess

    def test_unknown_user_from_token(self, client: FlaskClient, service: FakeDecisionService) -> None:
        """Test a validated token for a user the directory does not know."""
        path = self._challenge(client, service)
        service.validate_response = {"state": "CHALLENGE_SUCCEEDED", "userId": "user-9"}

        response = client.get(f"{path}&token=tok-123")

        assert response.status_code == 401
        assert b"could not be completed" in response.data

    def test_session_code_is_single_use(self, client: FlaskClient, service: FakeDecisionService) -> None:
        """Test that replaying a callback URL is rejected."""
        path = self._challenge(client, service)
        assert client.get(f"{path}&token=tok-123").status_code == 302

        response = client.get(f"{path}&token=tok-123")

        assert response.status_code == 400
        assert b"session has expired" in response.data

    def test_wrong_session_code(self, client: FlaskClient, service: FakeDecisionService) -> None:
        """Test that a callback with a forged session code is rejected."""
        self._challenge(client, service)
        calls = len(service.requests)

        response = client.get(f"{CALLBACK_URL}?kc_session_code=forged&token=tok-123")

        assert response.status_code == 400
        assert len(service.requests) == calls

    def test_callback_without_login(self, client: FlaskClient, service: FakeDecisionService) -> None:
        """Test a callback in a browser session that never started a login."""
        response = client.get(f"{CALLBACK_URL}?kc_session_code=abc&token=tok-123")

        assert response.status_code == 400
        assert service.requests == []


def test_failure_messages_share_credential_message() -> None:
    """Test that the error page and the login form use the same credential message."""
    assert FAILURE_MESSAGES[FailureKind.INVALID_CREDENTIALS] == INVALID_CREDENTIALS_MESSAGE
    assert set(FAILURE_MESSAGES) == set(FailureKind)
