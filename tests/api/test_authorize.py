from __future__ import annotations

from urllib.parse import parse_qs, urlparse

import pytest
from fastapi.testclient import TestClient

from tests.conftest import CLIENT_ID, REDIRECT_URI


def _authorize(client: TestClient, **params: str):
    return client.get("/oauth/authorize", params=params, follow_redirects=False)


def test_authorize_redirects_to_login_with_params(client: TestClient) -> None:
    resp = _authorize(
        client,
        client_id=CLIENT_ID,
        redirect_uri=REDIRECT_URI,
        response_type="code",
        scope="openid",
        state="abc",
    )
    assert resp.status_code == 302
    location = urlparse(resp.headers["location"])
    assert location.path == "/login"
    assert parse_qs(location.query) == {
        "client_id": [CLIENT_ID],
        "redirect_uri": [REDIRECT_URI],
        "state": ["abc"],
        "response_type": ["code"],
        "scope": ["openid"],
    }


@pytest.mark.parametrize(
    "params",
    [
        {"redirect_uri": REDIRECT_URI, "response_type": "code"},
        {"client_id": CLIENT_ID, "response_type": "code"},
        {"client_id": CLIENT_ID, "redirect_uri": REDIRECT_URI},
    ],
)
def test_authorize_missing_params(client: TestClient, params: dict[str, str]) -> None:
    resp = _authorize(client, **params)
    assert resp.status_code == 400
    assert resp.json() == {
        "error": "invalid_request",
        "error_description": "Missing required parameters",
    }


def test_authorize_unknown_client(client: TestClient) -> None:
    resp = _authorize(
        client, client_id="ghost", redirect_uri=REDIRECT_URI, response_type="code"
    )
    assert resp.status_code == 400
    assert resp.json() == {"error": "invalid_client", "error_description": "Client not found"}


def test_authorize_unregistered_redirect_is_not_followed(client: TestClient) -> None:
    resp = _authorize(
        client,
        client_id=CLIENT_ID,
        redirect_uri="http://evil.example/callback",
        response_type="code",
    )
    assert resp.status_code == 400
    assert "location" not in resp.headers
    assert resp.json()["error_description"] == "Invalid redirect_uri"


def test_authorize_rejects_token_response_type(client: TestClient) -> None:
    resp = _authorize(
        client, client_id=CLIENT_ID, redirect_uri=REDIRECT_URI, response_type="token"
    )
    assert resp.status_code == 400
    assert resp.json() == {
        "error": "unsupported_response_type",
        "error_description": "Only authorization_code flow is supported",
    }
