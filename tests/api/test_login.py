from __future__ import annotations

from urllib.parse import parse_qs, urlparse

from fastapi.testclient import TestClient

from oauth_test_server.models.tokens import AuthorizationCode, TokenKind
from tests.conftest import CLIENT_ID, REDIRECT_URI, stored

_CARRIED = {
    "client_id": CLIENT_ID,
    "redirect_uri": REDIRECT_URI,
    "response_type": "code",
    "scope": "openid",
    "state": "s1",
}


def test_login_page_carries_request_in_hidden_fields(client: TestClient) -> None:
    resp = client.get("/login", params=_CARRIED)
    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/html")
    assert f'name="client_id" value="{CLIENT_ID}"' in resp.text
    assert f'name="redirect_uri" value="{REDIRECT_URI}"' in resp.text
    assert 'name="state" value="s1"' in resp.text
    assert "testuser / password" in resp.text


def test_login_page_escapes_params(client: TestClient) -> None:
    resp = client.get("/login", params={"state": '"><script>alert(1)</script>'})
    assert "<script>alert(1)</script>" not in resp.text
    assert "&lt;script&gt;" in resp.text


def test_login_success_redirects_with_code_and_state(client: TestClient) -> None:
    resp = client.post(
        "/authorize",
        data={**_CARRIED, "username": "testuser", "password": "password"},
        follow_redirects=False,
    )
    assert resp.status_code == 302
    location = urlparse(resp.headers["location"])
    assert f"{location.scheme}://{location.netloc}{location.path}" == REDIRECT_URI
    query = parse_qs(location.query)
    assert query["state"] == ["s1"]

    record = stored(TokenKind.AUTHORIZATION_CODE, query["code"][0])
    assert isinstance(record, AuthorizationCode)
    assert record.user_id == "1"
    assert record.client_id == CLIENT_ID
    assert record.scope == "openid"


def test_login_without_state_omits_state(client: TestClient) -> None:
    data = {**_CARRIED, "state": "", "username": "demo", "password": "demo"}
    resp = client.post("/authorize", data=data, follow_redirects=False)
    assert resp.status_code == 302
    query = parse_qs(urlparse(resp.headers["location"]).query)
    assert set(query) == {"code"}


def test_login_bad_password_rerenders_form(client: TestClient) -> None:
    resp = client.post(
        "/authorize",
        data={**_CARRIED, "username": "testuser", "password": "wrong"},
        follow_redirects=False,
    )
    assert resp.status_code == 401
    assert "Invalid username or password." in resp.text
    assert 'name="state" value="s1"' in resp.text


def test_login_with_tampered_redirect_uri_is_rejected(client: TestClient) -> None:
    resp = client.post(
        "/authorize",
        data={
            **_CARRIED,
            "redirect_uri": "http://evil.example/callback",
            "username": "testuser",
            "password": "password",
        },
        follow_redirects=False,
    )
    assert resp.status_code == 400
    assert resp.json()["error_description"] == "Invalid redirect_uri"
