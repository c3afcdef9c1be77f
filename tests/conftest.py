from __future__ import annotations

import asyncio
import os
from collections.abc import Iterator
from urllib.parse import parse_qs, urlparse

# Pin the environment before the app (and its SETTINGS singleton) is imported.
os.environ.setdefault("APP_ENV", "test")
os.environ["TOKEN_STORE"] = "memory"
os.environ.pop("REDIS_URL", None)
os.environ.pop("CREDENTIALS_FILE", None)
os.environ.pop("ISSUER_URL", None)

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from oauth_test_server.api import dependencies  # noqa: E402
from oauth_test_server.main import app  # noqa: E402
from oauth_test_server.models.tokens import TokenKind, TokenRecord  # noqa: E402

CLIENT_ID = "test-client"
CLIENT_SECRET = "test-secret"
REDIRECT_URI = "http://localhost:8080/callback"
USERNAME = "testuser"
PASSWORD = "password"


@pytest.fixture(autouse=True)
def reset_token_store() -> None:
    """Every test starts with no codes or tokens."""
    dependencies.token_store.clear()  # type: ignore[union-attr]


@pytest.fixture(autouse=True)
def reset_dependency_overrides() -> Iterator[None]:
    yield
    app.dependency_overrides.clear()


@pytest.fixture
def client() -> TestClient:
    return TestClient(app)


def seed(kind: TokenKind, key: str, record: TokenRecord) -> None:
    """Put a record straight into the app's token store."""
    asyncio.run(dependencies.token_store.put(kind, key, record))


def stored(kind: TokenKind, key: str) -> TokenRecord | None:
    return asyncio.run(dependencies.token_store.get(kind, key))


def obtain_code(
    client: TestClient,
    *,
    client_id: str = CLIENT_ID,
    redirect_uri: str = REDIRECT_URI,
    state: str = "xyz",
    scope: str = "openid profile",
    username: str = USERNAME,
    password: str = PASSWORD,
) -> str:
    """Drive authorize → login page → login submit and return the code."""
    resp = client.get(
        "/oauth/authorize",
        params={
            "client_id": client_id,
            "redirect_uri": redirect_uri,
            "response_type": "code",
            "scope": scope,
            "state": state,
        },
        follow_redirects=False,
    )
    assert resp.status_code == 302
    login = urlparse(resp.headers["location"])
    assert login.path == "/login"
    carried = {k: v[0] for k, v in parse_qs(login.query).items()}

    resp = client.post(
        "/authorize",
        data={**carried, "username": username, "password": password},
        follow_redirects=False,
    )
    assert resp.status_code == 302
    callback = urlparse(resp.headers["location"])
    query = parse_qs(callback.query)
    if state:
        assert query["state"] == [state]
    return query["code"][0]


def exchange_code(client: TestClient, code: str, **overrides: str):
    data = {
        "grant_type": "authorization_code",
        "code": code,
        "redirect_uri": REDIRECT_URI,
        "client_id": CLIENT_ID,
        "client_secret": CLIENT_SECRET,
        **overrides,
    }
    return client.post("/oauth/token", data=data)


def obtain_tokens(client: TestClient) -> dict:
    resp = exchange_code(client, obtain_code(client))
    assert resp.status_code == 200, resp.text
    return resp.json()
