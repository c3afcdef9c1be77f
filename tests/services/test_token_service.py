from __future__ import annotations

import asyncio

import pytest

from oauth_test_server.core.errors import InvalidRequest, InvalidToken, UserNotFound
from oauth_test_server.models.tokens import AccessToken, RefreshToken, TokenKind
from oauth_test_server.repos.credential_repo import load_credentials
from oauth_test_server.repos.token_store import InMemoryTokenStore
from oauth_test_server.services.token_service import TokenService, parse_bearer

NOW = 1_700_000_000


@pytest.fixture
def store() -> InMemoryTokenStore:
    s = InMemoryTokenStore()
    asyncio.run(
        s.put(
            TokenKind.ACCESS_TOKEN,
            "live",
            AccessToken(user_id="2", client_id="demo-app", scope="openid", expires_at=NOW + 60),
        )
    )
    asyncio.run(
        s.put(
            TokenKind.ACCESS_TOKEN,
            "stale",
            AccessToken(user_id="2", client_id="demo-app", scope="", expires_at=NOW - 1),
        )
    )
    asyncio.run(
        s.put(
            TokenKind.REFRESH_TOKEN,
            "refresh",
            RefreshToken(user_id="2", client_id="demo-app", scope="", expires_at=NOW + 60),
        )
    )
    return s


@pytest.fixture
def service(store: InMemoryTokenStore) -> TokenService:
    return TokenService(store, load_credentials(None), clock=lambda: NOW)


@pytest.mark.parametrize("header", [None, "", "bearer live", "Basic abc", "Token live"])
def test_parse_bearer_rejects(header: str | None) -> None:
    with pytest.raises(InvalidToken) as exc_info:
        parse_bearer(header)
    assert exc_info.value.headers == {"WWW-Authenticate": "Bearer"}


def test_parse_bearer() -> None:
    assert parse_bearer("Bearer abc") == "abc"


def test_userinfo_returns_claims(service: TokenService) -> None:
    claims = asyncio.run(service.userinfo("Bearer live"))
    assert claims["sub"] == "2"
    assert claims["username"] == "demo"


def test_userinfo_expired_deletes(service: TokenService, store: InMemoryTokenStore) -> None:
    with pytest.raises(InvalidToken, match="Access token expired"):
        asyncio.run(service.userinfo("Bearer stale"))
    assert asyncio.run(store.get(TokenKind.ACCESS_TOKEN, "stale")) is None


def test_userinfo_refresh_token_is_not_an_access_token(service: TokenService) -> None:
    with pytest.raises(InvalidToken, match="Invalid access token"):
        asyncio.run(service.userinfo("Bearer refresh"))


def test_userinfo_missing_user(store: InMemoryTokenStore) -> None:
    service = TokenService(store, load_credentials(None), clock=lambda: NOW)
    asyncio.run(
        store.put(
            TokenKind.ACCESS_TOKEN,
            "orphan",
            AccessToken(user_id="404", client_id="demo-app", scope="", expires_at=NOW + 60),
        )
    )
    with pytest.raises(UserNotFound):
        asyncio.run(service.userinfo("Bearer orphan"))


def test_introspect_active(service: TokenService) -> None:
    assert asyncio.run(service.introspect("live")) == {
        "active": True,
        "scope": "openid",
        "client_id": "demo-app",
        "token_type": "Bearer",
        "exp": NOW + 60,
        "sub": "2",
        "username": "demo",
    }


def test_introspect_expired_deletes(service: TokenService, store: InMemoryTokenStore) -> None:
    assert asyncio.run(service.introspect("stale")) == {"active": False}
    assert asyncio.run(store.get(TokenKind.ACCESS_TOKEN, "stale")) is None


def test_introspect_requires_token(service: TokenService) -> None:
    with pytest.raises(InvalidRequest, match="Token parameter is required"):
        asyncio.run(service.introspect(None))


def test_revoke_removes_from_both_collections(
    service: TokenService, store: InMemoryTokenStore
) -> None:
    asyncio.run(service.revoke("live"))
    asyncio.run(service.revoke("refresh"))
    assert asyncio.run(store.get(TokenKind.ACCESS_TOKEN, "live")) is None
    assert asyncio.run(store.get(TokenKind.REFRESH_TOKEN, "refresh")) is None


def test_revoke_unknown_leaves_store_untouched(
    service: TokenService, store: InMemoryTokenStore
) -> None:
    before = {kind: dict(table) for kind, table in store._tables.items()}
    assert asyncio.run(service.revoke("never-issued")) is None
    assert store._tables == before


def test_revoke_requires_token(service: TokenService) -> None:
    with pytest.raises(InvalidRequest):
        asyncio.run(service.revoke(""))
