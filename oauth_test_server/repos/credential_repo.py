from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Protocol

from oauth_test_server.models.client import Client
from oauth_test_server.models.user import User

logger = logging.getLogger(__name__)

# Built-in fixtures, in the same camelCase shape a CREDENTIALS_FILE uses.
_DEFAULT_CLIENTS: list[dict[str, Any]] = [
    {
        "clientId": "test-client",
        "clientSecret": "test-secret",
        "redirectUris": [
            "http://localhost:8080/callback",
            "http://localhost:3001/callback",
            "http://127.0.0.1:8080/callback",
            "http://127.0.0.1:3001/callback",
            "http://localhost/callback",
            "http://test-app.local/callback",
        ],
        "grants": ["authorization_code", "refresh_token"],
    },
    {
        "clientId": "demo-app",
        "clientSecret": "demo-secret",
        "redirectUris": [
            "http://localhost:4200/callback",
            "http://localhost:5000/callback",
            "http://demo-app.local/callback",
        ],
        "grants": ["authorization_code", "refresh_token"],
    },
    {
        "clientId": "laragon-app",
        "clientSecret": "laragon-secret",
        "redirectUris": [
            "http://localhost/oauth-callback",
            "http://myapp.local/callback",
            "http://myapp.test/callback",
        ],
        "grants": ["authorization_code", "refresh_token"],
    },
    {
        "clientId": "classlinkid",
        "clientSecret": "classlink-secret",
        "redirectUris": [
            "https://classlink.test/login",
            "http://localhost:3000/login",
            "http://127.0.0.1:3000/login",
        ],
        "grants": ["authorization_code", "refresh_token"],
    },
]

_DEFAULT_USERS: list[dict[str, Any]] = [
    {
        "id": "1",
        "username": "testuser",
        "password": "password",
        "email": "testuser@example.com",
        "name": "Test User",
        "firstName": "Test",
        "lastName": "User",
    },
    {
        "id": "2",
        "username": "demo",
        "password": "demo",
        "email": "demo@example.com",
        "name": "Demo User",
        "firstName": "Demo",
        "lastName": "User",
    },
    {
        "id": "3",
        "username": "admin",
        "password": "admin",
        "email": "admin@example.com",
        "name": "Admin User",
        "firstName": "Admin",
        "lastName": "User",
        "role": "admin",
    },
    {
        "id": "4",
        "username": "laragon",
        "password": "laragon",
        "email": "laragon@example.com",
        "name": "Laragon User",
        "firstName": "Laragon",
        "lastName": "User",
    },
]


class CredentialRepo(Protocol):
    def get_client(self, client_id: str) -> Client | None: ...
    def find_user(self, username: str, password: str) -> User | None: ...
    def get_user(self, user_id: str) -> User | None: ...
    def list_clients(self) -> list[Client]: ...
    def list_users(self) -> list[User]: ...


class InMemoryCredentialRepo:
    """Read-only registry of clients and users, filled once at startup."""

    def __init__(self, clients: list[Client], users: list[User]) -> None:
        self._clients: dict[str, Client] = {c.client_id: c for c in clients}
        self._users: dict[str, User] = {u.id: u for u in users}

    def get_client(self, client_id: str) -> Client | None:
        return self._clients.get(client_id)

    def find_user(self, username: str, password: str) -> User | None:
        for user in self._users.values():
            if user.username == username and user.password == password:
                return user
        return None

    def get_user(self, user_id: str) -> User | None:
        return self._users.get(user_id)

    def list_clients(self) -> list[Client]:
        return list(self._clients.values())

    def list_users(self) -> list[User]:
        return list(self._users.values())

    @classmethod
    def from_dicts(
        cls, clients: list[dict[str, Any]], users: list[dict[str, Any]]
    ) -> InMemoryCredentialRepo:
        try:
            return cls(
                clients=[Client.from_dict(c) for c in clients],
                users=[User.from_dict(u) for u in users],
            )
        except (KeyError, TypeError) as e:
            raise ValueError(f"malformed credential fixture: {e!r}") from None


def load_credentials(path: str | None) -> InMemoryCredentialRepo:
    """Load fixtures from a JSON file, or fall back to the built-in set."""
    if not path:
        return InMemoryCredentialRepo.from_dicts(_DEFAULT_CLIENTS, _DEFAULT_USERS)

    try:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise ValueError(f"CREDENTIALS_FILE {path!r} could not be read: {e}") from None

    if not isinstance(data, dict):
        raise ValueError(f"CREDENTIALS_FILE {path!r} must contain a JSON object")

    repo = InMemoryCredentialRepo.from_dicts(
        data.get("clients", []), data.get("users", [])
    )
    logger.info(
        "Loaded credentials from %s  clients=%d users=%d",
        path,
        len(repo.list_clients()),
        len(repo.list_users()),
    )
    return repo
