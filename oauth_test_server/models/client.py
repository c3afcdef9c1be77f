from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True, slots=True)
class Client:
    client_id: str
    client_secret: str
    redirect_uris: tuple[str, ...]
    grants: frozenset[str]

    def allows_redirect(self, redirect_uri: str) -> bool:
        # Exact string match only; no prefix or wildcard matching.
        return redirect_uri in self.redirect_uris

    def check_secret(self, client_secret: str | None) -> bool:
        # Plain comparison: fixture secrets, not production credentials.
        return client_secret is not None and client_secret == self.client_secret

    @staticmethod
    def from_dict(data: dict[str, Any]) -> Client:
        """Build from the camelCase fixture shape (clientId, clientSecret, ...)."""
        return Client(
            client_id=str(data["clientId"]),
            client_secret=str(data["clientSecret"]),
            redirect_uris=tuple(data.get("redirectUris", ())),
            grants=frozenset(data.get("grants", ("authorization_code", "refresh_token"))),
        )
