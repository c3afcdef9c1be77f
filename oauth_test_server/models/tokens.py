from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any, Union

# Records are immutable.  A token is never updated in place: it is issued,
# read, and eventually deleted (redeemed, revoked or expired).


def epoch_now() -> int:
    return int(datetime.now(UTC).timestamp())


class TokenKind(str, enum.Enum):
    # Values double as the section names of the persisted snapshot.
    AUTHORIZATION_CODE = "authorizationCodes"
    ACCESS_TOKEN = "accessTokens"
    REFRESH_TOKEN = "refreshTokens"


@dataclass(frozen=True, slots=True)
class AuthorizationCode:
    client_id: str
    redirect_uri: str
    user_id: str
    scope: str
    expires_at: int  # epoch seconds

    def is_expired(self, now: int) -> bool:
        return now > self.expires_at

    def to_dict(self) -> dict[str, Any]:
        return {
            "clientId": self.client_id,
            "redirectUri": self.redirect_uri,
            "userId": self.user_id,
            "scope": self.scope,
            "expiresAt": self.expires_at,
        }

    @staticmethod
    def from_dict(data: dict[str, Any]) -> AuthorizationCode:
        return AuthorizationCode(
            client_id=data["clientId"],
            redirect_uri=data["redirectUri"],
            user_id=str(data["userId"]),
            scope=data.get("scope") or "",
            expires_at=int(data["expiresAt"]),
        )


@dataclass(frozen=True, slots=True)
class _BearerRecord:
    user_id: str
    client_id: str
    scope: str
    expires_at: int  # epoch seconds

    def is_expired(self, now: int) -> bool:
        return now > self.expires_at

    def to_dict(self) -> dict[str, Any]:
        return {
            "userId": self.user_id,
            "clientId": self.client_id,
            "scope": self.scope,
            "expiresAt": self.expires_at,
        }


@dataclass(frozen=True, slots=True)
class AccessToken(_BearerRecord):
    @staticmethod
    def from_dict(data: dict[str, Any]) -> AccessToken:
        return AccessToken(
            user_id=str(data["userId"]),
            client_id=data["clientId"],
            scope=data.get("scope") or "",
            expires_at=int(data["expiresAt"]),
        )


@dataclass(frozen=True, slots=True)
class RefreshToken(_BearerRecord):
    @staticmethod
    def from_dict(data: dict[str, Any]) -> RefreshToken:
        return RefreshToken(
            user_id=str(data["userId"]),
            client_id=data["clientId"],
            scope=data.get("scope") or "",
            expires_at=int(data["expiresAt"]),
        )


TokenRecord = Union[AuthorizationCode, AccessToken, RefreshToken]

RECORD_TYPES: dict[TokenKind, type] = {
    TokenKind.AUTHORIZATION_CODE: AuthorizationCode,
    TokenKind.ACCESS_TOKEN: AccessToken,
    TokenKind.REFRESH_TOKEN: RefreshToken,
}


def record_from_dict(kind: TokenKind, data: dict[str, Any]) -> TokenRecord:
    return RECORD_TYPES[kind].from_dict(data)  # type: ignore[no-any-return]
