"""Read and delete side of the token lifecycle.

  userinfo     Bearer access token → profile claims   (OIDC-style)
  introspect   token → {"active": ...}                (RFC 7662)
  revoke       token → deleted, always "ok"           (RFC 7009)

Expired access tokens found here are deleted on the spot; that cleanup
is a side effect of the read, not an error path.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from oauth_test_server.core.errors import InvalidRequest, InvalidToken, UserNotFound
from oauth_test_server.core.logging import mask_token
from oauth_test_server.models.tokens import AccessToken, TokenKind, epoch_now
from oauth_test_server.repos.credential_repo import CredentialRepo
from oauth_test_server.repos.token_store import TokenStore

logger = logging.getLogger(__name__)

_BEARER_PREFIX = "Bearer "


def parse_bearer(authorization: str | None) -> str:
    """Extract the token from an ``Authorization: Bearer <t>`` header."""
    if not authorization or not authorization.startswith(_BEARER_PREFIX):
        raise InvalidToken("Missing or invalid authorization header")
    return authorization[len(_BEARER_PREFIX) :]


class TokenService:
    def __init__(
        self,
        store: TokenStore,
        credentials: CredentialRepo,
        *,
        clock: Callable[[], int] = epoch_now,
    ) -> None:
        self._store = store
        self._credentials = credentials
        self._clock = clock

    async def _live_access_token(self, token: str) -> AccessToken | None:
        """Return the access token if it exists and is unexpired.

        An expired token is deleted before returning None.
        """
        record = await self._store.get(TokenKind.ACCESS_TOKEN, token)
        if not isinstance(record, AccessToken):
            return None
        if record.is_expired(self._clock()):
            await self._store.delete(TokenKind.ACCESS_TOKEN, token)
            logger.info("Expired access token removed  token=%s", mask_token(token))
            return None
        return record

    async def userinfo(self, authorization: str | None) -> dict[str, Any]:
        token = parse_bearer(authorization)

        record = await self._store.get(TokenKind.ACCESS_TOKEN, token)
        if not isinstance(record, AccessToken):
            raise InvalidToken("Invalid access token")
        if record.is_expired(self._clock()):
            await self._store.delete(TokenKind.ACCESS_TOKEN, token)
            raise InvalidToken("Access token expired")

        user = self._credentials.get_user(record.user_id)
        if user is None:
            logger.warning("Token references missing user_id=%s", record.user_id)
            raise UserNotFound("User not found")

        logger.debug("userinfo served  user_id=%s", user.id)
        return user.claims()

    async def introspect(self, token: str | None) -> dict[str, Any]:
        """RFC 7662 response.  Only access tokens are ever reported active."""
        if not token:
            raise InvalidRequest("Token parameter is required")

        record = await self._live_access_token(token)
        if record is None:
            return {"active": False}

        user = self._credentials.get_user(record.user_id)
        out: dict[str, Any] = {
            "active": True,
            "scope": record.scope,
            "client_id": record.client_id,
            "token_type": "Bearer",
            "exp": record.expires_at,
            "sub": record.user_id,
        }
        if user is not None:
            out["username"] = user.username
        return out

    async def revoke(self, token: str | None) -> None:
        """RFC 7009: remove the token wherever it lives.

        Unknown tokens are not an error; the caller answers 200 either way.
        """
        if not token:
            raise InvalidRequest("Token parameter is required")

        found = False
        for kind in (TokenKind.ACCESS_TOKEN, TokenKind.REFRESH_TOKEN):
            if await self._store.get(kind, token) is not None:
                await self._store.delete(kind, token)
                found = True
        logger.info("Revocation  token=%s found=%s", mask_token(token), found)
