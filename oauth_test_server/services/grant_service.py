"""Grant processing for POST /oauth/token.

Two grants are supported:

  authorization_code   code + redirect_uri → access token + refresh token
  refresh_token        refresh token       → new access token

Every grant starts with client authentication (client_id + client_secret,
exact match).  The order of the checks inside each grant is part of the
observable behaviour and is covered by tests:

  authorization_code
    1. unknown code                    → invalid_grant
    2. expired code                    → delete it, invalid_grant
    3. client_id / redirect_uri differ → invalid_grant, code is KEPT
    4. success                         → mint both tokens, delete code

  refresh_token
    1. unknown token                   → invalid_grant
    2. expired token                   → delete it, invalid_grant
    3. client_id differs               → invalid_grant, token is KEPT
    4. success                         → mint access token only

Refresh tokens are NOT rotated: the same refresh token keeps working
until it expires or is revoked.  Integration suites rely on this.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass

from oauth_test_server.core.errors import InvalidClient, InvalidGrant, UnsupportedGrantType
from oauth_test_server.core.logging import mask_token
from oauth_test_server.core.metrics import TOKENS_ISSUED
from oauth_test_server.models.client import Client
from oauth_test_server.models.tokens import (
    AccessToken,
    AuthorizationCode,
    RefreshToken,
    TokenKind,
    epoch_now,
)
from oauth_test_server.repos.credential_repo import CredentialRepo
from oauth_test_server.repos.token_store import TokenStore

logger = logging.getLogger(__name__)

GRANT_AUTHORIZATION_CODE = "authorization_code"
GRANT_REFRESH_TOKEN = "refresh_token"
SUPPORTED_GRANTS = (GRANT_AUTHORIZATION_CODE, GRANT_REFRESH_TOKEN)


@dataclass(frozen=True, slots=True)
class IssuedTokens:
    access_token: str
    expires_in: int
    scope: str
    refresh_token: str | None = None
    token_type: str = "Bearer"


class GrantService:
    def __init__(
        self,
        store: TokenStore,
        credentials: CredentialRepo,
        *,
        access_token_ttl: int,
        refresh_token_ttl: int,
        clock: Callable[[], int] = epoch_now,
    ) -> None:
        self._store = store
        self._credentials = credentials
        self._access_ttl = access_token_ttl
        self._refresh_ttl = refresh_token_ttl
        self._clock = clock
        # One grant at a time: a store await must not let a second request
        # redeem the same code halfway through the first.
        self._lock = asyncio.Lock()

    def authenticate_client(self, client_id: str | None, client_secret: str | None) -> Client:
        client = self._credentials.get_client(client_id) if client_id else None
        if client is None or not client.check_secret(client_secret):
            logger.warning("Client authentication failed  client_id=%s", client_id)
            raise InvalidClient("Invalid client credentials")
        return client

    async def process(
        self,
        grant_type: str | None,
        params: Mapping[str, str],
        *,
        client_id: str | None,
        client_secret: str | None,
    ) -> IssuedTokens:
        """Authenticate the client, then dispatch on grant_type."""
        client = self.authenticate_client(client_id, client_secret)
        logger.info(
            "TOKEN [%s] request  client_id=%s",
            grant_type or "-",
            client.client_id,
            extra={"client_id": client.client_id, "grant_type": grant_type},
        )

        async with self._lock:
            if grant_type == GRANT_AUTHORIZATION_CODE:
                return await self.exchange_authorization_code(
                    code=params.get("code", ""),
                    redirect_uri=params.get("redirect_uri", ""),
                    client_id=client.client_id,
                )
            if grant_type == GRANT_REFRESH_TOKEN:
                return await self.refresh_access_token(
                    refresh_token=params.get("refresh_token", ""),
                    client_id=client.client_id,
                )

        logger.warning("Unsupported grant_type=%r  client_id=%s", grant_type, client.client_id)
        raise UnsupportedGrantType("Grant type not supported")

    # ------------------------------------------------------------------ grants

    async def exchange_authorization_code(
        self, *, code: str, redirect_uri: str, client_id: str
    ) -> IssuedTokens:
        record = await self._store.get(TokenKind.AUTHORIZATION_CODE, code) if code else None
        if not isinstance(record, AuthorizationCode):
            logger.warning("TOKEN [authorization_code] FAIL: code not found")
            raise InvalidGrant("Invalid authorization code")

        now = self._clock()
        if record.is_expired(now):
            await self._store.delete(TokenKind.AUTHORIZATION_CODE, code)
            logger.warning(
                "TOKEN [authorization_code] FAIL: code expired  code=%s", mask_token(code)
            )
            raise InvalidGrant("Authorization code expired")

        # A mismatch does not consume the code; a correct retry still works.
        if record.client_id != client_id or record.redirect_uri != redirect_uri:
            logger.warning(
                "TOKEN [authorization_code] FAIL: client_id/redirect_uri mismatch  "
                "client_id=%s",
                client_id,
            )
            raise InvalidGrant("Invalid redirect_uri or client_id")

        access_token = await self._mint_access_token(
            user_id=record.user_id,
            client_id=client_id,
            scope=record.scope,
            now=now,
            grant_type=GRANT_AUTHORIZATION_CODE,
        )
        refresh_token = self._store.generate_key()
        await self._store.put(
            TokenKind.REFRESH_TOKEN,
            refresh_token,
            RefreshToken(
                user_id=record.user_id,
                client_id=client_id,
                scope=record.scope,
                expires_at=now + self._refresh_ttl,
            ),
        )
        TOKENS_ISSUED.labels(
            token_type="refresh_token", grant_type=GRANT_AUTHORIZATION_CODE
        ).inc()

        await self._store.delete(TokenKind.AUTHORIZATION_CODE, code)
        logger.info(
            "TOKEN [authorization_code] issued  user_id=%s client_id=%s "
            "access=%s refresh=%s",
            record.user_id,
            client_id,
            mask_token(access_token),
            mask_token(refresh_token),
        )
        return IssuedTokens(
            access_token=access_token,
            expires_in=self._access_ttl,
            refresh_token=refresh_token,
            scope=record.scope,
        )

    async def refresh_access_token(self, *, refresh_token: str, client_id: str) -> IssuedTokens:
        record = (
            await self._store.get(TokenKind.REFRESH_TOKEN, refresh_token)
            if refresh_token
            else None
        )
        if not isinstance(record, RefreshToken):
            logger.warning("TOKEN [refresh_token] FAIL: refresh token not found")
            raise InvalidGrant("Invalid refresh token")

        now = self._clock()
        if record.is_expired(now):
            await self._store.delete(TokenKind.REFRESH_TOKEN, refresh_token)
            logger.warning(
                "TOKEN [refresh_token] FAIL: expired  refresh=%s", mask_token(refresh_token)
            )
            raise InvalidGrant("Refresh token expired")

        if record.client_id != client_id:
            logger.warning(
                "TOKEN [refresh_token] FAIL: client_id mismatch  client_id=%s", client_id
            )
            raise InvalidGrant("Invalid client_id")

        access_token = await self._mint_access_token(
            user_id=record.user_id,
            client_id=client_id,
            scope=record.scope,
            now=now,
            grant_type=GRANT_REFRESH_TOKEN,
        )
        logger.info(
            "TOKEN [refresh_token] issued  user_id=%s client_id=%s access=%s",
            record.user_id,
            client_id,
            mask_token(access_token),
        )
        return IssuedTokens(
            access_token=access_token,
            expires_in=self._access_ttl,
            scope=record.scope,
        )

    async def _mint_access_token(
        self, *, user_id: str, client_id: str, scope: str, now: int, grant_type: str
    ) -> str:
        key = self._store.generate_key()
        await self._store.put(
            TokenKind.ACCESS_TOKEN,
            key,
            AccessToken(
                user_id=user_id,
                client_id=client_id,
                scope=scope,
                expires_at=now + self._access_ttl,
            ),
        )
        TOKENS_ISSUED.labels(token_type="access_token", grant_type=grant_type).inc()
        return key
