"""Authorization flow: request validation, end-user login, code issuance.

    RequestReceived ──validate──▶ AwaitingLogin ──login ok──▶ CodeIssued
          │                           │    ▲
          ▼                           └────┘ bad credentials
     OAuth error (JSON, 400)

Validation failures are reported as JSON errors and never as a redirect:
until the client and redirect_uri are known to be registered together,
redirecting anywhere would turn the server into an open redirector.

The login step runs in a separate HTTP request, so the validated request
travels in hidden form fields and is validated again on submission.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from urllib.parse import quote, urlencode

from fastapi import status

from oauth_test_server.core.errors import (
    InvalidClient,
    InvalidRequest,
    UnsupportedResponseType,
)
from oauth_test_server.core.logging import mask_token
from oauth_test_server.core.metrics import TOKENS_ISSUED
from oauth_test_server.models.tokens import AuthorizationCode, TokenKind, epoch_now
from oauth_test_server.models.user import User
from oauth_test_server.repos.credential_repo import CredentialRepo
from oauth_test_server.repos.token_store import TokenStore

logger = logging.getLogger(__name__)

# RFC 3986 query characters minus the ones a form decoder would reinterpret.
_STATE_SAFE = "/?:@!$'()*,;=-._~"


@dataclass(frozen=True, slots=True)
class AuthorizationRequest:
    client_id: str
    redirect_uri: str
    response_type: str
    scope: str = ""
    state: str = ""

    def as_params(self) -> dict[str, str]:
        return {
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "state": self.state,
            "response_type": self.response_type,
            "scope": self.scope,
        }


class AuthorizationService:
    def __init__(
        self,
        store: TokenStore,
        credentials: CredentialRepo,
        *,
        auth_code_ttl: int,
        clock: Callable[[], int] = epoch_now,
    ) -> None:
        self._store = store
        self._credentials = credentials
        self._auth_code_ttl = auth_code_ttl
        self._clock = clock

    def validate_request(
        self,
        *,
        client_id: str | None,
        redirect_uri: str | None,
        response_type: str | None,
        scope: str | None = None,
        state: str | None = None,
    ) -> AuthorizationRequest:
        """RequestReceived: check the request before showing a login form."""
        if not client_id or not redirect_uri or not response_type:
            raise InvalidRequest("Missing required parameters")

        client = self._credentials.get_client(client_id)
        if client is None:
            logger.warning("AUTHORIZE FAIL: unknown client_id=%s", client_id)
            raise InvalidClient("Client not found", status_code=status.HTTP_400_BAD_REQUEST)

        if not client.allows_redirect(redirect_uri):
            logger.warning(
                "AUTHORIZE FAIL: redirect_uri not registered  client_id=%s uri=%s",
                client_id,
                redirect_uri,
            )
            raise InvalidRequest("Invalid redirect_uri")

        if response_type != "code":
            raise UnsupportedResponseType("Only authorization_code flow is supported")

        return AuthorizationRequest(
            client_id=client_id,
            redirect_uri=redirect_uri,
            response_type=response_type,
            scope=scope or "",
            state=state or "",
        )

    def authenticate(self, username: str, password: str) -> User | None:
        """AwaitingLogin: None on bad credentials, whichever field was wrong."""
        user = self._credentials.find_user(username, password)
        if user is None:
            logger.warning("Login failed  username=%s", username)
        else:
            logger.info("Login succeeded  user_id=%s", user.id)
        return user

    async def issue_code(self, request: AuthorizationRequest, user: User) -> str:
        """CodeIssued: mint a code and return the client redirect URL."""
        code = self._store.generate_key()
        record = AuthorizationCode(
            client_id=request.client_id,
            redirect_uri=request.redirect_uri,
            user_id=user.id,
            scope=request.scope,
            expires_at=self._clock() + self._auth_code_ttl,
        )
        await self._store.put(TokenKind.AUTHORIZATION_CODE, code, record)
        TOKENS_ISSUED.labels(token_type="authorization_code", grant_type="login").inc()
        logger.info(
            "AUTHORIZE code issued  client_id=%s user_id=%s code=%s expires_at=%d",
            request.client_id,
            user.id,
            mask_token(code),
            record.expires_at,
        )
        return build_redirect_url(request.redirect_uri, code, request.state)


def build_redirect_url(redirect_uri: str, code: str, state: str = "") -> str:
    """Append code (and state, when given) to the client's redirect URI.

    A redirect URI that already carries a query string is extended with
    '&' rather than getting a second '?'.  state is opaque: it is only
    percent-encoded where it would otherwise break the query string
    (space, '&', '+', '#', non-ASCII), so ordinary values pass through
    byte-for-byte.
    """
    query = f"code={quote(code, safe='')}"
    if state:
        query += f"&state={quote(state, safe=_STATE_SAFE)}"
    separator = "&" if "?" in redirect_uri else "?"
    return f"{redirect_uri}{separator}{query}"


def login_url(request: AuthorizationRequest) -> str:
    return f"/login?{urlencode(request.as_params())}"
