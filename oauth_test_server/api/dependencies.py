from __future__ import annotations

import base64
import binascii
import logging
from urllib.parse import unquote_plus

from fastapi import Request

from oauth_test_server.core.config import SETTINGS
from oauth_test_server.db.redis import redis_pool
from oauth_test_server.repos.credential_repo import CredentialRepo, load_credentials
from oauth_test_server.repos.token_store import TokenStore, build_token_store
from oauth_test_server.services.authorization_service import AuthorizationService
from oauth_test_server.services.grant_service import GrantService
from oauth_test_server.services.token_service import TokenService

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Process-wide singletons.  Routes reach them through the get_* dependencies
# so tests can swap them with app.dependency_overrides.
# ---------------------------------------------------------------------------

credential_repo: CredentialRepo = load_credentials(SETTINGS.credentials_file)
token_store: TokenStore = build_token_store(SETTINGS, redis_pool)

# GrantService must stay a singleton: its lock serializes grants.
grant_service = GrantService(
    token_store,
    credential_repo,
    access_token_ttl=SETTINGS.access_token_ttl_sec,
    refresh_token_ttl=SETTINGS.refresh_token_ttl_sec,
)
authorization_service = AuthorizationService(
    token_store,
    credential_repo,
    auth_code_ttl=SETTINGS.auth_code_ttl_sec,
)
token_service = TokenService(token_store, credential_repo)


def get_credential_repo() -> CredentialRepo:
    return credential_repo


def get_token_store() -> TokenStore:
    return token_store


def get_grant_service() -> GrantService:
    return grant_service


def get_authorization_service() -> AuthorizationService:
    return authorization_service


def get_token_service() -> TokenService:
    return token_service


# ---------------------------------------------------------------------------
# Request parsing
# ---------------------------------------------------------------------------


async def request_params(request: Request) -> dict[str, str]:
    """Body parameters from a form-encoded or JSON POST.

    Non-string JSON values are ignored; OAuth parameters are always strings.
    """
    content_type = request.headers.get("content-type", "")
    if content_type.startswith("application/json"):
        try:
            body = await request.json()
        except ValueError:
            logger.debug("Ignoring malformed JSON body on %s", request.url.path)
            return {}
        if not isinstance(body, dict):
            return {}
        return {k: v for k, v in body.items() if isinstance(v, str)}

    form = await request.form()
    return {k: v for k, v in form.items() if isinstance(v, str)}


def basic_credentials(request: Request) -> tuple[str, str] | None:
    """client_id/client_secret from an ``Authorization: Basic`` header."""
    header = request.headers.get("authorization", "")
    if not header.lower().startswith("basic "):
        return None
    try:
        raw = base64.b64decode(header.split(" ", 1)[1].strip(), validate=True)
        decoded = raw.decode("utf-8")
    except (binascii.Error, UnicodeDecodeError):
        return None
    if ":" not in decoded:
        return None
    client_id, client_secret = decoded.split(":", 1)
    # RFC 6749 §2.3.1: both halves are form-urlencoded before base64.
    return unquote_plus(client_id), unquote_plus(client_secret)
