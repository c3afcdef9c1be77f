"""OAuth2 error taxonomy.

Every failure the server reports to a client is one of these.  They are
raised by the services and rendered by a single exception handler
(registered in main.py) as

    {"error": "<code>", "error_description": "<text>"}

with the status code carried by the exception.  None of them are
retried internally; a failure is final for the request.
"""

from __future__ import annotations

import logging

from fastapi import Request, status
from fastapi.responses import JSONResponse

from oauth_test_server.core.metrics import OAUTH_ERRORS

logger = logging.getLogger(__name__)


class OAuthError(Exception):
    error: str = "server_error"
    status_code: int = status.HTTP_400_BAD_REQUEST

    def __init__(
        self,
        description: str,
        *,
        status_code: int | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        super().__init__(f"{self.error}: {description}")
        self.error_description = description
        if status_code is not None:
            self.status_code = status_code
        self.headers = headers

    def to_dict(self) -> dict[str, str]:
        return {"error": self.error, "error_description": self.error_description}


class InvalidRequest(OAuthError):
    error = "invalid_request"


class InvalidClient(OAuthError):
    # 401 at the token endpoint; the authorize endpoint overrides with 400
    error = "invalid_client"
    status_code = status.HTTP_401_UNAUTHORIZED


class InvalidGrant(OAuthError):
    error = "invalid_grant"


class UnsupportedGrantType(OAuthError):
    error = "unsupported_grant_type"


class UnsupportedResponseType(OAuthError):
    error = "unsupported_response_type"


class InvalidToken(OAuthError):
    error = "invalid_token"
    status_code = status.HTTP_401_UNAUTHORIZED

    def __init__(self, description: str) -> None:
        super().__init__(description, headers={"WWW-Authenticate": "Bearer"})


class UserNotFound(OAuthError):
    error = "user_not_found"
    status_code = status.HTTP_404_NOT_FOUND


async def oauth_error_handler(request: Request, exc: OAuthError) -> JSONResponse:
    """Render an OAuthError as the standard JSON error body."""
    OAUTH_ERRORS.labels(error=exc.error).inc()
    logger.warning(
        "OAuth error  %s %s → %d %s: %s",
        request.method,
        request.url.path,
        exc.status_code,
        exc.error,
        exc.error_description,
        extra={"error": exc.error},
    )
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict(),
        headers=exc.headers,
    )
