from __future__ import annotations

import logging
from typing import Annotated, Any

from fastapi import APIRouter, Depends, Header, Query, Request, Response, status
from fastapi.responses import RedirectResponse
from pydantic import BaseModel

from oauth_test_server.api.dependencies import (
    basic_credentials,
    get_authorization_service,
    get_grant_service,
    get_token_service,
    request_params,
)
from oauth_test_server.services.authorization_service import (
    AuthorizationService,
    login_url,
)
from oauth_test_server.services.grant_service import GrantService
from oauth_test_server.services.token_service import TokenService

# ---------------------------------------------------------------------------
# Authorization server endpoints
#
#   GET  /oauth/authorize   validate the request, send the browser to /login
#   POST /oauth/token       authorization_code and refresh_token grants
#   GET  /oauth/userinfo    profile claims for a Bearer access token
#   POST /oauth/introspect  RFC 7662
#   POST /oauth/revoke      RFC 7009
#
# Errors are raised as OAuthError subclasses and rendered by the handler
# registered in main.py.
# ---------------------------------------------------------------------------

logger = logging.getLogger(__name__)

router = APIRouter(tags=["oauth"])


class TokenOut(BaseModel):
    access_token: str
    token_type: str = "Bearer"
    expires_in: int
    refresh_token: str | None = None
    scope: str


# ========================== GET /oauth/authorize ==========================


@router.get("/oauth/authorize")
def authorize(
    service: Annotated[AuthorizationService, Depends(get_authorization_service)],
    client_id: str | None = Query(None),
    redirect_uri: str | None = Query(None),
    response_type: str | None = Query(None),
    scope: str | None = Query(None),
    state: str | None = Query(None),
) -> RedirectResponse:
    logger.info(
        "AUTHORIZE request  client_id=%s redirect_uri=%s scope=%s",
        client_id,
        redirect_uri,
        scope,
    )
    auth_request = service.validate_request(
        client_id=client_id,
        redirect_uri=redirect_uri,
        response_type=response_type,
        scope=scope,
        state=state,
    )
    return RedirectResponse(url=login_url(auth_request), status_code=status.HTTP_302_FOUND)


# ========================== POST /oauth/token =============================


@router.post("/oauth/token", response_model=TokenOut, response_model_exclude_none=True)
async def exchange_token(
    request: Request,
    params: Annotated[dict[str, str], Depends(request_params)],
    service: Annotated[GrantService, Depends(get_grant_service)],
) -> TokenOut:
    client_id = params.get("client_id")
    client_secret = params.get("client_secret")
    if not client_id:
        # client_secret_basic: credentials in the Authorization header
        creds = basic_credentials(request)
        if creds is not None:
            client_id, client_secret = creds

    issued = await service.process(
        params.get("grant_type"),
        params,
        client_id=client_id,
        client_secret=client_secret,
    )
    return TokenOut(
        access_token=issued.access_token,
        token_type=issued.token_type,
        expires_in=issued.expires_in,
        refresh_token=issued.refresh_token,
        scope=issued.scope,
    )


# ========================== GET /oauth/userinfo ===========================


@router.get("/oauth/userinfo")
async def userinfo(
    service: Annotated[TokenService, Depends(get_token_service)],
    authorization: Annotated[str | None, Header()] = None,
) -> dict[str, Any]:
    return await service.userinfo(authorization)


# ========================== POST /oauth/introspect ========================


@router.post("/oauth/introspect")
async def introspect(
    params: Annotated[dict[str, str], Depends(request_params)],
    service: Annotated[TokenService, Depends(get_token_service)],
) -> dict[str, Any]:
    # token_type_hint is accepted and ignored: only access tokens introspect.
    return await service.introspect(params.get("token"))


# ========================== POST /oauth/revoke ============================


@router.post("/oauth/revoke")
async def revoke(
    params: Annotated[dict[str, str], Depends(request_params)],
    service: Annotated[TokenService, Depends(get_token_service)],
) -> Response:
    await service.revoke(params.get("token"))
    return Response(status_code=status.HTTP_200_OK)
