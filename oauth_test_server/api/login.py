"""Login UI for the authorization flow.

GET /oauth/authorize validates the request and sends the browser here
with the OAuth parameters in the query string.  They are carried through
the form as hidden fields; POST /authorize validates them again, checks
the username and password, and redirects back to the client with a code.

Inline HTML, no template engine: there are two pages and both are tiny.
"""

from __future__ import annotations

import html
from typing import Annotated

from fastapi import APIRouter, Depends, Form, Query, status
from fastapi.responses import HTMLResponse, RedirectResponse

from oauth_test_server.api.dependencies import (
    get_authorization_service,
    get_credential_repo,
)
from oauth_test_server.repos.credential_repo import CredentialRepo
from oauth_test_server.services.authorization_service import AuthorizationService

router = APIRouter(tags=["login"])

_LOGIN_HTML = """\
<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="utf-8">
  <title>Test OAuth2 Server - Login</title>
  <style>
    body {{ font-family: system-ui, sans-serif; max-width: 400px;
           margin: 50px auto; padding: 20px; background: #f5f5f5; }}
    .card {{ background: #fff; padding: 30px; border-radius: 8px;
            box-shadow: 0 2px 4px rgba(0,0,0,.1); }}
    label {{ display: block; margin-bottom: 5px; color: #666; }}
    input[type=text], input[type=password] {{
      width: 100%; padding: 8px; margin-bottom: 15px; box-sizing: border-box;
      border: 1px solid #ddd; border-radius: 4px; }}
    button {{ width: 100%; padding: 10px; background: #007bff; color: #fff;
             border: none; border-radius: 4px; font-size: 16px; cursor: pointer; }}
    .error {{ background: #f8d7da; color: #721c24; padding: 10px;
             border-radius: 4px; margin-bottom: 15px; }}
    .note {{ font-size: 12px; color: #666; margin-top: 15px; padding: 10px;
            background: #f8f9fa; border-radius: 4px; }}
  </style>
</head>
<body>
  <div class="card">
    <h1>Test OAuth2 Login</h1>
    {error}
    <form action="/authorize" method="POST">
      <input type="hidden" name="client_id" value="{client_id}">
      <input type="hidden" name="redirect_uri" value="{redirect_uri}">
      <input type="hidden" name="state" value="{state}">
      <input type="hidden" name="response_type" value="{response_type}">
      <input type="hidden" name="scope" value="{scope}">
      <label for="username">Username</label>
      <input id="username" name="username" type="text" required autofocus>
      <label for="password">Password</label>
      <input id="password" name="password" type="password" required>
      <button type="submit">Login &amp; Authorize</button>
    </form>
    <div class="note"><strong>Test users:</strong><br>{users}</div>
    <div class="note">Client ID: {client_label}<br>Redirect URI: {redirect_label}</div>
  </div>
</body>
</html>
"""


def _render_login(
    credentials: CredentialRepo,
    *,
    client_id: str,
    redirect_uri: str,
    state: str,
    response_type: str,
    scope: str,
    error: str | None = None,
) -> str:
    e = html.escape
    users = "<br>".join(
        f"{e(u.username)} / {e(u.password)}" for u in credentials.list_users()
    )
    return _LOGIN_HTML.format(
        error=f'<div class="error">{e(error)}</div>' if error else "",
        client_id=e(client_id, quote=True),
        redirect_uri=e(redirect_uri, quote=True),
        state=e(state, quote=True),
        response_type=e(response_type, quote=True),
        scope=e(scope, quote=True),
        users=users,
        client_label=e(client_id or "N/A"),
        redirect_label=e(redirect_uri or "N/A"),
    )


# ========================== GET /login ======================================


@router.get("/login")
def login_page(
    credentials: Annotated[CredentialRepo, Depends(get_credential_repo)],
    client_id: str = Query(""),
    redirect_uri: str = Query(""),
    state: str = Query(""),
    response_type: str = Query(""),
    scope: str = Query(""),
) -> HTMLResponse:
    return HTMLResponse(
        _render_login(
            credentials,
            client_id=client_id,
            redirect_uri=redirect_uri,
            state=state,
            response_type=response_type,
            scope=scope,
        )
    )


# ========================== POST /authorize =================================


@router.post("/authorize", response_model=None)
async def login_submit(
    service: Annotated[AuthorizationService, Depends(get_authorization_service)],
    credentials: Annotated[CredentialRepo, Depends(get_credential_repo)],
    username: str = Form(""),
    password: str = Form(""),
    client_id: str = Form(""),
    redirect_uri: str = Form(""),
    state: str = Form(""),
    response_type: str = Form(""),
    scope: str = Form(""),
) -> RedirectResponse | HTMLResponse:
    # The hidden fields are client-controlled: validate them again so a
    # forged form cannot bind a code to an unregistered redirect_uri.
    auth_request = service.validate_request(
        client_id=client_id,
        redirect_uri=redirect_uri,
        response_type=response_type,
        scope=scope,
        state=state,
    )

    user = service.authenticate(username, password)
    if user is None:
        # Same message whichever field was wrong.
        page = _render_login(
            credentials,
            **auth_request.as_params(),
            error="Invalid username or password.",
        )
        return HTMLResponse(page, status_code=status.HTTP_401_UNAUTHORIZED)

    redirect_url = await service.issue_code(auth_request, user)
    return RedirectResponse(url=redirect_url, status_code=status.HTTP_302_FOUND)
