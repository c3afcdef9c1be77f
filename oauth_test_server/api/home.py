from __future__ import annotations

import html
from typing import Annotated

from fastapi import APIRouter, Depends
from fastapi.responses import HTMLResponse

from oauth_test_server.api.dependencies import get_credential_repo
from oauth_test_server.core.config import SETTINGS
from oauth_test_server.repos.credential_repo import CredentialRepo

router = APIRouter(tags=["home"])

_ENDPOINTS = (
    ("Authorization", "/oauth/authorize"),
    ("Token", "/oauth/token"),
    ("UserInfo", "/oauth/userinfo"),
    ("Introspection", "/oauth/introspect"),
    ("Revocation", "/oauth/revoke"),
    ("Discovery", "/.well-known/oauth-authorization-server"),
)


@router.get("/", response_class=HTMLResponse)
def home(
    credentials: Annotated[CredentialRepo, Depends(get_credential_repo)],
) -> HTMLResponse:
    """Landing page: where the endpoints are and which fixtures exist."""
    e = html.escape
    base = SETTINGS.base_url
    endpoints = "".join(
        f"<li><strong>{label}:</strong> <code>{e(base + path)}</code></li>"
        for label, path in _ENDPOINTS
    )
    clients = "".join(
        f"<li><code>{e(c.client_id)}</code> / <code>{e(c.client_secret)}</code></li>"
        for c in credentials.list_clients()
    )
    users = "".join(
        f"<li><code>{e(u.username)}</code> / <code>{e(u.password)}</code></li>"
        for u in credentials.list_users()
    )
    example = e(
        f"{base}/oauth/authorize?client_id=test-client"
        "&redirect_uri=YOUR_CALLBACK_URL&response_type=code&state=xyz"
    )
    return HTMLResponse(
        "<!DOCTYPE html><html><head><meta charset='utf-8'>"
        "<title>Test OAuth2 Server</title>"
        "<style>body{font-family:system-ui,sans-serif;max-width:800px;"
        "margin:50px auto;padding:20px;background:#f5f5f5;}"
        "code{background:#e9ecef;padding:2px 6px;border-radius:3px;}</style>"
        "</head><body>"
        "<h1>Test OAuth2 Server</h1>"
        "<p>Authorization server for development and integration testing.</p>"
        f"<h2>Endpoints</h2><ul>{endpoints}</ul>"
        f"<h2>Clients</h2><ul>{clients}</ul>"
        f"<h2>Users</h2><ul>{users}</ul>"
        f"<h2>Quick start</h2><p><code>{example}</code></p>"
        "</body></html>"
    )
