from __future__ import annotations

from typing import Any

from fastapi import APIRouter

from oauth_test_server.core.config import SETTINGS
from oauth_test_server.services.discovery import (
    authorization_server_metadata,
    openid_configuration,
)

router = APIRouter(tags=["discovery"])


@router.get("/.well-known/oauth-authorization-server")
def oauth_metadata() -> dict[str, Any]:
    return authorization_server_metadata(SETTINGS)


@router.get("/.well-known/openid-configuration")
def openid_metadata() -> dict[str, Any]:
    return openid_configuration(SETTINGS)
