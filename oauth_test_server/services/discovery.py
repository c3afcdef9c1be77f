from __future__ import annotations

from typing import Any

from oauth_test_server.core.config import Settings

_SCOPES = ["openid", "profile", "email"]
_AUTH_METHODS = ["client_secret_post", "client_secret_basic"]


def _endpoints(base_url: str) -> dict[str, str]:
    return {
        "issuer": base_url,
        "authorization_endpoint": f"{base_url}/oauth/authorize",
        "token_endpoint": f"{base_url}/oauth/token",
        "userinfo_endpoint": f"{base_url}/oauth/userinfo",
        "introspection_endpoint": f"{base_url}/oauth/introspect",
        "revocation_endpoint": f"{base_url}/oauth/revoke",
    }


def authorization_server_metadata(settings: Settings) -> dict[str, Any]:
    """RFC 8414 document for /.well-known/oauth-authorization-server."""
    return {
        **_endpoints(settings.base_url),
        "response_types_supported": ["code"],
        "grant_types_supported": ["authorization_code", "refresh_token"],
        "token_endpoint_auth_methods_supported": list(_AUTH_METHODS),
        "scopes_supported": list(_SCOPES),
    }


def openid_configuration(settings: Settings) -> dict[str, Any]:
    """OIDC discovery document.  No ID tokens are issued, hence alg "none"."""
    return {
        **_endpoints(settings.base_url),
        "response_types_supported": ["code"],
        "subject_types_supported": ["public"],
        "id_token_signing_alg_values_supported": ["none"],
        "scopes_supported": list(_SCOPES),
        "token_endpoint_auth_methods_supported": list(_AUTH_METHODS),
        "claims_supported": ["sub", "name", "email", "username"],
    }
