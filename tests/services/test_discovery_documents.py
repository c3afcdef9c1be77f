from __future__ import annotations

import dataclasses

from oauth_test_server.core.config import SETTINGS
from oauth_test_server.services.discovery import (
    authorization_server_metadata,
    openid_configuration,
)


def test_metadata_uses_issuer_url() -> None:
    settings = dataclasses.replace(SETTINGS, issuer_url="https://auth.ci.local/")
    doc = authorization_server_metadata(settings)
    assert doc["issuer"] == "https://auth.ci.local"
    assert doc["introspection_endpoint"] == "https://auth.ci.local/oauth/introspect"
    assert doc["revocation_endpoint"] == "https://auth.ci.local/oauth/revoke"
    assert doc["token_endpoint_auth_methods_supported"] == [
        "client_secret_post",
        "client_secret_basic",
    ]


def test_openid_configuration_falls_back_to_host_and_port() -> None:
    settings = dataclasses.replace(SETTINGS, issuer_url=None, host="localhost", port=3000)
    doc = openid_configuration(settings)
    assert doc["issuer"] == "http://localhost:3000"
    assert doc["subject_types_supported"] == ["public"]
    assert "sub" in doc["claims_supported"]
