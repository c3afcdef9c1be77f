from __future__ import annotations

from fastapi.testclient import TestClient


def test_authorization_server_metadata(client: TestClient) -> None:
    resp = client.get("/.well-known/oauth-authorization-server")
    assert resp.status_code == 200
    body = resp.json()
    issuer = body["issuer"]
    assert body["authorization_endpoint"] == f"{issuer}/oauth/authorize"
    assert body["token_endpoint"] == f"{issuer}/oauth/token"
    assert body["grant_types_supported"] == ["authorization_code", "refresh_token"]
    assert body["response_types_supported"] == ["code"]


def test_openid_configuration(client: TestClient) -> None:
    resp = client.get("/.well-known/openid-configuration")
    assert resp.status_code == 200
    body = resp.json()
    assert body["userinfo_endpoint"].endswith("/oauth/userinfo")
    assert body["id_token_signing_alg_values_supported"] == ["none"]
    assert "client_secret_basic" in body["token_endpoint_auth_methods_supported"]
