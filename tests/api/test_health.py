from __future__ import annotations

from fastapi.testclient import TestClient


def test_health_ok(client: TestClient) -> None:
    resp = client.get("/health")
    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "ok"
    assert data["checks"]["redis"] == "not_configured"
    assert data["token_store"] == "memory"
    assert "timestamp" in data


def test_home_lists_endpoints_and_fixtures(client: TestClient) -> None:
    resp = client.get("/")
    assert resp.status_code == 200
    assert "/oauth/token" in resp.text
    assert "test-client" in resp.text
    assert "testuser" in resp.text
