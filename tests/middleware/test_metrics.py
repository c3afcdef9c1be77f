"""Prometheus counters are global and only go up, so every test asserts
on the delta between a reading before and after the action.
"""

from __future__ import annotations

from fastapi.testclient import TestClient
from prometheus_client import REGISTRY

from tests.conftest import exchange_code, obtain_code


def _sample(name: str, labels: dict | None = None) -> float:
    value = REGISTRY.get_sample_value(name, labels=labels or {})
    return value if value is not None else 0.0


def test_request_counter_increments(client: TestClient) -> None:
    labels = {"method": "GET", "endpoint": "/health", "status_code": "200"}
    before = _sample("http_requests_total", labels)
    client.get("/health")
    assert _sample("http_requests_total", labels) - before == 1


def test_request_duration_observed(client: TestClient) -> None:
    labels = {"method": "GET", "endpoint": "/health"}
    before = _sample("http_request_duration_seconds_count", labels)
    client.get("/health")
    assert _sample("http_request_duration_seconds_count", labels) - before == 1


def test_metrics_endpoint_is_not_counted(client: TestClient) -> None:
    labels = {"method": "GET", "endpoint": "/metrics", "status_code": "200"}
    before = _sample("http_requests_total", labels)
    resp = client.get("/metrics")
    assert resp.status_code == 200
    assert "http_requests_total" in resp.text
    assert _sample("http_requests_total", labels) == before


def test_token_issuance_counted(client: TestClient) -> None:
    code_labels = {"token_type": "authorization_code", "grant_type": "login"}
    access_labels = {"token_type": "access_token", "grant_type": "authorization_code"}
    refresh_labels = {"token_type": "refresh_token", "grant_type": "authorization_code"}
    before = [
        _sample("oauth_tokens_issued_total", labels)
        for labels in (code_labels, access_labels, refresh_labels)
    ]

    assert exchange_code(client, obtain_code(client)).status_code == 200

    after = [
        _sample("oauth_tokens_issued_total", labels)
        for labels in (code_labels, access_labels, refresh_labels)
    ]
    assert [a - b for a, b in zip(after, before)] == [1, 1, 1]


def test_oauth_errors_counted_by_code(client: TestClient) -> None:
    labels = {"error": "invalid_grant"}
    before = _sample("oauth_errors_total", labels)
    exchange_code(client, "not-a-code")
    assert _sample("oauth_errors_total", labels) - before == 1
