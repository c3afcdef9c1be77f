"""Prometheus metric inventory.

All metrics live here so there is one place to see what the server
measures.  HTTP metrics are fed by MetricsMiddleware; the OAuth metrics
are incremented by the services that own the behaviour.

Handy queries when watching an integration run:

  sum by (grant_type) (rate(oauth_tokens_issued_total[1m]))
  sum by (error) (oauth_errors_total)
"""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

# ---------------------------------------------------------------------------
# HTTP
# ---------------------------------------------------------------------------

REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total HTTP requests by method, endpoint, and status code",
    ["method", "endpoint", "status_code"],
)

REQUEST_DURATION = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    # In-process store lookups are sub-millisecond; the upper buckets only
    # matter for the file and Redis backends.
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0],
)

ACTIVE_REQUESTS = Gauge(
    "http_active_requests",
    "Number of HTTP requests currently being processed",
)

# ---------------------------------------------------------------------------
# OAuth
# ---------------------------------------------------------------------------

TOKENS_ISSUED = Counter(
    "oauth_tokens_issued_total",
    "Tokens and codes minted",
    # token_type: authorization_code | access_token | refresh_token
    # grant_type: authorization_code | refresh_token | login
    ["token_type", "grant_type"],
)

OAUTH_ERRORS = Counter(
    "oauth_errors_total",
    "OAuth error responses by error code",
    ["error"],  # invalid_grant, invalid_client, invalid_token, ...
)

TOKENS_SWEPT = Counter(
    "oauth_tokens_swept_total",
    "Expired records removed by a store sweep",
)
