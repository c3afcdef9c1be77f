"""Liveness endpoint.

Integration suites poll /health until the server is up before starting
the OAuth flow, so it answers 200 whenever the process can respond.
A Redis outage shows up as checks.redis == "degraded", not as a 5xx.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Annotated

from fastapi import APIRouter, Depends

from oauth_test_server.api.dependencies import get_token_store
from oauth_test_server.db.redis import ping_redis
from oauth_test_server.repos.token_store import TokenStore

router = APIRouter(tags=["health"])


@router.get("/health")
async def health(
    store: Annotated[TokenStore, Depends(get_token_store)],
) -> dict:
    return {
        "status": "ok",
        "timestamp": datetime.now(UTC).isoformat(),
        "checks": {"redis": await ping_redis()},
        "token_store": store.backend,
    }
