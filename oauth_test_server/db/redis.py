"""Redis connection management.

Redis is optional.  When REDIS_URL is set, a pooled async client is
created at import time and TOKEN_STORE=redis keeps tokens there, so a
server restart (or a second server process in the same CI job) sees the
same codes and tokens.  When REDIS_URL is unset, redis_pool is None and
the token store uses one of the in-process backends instead.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import redis.asyncio as aioredis

from oauth_test_server.core.config import SETTINGS

logger = logging.getLogger(__name__)

if SETTINGS.redis_url:
    redis_pool: aioredis.Redis | None = aioredis.from_url(  # type: ignore[type-arg]
        SETTINGS.redis_url,
        decode_responses=True,
        max_connections=10,
    )
else:
    redis_pool = None


async def ping_redis() -> str:
    """Return "ok", "degraded" or "not_configured" for the health page."""
    if redis_pool is None:
        return "not_configured"
    try:
        await redis_pool.ping()  # type: ignore[misc]
    except Exception:
        logger.warning("Redis ping failed", exc_info=True)
        return "degraded"
    return "ok"


@asynccontextmanager
async def lifespan_redis() -> AsyncIterator[None]:
    """Verify Redis on startup and close the pool on shutdown.

    A failed ping is logged but does not stop the server; token store
    calls raise until Redis answers again.
    """
    if redis_pool is None:
        logger.info("No REDIS_URL configured, Redis disabled")
        yield
        return

    status = await ping_redis()
    if status == "ok":
        logger.info("Redis connected: %s", SETTINGS.redis_url)
    else:
        logger.error("Redis unreachable on startup: %s", SETTINGS.redis_url)

    try:
        yield
    finally:
        await redis_pool.aclose()
        logger.info("Redis connection pool closed")
