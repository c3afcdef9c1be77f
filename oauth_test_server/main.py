from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI

from oauth_test_server.api.dependencies import token_store
from oauth_test_server.api.discovery import router as discovery_router
from oauth_test_server.api.health import router as health_router
from oauth_test_server.api.home import router as home_router
from oauth_test_server.api.login import router as login_router
from oauth_test_server.api.metrics_endpoint import router as metrics_router
from oauth_test_server.api.oauth import router as oauth_router
from oauth_test_server.core.config import SETTINGS
from oauth_test_server.core.errors import OAuthError, oauth_error_handler
from oauth_test_server.core.logging import setup_logging
from oauth_test_server.db.redis import lifespan_redis
from oauth_test_server.middleware.metrics import MetricsMiddleware
from oauth_test_server.middleware.request_context import (
    RequestContextMiddleware,
    install_request_id_filter,
)

# Configure logging before anything else runs.
setup_logging(SETTINGS.log_level, json_format=SETTINGS.log_json)
install_request_id_filter()

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    async with lifespan_redis():
        logger.info(
            "Token store ready  backend=%s issuer=%s",
            token_store.backend,
            SETTINGS.base_url,
        )
        yield


app = FastAPI(
    title="oauth2-test-server",
    lifespan=lifespan,
    docs_url="/docs" if SETTINGS.is_dev else None,
    redoc_url="/redoc" if SETTINGS.is_dev else None,
)

app.add_exception_handler(OAuthError, oauth_error_handler)  # type: ignore[arg-type]

# Last-added runs first: RequestContext (outermost) -> Metrics -> route
app.add_middleware(MetricsMiddleware)
app.add_middleware(RequestContextMiddleware)

app.include_router(metrics_router)
app.include_router(home_router)
app.include_router(health_router)
app.include_router(discovery_router)
app.include_router(oauth_router)
app.include_router(login_router)

logger.info(
    "oauth2-test-server configured  env=%s log_level=%s port=%d docs=%s",
    SETTINGS.app_env,
    SETTINGS.log_level,
    SETTINGS.port,
    "on" if SETTINGS.is_dev else "off",
)


def run() -> None:
    """Console entry point: serve the app with uvicorn."""
    uvicorn.run(
        "oauth_test_server.main:app",
        host=SETTINGS.host,
        port=SETTINGS.port,
        log_level=SETTINGS.log_level,
    )


if __name__ == "__main__":
    run()
