from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Literal

AppEnv = Literal["dev", "test", "prod"]
LogLevel = Literal["debug", "info", "warning", "error"]
TokenStoreBackend = Literal["memory", "file", "redis"]


def _getenv(name: str, default: str) -> str:
    # Centralize env access so it's easy to extend later (type casting, required vars)
    return os.environ.get(name, default).strip()


def _getenv_int(name: str, default: str, *, positive: bool = False) -> int:
    raw = _getenv(name, default)
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer (got {raw!r})") from None
    if positive and value <= 0:
        raise ValueError(f"{name} must be a positive integer (got {value})")
    return value


@dataclass(frozen=True)
class Settings:
    app_env: AppEnv
    log_level: LogLevel
    log_json: bool
    host: str
    port: int
    issuer_url: str | None
    auth_code_ttl_sec: int
    access_token_ttl_sec: int
    refresh_token_ttl_sec: int
    token_store: TokenStoreBackend
    token_store_path: str
    redis_url: str | None
    credentials_file: str | None

    @property
    def is_dev(self) -> bool:
        return self.app_env == "dev"

    @property
    def is_test(self) -> bool:
        return self.app_env == "test"

    @property
    def is_prod(self) -> bool:
        return self.app_env == "prod"

    @property
    def base_url(self) -> str:
        """Public base URL used as the issuer and in discovery documents."""
        if self.issuer_url:
            return self.issuer_url.rstrip("/")
        return f"http://{self.host}:{self.port}"


def load_settings() -> Settings:
    app_env_raw = _getenv("APP_ENV", "dev").lower()
    log_level_raw = _getenv("LOG_LEVEL", "info").lower()
    log_json_raw = _getenv("LOG_JSON", "false").lower()
    token_store_raw = _getenv("TOKEN_STORE", "memory").lower()

    if app_env_raw not in ("dev", "test", "prod"):
        raise ValueError(f"APP_ENV must be dev|test|prod (got {app_env_raw!r})")

    if log_level_raw not in ("debug", "info", "warning", "error"):
        raise ValueError(
            f"LOG_LEVEL must be debug|info|warning|error (got {log_level_raw!r})"
        )

    if token_store_raw not in ("memory", "file", "redis"):
        raise ValueError(
            f"TOKEN_STORE must be memory|file|redis (got {token_store_raw!r})"
        )

    port = _getenv_int("PORT", "3000")

    return Settings(  # type: ignore[arg-type]
        app_env=app_env_raw,
        log_level=log_level_raw,
        log_json=log_json_raw in ("1", "true", "yes"),
        host=_getenv("HOST", "localhost") or "localhost",
        port=port,
        issuer_url=_getenv("ISSUER_URL", "") or None,
        # Lifetimes mirror the fixture server defaults: 10 min / 1 h / 24 h.
        auth_code_ttl_sec=_getenv_int("AUTH_CODE_TTL_SEC", "600", positive=True),
        access_token_ttl_sec=_getenv_int("ACCESS_TOKEN_TTL_SEC", "3600", positive=True),
        refresh_token_ttl_sec=_getenv_int(
            "REFRESH_TOKEN_TTL_SEC", "86400", positive=True
        ),
        token_store=token_store_raw,
        token_store_path=_getenv("TOKEN_STORE_PATH", "storage/tokens.json"),
        redis_url=_getenv("REDIS_URL", "") or None,
        credentials_file=_getenv("CREDENTIALS_FILE", "") or None,
    )


# Module-level singleton so imports are cheap
SETTINGS = load_settings()
