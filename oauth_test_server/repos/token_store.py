"""Token store: the only owner of codes, access tokens and refresh tokens.

Three keyed collections (one per TokenKind), each mapping an opaque
random string to an immutable record with an ``expires_at`` timestamp.

CONTRACT
--------
  put(kind, key, record)   insert or overwrite, never fails
  get(kind, key)           record or None; does NOT filter expiry, the
                           caller decides what an expired record means
  delete(kind, key)        idempotent
  sweep(now)               drop every record with expires_at < now
  generate_key()           256 random bits, hex encoded

A put/delete is visible to the next get as soon as it returns; nothing
is buffered across requests.

EXPIRY
------
There is no background sweeper.  Expiry is enforced where records are
read (get, check, maybe delete), so an expired record can sit in the
store until somebody touches it.  The file backend additionally sweeps
every time it loads its snapshot; the Redis backend puts a TTL on each
key so Redis compacts on its own.

BACKENDS
--------
  InMemoryTokenStore   dicts, per-process, the default
  JsonFileTokenStore   at-rest JSON snapshot, survives restarts
  RedisTokenStore      shared across processes

Grant logic only sees the TokenStore protocol, so backends can be
swapped without touching it.
"""

from __future__ import annotations

import json
import logging
import os
import secrets
from collections.abc import Callable
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from oauth_test_server.core.config import Settings
from oauth_test_server.core.metrics import TOKENS_SWEPT
from oauth_test_server.models.tokens import (
    TokenKind,
    TokenRecord,
    epoch_now,
    record_from_dict,
)

logger = logging.getLogger(__name__)

# 32 bytes = 256 bits.  Uniqueness is trusted to the entropy source;
# there is no collision retry.
TOKEN_BYTES = 32


def generate_token_key() -> str:
    return secrets.token_hex(TOKEN_BYTES)


@runtime_checkable
class TokenStore(Protocol):
    backend: str

    async def put(self, kind: TokenKind, key: str, record: TokenRecord) -> None:
        """Insert or overwrite a record."""
        ...

    async def get(self, kind: TokenKind, key: str) -> TokenRecord | None:
        """Return the record, expired or not, or None if absent."""
        ...

    async def delete(self, kind: TokenKind, key: str) -> None:
        """Remove a record; absent keys are ignored."""
        ...

    async def sweep(self, now: int) -> int:
        """Remove all records with expires_at < now, return how many."""
        ...

    def generate_key(self) -> str:
        """Fresh opaque key for a new record."""
        ...


class InMemoryTokenStore:
    """Dict-backed store for tests and local runs.

    Never sweeps on its own: expired records stay until a lookup rejects
    them or sweep() is called.
    """

    backend = "memory"

    def __init__(self) -> None:
        self._tables: dict[TokenKind, dict[str, TokenRecord]] = {
            kind: {} for kind in TokenKind
        }

    async def put(self, kind: TokenKind, key: str, record: TokenRecord) -> None:
        self._tables[kind][key] = record

    async def get(self, kind: TokenKind, key: str) -> TokenRecord | None:
        return self._tables[kind].get(key)

    async def delete(self, kind: TokenKind, key: str) -> None:
        self._tables[kind].pop(key, None)

    async def sweep(self, now: int) -> int:
        removed = 0
        for table in self._tables.values():
            expired = [k for k, rec in table.items() if rec.expires_at < now]
            for k in expired:
                del table[k]
            removed += len(expired)
        if removed:
            TOKENS_SWEPT.inc(removed)
            logger.debug("Swept %d expired records from memory", removed)
        return removed

    def generate_key(self) -> str:
        return generate_token_key()

    def clear(self) -> None:
        for table in self._tables.values():
            table.clear()


class JsonFileTokenStore:
    """Snapshot store: one JSON document holding all three collections.

    Layout:  {"authorizationCodes": {key: {...}}, "accessTokens": {...},
              "refreshTokens": {...}}  with expiresAt in epoch seconds.

    Every operation reloads the file, so edits by another process (or a
    developer poking at the file) are picked up.  Loading sweeps expired
    entries and writes the compacted snapshot back at once, so an expired
    record is removed from disk (and counted) exactly once.  Mutations
    write the whole document back through a temp file and os.replace so
    a crash never leaves half a snapshot behind.
    """

    backend = "file"

    def __init__(self, path: str | Path, clock: Callable[[], int] = epoch_now) -> None:
        self._path = Path(path)
        self._clock = clock

    @property
    def path(self) -> Path:
        return self._path

    # --- snapshot I/O -------------------------------------------------------

    def _empty(self) -> dict[str, dict[str, dict[str, Any]]]:
        return {kind.value: {} for kind in TokenKind}

    def _load(self) -> dict[str, dict[str, dict[str, Any]]]:
        try:
            raw = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return self._empty()

        if not raw.strip():
            return self._empty()
        try:
            loaded = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Token snapshot %s is not valid JSON, starting empty", self._path)
            return self._empty()

        data = self._empty()
        if isinstance(loaded, dict):
            for kind in TokenKind:
                section = loaded.get(kind.value)
                if isinstance(section, dict):
                    data[kind.value] = section

        removed = self._compact(data, self._clock())
        if removed:
            self._save(data)
            TOKENS_SWEPT.inc(removed)
            logger.debug("Compacted %d expired records from %s", removed, self._path)
        return data

    def _save(self, data: dict[str, dict[str, dict[str, Any]]]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self._path.with_name(self._path.name + ".tmp")
        tmp.write_text(json.dumps(data, indent=2), encoding="utf-8")
        os.replace(tmp, self._path)

    @staticmethod
    def _compact(data: dict[str, dict[str, dict[str, Any]]], now: int) -> int:
        removed = 0
        for section in data.values():
            expired = [
                k for k, rec in section.items() if int(rec.get("expiresAt", 0)) < now
            ]
            for k in expired:
                del section[k]
            removed += len(expired)
        return removed

    # --- TokenStore ----------------------------------------------------------

    async def put(self, kind: TokenKind, key: str, record: TokenRecord) -> None:
        data = self._load()
        data[kind.value][key] = record.to_dict()
        self._save(data)

    async def get(self, kind: TokenKind, key: str) -> TokenRecord | None:
        entry = self._load()[kind.value].get(key)
        if entry is None:
            return None
        return record_from_dict(kind, entry)

    async def delete(self, kind: TokenKind, key: str) -> None:
        data = self._load()
        if data[kind.value].pop(key, None) is not None:
            self._save(data)

    async def sweep(self, now: int) -> int:
        # _load already persisted compaction against the store clock;
        # compact again against the caller's notion of "now".
        data = self._load()
        removed = self._compact(data, now)
        if removed:
            self._save(data)
            TOKENS_SWEPT.inc(removed)
        return removed

    def generate_key(self) -> str:
        return generate_token_key()


class RedisTokenStore:
    """Redis-backed store, one JSON string per record.

    Keys are prefixed ``oauth:<kind>:`` to stay clear of anything else in
    the same database.  Each key carries a TTL of the record's remaining
    lifetime plus a grace period: the grace keeps an expired record
    readable long enough for the lookup to report it as *expired* (and
    delete it) instead of *unknown*.
    """

    backend = "redis"

    _PREFIX = "oauth:"
    _EXPIRY_GRACE_SEC = 3600

    def __init__(self, redis_client, clock: Callable[[], int] = epoch_now) -> None:
        self._redis = redis_client
        self._clock = clock

    def _key(self, kind: TokenKind, key: str) -> str:
        return f"{self._PREFIX}{kind.value}:{key}"

    async def put(self, kind: TokenKind, key: str, record: TokenRecord) -> None:
        ttl = max(record.expires_at - self._clock(), 0) + self._EXPIRY_GRACE_SEC
        # SET with EX stores value and TTL in one command.
        await self._redis.set(self._key(kind, key), json.dumps(record.to_dict()), ex=ttl)

    async def get(self, kind: TokenKind, key: str) -> TokenRecord | None:
        raw = await self._redis.get(self._key(kind, key))
        if raw is None:
            return None
        return record_from_dict(kind, json.loads(raw))

    async def delete(self, kind: TokenKind, key: str) -> None:
        await self._redis.delete(self._key(kind, key))

    async def sweep(self, now: int) -> int:
        removed = 0
        for kind in TokenKind:
            # SCAN, not KEYS: never block the server on a full keyspace walk.
            async for redis_key in self._redis.scan_iter(
                match=f"{self._PREFIX}{kind.value}:*", count=100
            ):
                raw = await self._redis.get(redis_key)
                if raw is None:
                    continue
                if int(json.loads(raw).get("expiresAt", 0)) < now:
                    await self._redis.delete(redis_key)
                    removed += 1
        if removed:
            TOKENS_SWEPT.inc(removed)
        return removed

    def generate_key(self) -> str:
        return generate_token_key()


def build_token_store(settings: Settings, redis_client=None) -> TokenStore:
    """Pick the backend named by TOKEN_STORE."""
    if settings.token_store == "redis":
        if redis_client is not None:
            return RedisTokenStore(redis_client)
        logger.warning("TOKEN_STORE=redis but REDIS_URL is not set, using memory")
        return InMemoryTokenStore()

    if settings.token_store == "file":
        logger.info("Token snapshots at %s", settings.token_store_path)
        return JsonFileTokenStore(settings.token_store_path)

    return InMemoryTokenStore()
