"""Read cache for serialized GET responses.

Entries are JSON-compatible payloads keyed by request signature and expire
after a fixed TTL. A hit is returned as-is; there is no freshness check beyond
TTL expiry. Any committed mutation clears the whole cache, because keys are not
tagged by entity and cannot be invalidated selectively.

Every clear also bumps a generation counter. A reader captures the generation
before querying the database and passes it to ``set``; if a mutation committed
in between, the generation no longer matches and the result is not stored.

Two backends share the same interface: an in-process memory store (default,
lives from process start to shutdown) and Redis for deployments with several
worker processes.
"""

from __future__ import annotations

import hashlib
import json
import time
from typing import Any

import redis.asyncio as redis_async
from redis.exceptions import WatchError
from starlette.requests import Request

from app.config import get_settings

_CACHE_PREFIX = "read-cache:"
# Outside the prefix so invalidation never deletes it
_GENERATION_KEY = "read-cache-generation"


class ReadCache:
    """Interface of the read cache service."""

    ttl_seconds: int

    async def get(self, key: str) -> tuple[bool, Any]:
        """Return ``(hit, value)``; cached ``None``/empty values still count as hits."""
        raise NotImplementedError

    async def generation(self) -> int:
        """Current invalidation generation."""
        raise NotImplementedError

    async def set(
        self,
        key: str,
        value: Any,
        ttl_seconds: int | None = None,
        *,
        generation: int | None = None,
    ) -> bool:
        """Store ``value``; skipped (returns False) when ``generation`` is outdated."""
        raise NotImplementedError

    async def invalidate_all(self) -> None:
        raise NotImplementedError

    async def close(self) -> None:
        return None


class MemoryReadCache(ReadCache):
    """Process-wide dict store. No per-key locking; concurrent misses may both populate."""

    def __init__(self, ttl_seconds: int = 300, clock=time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[str, tuple[Any, float]] = {}
        self._generation = 0

    async def get(self, key: str) -> tuple[bool, Any]:
        entry = self._entries.get(key)
        if entry is None:
            return False, None

        value, expires_at = entry
        if expires_at <= self._clock():
            self._entries.pop(key, None)
            return False, None

        return True, value

    async def generation(self) -> int:
        return self._generation

    async def set(
        self,
        key: str,
        value: Any,
        ttl_seconds: int | None = None,
        *,
        generation: int | None = None,
    ) -> bool:
        if generation is not None and generation != self._generation:
            return False
        ttl = self.ttl_seconds if ttl_seconds is None else ttl_seconds
        self._entries[key] = (value, self._clock() + ttl)
        return True

    async def invalidate_all(self) -> None:
        self._generation += 1
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


class RedisReadCache(ReadCache):
    """Redis-backed store shared across worker processes."""

    def __init__(self, url: str, ttl_seconds: int = 300, client=None):
        self.url = url
        self.ttl_seconds = ttl_seconds
        self._client = client

    async def _connect(self):
        if self._client is not None:
            return self._client

        self._client = redis_async.from_url(
            self.url,
            encoding="utf-8",
            decode_responses=True,
        )
        return self._client

    async def get(self, key: str) -> tuple[bool, Any]:
        client = await self._connect()
        raw = await client.get(_CACHE_PREFIX + key)
        if raw is None:
            return False, None
        return True, json.loads(raw)

    async def generation(self) -> int:
        client = await self._connect()
        return int(await client.get(_GENERATION_KEY) or 0)

    async def set(
        self,
        key: str,
        value: Any,
        ttl_seconds: int | None = None,
        *,
        generation: int | None = None,
    ) -> bool:
        client = await self._connect()
        ttl = self.ttl_seconds if ttl_seconds is None else ttl_seconds
        payload = json.dumps(value, ensure_ascii=False)
        if generation is None:
            await client.set(_CACHE_PREFIX + key, payload, ex=ttl)
            return True

        # WATCH makes the generation check and the SET one atomic step
        async with client.pipeline(transaction=True) as pipe:
            try:
                await pipe.watch(_GENERATION_KEY)
                current = int(await pipe.get(_GENERATION_KEY) or 0)
                if current != generation:
                    await pipe.unwatch()
                    return False
                pipe.multi()
                pipe.set(_CACHE_PREFIX + key, payload, ex=ttl)
                await pipe.execute()
            except WatchError:
                return False
        return True

    async def invalidate_all(self) -> None:
        client = await self._connect()
        await client.incr(_GENERATION_KEY)
        keys = [key async for key in client.scan_iter(match=_CACHE_PREFIX + "*")]
        if keys:
            await client.delete(*keys)

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None


def create_read_cache() -> ReadCache:
    """Build the configured cache backend."""
    settings = get_settings()
    if settings.READ_CACHE_BACKEND == "redis":
        return RedisReadCache(settings.REDIS_URL, ttl_seconds=settings.READ_CACHE_TTL_SECONDS)
    if settings.READ_CACHE_BACKEND != "memory":
        raise ValueError(f"Unknown READ_CACHE_BACKEND: {settings.READ_CACHE_BACKEND}")
    return MemoryReadCache(ttl_seconds=settings.READ_CACHE_TTL_SECONDS)


def cache_key_for(request: Request) -> str:
    """Key a GET by path, method and sorted query string."""
    query = sorted(request.query_params.multi_items())
    query_hash = hashlib.md5(json.dumps(query).encode("utf-8")).hexdigest()
    return f"{request.url.path}:{request.method}:{query_hash}"
