"""
Shared invalidation-capable cache.

Two backends share one async interface:
- MemoryCache: in-process, for single-instance deployments and tests
- RedisCache: redis.asyncio, for multi-process deployments (CACHE_URL)

Values must be JSON-serialisable (dicts produced by ``model_dump(mode="json")``).

Usage:
    cache = get_cache()
    data = await cache.remember(entity_key("agency", agency_id), ttl, load_agency)
    await cache.delete_prefix(ACCESS_PREFIX)
"""
import asyncio
import json
import time
from collections.abc import Awaitable, Callable
from typing import Any, Optional

import redis.asyncio as redis

from app.core import config
from app.utils import get_logger


log = get_logger(__name__)

ACCESS_PREFIX = "access:"
LIST_TOTAL_PREFIX = "list_total:"


def entity_key(entity_type: str, entity_id: str) -> str:
    return f"entity:{entity_type}:{entity_id}"


def access_key(principal_id: str, entity_type: str, entity_id: str) -> str:
    return f"{ACCESS_PREFIX}{principal_id}:{entity_type}:{entity_id}"


def division_jurisdictions_key(division_id: str) -> str:
    return f"jurisdiction:division:{division_id}"


def available_territories_prefix(agency_id: str) -> str:
    return f"jurisdiction:available:{agency_id}:"


def list_total_key(entity_type: str, scope: str, status: str) -> str:
    return f"{LIST_TOTAL_PREFIX}{entity_type}:{scope}:{status}"


class CacheBackend:
    """Interface implemented by every cache backend."""

    async def get(self, key: str) -> Optional[Any]:
        raise NotImplementedError

    async def set(self, key: str, value: Any, ttl: int) -> None:
        raise NotImplementedError

    async def delete(self, key: str) -> None:
        raise NotImplementedError

    async def delete_prefix(self, prefix: str) -> int:
        raise NotImplementedError

    async def clear(self) -> None:
        raise NotImplementedError

    async def remember(
        self,
        key: str,
        ttl: int,
        loader: Callable[[], Awaitable[Any]],
    ) -> Any:
        """Read-through: return the cached value, else load, store and return it."""
        cached = await self.get(key)
        if cached is not None:
            log.debug("Cache hit %s", key)
            return cached
        log.debug("Cache miss %s", key)
        value = await loader()
        if value is not None:
            await self.set(key, value, ttl)
        return value


class MemoryCache(CacheBackend):
    """In-process cache with per-entry expiry."""

    def __init__(self):
        self._entries: dict[str, tuple[float, str]] = {}
        self._lock = asyncio.Lock()

    async def get(self, key: str) -> Optional[Any]:
        async with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            expires_at, payload = entry
            if expires_at <= time.monotonic():
                del self._entries[key]
                return None
        # Stored serialised so callers never share mutable state
        return json.loads(payload)

    async def set(self, key: str, value: Any, ttl: int) -> None:
        payload = json.dumps(value)
        async with self._lock:
            self._entries[key] = (time.monotonic() + ttl, payload)

    async def delete(self, key: str) -> None:
        async with self._lock:
            self._entries.pop(key, None)

    async def delete_prefix(self, prefix: str) -> int:
        async with self._lock:
            keys = [key for key in self._entries if key.startswith(prefix)]
            for key in keys:
                del self._entries[key]
        return len(keys)

    async def clear(self) -> None:
        async with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


class RedisCache(CacheBackend):
    """Redis-backed cache; keys are namespaced under ``agency:``."""

    def __init__(self, redis_url: str, namespace: str = "agency"):
        self.redis_url = redis_url
        self.namespace = namespace
        self._redis: Optional[redis.Redis] = None

    async def _client(self) -> redis.Redis:
        if self._redis is None:
            self._redis = redis.from_url(
                self.redis_url,
                encoding="utf-8",
                decode_responses=True,
                socket_connect_timeout=5,
                socket_timeout=5,
            )
        return self._redis

    def _key(self, key: str) -> str:
        return f"{self.namespace}:{key}"

    async def get(self, key: str) -> Optional[Any]:
        client = await self._client()
        payload = await client.get(self._key(key))
        if payload is None:
            return None
        return json.loads(payload)

    async def set(self, key: str, value: Any, ttl: int) -> None:
        client = await self._client()
        await client.setex(self._key(key), ttl, json.dumps(value))

    async def delete(self, key: str) -> None:
        client = await self._client()
        await client.delete(self._key(key))

    async def delete_prefix(self, prefix: str) -> int:
        client = await self._client()
        deleted = 0
        async for key in client.scan_iter(match=f"{self._key(prefix)}*", count=500):
            deleted += await client.delete(key)
        return deleted

    async def clear(self) -> None:
        await self.delete_prefix("")

    async def close(self) -> None:
        if self._redis is not None:
            await self._redis.close()
            self._redis = None


_cache: Optional[CacheBackend] = None


def get_cache() -> CacheBackend:
    """Process-wide cache chosen from CACHE_URL."""
    global _cache
    if _cache is None:
        if config.CACHE_URL:
            log.info("Using Redis cache backend")
            _cache = RedisCache(config.CACHE_URL)
        else:
            log.info("Using in-process cache backend")
            _cache = MemoryCache()
    return _cache
