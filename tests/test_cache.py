"""Tests for the in-process cache backend and read-through helper."""
from app.core.cache import (
    ACCESS_PREFIX,
    MemoryCache,
    access_key,
    available_territories_prefix,
    entity_key,
    list_total_key,
)


async def test_set_get_delete():
    cache = MemoryCache()
    await cache.set("entity:agency:1", {"name": "Disnaker Aceh"}, ttl=60)

    assert await cache.get("entity:agency:1") == {"name": "Disnaker Aceh"}

    await cache.delete("entity:agency:1")
    assert await cache.get("entity:agency:1") is None


async def test_expired_entries_are_dropped():
    cache = MemoryCache()
    await cache.set("short", 1, ttl=0)

    assert await cache.get("short") is None
    assert len(cache) == 0


async def test_values_are_copies():
    cache = MemoryCache()
    await cache.set("rows", [{"code": "1101"}], ttl=60)

    rows = await cache.get("rows")
    rows.append({"code": "1102"})

    assert await cache.get("rows") == [{"code": "1101"}]


async def test_delete_prefix_only_touches_matching_keys():
    cache = MemoryCache()
    await cache.set(access_key("p1", "agency", "a1"), {}, ttl=60)
    await cache.set(access_key("p2", "division", "d1"), {}, ttl=60)
    await cache.set(entity_key("agency", "a1"), {}, ttl=60)

    removed = await cache.delete_prefix(ACCESS_PREFIX)

    assert removed == 2
    assert await cache.get(entity_key("agency", "a1")) == {}


async def test_remember_loads_once_and_caches_falsy_values():
    cache = MemoryCache()
    calls = []

    async def load_count():
        calls.append(1)
        return 0

    key = list_total_key("agency", "global", "active")
    assert await cache.remember(key, 60, load_count) == 0
    assert await cache.remember(key, 60, load_count) == 0
    assert len(calls) == 1


async def test_remember_does_not_cache_none():
    cache = MemoryCache()
    calls = []

    async def load_missing():
        calls.append(1)
        return None

    await cache.remember(entity_key("agency", "missing"), 60, load_missing)
    await cache.remember(entity_key("agency", "missing"), 60, load_missing)

    assert len(calls) == 2


async def test_clear():
    cache = MemoryCache()
    await cache.set(available_territories_prefix("a1") + "new", [], ttl=60)
    await cache.set("other", 1, ttl=60)

    await cache.clear()

    assert len(cache) == 0
