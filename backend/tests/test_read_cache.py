"""Read cache backends and request keying."""
import pytest
from fakeredis import aioredis as fake_aioredis
from starlette.requests import Request

from app.config import Settings
from app.services import read_cache as read_cache_module
from app.services.read_cache import (
    MemoryReadCache,
    RedisReadCache,
    cache_key_for,
    create_read_cache,
)


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now


def make_request(path, query=b"", method="GET"):
    return Request({
        "type": "http",
        "method": method,
        "path": path,
        "query_string": query,
        "headers": [],
    })


async def test_miss_then_hit():
    cache = MemoryReadCache()

    assert await cache.get("/api/regions") == (False, None)
    await cache.set("/api/regions", [{"id": 1, "name": "Europe"}])

    assert await cache.get("/api/regions") == (True, [{"id": 1, "name": "Europe"}])


async def test_empty_values_are_hits():
    cache = MemoryReadCache()
    await cache.set("empty-list", [])

    hit, value = await cache.get("empty-list")

    assert hit is True
    assert value == []


async def test_entries_expire_after_ttl():
    clock = FakeClock()
    cache = MemoryReadCache(ttl_seconds=300, clock=clock)
    await cache.set("key", {"id": 1})

    clock.now += 299
    assert (await cache.get("key"))[0] is True

    clock.now += 1
    assert await cache.get("key") == (False, None)
    assert len(cache) == 0


async def test_per_entry_ttl_override():
    clock = FakeClock()
    cache = MemoryReadCache(ttl_seconds=300, clock=clock)
    await cache.set("short", "value", ttl_seconds=5)

    clock.now += 6

    assert (await cache.get("short"))[0] is False


async def test_invalidate_all_clears_everything():
    cache = MemoryReadCache()
    await cache.set("a", 1)
    await cache.set("b", 2)

    await cache.invalidate_all()

    assert len(cache) == 0
    assert (await cache.get("a"))[0] is False


def test_cache_key_ignores_query_order():
    first = cache_key_for(make_request("/api/regions", b"b=2&a=1"))
    second = cache_key_for(make_request("/api/regions", b"a=1&b=2"))

    assert first == second
    assert first.startswith("/api/regions:GET:")


def test_cache_key_differs_by_path_and_query():
    base = cache_key_for(make_request("/api/regions/1"))

    assert base != cache_key_for(make_request("/api/regions/2"))
    assert base != cache_key_for(make_request("/api/regions/1", b"page=2"))


async def test_outdated_generation_is_not_stored():
    cache = MemoryReadCache()
    generation = await cache.generation()

    await cache.invalidate_all()
    stored = await cache.set("/api/regions", ["stale"], generation=generation)

    assert stored is False
    assert await cache.get("/api/regions") == (False, None)
    assert await cache.set("/api/regions", ["fresh"], generation=await cache.generation())
    assert await cache.get("/api/regions") == (True, ["fresh"])


@pytest.fixture
async def redis_client():
    client = fake_aioredis.FakeRedis(decode_responses=True)
    yield client
    await client.flushall()


@pytest.fixture
def redis_cache(redis_client):
    return RedisReadCache("redis://unused", ttl_seconds=300, client=redis_client)


async def test_redis_miss_then_hit(redis_cache, redis_client):
    assert await redis_cache.get("/api/pins/1") == (False, None)

    await redis_cache.set("/api/pins/1", {"id": 1, "latitude": "40.71280000"})

    assert await redis_cache.get("/api/pins/1") == (True, {"id": 1, "latitude": "40.71280000"})
    assert await redis_client.exists("read-cache:/api/pins/1") == 1


async def test_redis_empty_values_are_hits(redis_cache):
    await redis_cache.set("/api/regions", [])

    assert await redis_cache.get("/api/regions") == (True, [])


async def test_redis_entries_carry_ttl(redis_cache, redis_client):
    await redis_cache.set("default", 1)
    await redis_cache.set("short", 1, ttl_seconds=5)

    assert 0 < await redis_client.ttl("read-cache:default") <= 300
    assert 0 < await redis_client.ttl("read-cache:short") <= 5


async def test_redis_invalidate_all_leaves_foreign_keys(redis_cache, redis_client):
    await redis_client.set("download-token:abc", "keep me")
    await redis_cache.set("a", 1)
    await redis_cache.set("b", 2)

    await redis_cache.invalidate_all()

    assert (await redis_cache.get("a"))[0] is False
    assert (await redis_cache.get("b"))[0] is False
    assert await redis_client.get("download-token:abc") == "keep me"


async def test_redis_outdated_generation_is_not_stored(redis_cache):
    generation = await redis_cache.generation()

    await redis_cache.invalidate_all()

    assert await redis_cache.generation() == generation + 1
    assert await redis_cache.set("key", "stale", generation=generation) is False
    assert (await redis_cache.get("key"))[0] is False
    assert await redis_cache.set("key", "fresh", generation=generation + 1) is True
    assert await redis_cache.get("key") == (True, "fresh")


async def test_redis_close_releases_client(redis_cache):
    await redis_cache.set("key", 1)

    await redis_cache.close()

    assert redis_cache._client is None


def test_create_read_cache_selects_backend(monkeypatch):
    monkeypatch.setattr(
        read_cache_module,
        "get_settings",
        lambda: Settings(READ_CACHE_BACKEND="redis", REDIS_URL="redis://cache:6379/2", READ_CACHE_TTL_SECONDS=60),
    )
    cache = create_read_cache()
    assert isinstance(cache, RedisReadCache)
    assert cache.url == "redis://cache:6379/2"
    assert cache.ttl_seconds == 60

    monkeypatch.setattr(read_cache_module, "get_settings", lambda: Settings(READ_CACHE_BACKEND="memory"))
    assert isinstance(create_read_cache(), MemoryReadCache)

    monkeypatch.setattr(read_cache_module, "get_settings", lambda: Settings(READ_CACHE_BACKEND="disk"))
    with pytest.raises(ValueError):
        create_read_cache()
