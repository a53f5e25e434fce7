import fnmatch

import pytest

from application.services.best_effort_cache import BestEffortCache, best_effort
from infrastructure.cache import InMemoryGroupCache, RedisGroupCache


class StubRedis:
    """Minimal async Redis double covering the commands the group cache issues."""

    def __init__(self):
        self.data: dict[str, str] = {}
        self.ttls: dict[str, int] = {}

    async def get(self, key):
        return self.data.get(key)

    async def set(self, key, value, ex=None):
        self.data[key] = value
        if ex is not None:
            self.ttls[key] = ex

    async def delete(self, *keys):
        removed = 0
        for key in keys:
            removed += self.data.pop(key, None) is not None
        return removed

    async def incr(self, key):
        value = int(self.data.get(key, 0)) + 1
        self.data[key] = str(value)
        return value

    async def mget(self, keys):
        return [self.data.get(k) for k in keys]

    async def scan_iter(self, match=None, count=None):
        for key in list(self.data):
            if match is None or fnmatch.fnmatchcase(key, match):
                yield key

    async def ping(self):
        return True


class _Clock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


@pytest.mark.asyncio
async def test_memory_cache_groups_are_disjoint():
    cache = InMemoryGroupCache(default_ttl=0)
    await cache.set("objects-by-id", "k", {"v": 1})
    await cache.set("list-results", "k", {"v": 2})

    await cache.clear_group("list-results")

    assert await cache.get("objects-by-id", "k") == {"v": 1}
    assert await cache.get("list-results", "k") is None


@pytest.mark.asyncio
async def test_memory_cache_entries_expire():
    clock = _Clock()
    cache = InMemoryGroupCache(default_ttl=0, clock=clock)
    await cache.set("pending-uploads", "k", "grant", ttl=10)

    clock.now += 11

    assert await cache.get("pending-uploads", "k") is None
    assert await cache.list_group("pending-uploads") == []


@pytest.mark.asyncio
async def test_memory_cache_returns_copies():
    cache = InMemoryGroupCache(default_ttl=0)
    value = {"items": []}
    await cache.set("list-results", "list:50", value)
    value["items"].append("mutated")

    assert await cache.get("list-results", "list:50") == {"items": []}


@pytest.mark.asyncio
async def test_memory_cache_delete_missing_is_noop():
    cache = InMemoryGroupCache(default_ttl=0)
    await cache.delete("objects-by-id", "nope")


@pytest.mark.asyncio
async def test_redis_cache_clear_group_hides_old_generation():
    client = StubRedis()
    cache = RedisGroupCache(client, namespace="mv", default_ttl=60)
    await cache.set("list-results", "list:50", {"count": 1})
    await cache.set("objects-by-id", "a", {"id": "a"})

    await cache.clear_group("list-results")

    assert await cache.get("list-results", "list:50") is None
    assert await cache.get("objects-by-id", "a") == {"id": "a"}
    assert await cache.list_group("list-results") == []
    # Old generation keys are purged, only the counter remains for the group.
    assert [k for k in client.data if k.startswith("mv:group:list-results:")] == ["mv:group:list-results:gen"]


@pytest.mark.asyncio
async def test_redis_cache_writes_after_clear_are_visible():
    cache = RedisGroupCache(StubRedis(), namespace="mv", default_ttl=60)
    await cache.clear_group("list-results")
    await cache.set("list-results", "list:1", {"count": 0})

    assert await cache.get("list-results", "list:1") == {"count": 0}
    assert await cache.list_group("list-results") == [{"count": 0}]


@pytest.mark.asyncio
async def test_redis_cache_applies_ttl():
    client = StubRedis()
    cache = RedisGroupCache(client, namespace="mv", default_ttl=60)

    await cache.set("existence-checks", "videos/a.webm", True, ttl=86400)
    await cache.set("objects-by-id", "a", {"id": "a"})

    assert client.ttls["mv:group:existence-checks:0:videos/a.webm"] == 86400
    assert client.ttls["mv:group:objects-by-id:0:a"] == 60


@pytest.mark.asyncio
async def test_redis_cache_delete_targets_current_generation():
    cache = RedisGroupCache(StubRedis(), namespace="mv", default_ttl=0)
    await cache.set("objects-by-id", "a", {"id": "a"})

    await cache.delete("objects-by-id", "a")

    assert await cache.get("objects-by-id", "a") is None


@pytest.mark.asyncio
async def test_redis_cache_write_racing_clear_leaves_no_orphan():
    client = StubRedis()
    cache = RedisGroupCache(client, namespace="mv", default_ttl=0)
    stub_set = client.set

    async def set_after_clear(key, value, ex=None):
        # 代数已读出，写入落地前分组被清空并清理完毕
        await cache.clear_group("list-results")
        await stub_set(key, value, ex=ex)

    client.set = set_after_clear
    await cache.set("list-results", "list:50", {"count": 1})

    assert "mv:group:list-results:0:list:50" not in client.data
    assert [k for k in client.data if k != "mv:group:list-results:gen"] == []
    assert await cache.get("list-results", "list:50") is None


def test_best_effort_wraps_once():
    inner = InMemoryGroupCache(default_ttl=0)
    wrapped = best_effort(inner)

    assert isinstance(wrapped, BestEffortCache)
    assert best_effort(wrapped) is wrapped
    assert wrapped.inner is inner


@pytest.mark.asyncio
async def test_best_effort_turns_errors_into_misses(failing_cache):
    cache = best_effort(failing_cache)

    assert await cache.get("objects-by-id", "a") is None
    assert await cache.list_group("objects-by-id") == []
    await cache.set("objects-by-id", "a", {"id": "a"})
    await cache.delete("objects-by-id", "a")
    await cache.clear_group("list-results")
    assert failing_cache.calls == 5
