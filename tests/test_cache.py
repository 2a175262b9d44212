"""
CacheManager tests against an in-process stand-in for the Redis client,
covering hit/miss accounting and invalidation after post writes.
"""
import pytest

from app.cache import CacheManager


@pytest.fixture
def manager(fake_redis) -> CacheManager:
    m = CacheManager()
    m._redis = fake_redis
    return m


@pytest.mark.asyncio
async def test_disabled_cache_always_misses():
    m = CacheManager()
    await m.set("k", {"a": 1})
    assert await m.get("k") is None
    assert m.stats["misses"] == 1


@pytest.mark.asyncio
async def test_hit_and_miss_counters(manager: CacheManager):
    assert await manager.get("posts:detail:1") is None
    await manager.set("posts:detail:1", {"id": "1"})
    assert await manager.get("posts:detail:1") == {"id": "1"}
    assert manager.stats == {"hits": 1, "misses": 1, "hit_rate": 50.0}


@pytest.mark.asyncio
async def test_invalidate_post_drops_lists_and_one_detail(manager: CacheManager):
    await manager.set(manager.list_key(1, 10, None, "asc", ""), {"items": []})
    await manager.set(manager.list_key(2, 10, "title", "desc", "u1"), {"items": []})
    await manager.set(manager.detail_key("abc"), {"id": "abc"})
    await manager.set(manager.detail_key("xyz"), {"id": "xyz"})

    await manager.invalidate_post("abc")

    assert list(manager._redis.store) == ["posts:detail:xyz"]


def test_list_key_renders_missing_parts_as_empty():
    assert CacheManager.list_key(1, 10, None, "asc") == "posts:list:1:10::asc"
