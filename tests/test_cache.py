"""캐시 서비스 테스트 — 메모리 백엔드 TTL, 적중/미스 집계, 축출."""

from app.services.cache_service import CacheService, analytics_key
from tests.conftest import FakeRedis


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


class TestMemoryCache:
    """메모리 캐시 테스트."""

    async def test_set_get_and_expiry(self):
        clock = FakeClock()
        cache = CacheService(default_ttl=60, clock=clock)
        assert cache.backend == "memory"

        await cache.set("analytics:team:1:all", {"members": 3})
        assert await cache.get("analytics:team:1:all") == {"members": 3}

        clock.now += 61
        assert await cache.get("analytics:team:1:all") is None
        assert (cache.hits, cache.misses) == (1, 1)

    async def test_explicit_ttl(self):
        clock = FakeClock()
        cache = CacheService(default_ttl=600, clock=clock)
        await cache.set("short", "value", ttl=5)
        clock.now += 4
        assert await cache.get("short") == "value"
        clock.now += 2
        assert await cache.get("short") is None

    async def test_delete(self):
        cache = CacheService()
        await cache.set("key", [1, 2])
        assert await cache.delete("key") is True
        assert await cache.delete("key") is False
        assert await cache.get("key") is None

    async def test_eviction_keeps_size_bounded(self):
        clock = FakeClock()
        cache = CacheService(max_memory_entries=2, clock=clock)
        await cache.set("a", 1, ttl=10)
        await cache.set("b", 2, ttl=20)
        await cache.set("c", 3, ttl=30)
        # 가장 먼저 만료될 항목이 제거됨
        assert await cache.get("a") is None
        assert await cache.get("b") == 2
        assert await cache.get("c") == 3

    async def test_ping(self):
        cache = CacheService()
        assert await cache.ping() is True
        assert await cache.get("health:probe") is None


def test_analytics_key():
    assert analytics_key("team", "u-1", "2026-01-01-all") == "analytics:team:u-1:2026-01-01-all"


class TestRedisCache:
    """Redis 백엔드 오류 처리 테스트."""

    async def test_corrupt_value_is_a_miss_and_removed(self):
        cache = CacheService()
        cache._redis = FakeRedis()
        cache._redis.data["analytics:team:x:all"] = "{not json"

        assert await cache.get("analytics:team:x:all") is None
        assert "analytics:team:x:all" not in cache._redis.data
        assert (cache.hits, cache.misses) == (0, 1)

    async def test_round_trip(self):
        cache = CacheService()
        cache._redis = FakeRedis()
        assert cache.backend == "redis"
        assert await cache.set("analytics:team:x:all", {"members": 2}) is True
        assert await cache.get("analytics:team:x:all") == {"members": 2}

    async def test_unavailable_redis_degrades(self):
        cache = CacheService()
        cache._redis = FakeRedis(fail=True)
        assert await cache.set("key", 1) is False
        assert await cache.get("key") is None
        assert await cache.delete("key") is False
        assert await cache.ping() is False
