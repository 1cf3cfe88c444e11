"""캐시 서비스 — Redis 또는 프로세스 메모리 TTL 캐시.

Cache Service — Short-TTL cache used by the analytics endpoints.
Uses Redis (redis.asyncio) when ``REDIS_URL`` is configured, otherwise an
in-process dictionary with expiry checked on read. Every failure is logged
and reported as a cache miss so callers fall back to live computation.
"""

import json
import logging
import time
from collections.abc import Callable
from typing import Any

import redis.asyncio as aioredis
from redis.exceptions import RedisError

logger = logging.getLogger(__name__)


class CacheService:
    """TTL 캐시 — JSON-serialisable values with a per-key time to live."""

    def __init__(
        self,
        redis_url: str = "",
        default_ttl: int = 600,
        max_memory_entries: int = 1000,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._redis: aioredis.Redis | None = (
            aioredis.from_url(redis_url, decode_responses=True) if redis_url else None
        )
        self._memory: dict[str, tuple[float, str]] = {}
        self._default_ttl = default_ttl
        self._max_memory_entries = max_memory_entries
        self._clock = clock
        self.hits: int = 0
        self.misses: int = 0

    @property
    def backend(self) -> str:
        return "redis" if self._redis is not None else "memory"

    async def get(self, key: str) -> Any | None:
        """캐시 조회 — Return the cached value or None on miss, expiry or error."""
        raw: str | None = None
        if self._redis is not None:
            try:
                raw = await self._redis.get(key)
            except (RedisError, OSError) as exc:
                logger.warning("Cache get failed", extra={"key": key, "error": str(exc)})
                raw = None
        else:
            entry = self._memory.get(key)
            if entry is not None:
                expires_at, raw = entry
                if expires_at <= self._clock():
                    del self._memory[key]
                    raw = None

        if raw is None:
            self.misses += 1
            return None
        try:
            value = json.loads(raw)
        except ValueError:
            # 손상되었거나 다른 형식의 값 — corrupt or foreign value under this key
            logger.warning("Cache value is not valid JSON", extra={"key": key})
            await self.delete(key)
            self.misses += 1
            return None
        self.hits += 1
        return value

    async def set(self, key: str, value: Any, ttl: int | None = None) -> bool:
        """캐시 저장 — Store a value; returns False when the cache is unavailable."""
        ttl = ttl or self._default_ttl
        raw = json.dumps(value, default=str)
        if self._redis is not None:
            try:
                await self._redis.set(key, raw, ex=ttl)
                return True
            except (RedisError, OSError) as exc:
                logger.warning("Cache set failed", extra={"key": key, "error": str(exc)})
                return False

        if len(self._memory) >= self._max_memory_entries:
            self._evict()
        self._memory[key] = (self._clock() + ttl, raw)
        return True

    async def delete(self, key: str) -> bool:
        if self._redis is not None:
            try:
                await self._redis.delete(key)
                return True
            except (RedisError, OSError) as exc:
                logger.warning("Cache delete failed", extra={"key": key, "error": str(exc)})
                return False
        return self._memory.pop(key, None) is not None

    async def ping(self) -> bool:
        """캐시 상태 확인 — Round-trip a probe key through the cache."""
        probe_key = "health:probe"
        if not await self.set(probe_key, "ok", ttl=10):
            return False
        ok = await self.get(probe_key) == "ok"
        await self.delete(probe_key)
        return ok

    async def close(self) -> None:
        if self._redis is not None:
            await self._redis.aclose()

    def _evict(self) -> None:
        # 만료 항목 먼저 제거, 그래도 가득 차면 가장 먼저 만료될 항목 제거
        now = self._clock()
        for key in [k for k, (expires_at, _) in self._memory.items() if expires_at <= now]:
            del self._memory[key]
        while len(self._memory) >= self._max_memory_entries:
            oldest = min(self._memory, key=lambda k: self._memory[k][0])
            del self._memory[oldest]


def analytics_key(metric: str, user_id: Any, date_range: str) -> str:
    """분석 캐시 키 — ``analytics:{metric}:{user_id}:{range}``."""
    return f"analytics:{metric}:{user_id}:{date_range}"
