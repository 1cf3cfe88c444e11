"""모니터링 서비스 — 헬스 체크 및 요청 메트릭.

Monitoring Service — Database and cache health checks plus in-process
request metrics fed by the request logging middleware.

Status rules:
    - healthy: every check passed
    - degraded: the cache failed (analytics fall back to live queries)
    - critical: the database is unreachable
"""

import logging
import time
from collections import deque
from collections.abc import Callable
from typing import Any

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.database import utcnow
from app.services.cache_service import CacheService

logger = logging.getLogger(__name__)

# 응답 시간 샘플 보관 수 — Response time samples kept for the average
MAX_SAMPLES: int = 1000


def format_uptime(seconds: float) -> str:
    """가동 시간 표시 — e.g. ``2d 3h 4m``, ``5m 6s``."""
    seconds = int(seconds)
    minutes, secs = divmod(seconds, 60)
    hours, minutes = divmod(minutes, 60)
    days, hours = divmod(hours, 24)
    if days:
        return f"{days}d {hours}h {minutes}m"
    if hours:
        return f"{hours}h {minutes}m"
    if minutes:
        return f"{minutes}m {secs}s"
    return f"{secs}s"


class MonitoringService:
    """모니터링 서비스.

    Attributes:
        session_factory: 헬스 체크용 세션 팩토리 (Opens a session per database check)
        cache: 캐시 서비스 (Probed by the cache check, source of hit/miss counts)
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        cache: CacheService,
        app_env: str = "development",
        version: str = "1.0.0",
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.session_factory = session_factory
        self.cache = cache
        self.app_env = app_env
        self.version = version
        self._clock = clock
        self._started = clock()
        self.requests: int = 0
        self.errors: int = 0
        self._durations: deque[float] = deque(maxlen=MAX_SAMPLES)

    def record_request(self, status_code: int, duration_ms: float) -> None:
        """요청 기록 — 4xx/5xx 응답은 오류로 집계합니다."""
        self.requests += 1
        if status_code >= 400:
            self.errors += 1
        self._durations.append(duration_ms)

    @property
    def uptime_seconds(self) -> float:
        return self._clock() - self._started

    async def check_database(self) -> dict[str, Any]:
        try:
            async with self.session_factory() as session:
                await session.execute(text("SELECT 1"))
        except (SQLAlchemyError, OSError) as exc:
            logger.error("Database health check failed", extra={"error": str(exc)})
            return {"status": "critical", "error": str(exc)}
        return {"status": "healthy"}

    async def check_cache(self) -> dict[str, Any]:
        if await self.cache.ping():
            return {"status": "healthy", "type": self.cache.backend}
        return {"status": "degraded", "type": self.cache.backend, "error": "Cache test failed"}

    async def health(self) -> dict[str, Any]:
        """전체 상태 — ``{status, timestamp, uptime, version, environment, checks}``."""
        checks = {
            "database": await self.check_database(),
            "cache": await self.check_cache(),
        }
        statuses = {check["status"] for check in checks.values()}
        if "critical" in statuses:
            status = "critical"
        elif statuses != {"healthy"}:
            status = "degraded"
        else:
            status = "healthy"
        if status != "healthy":
            logger.warning("System health %s", status, extra={"checks": checks})
        return {
            "status": status,
            "timestamp": utcnow().isoformat(),
            "uptime": round(self.uptime_seconds, 3),
            "version": self.version,
            "environment": self.app_env,
            "checks": checks,
        }

    def metrics(self) -> dict[str, Any]:
        """성능 메트릭 — Request counts, error rate, response time and cache hit rate."""
        lookups = self.cache.hits + self.cache.misses
        average = sum(self._durations) / len(self._durations) if self._durations else 0.0
        return {
            "requests": {
                "total": self.requests,
                "errors": self.errors,
                "error_rate": round(self.errors / self.requests * 100, 2) if self.requests else 0.0,
            },
            "performance": {
                "average_response_time_ms": round(average, 2),
                "uptime_seconds": round(self.uptime_seconds, 3),
                "uptime": format_uptime(self.uptime_seconds),
            },
            "cache": {
                "backend": self.cache.backend,
                "hits": self.cache.hits,
                "misses": self.cache.misses,
                "hit_rate": round(self.cache.hits / lookups * 100, 2) if lookups else 0.0,
            },
        }
