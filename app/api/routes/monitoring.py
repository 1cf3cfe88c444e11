"""모니터링 라우터 — 헬스 체크, 메트릭, 프로브.

Monitoring Router — Health (public, for load balancers), metrics
(admin) and the ``/ready`` / ``/live`` process probes.
"""

from typing import Annotated, Any

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from app.api.deps import get_services, require_permission
from app.container import Services
from app.database import utcnow
from app.models.user import User
from app.schemas.common import ok

router: APIRouter = APIRouter()

# /ready, /live — API 접두사 없이 등록 (mounted without the /api prefix)
probe_router: APIRouter = APIRouter()


async def _health_response(services: Services) -> JSONResponse:
    health = await services.monitoring.health()
    return JSONResponse(status_code=503 if health["status"] == "critical" else 200, content=health)


@router.get("/health")
async def health(
    services: Annotated[Services, Depends(get_services)],
) -> JSONResponse:
    """시스템 상태 — 200 for healthy/degraded, 503 when critical."""
    return await _health_response(services)


@router.get("/monitoring/health")
async def monitoring_health(
    services: Annotated[Services, Depends(get_services)],
) -> JSONResponse:
    return await _health_response(services)


@router.get("/monitoring/metrics")
async def metrics(
    services: Annotated[Services, Depends(get_services)],
    current_user: Annotated[User, Depends(require_permission("monitoring", "metrics"))],
) -> dict[str, Any]:
    return ok(services.monitoring.metrics())


@probe_router.get("/ready")
async def ready(
    services: Annotated[Services, Depends(get_services)],
) -> JSONResponse:
    """준비 상태 — Ready unless the system is critical."""
    health = await services.monitoring.health()
    if health["status"] == "critical":
        return JSONResponse(status_code=503, content={"status": "not ready", "checks": health["checks"]})
    return JSONResponse(status_code=200, content={"status": "ready", "checks": health["checks"]})


@probe_router.get("/live")
async def live(
    services: Annotated[Services, Depends(get_services)],
) -> dict[str, Any]:
    return {
        "status": "alive",
        "timestamp": utcnow().isoformat(),
        "uptime": round(services.monitoring.uptime_seconds, 3),
        "checks": {},
    }
