"""대시보드 라우터 — 최근 활동 및 요약 통계.

Dashboard Router — Activity feed and summary counters of the caller.
"""

from typing import Annotated, Any

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_services, require_permission
from app.container import Services
from app.database import get_db
from app.models.user import User
from app.schemas.common import ok

router: APIRouter = APIRouter()


@router.get("/activity")
async def get_recent_activity(
    db: Annotated[AsyncSession, Depends(get_db)],
    services: Annotated[Services, Depends(get_services)],
    current_user: Annotated[User, Depends(require_permission("dashboard", "read"))],
    limit: Annotated[int, Query(ge=1, le=50, description="최대 활동 수")] = 10,
) -> dict[str, Any]:
    """최근 활동 조회.

    Last 7 days of OKR updates, logged time, received feedback and review
    work, newest first. No activity type takes more than a third of the feed.
    """
    return ok(await services.dashboard.recent_activity(db, current_user, limit))


@router.get("/summary")
async def get_summary(
    db: Annotated[AsyncSession, Depends(get_db)],
    services: Annotated[Services, Depends(get_services)],
    current_user: Annotated[User, Depends(require_permission("dashboard", "read"))],
) -> dict[str, Any]:
    """요약 통계 — 관리자/HR은 조직 전체 합계 포함."""
    return ok(await services.dashboard.summary(db, current_user))
