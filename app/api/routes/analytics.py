"""분석 라우터 — 팀 성과, 피드백 추이, 내보내기.

Analytics Router — Team performance, feedback trends and CSV/JSON export.
"""

import io
from datetime import datetime
from typing import Annotated, Any, Literal
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from fastapi.responses import StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_services, require_permission
from app.container import Services
from app.database import get_db
from app.models.user import User
from app.schemas.common import ok

router: APIRouter = APIRouter()


@router.get("/team")
async def team_performance(
    db: Annotated[AsyncSession, Depends(get_db)],
    services: Annotated[Services, Depends(get_services)],
    current_user: Annotated[User, Depends(require_permission("analytics", "team"))],
    team_id: Annotated[UUID | None, Query(description="팀 필터")] = None,
    start_date: Annotated[datetime | None, Query()] = None,
    end_date: Annotated[datetime | None, Query()] = None,
) -> dict[str, Any]:
    """팀 성과 분석 — Admin/HR any team, managers their direct reports."""
    data = await services.analytics.team_performance(db, current_user, team_id, start_date, end_date)
    return ok(data)


@router.get("/feedback")
async def feedback_trends(
    db: Annotated[AsyncSession, Depends(get_db)],
    services: Annotated[Services, Depends(get_services)],
    current_user: Annotated[User, Depends(require_permission("analytics", "feedback"))],
    department_id: Annotated[UUID | None, Query(description="부서 필터 (관리자/HR)")] = None,
    user_id: Annotated[UUID | None, Query(description="사용자 필터")] = None,
    start_date: Annotated[datetime | None, Query()] = None,
    end_date: Annotated[datetime | None, Query(description="기본: 최근 6개월")] = None,
) -> dict[str, Any]:
    data = await services.analytics.feedback_trends(
        db, current_user, department_id, user_id, start_date, end_date
    )
    return ok(data)


@router.get("/export", response_model=None)
async def export_analytics(
    db: Annotated[AsyncSession, Depends(get_db)],
    services: Annotated[Services, Depends(get_services)],
    current_user: Annotated[User, Depends(require_permission("analytics", "export"))],
    type: Literal["team", "feedback"] = "team",
    format: Literal["csv", "json"] = "csv",
    team_id: Annotated[UUID | None, Query()] = None,
    department_id: Annotated[UUID | None, Query()] = None,
    user_id: Annotated[UUID | None, Query()] = None,
    start_date: Annotated[datetime | None, Query()] = None,
    end_date: Annotated[datetime | None, Query()] = None,
) -> StreamingResponse | dict[str, Any]:
    """분석 데이터 내보내기 — CSV 파일 다운로드 또는 JSON."""
    result = await services.analytics.export(
        db, current_user, type, format, team_id, department_id, user_id, start_date, end_date
    )
    if result["format"] == "json":
        return ok(result)
    return StreamingResponse(
        io.BytesIO(result["content"].encode("utf-8")),
        media_type="text/csv",
        headers={"Content-Disposition": f"attachment; filename={result['filename']}"},
    )
