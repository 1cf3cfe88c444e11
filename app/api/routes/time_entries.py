"""시간 기록 라우터 — OKR 작업 시간 기록 및 분석.

Time Entry Router — Hours logged against objectives.
"""

import datetime as dt
from typing import Annotated, Any
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_user, get_services
from app.container import Services
from app.database import get_db
from app.models.user import User
from app.schemas.common import dump, dump_many, ok
from app.schemas.time_entry import TimeCategory, TimeEntryCreate, TimeEntryResponse, TimeEntryUpdate
from app.utils.pagination import PageParams, build_page, page_params

router: APIRouter = APIRouter()


@router.post("", status_code=201)
async def create_entry(
    data: TimeEntryCreate,
    db: Annotated[AsyncSession, Depends(get_db)],
    services: Annotated[Services, Depends(get_services)],
    current_user: Annotated[User, Depends(get_current_user)],
) -> dict[str, Any]:
    """시간 기록 — 본인 OKR에만 기록 가능 (관리자/HR 제외)."""
    entry = await services.time_entries.create_entry(db, current_user, data)
    await db.commit()
    return ok(dump(TimeEntryResponse, entry), "Time entry created successfully")


@router.get("")
async def list_entries(
    db: Annotated[AsyncSession, Depends(get_db)],
    services: Annotated[Services, Depends(get_services)],
    current_user: Annotated[User, Depends(get_current_user)],
    params: Annotated[PageParams, Depends(page_params)],
    okr_id: Annotated[UUID | None, Query()] = None,
    date_from: Annotated[dt.date | None, Query(description="시작일 (YYYY-MM-DD)")] = None,
    date_to: Annotated[dt.date | None, Query(description="종료일 (YYYY-MM-DD)")] = None,
    category: Annotated[TimeCategory | None, Query()] = None,
) -> dict[str, Any]:
    entries, total = await services.time_entries.list_entries(
        db, current_user, params, okr_id, date_from, date_to, category
    )
    return ok(build_page(dump_many(TimeEntryResponse, entries), total, params))


@router.get("/analytics")
async def get_analytics(
    db: Annotated[AsyncSession, Depends(get_db)],
    services: Annotated[Services, Depends(get_services)],
    current_user: Annotated[User, Depends(get_current_user)],
    date_from: Annotated[dt.date | None, Query()] = None,
    date_to: Annotated[dt.date | None, Query()] = None,
) -> dict[str, Any]:
    """시간 분석 — Hours per category and per objective within the caller's scope."""
    return ok(await services.time_entries.get_analytics(db, current_user, date_from, date_to))


@router.patch("/{entry_id}")
async def update_entry(
    entry_id: UUID,
    data: TimeEntryUpdate,
    db: Annotated[AsyncSession, Depends(get_db)],
    services: Annotated[Services, Depends(get_services)],
    current_user: Annotated[User, Depends(get_current_user)],
) -> dict[str, Any]:
    entry = await services.time_entries.update_entry(db, current_user, entry_id, data)
    await db.commit()
    return ok(dump(TimeEntryResponse, entry), "Time entry updated successfully")


@router.delete("/{entry_id}")
async def delete_entry(
    entry_id: UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    services: Annotated[Services, Depends(get_services)],
    current_user: Annotated[User, Depends(get_current_user)],
) -> dict[str, Any]:
    await services.time_entries.delete_entry(db, current_user, entry_id)
    await db.commit()
    return ok(None, "Time entry deleted successfully")
