"""OKR 라우터 — 목표, 핵심 결과, 진행 기록.

OKR Router — Objectives with their key results. Every change to a key
result's value or score appends a progress snapshot.
"""

from typing import Annotated, Any
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_user, get_services, require_permission
from app.container import Services
from app.database import get_db
from app.models.user import User
from app.schemas.common import dump, dump_many, ok
from app.schemas.okr import (
    KeyResultCreate,
    KeyResultUpdate,
    OKRCreate,
    OKRResponse,
    OKRStatus,
    OKRType,
    OKRUpdate,
    ProgressSnapshotResponse,
    ProgressUpdate,
)
from app.utils.pagination import PageParams, build_page, page_params

router: APIRouter = APIRouter()


@router.get("/tags")
async def list_tags(
    db: Annotated[AsyncSession, Depends(get_db)],
    services: Annotated[Services, Depends(get_services)],
    current_user: Annotated[User, Depends(get_current_user)],
) -> dict[str, Any]:
    """태그 목록 — Distinct tags over the objectives the caller can see."""
    return ok(await services.okrs.get_tags(db, current_user))


@router.get("")
async def list_okrs(
    db: Annotated[AsyncSession, Depends(get_db)],
    services: Annotated[Services, Depends(get_services)],
    current_user: Annotated[User, Depends(get_current_user)],
    params: Annotated[PageParams, Depends(page_params)],
    type: Annotated[OKRType | None, Query(description="유형 필터")] = None,
    status: Annotated[OKRStatus | None, Query(description="상태 필터")] = None,
    tag: Annotated[str | None, Query(description="태그 필터")] = None,
    assigned_to_id: Annotated[UUID | None, Query(description="담당자 필터")] = None,
) -> dict[str, Any]:
    """OKR 목록 조회.

    Employees see their own objectives, managers also their direct
    reports', admin and HR everything.
    """
    okrs, total = await services.okrs.list_okrs(db, current_user, params, type, status, tag, assigned_to_id)
    return ok(build_page(dump_many(OKRResponse, okrs), total, params))


@router.post("", status_code=201)
async def create_okr(
    data: OKRCreate,
    db: Annotated[AsyncSession, Depends(get_db)],
    services: Annotated[Services, Depends(get_services)],
    current_user: Annotated[User, Depends(require_permission("okrs", "create"))],
) -> dict[str, Any]:
    okr = await services.okrs.create_okr(db, current_user, data)
    await db.commit()
    return ok(dump(OKRResponse, okr), "OKR created successfully")


@router.get("/{okr_id}")
async def get_okr(
    okr_id: UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    services: Annotated[Services, Depends(get_services)],
    current_user: Annotated[User, Depends(get_current_user)],
) -> dict[str, Any]:
    okr = await services.okrs.get_okr(db, current_user, okr_id)
    return ok(dump(OKRResponse, okr))


@router.patch("/{okr_id}")
async def update_okr(
    okr_id: UUID,
    data: OKRUpdate,
    db: Annotated[AsyncSession, Depends(get_db)],
    services: Annotated[Services, Depends(get_services)],
    current_user: Annotated[User, Depends(get_current_user)],
) -> dict[str, Any]:
    okr = await services.okrs.update_okr(db, current_user, okr_id, data)
    await db.commit()
    return ok(dump(OKRResponse, okr), "OKR updated successfully")


@router.delete("/{okr_id}")
async def archive_okr(
    okr_id: UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    services: Annotated[Services, Depends(get_services)],
    current_user: Annotated[User, Depends(require_permission("okrs", "archive"))],
) -> dict[str, Any]:
    """OKR 보관 — Objectives are archived, never removed."""
    okr = await services.okrs.archive_okr(db, okr_id)
    await db.commit()
    return ok(dump(OKRResponse, okr), "OKR archived successfully")


@router.post("/{okr_id}/key-results", status_code=201)
async def add_key_result(
    okr_id: UUID,
    data: KeyResultCreate,
    db: Annotated[AsyncSession, Depends(get_db)],
    services: Annotated[Services, Depends(get_services)],
    current_user: Annotated[User, Depends(get_current_user)],
) -> dict[str, Any]:
    okr = await services.okrs.add_key_result(db, current_user, okr_id, data)
    await db.commit()
    return ok(dump(OKRResponse, okr), "Key result added successfully")


@router.patch("/{okr_id}/key-results/{key_result_id}")
async def update_key_result(
    okr_id: UUID,
    key_result_id: UUID,
    data: KeyResultUpdate,
    db: Annotated[AsyncSession, Depends(get_db)],
    services: Annotated[Services, Depends(get_services)],
    current_user: Annotated[User, Depends(get_current_user)],
) -> dict[str, Any]:
    okr = await services.okrs.update_key_result(db, current_user, okr_id, key_result_id, data)
    await db.commit()
    return ok(dump(OKRResponse, okr), "Key result updated successfully")


@router.post("/{okr_id}/progress")
async def update_progress(
    okr_id: UUID,
    data: ProgressUpdate,
    db: Annotated[AsyncSession, Depends(get_db)],
    services: Annotated[Services, Depends(get_services)],
    current_user: Annotated[User, Depends(get_current_user)],
) -> dict[str, Any]:
    """일괄 진행 업데이트 — Update several key results of one objective at once."""
    okr = await services.okrs.update_progress(db, current_user, okr_id, data)
    await db.commit()
    return ok(dump(OKRResponse, okr), "Progress updated successfully")


@router.get("/{okr_id}/history")
async def get_progress_history(
    okr_id: UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    services: Annotated[Services, Depends(get_services)],
    current_user: Annotated[User, Depends(get_current_user)],
    key_result_id: Annotated[UUID | None, Query(description="핵심 결과 필터")] = None,
) -> dict[str, Any]:
    snapshots = await services.okrs.get_progress_history(db, current_user, okr_id, key_result_id)
    return ok(dump_many(ProgressSnapshotResponse, snapshots))
