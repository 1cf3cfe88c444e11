"""리뷰 사이클 라우터 — 사이클 생성, 상태 전환, 참가자 관리, 통계.

Review Cycle Router.

Status flow: draft → active → grace-period → closed. Activating a cycle
generates the review submissions of its participants.
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
from app.schemas.review_cycle import (
    CycleCreate,
    CycleResponse,
    CycleStatus,
    CycleType,
    CycleUpdate,
    ParticipantsAdd,
    ReviewType,
    StatusUpdate,
)
from app.utils.pagination import PageParams, build_page, page_params

router: APIRouter = APIRouter()


@router.get("")
async def list_cycles(
    db: Annotated[AsyncSession, Depends(get_db)],
    services: Annotated[Services, Depends(get_services)],
    current_user: Annotated[User, Depends(require_permission("review_cycles", "read"))],
    params: Annotated[PageParams, Depends(page_params)],
    status: Annotated[CycleStatus | None, Query(description="상태 필터")] = None,
    type: Annotated[CycleType | None, Query(description="유형 필터")] = None,
) -> dict[str, Any]:
    cycles, total = await services.cycles.list_cycles(db, params, status, type)
    return ok(build_page(dump_many(CycleResponse, cycles), total, params))


@router.post("", status_code=201)
async def create_cycle(
    data: CycleCreate,
    db: Annotated[AsyncSession, Depends(get_db)],
    services: Annotated[Services, Depends(get_services)],
    current_user: Annotated[User, Depends(require_permission("review_cycles", "create"))],
) -> dict[str, Any]:
    """리뷰 사이클 생성.

    Create a draft cycle. Unless ``is_emergency`` is set, the cycle must
    start at least three days from now.
    """
    cycle = await services.cycles.create_cycle(db, current_user, data)
    await db.commit()
    return ok(dump(CycleResponse, cycle), "Review cycle created successfully")


@router.get("/my-active")
async def my_active_cycles(
    db: Annotated[AsyncSession, Depends(get_db)],
    services: Annotated[Services, Depends(get_services)],
    current_user: Annotated[User, Depends(get_current_user)],
) -> dict[str, Any]:
    cycles = await services.cycles.get_my_active(db, current_user)
    return ok(dump_many(CycleResponse, cycles))


@router.get("/stats")
async def overall_stats(
    db: Annotated[AsyncSession, Depends(get_db)],
    services: Annotated[Services, Depends(get_services)],
    current_user: Annotated[User, Depends(require_permission("review_cycles", "stats"))],
) -> dict[str, Any]:
    return ok(await services.cycles.get_overall_stats(db))


@router.get("/{cycle_id}")
async def get_cycle(
    cycle_id: UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    services: Annotated[Services, Depends(get_services)],
    current_user: Annotated[User, Depends(require_permission("review_cycles", "read"))],
) -> dict[str, Any]:
    cycle = await services.cycles.get_cycle(db, cycle_id)
    return ok(dump(CycleResponse, cycle))


@router.put("/{cycle_id}")
async def update_cycle(
    cycle_id: UUID,
    data: CycleUpdate,
    db: Annotated[AsyncSession, Depends(get_db)],
    services: Annotated[Services, Depends(get_services)],
    current_user: Annotated[User, Depends(require_permission("review_cycles", "update"))],
) -> dict[str, Any]:
    cycle = await services.cycles.update_cycle(db, cycle_id, data)
    await db.commit()
    return ok(dump(CycleResponse, cycle), "Review cycle updated successfully")


@router.patch("/{cycle_id}/status")
async def change_status(
    cycle_id: UUID,
    data: StatusUpdate,
    db: Annotated[AsyncSession, Depends(get_db)],
    services: Annotated[Services, Depends(get_services)],
    current_user: Annotated[User, Depends(require_permission("review_cycles", "update"))],
) -> dict[str, Any]:
    """상태 전환 — 허용되지 않은 전환은 400."""
    cycle = await services.cycles.change_status(db, cycle_id, data.status)
    await db.commit()
    return ok(dump(CycleResponse, cycle), f"Review cycle is now {cycle.status}")


@router.delete("/{cycle_id}")
async def delete_cycle(
    cycle_id: UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    services: Annotated[Services, Depends(get_services)],
    current_user: Annotated[User, Depends(require_permission("review_cycles", "delete"))],
) -> dict[str, Any]:
    await services.cycles.delete_cycle(db, cycle_id)
    await db.commit()
    return ok(None, "Review cycle deleted successfully")


@router.post("/{cycle_id}/participants")
async def add_participants(
    cycle_id: UUID,
    data: ParticipantsAdd,
    db: Annotated[AsyncSession, Depends(get_db)],
    services: Annotated[Services, Depends(get_services)],
    current_user: Annotated[User, Depends(require_permission("review_cycles", "manage_participants"))],
) -> dict[str, Any]:
    result = await services.cycles.add_participants(db, cycle_id, data.user_ids, data.role)
    await db.commit()
    return ok(result, f"{len(result['added'])} participant(s) added")


@router.delete("/{cycle_id}/participants/{user_id}")
async def remove_participant(
    cycle_id: UUID,
    user_id: UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    services: Annotated[Services, Depends(get_services)],
    current_user: Annotated[User, Depends(require_permission("review_cycles", "manage_participants"))],
) -> dict[str, Any]:
    deleted = await services.cycles.remove_participant(db, cycle_id, user_id)
    await db.commit()
    return ok({"submissions_deleted": deleted}, "Participant removed successfully")


@router.post("/{cycle_id}/generate-submissions")
async def generate_submissions(
    cycle_id: UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    services: Annotated[Services, Depends(get_services)],
    current_user: Annotated[User, Depends(require_permission("review_cycles", "generate_submissions"))],
) -> dict[str, Any]:
    created = await services.cycles.generate_submissions(db, cycle_id)
    await db.commit()
    return ok({"submissions_created": created}, f"{created} submission(s) created")


@router.get("/{cycle_id}/stats")
async def cycle_stats(
    cycle_id: UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    services: Annotated[Services, Depends(get_services)],
    current_user: Annotated[User, Depends(require_permission("review_cycles", "stats"))],
) -> dict[str, Any]:
    return ok(await services.cycles.get_cycle_stats(db, cycle_id))


@router.get("/{cycle_id}/submissions")
async def cycle_submissions(
    cycle_id: UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    services: Annotated[Services, Depends(get_services)],
    current_user: Annotated[User, Depends(require_permission("review_submissions", "read_any"))],
    params: Annotated[PageParams, Depends(page_params)],
    status: Annotated[str | None, Query(pattern="^(draft|submitted|reviewed)$")] = None,
    review_type: Annotated[ReviewType | None, Query()] = None,
) -> dict[str, Any]:
    """사이클 제출 목록 — All submissions of a cycle (admin/HR)."""
    submissions, total = await services.submissions.list_for_cycle(db, cycle_id, params, status, review_type)
    data = [services.submissions.serialize(item, current_user) for item in submissions]
    return ok(build_page(data, total, params))
