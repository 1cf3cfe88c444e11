"""피드백 라우터 — 피드백 작성, 조회, 수정, 검토.

Feedback Router — Giving feedback, received/given listings, moderation
and per-user statistics. Anonymous senders are hidden in every response.
"""

from typing import Annotated, Any
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_user, get_services, require_permission
from app.container import Services
from app.database import get_db
from app.models.user import User
from app.schemas.common import ok
from app.schemas.feedback import FeedbackCategory, FeedbackCreate, FeedbackModerate, FeedbackType, FeedbackUpdate
from app.utils.pagination import PageParams, build_page, page_params

router: APIRouter = APIRouter()


@router.post("", status_code=201)
async def create_feedback(
    data: FeedbackCreate,
    db: Annotated[AsyncSession, Depends(get_db)],
    services: Annotated[Services, Depends(get_services)],
    current_user: Annotated[User, Depends(require_permission("feedback", "create"))],
) -> dict[str, Any]:
    """피드백 작성 — 감성 분석 후 저장, 익명이 아니면 수신자에게 알림.

    Give feedback. The text is sentiment-analysed; the recipient is
    notified unless the feedback is anonymous.
    """
    feedback = await services.feedback.create_feedback(db, current_user, data)
    await db.commit()
    return ok(services.feedback.serialize(feedback, current_user), "Feedback submitted successfully")


@router.get("/received")
async def list_received(
    db: Annotated[AsyncSession, Depends(get_db)],
    services: Annotated[Services, Depends(get_services)],
    current_user: Annotated[User, Depends(get_current_user)],
    params: Annotated[PageParams, Depends(page_params)],
    user_id: Annotated[UUID | None, Query(description="수신자 (기본: 본인)")] = None,
    category: Annotated[FeedbackCategory | None, Query()] = None,
    type: Annotated[FeedbackType | None, Query()] = None,
) -> dict[str, Any]:
    items, total = await services.feedback.list_received(db, current_user, params, user_id, category, type)
    data = [services.feedback.serialize(item, current_user) for item in items]
    return ok(build_page(data, total, params))


@router.get("/given")
async def list_given(
    db: Annotated[AsyncSession, Depends(get_db)],
    services: Annotated[Services, Depends(get_services)],
    current_user: Annotated[User, Depends(get_current_user)],
    params: Annotated[PageParams, Depends(page_params)],
    category: Annotated[FeedbackCategory | None, Query()] = None,
) -> dict[str, Any]:
    items, total = await services.feedback.list_given(db, current_user, params, category)
    data = [services.feedback.serialize(item, current_user) for item in items]
    return ok(build_page(data, total, params))


@router.get("/moderation")
async def list_for_moderation(
    db: Annotated[AsyncSession, Depends(get_db)],
    services: Annotated[Services, Depends(get_services)],
    current_user: Annotated[User, Depends(require_permission("feedback", "moderate"))],
    params: Annotated[PageParams, Depends(page_params)],
    status: Annotated[str, Query(pattern="^(active|hidden|flagged|deleted)$")] = "active",
    type: Annotated[FeedbackType | None, Query()] = None,
) -> dict[str, Any]:
    items, total = await services.feedback.list_for_moderation(db, params, status, type)
    data = [services.feedback.serialize(item, current_user) for item in items]
    return ok(build_page(data, total, params))


@router.get("/stats")
async def get_stats(
    db: Annotated[AsyncSession, Depends(get_db)],
    services: Annotated[Services, Depends(get_services)],
    current_user: Annotated[User, Depends(get_current_user)],
    user_id: Annotated[UUID | None, Query(description="대상 사용자 (기본: 본인)")] = None,
) -> dict[str, Any]:
    """피드백 통계 — Counts, average rating, per category and top skills."""
    return ok(await services.feedback.get_stats(db, current_user, user_id))


@router.get("/{feedback_id}")
async def get_feedback(
    feedback_id: UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    services: Annotated[Services, Depends(get_services)],
    current_user: Annotated[User, Depends(get_current_user)],
) -> dict[str, Any]:
    feedback = await services.feedback.get_feedback(db, current_user, feedback_id)
    return ok(services.feedback.serialize(feedback, current_user))


@router.patch("/{feedback_id}")
async def update_feedback(
    feedback_id: UUID,
    data: FeedbackUpdate,
    db: Annotated[AsyncSession, Depends(get_db)],
    services: Annotated[Services, Depends(get_services)],
    current_user: Annotated[User, Depends(get_current_user)],
) -> dict[str, Any]:
    feedback = await services.feedback.update_feedback(db, current_user, feedback_id, data)
    await db.commit()
    return ok(services.feedback.serialize(feedback, current_user), "Feedback updated successfully")


@router.post("/{feedback_id}/moderate")
async def moderate_feedback(
    feedback_id: UUID,
    data: FeedbackModerate,
    db: Annotated[AsyncSession, Depends(get_db)],
    services: Annotated[Services, Depends(get_services)],
    current_user: Annotated[User, Depends(require_permission("feedback", "moderate"))],
) -> dict[str, Any]:
    """피드백 검토 — ``hide`` (사유 필수) 또는 ``restore``."""
    feedback = await services.feedback.moderate(db, current_user, feedback_id, data)
    await db.commit()
    return ok(services.feedback.serialize(feedback, current_user), "Feedback moderated successfully")


@router.delete("/{feedback_id}")
async def delete_feedback(
    feedback_id: UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    services: Annotated[Services, Depends(get_services)],
    current_user: Annotated[User, Depends(get_current_user)],
) -> dict[str, Any]:
    await services.feedback.delete_feedback(db, current_user, feedback_id)
    await db.commit()
    return ok(None, "Feedback deleted successfully")
