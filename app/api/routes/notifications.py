"""알림 라우터 — 알림 조회, 읽음 처리, 설정, 공지.

Notification Router — The caller's notifications, read state,
notification preferences, a test notification and system announcements.
"""

from typing import Annotated, Any
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_user, get_services, require_permission
from app.container import Services
from app.database import get_db
from app.models.user import User
from app.schemas.common import dump, ok
from app.schemas.notification import AnnouncementRequest, NotificationResponse
from app.schemas.user import PreferencesUpdate
from app.utils.pagination import PageParams, build_page, page_params

router: APIRouter = APIRouter()


@router.get("")
async def list_notifications(
    db: Annotated[AsyncSession, Depends(get_db)],
    services: Annotated[Services, Depends(get_services)],
    current_user: Annotated[User, Depends(get_current_user)],
    params: Annotated[PageParams, Depends(page_params)],
    unread_only: bool = False,
    type: Annotated[str | None, Query(max_length=50, description="알림 유형 필터")] = None,
) -> dict[str, Any]:
    """내 알림 목록 — 최신순, 읽지 않은 알림 수 포함.

    The caller's notifications, newest first, with the unread count.
    """
    items, total = await services.notifications.list_for_user(db, current_user.id, params, unread_only, type)
    page = build_page([dump(NotificationResponse, item) for item in items], total, params)
    page["unread_count"] = await services.notifications.get_unread_count(db, current_user.id)
    return ok(page)


@router.get("/unread-count")
async def unread_count(
    db: Annotated[AsyncSession, Depends(get_db)],
    services: Annotated[Services, Depends(get_services)],
    current_user: Annotated[User, Depends(get_current_user)],
) -> dict[str, Any]:
    return ok({"unread_count": await services.notifications.get_unread_count(db, current_user.id)})


@router.patch("/read-all")
async def mark_all_read(
    db: Annotated[AsyncSession, Depends(get_db)],
    services: Annotated[Services, Depends(get_services)],
    current_user: Annotated[User, Depends(get_current_user)],
) -> dict[str, Any]:
    updated = await services.notifications.mark_all_read(db, current_user.id)
    await db.commit()
    return ok({"updated": updated}, "All notifications marked as read")


@router.get("/preferences")
async def get_preferences(
    current_user: Annotated[User, Depends(get_current_user)],
) -> dict[str, Any]:
    return ok({
        "email_notifications": current_user.email_notifications,
        "weekly_reminders": current_user.weekly_reminders,
        "deadline_alerts": current_user.deadline_alerts,
    })


@router.put("/preferences")
async def update_preferences(
    data: PreferencesUpdate,
    db: Annotated[AsyncSession, Depends(get_db)],
    services: Annotated[Services, Depends(get_services)],
    current_user: Annotated[User, Depends(get_current_user)],
) -> dict[str, Any]:
    preferences = await services.notifications.update_preferences(
        db, current_user, data.model_dump(exclude_unset=True)
    )
    await db.commit()
    return ok(preferences, "Notification preferences updated")


@router.post("/test", status_code=201)
async def send_test_notification(
    db: Annotated[AsyncSession, Depends(get_db)],
    services: Annotated[Services, Depends(get_services)],
    current_user: Annotated[User, Depends(get_current_user)],
) -> dict[str, Any]:
    """테스트 알림 발송 — Creates a notification (and email when enabled) for the caller."""
    notification = await services.notifications.send_test(db, current_user)
    await db.commit()
    data = dump(NotificationResponse, notification) if notification is not None else None
    return ok(data, "Test notification sent")


@router.post("/announcements", status_code=201)
async def announce(
    data: AnnouncementRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
    services: Annotated[Services, Depends(get_services)],
    current_user: Annotated[User, Depends(require_permission("notifications", "announce"))],
) -> dict[str, Any]:
    recipients = await services.notifications.announce(db, data.title, data.message, data.priority)
    await db.commit()
    return ok({"recipients": recipients}, "Announcement sent")


@router.patch("/{notification_id}/read")
async def mark_read(
    notification_id: UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    services: Annotated[Services, Depends(get_services)],
    current_user: Annotated[User, Depends(get_current_user)],
) -> dict[str, Any]:
    notification = await services.notifications.mark_read(db, notification_id, current_user.id)
    await db.commit()
    return ok(dump(NotificationResponse, notification))


@router.delete("/{notification_id}")
async def delete_notification(
    notification_id: UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    services: Annotated[Services, Depends(get_services)],
    current_user: Annotated[User, Depends(get_current_user)],
) -> dict[str, Any]:
    await services.notifications.delete(db, notification_id, current_user.id)
    await db.commit()
    return ok(None, "Notification deleted")
