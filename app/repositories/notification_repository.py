"""알림 레포지토리 — 알림 관련 DB 쿼리 담당.

Notification Repository — Handles all notification-related database queries.
Extends BaseRepository with user-specific notification operations and the
due-for-delivery scan used by the scheduled flush job.
"""

from datetime import datetime
from typing import Sequence
from uuid import UUID

from sqlalchemy import Select, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import utcnow
from app.models.notification import Notification
from app.repositories.base import BaseRepository


class NotificationRepository(BaseRepository[Notification]):
    """알림 레포지토리.

    Notification repository with user-specific read/unread operations.

    Extends:
        BaseRepository[Notification]
    """

    def __init__(self) -> None:
        super().__init__(Notification)

    def build_user_query(
        self,
        user_id: UUID,
        unread_only: bool = False,
        type: str | None = None,
    ) -> Select:
        """사용자 알림 쿼리를 생성합니다.

        Build the query for a user's notifications, newest first.

        Args:
            user_id: 사용자 UUID (User UUID)
            unread_only: 읽지 않은 알림만 (Only unread notifications)
            type: 알림 유형 필터 (Notification type filter)
        """
        query: Select = select(Notification).where(Notification.user_id == user_id)
        if unread_only:
            query = query.where(Notification.is_read.is_(False))
        if type is not None:
            query = query.where(Notification.type == type)
        return query.order_by(Notification.created_at.desc())

    async def get_unread_count(self, db: AsyncSession, user_id: UUID) -> int:
        """사용자의 읽지 않은 알림 수를 조회합니다.

        Get the count of unread notifications for a user.
        """
        query: Select = (
            select(func.count())
            .select_from(Notification)
            .where(Notification.user_id == user_id, Notification.is_read.is_(False))
        )
        return (await db.execute(query)).scalar() or 0

    async def mark_all_read(self, db: AsyncSession, user_id: UUID) -> int:
        """사용자의 모든 알림을 읽음 처리합니다.

        Mark every unread notification of a user as read.

        Returns:
            int: 변경된 알림 수 (Number of notifications updated)
        """
        result = await db.execute(
            update(Notification)
            .where(Notification.user_id == user_id, Notification.is_read.is_(False))
            .values(is_read=True, read_at=utcnow())
        )
        await db.flush()
        return result.rowcount or 0

    async def get_due_for_delivery(
        self, db: AsyncSession, now: datetime, limit: int = 100
    ) -> Sequence[Notification]:
        """발송 대상 알림 — Notifications scheduled at or before ``now`` and not yet emailed."""
        result = await db.execute(
            select(Notification)
            .where(
                Notification.scheduled_for.is_not(None),
                Notification.scheduled_for <= now,
                Notification.email_sent.is_(False),
            )
            .order_by(Notification.scheduled_for)
            .limit(limit)
        )
        return result.scalars().all()

    async def dedupe_key_exists(self, db: AsyncSession, dedupe_key: str) -> bool:
        return await self.exists(db, {"dedupe_key": dedupe_key})


# 싱글턴 인스턴스 — Singleton instance
notification_repository: NotificationRepository = NotificationRepository()
