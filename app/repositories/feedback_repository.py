"""피드백 레포지토리 — 피드백 조회 및 통계 쿼리.

Feedback Repository — Received/given listings and per-user aggregates.
"""

from datetime import datetime
from typing import Any, Sequence
from uuid import UUID

from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.feedback import Feedback
from app.repositories.base import BaseRepository


class FeedbackRepository(BaseRepository[Feedback]):
    """피드백 레포지토리 — Feedback repository."""

    def __init__(self) -> None:
        super().__init__(Feedback)

    def build_list_query(
        self,
        to_user_id: UUID | None = None,
        from_user_id: UUID | None = None,
        category: str | None = None,
        type: str | None = None,
        statuses: tuple[str, ...] = ("active",),
    ) -> Select:
        """피드백 목록 쿼리 — Newest first, excluding moderated items by default."""
        query: Select = select(Feedback).where(Feedback.status.in_(statuses))
        if to_user_id is not None:
            query = query.where(Feedback.to_user_id == to_user_id)
        if from_user_id is not None:
            query = query.where(Feedback.from_user_id == from_user_id)
        if category is not None:
            query = query.where(Feedback.category == category)
        if type is not None:
            query = query.where(Feedback.type == type)
        return query.order_by(Feedback.created_at.desc())

    async def get_received_since(
        self,
        db: AsyncSession,
        user_ids: list[UUID] | None,
        since: datetime | None = None,
        until: datetime | None = None,
    ) -> Sequence[Feedback]:
        """받은 피드백 — Active feedback received by the given users (everyone when None) in a window."""
        if user_ids is not None and not user_ids:
            return []
        query: Select = select(Feedback).where(Feedback.status == "active")
        if user_ids is not None:
            query = query.where(Feedback.to_user_id.in_(user_ids))
        if since is not None:
            query = query.where(Feedback.created_at >= since)
        if until is not None:
            query = query.where(Feedback.created_at <= until)
        result = await db.execute(query.order_by(Feedback.created_at))
        return result.scalars().all()

    async def get_user_stats(self, db: AsyncSession, user_id: UUID) -> dict[str, Any]:
        """사용자 피드백 통계 — Totals, average rating and per-category counts."""
        base = (Feedback.to_user_id == user_id, Feedback.status == "active")
        totals = (
            await db.execute(
                select(func.count(Feedback.id), func.avg(Feedback.rating)).where(*base)
            )
        ).one()
        rows = (
            await db.execute(
                select(Feedback.category, func.count(Feedback.id), func.avg(Feedback.rating))
                .where(*base)
                .group_by(Feedback.category)
            )
        ).all()
        return {
            "total": totals[0] or 0,
            "average_rating": round(float(totals[1]), 2) if totals[1] is not None else None,
            "by_category": {
                category: {
                    "count": count,
                    "average_rating": round(float(avg), 2) if avg is not None else None,
                }
                for category, count, avg in rows
            },
        }


# 싱글턴 인스턴스 — Singleton instance
feedback_repository: FeedbackRepository = FeedbackRepository()
