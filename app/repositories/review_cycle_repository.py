"""리뷰 사이클 레포지토리 — 사이클, 참가자 쿼리.

Review Cycle Repository — Cycle listing, participant lookups and the
scans used by the reminder jobs.
"""

from datetime import datetime
from typing import Sequence
from uuid import UUID

from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.review_cycle import CycleParticipant, ReviewCycle
from app.repositories.base import BaseRepository


class ReviewCycleRepository(BaseRepository[ReviewCycle]):
    """리뷰 사이클 레포지토리 — Review cycle repository."""

    def __init__(self) -> None:
        super().__init__(ReviewCycle)

    def build_list_query(self, status: str | None = None, type: str | None = None) -> Select:
        query: Select = select(ReviewCycle)
        if status is not None:
            query = query.where(ReviewCycle.status == status)
        if type is not None:
            query = query.where(ReviewCycle.type == type)
        return query.order_by(ReviewCycle.start_date.desc())

    async def get_active_for_user(self, db: AsyncSession, user_id: UUID) -> Sequence[ReviewCycle]:
        """사용자가 참가 중인 진행 사이클 — Active or grace-period cycles with the user as participant."""
        result = await db.execute(
            select(ReviewCycle)
            .join(CycleParticipant, CycleParticipant.cycle_id == ReviewCycle.id)
            .where(
                CycleParticipant.user_id == user_id,
                ReviewCycle.status.in_(("active", "grace-period")),
            )
            .order_by(ReviewCycle.end_date)
        )
        return result.scalars().unique().all()

    async def get_active_ending_between(
        self,
        db: AsyncSession,
        start: datetime,
        end: datetime | None = None,
    ) -> Sequence[ReviewCycle]:
        """마감 범위 내 활성 사이클 — Active cycles whose end_date lies in [start, end]."""
        query: Select = select(ReviewCycle).where(
            ReviewCycle.status == "active", ReviewCycle.end_date >= start
        )
        if end is not None:
            query = query.where(ReviewCycle.end_date <= end)
        result = await db.execute(query)
        return result.scalars().all()

    async def count_by_status(self, db: AsyncSession) -> dict[str, int]:
        result = await db.execute(
            select(ReviewCycle.status, func.count(ReviewCycle.id)).group_by(ReviewCycle.status)
        )
        return {status: count for status, count in result.all()}


# 싱글턴 인스턴스 — Singleton instance
review_cycle_repository: ReviewCycleRepository = ReviewCycleRepository()
