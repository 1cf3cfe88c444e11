"""시간 기록 레포지토리 — Time entry listing and aggregates."""

from datetime import date
from typing import Any
from uuid import UUID

from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.okr import OKR
from app.models.time_entry import TimeEntry
from app.repositories.base import BaseRepository


class TimeEntryRepository(BaseRepository[TimeEntry]):
    """시간 기록 레포지토리 — Time entry repository."""

    def __init__(self) -> None:
        super().__init__(TimeEntry)

    def build_list_query(
        self,
        user_ids: list[UUID] | None = None,
        okr_id: UUID | None = None,
        date_from: date | None = None,
        date_to: date | None = None,
        category: str | None = None,
    ) -> Select:
        query: Select = select(TimeEntry)
        if user_ids is not None:
            query = query.where(TimeEntry.user_id.in_(user_ids))
        if okr_id is not None:
            query = query.where(TimeEntry.okr_id == okr_id)
        if date_from is not None:
            query = query.where(TimeEntry.date >= date_from)
        if date_to is not None:
            query = query.where(TimeEntry.date <= date_to)
        if category is not None:
            query = query.where(TimeEntry.category == category)
        return query.order_by(TimeEntry.date.desc(), TimeEntry.created_at.desc())

    async def get_summary(
        self,
        db: AsyncSession,
        user_ids: list[UUID] | None,
        date_from: date | None = None,
        date_to: date | None = None,
    ) -> dict[str, Any]:
        """시간 집계 — Total hours, hours per category and per OKR."""
        filtered = self.build_list_query(user_ids, date_from=date_from, date_to=date_to).subquery()

        total = (await db.execute(select(func.coalesce(func.sum(filtered.c.hours_spent), 0)))).scalar()
        by_category = (
            await db.execute(
                select(filtered.c.category, func.sum(filtered.c.hours_spent))
                .group_by(filtered.c.category)
            )
        ).all()
        by_okr = (
            await db.execute(
                select(filtered.c.okr_id, OKR.title, func.sum(filtered.c.hours_spent))
                .join(OKR, OKR.id == filtered.c.okr_id)
                .group_by(filtered.c.okr_id, OKR.title)
            )
        ).all()
        return {
            "total_hours": round(float(total or 0), 2),
            "by_category": {category: round(float(hours), 2) for category, hours in by_category},
            "by_okr": [
                {"okr_id": str(okr_id), "title": title, "hours": round(float(hours), 2)}
                for okr_id, title, hours in by_okr
            ],
        }


# 싱글턴 인스턴스 — Singleton instance
time_entry_repository: TimeEntryRepository = TimeEntryRepository()
