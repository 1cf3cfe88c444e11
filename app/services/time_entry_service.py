"""시간 기록 서비스 — OKR별 작업 시간 기록 비즈니스 로직.

Time Entry Service — Hours logged against objectives, role-scoped
listing and hour analytics.
"""

import datetime as dt
from typing import Any, Sequence
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.models.time_entry import TimeEntry
from app.models.user import User
from app.repositories.okr_repository import okr_repository
from app.repositories.time_entry_repository import time_entry_repository
from app.repositories.user_repository import user_repository
from app.schemas.time_entry import TimeEntryCreate, TimeEntryUpdate
from app.utils.exceptions import BadRequestError, ForbiddenError, NotFoundError
from app.utils.pagination import PageParams
from app.utils.permissions import authorize, is_allowed


class TimeEntryService:
    """시간 기록 서비스.

    Time entry service. Employees see their own entries, managers also
    their direct reports', admin/HR everything.
    """

    async def _scope(self, db: AsyncSession, actor: User) -> list[UUID] | None:
        if is_allowed(actor.role, "time_entries", "read_any"):
            return None
        if is_allowed(actor.role, "time_entries", "read_reports"):
            return [actor.id, *await user_repository.get_direct_report_ids(db, actor.id)]
        return [actor.id]

    async def create_entry(self, db: AsyncSession, actor: User, data: TimeEntryCreate) -> TimeEntry:
        """시간 기록 — 본인 OKR에만 (관리자/HR 예외).

        Raises:
            NotFoundError: OKR이 없을 때 (Unknown objective)
            ForbiddenError: 다른 사람의 OKR (Objective assigned to someone else)
        """
        okr = await okr_repository.get_by_id(db, data.okr_id)
        if okr is None:
            raise NotFoundError("OKR not found")
        if okr.assigned_to_id != actor.id:
            authorize(actor, "time_entries", "log_any_okr", "Can only log time for your own OKRs")
        if data.key_result_id is not None and data.key_result_id not in {kr.id for kr in okr.key_results}:
            raise BadRequestError("Key result does not belong to this OKR")
        return await time_entry_repository.create(db, {**data.model_dump(), "user_id": actor.id})

    async def list_entries(
        self,
        db: AsyncSession,
        actor: User,
        params: PageParams,
        okr_id: UUID | None = None,
        date_from: dt.date | None = None,
        date_to: dt.date | None = None,
        category: str | None = None,
    ) -> tuple[Sequence[TimeEntry], int]:
        query = time_entry_repository.build_list_query(
            await self._scope(db, actor), okr_id, date_from, date_to, category
        )
        return await time_entry_repository.get_paginated(db, query, params.page, params.limit)

    async def _get_own(self, db: AsyncSession, actor: User, entry_id: UUID, verb: str) -> TimeEntry:
        entry = await time_entry_repository.get_by_id(db, entry_id)
        if entry is None:
            raise NotFoundError("Time entry not found")
        if entry.user_id != actor.id and not is_allowed(actor.role, "time_entries", "read_any"):
            raise ForbiddenError(f"Can only {verb} your own time entries")
        return entry

    async def update_entry(
        self, db: AsyncSession, actor: User, entry_id: UUID, data: TimeEntryUpdate
    ) -> TimeEntry:
        entry = await self._get_own(db, actor, entry_id, "edit")
        return await time_entry_repository.update(db, entry, data.model_dump(exclude_unset=True))

    async def delete_entry(self, db: AsyncSession, actor: User, entry_id: UUID) -> None:
        entry = await self._get_own(db, actor, entry_id, "delete")
        await time_entry_repository.delete(db, entry)

    async def get_analytics(
        self,
        db: AsyncSession,
        actor: User,
        date_from: dt.date | None = None,
        date_to: dt.date | None = None,
    ) -> dict[str, Any]:
        """시간 분석 — Total hours, per category and per objective within the caller's scope."""
        summary = await time_entry_repository.get_summary(db, await self._scope(db, actor), date_from, date_to)
        summary["date_from"] = date_from.isoformat() if date_from else None
        summary["date_to"] = date_to.isoformat() if date_to else None
        return summary
