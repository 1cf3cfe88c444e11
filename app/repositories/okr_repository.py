"""OKR 레포지토리 — 목표, 핵심 결과, 진행 이력 쿼리.

OKR Repository — Objective listing with role scoping, key result
lookup and progress history queries.
"""

from typing import Sequence
from uuid import UUID

from sqlalchemy import Select, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.okr import OKR, KeyResult, ProgressSnapshot
from app.repositories.base import BaseRepository


class OKRRepository(BaseRepository[OKR]):
    """OKR 레포지토리.

    OKR repository. ``assignee_ids=None`` means no assignee restriction
    (admin/HR scope).
    """

    def __init__(self) -> None:
        super().__init__(OKR)

    def build_list_query(
        self,
        assignee_ids: list[UUID] | None = None,
        type: str | None = None,
        status: str | None = None,
        include_archived: bool = False,
    ) -> Select:
        """OKR 목록 쿼리를 생성합니다.

        Build the objective listing query.

        Args:
            assignee_ids: 담당자 범위, None이면 전체 (Assignee scope; None = everyone)
            type: 유형 필터 (Type filter)
            status: 상태 필터 (Status filter)
            include_archived: 보관된 OKR 포함 여부 (Include archived objectives)
        """
        query: Select = select(OKR)
        if assignee_ids is not None:
            query = query.where(OKR.assigned_to_id.in_(assignee_ids))
        if type is not None:
            query = query.where(OKR.type == type)
        if status is not None:
            query = query.where(OKR.status == status)
        elif not include_archived:
            query = query.where(OKR.status != "archived")
        return query.order_by(OKR.created_at.desc())

    async def get_active_for_user(self, db: AsyncSession, user_id: UUID) -> Sequence[OKR]:
        """사용자의 활성 OKR — Active objectives assigned to a user."""
        result = await db.execute(
            select(OKR).where(OKR.assigned_to_id == user_id, OKR.status == "active")
        )
        return result.scalars().all()

    async def get_for_users(self, db: AsyncSession, user_ids: list[UUID]) -> Sequence[OKR]:
        if not user_ids:
            return []
        result = await db.execute(
            select(OKR).where(OKR.assigned_to_id.in_(user_ids), OKR.status != "archived")
        )
        return result.scalars().all()

    async def get_tags(self, db: AsyncSession, assignee_ids: list[UUID] | None) -> list[str]:
        """태그 목록 — Sorted, de-duplicated tags of the visible objectives."""
        query: Select = select(OKR.tags)
        if assignee_ids is not None:
            query = query.where(OKR.assigned_to_id.in_(assignee_ids))
        result = await db.execute(query)
        tags: set[str] = set()
        for row_tags in result.scalars().all():
            tags.update(row_tags or [])
        return sorted(tags)

    async def get_key_result(
        self, db: AsyncSession, okr_id: UUID, key_result_id: UUID
    ) -> KeyResult | None:
        result = await db.execute(
            select(KeyResult).where(KeyResult.id == key_result_id, KeyResult.okr_id == okr_id)
        )
        return result.scalar_one_or_none()

    async def get_progress_history(
        self,
        db: AsyncSession,
        okr_id: UUID,
        key_result_id: UUID | None = None,
    ) -> Sequence[ProgressSnapshot]:
        """진행 이력 — Snapshots of an objective, oldest first."""
        query: Select = select(ProgressSnapshot).where(ProgressSnapshot.okr_id == okr_id)
        if key_result_id is not None:
            query = query.where(ProgressSnapshot.key_result_id == key_result_id)
        result = await db.execute(query.order_by(ProgressSnapshot.recorded_at))
        return result.scalars().all()


# 싱글턴 인스턴스 — Singleton instance
okr_repository: OKRRepository = OKRRepository()
