"""OKR 서비스 — 목표, 핵심 결과, 진행 이력 비즈니스 로직.

OKR Service — Business logic for objectives and key results.

Every key result change goes through ``apply_key_result_change``, a pure
function returning the new key result state together with the progress
snapshot the change produces. The service persists both, so the audit
trail can never drift from the stored scores.
"""

import logging
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any, Sequence
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.database import utcnow
from app.models.okr import OKR, KeyResult, ProgressSnapshot
from app.models.user import User
from app.repositories.okr_repository import okr_repository
from app.repositories.user_repository import user_repository
from app.schemas.okr import KeyResultCreate, KeyResultUpdate, OKRCreate, OKRUpdate, ProgressUpdate
from app.utils.exceptions import BadRequestError, ForbiddenError, NotFoundError
from app.utils.pagination import PageParams
from app.utils.permissions import authorize, is_allowed

logger = logging.getLogger(__name__)

_KR_FIELDS: tuple[str, ...] = ("title", "description", "target_value", "current_value", "score", "unit")


@dataclass(frozen=True)
class KeyResultState:
    """핵심 결과의 불변 상태 — Immutable view of a key result's editable fields."""

    title: str
    description: str | None
    target_value: float | None
    current_value: float | None
    score: int
    unit: str | None

    @classmethod
    def of(cls, key_result: KeyResult) -> "KeyResultState":
        return cls(**{name: getattr(key_result, name) for name in _KR_FIELDS})

    def as_dict(self) -> dict[str, Any]:
        return {name: getattr(self, name) for name in _KR_FIELDS}


@dataclass(frozen=True)
class SnapshotRecord:
    """진행 이력 레코드 — The audit entry produced by a key result change."""

    okr_id: UUID
    key_result_id: UUID
    score: int
    notes: str | None
    recorded_by_id: UUID
    recorded_at: datetime
    snapshot_type: str = "manual"


def apply_key_result_change(
    key_result: KeyResult,
    change: dict[str, Any],
    actor: User,
    now: datetime | None = None,
    notes: str | None = None,
) -> tuple[KeyResultState, SnapshotRecord | None]:
    """핵심 결과 변경 적용 — 새 상태와 진행 이력 레코드를 반환합니다.

    Compute the state of ``key_result`` after ``change`` without touching
    the ORM object. A snapshot is produced whenever the change carries a
    ``current_value`` or a ``score``; other edits (title, unit...) leave no
    audit entry.

    Args:
        key_result: 현재 핵심 결과 (Key result before the change)
        change: 변경 필드 (Fields to change, unknown keys are ignored)
        actor: 변경 수행자 (User recording the change)
        now: 기록 시각 (Timestamp of the snapshot, defaults to utcnow)
        notes: 이력 메모 (Notes stored on the snapshot)

    Raises:
        BadRequestError: 점수가 1~10 범위를 벗어날 때 (Score outside 1..10)
    """
    current = KeyResultState.of(key_result)
    updates = {name: value for name, value in change.items() if name in _KR_FIELDS}
    if updates.get("score") is None:
        updates.pop("score", None)
    new_state = replace(current, **updates)
    if not 1 <= new_state.score <= 10:
        raise BadRequestError("Key result score must be between 1 and 10")

    if "current_value" not in updates and "score" not in updates:
        return new_state, None

    if notes is None and "current_value" in updates:
        notes = f"Updated to {new_state.current_value}"
    snapshot = SnapshotRecord(
        okr_id=key_result.okr_id,
        key_result_id=key_result.id,
        score=new_state.score,
        notes=notes,
        recorded_by_id=actor.id,
        recorded_at=now or utcnow(),
    )
    return new_state, snapshot


class OKRService:
    """OKR 서비스.

    OKR service. Visibility: employees see their own objectives, managers
    their own plus their direct reports', admin/HR everything. Editing is
    open to the assignee, the creator and admin/HR.
    """

    async def _visible_assignee_ids(self, db: AsyncSession, actor: User) -> list[UUID] | None:
        if is_allowed(actor.role, "okrs", "read_any"):
            return None
        if is_allowed(actor.role, "okrs", "read_reports"):
            return [actor.id, *await user_repository.get_direct_report_ids(db, actor.id)]
        return [actor.id]

    async def _get(self, db: AsyncSession, okr_id: UUID) -> OKR:
        okr = await okr_repository.get_by_id(db, okr_id)
        if okr is None:
            raise NotFoundError("OKR not found")
        return okr

    async def get_okr(self, db: AsyncSession, actor: User, okr_id: UUID) -> OKR:
        okr = await self._get(db, okr_id)
        visible = await self._visible_assignee_ids(db, actor)
        if visible is not None and okr.assigned_to_id not in visible:
            raise ForbiddenError("Access denied")
        return okr

    def _ensure_can_edit(self, actor: User, okr: OKR) -> None:
        if actor.id in (okr.assigned_to_id, okr.created_by_id):
            return
        authorize(actor, "okrs", "update_any", "Access denied")

    async def list_okrs(
        self,
        db: AsyncSession,
        actor: User,
        params: PageParams,
        type: str | None = None,
        status: str | None = None,
        tag: str | None = None,
        assigned_to_id: UUID | None = None,
    ) -> tuple[Sequence[OKR], int]:
        """역할 범위 OKR 목록 — Role-scoped objective listing."""
        visible = await self._visible_assignee_ids(db, actor)
        assignee_ids = visible
        if assigned_to_id is not None:
            if visible is not None and assigned_to_id not in visible:
                return [], 0
            assignee_ids = [assigned_to_id]
        query = okr_repository.build_list_query(assignee_ids, type=type, status=status)
        if tag:
            items = [
                okr for okr in (await db.execute(query)).scalars().all() if tag in (okr.tags or [])
            ]
            start = (params.page - 1) * params.limit
            return items[start:start + params.limit], len(items)
        return await okr_repository.get_paginated(db, query, params.page, params.limit)

    async def create_okr(self, db: AsyncSession, actor: User, data: OKRCreate) -> OKR:
        """OKR 생성 — company는 관리자, department는 관리자/HR만.

        Raises:
            ForbiddenError: 유형별 생성 권한 없음 (Type restricted to admin or admin/HR)
            BadRequestError: 담당자 또는 상위 OKR이 없을 때 (Unknown assignee / parent)
        """
        if data.type == "company":
            authorize(actor, "okrs", "create_company", "Only admins can create company OKRs")
        elif data.type == "department":
            authorize(actor, "okrs", "create_department", "Only admins and HR can create department OKRs")

        assignee_id = data.assigned_to_id or actor.id
        if assignee_id != actor.id:
            assignee = await user_repository.get_by_id(db, assignee_id)
            if assignee is None or not assignee.is_active:
                raise BadRequestError("Assignee not found")
            if assignee.manager_id != actor.id:
                authorize(actor, "okrs", "update_any", "You can only assign OKRs to yourself or your direct reports")
        if data.parent_okr_id is not None:
            await self._get(db, data.parent_okr_id)

        okr = OKR(
            **data.model_dump(exclude={"key_results", "assigned_to_id"}),
            assigned_to_id=assignee_id,
            created_by_id=actor.id,
            key_results=[KeyResult(**kr.model_dump()) for kr in data.key_results],
        )
        db.add(okr)
        await db.flush()
        await db.refresh(okr)
        logger.info("OKR created", extra={"okr_id": str(okr.id), "type": okr.type})
        return okr

    async def update_okr(self, db: AsyncSession, actor: User, okr_id: UUID, data: OKRUpdate) -> OKR:
        okr = await self._get(db, okr_id)
        self._ensure_can_edit(actor, okr)
        changes = data.model_dump(exclude_unset=True)
        if changes.get("parent_okr_id") == okr.id:
            raise BadRequestError("An OKR cannot be its own parent")
        start = changes.get("start_date", okr.start_date)
        end = changes.get("end_date", okr.end_date)
        if start and end and start >= end:
            raise BadRequestError("Start date must be before end date")
        if "tags" in changes and changes["tags"] is not None:
            changes["tags"] = list(changes["tags"])
        return await okr_repository.update(db, okr, changes)

    async def archive_okr(self, db: AsyncSession, okr_id: UUID) -> OKR:
        """OKR 보관 — Archiving is the only form of deletion."""
        okr = await self._get(db, okr_id)
        return await okr_repository.update(db, okr, {"status": "archived"})

    async def add_key_result(self, db: AsyncSession, actor: User, okr_id: UUID, data: KeyResultCreate) -> OKR:
        okr = await self._get(db, okr_id)
        self._ensure_can_edit(actor, okr)
        db.add(KeyResult(okr_id=okr.id, **data.model_dump()))
        await db.flush()
        await db.refresh(okr, attribute_names=["key_results"])
        return okr

    async def _persist_change(
        self,
        db: AsyncSession,
        key_result: KeyResult,
        state: KeyResultState,
        snapshot: SnapshotRecord | None,
    ) -> None:
        for name, value in state.as_dict().items():
            setattr(key_result, name, value)
        if snapshot is not None:
            db.add(
                ProgressSnapshot(
                    okr_id=snapshot.okr_id,
                    key_result_id=snapshot.key_result_id,
                    score=snapshot.score,
                    notes=snapshot.notes,
                    recorded_by_id=snapshot.recorded_by_id,
                    recorded_at=snapshot.recorded_at,
                    snapshot_type=snapshot.snapshot_type,
                )
            )

    async def update_key_result(
        self,
        db: AsyncSession,
        actor: User,
        okr_id: UUID,
        key_result_id: UUID,
        data: KeyResultUpdate,
    ) -> OKR:
        """핵심 결과 수정 — current_value/score 변경 시 진행 이력 1건 추가."""
        okr = await self._get(db, okr_id)
        self._ensure_can_edit(actor, okr)
        key_result = await okr_repository.get_key_result(db, okr_id, key_result_id)
        if key_result is None:
            raise NotFoundError("Key result not found")

        change = data.model_dump(exclude_unset=True, exclude={"notes"})
        state, snapshot = apply_key_result_change(key_result, change, actor, notes=data.notes)
        await self._persist_change(db, key_result, state, snapshot)
        await db.flush()
        await db.refresh(okr, attribute_names=["key_results", "progress_snapshots"])
        return okr

    async def update_progress(self, db: AsyncSession, actor: User, okr_id: UUID, data: ProgressUpdate) -> OKR:
        """일괄 진행 업데이트 — One snapshot per updated key result.

        Raises:
            NotFoundError: 목록에 이 OKR의 핵심 결과가 아닌 항목이 있을 때
                           (An id does not belong to this objective)
        """
        okr = await self._get(db, okr_id)
        self._ensure_can_edit(actor, okr)
        by_id = {kr.id: kr for kr in okr.key_results}
        now = utcnow()
        for item in data.key_results:
            key_result = by_id.get(item.id)
            if key_result is None:
                raise NotFoundError(f"Key result {item.id} not found")
            change = item.model_dump(exclude_unset=True, exclude={"id"})
            if not change:
                continue
            state, snapshot = apply_key_result_change(key_result, change, actor, now=now, notes=data.notes)
            await self._persist_change(db, key_result, state, snapshot)
        await db.flush()
        await db.refresh(okr, attribute_names=["key_results", "progress_snapshots"])
        return okr

    async def get_progress_history(
        self,
        db: AsyncSession,
        actor: User,
        okr_id: UUID,
        key_result_id: UUID | None = None,
    ) -> Sequence[ProgressSnapshot]:
        await self.get_okr(db, actor, okr_id)
        return await okr_repository.get_progress_history(db, okr_id, key_result_id)

    async def get_tags(self, db: AsyncSession, actor: User) -> list[str]:
        return await okr_repository.get_tags(db, await self._visible_assignee_ids(db, actor))
