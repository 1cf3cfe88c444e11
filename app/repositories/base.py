"""기본 CRUD 레포지토리 — 모든 레포지토리의 부모 클래스.

Base repository shared by every domain repository: lookup by id,
filtered listing, paginated queries, create/update/delete and existence
checks. Repositories only ``flush``; the router owns the commit.

Usage:
    class TeamRepository(BaseRepository[Team]):
        def __init__(self) -> None:
            super().__init__(Team)
"""

from typing import Any, Generic, Sequence, TypeVar
from uuid import UUID

from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import Base

# 제네릭 타입 변수 — SQLAlchemy 모델을 나타냄
ModelType = TypeVar("ModelType", bound=Base)


class BaseRepository(Generic[ModelType]):
    """제네릭 CRUD 레포지토리.

    Attributes:
        model: SQLAlchemy 모델 클래스 (The mapped class this repository serves)
    """

    def __init__(self, model: type[ModelType]) -> None:
        self.model: type[ModelType] = model

    def _apply_filters(self, query: Select, filters: dict[str, Any], skip_none: bool) -> Select:
        for column_name, value in filters.items():
            if not hasattr(self.model, column_name) or (skip_none and value is None):
                continue
            query = query.where(getattr(self.model, column_name) == value)
        return query

    async def get_by_id(self, db: AsyncSession, record_id: UUID) -> ModelType | None:
        result = await db.execute(select(self.model).where(self.model.id == record_id))
        return result.scalar_one_or_none()

    async def get_all(
        self,
        db: AsyncSession,
        filters: dict[str, Any] | None = None,
        order_by: Any | None = None,
    ) -> Sequence[ModelType]:
        """동등 조건 목록 조회 — ``None`` 값 조건은 무시합니다.

        Optional query parameters can be passed straight through as filters;
        the ones left at ``None`` do not narrow the result.
        """
        query = self._apply_filters(select(self.model), filters or {}, skip_none=True)
        if order_by is not None:
            query = query.order_by(order_by)
        result = await db.execute(query)
        return result.scalars().all()

    async def get_paginated(
        self,
        db: AsyncSession,
        query: Select,
        page: int = 1,
        limit: int = 20,
    ) -> tuple[Sequence[ModelType], int]:
        """페이지 단위 조회.

        Run ``query`` for one page (1-based) and count every row it matches.

        Returns:
            tuple: (해당 페이지 레코드, 전체 개수) (Rows of the page, total count)
        """
        total: int = (await db.execute(select(func.count()).select_from(query.subquery()))).scalar() or 0
        result = await db.execute(query.offset((page - 1) * limit).limit(limit))
        return result.scalars().all(), total

    async def create(self, db: AsyncSession, obj_data: dict[str, Any]) -> ModelType:
        """레코드 생성 — Insert, flush and reload defaults populated by the database."""
        db_obj: ModelType = self.model(**obj_data)
        db.add(db_obj)
        await db.flush()
        await db.refresh(db_obj)
        return db_obj

    async def update(self, db: AsyncSession, db_obj: ModelType, update_data: dict[str, Any]) -> ModelType:
        """레코드 수정.

        Callers pass ``model_dump(exclude_unset=True)``, so an explicit
        ``None`` clears the column while omitted fields stay untouched.
        """
        for field, value in update_data.items():
            if hasattr(db_obj, field):
                setattr(db_obj, field, value)
        await db.flush()
        await db.refresh(db_obj)
        return db_obj

    async def delete(self, db: AsyncSession, db_obj: ModelType) -> None:
        await db.delete(db_obj)
        await db.flush()

    async def exists(self, db: AsyncSession, filters: dict[str, Any]) -> bool:
        """조건 일치 레코드 존재 여부 — Whether any row matches the equality filters."""
        query = self._apply_filters(select(func.count()).select_from(self.model), filters, skip_none=False)
        count: int = (await db.execute(query)).scalar() or 0
        return count > 0
