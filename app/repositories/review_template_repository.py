"""리뷰 템플릿 레포지토리 — Review template queries."""

from typing import Sequence

from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.review_template import ReviewTemplate
from app.repositories.base import BaseRepository


class ReviewTemplateRepository(BaseRepository[ReviewTemplate]):
    """리뷰 템플릿 레포지토리 — Review template repository."""

    def __init__(self) -> None:
        super().__init__(ReviewTemplate)

    def build_list_query(self, category: str | None = None, active_only: bool = True) -> Select:
        query: Select = select(ReviewTemplate)
        if active_only:
            query = query.where(ReviewTemplate.is_active.is_(True))
        if category is not None:
            query = query.where(ReviewTemplate.category == category)
        return query.order_by(ReviewTemplate.order, ReviewTemplate.created_at)

    async def get_for_review_type(self, db: AsyncSession, review_type: str) -> Sequence[ReviewTemplate]:
        """리뷰 유형별 질문 — Active templates flagged for a review type, in order."""
        flag = getattr(ReviewTemplate, f"for_{review_type}")
        result = await db.execute(self.build_list_query().where(flag.is_(True)))
        return result.scalars().all()

    async def count(self, db: AsyncSession) -> int:
        result = await db.execute(select(func.count()).select_from(ReviewTemplate))
        return result.scalar() or 0


# 싱글턴 인스턴스 — Singleton instance
review_template_repository: ReviewTemplateRepository = ReviewTemplateRepository()
