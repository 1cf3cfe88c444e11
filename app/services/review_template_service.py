"""리뷰 템플릿 서비스 — 재사용 가능한 리뷰 질문 관리.

Review Template Service — Reusable question CRUD, lookup by review type
and the one-time seed of the default question set.
"""

import logging
from typing import Any, Sequence
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.models.review_template import ReviewTemplate
from app.models.user import User
from app.repositories.review_template_repository import review_template_repository
from app.schemas.review_template import TemplateCreate, TemplateUpdate
from app.utils.exceptions import BadRequestError, NotFoundError

logger = logging.getLogger(__name__)

_SELF_MANAGER = {"for_self": True, "for_peer": False, "for_manager": True}
_ALL_BUT_UPWARD = {"for_self": True, "for_peer": True, "for_manager": True}

# 기본 질문 세트 — (name, category, text, type, required, usage flags)
DEFAULT_TEMPLATES: tuple[tuple[str, str, str, str, bool, dict[str, bool]], ...] = (
    ("Overall Performance Rating", "overall",
     "How would you rate your overall performance this period?", "rating_text", True, _ALL_BUT_UPWARD),
    ("Key Achievements", "goals",
     "What are your key achievements this period?", "text", True, _SELF_MANAGER),
    ("Areas for Improvement", "skills",
     "What areas would you like to improve?", "text", True, _SELF_MANAGER),
    ("Technical Skills Rating", "skills",
     "Rate your technical/professional skills", "rating_text", True, _ALL_BUT_UPWARD),
    ("Company Values Demonstration", "values",
     "How well did you demonstrate company values?", "rating_text", True, _ALL_BUT_UPWARD),
    ("Leadership Initiatives", "initiatives",
     "Describe any initiatives you led or contributed to", "text", False, _SELF_MANAGER),
    ("Future Goals", "goals",
     "What are your goals for the next period?", "text", True, _SELF_MANAGER),
    ("Collaboration Skills", "skills",
     "Rate your collaboration and teamwork", "rating_text", True, _ALL_BUT_UPWARD),
    ("Communication Skills", "skills",
     "Rate your communication skills", "rating_text", True, _ALL_BUT_UPWARD),
    ("Additional Feedback", "overall",
     "Any additional feedback or comments?", "text", False, {**_ALL_BUT_UPWARD, "for_upward": True}),
)


def default_template_rows(created_by_id: UUID | None = None) -> list[dict[str, Any]]:
    """기본 템플릿 행 — Column dictionaries for the default question set, in order."""
    return [
        {
            "name": name,
            "category": category,
            "text": text,
            "type": type_,
            "required": required,
            "order": index,
            "for_upward": False,
            **usage,
            "created_by_id": created_by_id,
        }
        for index, (name, category, text, type_, required, usage) in enumerate(DEFAULT_TEMPLATES, start=1)
    ]


class ReviewTemplateService:
    """리뷰 템플릿 서비스 — Review template service."""

    async def list_templates(
        self,
        db: AsyncSession,
        category: str | None = None,
        review_type: str | None = None,
    ) -> Sequence[ReviewTemplate]:
        """활성 템플릿 목록 — Optionally restricted to a category and a review type."""
        if review_type is not None:
            templates = await review_template_repository.get_for_review_type(db, review_type)
            return [t for t in templates if category is None or t.category == category]
        result = await db.execute(review_template_repository.build_list_query(category))
        return result.scalars().all()

    async def get_template(self, db: AsyncSession, template_id: UUID) -> ReviewTemplate:
        template = await review_template_repository.get_by_id(db, template_id)
        if template is None:
            raise NotFoundError("Question template not found")
        return template

    async def create_template(self, db: AsyncSession, actor: User, data: TemplateCreate) -> ReviewTemplate:
        return await review_template_repository.create(db, {**data.model_dump(), "created_by_id": actor.id})

    async def update_template(self, db: AsyncSession, template_id: UUID, data: TemplateUpdate) -> ReviewTemplate:
        template = await self.get_template(db, template_id)
        return await review_template_repository.update(db, template, data.model_dump(exclude_unset=True))

    async def delete_template(self, db: AsyncSession, template_id: UUID) -> None:
        """템플릿 비활성화 — Templates are deactivated, never removed."""
        template = await self.get_template(db, template_id)
        await review_template_repository.update(db, template, {"is_active": False})

    async def seed_defaults(self, db: AsyncSession, actor: User) -> list[ReviewTemplate]:
        """기본 템플릿 초기화 — 템플릿이 하나라도 있으면 거부합니다.

        Raises:
            BadRequestError: 이미 템플릿이 존재할 때 (Templates already exist)
        """
        if await review_template_repository.count(db) > 0:
            raise BadRequestError("Templates already exist")
        created = [
            await review_template_repository.create(db, row) for row in default_template_rows(actor.id)
        ]
        logger.info("Default review templates seeded", extra={"count": len(created)})
        return created
