"""리뷰 템플릿 SQLAlchemy ORM 모델 정의.

Review template SQLAlchemy ORM model definitions.
Templates are reusable review questions flagged for the review types
they apply to.

Tables:
    - review_templates: 재사용 가능한 질문 (Reusable review questions)
"""

import uuid
from datetime import datetime

from sqlalchemy import Boolean, ForeignKey, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base, UTCDateTime, utcnow

TEMPLATE_CATEGORIES: tuple[str, ...] = ("skills", "values", "initiatives", "goals", "overall", "custom")
TEMPLATE_TYPES: tuple[str, ...] = ("text", "rating", "rating_text")


class ReviewTemplate(Base):
    """리뷰 템플릿 모델.

    Review template model.

    Attributes:
        name: 템플릿 이름 (Template name)
        category: 분류 (skills | values | initiatives | goals | overall | custom)
        text: 질문 본문 (Question text)
        type: 답변 형식 (text | rating | rating_text)
        for_self / for_peer / for_manager / for_upward: 적용 리뷰 유형 (Applicable review types)
        usage_count: 사용 횟수 (Times copied into a cycle)
    """

    __tablename__ = "review_templates"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    category: Mapped[str] = mapped_column(String(20), nullable=False, default="custom")
    text: Mapped[str] = mapped_column(Text, nullable=False)
    type: Mapped[str] = mapped_column(String(20), nullable=False, default="rating_text")
    required: Mapped[bool] = mapped_column(Boolean, default=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    order: Mapped[int] = mapped_column(Integer, default=0)
    for_self: Mapped[bool] = mapped_column(Boolean, default=True)
    for_peer: Mapped[bool] = mapped_column(Boolean, default=True)
    for_manager: Mapped[bool] = mapped_column(Boolean, default=True)
    for_upward: Mapped[bool] = mapped_column(Boolean, default=False)
    usage_count: Mapped[int] = mapped_column(Integer, default=0)
    created_by_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow, onupdate=utcnow)
