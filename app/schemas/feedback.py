"""피드백 Pydantic 요청/응답 스키마 정의.

Feedback Pydantic request/response schema definitions.
"""

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, Field

from app.schemas.common import ORMModel

FeedbackType = Literal["public", "private"]
FeedbackCategory = Literal["skills", "values", "initiatives", "goals", "collaboration", "leadership"]


class FeedbackCreate(BaseModel):
    """피드백 작성 요청 스키마.

    Attributes:
        to_user_id: 수신자 (Recipient, never the sender)
        content: 내용 10~2000자 (Body text)
        rating: 평점 1~10 (Optional rating)
        type: 공개 범위 (public | private)
        category: 분류 (skills | values | initiatives | goals | collaboration | leadership)
        is_anonymous: 익명 여부 (Hide the sender from the recipient)
    """

    to_user_id: UUID
    content: str = Field(min_length=10, max_length=2000)
    rating: int | None = Field(default=None, ge=1, le=10)
    type: FeedbackType = "public"
    category: FeedbackCategory = "skills"
    tags: list[str] = []
    is_anonymous: bool = False
    review_cycle_id: UUID | None = None


class FeedbackUpdate(BaseModel):
    """피드백 수정 요청 스키마 — Sender only, while the feedback is active."""

    content: str | None = Field(default=None, min_length=10, max_length=2000)
    rating: int | None = Field(default=None, ge=1, le=10)
    type: FeedbackType | None = None
    category: FeedbackCategory | None = None
    tags: list[str] | None = None


class FeedbackModerate(BaseModel):
    """피드백 검토 요청 스키마 — ``hide`` needs a reason, ``restore`` clears it."""

    action: str
    reason: str | None = Field(default=None, max_length=500)


class FeedbackResponse(ORMModel):
    """피드백 응답 스키마.

    ``from_user_id`` is blanked by the service for anonymous feedback
    shown to anyone but the sender.
    """

    id: UUID
    from_user_id: UUID | None
    to_user_id: UUID
    content: str
    rating: int | None
    type: str
    category: str
    tags: list[str]
    is_anonymous: bool
    review_cycle_id: UUID | None
    sentiment_score: str | None
    ai_quality_flags: list[str]
    status: str
    moderation_reason: str | None
    created_at: datetime
    updated_at: datetime
