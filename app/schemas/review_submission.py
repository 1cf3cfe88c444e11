"""리뷰 제출 Pydantic 요청/응답 스키마 정의.

Review submission Pydantic request/response schema definitions.
Ratings sent as ``0`` or ``""`` by form clients mean "not rated" and are
normalised to ``None`` before range validation.
"""

from datetime import datetime
from typing import Annotated, Any
from uuid import UUID

from pydantic import BaseModel, BeforeValidator, Field

from app.schemas.common import ORMModel


def _blank_rating_to_none(value: Any) -> Any:
    if value in (0, "", "0"):
        return None
    return value


# 평점 1~10 또는 None — Optional 1-10 rating
Rating = Annotated[int | None, BeforeValidator(_blank_rating_to_none), Field(ge=1, le=10)]


class ResponseItem(BaseModel):
    """질문별 응답 — One answer inside ``responses``."""

    question_id: str | None = None
    question_text: str = ""
    response: str = Field(default="", max_length=5000)
    rating: Rating = None


class SubmissionUpdate(BaseModel):
    """리뷰 작성 요청 스키마 (부분 업데이트, 초안 상태에서만).

    Attributes:
        responses: 질문별 응답 (Per-question answers)
        overall_rating: 종합 평점 (Overall 1-10 rating)
        strengths / areas_for_improvement / goals / comments: 서술 항목 (Free text)
    """

    responses: list[ResponseItem] | None = None
    overall_rating: Rating = None
    strengths: str | None = Field(default=None, max_length=5000)
    areas_for_improvement: str | None = Field(default=None, max_length=5000)
    goals: str | None = Field(default=None, max_length=5000)
    comments: str | None = Field(default=None, max_length=5000)


class NominationRequest(BaseModel):
    """동료 지명 요청 스키마 — Peers asked to review the caller in a cycle."""

    review_cycle_id: UUID
    peer_user_ids: list[UUID] = Field(min_length=1)


class SubmissionResponse(ORMModel):
    """리뷰 제출 응답 스키마.

    ``reviewer_id`` is blanked by the service for anonymous submissions
    shown to the reviewee.
    """

    id: UUID
    review_cycle_id: UUID
    reviewee_id: UUID
    reviewer_id: UUID | None
    review_type: str
    responses: list[dict[str, Any]]
    overall_rating: int | None
    strengths: str | None
    areas_for_improvement: str | None
    goals: str | None
    comments: str | None
    ai_suggestions: dict[str, Any] | None
    ai_scoring: dict[str, Any] | None
    sentiment_analysis: dict[str, Any] | None
    status: str
    submitted_at: datetime | None
    reviewed_at: datetime | None
    reviewed_by_id: UUID | None
    is_nominated: bool
    nominated_by_id: UUID | None
    is_anonymous: bool
    completion_percentage: int
    is_complete: bool
    created_at: datetime
    updated_at: datetime
