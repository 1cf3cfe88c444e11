"""AI 기능 Pydantic 요청 스키마 정의.

AI feature request schema definitions.
"""

from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field


class SuggestionRequest(BaseModel):
    """리뷰 제안 요청 스키마.

    Attributes:
        reviewee_id: 피평가자 (Reviewee whose recent feedback and OKRs are added as context)
        review_type: 리뷰 유형 (self | peer | manager | upward)
        context: 추가 맥락 (Extra free-form context from the client)
    """

    reviewee_id: UUID | None = None
    review_type: str = "manager"
    context: dict[str, Any] = {}


class AssessmentAnswer(BaseModel):
    question: str = Field(max_length=1000)
    response: str = Field(max_length=5000)


class SummaryRequest(BaseModel):
    """자기 평가 요약 요청 스키마."""

    responses: list[AssessmentAnswer] = Field(min_length=1)


class QuestionResponseRequest(BaseModel):
    """질문 답변 생성 요청 스키마."""

    question: str = Field(min_length=5, max_length=1000)
    reviewee_id: UUID
    requires_rating: bool = True


class SentimentRequest(BaseModel):
    """감성 분석 요청 스키마."""

    text: str = Field(min_length=1, max_length=2000)
