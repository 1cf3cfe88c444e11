"""리뷰 사이클 Pydantic 요청/응답 스키마 정의.

Review cycle Pydantic request/response schema definitions.
Date ordering and the 3-day lead time are checked by the service so the
API can answer with its own messages.
"""

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, Field

from app.schemas.common import ORMModel, UTCDatetime

CycleType = Literal["quarterly", "half-yearly", "annual", "custom"]
CycleStatus = Literal["draft", "active", "grace-period", "closed"]
ReviewType = Literal["self", "peer", "manager", "upward"]
ParticipantRole = Literal["reviewee", "peer", "manager", "self"]
QuestionCategory = Literal["skills", "values", "initiatives", "goals", "overall"]


class QuestionCreate(BaseModel):
    """사이클 질문 스키마.

    Attributes:
        category: 분류 (skills | values | initiatives | goals | overall)
        question: 질문 본문 (Question text)
        requires_rating: 평점 필요 여부 (Whether a 1-N rating is expected)
        rating_scale: 평점 척도 (Rating scale, default 10)
        order: 표시 순서 (Display order)
    """

    category: QuestionCategory
    question: str = Field(min_length=5, max_length=1000)
    requires_rating: bool = True
    rating_scale: int = Field(default=10, ge=2, le=10)
    is_required: bool = True
    order: int | None = None


class CycleCreate(BaseModel):
    """리뷰 사이클 생성 요청 스키마.

    Attributes:
        name: 사이클 이름 (Display name)
        type: 주기 유형 (quarterly | half-yearly | annual | custom)
        start_date / end_date: 기간 (Review window)
        grace_period_days: 유예 기간 (Days after end_date still accepting submissions)
        is_emergency: 긴급 여부 (Allows a start date less than 3 days away)
        review_types: 활성 리뷰 유형 (Enabled review types)
        questions: 질문 목록 (Empty means the three default questions)
        participant_ids: 초기 참가자 (Users added as reviewees)
    """

    name: str = Field(min_length=3, max_length=255)
    description: str | None = None
    type: CycleType = "quarterly"
    start_date: UTCDatetime
    end_date: UTCDatetime
    grace_period_days: int = Field(default=3, ge=0, le=30)
    is_emergency: bool = False
    review_types: list[ReviewType] = Field(default_factory=lambda: ["self", "peer", "manager"], min_length=1)
    min_peer_reviewers: int = Field(default=3, ge=0, le=20)
    max_peer_reviewers: int = Field(default=5, ge=1, le=20)
    allow_self_nomination: bool = True
    questions: list[QuestionCreate] = []
    participant_ids: list[UUID] = []


class CycleUpdate(BaseModel):
    """리뷰 사이클 수정 요청 스키마 (부분 업데이트, closed 사이클 불가)."""

    name: str | None = Field(default=None, min_length=3, max_length=255)
    description: str | None = None
    start_date: UTCDatetime | None = None
    end_date: UTCDatetime | None = None
    grace_period_days: int | None = Field(default=None, ge=0, le=30)
    review_types: list[ReviewType] | None = Field(default=None, min_length=1)
    min_peer_reviewers: int | None = Field(default=None, ge=0, le=20)
    max_peer_reviewers: int | None = Field(default=None, ge=1, le=20)
    allow_self_nomination: bool | None = None
    questions: list[QuestionCreate] | None = None


class StatusUpdate(BaseModel):
    """상태 전환 요청 스키마 — Target status of a transition."""

    status: CycleStatus


class ParticipantsAdd(BaseModel):
    """참가자 추가 요청 스키마 — Users already in the cycle are skipped."""

    user_ids: list[UUID] = Field(min_length=1)
    role: ParticipantRole = "reviewee"


class ParticipantResponse(ORMModel):
    id: UUID
    user_id: UUID
    role: str
    status: str
    submitted_at: datetime | None


class QuestionResponse(ORMModel):
    id: UUID
    category: str
    question: str
    requires_rating: bool
    rating_scale: int
    is_required: bool
    order: int


class CycleResponse(ORMModel):
    """리뷰 사이클 응답 스키마 — Includes participants, questions and the derived grace end."""

    id: UUID
    name: str
    description: str | None
    type: str
    start_date: datetime
    end_date: datetime
    grace_period_days: int
    grace_period_end_date: datetime
    status: str
    is_emergency: bool
    review_types: list[str]
    min_peer_reviewers: int
    max_peer_reviewers: int
    allow_self_nomination: bool
    created_by_id: UUID | None
    participants: list[ParticipantResponse]
    questions: list[QuestionResponse]
    created_at: datetime
    updated_at: datetime
