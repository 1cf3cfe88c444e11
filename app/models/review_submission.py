"""리뷰 제출 SQLAlchemy ORM 모델 정의.

Review submission SQLAlchemy ORM model definitions.
One reviewer's review of one reviewee within a cycle. The combination
(cycle, reviewee, reviewer, review_type) is unique at the database level.

Tables:
    - review_submissions: 리뷰 제출 (Draft / submitted / reviewed reviews)
"""

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import JSON, Boolean, ForeignKey, Integer, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base, UTCDateTime, utcnow

SUBMISSION_STATUSES: tuple[str, ...] = ("draft", "submitted", "reviewed")


class ReviewSubmission(Base):
    """리뷰 제출 모델.

    Review submission model. ``responses`` holds one entry per cycle
    question: ``{"question_id", "question_text", "response", "rating"}``.

    Attributes:
        review_cycle_id: 사이클 FK (Owning review cycle)
        reviewee_id: 피평가자 FK (User being reviewed)
        reviewer_id: 평가자 FK (User writing the review)
        review_type: 리뷰 유형 (self | peer | manager | upward)
        responses: 질문별 응답 목록 (Per-question answers)
        overall_rating: 종합 평점 1~10 (Overall rating, optional)
        ai_suggestions / ai_scoring / sentiment_analysis: AI 결과 (AI sub-objects)
        status: 상태 (draft | submitted | reviewed)
        is_nominated: 동료 지명으로 생성 여부 (Created through peer nomination)
    """

    __tablename__ = "review_submissions"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    review_cycle_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("review_cycles.id", ondelete="CASCADE"), nullable=False, index=True
    )
    reviewee_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    reviewer_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    review_type: Mapped[str] = mapped_column(String(20), nullable=False)
    responses: Mapped[list[dict[str, Any]]] = mapped_column(JSON, default=list)
    overall_rating: Mapped[int | None] = mapped_column(Integer, nullable=True)
    strengths: Mapped[str | None] = mapped_column(Text, nullable=True)
    areas_for_improvement: Mapped[str | None] = mapped_column(Text, nullable=True)
    goals: Mapped[str | None] = mapped_column(Text, nullable=True)
    comments: Mapped[str | None] = mapped_column(Text, nullable=True)
    ai_suggestions: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    ai_scoring: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    sentiment_analysis: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="draft", index=True)
    submitted_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    reviewed_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    reviewed_by_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    is_nominated: Mapped[bool] = mapped_column(Boolean, default=False)
    nominated_by_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    nominated_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    is_anonymous: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        UniqueConstraint(
            "review_cycle_id", "reviewee_id", "reviewer_id", "review_type",
            name="uq_review_submission_tuple",
        ),
    )

    @property
    def completion_percentage(self) -> int:
        """작성 완료율 — Share of responses with a non-empty answer, 0-100."""
        if not self.responses:
            return 0
        answered = sum(1 for r in self.responses if (r.get("response") or "").strip())
        return round(answered / len(self.responses) * 100)

    @property
    def is_complete(self) -> bool:
        return self.completion_percentage == 100 and self.overall_rating is not None
