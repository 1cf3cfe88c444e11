"""피드백 SQLAlchemy ORM 모델 정의.

Feedback SQLAlchemy ORM model definitions.

Tables:
    - feedback: 동료 피드백 (Peer feedback with sentiment and moderation state)
"""

import uuid
from datetime import datetime

from sqlalchemy import JSON, Boolean, CheckConstraint, ForeignKey, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base, UTCDateTime, utcnow

FEEDBACK_TYPES: tuple[str, ...] = ("public", "private")
FEEDBACK_CATEGORIES: tuple[str, ...] = (
    "skills", "values", "initiatives", "goals", "collaboration", "leadership",
)
FEEDBACK_STATUSES: tuple[str, ...] = ("active", "hidden", "flagged", "deleted")
SENTIMENTS: tuple[str, ...] = ("positive", "neutral", "negative")


class Feedback(Base):
    """피드백 모델 — 한 사용자가 다른 사용자에게 남긴 피드백.

    Feedback model — Feedback left by one user for another.
    A user can never give feedback to themselves; the service rejects it
    before persisting and the check constraint backs that up.

    Visibility:
        - public + active: 모든 사용자 조회 가능 (visible to everyone)
        - private: 작성자와 수신자만 조회 가능 (sender and recipient only)
    """

    __tablename__ = "feedback"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    from_user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    to_user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    content: Mapped[str] = mapped_column(Text, nullable=False)
    rating: Mapped[int | None] = mapped_column(Integer, nullable=True)
    type: Mapped[str] = mapped_column(String(20), nullable=False, default="public")
    category: Mapped[str] = mapped_column(String(30), nullable=False, default="skills")
    tags: Mapped[list[str]] = mapped_column(JSON, default=list)
    is_anonymous: Mapped[bool] = mapped_column(Boolean, default=False)
    review_cycle_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("review_cycles.id", ondelete="SET NULL"), nullable=True
    )
    # 감성 분석 결과 — positive | neutral | negative (분석 실패 시 None)
    sentiment_score: Mapped[str | None] = mapped_column(String(20), nullable=True)
    ai_quality_flags: Mapped[list[str]] = mapped_column(JSON, default=list)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="active", index=True)
    moderated_by_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    moderated_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    moderation_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow, index=True)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        CheckConstraint("from_user_id <> to_user_id", name="ck_feedback_not_self"),
    )

    def can_be_viewed_by(self, user_id: uuid.UUID) -> bool:
        if self.type == "public" and self.status == "active":
            return True
        return user_id in (self.from_user_id, self.to_user_id)

    def can_be_edited_by(self, user_id: uuid.UUID) -> bool:
        return self.from_user_id == user_id and self.status == "active"
