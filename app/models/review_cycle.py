"""리뷰 사이클 관련 SQLAlchemy ORM 모델 정의.

Review cycle SQLAlchemy ORM model definitions.
A cycle is a time-boxed review period with its own participants and
question list. Its status follows draft → active → grace-period → closed.

Tables:
    - review_cycles: 리뷰 사이클 (Review periods and their configuration)
    - review_cycle_participants: 참가자 (Users taking part, one row per user per cycle)
    - review_cycle_questions: 질문 (Ordered questions asked in the cycle)
"""

import uuid
from datetime import datetime, timedelta

from sqlalchemy import JSON, Boolean, ForeignKey, Integer, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base, UTCDateTime, utcnow

CYCLE_TYPES: tuple[str, ...] = ("quarterly", "half-yearly", "annual", "custom")
CYCLE_STATUSES: tuple[str, ...] = ("draft", "active", "grace-period", "closed")
REVIEW_TYPES: tuple[str, ...] = ("self", "peer", "manager", "upward")
PARTICIPANT_ROLES: tuple[str, ...] = ("reviewee", "peer", "manager", "self")
PARTICIPANT_STATUSES: tuple[str, ...] = ("pending", "submitted", "not-submitted")
QUESTION_CATEGORIES: tuple[str, ...] = ("skills", "values", "initiatives", "goals", "overall")


class ReviewCycle(Base):
    """리뷰 사이클 모델.

    Review cycle model.

    Attributes:
        id: 고유 식별자 UUID (Unique identifier)
        name: 사이클 이름 (Display name)
        type: 주기 유형 (quarterly | half-yearly | annual | custom)
        start_date / end_date: 기간 (Review window, start < end)
        grace_period_days: 유예 기간 일수 (Days after end_date still accepting submissions)
        status: 상태 (draft | active | grace-period | closed)
        is_emergency: 긴급 사이클 여부 (Skips the 3-day lead time rule)
        review_types: 활성 리뷰 유형 목록 (Enabled review types)
        min_peer_reviewers / max_peer_reviewers: 동료 리뷰어 수 범위 (Peer reviewer bounds)
        allow_self_nomination: 동료 자가 지명 허용 (Participants may nominate their own peers)
    """

    __tablename__ = "review_cycles"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    type: Mapped[str] = mapped_column(String(20), nullable=False, default="quarterly")
    start_date: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    end_date: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, index=True)
    grace_period_days: Mapped[int] = mapped_column(Integer, nullable=False, default=3)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="draft", index=True)
    is_emergency: Mapped[bool] = mapped_column(Boolean, default=False)
    review_types: Mapped[list[str]] = mapped_column(JSON, default=lambda: ["self", "peer", "manager"])
    min_peer_reviewers: Mapped[int] = mapped_column(Integer, default=3)
    max_peer_reviewers: Mapped[int] = mapped_column(Integer, default=5)
    allow_self_nomination: Mapped[bool] = mapped_column(Boolean, default=True)
    created_by_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow, onupdate=utcnow)

    participants = relationship(
        "CycleParticipant",
        back_populates="cycle",
        cascade="all, delete-orphan",
        order_by="CycleParticipant.created_at",
        lazy="selectin",
    )
    questions = relationship(
        "CycleQuestion",
        back_populates="cycle",
        cascade="all, delete-orphan",
        order_by="CycleQuestion.order",
        lazy="selectin",
    )

    @property
    def grace_period_end_date(self) -> datetime:
        return self.end_date + timedelta(days=self.grace_period_days)

    @property
    def accepts_participants(self) -> bool:
        return self.status in ("draft", "active")

    @property
    def accepts_submissions(self) -> bool:
        return self.status in ("active", "grace-period")

    def participant_for(self, user_id: uuid.UUID) -> "CycleParticipant | None":
        for participant in self.participants:
            if participant.user_id == user_id:
                return participant
        return None


class CycleParticipant(Base):
    """사이클 참가자 모델 — Cycle participant with a submission status."""

    __tablename__ = "review_cycle_participants"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    cycle_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("review_cycles.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    role: Mapped[str] = mapped_column(String(20), nullable=False, default="reviewee")
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")
    submitted_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow)

    __table_args__ = (
        UniqueConstraint("cycle_id", "user_id", name="uq_cycle_participant_user"),
    )

    cycle = relationship("ReviewCycle", back_populates="participants")


class CycleQuestion(Base):
    """사이클 질문 모델 — Question asked in a cycle."""

    __tablename__ = "review_cycle_questions"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    cycle_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("review_cycles.id", ondelete="CASCADE"), nullable=False, index=True
    )
    category: Mapped[str] = mapped_column(String(20), nullable=False)
    question: Mapped[str] = mapped_column(Text, nullable=False)
    requires_rating: Mapped[bool] = mapped_column(Boolean, default=True)
    rating_scale: Mapped[int] = mapped_column(Integer, default=10)
    is_required: Mapped[bool] = mapped_column(Boolean, default=True)
    order: Mapped[int] = mapped_column(Integer, default=0)

    cycle = relationship("ReviewCycle", back_populates="questions")
