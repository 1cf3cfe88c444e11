"""OKR 관련 SQLAlchemy ORM 모델 정의.

OKR (Objectives and Key Results) SQLAlchemy ORM model definitions.
An OKR owns its key results and an append-only trail of progress
snapshots recording every score change.

Tables:
    - okrs: 목표 (Objectives, optionally nested through parent_okr_id)
    - key_results: 핵심 결과 (Measurable key results, score 1-10)
    - okr_progress_snapshots: 진행 이력 (Audit trail of key result changes)
"""

import uuid
from datetime import datetime

from sqlalchemy import JSON, CheckConstraint, Float, ForeignKey, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base, UTCDateTime, utcnow

OKR_TYPES: tuple[str, ...] = ("company", "department", "team", "individual")
OKR_STATUSES: tuple[str, ...] = ("draft", "active", "completed", "archived")
SNAPSHOT_TYPES: tuple[str, ...] = ("manual", "auto_weekly", "cycle_end")


class OKR(Base):
    """목표 모델 — 담당자와 핵심 결과를 가진 목표.

    Objective model with an assignee, a creator and embedded key results.
    Archiving (status="archived") is the only form of deletion.

    Attributes:
        id: 고유 식별자 UUID (Unique identifier)
        title: 목표 제목 (Objective title, >= 3 chars)
        type: 목표 범위 (company | department | team | individual)
        parent_okr_id: 상위 목표 FK (Parent objective for cascading goals)
        assigned_to_id: 담당자 FK (Owner of the objective)
        created_by_id: 작성자 FK (User who created it)
        tags: 태그 목록 (Free-form tags)
        status: 상태 (draft | active | completed | archived)
    """

    __tablename__ = "okrs"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    type: Mapped[str] = mapped_column(String(20), nullable=False)
    parent_okr_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("okrs.id", ondelete="SET NULL"), nullable=True
    )
    assigned_to_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    created_by_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    department: Mapped[str | None] = mapped_column(String(100), nullable=True)
    tags: Mapped[list[str]] = mapped_column(JSON, default=list)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="active")
    start_date: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    end_date: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow, onupdate=utcnow)

    # 관계 — Relationships (항상 함께 로드, always loaded with the objective)
    key_results = relationship(
        "KeyResult",
        back_populates="okr",
        cascade="all, delete-orphan",
        order_by="KeyResult.created_at",
        lazy="selectin",
    )
    progress_snapshots = relationship(
        "ProgressSnapshot",
        back_populates="okr",
        cascade="all, delete-orphan",
        order_by="ProgressSnapshot.recorded_at",
        lazy="selectin",
    )

    @property
    def average_score(self) -> float:
        """핵심 결과 평균 점수 — 핵심 결과가 없으면 1."""
        if not self.key_results:
            return 1.0
        return sum(kr.score for kr in self.key_results) / len(self.key_results)


class KeyResult(Base):
    """핵심 결과 모델 — Key result with a 1-10 score."""

    __tablename__ = "key_results"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    okr_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("okrs.id", ondelete="CASCADE"), nullable=False, index=True
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    target_value: Mapped[float | None] = mapped_column(Float, nullable=True)
    current_value: Mapped[float | None] = mapped_column(Float, nullable=True)
    # 점수 — 항상 1~10 (always within 1..10)
    score: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    unit: Mapped[str | None] = mapped_column(String(50), nullable=True)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        CheckConstraint("score >= 1 AND score <= 10", name="ck_key_result_score_range"),
    )

    okr = relationship("OKR", back_populates="key_results")


class ProgressSnapshot(Base):
    """진행 이력 모델 — 핵심 결과 점수 변경 기록 (append-only)."""

    __tablename__ = "okr_progress_snapshots"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    okr_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("okrs.id", ondelete="CASCADE"), nullable=False, index=True
    )
    key_result_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    score: Mapped[int] = mapped_column(Integer, nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    recorded_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow)
    recorded_by_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    snapshot_type: Mapped[str] = mapped_column(String(20), nullable=False, default="manual")

    okr = relationship("OKR", back_populates="progress_snapshots")
