"""시간 기록 SQLAlchemy ORM 모델 정의.

Time entry SQLAlchemy ORM model definitions.

Tables:
    - time_entries: OKR에 투입한 작업 시간 (Hours logged against an OKR)
"""

import uuid
import datetime as dt

from sqlalchemy import CheckConstraint, Date, Float, ForeignKey, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base, UTCDateTime, utcnow

TIME_CATEGORIES: tuple[str, ...] = ("direct_work", "planning", "collaboration", "review", "other")


class TimeEntry(Base):
    """시간 기록 모델 — 하루 0~24시간 (Hours per entry within 0..24)."""

    __tablename__ = "time_entries"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    okr_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("okrs.id", ondelete="CASCADE"), nullable=False, index=True
    )
    key_result_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("key_results.id", ondelete="SET NULL"), nullable=True
    )
    date: Mapped[dt.date] = mapped_column(Date, nullable=False, index=True)
    hours_spent: Mapped[float] = mapped_column(Float, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    category: Mapped[str] = mapped_column(String(20), nullable=False, default="direct_work")
    created_at: Mapped[dt.datetime] = mapped_column(UTCDateTime, default=utcnow)
    updated_at: Mapped[dt.datetime] = mapped_column(UTCDateTime, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        CheckConstraint("hours_spent >= 0 AND hours_spent <= 24", name="ck_time_entry_hours"),
    )
