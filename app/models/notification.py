"""알림 관련 SQLAlchemy ORM 모델 정의.

Notification SQLAlchemy ORM model definitions.
Each notification can reference the entity that triggered it via
related_type and related_id, and may be scheduled for later email delivery.

Tables:
    - notifications: 사용자 알림 (User notifications with polymorphic references)
"""

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import JSON, Boolean, ForeignKey, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base, UTCDateTime, utcnow

NOTIFICATION_TYPES: tuple[str, ...] = (
    "review_reminder",
    "feedback_received",
    "cycle_created",
    "deadline_approaching",
    "review_submitted",
    "peer_nomination_request",
    "okr_update_reminder",
    "system_announcement",
)
RELATED_TYPES: tuple[str, ...] = ("review", "feedback", "okr", "cycle", "user")
PRIORITIES: tuple[str, ...] = ("low", "medium", "high", "urgent")


class Notification(Base):
    """알림 모델 — 사용자에게 전달되는 시스템 알림.

    Notification model — System notifications delivered to users.
    Uses a polymorphic reference pattern (related_type + related_id)
    to link back to the source entity that triggered the notification.

    Notification Types (type 필드 값):
        - "review_reminder": 리뷰 마감 리마인더 (Daily 7/3/1-day reminder)
        - "deadline_approaching": 24시간 이내 마감 (Urgent deadline alert)
        - "cycle_created": 새 리뷰 사이클 (New review cycle)
        - "feedback_received": 피드백 수신 (New feedback)
        - "review_submitted": 리뷰 제출됨 (A review about you was submitted)
        - "peer_nomination_request": 동료 리뷰 요청 (Asked to write a peer review)
        - "okr_update_reminder" / "system_announcement"

    Attributes:
        user_id: 수신자 FK (Recipient user foreign key)
        title / message: 제목과 본문 (Title and body)
        is_read / read_at: 읽음 상태 (Read state)
        email_sent / sent_at: 이메일 발송 상태 (Email delivery state)
        scheduled_for: 발송 예정 시각 (When the email should go out)
        priority: 우선순위 (low | medium | high | urgent)
        meta: 부가 정보, 컬럼명 metadata (Free-form metadata)
        dedupe_key: 중복 방지 키 (Unique key preventing duplicate reminders)
    """

    __tablename__ = "notifications"

    # 알림 고유 식별자 — Notification unique identifier (UUID v4, auto-generated)
    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    # 수신자 FK — Target user who receives this notification
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    type: Mapped[str] = mapped_column(String(50), nullable=False)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    # 참조 엔티티 — Polymorphic reference to the source entity
    related_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    related_type: Mapped[str | None] = mapped_column(String(20), nullable=True)
    # 읽음 여부 — False=미읽음, True=읽음 (Unread by default)
    is_read: Mapped[bool] = mapped_column(Boolean, default=False)
    read_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    email_sent: Mapped[bool] = mapped_column(Boolean, default=False, index=True)
    scheduled_for: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True, index=True)
    sent_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    priority: Mapped[str] = mapped_column(String(10), nullable=False, default="medium")
    meta: Mapped[dict[str, Any]] = mapped_column("metadata", JSON, default=dict)
    dedupe_key: Mapped[str | None] = mapped_column(String(255), unique=True, nullable=True)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow)
