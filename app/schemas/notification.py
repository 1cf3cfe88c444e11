"""알림 Pydantic 스키마 정의.

Notification request/response schema definitions.
"""

from datetime import datetime
from typing import Any, Literal
from uuid import UUID

from pydantic import BaseModel, Field

from app.schemas.common import ORMModel


class NotificationResponse(ORMModel):
    """알림 응답 스키마.

    The ORM attribute ``meta`` is exposed as ``metadata``.
    """

    id: UUID
    type: str
    title: str
    message: str
    related_id: UUID | None
    related_type: str | None
    is_read: bool
    read_at: datetime | None
    email_sent: bool
    sent_at: datetime | None
    scheduled_for: datetime | None
    priority: str
    metadata: dict[str, Any] = Field(default_factory=dict, validation_alias="meta")
    created_at: datetime


class AnnouncementRequest(BaseModel):
    """시스템 공지 요청 스키마 — Sent to every active user."""

    title: str = Field(min_length=3, max_length=200)
    message: str = Field(min_length=1, max_length=2000)
    priority: Literal["low", "medium", "high", "urgent"] = "medium"
