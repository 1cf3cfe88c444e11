"""리뷰 템플릿 Pydantic 스키마 정의.

Review template (reusable question) request/response schemas.
"""

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, Field

from app.schemas.common import ORMModel

TemplateCategory = Literal["skills", "values", "initiatives", "goals", "overall", "custom"]
TemplateType = Literal["text", "rating", "rating_text"]


class TemplateCreate(BaseModel):
    """템플릿 생성 요청 스키마.

    Attributes:
        name: 템플릿 이름 (Template name)
        text: 질문 본문 (Question text)
        type: 답변 형식 (text | rating | rating_text)
        for_self / for_peer / for_manager / for_upward: 적용 리뷰 유형 (Applicable review types)
    """

    name: str = Field(min_length=2, max_length=200)
    description: str | None = None
    category: TemplateCategory = "custom"
    text: str = Field(min_length=5, max_length=1000)
    type: TemplateType = "rating_text"
    required: bool = True
    order: int = 0
    for_self: bool = True
    for_peer: bool = True
    for_manager: bool = True
    for_upward: bool = False


class TemplateUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=2, max_length=200)
    description: str | None = None
    category: TemplateCategory | None = None
    text: str | None = Field(default=None, min_length=5, max_length=1000)
    type: TemplateType | None = None
    required: bool | None = None
    is_active: bool | None = None
    order: int | None = None
    for_self: bool | None = None
    for_peer: bool | None = None
    for_manager: bool | None = None
    for_upward: bool | None = None


class TemplateResponse(ORMModel):
    id: UUID
    name: str
    description: str | None
    category: str
    text: str
    type: str
    required: bool
    is_active: bool
    order: int
    for_self: bool
    for_peer: bool
    for_manager: bool
    for_upward: bool
    usage_count: int
    created_at: datetime
