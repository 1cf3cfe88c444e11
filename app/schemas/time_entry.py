"""시간 기록 Pydantic 스키마 정의.

Time entry request/response schema definitions.
"""

import datetime as dt
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, Field

from app.schemas.common import ORMModel

TimeCategory = Literal["direct_work", "planning", "collaboration", "review", "other"]


class TimeEntryCreate(BaseModel):
    """시간 기록 생성 요청 스키마.

    Attributes:
        okr_id: 대상 OKR (Objective the time was spent on)
        key_result_id: 대상 핵심 결과 (Optional key result of that OKR)
        date: 작업 일자 (Work date)
        hours_spent: 작업 시간 0~24 (Hours, 0..24)
        category: 작업 분류 (direct_work | planning | collaboration | review | other)
    """

    okr_id: UUID
    key_result_id: UUID | None = None
    date: dt.date
    hours_spent: float = Field(ge=0, le=24)
    description: str | None = Field(default=None, max_length=1000)
    category: TimeCategory = "direct_work"


class TimeEntryUpdate(BaseModel):
    key_result_id: UUID | None = None
    date: dt.date | None = None
    hours_spent: float | None = Field(default=None, ge=0, le=24)
    description: str | None = Field(default=None, max_length=1000)
    category: TimeCategory | None = None


class TimeEntryResponse(ORMModel):
    id: UUID
    user_id: UUID
    okr_id: UUID
    key_result_id: UUID | None
    date: dt.date
    hours_spent: float
    description: str | None
    category: str
    created_at: dt.datetime
