"""OKR 관련 Pydantic 요청/응답 스키마 정의.

OKR (Objectives and Key Results) Pydantic schema definitions.
Covers objective CRUD, key results, bulk progress updates and the
progress history.
"""

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, Field, model_validator

from app.schemas.common import ORMModel, UTCDatetime

OKRType = Literal["company", "department", "team", "individual"]
OKRStatus = Literal["draft", "active", "completed", "archived"]


class KeyResultCreate(BaseModel):
    """핵심 결과 생성 요청 스키마.

    Attributes:
        title: 핵심 결과 제목 (Key result title)
        target_value / current_value: 목표값, 현재값 (Target and current measurement)
        score: 점수 1~10 (Score, default 1)
        unit: 단위 (Unit of the values, e.g. "%", "deals")
    """

    title: str = Field(min_length=1, max_length=255)
    description: str | None = None
    target_value: float | None = None
    current_value: float | None = None
    score: int = Field(default=1, ge=1, le=10)
    unit: str | None = Field(default=None, max_length=50)


class KeyResultUpdate(BaseModel):
    """핵심 결과 수정 요청 스키마 (부분 업데이트).

    ``notes`` is stored on the progress snapshot the change produces.
    """

    title: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = None
    target_value: float | None = None
    current_value: float | None = None
    score: int | None = Field(default=None, ge=1, le=10)
    unit: str | None = Field(default=None, max_length=50)
    notes: str | None = None


class KeyResultProgress(BaseModel):
    """일괄 진행 업데이트 항목 — One key result inside a bulk progress update."""

    id: UUID
    current_value: float | None = None
    score: int | None = Field(default=None, ge=1, le=10)


class ProgressUpdate(BaseModel):
    """일괄 진행 업데이트 요청 스키마."""

    key_results: list[KeyResultProgress] = Field(min_length=1)
    notes: str | None = None


class OKRCreate(BaseModel):
    """OKR 생성 요청 스키마.

    Objective creation request. ``assigned_to_id`` defaults to the caller.

    Attributes:
        title: 목표 제목 (At least 3 characters)
        type: 목표 범위 (company | department | team | individual)
        parent_okr_id: 상위 목표 (Parent objective, optional)
        key_results: 초기 핵심 결과 목록 (Initial key results)
    """

    title: str = Field(min_length=3, max_length=255)
    description: str | None = None
    type: OKRType = "individual"
    parent_okr_id: UUID | None = None
    assigned_to_id: UUID | None = None
    department: str | None = Field(default=None, max_length=100)
    tags: list[str] = []
    status: OKRStatus = "active"
    start_date: UTCDatetime | None = None
    end_date: UTCDatetime | None = None
    key_results: list[KeyResultCreate] = []

    @model_validator(mode="after")
    def _check_dates(self) -> "OKRCreate":
        if self.start_date and self.end_date and self.start_date >= self.end_date:
            raise ValueError("Start date must be before end date")
        return self


class OKRUpdate(BaseModel):
    """OKR 수정 요청 스키마 (부분 업데이트)."""

    title: str | None = Field(default=None, min_length=3, max_length=255)
    description: str | None = None
    type: OKRType | None = None
    parent_okr_id: UUID | None = None
    assigned_to_id: UUID | None = None
    department: str | None = Field(default=None, max_length=100)
    tags: list[str] | None = None
    status: OKRStatus | None = None
    start_date: UTCDatetime | None = None
    end_date: UTCDatetime | None = None


class KeyResultResponse(ORMModel):
    id: UUID
    title: str
    description: str | None
    target_value: float | None
    current_value: float | None
    score: int
    unit: str | None
    updated_at: datetime


class ProgressSnapshotResponse(ORMModel):
    id: UUID
    key_result_id: UUID
    score: int
    notes: str | None
    recorded_at: datetime
    recorded_by_id: UUID
    snapshot_type: str


class OKRResponse(ORMModel):
    """OKR 응답 스키마 — Objective with its key results and average score."""

    id: UUID
    title: str
    description: str | None
    type: str
    parent_okr_id: UUID | None
    assigned_to_id: UUID
    created_by_id: UUID
    department: str | None
    tags: list[str]
    status: str
    start_date: datetime | None
    end_date: datetime | None
    average_score: float
    key_results: list[KeyResultResponse]
    created_at: datetime
    updated_at: datetime
