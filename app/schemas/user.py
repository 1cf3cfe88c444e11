"""사용자 관련 Pydantic 요청/응답 스키마 정의.

User Pydantic request/response schema definitions.
Covers admin user management, role changes, manager assignment and
notification preferences.
"""

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, Field

from app.schemas.auth import Email
from app.schemas.common import ORMModel

RoleName = Literal["admin", "hr", "manager", "employee"]


class UserCreate(BaseModel):
    """사용자 생성 요청 스키마 (관리자/HR용).

    User creation request schema (admin/HR operation).

    Attributes:
        email: 로그인 이메일 (Login email, unique)
        password: 비밀번호 (Plain text, will be bcrypt-hashed)
        first_name / last_name: 이름 (Name)
        role: 역할 (admin | hr | manager | employee)
        department_id / team_id / manager_id: 조직 배치 (Org placement, optional)
    """

    email: Email
    password: str = Field(min_length=6, max_length=128)
    first_name: str = Field(min_length=1, max_length=100)
    last_name: str = Field(min_length=1, max_length=100)
    role: RoleName = "employee"
    department_id: UUID | None = None
    team_id: UUID | None = None
    manager_id: UUID | None = None


class UserUpdate(BaseModel):
    """사용자 수정 요청 스키마 (부분 업데이트).

    Partial user update. Users editing themselves may only change their
    names; admin/HR may change the org placement too.
    """

    first_name: str | None = Field(default=None, min_length=1, max_length=100)
    last_name: str | None = Field(default=None, min_length=1, max_length=100)
    department_id: UUID | None = None
    team_id: UUID | None = None


class RoleUpdate(BaseModel):
    """역할 변경 요청 스키마 — Admin-only role change."""

    role: RoleName


class ManagerAssign(BaseModel):
    """관리자 지정 요청 스키마 — ``null`` clears the manager."""

    manager_id: UUID | None = None


class PreferencesUpdate(BaseModel):
    """알림 설정 변경 요청 스키마 — Notification preference toggles."""

    email_notifications: bool | None = None
    weekly_reminders: bool | None = None
    deadline_alerts: bool | None = None


class UserResponse(ORMModel):
    """사용자 응답 스키마.

    User response schema. Never includes the password hash.
    """

    id: UUID
    email: str
    first_name: str
    last_name: str
    full_name: str
    role: str
    department_id: UUID | None
    team_id: UUID | None
    manager_id: UUID | None
    is_active: bool
    email_notifications: bool
    weekly_reminders: bool
    deadline_alerts: bool
    last_login_at: datetime | None
    created_at: datetime
