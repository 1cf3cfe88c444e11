"""사용자 관련 SQLAlchemy ORM 모델 정의.

User SQLAlchemy ORM model definitions.
Roles are a fixed set of names (admin, hr, manager, employee); what each
role may do lives in the policy table in ``app/utils/permissions.py``.

Tables:
    - users: 사용자 계정 (User accounts with role, org placement and manager link)
"""

import uuid
from datetime import datetime

from sqlalchemy import Boolean, ForeignKey, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base, UTCDateTime, utcnow

# 역할 이름 — Role names, highest authority first
ROLES: tuple[str, ...] = ("admin", "hr", "manager", "employee")


class User(Base):
    """사용자 모델 — 시스템 사용자 계정 정보.

    User model — System user account information.
    Users form a reporting tree through ``manager_id``. Accounts are never
    hard-deleted; deactivation sets ``is_active`` to False.

    Attributes:
        id: 고유 식별자 UUID (Unique identifier)
        email: 로그인 이메일 (Login email, globally unique)
        password_hash: bcrypt 해시된 비밀번호 (bcrypt-hashed password)
        first_name / last_name: 이름 (Given and family name)
        role: 역할 이름 (admin | hr | manager | employee)
        department_id: 소속 부서 FK (Department, optional)
        team_id: 소속 팀 FK (Team, optional)
        manager_id: 상위 관리자 FK (Direct manager, optional)
        is_active: 활성 상태 (Active status, soft-delete pattern)
        email_notifications / weekly_reminders / deadline_alerts:
            알림 수신 설정 (Notification preferences)
        last_login_at: 마지막 로그인 (Last successful login)
    """

    __tablename__ = "users"

    # 사용자 고유 식별자 — User unique identifier (UUID v4, auto-generated)
    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    # 로그인 이메일 — 소문자로 정규화하여 저장 (stored lower-cased)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    # 비밀번호 해시 — bcrypt hashed password (평문 저장 금지, never store plaintext)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    # 역할 — admin | hr | manager | employee
    role: Mapped[str] = mapped_column(String(20), nullable=False, default="employee")
    department_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("departments.id", ondelete="SET NULL"), nullable=True
    )
    team_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("teams.id", ondelete="SET NULL"), nullable=True
    )
    # 직속 관리자 — Self-referential reporting line
    manager_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    # 알림 설정 — Notification preferences
    email_notifications: Mapped[bool] = mapped_column(Boolean, default=True)
    weekly_reminders: Mapped[bool] = mapped_column(Boolean, default=True)
    deadline_alerts: Mapped[bool] = mapped_column(Boolean, default=True)
    last_login_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow, onupdate=utcnow)

    # 관계 — Relationships
    manager = relationship("User", remote_side="User.id", foreign_keys=[manager_id], lazy="raise")
    department = relationship("Department", foreign_keys=[department_id], lazy="raise")
    team = relationship("Team", foreign_keys=[team_id], lazy="raise")

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"
