"""조직 구조 관련 SQLAlchemy ORM 모델 정의.

Organization structure SQLAlchemy ORM model definitions.

Tables:
    - departments: 부서 (Departments, optionally nested via parent_id)
    - teams: 팀 (Teams belonging to a department, with an optional lead)
"""

import uuid
from datetime import datetime

from sqlalchemy import ForeignKey, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base, UTCDateTime, utcnow


class Department(Base):
    """부서 모델 — 이름이 고유한 조직 단위.

    Department model — A uniquely named organizational unit.

    Attributes:
        id: 고유 식별자 UUID (Unique identifier)
        name: 부서명 (Unique department name)
        description: 설명 (Free-form description)
        parent_id: 상위 부서 FK (Parent department, optional)
        manager_id: 부서장 FK (Department head, optional)
    """

    __tablename__ = "departments"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    parent_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("departments.id", ondelete="SET NULL"), nullable=True
    )
    # users ↔ departments 순환 참조 — use_alter로 FK를 나중에 생성 (circular FK created after both tables)
    manager_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL", use_alter=True), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow, onupdate=utcnow)


class Team(Base):
    """팀 모델 — 부서에 속한 팀.

    Team model — A team inside a department with an optional lead user.
    """

    __tablename__ = "teams"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    department_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("departments.id", ondelete="SET NULL"), nullable=True
    )
    lead_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL", use_alter=True), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow, onupdate=utcnow)
