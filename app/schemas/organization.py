"""부서 및 팀 Pydantic 스키마 정의.

Department and team Pydantic request/response schema definitions.
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from app.schemas.common import ORMModel


class DepartmentCreate(BaseModel):
    """부서 생성 요청 스키마 — Department names are unique."""

    name: str = Field(min_length=2, max_length=100)
    description: str | None = None
    parent_id: UUID | None = None
    manager_id: UUID | None = None


class DepartmentUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=2, max_length=100)
    description: str | None = None
    parent_id: UUID | None = None
    manager_id: UUID | None = None


class DepartmentResponse(ORMModel):
    id: UUID
    name: str
    description: str | None
    parent_id: UUID | None
    manager_id: UUID | None
    created_at: datetime


class TeamCreate(BaseModel):
    """팀 생성 요청 스키마 — Team names are unique."""

    name: str = Field(min_length=2, max_length=100)
    description: str | None = None
    department_id: UUID | None = None
    lead_id: UUID | None = None


class TeamUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=2, max_length=100)
    description: str | None = None
    department_id: UUID | None = None
    lead_id: UUID | None = None


class TeamResponse(ORMModel):
    id: UUID
    name: str
    description: str | None
    department_id: UUID | None
    lead_id: UUID | None
    created_at: datetime


class OrgTreeMember(ORMModel):
    id: UUID
    email: str
    first_name: str
    last_name: str
    role: str
    is_active: bool


class OrgTreeTeam(ORMModel):
    id: UUID
    name: str
    description: str | None
    department_id: UUID | None
    lead_id: UUID | None
    members: list[OrgTreeMember]


class OrgTreeDepartment(ORMModel):
    """조직도 노드 — Department with nested sub-departments and teams."""

    id: UUID
    name: str
    description: str | None
    parent_id: UUID | None
    manager_id: UUID | None
    children: list["OrgTreeDepartment"]
    teams: list[OrgTreeTeam]
