"""팀 라우터 — 팀 조회 및 관리.

Team Router — Everyone may read (optionally per department); admin and
HR manage.
"""

from typing import Annotated, Any
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_services, require_permission
from app.container import Services
from app.database import get_db
from app.models.user import User
from app.schemas.common import dump, dump_many, ok
from app.schemas.organization import TeamCreate, TeamResponse, TeamUpdate

router: APIRouter = APIRouter()


@router.get("")
async def list_teams(
    db: Annotated[AsyncSession, Depends(get_db)],
    services: Annotated[Services, Depends(get_services)],
    current_user: Annotated[User, Depends(require_permission("teams", "read"))],
    department_id: Annotated[UUID | None, Query(description="부서 필터")] = None,
) -> dict[str, Any]:
    teams = await services.organization.list_teams(db, department_id)
    return ok(dump_many(TeamResponse, teams))


@router.get("/{team_id}")
async def get_team(
    team_id: UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    services: Annotated[Services, Depends(get_services)],
    current_user: Annotated[User, Depends(require_permission("teams", "read"))],
) -> dict[str, Any]:
    team = await services.organization.get_team(db, team_id)
    return ok(dump(TeamResponse, team))


@router.post("", status_code=201)
async def create_team(
    data: TeamCreate,
    db: Annotated[AsyncSession, Depends(get_db)],
    services: Annotated[Services, Depends(get_services)],
    current_user: Annotated[User, Depends(require_permission("teams", "manage"))],
) -> dict[str, Any]:
    team = await services.organization.create_team(db, data)
    await db.commit()
    return ok(dump(TeamResponse, team), "Team created successfully")


@router.put("/{team_id}")
async def update_team(
    team_id: UUID,
    data: TeamUpdate,
    db: Annotated[AsyncSession, Depends(get_db)],
    services: Annotated[Services, Depends(get_services)],
    current_user: Annotated[User, Depends(require_permission("teams", "manage"))],
) -> dict[str, Any]:
    team = await services.organization.update_team(db, team_id, data)
    await db.commit()
    return ok(dump(TeamResponse, team), "Team updated successfully")


@router.delete("/{team_id}")
async def delete_team(
    team_id: UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    services: Annotated[Services, Depends(get_services)],
    current_user: Annotated[User, Depends(require_permission("teams", "manage"))],
) -> dict[str, Any]:
    await services.organization.delete_team(db, team_id)
    await db.commit()
    return ok(None, "Team deleted successfully")
