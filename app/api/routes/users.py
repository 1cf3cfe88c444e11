"""사용자 라우터 — 사용자 조회, 생성, 수정, 역할/관리자 지정.

User Router — Listing (managers see their direct reports only), detail,
creation, self/admin updates, role changes, manager assignment and
deactivation.
"""

from typing import Annotated, Any
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_user, get_services, require_permission
from app.container import Services
from app.database import get_db
from app.models.user import User
from app.schemas.common import dump, dump_many, ok
from app.schemas.user import ManagerAssign, RoleName, RoleUpdate, UserCreate, UserResponse, UserUpdate
from app.utils.pagination import PageParams, build_page, page_params

router: APIRouter = APIRouter()


@router.get("")
async def list_users(
    db: Annotated[AsyncSession, Depends(get_db)],
    services: Annotated[Services, Depends(get_services)],
    current_user: Annotated[User, Depends(require_permission("users", "list"))],
    params: Annotated[PageParams, Depends(page_params)],
    role: Annotated[RoleName | None, Query(description="역할 필터")] = None,
    department_id: Annotated[UUID | None, Query(description="부서 필터")] = None,
    team_id: Annotated[UUID | None, Query(description="팀 필터")] = None,
    search: Annotated[str | None, Query(max_length=100, description="이름/이메일 검색")] = None,
    include_inactive: bool = False,
) -> dict[str, Any]:
    """사용자 목록을 필터 조건으로 조회합니다.

    List users. Managers only ever see their direct reports.
    """
    users, total = await services.users.list_users(
        db, current_user, params, role, department_id, team_id, search, include_inactive
    )
    return ok(build_page(dump_many(UserResponse, users), total, params))


@router.post("", status_code=201)
async def create_user(
    data: UserCreate,
    db: Annotated[AsyncSession, Depends(get_db)],
    services: Annotated[Services, Depends(get_services)],
    current_user: Annotated[User, Depends(require_permission("users", "create"))],
) -> dict[str, Any]:
    user = await services.users.create_user(db, data)
    await db.commit()
    return ok(dump(UserResponse, user), "User created successfully")


@router.get("/{user_id}")
async def get_user(
    user_id: UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    services: Annotated[Services, Depends(get_services)],
    current_user: Annotated[User, Depends(get_current_user)],
) -> dict[str, Any]:
    user = await services.users.get_visible_user(db, current_user, user_id)
    return ok(dump(UserResponse, user))


@router.patch("/{user_id}")
async def update_user(
    user_id: UUID,
    data: UserUpdate,
    db: Annotated[AsyncSession, Depends(get_db)],
    services: Annotated[Services, Depends(get_services)],
    current_user: Annotated[User, Depends(get_current_user)],
) -> dict[str, Any]:
    """사용자 수정 — 본인은 이름만, 관리자/HR은 전체.

    Update a user. People may change their own names; everything else
    needs admin or HR.
    """
    user = await services.users.update_user(db, current_user, user_id, data)
    await db.commit()
    return ok(dump(UserResponse, user), "User updated successfully")


@router.patch("/{user_id}/role")
async def change_role(
    user_id: UUID,
    data: RoleUpdate,
    db: Annotated[AsyncSession, Depends(get_db)],
    services: Annotated[Services, Depends(get_services)],
    current_user: Annotated[User, Depends(require_permission("users", "change_role"))],
) -> dict[str, Any]:
    user = await services.users.change_role(db, current_user, user_id, data.role)
    await db.commit()
    return ok(dump(UserResponse, user), "Role updated successfully")


@router.patch("/{user_id}/manager")
async def assign_manager(
    user_id: UUID,
    data: ManagerAssign,
    db: Annotated[AsyncSession, Depends(get_db)],
    services: Annotated[Services, Depends(get_services)],
    current_user: Annotated[User, Depends(require_permission("users", "assign_manager"))],
) -> dict[str, Any]:
    user = await services.users.assign_manager(db, user_id, data.manager_id)
    await db.commit()
    return ok(dump(UserResponse, user), "Manager assigned successfully")


@router.delete("/{user_id}")
async def deactivate_user(
    user_id: UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    services: Annotated[Services, Depends(get_services)],
    current_user: Annotated[User, Depends(require_permission("users", "deactivate"))],
) -> dict[str, Any]:
    """사용자 비활성화 (소프트 삭제) — Accounts are deactivated, never removed."""
    user = await services.users.deactivate(db, current_user, user_id)
    await db.commit()
    return ok(dump(UserResponse, user), "User deactivated successfully")


@router.get("/{user_id}/reports")
async def get_direct_reports(
    user_id: UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    services: Annotated[Services, Depends(get_services)],
    current_user: Annotated[User, Depends(get_current_user)],
) -> dict[str, Any]:
    reports = await services.users.get_direct_reports(db, current_user, user_id)
    return ok(dump_many(UserResponse, reports))
