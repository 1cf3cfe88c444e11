"""부서 라우터 — 부서 조회 및 관리.

Department Router — Everyone may read; admin and HR manage.
"""

from typing import Annotated, Any
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_services, require_permission
from app.container import Services
from app.database import get_db
from app.models.user import User
from app.schemas.common import dump, dump_many, ok
from app.schemas.organization import DepartmentCreate, DepartmentResponse, DepartmentUpdate

router: APIRouter = APIRouter()


@router.get("")
async def list_departments(
    db: Annotated[AsyncSession, Depends(get_db)],
    services: Annotated[Services, Depends(get_services)],
    current_user: Annotated[User, Depends(require_permission("departments", "read"))],
) -> dict[str, Any]:
    departments = await services.organization.list_departments(db)
    return ok(dump_many(DepartmentResponse, departments))


@router.get("/{department_id}")
async def get_department(
    department_id: UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    services: Annotated[Services, Depends(get_services)],
    current_user: Annotated[User, Depends(require_permission("departments", "read"))],
) -> dict[str, Any]:
    department = await services.organization.get_department(db, department_id)
    return ok(dump(DepartmentResponse, department))


@router.post("", status_code=201)
async def create_department(
    data: DepartmentCreate,
    db: Annotated[AsyncSession, Depends(get_db)],
    services: Annotated[Services, Depends(get_services)],
    current_user: Annotated[User, Depends(require_permission("departments", "manage"))],
) -> dict[str, Any]:
    """부서 생성 — 이름이 중복되면 409."""
    department = await services.organization.create_department(db, data)
    await db.commit()
    return ok(dump(DepartmentResponse, department), "Department created successfully")


@router.put("/{department_id}")
async def update_department(
    department_id: UUID,
    data: DepartmentUpdate,
    db: Annotated[AsyncSession, Depends(get_db)],
    services: Annotated[Services, Depends(get_services)],
    current_user: Annotated[User, Depends(require_permission("departments", "manage"))],
) -> dict[str, Any]:
    department = await services.organization.update_department(db, department_id, data)
    await db.commit()
    return ok(dump(DepartmentResponse, department), "Department updated successfully")


@router.delete("/{department_id}")
async def delete_department(
    department_id: UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    services: Annotated[Services, Depends(get_services)],
    current_user: Annotated[User, Depends(require_permission("departments", "manage"))],
) -> dict[str, Any]:
    await services.organization.delete_department(db, department_id)
    await db.commit()
    return ok(None, "Department deleted successfully")
