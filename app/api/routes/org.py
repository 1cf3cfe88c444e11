"""조직도 라우터 — 부서 → 팀 → 구성원 트리.

Organization Chart Router. Admin, HR and managers may read the tree.
"""

from typing import Annotated, Any

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_services, require_permission
from app.container import Services
from app.database import get_db
from app.models.user import User
from app.schemas.common import dump_many, ok
from app.schemas.organization import OrgTreeDepartment

router: APIRouter = APIRouter()


@router.get("/tree")
async def get_org_tree(
    db: Annotated[AsyncSession, Depends(get_db)],
    services: Annotated[Services, Depends(get_services)],
    current_user: Annotated[User, Depends(require_permission("organization", "tree"))],
) -> dict[str, Any]:
    """조직도 조회 — Root departments with nested sub-departments, teams and members."""
    tree = await services.organization.get_tree(db)
    return ok(dump_many(OrgTreeDepartment, tree))
