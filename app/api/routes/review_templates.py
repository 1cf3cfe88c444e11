"""리뷰 템플릿 라우터 — 재사용 질문 관리.

Review Template Router — Everyone may read; admin and HR manage and
seed the default question set.
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
from app.schemas.review_cycle import ReviewType
from app.schemas.review_template import TemplateCategory, TemplateCreate, TemplateResponse, TemplateUpdate

router: APIRouter = APIRouter()


@router.get("")
async def list_templates(
    db: Annotated[AsyncSession, Depends(get_db)],
    services: Annotated[Services, Depends(get_services)],
    current_user: Annotated[User, Depends(require_permission("review_templates", "read"))],
    category: Annotated[TemplateCategory | None, Query()] = None,
    review_type: Annotated[ReviewType | None, Query(description="리뷰 유형별 질문")] = None,
) -> dict[str, Any]:
    templates = await services.templates.list_templates(db, category, review_type)
    return ok(dump_many(TemplateResponse, templates))


@router.post("/seed", status_code=201)
async def seed_templates(
    db: Annotated[AsyncSession, Depends(get_db)],
    services: Annotated[Services, Depends(get_services)],
    current_user: Annotated[User, Depends(require_permission("review_templates", "manage"))],
) -> dict[str, Any]:
    """기본 템플릿 초기화 — 템플릿이 이미 있으면 400."""
    templates = await services.templates.seed_defaults(db, current_user)
    await db.commit()
    return ok(dump_many(TemplateResponse, templates), f"{len(templates)} templates created")


@router.get("/{template_id}")
async def get_template(
    template_id: UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    services: Annotated[Services, Depends(get_services)],
    current_user: Annotated[User, Depends(require_permission("review_templates", "read"))],
) -> dict[str, Any]:
    template = await services.templates.get_template(db, template_id)
    return ok(dump(TemplateResponse, template))


@router.post("", status_code=201)
async def create_template(
    data: TemplateCreate,
    db: Annotated[AsyncSession, Depends(get_db)],
    services: Annotated[Services, Depends(get_services)],
    current_user: Annotated[User, Depends(require_permission("review_templates", "manage"))],
) -> dict[str, Any]:
    template = await services.templates.create_template(db, current_user, data)
    await db.commit()
    return ok(dump(TemplateResponse, template), "Template created successfully")


@router.put("/{template_id}")
async def update_template(
    template_id: UUID,
    data: TemplateUpdate,
    db: Annotated[AsyncSession, Depends(get_db)],
    services: Annotated[Services, Depends(get_services)],
    current_user: Annotated[User, Depends(require_permission("review_templates", "manage"))],
) -> dict[str, Any]:
    template = await services.templates.update_template(db, template_id, data)
    await db.commit()
    return ok(dump(TemplateResponse, template), "Template updated successfully")


@router.delete("/{template_id}")
async def delete_template(
    template_id: UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    services: Annotated[Services, Depends(get_services)],
    current_user: Annotated[User, Depends(require_permission("review_templates", "manage"))],
) -> dict[str, Any]:
    await services.templates.delete_template(db, template_id)
    await db.commit()
    return ok(None, "Template deactivated successfully")
