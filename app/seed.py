"""초기 데이터 시드 스크립트 — 관리자 계정, 기본 리뷰 템플릿 생성.

Seed script — Creates the first admin account and the default review
templates. Registration always creates employees, so this is how a new
installation gets its first admin.

Usage:
    python -m app.seed

Creates:
    - 1개 관리자 계정: SEED_ADMIN_EMAIL / SEED_ADMIN_PASSWORD (1 admin user)
    - 기본 리뷰 템플릿 10개 (The default review question set)
"""

import asyncio

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.config import settings
from app.database import async_session, create_tables
from app.models import ReviewTemplate, User
from app.services.review_template_service import default_template_rows
from app.utils.password import hash_password


async def seed(
    session_factory: async_sessionmaker[AsyncSession] = async_session,
    admin_email: str = settings.SEED_ADMIN_EMAIL,
    admin_password: str = settings.SEED_ADMIN_PASSWORD,
    create_schema: bool = True,
) -> dict[str, int]:
    """데이터베이스를 초기 데이터로 시드합니다.

    Idempotent: 이미 관리자가 있으면 계정 생성을, 템플릿이 있으면 템플릿
    생성을 건너뜁니다 (Each part is skipped when already present).

    Returns:
        dict: 생성된 관리자/템플릿 수 (Number of admins and templates created)
    """
    if create_schema:
        await create_tables()

    created = {"admins": 0, "templates": 0}
    async with session_factory() as db:
        result = await db.execute(select(User).where(User.role == "admin").limit(1))
        admin: User | None = result.scalar_one_or_none()
        if admin is None:
            admin = User(
                email=admin_email.lower(),
                password_hash=hash_password(admin_password),
                first_name="System",
                last_name="Admin",
                role="admin",
                is_active=True,
            )
            db.add(admin)
            await db.flush()  # flush로 admin.id 생성 (Flush to generate admin.id)
            created["admins"] = 1

        result = await db.execute(select(ReviewTemplate.id).limit(1))
        if result.scalar_one_or_none() is None:
            for row in default_template_rows(admin.id):
                db.add(ReviewTemplate(**row))
                created["templates"] += 1

        await db.commit()
    return created


if __name__ == "__main__":
    summary = asyncio.run(seed())
    print(f"Seeded: admins={summary['admins']}, templates={summary['templates']}")
