"""조직 레포지토리 — 부서 및 팀 쿼리.

Organization Repository — Department and team queries.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.organization import Department, Team
from app.repositories.base import BaseRepository


class DepartmentRepository(BaseRepository[Department]):
    """부서 레포지토리 — Department repository."""

    def __init__(self) -> None:
        super().__init__(Department)

    async def get_by_name(self, db: AsyncSession, name: str) -> Department | None:
        result = await db.execute(select(Department).where(Department.name == name))
        return result.scalar_one_or_none()


class TeamRepository(BaseRepository[Team]):
    """팀 레포지토리 — Team repository."""

    def __init__(self) -> None:
        super().__init__(Team)

    async def get_by_name(self, db: AsyncSession, name: str) -> Team | None:
        result = await db.execute(select(Team).where(Team.name == name))
        return result.scalar_one_or_none()


# 싱글턴 인스턴스 — Singleton instances
department_repository: DepartmentRepository = DepartmentRepository()
team_repository: TeamRepository = TeamRepository()
