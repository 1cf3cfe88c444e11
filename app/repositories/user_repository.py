"""사용자 레포지토리 — 사용자 조회 및 보고 라인 쿼리.

User Repository — User lookups, filtered listing and reporting-line
queries (direct reports of a manager).
"""

from typing import Sequence
from uuid import UUID

from sqlalchemy import Select, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.user import User
from app.repositories.base import BaseRepository


class UserRepository(BaseRepository[User]):
    """사용자 레포지토리.

    User repository with email lookup and manager-scoped queries.
    """

    def __init__(self) -> None:
        super().__init__(User)

    async def get_by_email(self, db: AsyncSession, email: str) -> User | None:
        """이메일로 사용자를 조회합니다 (대소문자 무시).

        Retrieve a user by email. Emails are stored lower-cased.
        """
        result = await db.execute(select(User).where(User.email == email.strip().lower()))
        return result.scalar_one_or_none()

    def build_list_query(
        self,
        role: str | None = None,
        department_id: UUID | None = None,
        team_id: UUID | None = None,
        manager_id: UUID | None = None,
        search: str | None = None,
        include_inactive: bool = False,
    ) -> Select:
        """사용자 목록 쿼리를 생성합니다.

        Build the user listing query.

        Args:
            role: 역할 필터 (Role filter)
            department_id: 부서 필터 (Department filter)
            team_id: 팀 필터 (Team filter)
            manager_id: 관리자 필터 — 직속 부하만 (Only direct reports of this manager)
            search: 이름/이메일 부분 검색 (Substring search on names and email)
            include_inactive: 비활성 사용자 포함 여부 (Include deactivated users)

        Returns:
            Select: 정렬된 사용자 쿼리 (Ordered user query)
        """
        query: Select = select(User)
        if not include_inactive:
            query = query.where(User.is_active.is_(True))
        if role is not None:
            query = query.where(User.role == role)
        if department_id is not None:
            query = query.where(User.department_id == department_id)
        if team_id is not None:
            query = query.where(User.team_id == team_id)
        if manager_id is not None:
            query = query.where(User.manager_id == manager_id)
        if search:
            pattern = f"%{search.strip()}%"
            query = query.where(
                or_(
                    User.first_name.ilike(pattern),
                    User.last_name.ilike(pattern),
                    User.email.ilike(pattern),
                )
            )
        return query.order_by(User.last_name, User.first_name)

    async def get_direct_reports(self, db: AsyncSession, manager_id: UUID) -> Sequence[User]:
        """직속 부하 목록 — Active users whose manager is ``manager_id``."""
        result = await db.execute(
            self.build_list_query(manager_id=manager_id)
        )
        return result.scalars().all()

    async def get_direct_report_ids(self, db: AsyncSession, manager_id: UUID) -> list[UUID]:
        result = await db.execute(
            select(User.id).where(User.manager_id == manager_id, User.is_active.is_(True))
        )
        return list(result.scalars().all())

    async def get_by_ids(self, db: AsyncSession, user_ids: list[UUID]) -> Sequence[User]:
        if not user_ids:
            return []
        result = await db.execute(select(User).where(User.id.in_(user_ids)))
        return result.scalars().all()

    async def get_active_users(self, db: AsyncSession) -> Sequence[User]:
        result = await db.execute(select(User).where(User.is_active.is_(True)))
        return result.scalars().all()

    async def get_team_members(self, db: AsyncSession) -> Sequence[User]:
        """팀 소속 사용자 — Users assigned to any team, ordered by name."""
        result = await db.execute(
            select(User).where(User.team_id.is_not(None)).order_by(User.last_name, User.first_name)
        )
        return result.scalars().all()


# 싱글턴 인스턴스 — Singleton instance
user_repository: UserRepository = UserRepository()
