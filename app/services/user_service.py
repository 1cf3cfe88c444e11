"""사용자 서비스 — 사용자 관리 비즈니스 로직.

User Service — Business logic for user management: listing scoped by
role, creation by admin/HR, profile updates, role changes, manager
assignment and deactivation. Users are never hard-deleted.
"""

import logging
from typing import Any, Sequence
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.models.user import User
from app.repositories.auth_repository import auth_repository
from app.repositories.organization_repository import department_repository, team_repository
from app.repositories.user_repository import user_repository
from app.schemas.user import UserCreate, UserUpdate
from app.utils.exceptions import BadRequestError, DuplicateError, NotFoundError
from app.utils.pagination import PageParams
from app.utils.password import hash_password
from app.utils.permissions import authorize, is_allowed

logger = logging.getLogger(__name__)


class UserService:
    """사용자 서비스.

    User service. Managers only ever see themselves and their direct
    reports; admin/HR see everyone.
    """

    async def get_user(self, db: AsyncSession, user_id: UUID) -> User:
        user = await user_repository.get_by_id(db, user_id)
        if user is None:
            raise NotFoundError("User not found")
        return user

    async def list_users(
        self,
        db: AsyncSession,
        actor: User,
        params: PageParams,
        role: str | None = None,
        department_id: UUID | None = None,
        team_id: UUID | None = None,
        search: str | None = None,
        include_inactive: bool = False,
    ) -> tuple[Sequence[User], int]:
        """사용자 목록 — 관리자는 직속 부하만 조회합니다.

        List users. Admin/HR see everyone; managers see only their direct
        reports.
        """
        manager_id = None if is_allowed(actor.role, "users", "read_any") else actor.id
        query = user_repository.build_list_query(
            role=role,
            department_id=department_id,
            team_id=team_id,
            manager_id=manager_id,
            search=search,
            include_inactive=include_inactive and manager_id is None,
        )
        return await user_repository.get_paginated(db, query, params.page, params.limit)

    async def get_visible_user(self, db: AsyncSession, actor: User, user_id: UUID) -> User:
        """조회 권한 확인 후 사용자 반환 — self, direct report or admin/HR."""
        user = await self.get_user(db, user_id)
        if user.id == actor.id or user.manager_id == actor.id:
            return user
        authorize(actor, "users", "read_any", "You can only view yourself and your direct reports")
        return user

    async def create_user(self, db: AsyncSession, data: UserCreate) -> User:
        """사용자 생성 (관리자/HR).

        Raises:
            DuplicateError: 이메일 중복 (Email already in use)
            BadRequestError: 존재하지 않는 부서/팀/관리자 참조 (Unknown reference)
        """
        if await user_repository.get_by_email(db, data.email) is not None:
            raise DuplicateError("User with this email already exists")
        await self._check_references(db, data.department_id, data.team_id, data.manager_id)

        fields: dict[str, Any] = data.model_dump(exclude={"password"})
        fields["password_hash"] = hash_password(data.password)
        user = await user_repository.create(db, fields)
        logger.info("User created", extra={"user_id": str(user.id), "role": user.role})
        return user

    async def update_user(self, db: AsyncSession, actor: User, user_id: UUID, data: UserUpdate) -> User:
        """사용자 수정 — 본인은 이름만, 관리자/HR은 조직 배치까지.

        Update a user. People editing themselves may change their names only;
        admin/HR may also move the user between departments and teams.
        """
        user = await self.get_user(db, user_id)
        changes = data.model_dump(exclude_unset=True)
        if actor.id != user.id or not {"department_id", "team_id"}.isdisjoint(changes):
            authorize(actor, "users", "update_any", "You can only update your own name")
        await self._check_references(db, changes.get("department_id"), changes.get("team_id"), None)
        return await user_repository.update(db, user, changes)

    async def change_role(self, db: AsyncSession, actor: User, user_id: UUID, role: str) -> User:
        user = await self.get_user(db, user_id)
        if user.id == actor.id:
            raise BadRequestError("You cannot change your own role")
        logger.info("Role changed", extra={"user_id": str(user.id), "from": user.role, "to": role})
        return await user_repository.update(db, user, {"role": role})

    async def assign_manager(self, db: AsyncSession, user_id: UUID, manager_id: UUID | None) -> User:
        """관리자 지정 — 자기 자신이나 순환 보고 라인은 거부합니다.

        Assign (or clear) a user's manager. Rejects self-management and
        reporting cycles.
        """
        user = await self.get_user(db, user_id)
        if manager_id is not None:
            if manager_id == user.id:
                raise BadRequestError("A user cannot be their own manager")
            manager = await self.get_user(db, manager_id)
            if not manager.is_active:
                raise BadRequestError("Manager must be an active user")
            # 보고 라인 순환 검사 — Walk up from the new manager
            cursor: User | None = manager
            while cursor is not None and cursor.manager_id is not None:
                if cursor.manager_id == user.id:
                    raise BadRequestError("Manager assignment would create a reporting cycle")
                cursor = await user_repository.get_by_id(db, cursor.manager_id)
        return await user_repository.update(db, user, {"manager_id": manager_id})

    async def deactivate(self, db: AsyncSession, actor: User, user_id: UUID) -> User:
        """계정 비활성화 — 리프레시 토큰도 모두 폐기합니다.

        Deactivate an account and revoke its refresh tokens, so no new access
        token can be issued for it.
        """
        user = await self.get_user(db, user_id)
        if user.id == actor.id:
            raise BadRequestError("You cannot deactivate your own account")
        await auth_repository.delete_user_refresh_tokens(db, user.id)
        return await user_repository.update(db, user, {"is_active": False})

    async def get_direct_reports(self, db: AsyncSession, actor: User, user_id: UUID) -> Sequence[User]:
        if user_id != actor.id:
            authorize(actor, "users", "read_any", "You can only list your own direct reports")
        await self.get_user(db, user_id)
        return await user_repository.get_direct_reports(db, user_id)

    async def _check_references(
        self,
        db: AsyncSession,
        department_id: UUID | None,
        team_id: UUID | None,
        manager_id: UUID | None,
    ) -> None:
        if department_id is not None and await department_repository.get_by_id(db, department_id) is None:
            raise BadRequestError("Department not found")
        if team_id is not None and await team_repository.get_by_id(db, team_id) is None:
            raise BadRequestError("Team not found")
        if manager_id is not None:
            manager = await user_repository.get_by_id(db, manager_id)
            if manager is None or not manager.is_active:
                raise BadRequestError("Manager not found")
