"""조직 서비스 — 부서 및 팀 관리 비즈니스 로직.

Organization Service — Department and team CRUD with unique names, and
the nested organization tree (departments → teams → members).
"""

from typing import Any, Sequence
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.models.organization import Department, Team
from app.repositories.organization_repository import department_repository, team_repository
from app.repositories.user_repository import user_repository
from app.schemas.organization import DepartmentCreate, DepartmentUpdate, TeamCreate, TeamUpdate
from app.utils.exceptions import BadRequestError, DuplicateError, NotFoundError


class OrganizationService:
    """부서/팀 서비스 — Department and team service."""

    # --- 부서 (Departments) ---

    async def list_departments(self, db: AsyncSession) -> Sequence[Department]:
        return await department_repository.get_all(db, order_by=Department.name)

    async def get_department(self, db: AsyncSession, department_id: UUID) -> Department:
        department = await department_repository.get_by_id(db, department_id)
        if department is None:
            raise NotFoundError("Department not found")
        return department

    async def create_department(self, db: AsyncSession, data: DepartmentCreate) -> Department:
        """부서 생성.

        Raises:
            DuplicateError: 같은 이름의 부서가 존재할 때 (Name already taken)
        """
        if await department_repository.get_by_name(db, data.name) is not None:
            raise DuplicateError("Department with this name already exists")
        if data.parent_id is not None:
            await self.get_department(db, data.parent_id)
        return await department_repository.create(db, data.model_dump())

    async def update_department(
        self, db: AsyncSession, department_id: UUID, data: DepartmentUpdate
    ) -> Department:
        department = await self.get_department(db, department_id)
        changes = data.model_dump(exclude_unset=True)
        if "name" in changes and changes["name"] != department.name:
            if await department_repository.get_by_name(db, changes["name"]) is not None:
                raise DuplicateError("Department with this name already exists")
        if changes.get("parent_id") == department.id:
            raise BadRequestError("A department cannot be its own parent")
        return await department_repository.update(db, department, changes)

    async def delete_department(self, db: AsyncSession, department_id: UUID) -> None:
        department = await self.get_department(db, department_id)
        await department_repository.delete(db, department)

    # --- 팀 (Teams) ---

    async def list_teams(self, db: AsyncSession, department_id: UUID | None = None) -> Sequence[Team]:
        return await team_repository.get_all(db, {"department_id": department_id}, order_by=Team.name)

    async def get_team(self, db: AsyncSession, team_id: UUID) -> Team:
        team = await team_repository.get_by_id(db, team_id)
        if team is None:
            raise NotFoundError("Team not found")
        return team

    async def create_team(self, db: AsyncSession, data: TeamCreate) -> Team:
        if await team_repository.get_by_name(db, data.name) is not None:
            raise DuplicateError("Team with this name already exists")
        if data.department_id is not None:
            await self.get_department(db, data.department_id)
        return await team_repository.create(db, data.model_dump())

    async def update_team(self, db: AsyncSession, team_id: UUID, data: TeamUpdate) -> Team:
        team = await self.get_team(db, team_id)
        changes = data.model_dump(exclude_unset=True)
        if "name" in changes and changes["name"] != team.name:
            if await team_repository.get_by_name(db, changes["name"]) is not None:
                raise DuplicateError("Team with this name already exists")
        if changes.get("department_id") is not None:
            await self.get_department(db, changes["department_id"])
        return await team_repository.update(db, team, changes)

    async def delete_team(self, db: AsyncSession, team_id: UUID) -> None:
        team = await self.get_team(db, team_id)
        await team_repository.delete(db, team)

    # --- 조직도 (Organization tree) ---

    async def get_tree(self, db: AsyncSession) -> list[dict[str, Any]]:
        """조직도 생성.

        Root departments with nested ``children`` (sub-departments) and
        ``teams``; every team lists its ``members``. A department whose
        parent no longer exists is treated as a root. Users without a team
        do not appear.
        """
        departments = await department_repository.get_all(db, order_by=Department.name)
        teams = await team_repository.get_all(db, order_by=Team.name)
        users = await user_repository.get_team_members(db)

        nodes: dict[UUID, dict[str, Any]] = {
            d.id: {
                "id": d.id,
                "name": d.name,
                "description": d.description,
                "parent_id": d.parent_id,
                "manager_id": d.manager_id,
                "children": [],
                "teams": [],
            }
            for d in departments
        }
        roots: list[dict[str, Any]] = []
        for department in departments:
            parent = nodes.get(department.parent_id) if department.parent_id else None
            if parent is not None and department.parent_id != department.id:
                parent["children"].append(nodes[department.id])
            else:
                roots.append(nodes[department.id])

        team_nodes: dict[UUID, dict[str, Any]] = {}
        for team in teams:
            node = {
                "id": team.id,
                "name": team.name,
                "description": team.description,
                "department_id": team.department_id,
                "lead_id": team.lead_id,
                "members": [],
            }
            team_nodes[team.id] = node
            if team.department_id in nodes:
                nodes[team.department_id]["teams"].append(node)

        for user in users:
            if user.team_id in team_nodes:
                team_nodes[user.team_id]["members"].append(user)
        return roots
