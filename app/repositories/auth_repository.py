"""인증 레포지토리 — 리프레시 토큰 저장, 회전, 폐기.

Auth Repository — Refresh tokens are stored on issue, looked up and
deleted on rotation or logout, and dropped wholesale when an account is
deactivated.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.token import RefreshToken


class AuthRepository:
    """리프레시 토큰 레포지토리 — Refresh token persistence."""

    async def create_refresh_token(
        self,
        db: AsyncSession,
        user_id: UUID,
        token: str,
        expires_at: datetime,
    ) -> RefreshToken:
        db_token = RefreshToken(user_id=user_id, token=token, expires_at=expires_at)
        db.add(db_token)
        await db.flush()
        return db_token

    async def get_refresh_token(self, db: AsyncSession, token: str) -> RefreshToken | None:
        result = await db.execute(select(RefreshToken).where(RefreshToken.token == token))
        return result.scalar_one_or_none()

    async def delete_refresh_token(self, db: AsyncSession, token: str) -> bool:
        """토큰 삭제 — ``False`` when the token was never issued or is already gone."""
        db_token = await self.get_refresh_token(db, token)
        if db_token is None:
            return False
        await db.delete(db_token)
        await db.flush()
        return True

    async def delete_user_refresh_tokens(self, db: AsyncSession, user_id: UUID) -> None:
        """사용자 전체 세션 종료 — Revoke every refresh token of one user."""
        await db.execute(delete(RefreshToken).where(RefreshToken.user_id == user_id))
        await db.flush()


# 싱글턴 인스턴스 — Singleton instance
auth_repository: AuthRepository = AuthRepository()
