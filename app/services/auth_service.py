"""인증 서비스 — 회원가입, 로그인, 토큰 갱신 비즈니스 로직.

Auth Service — Business logic for registration, login, token refresh
and logout. Refresh tokens are persisted so they can be rotated on
refresh and revoked on logout.
"""

import logging
from datetime import datetime, timedelta, timezone
from uuid import UUID

import jwt
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.models.user import User
from app.repositories.auth_repository import auth_repository
from app.repositories.user_repository import user_repository
from app.schemas.auth import LoginRequest, RefreshRequest, RegisterRequest, TokenResponse
from app.utils.exceptions import DuplicateError, UnauthorizedError
from app.utils.jwt import create_access_token, create_refresh_token, decode_token
from app.utils.log import security_logger
from app.utils.password import hash_password, verify_password

logger = logging.getLogger(__name__)


class AuthService:
    """인증 관련 비즈니스 로직을 처리하는 서비스.

    Service handling authentication business logic.
    """

    def _build_jwt_payload(self, user: User) -> dict[str, str]:
        return {"sub": str(user.id), "role": user.role}

    async def _generate_tokens(self, db: AsyncSession, user: User) -> TokenResponse:
        """액세스 토큰과 리프레시 토큰을 생성합니다.

        Generate an access/refresh token pair and persist the refresh token.
        Older refresh tokens of the user are dropped so only the latest
        session stays valid.
        """
        payload = self._build_jwt_payload(user)
        access_token: str = create_access_token(payload)
        refresh_token: str = create_refresh_token(payload)

        # 기존 리프레시 토큰 정리 — Clean up old refresh tokens
        await auth_repository.delete_user_refresh_tokens(db, user.id)

        expires_at: datetime = datetime.now(timezone.utc) + timedelta(
            days=settings.JWT_REFRESH_TOKEN_EXPIRE_DAYS
        )
        await auth_repository.create_refresh_token(
            db, user_id=user.id, token=refresh_token, expires_at=expires_at
        )
        return TokenResponse(access_token=access_token, refresh_token=refresh_token)

    async def register(self, db: AsyncSession, data: RegisterRequest) -> tuple[User, TokenResponse]:
        """회원가입 — 항상 employee 역할로 생성합니다.

        Register a new account with the ``employee`` role.

        Raises:
            DuplicateError: 같은 이메일이 이미 존재할 때 (Email already registered)
        """
        if await user_repository.get_by_email(db, data.email) is not None:
            raise DuplicateError("User with this email already exists")

        user: User = await user_repository.create(
            db,
            {
                "email": data.email,
                "password_hash": hash_password(data.password),
                "first_name": data.first_name.strip(),
                "last_name": data.last_name.strip(),
                "role": "employee",
            },
        )
        logger.info("User registered", extra={"user_id": str(user.id)})
        return user, await self._generate_tokens(db, user)

    async def login(self, db: AsyncSession, data: LoginRequest) -> tuple[User, TokenResponse]:
        """로그인 — 성공 시 last_login_at을 갱신합니다.

        Raises:
            UnauthorizedError: 잘못된 인증 정보 또는 비활성 계정
                               (Invalid credentials or deactivated account)
        """
        user: User | None = await user_repository.get_by_email(db, data.email)
        if user is None or not verify_password(data.password, user.password_hash):
            security_logger.warning("Login failed", extra={"email": data.email})
            raise UnauthorizedError("Invalid email or password")
        if not user.is_active:
            security_logger.warning("Login to deactivated account", extra={"user_id": str(user.id)})
            raise UnauthorizedError("Account is deactivated")

        user.last_login_at = datetime.now(timezone.utc)
        tokens = await self._generate_tokens(db, user)
        return user, tokens

    async def refresh_tokens(self, db: AsyncSession, data: RefreshRequest) -> TokenResponse:
        """리프레시 토큰으로 새 토큰 쌍을 발급합니다.

        Issue a new token pair using a stored, unexpired refresh token.

        Raises:
            UnauthorizedError: 유효하지 않거나 만료된 리프레시 토큰
                               (Invalid or expired refresh token)
        """
        db_token = await auth_repository.get_refresh_token(db, data.refresh_token)
        if db_token is None:
            raise UnauthorizedError("Invalid refresh token")

        if db_token.expires_at < datetime.now(timezone.utc):
            await auth_repository.delete_refresh_token(db, data.refresh_token)
            raise UnauthorizedError("Refresh token has expired")

        try:
            payload: dict = decode_token(data.refresh_token)
        except jwt.InvalidTokenError:
            await auth_repository.delete_refresh_token(db, data.refresh_token)
            raise UnauthorizedError("Invalid refresh token")
        if payload.get("type") != "refresh":
            raise UnauthorizedError("Invalid token type")

        user: User | None = await user_repository.get_by_id(db, UUID(payload["sub"]))
        if user is None or not user.is_active:
            raise UnauthorizedError("User not found or inactive")

        await auth_repository.delete_refresh_token(db, data.refresh_token)
        return await self._generate_tokens(db, user)

    async def logout(self, db: AsyncSession, refresh_token: str) -> None:
        """로그아웃 처리 — 리프레시 토큰을 삭제합니다."""
        await auth_repository.delete_refresh_token(db, refresh_token)
