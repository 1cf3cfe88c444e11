"""FastAPI 의존성 주입 모듈 — 인증, 권한, 서비스 컨테이너.

FastAPI dependency injection module — Authentication, authorization and
access to the application's service container.

Authentication Flow:
    1. 클라이언트가 Authorization: Bearer <token> 헤더를 전송
       (Client sends Authorization: Bearer <token> header)
    2. HTTPBearer가 토큰을 추출 (HTTPBearer extracts the token)
    3. decode_token()이 JWT를 검증하고 페이로드를 반환
       (decode_token verifies JWT and returns payload)
    4. 페이로드의 "sub" 필드로 DB에서 사용자를 조회
       (User is fetched from DB using payload "sub" field)
    5. 사용자 활성 상태를 확인 (User active status is verified)

Authorization Flow (require_permission):
    1. get_current_user로 사용자 인증 (User authenticated via get_current_user)
    2. 정책 테이블에서 (resource, action) 허용 역할 확인
       (Role checked against the policy table)
    3. 허용되지 않으면 403 Forbidden 반환 (Returns 403 when denied)
"""

from typing import Annotated, Awaitable, Callable
from uuid import UUID

import jwt
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from app.container import Services
from app.database import get_db
from app.models.user import User
from app.repositories.user_repository import user_repository
from app.utils.jwt import decode_token
from app.utils.permissions import authorize

# HTTP Bearer 토큰 추출기 — auto_error=False로 401 응답을 직접 생성
# (Extracts the bearer token; missing credentials are turned into 401 below)
security: HTTPBearer = HTTPBearer(auto_error=False)


def get_services(request: Request) -> Services:
    """애플리케이션 서비스 컨테이너 — Service container attached to the app."""
    return request.app.state.services


async def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> User:
    """JWT 토큰에서 현재 인증된 사용자를 추출합니다.

    Decode JWT from the Authorization header and return the authenticated user.
    Validates token signature, expiration, and user existence/active status.

    Raises:
        HTTPException(401): 토큰 없음/무효/만료 (Missing, invalid or expired token)
        HTTPException(401): 사용자를 찾을 수 없거나 비활성 (User not found or inactive)
    """
    if credentials is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Access token required")
    try:
        payload: dict = decode_token(credentials.credentials)
        # 토큰 타입 검증 — Reject refresh tokens used as access tokens
        if payload.get("type") != "access":
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token type")
        user_id: str | None = payload.get("sub")
        if user_id is None:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")
        user_uuid = UUID(user_id)
    except HTTPException:
        raise
    except (jwt.InvalidTokenError, KeyError, ValueError):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid or expired token")

    user: User | None = await user_repository.get_by_id(db, user_uuid)
    if user is None or not user.is_active:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found or inactive")

    return user


def require_permission(resource: str, action: str) -> Callable[..., Awaitable[User]]:
    """정책 테이블 기반 권한 검사 의존성 팩토리.

    Dependency factory enforcing ``resource:action`` from the policy table.

    Returns:
        FastAPI 의존성 함수 — 인증된 사용자 반환 또는 403 발생
        (FastAPI dependency function that returns User or raises 403)
    """
    async def _check(
        current_user: Annotated[User, Depends(get_current_user)],
    ) -> User:
        authorize(current_user, resource, action)
        return current_user
    return _check

