"""인증 라우터 — 회원가입, 로그인, 토큰 갱신, 로그아웃, 프로필.

Auth Router — Registration, login, token refresh, logout and the
profile of the current user. Everything except ``/me`` is public.
"""

from typing import Annotated, Any

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_user, get_services
from app.container import Services
from app.database import get_db
from app.models.user import User
from app.schemas.auth import LoginRequest, RefreshRequest, RegisterRequest
from app.schemas.common import dump, ok
from app.schemas.user import UserResponse

router: APIRouter = APIRouter()


@router.post("/register", status_code=201)
async def register(
    data: RegisterRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
    services: Annotated[Services, Depends(get_services)],
) -> dict[str, Any]:
    """회원가입 — 직원(employee) 역할로 계정을 생성하고 토큰을 발급합니다.

    Register an employee account and return it with a token pair.
    """
    user, tokens = await services.auth.register(db, data)
    await db.commit()
    return ok({"user": dump(UserResponse, user), **tokens.model_dump()}, "User registered successfully")


@router.post("/login")
async def login(
    data: LoginRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
    services: Annotated[Services, Depends(get_services)],
) -> dict[str, Any]:
    """로그인 — Email/password login returning the user and a token pair."""
    user, tokens = await services.auth.login(db, data)
    await db.commit()
    return ok({"user": dump(UserResponse, user), **tokens.model_dump()}, "Login successful")


@router.post("/refresh")
async def refresh_token(
    data: RefreshRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
    services: Annotated[Services, Depends(get_services)],
) -> dict[str, Any]:
    """토큰 갱신 — 리프레시 토큰으로 새 토큰 쌍 발급."""
    tokens = await services.auth.refresh_tokens(db, data)
    await db.commit()
    return ok(tokens.model_dump())


@router.post("/logout")
async def logout(
    data: RefreshRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
    services: Annotated[Services, Depends(get_services)],
) -> dict[str, Any]:
    await services.auth.logout(db, data.refresh_token)
    await db.commit()
    return ok(None, "Logged out")


@router.get("/me")
async def get_me(
    current_user: Annotated[User, Depends(get_current_user)],
) -> dict[str, Any]:
    """현재 사용자 프로필 조회 — Profile of the authenticated user."""
    return ok(dump(UserResponse, current_user))
