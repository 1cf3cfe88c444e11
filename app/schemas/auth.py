"""인증 관련 Pydantic 요청/응답 스키마 정의.

Authentication-related Pydantic request/response schema definitions.
Covers registration, login, token issuance/refresh and logout.
"""

from typing import Annotated

from pydantic import AfterValidator, BaseModel, Field, field_validator


def normalize_email(value: str) -> str:
    """이메일 정규화 — Strip, lower-case and sanity-check an email address."""
    email = value.strip().lower()
    local, _, domain = email.partition("@")
    if not local or "." not in domain or " " in email:
        raise ValueError("Invalid email address")
    return email


# 정규화된 이메일 타입 — Email string normalised on input
Email = Annotated[str, AfterValidator(normalize_email)]


class RegisterRequest(BaseModel):
    """회원가입 요청 스키마.

    Self-registration request schema. New accounts always get the
    ``employee`` role; other roles are assigned by an admin.

    Attributes:
        email: 이메일 (Login email, unique)
        password: 비밀번호 (Plain text, at least 6 characters, bcrypt-hashed on server)
        first_name / last_name: 이름 (Given and family name)
    """

    email: Email
    password: str = Field(min_length=6, max_length=128)
    first_name: str = Field(min_length=1, max_length=100)
    last_name: str = Field(min_length=1, max_length=100)


class LoginRequest(BaseModel):
    """로그인 요청 스키마.

    Attributes:
        email: 로그인 이메일 (Login email, case-insensitive)
        password: 비밀번호 (Plain text, compared to bcrypt hash)
    """

    email: str
    password: str

    @field_validator("email")
    @classmethod
    def _lower(cls, value: str) -> str:
        return value.strip().lower()


class TokenResponse(BaseModel):
    """JWT 토큰 발급 응답 스키마.

    JWT token issuance response schema.
    Returned after successful registration, login or token refresh.
    """

    access_token: str  # 액세스 토큰 (Short-lived access token)
    refresh_token: str  # 리프레시 토큰 (Long-lived refresh token)
    token_type: str = "bearer"  # 토큰 유형 — 항상 "bearer"


class RefreshRequest(BaseModel):
    """토큰 갱신 / 로그아웃 요청 스키마.

    Exchanges a valid refresh token for a new pair, or revokes it on logout.
    """

    refresh_token: str
