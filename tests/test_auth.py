"""인증 API 테스트 — 회원가입, 로그인, 토큰 갱신, 로그아웃, /me 엔드포인트.

Auth API tests — Registration, login, token rotation, logout and the
profile endpoint, including the token-type and inactive-account edges.
"""

from httpx import AsyncClient

from tests.conftest import DEFAULT_PASSWORD, auth_header

AUTH = "/api/auth"


class TestRegister:
    """회원가입 테스트."""

    async def test_register_success(self, client: AsyncClient):
        """회원가입 성공 — 항상 employee 역할."""
        res = await client.post(f"{AUTH}/register", json={
            "email": "  New.Person@Test.com ",
            "password": "secret1",
            "first_name": "New",
            "last_name": "Person",
        })
        assert res.status_code == 201
        body = res.json()
        assert body["success"] is True
        assert body["data"]["user"]["email"] == "new.person@test.com"
        assert body["data"]["user"]["role"] == "employee"
        assert body["data"]["token_type"] == "bearer"
        assert "password_hash" not in body["data"]["user"]

    async def test_register_duplicate_email(self, client: AsyncClient, employee_user):
        """중복 이메일 409."""
        res = await client.post(f"{AUTH}/register", json={
            "email": employee_user.email.upper(),
            "password": "secret1",
            "first_name": "Dup",
            "last_name": "User",
        })
        assert res.status_code == 409
        assert res.json()["success"] is False

    async def test_register_short_password(self, client: AsyncClient):
        """짧은 비밀번호 400 — 검증 오류 목록 포함."""
        res = await client.post(f"{AUTH}/register", json={
            "email": "short@test.com",
            "password": "123",
            "first_name": "Short",
            "last_name": "Pw",
        })
        assert res.status_code == 400
        body = res.json()
        assert body["error"] == "Validation failed"
        assert any(error["field"] == "password" for error in body["errors"])


class TestLogin:
    """로그인 테스트."""

    async def test_login_success(self, client: AsyncClient, employee_user):
        res = await client.post(f"{AUTH}/login", json={
            "email": employee_user.email,
            "password": DEFAULT_PASSWORD,
        })
        assert res.status_code == 200
        data = res.json()["data"]
        assert data["access_token"]
        assert data["refresh_token"]
        assert data["user"]["last_login_at"] is not None

    async def test_login_wrong_password(self, client: AsyncClient, employee_user):
        """잘못된 비밀번호 401."""
        res = await client.post(f"{AUTH}/login", json={
            "email": employee_user.email,
            "password": "wrong-password",
        })
        assert res.status_code == 401
        assert res.json()["error"] == "Invalid email or password"

    async def test_login_unknown_email(self, client: AsyncClient):
        res = await client.post(f"{AUTH}/login", json={"email": "nobody@test.com", "password": "whatever"})
        assert res.status_code == 401

    async def test_login_inactive_user(self, client: AsyncClient, db, employee_user):
        """비활성 계정 로그인 실패."""
        employee_user.is_active = False
        await db.flush()
        res = await client.post(f"{AUTH}/login", json={
            "email": employee_user.email,
            "password": DEFAULT_PASSWORD,
        })
        assert res.status_code == 401
        assert res.json()["error"] == "Account is deactivated"


class TestTokens:
    """토큰 갱신 및 로그아웃 테스트."""

    async def _login(self, client: AsyncClient, user) -> dict:
        res = await client.post(f"{AUTH}/login", json={"email": user.email, "password": DEFAULT_PASSWORD})
        return res.json()["data"]

    async def test_refresh_rotates_token(self, client: AsyncClient, employee_user):
        """갱신 시 기존 리프레시 토큰은 폐기됩니다."""
        tokens = await self._login(client, employee_user)
        res = await client.post(f"{AUTH}/refresh", json={"refresh_token": tokens["refresh_token"]})
        assert res.status_code == 200
        new_tokens = res.json()["data"]
        assert new_tokens["refresh_token"] != tokens["refresh_token"]

        reuse = await client.post(f"{AUTH}/refresh", json={"refresh_token": tokens["refresh_token"]})
        assert reuse.status_code == 401

    async def test_logout_revokes_refresh_token(self, client: AsyncClient, employee_user):
        tokens = await self._login(client, employee_user)
        res = await client.post(f"{AUTH}/logout", json={"refresh_token": tokens["refresh_token"]})
        assert res.status_code == 200

        res = await client.post(f"{AUTH}/refresh", json={"refresh_token": tokens["refresh_token"]})
        assert res.status_code == 401

    async def test_refresh_token_rejected_as_access(self, client: AsyncClient, employee_user):
        """리프레시 토큰으로 API 호출 시 401."""
        tokens = await self._login(client, employee_user)
        res = await client.get(f"{AUTH}/me", headers=auth_header(tokens["refresh_token"]))
        assert res.status_code == 401
        assert res.json()["error"] == "Invalid token type"


class TestMe:
    """/me 엔드포인트 테스트."""

    async def test_me(self, client: AsyncClient, employee_user, manager_user):
        res = await client.get(f"{AUTH}/me", headers=auth_header(employee_user))
        assert res.status_code == 200
        data = res.json()["data"]
        assert data["id"] == str(employee_user.id)
        assert data["manager_id"] == str(manager_user.id)

    async def test_me_without_token(self, client: AsyncClient):
        res = await client.get(f"{AUTH}/me")
        assert res.status_code == 401
        assert res.json() == {
            "success": False,
            "error": "Access token required",
            "message": "Access token required",
        }

    async def test_me_with_garbage_token(self, client: AsyncClient):
        res = await client.get(f"{AUTH}/me", headers=auth_header("not-a-jwt"))
        assert res.status_code == 401
