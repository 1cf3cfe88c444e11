"""테스트 인프라 — 인메모리 SQLite DB, 세션, 서비스 컨테이너, httpx 클라이언트 픽스처.

Test infrastructure — In-memory SQLite DB, session, service container and
httpx client fixtures. Every test gets a fresh database; the schema is
created from the ORM metadata. Emails are recorded instead of sent and no
AI provider is configured unless a test builds its own ``AIService``.
"""

import os

# 설정 로드 전에 테스트 환경 지정 — Must run before any ``app`` import
os.environ["APP_ENV"] = "test"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["SCHEDULER_ENABLED"] = "false"
os.environ["REDIS_URL"] = ""
os.environ["OPENAI_API_KEY"] = ""
os.environ["GEMINI_API_KEY"] = ""
os.environ["AXIOM_API_TOKEN"] = ""

from collections.abc import AsyncGenerator  # noqa: E402
from datetime import timedelta  # noqa: E402
from typing import Any  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from redis.exceptions import ConnectionError as RedisConnectionError  # noqa: E402
from sqlalchemy import event  # noqa: E402
from sqlalchemy.ext.asyncio import (  # noqa: E402
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool  # noqa: E402

from app.config import settings  # noqa: E402
from app.container import Services, build_services  # noqa: E402
from app.database import Base, get_db, utcnow  # noqa: E402
from app.main import create_app  # noqa: E402
from app.models import *  # noqa: F401,F403,E402 — register all models with metadata
from app.models.review_cycle import CycleParticipant, ReviewCycle  # noqa: E402
from app.models.user import User  # noqa: E402
from app.utils.jwt import create_access_token  # noqa: E402
from app.utils.password import hash_password  # noqa: E402

DEFAULT_PASSWORD = "password123"


class RecordingEmailSender:
    """발송 대신 기록하는 이메일 발송기 — Records emails instead of sending them."""

    def __init__(self, fail: bool = False) -> None:
        self.sent: list[dict[str, Any]] = []
        self.fail = fail

    @property
    def enabled(self) -> bool:
        return True

    async def send(self, to: str, subject: str, html: str, text: str | None = None) -> None:
        if self.fail:
            raise ConnectionError("SMTP unavailable")
        self.sent.append({"to": to, "subject": subject, "html": html, "text": text})


class FakeRedis:
    """redis.asyncio 대역 — Stores raw strings; can be switched to fail every call."""

    def __init__(self, fail: bool = False) -> None:
        self.data: dict[str, str] = {}
        self.fail = fail

    def _check(self) -> None:
        if self.fail:
            raise RedisConnectionError("connection refused")

    async def get(self, key: str) -> str | None:
        self._check()
        return self.data.get(key)

    async def set(self, key: str, value: str, ex: int | None = None) -> None:
        self._check()
        self.data[key] = value

    async def delete(self, key: str) -> None:
        self._check()
        self.data.pop(key, None)

    async def aclose(self) -> None:
        pass


# ---------------------------------------------------------------------------
# Function-scoped: 엔진, 세션, 서비스, 클라이언트
# ---------------------------------------------------------------------------
@pytest_asyncio.fixture
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    """테스트용 async 엔진 — 테스트마다 새 인메모리 DB."""
    eng = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # pysqlite SAVEPOINT 지원 — Let SQLAlchemy emit BEGIN itself so nested transactions work
    @event.listens_for(eng.sync_engine, "connect")
    def _do_connect(dbapi_connection: Any, connection_record: Any) -> None:
        dbapi_connection.isolation_level = None

    @event.listens_for(eng.sync_engine, "begin")
    def _do_begin(conn: Any) -> None:
        conn.exec_driver_sql("BEGIN")

    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db(session_factory: async_sessionmaker[AsyncSession]) -> AsyncGenerator[AsyncSession, None]:
    """각 테스트에 격리된 DB 세션을 제공합니다."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def email_sender() -> RecordingEmailSender:
    return RecordingEmailSender()


@pytest_asyncio.fixture
async def services(
    session_factory: async_sessionmaker[AsyncSession],
    email_sender: RecordingEmailSender,
) -> AsyncGenerator[Services, None]:
    """테스트 서비스 컨테이너 — 메모리 캐시, 기록용 이메일, AI 공급자 없음."""
    container = build_services(settings, session_factory, email_sender=email_sender)
    yield container
    await container.close()


@pytest_asyncio.fixture
async def client(db: AsyncSession, services: Services) -> AsyncGenerator[AsyncClient, None]:
    """FastAPI 테스트 클라이언트 — DB 세션과 서비스 컨테이너를 주입합니다."""
    app = create_app(settings, services=services)

    async def _override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield db

    app.dependency_overrides[get_db] = _override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# 헬퍼: 테스트용 데이터 생성
# ---------------------------------------------------------------------------
async def make_user(
    db: AsyncSession,
    email: str,
    role: str = "employee",
    manager: User | None = None,
    **fields: Any,
) -> User:
    """테스트 사용자를 생성합니다."""
    first, _, last = email.partition("@")[0].partition(".")
    user = User(
        email=email,
        password_hash=hash_password(DEFAULT_PASSWORD),
        first_name=first.title(),
        last_name=(last or "Tester").title(),
        role=role,
        manager_id=manager.id if manager else None,
        **fields,
    )
    db.add(user)
    await db.flush()
    await db.refresh(user)
    return user


async def make_cycle(
    db: AsyncSession,
    name: str = "Q3 Review",
    status: str = "active",
    participants: list[User] | None = None,
    ends_in: timedelta = timedelta(days=14),
    **fields: Any,
) -> ReviewCycle:
    """테스트 리뷰 사이클을 생성합니다 (참가자 포함)."""
    now = utcnow()
    cycle = ReviewCycle(
        name=name,
        type="quarterly",
        start_date=now - timedelta(days=7),
        end_date=now + ends_in,
        status=status,
        **fields,
    )
    db.add(cycle)
    await db.flush()
    for user in participants or []:
        db.add(CycleParticipant(cycle_id=cycle.id, user_id=user.id, role="reviewee"))
    await db.flush()
    await db.refresh(cycle)
    return cycle


@pytest_asyncio.fixture
async def admin_user(db: AsyncSession) -> User:
    return await make_user(db, "ada.admin@test.com", role="admin")


@pytest_asyncio.fixture
async def hr_user(db: AsyncSession) -> User:
    return await make_user(db, "hana.hr@test.com", role="hr")


@pytest_asyncio.fixture
async def manager_user(db: AsyncSession) -> User:
    return await make_user(db, "mina.manager@test.com", role="manager")


@pytest_asyncio.fixture
async def employee_user(db: AsyncSession, manager_user: User) -> User:
    """매니저에게 보고하는 직원."""
    return await make_user(db, "eli.employee@test.com", manager=manager_user)


@pytest_asyncio.fixture
async def other_employee(db: AsyncSession) -> User:
    """매니저가 없는 다른 직원."""
    return await make_user(db, "olly.other@test.com")


def make_token(user: User) -> str:
    """테스트용 JWT 액세스 토큰을 생성합니다."""
    return create_access_token({"sub": str(user.id), "role": user.role})


def auth_header(user_or_token: User | str) -> dict[str, str]:
    token = user_or_token if isinstance(user_or_token, str) else make_token(user_or_token)
    return {"Authorization": f"Bearer {token}"}
