"""
Shared fixtures.

Settings are read once, at import, so the environment is prepared before
anything from offerdesk is imported.
"""

import asyncio
import os

os.environ["SECRET_KEY"] = "test-secret-key-not-for-production"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///./offerdesk-test.db"
os.environ["DEFAULT_ORG_ID"] = "org-acme"

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import NullPool, StaticPool  # noqa: E402

from main import create_application  # noqa: E402
from offerdesk.core.config import settings  # noqa: E402
from offerdesk.core.identity import IdentityConfig, Principal, Role  # noqa: E402
from offerdesk.core.security import create_access_token  # noqa: E402
from offerdesk.db.session import get_db  # noqa: E402
from offerdesk.models import Base  # noqa: E402
from offerdesk.services.integrations import RateLimitResult  # noqa: E402

ORG_A = "org-acme"
ORG_B = "org-globex"


def _principal(role: Role = Role.ADMIN, org_id: str = ORG_A, user_id: str = "u-1") -> Principal:
    return Principal(user_id=user_id, email=f"{user_id}@acme.com", org_id=org_id, role=role)


@pytest.fixture
def make_principal():
    return _principal


@pytest.fixture
def admin() -> Principal:
    return _principal(Role.ADMIN)


@pytest.fixture
def member() -> Principal:
    return _principal(Role.USER, user_id="u-2")


@pytest.fixture
def globex_admin() -> Principal:
    return _principal(Role.ADMIN, org_id=ORG_B, user_id="u-9")


# ── Service tests: in-memory database ────────────────────────────────────────

@pytest.fixture
async def db():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    factory = async_sessionmaker(engine, expire_on_commit=False)
    async with factory() as session:
        yield session
    await engine.dispose()


# ── API tests: file database, one connection per request ─────────────────────

class FakePdfRenderer:
    def __init__(self) -> None:
        self.calls = []

    def render(self, client: dict, offer_fields: dict) -> bytes:
        self.calls.append((client, offer_fields))
        return b"%PDF-1.4 " + offer_fields["title"].encode()


class DenyingRateLimiter:
    def __init__(self, denied_keys: set, retry_after: int = 7) -> None:
        self.denied_keys = denied_keys
        self.retry_after = retry_after
        self.seen = []

    async def limit_request(self, request, key: str) -> RateLimitResult:
        self.seen.append(key)
        if key in self.denied_keys:
            return RateLimitResult(ok=False, retry_after=self.retry_after)
        return RateLimitResult(ok=True)


def _token_headers(
    role: str = "ADMIN",
    org_id: str | None = ORG_A,
    user_id: str = "u-admin",
    email: str = "admin@acme.com",
) -> dict:
    token = create_access_token(subject=user_id, email=email, role=role, org_id=org_id)
    return {"Authorization": f"Bearer {token}"}


async def _create_schema(engine) -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


def build_client(tmp_path, **collaborators) -> TestClient:
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'api.db'}", poolclass=NullPool
    )
    asyncio.run(_create_schema(engine))
    factory = async_sessionmaker(engine, expire_on_commit=False)

    async def override_get_db():
        async with factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app = create_application(
        identity_config=IdentityConfig(
            secret_key=settings.SECRET_KEY,
            algorithm=settings.ALGORITHM,
            default_org_id=ORG_A,
        ),
        **collaborators,
    )
    app.dependency_overrides[get_db] = override_get_db
    return TestClient(app, raise_server_exceptions=False)


@pytest.fixture
def token_for():
    return _token_headers


@pytest.fixture
def pdf_renderer() -> FakePdfRenderer:
    return FakePdfRenderer()


@pytest.fixture
def client(tmp_path, pdf_renderer) -> TestClient:
    return build_client(tmp_path, pdf_renderer=pdf_renderer)


@pytest.fixture
def admin_headers() -> dict:
    return _token_headers("ADMIN")


@pytest.fixture
def user_headers() -> dict:
    return _token_headers("USER", user_id="u-user", email="user@acme.com")


@pytest.fixture
def other_org_headers() -> dict:
    return _token_headers("ADMIN", org_id=ORG_B, user_id="u-globex", email="admin@globex.com")


@pytest.fixture
def client_factory(tmp_path):
    def factory(**collaborators) -> TestClient:
        return build_client(tmp_path, **collaborators)

    return factory


@pytest.fixture
def denying_limiter():
    return DenyingRateLimiter
