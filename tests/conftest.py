"""
Test infrastructure for the Blog API.

Strategy
--------
- SQLite in-memory via aiosqlite, so no Postgres is needed in CI.
- StaticPool makes every session share the one in-memory connection;
  a second connection would see an empty database.
- ``get_db`` and ``get_session_factory`` are overridden so request sessions
  and the view-count background task both use the test engine.
- Tables are created before and dropped after each test.
- Redis is disabled by setting ``cache._redis = None``; the CacheManager
  treats that as a permanent miss, so services always hit the database.
- Concurrency tests use ``file_session_factory``: a file-backed SQLite
  database with a real connection pool, so concurrent sessions get separate
  connections and the database's own locking arbitrates between them.
"""
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from blog_api.cache import cache
from blog_api.database import Base, get_db, get_session_factory
from blog_api.main import app
from blog_api.middleware import install_query_counter
from blog_api.models import ROLE_ADMIN, User

# ---------------------------------------------------------------------------
# Test database engine: SQLite in-memory with aiosqlite
# ---------------------------------------------------------------------------

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

engine_test = create_async_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

install_query_counter(engine_test)

async_session_test = async_sessionmaker(
    engine_test,
    class_=AsyncSession,
    expire_on_commit=False,
)


# ---------------------------------------------------------------------------
# Dependency overrides
# ---------------------------------------------------------------------------

async def override_get_db():
    async with async_session_test() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


def override_get_session_factory():
    return async_session_test


app.dependency_overrides[get_db] = override_get_db
app.dependency_overrides[get_session_factory] = override_get_session_factory


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture(autouse=True)
async def setup_db():
    """Create all tables before each test, drop after to guarantee isolation."""
    async with engine_test.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with engine_test.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest_asyncio.fixture
async def db_session() -> AsyncSession:
    """A live AsyncSession for seeding data and asserting ORM state directly."""
    async with async_session_test() as session:
        yield session


@pytest_asyncio.fixture
async def async_client() -> AsyncClient:
    """An httpx.AsyncClient wired to the FastAPI app via ASGITransport."""
    cache._redis = None
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest_asyncio.fixture
async def file_session_factory(tmp_path):
    """Session factory over a pooled, file-backed SQLite database."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'concurrency.db'}",
        connect_args={"timeout": 30},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    await engine.dispose()


# ---------------------------------------------------------------------------
# API helpers
# ---------------------------------------------------------------------------

def bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def register(async_client: AsyncClient):
    """Register an account through the API; returns ``{"user": ..., "token": ...}``."""

    async def _register(name: str, email: str | None = None, password: str = "secret123") -> dict:
        resp = await async_client.post("/api/auth/register", json={
            "name": name,
            "email": email or f"{name.lower()}@example.com",
            "password": password,
        })
        assert resp.status_code == 201, resp.text
        return resp.json()

    return _register


@pytest.fixture
def make_admin():
    """Promote an existing account to the admin role."""

    async def _make_admin(user_id: str) -> None:
        async with async_session_test() as session:
            await session.execute(update(User).where(User.id == user_id).values(role=ROLE_ADMIN))
            await session.commit()

    return _make_admin


@pytest.fixture
def create_category(async_client: AsyncClient):
    async def _create_category(token: str, name: str = "Tech", description: str | None = None) -> dict:
        resp = await async_client.post(
            "/api/categories",
            json={"name": name, "description": description},
            headers=bearer(token),
        )
        assert resp.status_code == 201, resp.text
        return resp.json()

    return _create_category


@pytest.fixture
def create_post(async_client: AsyncClient):
    async def _create_post(token: str, category: str, title: str = "Hello World", **fields) -> dict:
        payload = {"title": title, "content": "Some content", "category": category, "is_published": True}
        payload.update(fields)
        resp = await async_client.post("/api/posts", json=payload, headers=bearer(token))
        assert resp.status_code == 201, resp.text
        return resp.json()

    return _create_post
