"""
Test infrastructure for the Linkshelf API.

Strategy
--------
- SQLite in-memory via aiosqlite eliminates the need for a running Postgres
  instance in CI.
- StaticPool forces every session to share the same in-memory database
  connection (SQLite in-memory databases are connection-scoped).
- pysqlite/aiosqlite defer BEGIN until the first DML statement, which breaks
  SAVEPOINT semantics.  The ``connect``/``begin`` listeners below take over
  transaction control so ``begin_nested()`` behaves as on Postgres.
- ``get_db`` and ``get_uow`` are overridden so every request uses the test
  session factory; the link previewer is replaced by a fake.
- Tables are created before each test and dropped after.
- Redis is disabled by setting cache._redis = None; the CacheManager treats
  that as an always-miss cache.
"""
import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy import event
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import StaticPool

from linkshelf.cache import cache
from linkshelf.database import Base, get_db
from linkshelf.dependencies import get_categorizer, get_link_previewer, get_summarizer, get_uow
from linkshelf.main import app
from linkshelf.middleware import install_query_counter
from linkshelf.models import User
from linkshelf.services.link_preview import LinkPreview
from linkshelf.unit_of_work import UnitOfWork

# ---------------------------------------------------------------------------
# Test database engine: SQLite in-memory with aiosqlite
# ---------------------------------------------------------------------------

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

engine_test = create_async_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


@event.listens_for(engine_test.sync_engine, "connect")
def _disable_driver_transactions(dbapi_connection, connection_record):
    dbapi_connection.isolation_level = None


@event.listens_for(engine_test.sync_engine, "begin")
def _emit_begin(conn):
    conn.exec_driver_sql("BEGIN")


install_query_counter(engine_test)

async_session_test = async_sessionmaker(
    engine_test,
    class_=AsyncSession,
    expire_on_commit=False,
)


# ---------------------------------------------------------------------------
# Collaborator fakes
# ---------------------------------------------------------------------------

class FakeLinkPreviewer:
    """Returns canned previews; links listed in *failing* raise."""

    def __init__(self, previews: dict[str, LinkPreview] | None = None, failing: set[str] | None = None):
        self.previews = previews or {}
        self.failing = failing or set()
        self.calls: list[str] = []

    async def fetch(self, link: str) -> LinkPreview:
        self.calls.append(link)
        if link in self.failing:
            raise RuntimeError(f"preview service unavailable for {link}")
        return self.previews.get(link, LinkPreview())


class FakeSummarizer:
    """Returns canned summaries keyed by link; links in *failing* raise."""

    def __init__(self):
        self.summaries: dict[str, str] = {}
        self.failing: set[str] = set()

    async def summarize(self, link: str, title: str) -> str | None:
        if link in self.failing:
            raise RuntimeError(f"summarizer rejected {link}")
        return self.summaries.get(link)


class FakeCategorizer:
    """Suggests the canned category for a link and records what it was offered."""

    def __init__(self):
        self.suggestions: dict[str, str] = {}
        self.offered: list[list[str]] = []

    async def categorize(self, link: str, category_names: list[str]) -> str | None:
        self.offered.append(list(category_names))
        return self.suggestions.get(link)


fake_previewer = FakeLinkPreviewer()
fake_summarizer = FakeSummarizer()
fake_categorizer = FakeCategorizer()


# ---------------------------------------------------------------------------
# Dependency overrides
# ---------------------------------------------------------------------------

async def override_get_db():
    async with async_session_test() as session:
        yield session


def override_get_uow() -> UnitOfWork:
    return UnitOfWork(async_session_test)


app.dependency_overrides[get_db] = override_get_db
app.dependency_overrides[get_uow] = override_get_uow
app.dependency_overrides[get_link_previewer] = lambda: fake_previewer
app.dependency_overrides[get_summarizer] = lambda: fake_summarizer
app.dependency_overrides[get_categorizer] = lambda: fake_categorizer


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture(autouse=True)
async def setup_db():
    """Create all tables before each test, drop after to guarantee isolation."""
    fake_previewer.previews.clear()
    fake_previewer.failing.clear()
    fake_previewer.calls.clear()
    fake_summarizer.summaries.clear()
    fake_summarizer.failing.clear()
    fake_categorizer.suggestions.clear()
    fake_categorizer.offered.clear()
    async with engine_test.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with engine_test.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest_asyncio.fixture
async def db_session() -> AsyncSession:
    """A live AsyncSession for service-level tests; never committed."""
    async with async_session_test() as session:
        yield session


@pytest_asyncio.fixture
async def user(db_session: AsyncSession) -> User:
    """A user without default categories, flushed into ``db_session``."""
    u = User(email="owner@example.com", name="Owner")
    db_session.add(u)
    await db_session.flush()
    return u


@pytest.fixture
def previewer() -> FakeLinkPreviewer:
    return fake_previewer


@pytest.fixture
def summarizer() -> FakeSummarizer:
    return fake_summarizer


@pytest.fixture
def categorizer() -> FakeCategorizer:
    return fake_categorizer


@pytest_asyncio.fixture
async def async_client() -> AsyncClient:
    """httpx.AsyncClient wired to the app via ASGITransport, Redis disabled."""
    cache._redis = None
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def session_factory() -> async_sessionmaker:
    """The test session factory, for tests that manage their own transactions."""
    return async_session_test
