"""
Test configuration and fixtures for Coalition Hub backend tests.
"""
import os
import pytest
import pytest_asyncio
from typing import AsyncGenerator
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import NullPool
from fakeredis import aioredis as fake_aioredis

from coalition.main import app
from coalition.db.base import Base, get_db
from coalition.core.security import get_password_hash, create_access_token, ROLE_ADMIN, ROLE_ORGANIZATION
from coalition.models.admin_user import AdminUser
from coalition.models.organization import Organization, OrganizationStatus, Region
from coalition.models.base import utcnow
from coalition.services import cache
from coalition.services.email import email_service
from coalition.services.storage import InMemoryStorageClient, set_storage


# Use a file-based SQLite DB to avoid :memory: multiple-connection issues
# with SQLAlchemy + aiosqlite (each new connection would see an empty DB).
TEST_DATABASE_URL = "sqlite+aiosqlite:///./test.db"

TEST_PASSWORD = "Password123!"


@pytest_asyncio.fixture(scope="function")
async def db_engine():
    """Create a test database engine."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=NullPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()
    # Clean up test database file
    try:
        os.remove("./test.db")
    except OSError:
        pass


@pytest_asyncio.fixture(scope="function")
async def db_session(db_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    async_session_maker = async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False
    )
    async with async_session_maker() as session:
        yield session


@pytest_asyncio.fixture(scope="function")
async def client(db_session) -> AsyncGenerator[AsyncClient, None]:
    """Create a test HTTP client sharing the test session."""

    async def override_get_db():
        try:
            yield db_session
        except Exception:
            cache.discard_invalidations(db_session)
            raise
        # Mirror session_scope: commit, then clear the cache
        await db_session.commit()
        await cache.apply_invalidations(db_session)

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test"
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture(autouse=True)
async def fake_cache():
    """Back the response cache with an in-process Redis."""
    redis = fake_aioredis.FakeRedis(decode_responses=True)
    await redis.flushall()
    cache.set_client(redis)
    yield redis
    cache.set_client(None)
    await redis.flushall()
    await redis.aclose()


@pytest.fixture(autouse=True)
def outbox():
    """Collect emails in memory instead of sending them."""
    email_service.backend = "log"
    email_service.outbox.clear()
    yield email_service.outbox
    email_service.outbox.clear()


@pytest.fixture
def storage():
    client = InMemoryStorageClient()
    set_storage(client)
    yield client
    set_storage(None)


@pytest_asyncio.fixture
async def admin_user(db_session) -> AdminUser:
    admin = AdminUser(
        email="admin@example.com",
        name="Site Admin",
        password_hash=get_password_hash(TEST_PASSWORD),
        is_active=True,
    )
    db_session.add(admin)
    await db_session.flush()
    return admin


async def make_organization(db_session, name: str, email: str, **kwargs) -> Organization:
    values = {
        "status": OrganizationStatus.ACTIVE,
        "tags": [],
        "membership_active": True,
    }
    values.update(kwargs)
    org = Organization(
        name=name,
        email=email,
        password_hash=get_password_hash(TEST_PASSWORD),
        **values,
    )
    if org.status == OrganizationStatus.ACTIVE:
        org.approved_at = utcnow()
        org.membership_date = utcnow()
    db_session.add(org)
    await db_session.flush()
    return org


@pytest_asyncio.fixture
async def active_org(db_session) -> Organization:
    return await make_organization(
        db_session,
        "Senior Health Network",
        "contact@seniorhealth.example.org",
        tags=["health"],
        region=Region.MIDDLE,
        city="Nashville",
        state="TN",
        latitude=36.16,
        longitude=-86.78,
    )


@pytest_asyncio.fixture
async def other_org(db_session) -> Organization:
    return await make_organization(
        db_session,
        "Caregiver Alliance",
        "hello@caregivers.example.org",
        tags=["caregiving"],
        region=Region.EAST,
        primary_contact_email="Director@Caregivers.example.org",
    )


@pytest_asyncio.fixture
async def pending_org(db_session) -> Organization:
    return await make_organization(
        db_session,
        "Rural Aging Project",
        "info@ruralaging.example.org",
        status=OrganizationStatus.PENDING,
        membership_active=False,
    )


def auth_headers(subject: str, role: str) -> dict:
    token = create_access_token(subject=subject, role=role)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_headers(admin_user) -> dict:
    return auth_headers(admin_user.id, ROLE_ADMIN)


@pytest.fixture
def org_headers(active_org) -> dict:
    return auth_headers(active_org.id, ROLE_ORGANIZATION)


@pytest.fixture
def other_org_headers(other_org) -> dict:
    return auth_headers(other_org.id, ROLE_ORGANIZATION)


@pytest.fixture
def org_factory(db_session):
    """Create extra organizations inside a test."""
    async def _make(name: str, email: str, **kwargs) -> Organization:
        return await make_organization(db_session, name, email, **kwargs)
    return _make


@pytest.fixture
def headers_for():
    return auth_headers
