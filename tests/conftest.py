"""Global pytest fixtures for LUGGO.

This module provides shared fixtures for testing including:
- An in-memory SQLite database session
- An HTTP client bound to the app with the database overridden
- Identity tokens signed like the external identity service
"""

import os
from collections.abc import AsyncGenerator
from datetime import datetime, timedelta, timezone
from typing import Any

os.environ.setdefault("LUGGO_ADMIN_UIDS", "admin-uid")
os.environ.setdefault("LUGGO_LOG_FORMAT", "console")

import jwt  # noqa: E402
import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from luggo.config import get_settings  # noqa: E402
from luggo.models import Base, Place, Review, User  # noqa: E402

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ===========================================
# DATABASE SESSION FIXTURES
# ===========================================


@pytest_asyncio.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Fresh in-memory database per test."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with factory() as session:
        yield session
        await session.rollback()

    await engine.dispose()


# ===========================================
# HTTP CLIENT FIXTURES
# ===========================================


@pytest_asyncio.fixture
async def async_client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client for the app with ``get_db`` bound to the test session."""
    from luggo.database import get_db
    from luggo.main import app

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


# ===========================================
# IDENTITY FIXTURES
# ===========================================


def make_token(uid: str, name: str | None = None, email: str | None = None, **overrides: Any) -> str:
    """Sign an identity token the way the identity service would."""
    settings = get_settings()
    claims: dict[str, Any] = {"sub": uid, "exp": utcnow() + timedelta(hours=1)}
    if name is not None:
        claims["name"] = name
    if email is not None:
        claims["email"] = email
    claims.update(overrides)
    return jwt.encode(claims, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def auth_headers(uid: str, name: str | None = None) -> dict[str, str]:
    return {"Authorization": f"Bearer {make_token(uid, name)}"}


@pytest.fixture
def token_factory():
    """Callable signing identity tokens: ``token_factory(uid, name=None, **claims)``."""
    return make_token


@pytest.fixture
def headers_for():
    """Callable building bearer headers for a uid."""
    return auth_headers


@pytest.fixture
def alice_headers() -> dict[str, str]:
    return auth_headers("uid-alice", "Alice")


@pytest.fixture
def bob_headers() -> dict[str, str]:
    return auth_headers("uid-bob", "Bob")


@pytest.fixture
def admin_headers() -> dict[str, str]:
    return auth_headers("admin-uid", "Admin")


# ===========================================
# DATA FIXTURES
# ===========================================


@pytest_asyncio.fixture
async def alice(db_session: AsyncSession) -> User:
    user = User(uid="uid-alice", display_name="Alice")
    db_session.add(user)
    await db_session.flush()
    return user


@pytest_asyncio.fixture
async def bob(db_session: AsyncSession) -> User:
    user = User(uid="uid-bob", display_name="Bob")
    db_session.add(user)
    await db_session.flush()
    return user


@pytest_asyncio.fixture
async def review(db_session: AsyncSession, alice: User) -> Review:
    """One review by Alice on Cafe Aurora, counters at zero."""
    place = Place(id="cafe-aurora", name="Café Aurora", address="San Jose, CR", latitude=9.9339, longitude=-84.0833)
    db_session.add(place)
    review = Review(
        place_id=place.id,
        author_uid=alice.uid,
        author_name=alice.display_name,
        rating=5,
        note="Capuchino cremoso",
        tags=["cafe"],
        city="San Jose, CR",
        upvotes=0,
        downvotes=0,
    )
    db_session.add(review)
    await db_session.flush()
    return review
