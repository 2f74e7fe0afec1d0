"""
Test fixtures for the ledger API test suite.

Shared fixtures:

  - db_engine / db_session: Fresh in-memory SQLite database for each test
  - client: Async HTTP test client (unauthenticated)
  - authenticated_client: Client with a signed-up MEMBER user and JWT
  - project_id / project_url: That user's personal project
  - checking_account / card_account: Accounts owned by that user
  - balance: Helper that reads an account's running balance
  - second_user: Headers and project of a second MEMBER user
  - admin_client: Client with an ADMIN user and JWT

Key design decisions:
  - In-memory SQLite (sqlite+aiosqlite://) on a StaticPool, so every
    session of a test sees the same database and no state leaks between
    tests.
  - get_db is overridden with a session factory bound to the test engine;
    the application code commits and rolls back exactly as in production.
  - Users are created through the real signup endpoint.
"""

import os
import uuid
from decimal import Decimal

os.environ.setdefault("SECRET_KEY", "test-secret-key-not-for-production")
os.environ.setdefault("LOG_JSON", "false")

import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy import update
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool

from finledger.database import Base, get_db
from finledger.main import app
from finledger.models.user import User, UserType


# In-memory SQLite for fast, isolated tests
TEST_DATABASE_URL = "sqlite+aiosqlite://"


@pytest_asyncio.fixture
async def db_engine():
    """Create a fresh async engine with all tables for each test."""
    engine = create_async_engine(TEST_DATABASE_URL, poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(db_engine):
    """Provide an async session bound to the test engine."""
    async_session = async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
    async with async_session() as session:
        yield session


@pytest_asyncio.fixture
async def client(db_engine):
    """
    Async HTTP test client with the test database injected.

    Overrides get_db so every request hits the in-memory database.
    """
    async_session = async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async def override_get_db():
        async with async_session() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


async def _signup(client: AsyncClient, email: str, password: str, display_name: str) -> dict:
    response = await client.post(
        "/auth/signup",
        json={"email": email, "password": password, "display_name": display_name},
    )
    assert response.status_code == 201, f"Signup failed: {response.text}"
    return response.json()


@pytest_asyncio.fixture
async def authenticated_client(client):
    """
    Client with a signed-up user; the Authorization header is set on the
    client for every subsequent request.
    """
    data = await _signup(client, "testuser@example.com", "SecurePass123!", "Test User")
    client.headers["Authorization"] = f"Bearer {data['token']}"
    return client


@pytest_asyncio.fixture
async def project_id(authenticated_client):
    """Id of the authenticated user's personal project."""
    response = await authenticated_client.get("/projects")
    assert response.status_code == 200
    return response.json()[0]["id"]


@pytest_asyncio.fixture
async def project_url(project_id):
    return f"/projects/{project_id}"


@pytest_asyncio.fixture
async def checking_account(authenticated_client):
    """A checking account opened with 1,000,000.00."""
    response = await authenticated_client.post(
        "/accounts",
        json={"name": "Checking", "type": "checking", "initial_balance": "1000000.00"},
    )
    assert response.status_code == 201, response.text
    return response.json()["id"]


@pytest_asyncio.fixture
async def card_account(authenticated_client):
    """A credit card account with no debt."""
    response = await authenticated_client.post(
        "/accounts",
        json={"name": "Visa", "type": "credit_card", "credit_limit": "2000000.00"},
    )
    assert response.status_code == 201, response.text
    return response.json()["id"]


@pytest_asyncio.fixture
async def balance(authenticated_client):
    """
    Read an account's running balance as a Decimal.

    Also asserts the running balance still matches a from-scratch
    recomputation.
    """
    async def _balance(account_id: str) -> Decimal:
        response = await authenticated_client.get(f"/accounts/{account_id}/balance")
        assert response.status_code == 200, response.text
        data = response.json()
        assert data["match"] is True, data
        return Decimal(data["current_balance"])

    return _balance


@pytest_asyncio.fixture
async def second_user(client, authenticated_client):
    """
    A second MEMBER user for cross-user tests.

    The shared client keeps the first user's header; pass
    ``headers=second_user["headers"]`` to act as the second user.
    """
    data = await _signup(client, "seconduser@example.com", "SecurePass456!", "Second User")
    return {
        "user_id": data["user_id"],
        "email": data["email"],
        "project_id": data["project_id"],
        "headers": {"Authorization": f"Bearer {data['token']}"},
    }


@pytest_asyncio.fixture
async def admin_client(client, db_engine):
    """
    Client with an ADMIN user.

    Signs up normally, then promotes the user directly in the database:
    admins are provisioned by an operator, never self-service.
    """
    data = await _signup(client, "admin@example.com", "AdminPass123!", "Admin")
    user_id = uuid.UUID(data["user_id"])

    async_session = async_sessionmaker(
        db_engine, class_=AsyncSession, expire_on_commit=False,
    )
    async with async_session() as session:
        await session.execute(
            update(User)
            .where(User.id == user_id)
            .values(user_type=UserType.ADMIN)
        )
        await session.commit()

    login_response = await client.post(
        "/auth/login",
        json={"email": "admin@example.com", "password": "AdminPass123!"},
    )
    client.headers["Authorization"] = f"Bearer {login_response.json()['token']}"
    return client
