"""
Test fixtures for the back-office ledger test suite.

This module provides shared fixtures used across all test files:

  - app: A fresh application (create_app) on its own SQLite file
  - sessionmaker / db_session: Direct database access for service-level tests
  - client: Async HTTP test client (unauthenticated)
  - authenticated_client: Test client with a pre-registered MEMBER user and JWT
  - second_authenticated_client: A second MEMBER user for cross-user tests
  - admin_client: Test client with a pre-registered ADMIN user and JWT
  - make_user: Insert a user with a given starting balance
  - fund: Deposit-and-approve helper that credits a member through the API

Key design decisions:
  - Each test gets its own SQLite FILE under tmp_path rather than an
    in-memory database. Every session then holds its own connection, which
    is what the concurrency tests need: two sessions writing the same
    balance must really race through the database's locking.
  - The app is built with create_app(), so tests run exactly the wiring
    production uses; only DATABASE_URL and UPLOAD_DIR are overridden.
  - Each authenticated fixture uses its own AsyncClient so their
    Authorization headers never overwrite each other.
  - The admin_client fixture signs up normally and is then promoted in the
    database, the way admins are provisioned by an operator.
"""

import os

os.environ.setdefault("SECRET_KEY", "test-secret-key-not-for-production")

import uuid  # noqa: E402

import pytest_asyncio  # noqa: E402
from httpx import AsyncClient, ASGITransport  # noqa: E402
from sqlalchemy import update  # noqa: E402

import backoffice.models  # noqa: E402,F401
from backoffice.config import settings  # noqa: E402
from backoffice.database import Base  # noqa: E402
from backoffice.main import create_app  # noqa: E402
from backoffice.models.user import User, UserType  # noqa: E402


@pytest_asyncio.fixture
async def app(tmp_path):
    """A fully wired application with its tables created."""
    config = settings.model_copy(
        update={
            "DATABASE_URL": f"sqlite+aiosqlite:///{tmp_path / 'ledger.db'}",
            "UPLOAD_DIR": str(tmp_path / "receipts"),
        }
    )
    application = create_app(config)

    # ASGITransport does not run the lifespan, so create tables here
    engine = application.state.engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield application
    await engine.dispose()


@pytest_asyncio.fixture
async def sessionmaker(app):
    return app.state.sessionmaker


@pytest_asyncio.fixture
async def db_session(sessionmaker):
    async with sessionmaker() as session:
        yield session


def _http_client(app) -> AsyncClient:
    return AsyncClient(transport=ASGITransport(app=app), base_url="http://test")


async def _signup(client: AsyncClient, email: str, password: str, first_name: str) -> str:
    response = await client.post(
        "/auth/signup",
        json={
            "email": email,
            "password": password,
            "first_name": first_name,
            "last_name": "User",
        },
    )
    assert response.status_code == 201, f"Signup failed: {response.text}"
    client.headers["Authorization"] = f"Bearer {response.json()['token']}"
    return response.json()["user_id"]


@pytest_asyncio.fixture
async def client(app):
    async with _http_client(app) as ac:
        yield ac


@pytest_asyncio.fixture
async def authenticated_client(app):
    """
    Test client with a pre-registered member and JWT token.

    The member's id is available as client.user_id.
    """
    async with _http_client(app) as ac:
        ac.user_id = await _signup(ac, "testuser@example.com", "SecurePass123!", "Test")
        yield ac


@pytest_asyncio.fixture
async def second_authenticated_client(app):
    """A second member, to verify User A cannot reach User B's records."""
    async with _http_client(app) as ac:
        ac.user_id = await _signup(ac, "seconduser@example.com", "SecurePass456!", "Second")
        yield ac


@pytest_asyncio.fixture
async def admin_client(app, sessionmaker):
    """
    Test client with a pre-registered ADMIN user and JWT token.

    Signs up as a member, is promoted directly in the database, then logs
    in again to get a fresh token.
    """
    async with _http_client(app) as ac:
        ac.user_id = await _signup(ac, "admin@example.com", "AdminPass123!", "Admin")

        async with sessionmaker() as session:
            await session.execute(
                update(User)
                .where(User.id == ac.user_id)
                .values(user_type=UserType.ADMIN)
            )
            await session.commit()

        login_response = await ac.post(
            "/auth/login",
            json={"email": "admin@example.com", "password": "AdminPass123!"},
        )
        assert login_response.status_code == 200
        ac.headers["Authorization"] = f"Bearer {login_response.json()['token']}"
        yield ac


@pytest_asyncio.fixture
async def make_user(sessionmaker):
    """Insert a member with a starting balance; returns the user id."""

    async def _make(balance_cents: int = 0) -> str:
        async with sessionmaker() as session:
            user = User(
                email=f"seed-{uuid.uuid4().hex[:8]}@example.com",
                hashed_password="not-a-real-hash",
                first_name="Seed",
                last_name="User",
                balance_cents=balance_cents,
            )
            session.add(user)
            await session.commit()
            return user.id

    return _make


@pytest_asyncio.fixture
async def fund(admin_client):
    """
    Credit a member through the real flow: request a deposit, then have the
    admin approve it. Returns the approval response body.
    """

    async def _fund(member_client: AsyncClient, amount_cents: int) -> dict:
        deposit = await member_client.post(
            "/transactions/deposits",
            json={
                "amount_cents": amount_cents,
                "bank_name": "First National",
                "transfer_date": "2024-01-15",
            },
        )
        assert deposit.status_code == 201, deposit.text
        approve = await admin_client.post(
            f"/admin/transactions/{deposit.json()['transaction_id']}/approve"
        )
        assert approve.status_code == 200, approve.text
        return approve.json()

    return _fund
