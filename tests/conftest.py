"""
Pytest configuration and fixtures for Game Organizer tests.
"""

from datetime import datetime, timedelta
from typing import AsyncGenerator, Generator

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.orm import Session, sessionmaker

from gameorganizer.api.main import create_app
from gameorganizer.api.dependencies import (
    Settings,
    create_tables,
    dispose_database,
    init_database,
)
from gameorganizer.services import (
    AccountService,
    AuthenticatedUser,
    GameService,
)


# =============================================================================
# Test Settings
# =============================================================================

def get_test_settings(**overrides) -> Settings:
    """Return settings configured for testing."""
    values = dict(
        database_url="sqlite:///:memory:",
        database_echo=False,
        jwt_secret_key="test-secret-key",
        environment="test",
        debug=True,
        rate_limit_enabled=False,
    )
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def test_settings() -> Settings:
    return get_test_settings()


# =============================================================================
# Database Fixtures
# =============================================================================

@pytest.fixture(scope="function")
def engine(test_settings):
    """Fresh in-memory database per test."""
    engine = init_database(test_settings)
    create_tables()

    yield engine

    dispose_database()


@pytest.fixture(scope="function")
def db_session(engine) -> Generator[Session, None, None]:
    """Provide database session for service-level tests."""
    session = sessionmaker(bind=engine, expire_on_commit=False)()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


# =============================================================================
# Application Fixtures
# =============================================================================

@pytest_asyncio.fixture(scope="function")
async def app(engine, test_settings):
    """Create FastAPI application for testing."""
    application = create_app(test_settings)

    yield application

    application.dependency_overrides.clear()


@pytest_asyncio.fixture(scope="function")
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """Provide async HTTP client for API tests."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def register_and_login(client):
    """
    Factory creating an account through the API and logging it in.

    Returns the bearer headers and the account JSON.
    """

    async def _register(email: str, username: str, password: str = "password123", game_owner: bool = False):
        response = await client.post(
            "/api/account",
            json={"email": email, "username": username, "password": password, "game_owner": game_owner},
        )
        assert response.status_code == 201, response.text

        login = await client.post("/auth/login", json={"email": email, "password": password})
        assert login.status_code == 200, login.text

        headers = {"Authorization": f"Bearer {login.json()['access_token']}"}
        return headers, response.json()

    return _register


# =============================================================================
# Data Fixtures
# =============================================================================

@pytest.fixture
def owner(db_session) -> AuthenticatedUser:
    """A game owner account."""
    account = AccountService(db_session).create_account(
        email="owner@example.com", username="owner", password="password123", game_owner=True
    )
    return AuthenticatedUser.from_account(account)


@pytest.fixture
def borrower(db_session) -> AuthenticatedUser:
    account = AccountService(db_session).create_account(
        email="borrower@example.com", username="borrower", password="password123"
    )
    return AuthenticatedUser.from_account(account)


@pytest.fixture
def other_borrower(db_session) -> AuthenticatedUser:
    account = AccountService(db_session).create_account(
        email="second@example.com", username="second", password="password123"
    )
    return AuthenticatedUser.from_account(account)


@pytest.fixture
def game(db_session, owner):
    """A game with one available copy, owned by `owner`."""
    return GameService(db_session).create_game(
        owner, name="Catan", min_players=3, max_players=4, category="Strategy"
    )


@pytest.fixture
def instance(db_session, game):
    return GameService(db_session).list_instances(game.id)[0]


@pytest.fixture
def period() -> tuple[datetime, datetime]:
    """A one-week borrowing period starting tomorrow."""
    start = datetime.utcnow().replace(microsecond=0) + timedelta(days=1)
    return start, start + timedelta(days=7)
