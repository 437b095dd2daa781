"""
Dependency injection for FastAPI routes.

Provides injectable dependencies for:
- Configuration
- Database sessions
- Service instances bound to the request's session
- Caller identity (bearer header or access cookie)
"""

import os
from typing import Generator, Optional
from functools import lru_cache
from dataclasses import dataclass

from fastapi import Cookie, Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from ..services.context import AuthenticatedUser


# =============================================================================
# Configuration
# =============================================================================

@dataclass
class Settings:
    """Application settings loaded from environment."""

    # Database
    database_url: str = "sqlite:///./gameorganizer.db"
    database_echo: bool = False

    # Tokens
    jwt_secret_key: str = "change-me-in-production"
    access_token_expire_minutes: int = 60
    remember_me_days: int = 30
    password_reset_token_minutes: int = 30

    # Cookies
    cookie_secure: bool = False

    # Rate limiting
    rate_limit_enabled: bool = True
    rate_limit_requests_per_minute: int = 120
    # Only behind a reverse proxy that overwrites X-Forwarded-For
    trust_proxy_headers: bool = False

    # Environment
    environment: str = "development"
    debug: bool = False

    @classmethod
    def from_env(cls) -> "Settings":
        """Load settings from environment variables."""
        return cls(
            database_url=os.getenv("DATABASE_URL", cls.database_url),
            database_echo=os.getenv("DATABASE_ECHO", "false").lower() == "true",
            jwt_secret_key=os.getenv("JWT_SECRET_KEY", cls.jwt_secret_key),
            access_token_expire_minutes=int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", cls.access_token_expire_minutes)),
            remember_me_days=int(os.getenv("REMEMBER_ME_DAYS", cls.remember_me_days)),
            password_reset_token_minutes=int(os.getenv("PASSWORD_RESET_TOKEN_MINUTES", cls.password_reset_token_minutes)),
            cookie_secure=os.getenv("COOKIE_SECURE", "false").lower() == "true",
            rate_limit_enabled=os.getenv("RATE_LIMIT_ENABLED", "true").lower() == "true",
            rate_limit_requests_per_minute=int(os.getenv("RATE_LIMIT_RPM", cls.rate_limit_requests_per_minute)),
            trust_proxy_headers=os.getenv("TRUST_PROXY_HEADERS", "false").lower() == "true",
            environment=os.getenv("GAMEORGANIZER_ENV", cls.environment),
            debug=os.getenv("DEBUG", "false").lower() == "true",
        )


@lru_cache()
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings.from_env()


# =============================================================================
# Database
# =============================================================================

# Global engine and session factory (initialized in lifespan)
_engine: Optional[Engine] = None
_session_factory: Optional[sessionmaker] = None


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def init_database(settings: Settings) -> Engine:
    """Initialize database engine and session factory."""
    global _engine, _session_factory

    engine_kwargs = {"echo": settings.database_echo}
    is_sqlite = settings.database_url.startswith("sqlite")

    if is_sqlite:
        # Route handlers run on the threadpool
        engine_kwargs["connect_args"] = {"check_same_thread": False}
        if ":memory:" in settings.database_url:
            engine_kwargs["poolclass"] = StaticPool
    else:
        engine_kwargs["pool_pre_ping"] = True

    _engine = create_engine(settings.database_url, **engine_kwargs)
    if is_sqlite:
        event.listen(_engine, "connect", _enable_sqlite_foreign_keys)

    _session_factory = sessionmaker(bind=_engine, expire_on_commit=False)
    return _engine


def get_engine() -> Engine:
    if _engine is None:
        raise RuntimeError("Database not initialized. Call init_database first.")
    return _engine


def create_tables() -> None:
    """Create database tables."""
    from ..storage.models import Base

    Base.metadata.create_all(get_engine())


def dispose_database() -> None:
    global _engine, _session_factory
    if _engine is not None:
        _engine.dispose()
    _engine = None
    _session_factory = None


def get_db() -> Generator[Session, None, None]:
    """
    Dependency that provides a database session.

    Services commit their own work; anything left uncommitted when the
    request fails is rolled back here.

    Yields:
        Session for database operations.
    """
    if _session_factory is None:
        raise RuntimeError("Database not initialized. Call init_database first.")

    session = _session_factory()
    try:
        yield session
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


# =============================================================================
# Service Dependencies (Lazy Loading)
# =============================================================================

class ServiceContainer:
    """
    Request-scoped container for service instances.

    Services are created on first access and share the request's session,
    so work spanning several services commits or rolls back together.
    """

    def __init__(self, settings: Settings, session: Session):
        self.settings = settings
        self.session = session
        self._account_service = None
        self._auth_service = None
        self._game_service = None
        self._borrow_request_service = None
        self._lending_record_service = None
        self._event_service = None
        self._registration_service = None
        self._review_service = None

    @property
    def account_service(self):
        """Get account service instance."""
        if self._account_service is None:
            from ..services.account_service import AccountService
            self._account_service = AccountService(self.session)
        return self._account_service

    @property
    def auth_service(self):
        """Get authentication service instance."""
        if self._auth_service is None:
            from ..services.auth_service import AuthService
            self._auth_service = AuthService(self.session, self.settings)
        return self._auth_service

    @property
    def game_service(self):
        """Get game catalog service instance."""
        if self._game_service is None:
            from ..services.game_service import GameService
            self._game_service = GameService(self.session)
        return self._game_service

    @property
    def borrow_request_service(self):
        """Get borrow request service instance."""
        if self._borrow_request_service is None:
            from ..services.borrow_request_service import BorrowRequestService
            self._borrow_request_service = BorrowRequestService(self.session)
        return self._borrow_request_service

    @property
    def lending_record_service(self):
        """Get lending record service instance."""
        if self._lending_record_service is None:
            from ..services.lending_record_service import LendingRecordService
            self._lending_record_service = LendingRecordService(self.session)
        return self._lending_record_service

    @property
    def event_service(self):
        """Get event service instance."""
        if self._event_service is None:
            from ..services.event_service import EventService
            self._event_service = EventService(self.session)
        return self._event_service

    @property
    def registration_service(self):
        """Get registration service instance."""
        if self._registration_service is None:
            from ..services.registration_service import RegistrationService
            self._registration_service = RegistrationService(self.session)
        return self._registration_service

    @property
    def review_service(self):
        """Get review service instance."""
        if self._review_service is None:
            from ..services.review_service import ReviewService
            self._review_service = ReviewService(self.session)
        return self._review_service


def get_service_container(
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> ServiceContainer:
    """Get the service container for this request."""
    return ServiceContainer(settings, db)


# =============================================================================
# Individual Service Dependencies
# =============================================================================

def get_account_service(
    container: ServiceContainer = Depends(get_service_container),
):
    """Dependency for account service."""
    return container.account_service


def get_auth_service(
    container: ServiceContainer = Depends(get_service_container),
):
    """Dependency for authentication service."""
    return container.auth_service


def get_game_service(
    container: ServiceContainer = Depends(get_service_container),
):
    """Dependency for game service."""
    return container.game_service


def get_borrow_request_service(
    container: ServiceContainer = Depends(get_service_container),
):
    """Dependency for borrow request service."""
    return container.borrow_request_service


def get_lending_record_service(
    container: ServiceContainer = Depends(get_service_container),
):
    """Dependency for lending record service."""
    return container.lending_record_service


def get_event_service(
    container: ServiceContainer = Depends(get_service_container),
):
    """Dependency for event service."""
    return container.event_service


def get_registration_service(
    container: ServiceContainer = Depends(get_service_container),
):
    """Dependency for registration service."""
    return container.registration_service


def get_review_service(
    container: ServiceContainer = Depends(get_service_container),
):
    """Dependency for review service."""
    return container.review_service


# =============================================================================
# Authentication Dependencies
# =============================================================================

ACCESS_TOKEN_COOKIE = "accessToken"
AUTH_FLAG_COOKIE = "isAuthenticated"

bearer_scheme = HTTPBearer(auto_error=False)


def get_access_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    access_token: Optional[str] = Cookie(None, alias=ACCESS_TOKEN_COOKIE),
) -> Optional[str]:
    """
    Extract the access token from the request.

    An Authorization bearer header wins over the cookie.
    """
    if credentials is not None and credentials.credentials:
        return credentials.credentials
    return access_token


def get_current_user(
    token: Optional[str] = Depends(get_access_token),
    container: ServiceContainer = Depends(get_service_container),
) -> AuthenticatedUser:
    """
    Resolve the caller's identity.

    Raises:
        UnauthenticatedError: If no valid token is presented.
    """
    return container.auth_service.authenticate_token(token)
