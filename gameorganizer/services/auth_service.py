"""
Authentication Service

Credential checks, token issuance and password reset.

Tokens are stateless JWTs whose subject is the account email. The API layer
decides how to deliver them (cookies or bearer header); this service only
creates and verifies them.
"""

import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from loguru import logger
from sqlalchemy.orm import Session

from ..exceptions import (
    EmailNotFoundError,
    InvalidCredentialsError,
    InvalidPasswordError,
    InvalidTokenError,
    UnauthenticatedError,
)
from ..security import create_access_token, decode_access_token, get_password_hash, verify_password
from ..storage.account_repository import AccountRepository
from ..storage.models import Account
from .context import AuthenticatedUser

MIN_PASSWORD_LENGTH = 8


@dataclass
class LoginResult:
    """Outcome of a successful login."""

    account: Account
    access_token: str
    # None means a session cookie
    max_age: Optional[int]


class AuthService:
    """
    Authentication operations.

    Args:
        session: Request-scoped database session
        settings: Application Settings (secret key and token lifetimes)
    """

    def __init__(self, session: Session, settings):
        self.session = session
        self.settings = settings
        self.accounts = AccountRepository(session)

    def login(self, email: str, password: str, remember_me: bool = False) -> LoginResult:
        account = self.accounts.get_by_email(email)
        if account is None or not verify_password(password, account.password_hash):
            logger.warning(f"Failed login attempt for {email}")
            raise InvalidCredentialsError()

        if remember_me:
            lifetime = timedelta(days=self.settings.remember_me_days)
            max_age = int(lifetime.total_seconds())
        else:
            lifetime = timedelta(minutes=self.settings.access_token_expire_minutes)
            max_age = None

        token = create_access_token(
            data={"sub": account.email},
            secret_key=self.settings.jwt_secret_key,
            expires_delta=lifetime,
        )

        logger.info(f"User {email} logged in (remember me: {remember_me})")
        return LoginResult(account=account, access_token=token, max_age=max_age)

    def authenticate_token(self, token: Optional[str]) -> AuthenticatedUser:
        """Resolve a token to the caller's identity."""
        if not token:
            raise UnauthenticatedError()

        email = decode_access_token(token, self.settings.jwt_secret_key)
        if email is None:
            raise UnauthenticatedError("Could not validate credentials")

        account = self.accounts.get_by_email(email)
        if account is None:
            raise UnauthenticatedError("Could not validate credentials")

        return AuthenticatedUser.from_account(account)

    def request_password_reset(self, email: str) -> str:
        """
        Issue a password reset token for the account.

        Returns:
            The token; delivery to the user is the caller's concern.
        """
        account = self.accounts.get_by_email(email)
        if account is None:
            raise EmailNotFoundError(email)

        token = str(uuid.uuid4())
        account.reset_password_token = token
        account.reset_password_token_expiry = datetime.utcnow() + timedelta(
            minutes=self.settings.password_reset_token_minutes
        )
        self.session.commit()

        logger.info(f"Issued password reset token for {email}")
        return token

    def perform_password_reset(self, token: str, new_password: str) -> None:
        account = self.accounts.get_by_reset_token(token) if token else None
        if account is None:
            raise InvalidTokenError("Invalid password reset token")

        if account.reset_password_token_expiry is None or account.reset_password_token_expiry < datetime.utcnow():
            account.reset_password_token = None
            account.reset_password_token_expiry = None
            self.session.commit()
            raise InvalidTokenError("Password reset token has expired")

        if not new_password or len(new_password) < MIN_PASSWORD_LENGTH:
            raise InvalidPasswordError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")

        account.password_hash = get_password_hash(new_password)
        account.reset_password_token = None
        account.reset_password_token_expiry = None
        self.session.commit()

        logger.info(f"Password reset completed for {account.email}")
