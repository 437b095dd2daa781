"""
Account Service

Account creation, profile updates, promotion to game owner and deletion.
"""

from typing import Optional

from loguru import logger
from sqlalchemy.orm import Session

from ..exceptions import (
    ForbiddenError,
    InvalidOperationError,
    InvalidPasswordError,
    NotFoundError,
    ValidationError,
)
from ..security import get_password_hash, verify_password
from ..storage.account_repository import AccountRepository
from ..storage.models import Account, Event
from ..storage.registration_repository import RegistrationRepository
from .cascade import CascadeDeleter
from .context import AuthenticatedUser


class AccountService:
    """Business rules for accounts."""

    def __init__(self, session: Session):
        self.session = session
        self.accounts = AccountRepository(session)
        self.registrations = RegistrationRepository(session)

    def _get_by_email(self, email: str) -> Account:
        account = self.accounts.get_by_email(email)
        if account is None:
            raise NotFoundError("Account", email)
        return account

    def _require_self(self, actor: AuthenticatedUser, email: str, action: str) -> None:
        if actor.email != email:
            raise ForbiddenError(f"Access denied: You can only {action} your own account.")

    def get_account(self, account_id: int) -> Account:
        account = self.accounts.get(account_id)
        if account is None:
            raise NotFoundError("Account", account_id)
        return account

    def get_account_by_email(self, email: str) -> Account:
        return self._get_by_email(email)

    def search_accounts(self, name: str) -> list[Account]:
        if not name or not name.strip():
            raise ValidationError("Search text cannot be empty")
        return self.accounts.search_by_name(name.strip())

    def create_account(
        self,
        email: str,
        username: str,
        password: str,
        game_owner: bool = False,
    ) -> Account:
        """
        Register a new account.

        Raises:
            ValidationError: Missing fields, or email/username already taken
        """
        if not email or not username or not password:
            raise ValidationError("Email, username and password are required")
        if self.accounts.get_by_email(email) is not None:
            raise ValidationError("Invalid email: an account with this email already exists")
        if self.accounts.get_by_name(username) is not None:
            raise ValidationError("Invalid username: an account with this username already exists")

        account = Account(
            name=username,
            email=email,
            password_hash=get_password_hash(password),
            is_game_owner=game_owner,
        )
        self.accounts.add(account)
        self.session.commit()

        logger.info(f"Created account {email} (game owner: {game_owner})")
        return account

    def update_account(
        self,
        actor: AuthenticatedUser,
        email: str,
        username: str,
        password: str,
        new_password: Optional[str] = None,
    ) -> Account:
        """Change the username and optionally the password. The current password must match."""
        account = self._get_by_email(email)
        self._require_self(actor, email, "update")

        if not verify_password(password, account.password_hash):
            raise InvalidPasswordError("Current password is incorrect")

        if username and username != account.name:
            existing = self.accounts.get_by_name(username)
            if existing is not None and existing.id != account.id:
                raise ValidationError("Invalid username: an account with this username already exists")
            account.name = username

        if new_password:
            account.password_hash = get_password_hash(new_password)

        self.session.commit()
        logger.info(f"Updated account {email}")
        return account

    def delete_account(self, actor: AuthenticatedUser, email: str) -> None:
        account = self._get_by_email(email)
        self._require_self(actor, email, "delete")

        CascadeDeleter(self.session).delete_account(account)
        self.session.commit()

    def get_account_info(self, actor: AuthenticatedUser, email: str) -> tuple[Account, list[Event]]:
        """Profile summary: the account and the events it is registered for."""
        account = self._get_by_email(email)
        self._require_self(actor, email, "view")

        events = [registration.event for registration in self.registrations.list_by_attendee(account.id)]
        return account, events

    def promote_to_game_owner(self, actor: AuthenticatedUser, email: str) -> Account:
        """Grant the game-owner capability. Existing data needs no migration."""
        account = self._get_by_email(email)
        self._require_self(actor, email, "upgrade")

        if account.is_game_owner:
            raise InvalidOperationError("Account is already a game owner")

        account.is_game_owner = True
        self.session.commit()

        logger.info(f"Promoted {email} to game owner")
        return account
