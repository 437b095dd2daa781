"""
Account Repository

Lookup and persistence for accounts and password reset tokens.
"""

from typing import Optional

from sqlalchemy.orm import Session

from .models import Account


class AccountRepository:
    """Data access for Account rows within a request-scoped session."""

    def __init__(self, session: Session):
        self.session = session

    def get(self, account_id: int) -> Optional[Account]:
        return self.session.get(Account, account_id)

    def get_by_email(self, email: str) -> Optional[Account]:
        return self.session.query(Account).filter(Account.email == email).first()

    def get_by_name(self, name: str) -> Optional[Account]:
        return self.session.query(Account).filter(Account.name == name).first()

    def get_by_reset_token(self, token: str) -> Optional[Account]:
        return self.session.query(Account).filter(
            Account.reset_password_token == token,
        ).first()

    def search_by_name(self, fragment: str, limit: int = 50) -> list[Account]:
        """Case-insensitive substring match on the account name."""
        return (
            self.session.query(Account)
            .filter(Account.name.ilike(f"%{fragment}%"))
            .order_by(Account.name.asc())
            .limit(limit)
            .all()
        )

    def add(self, account: Account) -> Account:
        self.session.add(account)
        self.session.flush()
        return account

    def delete(self, account: Account) -> None:
        self.session.delete(account)
        self.session.flush()
