"""
Per-request caller identity.

Routes resolve the caller once (see api.dependencies.get_current_user) and
pass this value into every service call that needs to authorize.
"""

from dataclasses import dataclass

from ..storage.models import Account


@dataclass(frozen=True)
class AuthenticatedUser:
    """Claims about the caller of the current request."""

    id: int
    email: str
    name: str
    is_game_owner: bool = False

    @classmethod
    def from_account(cls, account: Account) -> "AuthenticatedUser":
        return cls(
            id=account.id,
            email=account.email,
            name=account.name,
            is_game_owner=bool(account.is_game_owner),
        )
