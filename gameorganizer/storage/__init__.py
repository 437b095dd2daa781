"""
Storage Module for the Game Organizer

Relational persistence through SQLAlchemy:
- ORM models for accounts, catalog, lending, events and reviews
- One repository per aggregate, bound to a request-scoped session
- Database-side pagination and conflict queries
"""

from gameorganizer.storage.models import (
    Base,
    Account,
    Game,
    GameInstance,
    BorrowRequest,
    BorrowRequestStatus,
    LendingRecord,
    LendingStatus,
    Event,
    Registration,
    Review,
    DAMAGE_SEVERITY_LABELS,
)
from gameorganizer.storage.account_repository import AccountRepository
from gameorganizer.storage.game_repository import (
    GameRepository,
    GameInstanceRepository,
    GameSearchCriteria,
)
from gameorganizer.storage.borrow_request_repository import BorrowRequestRepository
from gameorganizer.storage.lending_record_repository import LendingRecordRepository
from gameorganizer.storage.event_repository import EventRepository
from gameorganizer.storage.registration_repository import RegistrationRepository
from gameorganizer.storage.review_repository import ReviewRepository

__all__ = [
    # Models
    "Base",
    "Account",
    "Game",
    "GameInstance",
    "BorrowRequest",
    "BorrowRequestStatus",
    "LendingRecord",
    "LendingStatus",
    "Event",
    "Registration",
    "Review",
    "DAMAGE_SEVERITY_LABELS",
    # Repositories
    "AccountRepository",
    "GameRepository",
    "GameInstanceRepository",
    "GameSearchCriteria",
    "BorrowRequestRepository",
    "LendingRecordRepository",
    "EventRepository",
    "RegistrationRepository",
    "ReviewRepository",
]
