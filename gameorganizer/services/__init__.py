"""
Business services for the Game Organizer.

Each service wraps one request-scoped SQLAlchemy session, enforces the
authorization and workflow rules for its aggregate and owns the commit.
"""

from gameorganizer.services.context import AuthenticatedUser
from gameorganizer.services.account_service import AccountService
from gameorganizer.services.auth_service import AuthService, LoginResult
from gameorganizer.services.game_service import GameService
from gameorganizer.services.borrow_request_service import BorrowRequestService
from gameorganizer.services.lending_record_service import (
    LendingRecordService,
    RecordPage,
    ReturnConfirmation,
)
from gameorganizer.services.event_service import EventService
from gameorganizer.services.registration_service import RegistrationService
from gameorganizer.services.review_service import ReviewService
from gameorganizer.services.cascade import CascadeDeleter

__all__ = [
    "AuthenticatedUser",
    "AccountService",
    "AuthService",
    "LoginResult",
    "GameService",
    "BorrowRequestService",
    "LendingRecordService",
    "RecordPage",
    "ReturnConfirmation",
    "EventService",
    "RegistrationService",
    "ReviewService",
    "CascadeDeleter",
]
