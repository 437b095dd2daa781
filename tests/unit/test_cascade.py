"""
Unit tests for cascading deletes of games, instances and accounts.
"""

from datetime import datetime, timedelta

import pytest

from gameorganizer.exceptions import ForbiddenError
from gameorganizer.services import (
    AccountService,
    BorrowRequestService,
    EventService,
    GameService,
    LendingRecordService,
    RegistrationService,
    ReviewService,
)
from gameorganizer.storage.models import (
    Account,
    BorrowRequest,
    Event,
    Game,
    GameInstance,
    LendingRecord,
    Registration,
    Review,
)


def count(session, model) -> int:
    return session.query(model).count()


@pytest.fixture
def populated(db_session, owner, borrower, other_borrower, game, instance, period):
    """
    One game with a closed lending, a review, a pending request and an event
    with one registration.
    """
    requests = BorrowRequestService(db_session)
    done = requests.create_borrow_request(borrower, game.id, period[0], period[1], game_instance_id=instance.id)
    requests.update_status(owner, done.id, "APPROVED")
    records = LendingRecordService(db_session)
    records.confirm_return(owner, records.get_by_request_id(owner, done.id).id)

    ReviewService(db_session).submit_review(borrower, game.id, 5, "Classic")

    requests.create_borrow_request(
        other_borrower,
        game.id,
        period[1] + timedelta(days=1),
        period[1] + timedelta(days=4),
        game_instance_id=instance.id,
    )

    event = EventService(db_session).create_event(
        owner,
        title="Catan league",
        date_time=datetime.utcnow() + timedelta(days=10),
        location="Library",
        description="Round one",
        max_participants=4,
        featured_game_id=game.id,
        game_instance_id=instance.id,
    )
    RegistrationService(db_session).register(other_borrower, event.id)
    return event


class TestDeleteGame:

    def test_removes_everything_that_references_the_game(self, db_session, owner, game, populated):
        assert count(db_session, LendingRecord) == 1
        assert count(db_session, Registration) == 1

        GameService(db_session).delete_game(owner, game.id)

        for model in (Game, GameInstance, BorrowRequest, LendingRecord, Review, Event, Registration):
            assert count(db_session, model) == 0, model.__name__
        # Accounts survive
        assert count(db_session, Account) == 3

    def test_non_owner_cannot_delete(self, db_session, borrower, game, populated):
        with pytest.raises(ForbiddenError):
            GameService(db_session).delete_game(borrower, game.id)

        assert count(db_session, Game) == 1


class TestDeleteInstance:

    def test_removes_requests_and_detaches_events(self, db_session, owner, game, instance, populated):
        GameService(db_session).delete_instance(owner, game.id, instance.id)

        assert count(db_session, GameInstance) == 0
        assert count(db_session, BorrowRequest) == 0
        assert count(db_session, LendingRecord) == 0

        db_session.refresh(populated)
        assert populated.game_instance_id is None
        assert count(db_session, Game) == 1


class TestDeleteEvent:

    def test_registrations_go_with_the_event(self, db_session, owner, populated):
        EventService(db_session).delete_event(owner, populated.id)

        assert count(db_session, Event) == 0
        assert count(db_session, Registration) == 0


class TestDeleteAccount:

    def test_owner_takes_their_catalog_along(self, db_session, owner, populated):
        AccountService(db_session).delete_account(owner, owner.email)

        for model in (Game, GameInstance, BorrowRequest, LendingRecord, Review, Event, Registration):
            assert count(db_session, model) == 0, model.__name__
        assert count(db_session, Account) == 2

    def test_borrower_takes_requests_and_reviews(self, db_session, borrower, game, populated):
        AccountService(db_session).delete_account(borrower, borrower.email)

        assert count(db_session, Review) == 0
        assert count(db_session, LendingRecord) == 0
        # The other borrower's pending request and registration remain
        assert count(db_session, BorrowRequest) == 1
        assert count(db_session, Registration) == 1
        assert count(db_session, Game) == 1

    def test_attendee_frees_the_seat(self, db_session, other_borrower, populated):
        assert populated.current_number_participants == 1

        AccountService(db_session).delete_account(other_borrower, other_borrower.email)

        db_session.refresh(populated)
        assert populated.current_number_participants == 0
        assert count(db_session, Registration) == 0

    def test_only_self_can_delete(self, db_session, owner, borrower, populated):
        with pytest.raises(ForbiddenError):
            AccountService(db_session).delete_account(borrower, owner.email)
