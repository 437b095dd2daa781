"""
Interleaved-session tests for the booking and seat guards.

Each test opens two sessions against one file-backed SQLite database and
replays a race step by step: both sessions read, one commits, then the
other tries to write with what it read earlier.
"""

from datetime import datetime, timedelta

import pytest
from sqlalchemy.orm import sessionmaker

from gameorganizer.api.dependencies import Settings
from gameorganizer.exceptions import ConflictError, ValidationError
from gameorganizer.services import (
    AccountService,
    AuthenticatedUser,
    BorrowRequestService,
    EventService,
    GameService,
    RegistrationService,
)
from gameorganizer.storage.models import BorrowRequest, BorrowRequestStatus, Event, Game


@pytest.fixture
def test_settings(tmp_path) -> Settings:
    """Same as the default test settings, but on a file so sessions don't share a connection."""
    return Settings(
        database_url=f"sqlite:///{tmp_path / 'race.db'}",
        jwt_secret_key="test-secret-key",
        environment="test",
        debug=True,
        rate_limit_enabled=False,
    )


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, expire_on_commit=False)


@pytest.fixture
def second_copy(db_session, owner, game):
    return GameService(db_session).create_instance(owner, game.id, condition="Good", name="Catan #2")


class TestApprovalRace:
    """Two owners' sessions approving requests for the same game."""

    def test_stale_version_is_rejected_then_retry_succeeds(
        self, db_session, session_factory, owner, borrower, other_borrower, game, instance, second_copy, period
    ):
        requests = BorrowRequestService(db_session)
        first = requests.create_borrow_request(borrower, game.id, period[0], period[1], game_instance_id=instance.id)
        second = requests.create_borrow_request(
            other_borrower, game.id, period[0], period[1], game_instance_id=second_copy.id
        )

        session_a = session_factory()
        session_b = session_factory()
        try:
            # B reads the game before A commits
            assert session_b.get(Game, game.id).reservation_version == 0

            BorrowRequestService(session_a).update_status(owner, first.id, "APPROVED")

            with pytest.raises(ConflictError):
                BorrowRequestService(session_b).update_status(owner, second.id, "APPROVED")
            session_b.rollback()

            retried = BorrowRequestService(session_b).update_status(owner, second.id, "APPROVED")
            assert retried.status == BorrowRequestStatus.APPROVED.value
        finally:
            session_a.close()
            session_b.close()

        db_session.expire_all()
        assert db_session.get(Game, game.id).reservation_version == 2

    def test_overlapping_approvals_yield_one_booking(
        self, db_session, session_factory, owner, borrower, other_borrower, game, instance, period
    ):
        requests = BorrowRequestService(db_session)
        first = requests.create_borrow_request(borrower, game.id, period[0], period[1], game_instance_id=instance.id)
        second = requests.create_borrow_request(
            other_borrower,
            game.id,
            period[0] + timedelta(days=2),
            period[1] + timedelta(days=2),
            game_instance_id=instance.id,
        )

        session_a = session_factory()
        session_b = session_factory()
        try:
            session_b.get(Game, game.id)

            BorrowRequestService(session_a).update_status(owner, first.id, "APPROVED")

            with pytest.raises((ValidationError, ConflictError)):
                BorrowRequestService(session_b).update_status(owner, second.id, "APPROVED")
            session_b.rollback()
        finally:
            session_a.close()
            session_b.close()

        db_session.expire_all()
        statuses = sorted(db_session.get(BorrowRequest, r.id).status for r in (first, second))
        assert statuses == [BorrowRequestStatus.APPROVED.value, BorrowRequestStatus.PENDING.value]


class TestSeatRace:
    """Two registrations racing for the last seat."""

    @pytest.fixture
    def event(self, db_session, owner, game):
        return EventService(db_session).create_event(
            owner,
            title="Catan night",
            date_time=datetime.utcnow() + timedelta(days=3),
            location="Community hall",
            description="Bring snacks",
            max_participants=1,
            featured_game_id=game.id,
        )

    def test_last_seat_goes_to_one_attendee(
        self, db_session, session_factory, borrower, other_borrower, event
    ):
        session_a = session_factory()
        session_b = session_factory()
        try:
            # Both see one free seat
            assert session_a.get(Event, event.id).current_number_participants == 0
            assert session_b.get(Event, event.id).current_number_participants == 0

            RegistrationService(session_a).register(borrower, event.id)

            with pytest.raises(ValidationError) as exc_info:
                RegistrationService(session_b).register(other_borrower, event.id)
            assert exc_info.value.message == "Event is at full capacity"
            session_b.rollback()
        finally:
            session_a.close()
            session_b.close()

        db_session.refresh(event)
        assert event.current_number_participants == 1

    def test_counter_never_goes_negative(self, db_session, borrower, event):
        registrations = RegistrationService(db_session)
        registration = registrations.register(borrower, event.id)

        # Counter drifted to zero out of band
        db_session.query(Event).filter(Event.id == event.id).update(
            {Event.current_number_participants: 0}, synchronize_session=False
        )
        db_session.commit()

        registrations.delete_registration(borrower, registration.id)

        db_session.refresh(event)
        assert event.current_number_participants == 0

    def test_cancel_frees_the_seat(self, db_session, borrower, other_borrower, event):
        registrations = RegistrationService(db_session)
        registration = registrations.register(borrower, event.id)

        with pytest.raises(ValidationError):
            registrations.register(other_borrower, event.id)

        registrations.delete_registration(borrower, registration.id)
        registrations.register(other_borrower, event.id)

        db_session.refresh(event)
        assert event.current_number_participants == 1


class TestDuplicateRegistration:

    def test_same_account_twice(self, db_session, owner, game):
        event = EventService(db_session).create_event(
            owner,
            title="Open table",
            date_time=datetime.utcnow() + timedelta(days=1),
            location="Cafe",
            description="Drop in",
            max_participants=5,
            featured_game_id=game.id,
        )
        guest = AuthenticatedUser.from_account(
            AccountService(db_session).create_account(email="guest@example.com", username="guest", password="password123")
        )
        registrations = RegistrationService(db_session)
        registrations.register(guest, event.id)

        with pytest.raises(ValidationError):
            registrations.register(guest, event.id)

        db_session.refresh(event)
        assert event.current_number_participants == 1

    def test_host_cannot_register(self, db_session, owner, game):
        event = EventService(db_session).create_event(
            owner,
            title="Host test",
            date_time=datetime.utcnow() + timedelta(days=1),
            location="Cafe",
            description="Drop in",
            max_participants=5,
            featured_game_id=game.id,
        )

        with pytest.raises(ValidationError):
            RegistrationService(db_session).register(owner, event.id)
