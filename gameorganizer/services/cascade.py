"""
Explicit cascade deletes.

Each method removes dependents before the parent row so that the result is
the same whether or not the database enforces foreign keys. Nothing here
commits; the calling service owns the transaction.
"""

from loguru import logger
from sqlalchemy.orm import Session

from ..storage.models import Account, BorrowRequest, Event, Game, GameInstance, Registration
from ..storage.borrow_request_repository import BorrowRequestRepository
from ..storage.event_repository import EventRepository
from ..storage.game_repository import GameRepository, GameInstanceRepository
from ..storage.lending_record_repository import LendingRecordRepository
from ..storage.registration_repository import RegistrationRepository
from ..storage.review_repository import ReviewRepository


class CascadeDeleter:
    """Deletes an aggregate together with everything that references it."""

    def __init__(self, session: Session):
        self.session = session
        self.games = GameRepository(session)
        self.instances = GameInstanceRepository(session)
        self.requests = BorrowRequestRepository(session)
        self.records = LendingRecordRepository(session)
        self.events = EventRepository(session)
        self.registrations = RegistrationRepository(session)
        self.reviews = ReviewRepository(session)

    def delete_borrow_request(self, request: BorrowRequest) -> None:
        record = self.records.get_by_request_id(request.id)
        if record is not None:
            self.records.delete(record)
        self.requests.delete(request)

    def delete_registration(self, registration: Registration) -> None:
        event_id = registration.event_id
        self.registrations.delete(registration)
        self.events.release_seat(event_id)

    def delete_event(self, event: Event) -> None:
        registrations = self.registrations.list_by_event(event.id)
        if registrations:
            logger.info(f"Deleting {len(registrations)} registrations for event {event.id}")
        for registration in registrations:
            self.registrations.delete(registration)
        self.events.delete(event)

    def delete_instance(self, instance: GameInstance) -> None:
        for request in self.requests.list_by_instance(instance.id):
            self.delete_borrow_request(request)
        for event in self.events.list_by_instance(instance.id):
            event.game_instance_id = None
        self.instances.delete(instance)

    def delete_game(self, game: Game) -> None:
        events = self.events.list_by_game(game.id)
        requests = self.requests.list_by_game(game.id)
        instances = self.instances.list_by_game(game.id)
        reviews = self.reviews.list_by_game(game.id)

        logger.info(
            f"Cascading delete of game {game.id}: {len(events)} events, "
            f"{len(requests)} borrow requests, {len(instances)} instances, {len(reviews)} reviews"
        )

        for event in events:
            self.delete_event(event)
        for request in requests:
            self.delete_borrow_request(request)
        for instance in instances:
            self.instances.delete(instance)
        for review in reviews:
            self.reviews.delete(review)

        self.games.delete(game)

    def delete_account(self, account: Account) -> None:
        for game in self.games.list_by_owner(account.id):
            self.delete_game(game)
        for instance in self.instances.list_by_owner(account.id):
            self.delete_instance(instance)
        for event in self.events.list_by_host(account.id):
            self.delete_event(event)
        for registration in self.registrations.list_by_attendee(account.id):
            self.delete_registration(registration)
        for request in self.requests.list_by_requester(account.id):
            self.delete_borrow_request(request)
        for review in self.reviews.list_by_reviewer(account.id):
            self.reviews.delete(review)

        logger.info(f"Deleting account {account.email}")
        self.session.delete(account)
        self.session.flush()
