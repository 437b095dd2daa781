"""
Borrow Request Service

Creation, approval and decline of borrow requests.

Design Decisions:
1. Overlap uses half-open intervals: [start, end) against approved bookings
2. A game-level booking blocks every copy; a copy booking blocks game-level
   requests and later requests for that copy
3. Approval re-checks overlap and advances Game.reservation_version with a
   compare-and-set, so two interleaved approvals cannot both commit
4. Approval and lending record creation share one transaction
"""

from datetime import datetime
from typing import Optional

from loguru import logger
from sqlalchemy.orm import Session

from ..exceptions import (
    ConflictError,
    ForbiddenError,
    InvalidOperationError,
    NotFoundError,
    ValidationError,
)
from ..storage.borrow_request_repository import BorrowRequestRepository
from ..storage.game_repository import GameInstanceRepository, GameRepository
from ..storage.lending_record_repository import LendingRecordRepository
from ..storage.models import (
    BorrowRequest,
    BorrowRequestStatus,
    Game,
    GameInstance,
    LendingRecord,
    LendingStatus,
)
from .cascade import CascadeDeleter
from .context import AuthenticatedUser


UNAVAILABLE_MESSAGE = "Game instance is unavailable for the requested period."


def parse_request_status(value: str) -> BorrowRequestStatus:
    try:
        return BorrowRequestStatus(value.upper())
    except (AttributeError, ValueError):
        raise ValidationError("Invalid status.")


class BorrowRequestService:
    """Business rules for borrow requests."""

    def __init__(self, session: Session):
        self.session = session
        self.requests = BorrowRequestRepository(session)
        self.games = GameRepository(session)
        self.instances = GameInstanceRepository(session)
        self.records = LendingRecordRepository(session)

    # =========================================================================
    # Helpers
    # =========================================================================

    def _get(self, request_id: int) -> BorrowRequest:
        request = self.requests.get(request_id)
        if request is None:
            raise NotFoundError("BorrowRequest", request_id)
        return request

    @staticmethod
    def _is_owner(actor: AuthenticatedUser, request: BorrowRequest) -> bool:
        if request.requested_game is not None and request.requested_game.owner_id == actor.id:
            return True
        return request.game_instance is not None and request.game_instance.owner_id == actor.id

    @staticmethod
    def _validate_period(start_date: datetime, end_date: datetime) -> None:
        if start_date is None or end_date is None:
            raise ValidationError("Start and end dates are required.")
        if end_date <= start_date:
            raise ValidationError("End date must be after start date.")

    def _ensure_free(
        self,
        game_id: int,
        instance_id: Optional[int],
        start_date: datetime,
        end_date: datetime,
        exclude_id: Optional[int] = None,
    ) -> None:
        conflicts = self.requests.find_overlapping_approved(
            game_id, instance_id, start_date, end_date, exclude_id=exclude_id
        )
        if conflicts:
            logger.warning(
                f"Borrow period {start_date} - {end_date} for game {game_id} "
                f"(instance {instance_id}) overlaps approved request {conflicts[0].id}"
            )
            raise ValidationError(UNAVAILABLE_MESSAGE)

    # =========================================================================
    # Create / Update / Delete
    # =========================================================================

    def create_borrow_request(
        self,
        actor: AuthenticatedUser,
        game_id: int,
        start_date: datetime,
        end_date: datetime,
        game_instance_id: Optional[int] = None,
    ) -> BorrowRequest:
        """
        Create a PENDING borrow request.

        Raises:
            ValidationError: Unknown game, bad period, own copy, or overlap
            NotFoundError: Unknown instance
        """
        game: Optional[Game] = self.games.get(game_id)
        if game is None:
            raise ValidationError("Game not found.")
        self._validate_period(start_date, end_date)

        instance: Optional[GameInstance] = None
        if game_instance_id is not None:
            instance = self.instances.get(game_instance_id)
            if instance is None:
                raise NotFoundError("GameInstance", game_instance_id)
            if instance.game_id != game.id:
                raise ValidationError("Game instance does not belong to the requested game.")
            if instance.owner_id == actor.id:
                raise ValidationError("You cannot request your own game instance.")
        elif game.owner_id == actor.id:
            raise ValidationError("You cannot request your own game.")

        self._ensure_free(game.id, game_instance_id, start_date, end_date)

        request = self.requests.add(
            BorrowRequest(
                start_date=start_date,
                end_date=end_date,
                status=BorrowRequestStatus.PENDING.value,
                request_date=datetime.utcnow(),
                requested_game_id=game.id,
                game_instance_id=game_instance_id,
                requester_id=actor.id,
            )
        )
        self.session.commit()

        logger.info(f"Borrow request {request.id} created by {actor.email} for game {game.id}")
        return request

    def update_status(self, actor: AuthenticatedUser, request_id: int, new_status: str) -> BorrowRequest:
        """
        Approve or decline a PENDING request.

        Approval creates the ACTIVE lending record in the same transaction.

        Raises:
            NotFoundError: Unknown request
            ForbiddenError: Caller does not own the game or the requested copy
            ValidationError: Status other than APPROVED/DECLINED, or the period is taken
            InvalidOperationError: Request already answered
            ConflictError: Another approval for the same game committed first
        """
        request = self._get(request_id)
        if not self._is_owner(actor, request):
            raise ForbiddenError("Only the game owner can approve or decline this request.")

        status = parse_request_status(new_status)
        if status not in (BorrowRequestStatus.APPROVED, BorrowRequestStatus.DECLINED):
            raise ValidationError("Invalid status.")

        if request.status != BorrowRequestStatus.PENDING.value:
            raise InvalidOperationError(f"Borrow request has already been {request.status.lower()}.")

        if status == BorrowRequestStatus.APPROVED:
            self._approve(actor, request)
        else:
            request.status = BorrowRequestStatus.DECLINED.value
            request.responder_id = actor.id

        self.session.commit()
        logger.info(f"Borrow request {request_id} {status.value.lower()} by {actor.email}")
        return request

    def _approve(self, actor: AuthenticatedUser, request: BorrowRequest) -> None:
        game = request.requested_game
        if game is None or game.owner_id is None:
            raise ValidationError("Game has no owner; the request cannot be approved.")

        seen_version = game.reservation_version

        self._ensure_free(
            game.id,
            request.game_instance_id,
            request.start_date,
            request.end_date,
            exclude_id=request.id,
        )

        if not self.games.advance_reservation_version(game.id, seen_version):
            logger.warning(f"Concurrent approval detected for game {game.id}; rejecting request {request.id}")
            raise ConflictError(
                "The game was booked concurrently; reload and try again.",
                detail=f"reservation_version {seen_version} is stale",
            )
        self.session.expire(game, ["reservation_version"])

        request.status = BorrowRequestStatus.APPROVED.value
        request.responder_id = actor.id

        self.records.add(
            LendingRecord(
                start_date=request.start_date,
                end_date=request.end_date,
                status=LendingStatus.ACTIVE.value,
                record_owner_id=game.owner_id,
                request_id=request.id,
                last_modified_date=datetime.utcnow(),
                last_modified_by_id=actor.id,
                status_change_reason="Initial record creation",
            )
        )

    def update_request_details(
        self,
        actor: AuthenticatedUser,
        request_id: int,
        start_date: datetime,
        end_date: datetime,
    ) -> BorrowRequest:
        """Change the period of the caller's own PENDING request."""
        request = self._get(request_id)
        if request.requester_id != actor.id:
            raise ForbiddenError("You can only modify your own borrow requests.")
        if request.status != BorrowRequestStatus.PENDING.value:
            raise InvalidOperationError("Only pending borrow requests can be modified.")

        self._validate_period(start_date, end_date)
        self._ensure_free(
            request.requested_game_id,
            request.game_instance_id,
            start_date,
            end_date,
            exclude_id=request.id,
        )

        request.start_date = start_date
        request.end_date = end_date
        self.session.commit()
        return request

    def delete_borrow_request(self, actor: AuthenticatedUser, request_id: int) -> None:
        request = self._get(request_id)
        if request.requester_id != actor.id and not self._is_owner(actor, request):
            raise ForbiddenError("Access denied: You cannot delete this borrow request.")

        CascadeDeleter(self.session).delete_borrow_request(request)
        self.session.commit()
        logger.info(f"Borrow request {request_id} deleted by {actor.email}")

    # =========================================================================
    # Queries
    # =========================================================================

    def get_borrow_request(self, actor: AuthenticatedUser, request_id: int) -> BorrowRequest:
        request = self._get(request_id)
        if request.requester_id != actor.id and not self._is_owner(actor, request):
            raise ForbiddenError("Access denied: You cannot view this borrow request.")
        return request

    def list_visible(self, actor: AuthenticatedUser) -> list[BorrowRequest]:
        return self.requests.list_visible_to(actor.id)

    def list_by_status(self, status: str) -> list[BorrowRequest]:
        return self.requests.list_by_status(parse_request_status(status))

    def list_by_requester(self, requester_id: int) -> list[BorrowRequest]:
        return self.requests.list_by_requester(requester_id)

    def list_by_owner(self, owner_id: int) -> list[BorrowRequest]:
        return self.requests.list_by_owner(owner_id)
