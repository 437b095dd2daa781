"""
Borrow Request Repository

Storage and conflict queries for borrow requests.

Overlap is half-open: [start, end) intersects [other_start, other_end)
when start < other_end and end > other_start. Back-to-back bookings
(one ending exactly when the next begins) do not conflict.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from .models import BorrowRequest, BorrowRequestStatus, Game, GameInstance


class BorrowRequestRepository:
    """Data access for BorrowRequest rows."""

    def __init__(self, session: Session):
        self.session = session

    def get(self, request_id: int) -> Optional[BorrowRequest]:
        return self.session.get(BorrowRequest, request_id)

    def _owned_by(self, owner_id: int):
        """Requests for a game the account owns or for a copy it holds."""
        return or_(
            BorrowRequest.requested_game_id.in_(
                self.session.query(Game.id).filter(Game.owner_id == owner_id)
            ),
            BorrowRequest.game_instance_id.in_(
                self.session.query(GameInstance.id).filter(GameInstance.owner_id == owner_id)
            ),
        )

    def list_visible_to(self, account_id: int) -> list[BorrowRequest]:
        """Requests the account made or is expected to answer."""
        return (
            self.session.query(BorrowRequest)
            .filter(or_(BorrowRequest.requester_id == account_id, self._owned_by(account_id)))
            .order_by(BorrowRequest.id.asc())
            .all()
        )

    def list_by_status(self, status: BorrowRequestStatus) -> list[BorrowRequest]:
        return (
            self.session.query(BorrowRequest)
            .filter(BorrowRequest.status == status.value)
            .order_by(BorrowRequest.id.asc())
            .all()
        )

    def list_by_requester(self, requester_id: int) -> list[BorrowRequest]:
        return (
            self.session.query(BorrowRequest)
            .filter(BorrowRequest.requester_id == requester_id)
            .order_by(BorrowRequest.id.asc())
            .all()
        )

    def list_by_owner(self, owner_id: int) -> list[BorrowRequest]:
        return (
            self.session.query(BorrowRequest)
            .filter(self._owned_by(owner_id))
            .order_by(BorrowRequest.id.asc())
            .all()
        )

    def list_by_game(self, game_id: int) -> list[BorrowRequest]:
        return self.session.query(BorrowRequest).filter(BorrowRequest.requested_game_id == game_id).all()

    def list_approved_for_game(self, game_id: int) -> list[BorrowRequest]:
        return (
            self.session.query(BorrowRequest)
            .filter(
                BorrowRequest.requested_game_id == game_id,
                BorrowRequest.status == BorrowRequestStatus.APPROVED.value,
            )
            .all()
        )

    def list_by_instance(self, instance_id: int) -> list[BorrowRequest]:
        return self.session.query(BorrowRequest).filter(BorrowRequest.game_instance_id == instance_id).all()

    def find_overlapping_approved(
        self,
        game_id: int,
        instance_id: Optional[int],
        start_date: datetime,
        end_date: datetime,
        exclude_id: Optional[int] = None,
    ) -> list[BorrowRequest]:
        """
        Find APPROVED requests that block the period.

        A game-level booking blocks every copy of the game, so a copy is
        checked against its own bookings plus the game-level ones, and a
        game-level request is checked against every booking on the game.

        Args:
            game_id: Requested game
            instance_id: Requested copy, or None for a game-level request
            start_date: Period start (inclusive)
            end_date: Period end (exclusive)
            exclude_id: Request to ignore, used when re-validating an existing one

        Returns:
            Conflicting requests, oldest first
        """
        query = self.session.query(BorrowRequest).filter(
            BorrowRequest.requested_game_id == game_id,
            BorrowRequest.status == BorrowRequestStatus.APPROVED.value,
            BorrowRequest.start_date < end_date,
            BorrowRequest.end_date > start_date,
        )

        if instance_id is not None:
            query = query.filter(
                or_(
                    BorrowRequest.game_instance_id == instance_id,
                    BorrowRequest.game_instance_id.is_(None),
                )
            )

        if exclude_id is not None:
            query = query.filter(BorrowRequest.id != exclude_id)

        return query.order_by(BorrowRequest.start_date.asc()).all()

    def add(self, request: BorrowRequest) -> BorrowRequest:
        self.session.add(request)
        self.session.flush()
        return request

    def delete(self, request: BorrowRequest) -> None:
        self.session.delete(request)
        self.session.flush()
