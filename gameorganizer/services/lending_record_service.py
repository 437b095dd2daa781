"""
Lending Record Service

Lifecycle of lending records created from approved borrow requests.

States run ACTIVE -> OVERDUE -> PENDING_RETURN -> CLOSED. A record may skip
states but never moves backwards, and CLOSED is terminal:

- the borrower marks a game returned: ACTIVE/OVERDUE -> PENDING_RETURN
- the owner confirms the return: any open state -> CLOSED, with damage assessment
- the owner may move a record forward manually, giving a reason

Overdue is derived on read (end date passed while ACTIVE); no timer job
rewrites stored status.
"""

import math
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from loguru import logger
from sqlalchemy.orm import Session

from ..exceptions import (
    ForbiddenError,
    InvalidOperationError,
    NotFoundError,
    ValidationError,
)
from ..storage.borrow_request_repository import BorrowRequestRepository
from ..storage.lending_record_repository import SORT_COLUMNS, LendingRecordRepository
from ..storage.models import (
    DAMAGE_SEVERITY_LABELS,
    BorrowRequestStatus,
    GameInstance,
    LendingRecord,
    LendingStatus,
)
from .context import AuthenticatedUser


ALLOWED_TRANSITIONS = {
    LendingStatus.ACTIVE: {LendingStatus.OVERDUE, LendingStatus.PENDING_RETURN, LendingStatus.CLOSED},
    LendingStatus.OVERDUE: {LendingStatus.PENDING_RETURN, LendingStatus.CLOSED},
    LendingStatus.PENDING_RETURN: {LendingStatus.CLOSED},
    LendingStatus.CLOSED: set(),
}

RETURN_AWAITING_CONFIRMATION = "Game marked as returned by borrower, awaiting owner confirmation"
CLOSED_RECORD_MESSAGE = "Cannot change status of a closed lending record"


def parse_lending_status(value: str) -> LendingStatus:
    try:
        return LendingStatus(value.upper())
    except (AttributeError, ValueError):
        raise ValidationError(f"Invalid lending status: {value}")


@dataclass
class RecordPage:
    """One page of lending records."""

    records: list[LendingRecord]
    current_page: int
    total_items: int
    total_pages: int


@dataclass
class ReturnConfirmation:
    """Result of an owner confirming a return."""

    record: LendingRecord
    return_time: datetime

    @property
    def severity_label(self) -> Optional[str]:
        if not self.record.is_damaged:
            return None
        return DAMAGE_SEVERITY_LABELS.get(self.record.damage_severity, "Unknown")


class LendingRecordService:
    """Business rules for lending records."""

    def __init__(self, session: Session):
        self.session = session
        self.records = LendingRecordRepository(session)
        self.requests = BorrowRequestRepository(session)

    # =========================================================================
    # Helpers
    # =========================================================================

    def _get(self, record_id: int) -> LendingRecord:
        record = self.records.get(record_id)
        if record is None:
            raise NotFoundError("LendingRecord", record_id)
        return record

    @staticmethod
    def _require_owner(actor: AuthenticatedUser, record: LendingRecord, message: str) -> None:
        if record.record_owner_id != actor.id:
            raise ForbiddenError(message)

    @staticmethod
    def _require_party(actor: AuthenticatedUser, record: LendingRecord) -> None:
        borrower = record.borrower
        if record.record_owner_id != actor.id and (borrower is None or borrower.id != actor.id):
            raise ForbiddenError("Access denied: You are not a party to this lending record.")

    @staticmethod
    def _page(records: list[LendingRecord], total: int, page: int, size: int) -> RecordPage:
        return RecordPage(
            records=records,
            current_page=page,
            total_items=total,
            total_pages=math.ceil(total / size) if size else 0,
        )

    @staticmethod
    def _validate_paging(page: int, size: int, sort: str, direction: str) -> None:
        if page < 0:
            raise ValidationError("Page index must not be negative")
        if size < 1:
            raise ValidationError("Page size must be at least 1")
        if sort not in SORT_COLUMNS:
            raise ValidationError(f"Cannot sort lending records by '{sort}'")
        if direction not in ("asc", "desc"):
            raise ValidationError("Sort direction must be 'asc' or 'desc'")

    # =========================================================================
    # Creation
    # =========================================================================

    def create_lending_record(
        self,
        actor: AuthenticatedUser,
        request_id: int,
        start_date: datetime,
        end_date: datetime,
    ) -> LendingRecord:
        """
        Create a record for an approved request directly.

        The record owner is always the requested game's owner, and each
        request yields at most one record.
        """
        request = self.requests.get(request_id)
        if request is None:
            raise NotFoundError("BorrowRequest", request_id)
        if request.status != BorrowRequestStatus.APPROVED.value:
            raise InvalidOperationError("Lending records can only be created for approved requests")

        game = request.requested_game
        if game is None or game.owner_id != actor.id:
            raise ForbiddenError("The record owner must be the owner of the requested game")
        if self.records.get_by_request_id(request_id) is not None:
            raise InvalidOperationError("A lending record already exists for this borrow request")
        if start_date is None or end_date is None:
            raise ValidationError("Start and end dates are required")
        if end_date < start_date:
            raise ValidationError("End date cannot be before start date")

        record = self.records.add(
            LendingRecord(
                start_date=start_date,
                end_date=end_date,
                status=LendingStatus.ACTIVE.value,
                record_owner_id=actor.id,
                request_id=request_id,
                last_modified_date=datetime.utcnow(),
                last_modified_by_id=actor.id,
                status_change_reason="Initial record creation",
            )
        )
        self.session.commit()

        logger.info(f"Lending record {record.id} created for request {request_id}")
        return record

    # =========================================================================
    # Transitions
    # =========================================================================

    def update_status(
        self,
        actor: AuthenticatedUser,
        record_id: int,
        new_status: str,
        reason: Optional[str],
    ) -> LendingRecord:
        """
        Move a record forward manually.

        Raises:
            InvalidOperationError: Record is closed, or the move goes backwards
            ValidationError: Unknown status or missing reason
        """
        record = self._get(record_id)
        self._require_owner(actor, record, "Only the record owner can change its status")

        current = LendingStatus(record.status)
        if current == LendingStatus.CLOSED:
            raise InvalidOperationError(CLOSED_RECORD_MESSAGE)

        target = parse_lending_status(new_status)
        if target == current:
            return record

        if not reason or not reason.strip():
            raise ValidationError("A reason is required to change the status of a lending record")

        if target not in ALLOWED_TRANSITIONS[current]:
            raise InvalidOperationError(f"Cannot change status from {current.value} to {target.value}")

        if target == LendingStatus.CLOSED:
            record.record_closing(actor.id, reason.strip())
        else:
            record.status = target.value
            record.touch(actor.id, reason.strip())

        self.session.commit()
        logger.info(f"Lending record {record_id}: {current.value} -> {target.value} by {actor.email}")
        return record

    def mark_returned(self, actor: AuthenticatedUser, record_id: int) -> LendingRecord:
        """Borrower reports the game handed back; the owner still has to confirm."""
        record = self._get(record_id)
        borrower = record.borrower
        if borrower is None or borrower.id != actor.id:
            raise ForbiddenError("Only the borrower can mark this game as returned")

        current = LendingStatus(record.status)
        if current == LendingStatus.CLOSED:
            raise InvalidOperationError(CLOSED_RECORD_MESSAGE)
        if current == LendingStatus.PENDING_RETURN:
            raise InvalidOperationError("Game has already been marked as returned")

        record.status = LendingStatus.PENDING_RETURN.value
        record.touch(actor.id, RETURN_AWAITING_CONFIRMATION)
        self.session.commit()

        logger.info(f"Lending record {record_id} marked returned by {actor.email}")
        return record

    def confirm_return(
        self,
        actor: AuthenticatedUser,
        record_id: int,
        is_damaged: bool = False,
        damage_notes: Optional[str] = None,
        damage_severity: int = 0,
    ) -> ReturnConfirmation:
        """Owner confirms the game came back, recording any damage, and closes the record."""
        record = self._get(record_id)
        self._require_owner(actor, record, "Only the record owner can confirm the return")

        if record.status == LendingStatus.CLOSED.value:
            raise InvalidOperationError("Lending record is already closed")
        if is_damaged and not 0 <= damage_severity <= 3:
            raise ValidationError("Damage severity must be between 0 and 3")

        if is_damaged:
            record.record_damage(True, damage_notes, damage_severity)
            reason = f"Returned with damage (severity {damage_severity})"
        else:
            reason = "Returned in good condition"

        record.record_closing(actor.id, reason)

        instance: Optional[GameInstance] = record.request.game_instance if record.request else None
        if instance is not None and not instance.available:
            instance.available = True

        self.session.commit()
        logger.info(f"Return confirmed for lending record {record_id} (damaged: {is_damaged})")
        return ReturnConfirmation(record=record, return_time=datetime.utcnow())

    def update_end_date(self, actor: AuthenticatedUser, record_id: int, new_end_date: datetime) -> LendingRecord:
        record = self._get(record_id)
        self._require_owner(actor, record, "Only the record owner can change the end date")

        if record.status == LendingStatus.CLOSED.value:
            raise InvalidOperationError("Cannot update end date of a closed lending record")
        if new_end_date is None or new_end_date < record.start_date:
            raise ValidationError("New end date cannot be before start date")

        record.end_date = new_end_date
        record.touch(actor.id, "End date updated")
        self.session.commit()
        return record

    def delete_lending_record(self, actor: AuthenticatedUser, record_id: int) -> None:
        record = self._get(record_id)
        self._require_owner(actor, record, "Only the record owner can delete it")

        if record.status == LendingStatus.ACTIVE.value:
            raise InvalidOperationError("Cannot delete an active lending record")

        self.records.delete(record)
        self.session.commit()
        logger.info(f"Lending record {record_id} deleted by {actor.email}")

    # =========================================================================
    # Queries
    # =========================================================================

    def get_lending_record(self, actor: AuthenticatedUser, record_id: int) -> LendingRecord:
        record = self._get(record_id)
        self._require_party(actor, record)
        return record

    def get_by_request_id(self, actor: AuthenticatedUser, request_id: int) -> LendingRecord:
        record = self.records.get_by_request_id(request_id)
        if record is None:
            raise NotFoundError("LendingRecord", f"request {request_id}")
        self._require_party(actor, record)
        return record

    def list_records(self, page: int = 0, size: int = 10, sort: str = "id", direction: str = "asc") -> RecordPage:
        self._validate_paging(page, size, sort, direction)
        records, total = self.records.list_page(page, size, sort, direction)
        return self._page(records, total, page, size)

    def list_by_owner(
        self,
        owner_id: int,
        page: int = 0,
        size: int = 10,
        sort: str = "id",
        direction: str = "asc",
    ) -> RecordPage:
        self._validate_paging(page, size, sort, direction)
        records, total = self.records.list_page_by_owner(owner_id, page, size, sort, direction)
        return self._page(records, total, page, size)

    def list_by_owner_and_status(self, owner_id: int, status: str) -> list[LendingRecord]:
        return self.records.list_by_owner_and_status(owner_id, parse_lending_status(status))

    def list_by_owner_in_range(self, owner_id: int, start_date: datetime, end_date: datetime) -> list[LendingRecord]:
        if end_date < start_date:
            raise ValidationError("End date cannot be before start date")
        return self.records.list_by_owner_in_range(owner_id, start_date, end_date)

    def list_by_borrower(self, borrower_id: int) -> list[LendingRecord]:
        return self.records.list_by_borrower(borrower_id)

    def list_active_by_borrower(self, borrower_id: int) -> list[LendingRecord]:
        return self.records.list_active_by_borrower(borrower_id)

    def list_overdue(self, owner_id: Optional[int] = None) -> list[LendingRecord]:
        return self.records.list_overdue(datetime.utcnow(), owner_id=owner_id)

    def filter_records(
        self,
        from_date: Optional[datetime] = None,
        to_date: Optional[datetime] = None,
        status: Optional[str] = None,
        borrower_id: Optional[int] = None,
        game_id: Optional[int] = None,
        page: int = 0,
        size: int = 10,
        sort: str = "id",
        direction: str = "asc",
    ) -> RecordPage:
        self._validate_paging(page, size, sort, direction)
        if from_date is not None and to_date is not None and to_date < from_date:
            raise ValidationError("'to' date cannot be before 'from' date")

        records, total = self.records.filter_page(
            from_date=from_date,
            to_date=to_date,
            status=parse_lending_status(status) if status else None,
            borrower_id=borrower_id,
            game_id=game_id,
            page=page,
            size=size,
            sort=sort,
            direction=direction,
        )
        return self._page(records, total, page, size)

    def can_review(self, actor: AuthenticatedUser, game_id: int) -> bool:
        return self.records.has_closed_record_for_game(actor.id, game_id)
