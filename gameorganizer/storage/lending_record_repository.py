"""
Lending Record Repository

Storage for lending records with database-side pagination:
- Owner, borrower, status and date-range queries
- Overdue detection (end date passed while still ACTIVE)
- Filtered listing with LIMIT/OFFSET

Design Decisions:
1. Paginated methods return (records, total_count) so callers never load full lists
2. Sorting is restricted to a whitelist of columns
3. Borrower and game filters join through the originating borrow request
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import exists, and_
from sqlalchemy.orm import Session, Query

from .models import BorrowRequest, LendingRecord, LendingStatus


SORT_COLUMNS = {
    "id": LendingRecord.id,
    "start_date": LendingRecord.start_date,
    "end_date": LendingRecord.end_date,
    "status": LendingRecord.status,
}


class LendingRecordRepository:
    """Data access for LendingRecord rows."""

    def __init__(self, session: Session):
        self.session = session

    def get(self, record_id: int) -> Optional[LendingRecord]:
        return self.session.get(LendingRecord, record_id)

    def get_by_request_id(self, request_id: int) -> Optional[LendingRecord]:
        return self.session.query(LendingRecord).filter(LendingRecord.request_id == request_id).first()

    # =========================================================================
    # Pagination
    # =========================================================================

    def _paginate(
        self,
        query: Query,
        page: int,
        size: int,
        sort: str,
        direction: str,
    ) -> tuple[list[LendingRecord], int]:
        total = query.count()

        sort_field = SORT_COLUMNS.get(sort, LendingRecord.id)
        if direction == "desc":
            query = query.order_by(sort_field.desc(), LendingRecord.id.desc())
        else:
            query = query.order_by(sort_field.asc(), LendingRecord.id.asc())

        records = query.offset(page * size).limit(size).all()
        return records, total

    def _borrowed_by(self, query: Query, borrower_id: int) -> Query:
        return query.join(BorrowRequest, LendingRecord.request_id == BorrowRequest.id).filter(
            BorrowRequest.requester_id == borrower_id
        )

    def list_page(
        self,
        page: int = 0,
        size: int = 10,
        sort: str = "id",
        direction: str = "asc",
    ) -> tuple[list[LendingRecord], int]:
        return self._paginate(self.session.query(LendingRecord), page, size, sort, direction)

    def list_page_by_owner(
        self,
        owner_id: int,
        page: int = 0,
        size: int = 10,
        sort: str = "id",
        direction: str = "asc",
    ) -> tuple[list[LendingRecord], int]:
        query = self.session.query(LendingRecord).filter(LendingRecord.record_owner_id == owner_id)
        return self._paginate(query, page, size, sort, direction)

    def filter_page(
        self,
        from_date: Optional[datetime] = None,
        to_date: Optional[datetime] = None,
        status: Optional[LendingStatus] = None,
        borrower_id: Optional[int] = None,
        game_id: Optional[int] = None,
        page: int = 0,
        size: int = 10,
        sort: str = "id",
        direction: str = "asc",
    ) -> tuple[list[LendingRecord], int]:
        """
        Filter records and return one page.

        Date bounds select records whose period lies inside [from_date, to_date].
        """
        query = self.session.query(LendingRecord)

        if from_date is not None:
            query = query.filter(LendingRecord.start_date >= from_date)
        if to_date is not None:
            query = query.filter(LendingRecord.end_date <= to_date)
        if status is not None:
            query = query.filter(LendingRecord.status == status.value)
        if borrower_id is not None or game_id is not None:
            query = query.join(BorrowRequest, LendingRecord.request_id == BorrowRequest.id)
            if borrower_id is not None:
                query = query.filter(BorrowRequest.requester_id == borrower_id)
            if game_id is not None:
                query = query.filter(BorrowRequest.requested_game_id == game_id)

        return self._paginate(query, page, size, sort, direction)

    # =========================================================================
    # Unpaginated Queries
    # =========================================================================

    def list_by_owner_and_status(self, owner_id: int, status: LendingStatus) -> list[LendingRecord]:
        return (
            self.session.query(LendingRecord)
            .filter(
                LendingRecord.record_owner_id == owner_id,
                LendingRecord.status == status.value,
            )
            .order_by(LendingRecord.id.asc())
            .all()
        )

    def list_by_owner_in_range(
        self,
        owner_id: int,
        start_date: datetime,
        end_date: datetime,
    ) -> list[LendingRecord]:
        """Owner's records whose period overlaps [start_date, end_date]."""
        return (
            self.session.query(LendingRecord)
            .filter(
                LendingRecord.record_owner_id == owner_id,
                LendingRecord.start_date <= end_date,
                LendingRecord.end_date >= start_date,
            )
            .order_by(LendingRecord.start_date.asc())
            .all()
        )

    def list_by_borrower(self, borrower_id: int) -> list[LendingRecord]:
        query = self._borrowed_by(self.session.query(LendingRecord), borrower_id)
        return query.order_by(LendingRecord.id.asc()).all()

    def list_active_by_borrower(self, borrower_id: int) -> list[LendingRecord]:
        query = self._borrowed_by(self.session.query(LendingRecord), borrower_id)
        return query.filter(LendingRecord.status == LendingStatus.ACTIVE.value).order_by(LendingRecord.id.asc()).all()

    def list_overdue(self, now: datetime, owner_id: Optional[int] = None) -> list[LendingRecord]:
        query = self.session.query(LendingRecord).filter(
            LendingRecord.end_date < now,
            LendingRecord.status == LendingStatus.ACTIVE.value,
        )
        if owner_id is not None:
            query = query.filter(LendingRecord.record_owner_id == owner_id)
        return query.order_by(LendingRecord.end_date.asc()).all()

    def list_by_game(self, game_id: int) -> list[LendingRecord]:
        return (
            self.session.query(LendingRecord)
            .join(BorrowRequest, LendingRecord.request_id == BorrowRequest.id)
            .filter(BorrowRequest.requested_game_id == game_id)
            .all()
        )

    def has_closed_record_for_game(self, borrower_id: int, game_id: int) -> bool:
        """True if the borrower completed at least one lending of the game."""
        return self.session.query(
            exists().where(
                and_(
                    LendingRecord.request_id == BorrowRequest.id,
                    LendingRecord.status == LendingStatus.CLOSED.value,
                    BorrowRequest.requester_id == borrower_id,
                    BorrowRequest.requested_game_id == game_id,
                )
            )
        ).scalar()

    def add(self, record: LendingRecord) -> LendingRecord:
        self.session.add(record)
        self.session.flush()
        return record

    def delete(self, record: LendingRecord) -> None:
        self.session.delete(record)
        self.session.flush()
