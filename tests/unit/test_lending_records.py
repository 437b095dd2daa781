"""
Unit tests for the lending record lifecycle.
"""

from datetime import datetime, timedelta

import pytest

from gameorganizer.exceptions import (
    ForbiddenError,
    InvalidOperationError,
    ValidationError,
)
from gameorganizer.services import BorrowRequestService, LendingRecordService
from gameorganizer.services.lending_record_service import CLOSED_RECORD_MESSAGE
from gameorganizer.storage.models import LendingRecord, LendingStatus


@pytest.fixture
def record(db_session, owner, borrower, game, instance, period):
    """An ACTIVE record created by approving a borrow request."""
    requests = BorrowRequestService(db_session)
    request = requests.create_borrow_request(
        borrower, game.id, period[0], period[1], game_instance_id=instance.id
    )
    requests.update_status(owner, request.id, "APPROVED")
    return LendingRecordService(db_session).get_by_request_id(owner, request.id)


class TestDuration:
    """Tests for LendingRecord.duration_in_days."""

    @pytest.mark.parametrize("days", [0, 1, 7, 30, 365])
    def test_whole_days(self, days):
        """duration(start, start + N days) == N."""
        start = datetime(2026, 3, 1, 10, 30)
        record = LendingRecord(start_date=start, end_date=start + timedelta(days=days))

        assert record.duration_in_days == days

    def test_partial_day_truncates(self):
        start = datetime(2026, 3, 1, 10, 0)
        record = LendingRecord(start_date=start, end_date=start + timedelta(days=2, hours=23))

        assert record.duration_in_days == 2


class TestOverdue:
    """Overdue is derived on read."""

    def test_active_past_end_is_overdue(self):
        record = LendingRecord(
            start_date=datetime(2026, 1, 1),
            end_date=datetime(2026, 1, 8),
            status=LendingStatus.ACTIVE.value,
        )
        assert record.is_overdue(now=datetime(2026, 1, 9))
        assert not record.is_overdue(now=datetime(2026, 1, 7))

    def test_closed_is_never_overdue(self):
        record = LendingRecord(
            start_date=datetime(2026, 1, 1),
            end_date=datetime(2026, 1, 8),
            status=LendingStatus.CLOSED.value,
        )
        assert not record.is_overdue(now=datetime(2026, 2, 1))

    def test_list_overdue_uses_end_date(self, db_session, owner, record):
        service = LendingRecordService(db_session)
        assert service.list_overdue() == []

        record.start_date = datetime.utcnow() - timedelta(days=10)
        record.end_date = datetime.utcnow() - timedelta(days=1)
        db_session.commit()

        overdue = service.list_overdue(owner_id=owner.id)
        assert [r.id for r in overdue] == [record.id]
        # Stored status is untouched
        assert record.status == LendingStatus.ACTIVE.value


class TestApprovalCreatesRecord:

    def test_record_is_active_and_owned_by_game_owner(self, record, owner, borrower, game):
        assert record.status == LendingStatus.ACTIVE.value
        assert record.record_owner_id == owner.id
        assert record.borrower.id == borrower.id
        assert record.game.id == game.id
        assert record.status_change_reason == "Initial record creation"


class TestStatusTransitions:
    """Tests for manual status updates by the owner."""

    def test_close_requires_reason(self, db_session, owner, record):
        service = LendingRecordService(db_session)

        with pytest.raises(ValidationError):
            service.update_status(owner, record.id, "CLOSED", None)

        updated = service.update_status(owner, record.id, "CLOSED", "Returned in person")
        assert updated.status == LendingStatus.CLOSED.value
        assert updated.closed_by_id == owner.id
        assert updated.closing_reason == "Returned in person"

    def test_closed_record_cannot_be_reopened(self, db_session, owner, record):
        service = LendingRecordService(db_session)
        service.update_status(owner, record.id, "CLOSED", "Done")

        with pytest.raises(InvalidOperationError) as exc_info:
            service.update_status(owner, record.id, "ACTIVE", "Oops")

        assert exc_info.value.message == CLOSED_RECORD_MESSAGE

    def test_backwards_move_rejected(self, db_session, owner, record):
        service = LendingRecordService(db_session)
        service.update_status(owner, record.id, "PENDING_RETURN", "Borrower called")

        with pytest.raises(InvalidOperationError):
            service.update_status(owner, record.id, "OVERDUE", "Changed my mind")

    def test_forward_chain(self, db_session, owner, record):
        service = LendingRecordService(db_session)

        for status in ("OVERDUE", "PENDING_RETURN", "CLOSED"):
            record = service.update_status(owner, record.id, status, f"to {status}")
            assert record.status == status

    def test_same_status_is_noop(self, db_session, owner, record):
        service = LendingRecordService(db_session)
        before = record.last_modified_date

        result = service.update_status(owner, record.id, "ACTIVE", None)

        assert result.status == LendingStatus.ACTIVE.value
        assert result.last_modified_date == before

    def test_only_owner_changes_status(self, db_session, borrower, record):
        with pytest.raises(ForbiddenError):
            LendingRecordService(db_session).update_status(borrower, record.id, "CLOSED", "Mine now")

    def test_unknown_status(self, db_session, owner, record):
        with pytest.raises(ValidationError):
            LendingRecordService(db_session).update_status(owner, record.id, "LOST", "gone")


class TestReturnFlow:
    """Borrower marks returned, owner confirms."""

    def test_mark_returned_moves_to_pending_return(self, db_session, borrower, record):
        updated = LendingRecordService(db_session).mark_returned(borrower, record.id)

        assert updated.status == LendingStatus.PENDING_RETURN.value
        assert "awaiting owner confirmation" in updated.status_change_reason

    def test_only_borrower_marks_returned(self, db_session, owner, record):
        with pytest.raises(ForbiddenError):
            LendingRecordService(db_session).mark_returned(owner, record.id)

    def test_confirm_without_damage(self, db_session, owner, borrower, record, period):
        service = LendingRecordService(db_session)
        service.mark_returned(borrower, record.id)

        result = service.confirm_return(owner, record.id)

        assert result.record.status == LendingStatus.CLOSED.value
        assert result.record.is_damaged is False
        assert result.severity_label is None
        # Agreed period is preserved
        assert result.record.end_date == period[1]
        assert result.record.duration_in_days == 7

    def test_confirm_with_damage(self, db_session, owner, record):
        result = LendingRecordService(db_session).confirm_return(
            owner, record.id, is_damaged=True, damage_notes="Torn box", damage_severity=2
        )

        assert result.record.is_damaged is True
        assert result.record.damage_severity == 2
        assert result.record.damage_assessment_date is not None
        assert result.severity_label == "Moderate"

    def test_confirm_rejects_bad_severity(self, db_session, owner, record):
        with pytest.raises(ValidationError):
            LendingRecordService(db_session).confirm_return(
                owner, record.id, is_damaged=True, damage_severity=5
            )

    def test_confirm_twice(self, db_session, owner, record):
        service = LendingRecordService(db_session)
        service.confirm_return(owner, record.id)

        with pytest.raises(InvalidOperationError) as exc_info:
            service.confirm_return(owner, record.id)

        assert exc_info.value.message == "Lending record is already closed"

    def test_confirm_marks_instance_available(self, db_session, owner, record, instance):
        instance.available = False
        db_session.commit()

        LendingRecordService(db_session).confirm_return(owner, record.id)

        db_session.refresh(instance)
        assert instance.available is True


class TestRecordMaintenance:

    def test_active_record_cannot_be_deleted(self, db_session, owner, record):
        with pytest.raises(InvalidOperationError):
            LendingRecordService(db_session).delete_lending_record(owner, record.id)

    def test_closed_record_can_be_deleted(self, db_session, owner, record):
        service = LendingRecordService(db_session)
        service.confirm_return(owner, record.id)

        service.delete_lending_record(owner, record.id)

        assert service.records.get(record.id) is None

    def test_end_date_cannot_precede_start(self, db_session, owner, record):
        with pytest.raises(ValidationError):
            LendingRecordService(db_session).update_end_date(
                owner, record.id, record.start_date - timedelta(days=1)
            )

    def test_extend_end_date(self, db_session, owner, record):
        new_end = record.end_date + timedelta(days=3)
        updated = LendingRecordService(db_session).update_end_date(owner, record.id, new_end)

        assert updated.end_date == new_end
        assert updated.duration_in_days == 10

    def test_direct_creation_rejects_second_record(self, db_session, owner, record):
        with pytest.raises(InvalidOperationError):
            LendingRecordService(db_session).create_lending_record(
                owner, record.request_id, record.start_date, record.end_date
            )

    def test_stranger_cannot_read_record(self, db_session, other_borrower, record):
        with pytest.raises(ForbiddenError):
            LendingRecordService(db_session).get_lending_record(other_borrower, record.id)


class TestPagination:
    """Pagination happens in the database."""

    @pytest.fixture
    def records(self, db_session, owner, borrower, game, instance):
        requests = BorrowRequestService(db_session)
        start = datetime(2026, 1, 1)
        for week in range(5):
            request = requests.create_borrow_request(
                borrower,
                game.id,
                start + timedelta(weeks=week),
                start + timedelta(weeks=week, days=6),
                game_instance_id=instance.id,
            )
            requests.update_status(owner, request.id, "APPROVED")

    def test_page_slices_and_counts(self, db_session, owner, records):
        page = LendingRecordService(db_session).list_by_owner(owner.id, page=1, size=2)

        assert len(page.records) == 2
        assert page.current_page == 1
        assert page.total_items == 5
        assert page.total_pages == 3

    def test_sort_descending(self, db_session, owner, records):
        page = LendingRecordService(db_session).list_records(page=0, size=5, sort="start_date", direction="desc")
        starts = [r.start_date for r in page.records]

        assert starts == sorted(starts, reverse=True)

    def test_invalid_sort_field(self, db_session, owner, records):
        with pytest.raises(ValidationError):
            LendingRecordService(db_session).list_records(sort="borrower")

    def test_filter_by_status(self, db_session, owner, records):
        service = LendingRecordService(db_session)
        first = service.list_records(page=0, size=1).records[0]
        service.confirm_return(owner, first.id)

        page = service.filter_records(status="closed")

        assert page.total_items == 1
        assert page.records[0].id == first.id
