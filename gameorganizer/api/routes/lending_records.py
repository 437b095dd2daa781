"""
Lending Record API Routes

Record lifecycle (status changes, borrower return, owner confirmation with
damage assessment), paginated listings and filters.
"""

from datetime import datetime

from fastapi import APIRouter, Depends, Query, status
from loguru import logger

from gameorganizer.api.dependencies import get_current_user, get_lending_record_service
from gameorganizer.api.schemas import (
    CanReviewResponse,
    ConfirmReturnRequest,
    ConfirmReturnResponse,
    EndDateUpdate,
    ErrorResponse,
    LendingRecordCreate,
    LendingRecordFilter,
    LendingRecordPage,
    LendingRecordResponse,
    LendingStatusUpdate,
    MessageResponse,
    to_naive_utc,
)
from gameorganizer.services.context import AuthenticatedUser


router = APIRouter(prefix="/lending-records", tags=["lending-records"])


def _to_responses(records) -> list[LendingRecordResponse]:
    return [LendingRecordResponse.from_record(r) for r in records]


# =============================================================================
# Listings
# =============================================================================

@router.get("", response_model=LendingRecordPage)
def list_records(
    page: int = Query(0, description="Page index, 0-based"),
    size: int = Query(10, description="Items per page"),
    sort: str = Query("id", description="id, start_date, end_date or status"),
    direction: str = Query("asc", description="asc or desc"),
    current_user: AuthenticatedUser = Depends(get_current_user),
    service=Depends(get_lending_record_service),
):
    return LendingRecordPage.from_page(service.list_records(page, size, sort, direction))


@router.get("/overdue", response_model=list[LendingRecordResponse])
def list_overdue(
    current_user: AuthenticatedUser = Depends(get_current_user),
    service=Depends(get_lending_record_service),
):
    """Active records whose end date has passed."""
    return _to_responses(service.list_overdue())


@router.post("/filter", response_model=LendingRecordPage)
def filter_records(
    criteria: LendingRecordFilter,
    current_user: AuthenticatedUser = Depends(get_current_user),
    service=Depends(get_lending_record_service),
):
    page = service.filter_records(
        from_date=criteria.from_date,
        to_date=criteria.to_date,
        status=criteria.status,
        borrower_id=criteria.borrower_id,
        game_id=criteria.game_id,
        page=criteria.page,
        size=criteria.size,
        sort=criteria.sort,
        direction=criteria.direction,
    )
    return LendingRecordPage.from_page(page)


@router.get("/can-review", response_model=CanReviewResponse)
def can_review(
    game_id: int = Query(...),
    current_user: AuthenticatedUser = Depends(get_current_user),
    service=Depends(get_lending_record_service),
):
    """Whether the caller has a closed lending of the game and may review it."""
    return CanReviewResponse(can_review=service.can_review(current_user, game_id))


@router.get(
    "/request/{request_id}",
    response_model=LendingRecordResponse,
    responses={404: {"model": ErrorResponse, "description": "No record for this request"}},
)
def get_by_request(
    request_id: int,
    current_user: AuthenticatedUser = Depends(get_current_user),
    service=Depends(get_lending_record_service),
):
    return LendingRecordResponse.from_record(service.get_by_request_id(current_user, request_id))


@router.get("/owner/{owner_id}", response_model=LendingRecordPage)
def list_by_owner(
    owner_id: int,
    page: int = Query(0),
    size: int = Query(10),
    sort: str = Query("id"),
    direction: str = Query("asc"),
    current_user: AuthenticatedUser = Depends(get_current_user),
    service=Depends(get_lending_record_service),
):
    return LendingRecordPage.from_page(service.list_by_owner(owner_id, page, size, sort, direction))


@router.get("/owner/{owner_id}/status/{record_status}", response_model=list[LendingRecordResponse])
def list_by_owner_and_status(
    owner_id: int,
    record_status: str,
    current_user: AuthenticatedUser = Depends(get_current_user),
    service=Depends(get_lending_record_service),
):
    return _to_responses(service.list_by_owner_and_status(owner_id, record_status))


@router.get("/owner/{owner_id}/date-range", response_model=list[LendingRecordResponse])
def list_by_owner_in_range(
    owner_id: int,
    start_date: datetime = Query(...),
    end_date: datetime = Query(...),
    current_user: AuthenticatedUser = Depends(get_current_user),
    service=Depends(get_lending_record_service),
):
    """Records of the owner whose period lies within the range."""
    records = service.list_by_owner_in_range(owner_id, to_naive_utc(start_date), to_naive_utc(end_date))
    return _to_responses(records)


@router.get("/owner/{owner_id}/overdue", response_model=list[LendingRecordResponse])
def list_overdue_by_owner(
    owner_id: int,
    current_user: AuthenticatedUser = Depends(get_current_user),
    service=Depends(get_lending_record_service),
):
    return _to_responses(service.list_overdue(owner_id=owner_id))


@router.get("/borrower/{borrower_id}", response_model=list[LendingRecordResponse])
def list_by_borrower(
    borrower_id: int,
    current_user: AuthenticatedUser = Depends(get_current_user),
    service=Depends(get_lending_record_service),
):
    return _to_responses(service.list_by_borrower(borrower_id))


@router.get("/borrower/{borrower_id}/active", response_model=list[LendingRecordResponse])
def list_active_by_borrower(
    borrower_id: int,
    current_user: AuthenticatedUser = Depends(get_current_user),
    service=Depends(get_lending_record_service),
):
    return _to_responses(service.list_active_by_borrower(borrower_id))


# =============================================================================
# Single Record
# =============================================================================

@router.post(
    "",
    response_model=LendingRecordResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"model": ErrorResponse, "description": "Request not approved or already has a record"},
        403: {"model": ErrorResponse, "description": "Not the game owner"},
    },
)
def create_record(
    payload: LendingRecordCreate,
    current_user: AuthenticatedUser = Depends(get_current_user),
    service=Depends(get_lending_record_service),
):
    record = service.create_lending_record(current_user, payload.request_id, payload.start_date, payload.end_date)
    return LendingRecordResponse.from_record(record)


@router.get(
    "/{record_id}",
    response_model=LendingRecordResponse,
    responses={
        403: {"model": ErrorResponse, "description": "Not a party to the record"},
        404: {"model": ErrorResponse, "description": "Record not found"},
    },
)
def get_record(
    record_id: int,
    current_user: AuthenticatedUser = Depends(get_current_user),
    service=Depends(get_lending_record_service),
):
    return LendingRecordResponse.from_record(service.get_lending_record(current_user, record_id))


@router.delete(
    "/{record_id}",
    response_model=MessageResponse,
    responses={400: {"model": ErrorResponse, "description": "Record is still active"}},
)
def delete_record(
    record_id: int,
    current_user: AuthenticatedUser = Depends(get_current_user),
    service=Depends(get_lending_record_service),
):
    service.delete_lending_record(current_user, record_id)
    return MessageResponse(message=f"Lending record {record_id} deleted")


@router.put(
    "/{record_id}/status",
    response_model=LendingRecordResponse,
    responses={400: {"model": ErrorResponse, "description": "Closed record, backwards move or missing reason"}},
)
def update_status(
    record_id: int,
    payload: LendingStatusUpdate,
    current_user: AuthenticatedUser = Depends(get_current_user),
    service=Depends(get_lending_record_service),
):
    record = service.update_status(current_user, record_id, payload.new_status, payload.reason)
    return LendingRecordResponse.from_record(record)


@router.post(
    "/{record_id}/mark-returned",
    response_model=LendingRecordResponse,
    responses={403: {"model": ErrorResponse, "description": "Not the borrower"}},
)
def mark_returned(
    record_id: int,
    current_user: AuthenticatedUser = Depends(get_current_user),
    service=Depends(get_lending_record_service),
):
    """Borrower reports the game handed back; the owner still confirms."""
    return LendingRecordResponse.from_record(service.mark_returned(current_user, record_id))


@router.post(
    "/{record_id}/confirm-return",
    response_model=ConfirmReturnResponse,
    response_model_exclude_none=True,
    responses={
        400: {"model": ErrorResponse, "description": "Already closed or invalid severity"},
        403: {"model": ErrorResponse, "description": "Not the record owner"},
    },
)
def confirm_return(
    record_id: int,
    payload: ConfirmReturnRequest,
    current_user: AuthenticatedUser = Depends(get_current_user),
    service=Depends(get_lending_record_service),
):
    """Close the record, recording damage when reported."""
    result = service.confirm_return(
        current_user,
        record_id,
        is_damaged=payload.is_damaged,
        damage_notes=payload.damage_notes,
        damage_severity=payload.damage_severity,
    )
    record = result.record

    response = ConfirmReturnResponse(
        message="Game return confirmed successfully",
        record_id=record.id,
        return_time=result.return_time,
        is_damaged=record.is_damaged,
    )
    if record.is_damaged:
        response.damage_severity = record.damage_severity
        response.damage_severity_label = result.severity_label
        response.damage_notes = record.damage_notes

    logger.info(f"Return of record {record_id} confirmed by {current_user.email}")
    return response


@router.put(
    "/{record_id}/end-date",
    response_model=LendingRecordResponse,
    responses={400: {"model": ErrorResponse, "description": "Closed record or end before start"}},
)
def update_end_date(
    record_id: int,
    payload: EndDateUpdate,
    current_user: AuthenticatedUser = Depends(get_current_user),
    service=Depends(get_lending_record_service),
):
    record = service.update_end_date(current_user, record_id, payload.new_end_date)
    return LendingRecordResponse.from_record(record)
