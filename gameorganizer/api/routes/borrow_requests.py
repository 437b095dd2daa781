"""
Borrow Request API Routes

Creation, approval or decline by the owner, period changes by the requester,
and listings.
"""

from fastapi import APIRouter, Depends, status
from loguru import logger

from gameorganizer.api.dependencies import get_borrow_request_service, get_current_user
from gameorganizer.api.schemas import (
    BorrowRequestCreate,
    BorrowRequestDetailsUpdate,
    BorrowRequestResponse,
    BorrowRequestStatusUpdate,
    ErrorResponse,
    MessageResponse,
)
from gameorganizer.services.context import AuthenticatedUser


router = APIRouter(prefix="/borrowrequests", tags=["borrow-requests"])


def _to_responses(requests) -> list[BorrowRequestResponse]:
    return [BorrowRequestResponse.from_request(r) for r in requests]


@router.post(
    "",
    response_model=BorrowRequestResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse, "description": "Invalid period or copy unavailable"}},
)
def create_borrow_request(
    payload: BorrowRequestCreate,
    current_user: AuthenticatedUser = Depends(get_current_user),
    service=Depends(get_borrow_request_service),
):
    logger.info(f"{current_user.email} requests game {payload.requested_game_id}")
    request = service.create_borrow_request(
        current_user,
        game_id=payload.requested_game_id,
        start_date=payload.start_date,
        end_date=payload.end_date,
        game_instance_id=payload.game_instance_id,
    )
    return BorrowRequestResponse.from_request(request)


@router.get("", response_model=list[BorrowRequestResponse])
def list_borrow_requests(
    current_user: AuthenticatedUser = Depends(get_current_user),
    service=Depends(get_borrow_request_service),
):
    """Requests the caller made or received."""
    return _to_responses(service.list_visible(current_user))


@router.get("/status/{request_status}", response_model=list[BorrowRequestResponse])
def list_by_status(
    request_status: str,
    current_user: AuthenticatedUser = Depends(get_current_user),
    service=Depends(get_borrow_request_service),
):
    return _to_responses(service.list_by_status(request_status))


@router.get("/requester/{requester_id}", response_model=list[BorrowRequestResponse])
def list_by_requester(
    requester_id: int,
    current_user: AuthenticatedUser = Depends(get_current_user),
    service=Depends(get_borrow_request_service),
):
    return _to_responses(service.list_by_requester(requester_id))


@router.get("/by-owner/{owner_id}", response_model=list[BorrowRequestResponse])
def list_by_owner(
    owner_id: int,
    current_user: AuthenticatedUser = Depends(get_current_user),
    service=Depends(get_borrow_request_service),
):
    return _to_responses(service.list_by_owner(owner_id))


@router.get(
    "/{request_id}",
    response_model=BorrowRequestResponse,
    responses={
        403: {"model": ErrorResponse, "description": "Not a party to the request"},
        404: {"model": ErrorResponse, "description": "Request not found"},
    },
)
def get_borrow_request(
    request_id: int,
    current_user: AuthenticatedUser = Depends(get_current_user),
    service=Depends(get_borrow_request_service),
):
    return BorrowRequestResponse.from_request(service.get_borrow_request(current_user, request_id))


@router.put(
    "/{request_id}",
    response_model=BorrowRequestResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Invalid status or request not pending"},
        403: {"model": ErrorResponse, "description": "Not the owner"},
        409: {"model": ErrorResponse, "description": "Concurrent approval on the same game"},
    },
)
def update_request_status(
    request_id: int,
    payload: BorrowRequestStatusUpdate,
    current_user: AuthenticatedUser = Depends(get_current_user),
    service=Depends(get_borrow_request_service),
):
    """Approve or decline a pending request. Approval opens a lending record."""
    request = service.update_status(current_user, request_id, payload.status)
    return BorrowRequestResponse.from_request(request)


@router.put(
    "/{request_id}/details",
    response_model=BorrowRequestResponse,
    responses={400: {"model": ErrorResponse, "description": "Invalid period or not pending"}},
)
def update_request_details(
    request_id: int,
    payload: BorrowRequestDetailsUpdate,
    current_user: AuthenticatedUser = Depends(get_current_user),
    service=Depends(get_borrow_request_service),
):
    request = service.update_request_details(current_user, request_id, payload.start_date, payload.end_date)
    return BorrowRequestResponse.from_request(request)


@router.delete(
    "/{request_id}",
    response_model=MessageResponse,
    responses={403: {"model": ErrorResponse, "description": "Not a party to the request"}},
)
def delete_borrow_request(
    request_id: int,
    current_user: AuthenticatedUser = Depends(get_current_user),
    service=Depends(get_borrow_request_service),
):
    service.delete_borrow_request(current_user, request_id)
    return MessageResponse(message=f"Borrow request {request_id} deleted")
