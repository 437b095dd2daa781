"""
Account API Routes

Registration, profile, update, deletion and promotion to game owner.
"""

from fastapi import APIRouter, Depends, status
from loguru import logger

from gameorganizer.api.dependencies import get_account_service, get_current_user
from gameorganizer.api.schemas import (
    AccountCreate,
    AccountInfoResponse,
    AccountResponse,
    AccountUpdate,
    ErrorResponse,
    MessageResponse,
    RegisteredEventSummary,
)
from gameorganizer.services.context import AuthenticatedUser


router = APIRouter(prefix="/account", tags=["accounts"])


@router.post(
    "",
    response_model=AccountResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse, "description": "Email or username taken"}},
)
def create_account(
    payload: AccountCreate,
    account_service=Depends(get_account_service),
):
    """Register a new account. No authentication required."""
    logger.info(f"Registering account {payload.email}")
    account = account_service.create_account(
        email=payload.email,
        username=payload.username,
        password=payload.password,
        game_owner=payload.game_owner,
    )
    return AccountResponse.from_account(account)


@router.put(
    "",
    response_model=AccountResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Wrong current password"},
        403: {"model": ErrorResponse, "description": "Not your account"},
    },
)
def update_account(
    payload: AccountUpdate,
    current_user: AuthenticatedUser = Depends(get_current_user),
    account_service=Depends(get_account_service),
):
    account = account_service.update_account(
        current_user,
        email=payload.email,
        username=payload.username,
        password=payload.password,
        new_password=payload.new_password,
    )
    return AccountResponse.from_account(account)


@router.delete(
    "/{email}",
    response_model=MessageResponse,
    responses={
        403: {"model": ErrorResponse, "description": "Not your account"},
        404: {"model": ErrorResponse, "description": "Account not found"},
    },
)
def delete_account(
    email: str,
    current_user: AuthenticatedUser = Depends(get_current_user),
    account_service=Depends(get_account_service),
):
    """Delete the caller's account and everything it owns."""
    account_service.delete_account(current_user, email)
    return MessageResponse(message=f"Account {email} deleted")


@router.get(
    "/{email}",
    response_model=AccountInfoResponse,
    responses={
        403: {"model": ErrorResponse, "description": "Not your account"},
        404: {"model": ErrorResponse, "description": "Account not found"},
    },
)
def get_account_info(
    email: str,
    current_user: AuthenticatedUser = Depends(get_current_user),
    account_service=Depends(get_account_service),
):
    """Profile of the caller's own account with the events it is registered for."""
    account, events = account_service.get_account_info(current_user, email)
    return AccountInfoResponse(
        username=account.name,
        email=account.email,
        is_game_owner=account.is_game_owner,
        events=[RegisteredEventSummary.model_validate(e) for e in events],
    )


@router.put(
    "/{email}",
    response_model=AccountResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Already a game owner"},
        403: {"model": ErrorResponse, "description": "Not your account"},
    },
)
def promote_to_game_owner(
    email: str,
    current_user: AuthenticatedUser = Depends(get_current_user),
    account_service=Depends(get_account_service),
):
    """Grant the caller's account the game-owner capability."""
    account = account_service.promote_to_game_owner(current_user, email)
    return AccountResponse.from_account(account)
