"""
User API Routes

Per-user views: games a user owns copies of, games they have borrowed, and
account lookup.
"""

from fastapi import APIRouter, Depends, Query

from gameorganizer.api.dependencies import (
    get_account_service,
    get_current_user,
    get_game_service,
)
from gameorganizer.api.schemas import AccountResponse, ErrorResponse, GameResponse
from gameorganizer.services.context import AuthenticatedUser


router = APIRouter(prefix="/users", tags=["users"])


@router.get("/search", response_model=list[AccountResponse])
def search_users(
    name: str = Query(..., description="Part of the username"),
    current_user: AuthenticatedUser = Depends(get_current_user),
    account_service=Depends(get_account_service),
):
    return [AccountResponse.from_account(a) for a in account_service.search_accounts(name)]


@router.get(
    "/email/{email}",
    response_model=AccountResponse,
    responses={404: {"model": ErrorResponse, "description": "Account not found"}},
)
def get_user_by_email(
    email: str,
    current_user: AuthenticatedUser = Depends(get_current_user),
    account_service=Depends(get_account_service),
):
    return AccountResponse.from_account(account_service.get_account_by_email(email))


@router.get("/{user_id}/games/owned", response_model=list[GameResponse])
def list_owned_games(
    user_id: int,
    account_service=Depends(get_account_service),
    game_service=Depends(get_game_service),
):
    """Games the user holds at least one copy of."""
    account_service.get_account(user_id)
    return [GameResponse.from_game(g) for g in game_service.list_owned_games(user_id)]


@router.get("/{user_id}/games/borrowed", response_model=list[GameResponse])
def list_borrowed_games(
    user_id: int,
    current_user: AuthenticatedUser = Depends(get_current_user),
    account_service=Depends(get_account_service),
    game_service=Depends(get_game_service),
):
    account_service.get_account(user_id)
    return [GameResponse.from_game(g) for g in game_service.list_borrowed_games(user_id)]
