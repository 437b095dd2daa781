"""
Game API Routes

Catalog operations: search, CRUD, physical instances, reviews of a game and
availability for a period.
"""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from loguru import logger

from gameorganizer.api.dependencies import (
    get_current_user,
    get_game_service,
    get_review_service,
)
from gameorganizer.api.schemas import (
    AvailabilityResponse,
    ErrorResponse,
    GameCreate,
    GameInstanceCreate,
    GameInstanceResponse,
    GameInstanceUpdate,
    GameResponse,
    GameReviewCreate,
    GameUpdate,
    MessageResponse,
    RatingResponse,
    ReviewResponse,
    to_naive_utc,
)
from gameorganizer.services.context import AuthenticatedUser
from gameorganizer.storage.game_repository import GameSearchCriteria


router = APIRouter(prefix="/games", tags=["games"])


# =============================================================================
# Games
# =============================================================================

@router.get("", response_model=list[GameResponse])
def search_games(
    name: Optional[str] = Query(None, description="Name contains (case-insensitive)"),
    min_players: Optional[int] = Query(None, description="Game supports at least this many as its minimum"),
    max_players: Optional[int] = Query(None, description="Game maximum is at most this"),
    category: Optional[str] = Query(None),
    min_rating: Optional[float] = Query(None, description="Minimum average rating (0-5)"),
    available: Optional[bool] = Query(None, description="Only games with an available copy"),
    owner_id: Optional[int] = Query(None),
    sort_by: str = Query("name", description="name, rating or date_added"),
    order: str = Query("asc", pattern="^(asc|desc)$"),
    game_service=Depends(get_game_service),
):
    """Search the catalog. All criteria are optional and combine with AND."""
    criteria = GameSearchCriteria(
        name=name,
        min_players=min_players,
        max_players=max_players,
        category=category,
        min_rating=min_rating,
        available=available,
        owner_id=owner_id,
        sort_by=sort_by,
        order=order,
    )
    return [GameResponse.from_game(g) for g in game_service.search_games(criteria)]


@router.post(
    "",
    response_model=GameResponse,
    status_code=status.HTTP_201_CREATED,
    responses={403: {"model": ErrorResponse, "description": "Caller is not a game owner"}},
)
def create_game(
    payload: GameCreate,
    current_user: AuthenticatedUser = Depends(get_current_user),
    game_service=Depends(get_game_service),
):
    """Create a game together with the caller's first copy of it."""
    logger.info(f"Creating game '{payload.name}' for {current_user.email}")
    game = game_service.create_game(
        current_user,
        name=payload.name,
        min_players=payload.min_players,
        max_players=payload.max_players,
        image=payload.image,
        category=payload.category,
        description=payload.description,
        condition=payload.condition,
        location=payload.location,
        instance_name=payload.instance_name,
    )
    return GameResponse.from_game(game)


@router.get("/instances/my", response_model=list[GameInstanceResponse])
def list_my_instances(
    current_user: AuthenticatedUser = Depends(get_current_user),
    game_service=Depends(get_game_service),
):
    """Copies owned by the caller."""
    return [GameInstanceResponse.model_validate(i) for i in game_service.list_my_instances(current_user)]


@router.get(
    "/{game_id}",
    response_model=GameResponse,
    responses={404: {"model": ErrorResponse, "description": "Game not found"}},
)
def get_game(game_id: int, game_service=Depends(get_game_service)):
    return GameResponse.from_game(game_service.get_game(game_id))


@router.put(
    "/{game_id}",
    response_model=GameResponse,
    responses={
        403: {"model": ErrorResponse, "description": "Not the owner"},
        404: {"model": ErrorResponse, "description": "Game not found"},
    },
)
def update_game(
    game_id: int,
    payload: GameUpdate,
    current_user: AuthenticatedUser = Depends(get_current_user),
    game_service=Depends(get_game_service),
):
    game = game_service.update_game(current_user, game_id, **payload.model_dump(exclude_unset=True))
    return GameResponse.from_game(game)


@router.delete(
    "/{game_id}",
    response_model=MessageResponse,
    responses={
        403: {"model": ErrorResponse, "description": "Not the owner"},
        404: {"model": ErrorResponse, "description": "Game not found"},
    },
)
def delete_game(
    game_id: int,
    current_user: AuthenticatedUser = Depends(get_current_user),
    game_service=Depends(get_game_service),
):
    """Delete a game with its instances, requests, records, events and reviews."""
    game_service.delete_game(current_user, game_id)
    logger.info(f"Game {game_id} deleted by {current_user.email}")
    return MessageResponse(message=f"Game {game_id} deleted")


# =============================================================================
# Instances
# =============================================================================

@router.get("/{game_id}/instances", response_model=list[GameInstanceResponse])
def list_instances(game_id: int, game_service=Depends(get_game_service)):
    return [GameInstanceResponse.model_validate(i) for i in game_service.list_instances(game_id)]


@router.post(
    "/{game_id}/instances",
    response_model=GameInstanceResponse,
    status_code=status.HTTP_201_CREATED,
    responses={403: {"model": ErrorResponse, "description": "Not the game owner"}},
)
def create_instance(
    game_id: int,
    payload: GameInstanceCreate,
    current_user: AuthenticatedUser = Depends(get_current_user),
    game_service=Depends(get_game_service),
):
    instance = game_service.create_instance(
        current_user,
        game_id,
        condition=payload.condition,
        location=payload.location,
        name=payload.name,
        available=payload.available,
        acquired_date=payload.acquired_date,
    )
    return GameInstanceResponse.model_validate(instance)


@router.put(
    "/{game_id}/instances/{instance_id}",
    response_model=GameInstanceResponse,
    responses={
        403: {"model": ErrorResponse, "description": "Not the game owner"},
        404: {"model": ErrorResponse, "description": "Instance not found"},
    },
)
def update_instance(
    game_id: int,
    instance_id: int,
    payload: GameInstanceUpdate,
    current_user: AuthenticatedUser = Depends(get_current_user),
    game_service=Depends(get_game_service),
):
    instance = game_service.update_instance(
        current_user, game_id, instance_id, **payload.model_dump(exclude_unset=True)
    )
    return GameInstanceResponse.model_validate(instance)


@router.delete(
    "/{game_id}/instances/{instance_id}",
    response_model=MessageResponse,
    responses={
        403: {"model": ErrorResponse, "description": "Not the game owner"},
        404: {"model": ErrorResponse, "description": "Instance not found"},
    },
)
def delete_instance(
    game_id: int,
    instance_id: int,
    current_user: AuthenticatedUser = Depends(get_current_user),
    game_service=Depends(get_game_service),
):
    game_service.delete_instance(current_user, game_id, instance_id)
    return MessageResponse(message=f"Instance {instance_id} deleted")


# =============================================================================
# Reviews, Rating & Availability
# =============================================================================

@router.get("/{game_id}/reviews", response_model=list[ReviewResponse])
def list_game_reviews(game_id: int, review_service=Depends(get_review_service)):
    return [ReviewResponse.from_review(r) for r in review_service.list_by_game(game_id)]


@router.post(
    "/{game_id}/reviews",
    response_model=ReviewResponse,
    status_code=status.HTTP_201_CREATED,
    responses={403: {"model": ErrorResponse, "description": "Game not borrowed and returned"}},
)
def submit_game_review(
    game_id: int,
    payload: GameReviewCreate,
    current_user: AuthenticatedUser = Depends(get_current_user),
    review_service=Depends(get_review_service),
):
    review = review_service.submit_review(current_user, game_id, payload.rating, payload.comment)
    return ReviewResponse.from_review(review)


@router.get("/{game_id}/rating", response_model=RatingResponse)
def get_game_rating(game_id: int, review_service=Depends(get_review_service)):
    average, count = review_service.rating_summary(game_id)
    return RatingResponse(game_id=game_id, average_rating=average, review_count=count)


@router.get(
    "/{game_id}/availability",
    response_model=AvailabilityResponse,
    responses={400: {"model": ErrorResponse, "description": "Invalid period"}},
)
def check_availability(
    game_id: int,
    start_date: datetime = Query(...),
    end_date: datetime = Query(...),
    game_service=Depends(get_game_service),
):
    """Copies of the game that are free for the whole period."""
    start_date, end_date = to_naive_utc(start_date), to_naive_utc(end_date)
    instances = game_service.available_instances(game_id, start_date, end_date)
    return AvailabilityResponse(
        game_id=game_id,
        start_date=start_date,
        end_date=end_date,
        available=bool(instances),
        available_instances=[GameInstanceResponse.model_validate(i) for i in instances],
    )
