"""
Review API Routes
"""

from fastapi import APIRouter, Depends, Query, status
from loguru import logger

from gameorganizer.api.dependencies import get_current_user, get_review_service
from gameorganizer.api.schemas import (
    ErrorResponse,
    MessageResponse,
    ReviewCreate,
    ReviewResponse,
    ReviewUpdate,
)
from gameorganizer.services.context import AuthenticatedUser


router = APIRouter(prefix="/reviews", tags=["reviews"])


@router.post(
    "",
    response_model=ReviewResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"model": ErrorResponse, "description": "Rating out of range"},
        403: {"model": ErrorResponse, "description": "Game not borrowed and returned"},
    },
)
def submit_review(
    payload: ReviewCreate,
    current_user: AuthenticatedUser = Depends(get_current_user),
    review_service=Depends(get_review_service),
):
    logger.info(f"{current_user.email} reviewing game {payload.game_id}")
    review = review_service.submit_review(current_user, payload.game_id, payload.rating, payload.comment)
    return ReviewResponse.from_review(review)


@router.get("/game", response_model=list[ReviewResponse])
def list_by_game_name(name: str = Query(...), review_service=Depends(get_review_service)):
    return [ReviewResponse.from_review(r) for r in review_service.list_by_game_name(name)]


@router.get("/games/{game_id}/reviews", response_model=list[ReviewResponse])
def list_by_game(game_id: int, review_service=Depends(get_review_service)):
    return [ReviewResponse.from_review(r) for r in review_service.list_by_game(game_id)]


@router.get(
    "/{review_id}",
    response_model=ReviewResponse,
    responses={404: {"model": ErrorResponse, "description": "Review not found"}},
)
def get_review(review_id: int, review_service=Depends(get_review_service)):
    return ReviewResponse.from_review(review_service.get_review(review_id))


@router.put(
    "/{review_id}",
    response_model=ReviewResponse,
    responses={403: {"model": ErrorResponse, "description": "Not the reviewer"}},
)
def update_review(
    review_id: int,
    payload: ReviewUpdate,
    current_user: AuthenticatedUser = Depends(get_current_user),
    review_service=Depends(get_review_service),
):
    review = review_service.update_review(current_user, review_id, payload.rating, payload.comment)
    return ReviewResponse.from_review(review)


@router.delete(
    "/{review_id}",
    response_model=MessageResponse,
    responses={403: {"model": ErrorResponse, "description": "Not the reviewer"}},
)
def delete_review(
    review_id: int,
    current_user: AuthenticatedUser = Depends(get_current_user),
    review_service=Depends(get_review_service),
):
    review_service.delete_review(current_user, review_id)
    return MessageResponse(message=f"Review {review_id} deleted")
