"""
Review Service

Reviews are open only to accounts that have borrowed the game and had the
lending closed.
"""

from datetime import datetime
from typing import Optional

from loguru import logger
from sqlalchemy.orm import Session

from ..exceptions import ForbiddenError, NotFoundError, ValidationError
from ..storage.game_repository import GameRepository
from ..storage.lending_record_repository import LendingRecordRepository
from ..storage.models import Review
from ..storage.review_repository import ReviewRepository
from .context import AuthenticatedUser


class ReviewService:
    """Business rules for reviews."""

    def __init__(self, session: Session):
        self.session = session
        self.reviews = ReviewRepository(session)
        self.games = GameRepository(session)
        self.records = LendingRecordRepository(session)

    def _get(self, review_id: int) -> Review:
        review = self.reviews.get(review_id)
        if review is None:
            raise NotFoundError("Review", review_id)
        return review

    @staticmethod
    def _validate_rating(rating: int) -> None:
        if rating is None or not 1 <= rating <= 5:
            raise ValidationError("Rating must be between 1 and 5")

    def submit_review(
        self,
        actor: AuthenticatedUser,
        game_id: int,
        rating: int,
        comment: Optional[str] = None,
    ) -> Review:
        """
        Submit a review for a game.

        Raises:
            ValidationError: Rating out of range
            NotFoundError: Unknown game
            ForbiddenError: No closed lending record of the game for this account
        """
        self._validate_rating(rating)
        game = self.games.get(game_id)
        if game is None:
            raise NotFoundError("Game", game_id)

        if not self.records.has_closed_record_for_game(actor.id, game_id):
            logger.warning(f"{actor.email} tried to review game {game_id} without a closed lending")
            raise ForbiddenError("You can only review games that you have borrowed and returned")

        review = self.reviews.add(
            Review(
                rating=rating,
                comment=comment,
                date_submitted=datetime.utcnow(),
                game_id=game.id,
                reviewer_id=actor.id,
            )
        )
        self.session.commit()

        logger.info(f"Review {review.id} submitted for game {game_id} by {actor.email}")
        return review

    def update_review(
        self,
        actor: AuthenticatedUser,
        review_id: int,
        rating: Optional[int] = None,
        comment: Optional[str] = None,
    ) -> Review:
        review = self._get(review_id)
        if review.reviewer_id != actor.id:
            raise ForbiddenError("Access denied: You can only update your own reviews.")

        if rating is not None:
            self._validate_rating(rating)
            review.rating = rating
        if comment is not None:
            review.comment = comment

        self.session.commit()
        return review

    def delete_review(self, actor: AuthenticatedUser, review_id: int) -> None:
        review = self._get(review_id)
        if review.reviewer_id != actor.id:
            raise ForbiddenError("Access denied: You can only delete your own reviews.")

        self.reviews.delete(review)
        self.session.commit()

    def get_review(self, review_id: int) -> Review:
        return self._get(review_id)

    def list_by_game(self, game_id: int) -> list[Review]:
        if self.games.get(game_id) is None:
            raise NotFoundError("Game", game_id)
        return self.reviews.list_by_game(game_id)

    def list_by_game_name(self, name: str) -> list[Review]:
        if not name or not name.strip():
            raise ValidationError("Game name cannot be empty")
        return self.reviews.list_by_game_name(name.strip())

    def rating_summary(self, game_id: int) -> tuple[float, int]:
        if self.games.get(game_id) is None:
            raise NotFoundError("Game", game_id)
        return self.reviews.rating_summary(game_id)
