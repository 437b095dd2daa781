"""
Review Repository
"""

from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from .models import Game, Review


class ReviewRepository:
    """Data access for Review rows."""

    def __init__(self, session: Session):
        self.session = session

    def get(self, review_id: int) -> Optional[Review]:
        return self.session.get(Review, review_id)

    def list_by_game(self, game_id: int) -> list[Review]:
        return (
            self.session.query(Review)
            .filter(Review.game_id == game_id)
            .order_by(Review.date_submitted.desc(), Review.id.desc())
            .all()
        )

    def list_by_game_name(self, name: str) -> list[Review]:
        return (
            self.session.query(Review)
            .join(Game, Review.game_id == Game.id)
            .filter(Game.name.ilike(name))
            .order_by(Review.date_submitted.desc(), Review.id.desc())
            .all()
        )

    def list_by_reviewer(self, reviewer_id: int) -> list[Review]:
        return self.session.query(Review).filter(Review.reviewer_id == reviewer_id).all()

    def rating_summary(self, game_id: int) -> tuple[float, int]:
        """Average rating and review count; (0.0, 0) when unreviewed."""
        average, count = (
            self.session.query(func.avg(Review.rating), func.count(Review.id))
            .filter(Review.game_id == game_id)
            .one()
        )
        return float(average or 0.0), int(count or 0)

    def add(self, review: Review) -> Review:
        self.session.add(review)
        self.session.flush()
        return review

    def delete(self, review: Review) -> None:
        self.session.delete(review)
        self.session.flush()
