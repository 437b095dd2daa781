"""
Game Repository

Catalog storage for games and their physical instances:
- Criteria search with rating and availability filters
- Owner and instance-holder lookups
- Compare-and-set on the reservation counter used by approvals

Design Decisions:
1. Average rating is computed in SQL, never cached on the game row
2. The reservation counter update is conditional; callers check the row count
"""

from dataclasses import dataclass
from typing import Optional

from sqlalchemy import func, exists, and_, or_
from sqlalchemy.orm import Session

from .models import Game, GameInstance, Review


@dataclass
class GameSearchCriteria:
    """Filters accepted by GameRepository.search."""

    name: Optional[str] = None
    min_players: Optional[int] = None
    max_players: Optional[int] = None
    category: Optional[str] = None
    min_rating: Optional[float] = None
    available: Optional[bool] = None
    owner_id: Optional[int] = None
    sort_by: str = "name"
    order: str = "asc"


class GameRepository:
    """Data access for Game rows."""

    SORT_FIELDS = ("name", "rating", "date_added")

    def __init__(self, session: Session):
        self.session = session

    def get(self, game_id: int) -> Optional[Game]:
        return self.session.get(Game, game_id)

    def list_all(self) -> list[Game]:
        return self.session.query(Game).order_by(Game.id.asc()).all()

    def list_by_owner(self, owner_id: int) -> list[Game]:
        return self.session.query(Game).filter(Game.owner_id == owner_id).order_by(Game.name.asc()).all()

    def search(self, criteria: GameSearchCriteria) -> list[Game]:
        """Search games by criteria. Player filters bound the game's own limits."""
        rating = (
            self.session.query(
                Review.game_id.label("game_id"),
                func.avg(Review.rating).label("avg_rating"),
            )
            .group_by(Review.game_id)
            .subquery()
        )

        query = self.session.query(Game).outerjoin(rating, rating.c.game_id == Game.id)

        if criteria.name:
            query = query.filter(Game.name.ilike(f"%{criteria.name}%"))
        if criteria.min_players is not None:
            query = query.filter(Game.min_players >= criteria.min_players)
        if criteria.max_players is not None:
            query = query.filter(Game.max_players <= criteria.max_players)
        if criteria.category:
            query = query.filter(func.lower(Game.category) == criteria.category.lower())
        if criteria.min_rating is not None:
            query = query.filter(rating.c.avg_rating >= criteria.min_rating)
        if criteria.owner_id is not None:
            query = query.filter(Game.owner_id == criteria.owner_id)
        if criteria.available is not None:
            has_copy = exists().where(
                and_(GameInstance.game_id == Game.id, GameInstance.available.is_(True))
            )
            query = query.filter(has_copy if criteria.available else ~has_copy)

        if criteria.sort_by == "rating":
            sort_field = func.coalesce(rating.c.avg_rating, 0)
        elif criteria.sort_by == "date_added":
            sort_field = Game.date_added
        else:
            sort_field = Game.name

        if criteria.order == "desc":
            query = query.order_by(sort_field.desc(), Game.id.asc())
        else:
            query = query.order_by(sort_field.asc(), Game.id.asc())

        return query.all()

    def is_instance_holder(self, game_id: int, account_id: int) -> bool:
        return self.session.query(
            exists().where(and_(GameInstance.game_id == game_id, GameInstance.owner_id == account_id))
        ).scalar()

    def advance_reservation_version(self, game_id: int, expected_version: int) -> bool:
        """
        Bump the reservation counter only if it still holds expected_version.

        Returns:
            True when this session won the update.
        """
        updated = (
            self.session.query(Game)
            .filter(Game.id == game_id, Game.reservation_version == expected_version)
            .update(
                {Game.reservation_version: Game.reservation_version + 1},
                synchronize_session=False,
            )
        )
        return updated == 1

    def add(self, game: Game) -> Game:
        self.session.add(game)
        self.session.flush()
        return game

    def delete(self, game: Game) -> None:
        self.session.delete(game)
        self.session.flush()


class GameInstanceRepository:
    """Data access for GameInstance rows."""

    def __init__(self, session: Session):
        self.session = session

    def get(self, instance_id: int) -> Optional[GameInstance]:
        return self.session.get(GameInstance, instance_id)

    def list_by_game(self, game_id: int) -> list[GameInstance]:
        return (
            self.session.query(GameInstance)
            .filter(GameInstance.game_id == game_id)
            .order_by(GameInstance.id.asc())
            .all()
        )

    def list_by_owner(self, owner_id: int) -> list[GameInstance]:
        return (
            self.session.query(GameInstance)
            .filter(GameInstance.owner_id == owner_id)
            .order_by(GameInstance.id.asc())
            .all()
        )

    def list_games_held_by(self, owner_id: int) -> list[Game]:
        """Games the account owns outright or holds a copy of."""
        return (
            self.session.query(Game)
            .filter(
                or_(
                    Game.owner_id == owner_id,
                    Game.id.in_(
                        self.session.query(GameInstance.game_id).filter(GameInstance.owner_id == owner_id)
                    ),
                )
            )
            .order_by(Game.name.asc())
            .all()
        )

    def add(self, instance: GameInstance) -> GameInstance:
        self.session.add(instance)
        self.session.flush()
        return instance

    def delete(self, instance: GameInstance) -> None:
        self.session.delete(instance)
        self.session.flush()
