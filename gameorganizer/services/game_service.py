"""
Game Service

Catalog management for games and their physical instances.

Design Decisions:
1. Only accounts with the game-owner capability create games
2. Creating a game also registers the owner's first copy
3. A game may be edited by its owner or by anyone holding a copy of it
4. Instances are managed by the game owner only
"""

from datetime import datetime
from typing import Optional

from loguru import logger
from sqlalchemy.orm import Session

from ..exceptions import ForbiddenError, NotFoundError, ValidationError
from ..storage.borrow_request_repository import BorrowRequestRepository
from ..storage.game_repository import GameInstanceRepository, GameRepository, GameSearchCriteria
from ..storage.lending_record_repository import LendingRecordRepository
from ..storage.models import Game, GameInstance
from .cascade import CascadeDeleter
from .context import AuthenticatedUser


class GameService:
    """Business rules for the game catalog."""

    def __init__(self, session: Session):
        self.session = session
        self.games = GameRepository(session)
        self.instances = GameInstanceRepository(session)
        self.requests = BorrowRequestRepository(session)
        self.records = LendingRecordRepository(session)

    # =========================================================================
    # Lookups
    # =========================================================================

    def get_game(self, game_id: int) -> Game:
        game = self.games.get(game_id)
        if game is None:
            raise NotFoundError("Game", game_id)
        return game

    def get_instance(self, game_id: int, instance_id: int) -> GameInstance:
        instance = self.instances.get(instance_id)
        if instance is None or instance.game_id != game_id:
            raise NotFoundError("GameInstance", instance_id)
        return instance

    def search_games(self, criteria: GameSearchCriteria) -> list[Game]:
        if criteria.min_rating is not None and not 0 <= criteria.min_rating <= 5:
            raise ValidationError("Minimum rating must be between 0 and 5")
        if criteria.sort_by not in GameRepository.SORT_FIELDS:
            raise ValidationError(f"Cannot sort by '{criteria.sort_by}'")
        return self.games.search(criteria)

    def list_owned_games(self, owner_id: int) -> list[Game]:
        return self.instances.list_games_held_by(owner_id)

    def list_borrowed_games(self, borrower_id: int) -> list[Game]:
        """Distinct games the account has lending records for, in first-borrowed order."""
        seen = {}
        for record in self.records.list_by_borrower(borrower_id):
            game = record.game
            if game is not None and game.id not in seen:
                seen[game.id] = game
        return list(seen.values())

    # =========================================================================
    # Games
    # =========================================================================

    def _require_editor(self, actor: AuthenticatedUser, game: Game) -> None:
        if game.owner_id == actor.id or self.games.is_instance_holder(game.id, actor.id):
            return
        raise ForbiddenError("Access denied: You are not the owner of this game.")

    @staticmethod
    def _validate_players(min_players: int, max_players: int) -> None:
        if min_players < 1:
            raise ValidationError("Minimum players must be at least 1")
        if max_players < min_players:
            raise ValidationError("Maximum players must be greater than or equal to minimum players")

    def create_game(
        self,
        actor: AuthenticatedUser,
        name: str,
        min_players: int,
        max_players: int,
        image: Optional[str] = None,
        category: Optional[str] = None,
        description: Optional[str] = None,
        condition: Optional[str] = None,
        location: Optional[str] = None,
        instance_name: Optional[str] = None,
    ) -> Game:
        """Create a game and the owner's first copy of it."""
        if not actor.is_game_owner:
            raise ForbiddenError("Only game owners can create games")
        if not name or not name.strip():
            raise ValidationError("Game name cannot be empty")
        self._validate_players(min_players, max_players)

        game = Game(
            name=name.strip(),
            min_players=min_players,
            max_players=max_players,
            image=image,
            category=category,
            description=description,
            date_added=datetime.utcnow(),
            owner_id=actor.id,
        )
        self.games.add(game)

        self.instances.add(
            GameInstance(
                game_id=game.id,
                owner_id=actor.id,
                condition=condition or "Excellent",
                location=location or "Home",
                name=instance_name or game.name,
                available=True,
                acquired_date=datetime.utcnow(),
            )
        )
        self.session.commit()

        logger.info(f"Created game '{game.name}' ({game.id}) for owner {actor.email}")
        return game

    def update_game(self, actor: AuthenticatedUser, game_id: int, **updates) -> Game:
        game = self.get_game(game_id)
        self._require_editor(actor, game)

        if "name" in updates and updates["name"] is not None and not updates["name"].strip():
            raise ValidationError("Game name cannot be empty")

        min_players = updates.get("min_players") or game.min_players
        max_players = updates.get("max_players") or game.max_players
        self._validate_players(min_players, max_players)

        for key, value in updates.items():
            if value is not None and hasattr(game, key):
                setattr(game, key, value)

        self.session.commit()
        logger.info(f"Updated game {game_id}")
        return game

    def delete_game(self, actor: AuthenticatedUser, game_id: int) -> None:
        game = self.get_game(game_id)
        self._require_editor(actor, game)

        CascadeDeleter(self.session).delete_game(game)
        self.session.commit()

    # =========================================================================
    # Instances
    # =========================================================================

    def _require_game_owner(self, actor: AuthenticatedUser, game: Game) -> None:
        if game.owner_id != actor.id:
            raise ForbiddenError("Access denied: Only the game owner can manage its instances.")

    def list_instances(self, game_id: int) -> list[GameInstance]:
        self.get_game(game_id)
        return self.instances.list_by_game(game_id)

    def list_my_instances(self, actor: AuthenticatedUser) -> list[GameInstance]:
        return self.instances.list_by_owner(actor.id)

    def create_instance(
        self,
        actor: AuthenticatedUser,
        game_id: int,
        condition: Optional[str] = None,
        location: Optional[str] = None,
        name: Optional[str] = None,
        available: bool = True,
        acquired_date: Optional[datetime] = None,
    ) -> GameInstance:
        game = self.get_game(game_id)
        self._require_game_owner(actor, game)

        instance = self.instances.add(
            GameInstance(
                game_id=game.id,
                owner_id=actor.id,
                condition=condition,
                location=location,
                name=name or game.name,
                available=available,
                acquired_date=acquired_date or datetime.utcnow(),
            )
        )
        self.session.commit()

        logger.info(f"Added instance {instance.id} of game {game_id}")
        return instance

    def update_instance(self, actor: AuthenticatedUser, game_id: int, instance_id: int, **updates) -> GameInstance:
        game = self.get_game(game_id)
        self._require_game_owner(actor, game)
        instance = self.get_instance(game_id, instance_id)

        for key, value in updates.items():
            if value is not None and hasattr(instance, key):
                setattr(instance, key, value)

        self.session.commit()
        return instance

    def delete_instance(self, actor: AuthenticatedUser, game_id: int, instance_id: int) -> None:
        game = self.get_game(game_id)
        self._require_game_owner(actor, game)
        instance = self.get_instance(game_id, instance_id)

        CascadeDeleter(self.session).delete_instance(instance)
        self.session.commit()
        logger.info(f"Deleted instance {instance_id} of game {game_id}")

    # =========================================================================
    # Availability
    # =========================================================================

    def available_instances(self, game_id: int, start_date: datetime, end_date: datetime) -> list[GameInstance]:
        """Copies that are marked available and have no approved booking overlapping the period."""
        self.get_game(game_id)
        if end_date <= start_date:
            raise ValidationError("End date must be after start date.")

        booked = [
            request
            for request in self.requests.list_approved_for_game(game_id)
            if request.overlaps(start_date, end_date)
        ]
        # A game-level booking takes every copy
        if any(request.game_instance_id is None for request in booked):
            return []

        taken = {request.game_instance_id for request in booked}
        return [
            instance
            for instance in self.instances.list_by_game(game_id)
            if instance.available and instance.id not in taken
        ]
