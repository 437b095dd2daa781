"""
Event Service

Scheduling of events that feature a game.
"""

from datetime import datetime
from typing import Optional

from loguru import logger
from sqlalchemy.orm import Session

from ..exceptions import ForbiddenError, NotFoundError, ValidationError
from ..storage.event_repository import EventRepository
from ..storage.game_repository import GameInstanceRepository, GameRepository
from ..storage.models import Event
from .cascade import CascadeDeleter
from .context import AuthenticatedUser


class EventService:
    """Business rules for events."""

    def __init__(self, session: Session):
        self.session = session
        self.events = EventRepository(session)
        self.games = GameRepository(session)
        self.instances = GameInstanceRepository(session)

    def get_event(self, event_id: str) -> Event:
        event = self.events.get(event_id)
        if event is None:
            raise NotFoundError("Event", event_id)
        return event

    def _require_host(self, actor: AuthenticatedUser, event: Event) -> None:
        if event.host_id != actor.id:
            raise ForbiddenError("Access denied: You are not the host of this event.")

    def create_event(
        self,
        actor: AuthenticatedUser,
        title: str,
        date_time: datetime,
        location: Optional[str],
        description: Optional[str],
        max_participants: int,
        featured_game_id: int,
        game_instance_id: Optional[int] = None,
    ) -> Event:
        """Create an event hosted by the caller."""
        if not title or not title.strip():
            raise ValidationError("Event title cannot be empty")
        if date_time is None:
            raise ValidationError("Event date cannot be null")
        if not location or not location.strip():
            raise ValidationError("Event location cannot be empty")
        if not description or not description.strip():
            raise ValidationError("Event description cannot be empty")
        if max_participants is None or max_participants <= 0:
            raise ValidationError("Event max participants must be greater than 0")

        game = self.games.get(featured_game_id)
        if game is None:
            raise ValidationError("Featured game does not exist")

        if game_instance_id is not None:
            instance = self.instances.get(game_instance_id)
            if instance is None:
                raise NotFoundError("GameInstance", game_instance_id)
            if instance.game_id != game.id:
                raise ValidationError("Game instance does not match the featured game")

        event = self.events.add(
            Event(
                title=title.strip(),
                date_time=date_time,
                location=location,
                description=description,
                max_participants=max_participants,
                current_number_participants=0,
                featured_game_id=game.id,
                host_id=actor.id,
                game_instance_id=game_instance_id,
            )
        )
        self.session.commit()

        logger.info(f"Event {event.id} '{event.title}' created by {actor.email}")
        return event

    def update_event(
        self,
        actor: AuthenticatedUser,
        event_id: str,
        title: Optional[str] = None,
        date_time: Optional[datetime] = None,
        location: Optional[str] = None,
        description: Optional[str] = None,
        max_participants: Optional[int] = None,
    ) -> Event:
        """Update the provided fields; blank strings and non-positive capacities are ignored."""
        event = self.get_event(event_id)
        self._require_host(actor, event)

        if title and title.strip():
            event.title = title.strip()
        if date_time is not None:
            event.date_time = date_time
        if location and location.strip():
            event.location = location
        if description and description.strip():
            event.description = description
        if max_participants is not None and max_participants > 0:
            if max_participants < event.current_number_participants:
                raise ValidationError("Max participants cannot be lower than the current number of participants")
            event.max_participants = max_participants

        self.session.commit()
        return event

    def delete_event(self, actor: AuthenticatedUser, event_id: str) -> None:
        event = self.get_event(event_id)
        self._require_host(actor, event)

        CascadeDeleter(self.session).delete_event(event)
        self.session.commit()
        logger.info(f"Event {event_id} deleted by {actor.email}")

    # =========================================================================
    # Queries
    # =========================================================================

    def list_events(self) -> list[Event]:
        return self.events.list_all()

    def list_by_host_email(self, email: str) -> list[Event]:
        if not email or not email.strip():
            raise ValidationError("Host email cannot be empty")
        return self.events.list_by_host_email(email)

    def list_by_date(self, day: datetime) -> list[Event]:
        return self.events.list_on_day(day)

    def list_by_game_name(self, game_name: str) -> list[Event]:
        if not game_name or not game_name.strip():
            raise ValidationError("Game name cannot be empty")
        return self.events.list_by_game_name(game_name.strip())

    def list_by_location(self, text: str) -> list[Event]:
        if not text or not text.strip():
            raise ValidationError("Location search text cannot be empty")
        return self.events.list_by_location_containing(text.strip())

    def list_by_game_min_players(self, min_players: int) -> list[Event]:
        if min_players < 1:
            raise ValidationError("Minimum players must be at least 1")
        return self.events.list_by_game_min_players(min_players)
