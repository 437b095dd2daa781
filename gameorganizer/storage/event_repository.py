"""
Event Repository

Events, their search filters and seat accounting.

Seats are claimed with a conditional UPDATE so concurrent registrations
cannot push current_number_participants past max_participants.
"""

from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from .models import Account, Event, Game


class EventRepository:
    """Data access for Event rows."""

    def __init__(self, session: Session):
        self.session = session

    def get(self, event_id: str) -> Optional[Event]:
        return self.session.get(Event, event_id)

    def list_all(self) -> list[Event]:
        return self.session.query(Event).order_by(Event.date_time.asc()).all()

    def list_by_host_email(self, email: str) -> list[Event]:
        return (
            self.session.query(Event)
            .join(Account, Event.host_id == Account.id)
            .filter(Account.email == email)
            .order_by(Event.date_time.asc())
            .all()
        )

    def list_by_host(self, host_id: int) -> list[Event]:
        return self.session.query(Event).filter(Event.host_id == host_id).all()

    def list_on_day(self, day: datetime) -> list[Event]:
        """Events starting on the calendar day of `day`."""
        start = datetime(day.year, day.month, day.day)
        return (
            self.session.query(Event)
            .filter(Event.date_time >= start, Event.date_time < start + timedelta(days=1))
            .order_by(Event.date_time.asc())
            .all()
        )

    def list_by_game_name(self, game_name: str) -> list[Event]:
        return (
            self.session.query(Event)
            .join(Game, Event.featured_game_id == Game.id)
            .filter(Game.name.ilike(game_name))
            .order_by(Event.date_time.asc())
            .all()
        )

    def list_by_location_containing(self, text: str) -> list[Event]:
        return (
            self.session.query(Event)
            .filter(Event.location.ilike(f"%{text}%"))
            .order_by(Event.date_time.asc())
            .all()
        )

    def list_by_game_min_players(self, min_players: int) -> list[Event]:
        return (
            self.session.query(Event)
            .join(Game, Event.featured_game_id == Game.id)
            .filter(Game.min_players >= min_players)
            .order_by(Event.date_time.asc())
            .all()
        )

    def list_by_game(self, game_id: int) -> list[Event]:
        return self.session.query(Event).filter(Event.featured_game_id == game_id).all()

    def list_by_instance(self, instance_id: int) -> list[Event]:
        return self.session.query(Event).filter(Event.game_instance_id == instance_id).all()

    def claim_seat(self, event_id: str) -> bool:
        """Increment the participant count if a seat is free. Returns True on success."""
        updated = (
            self.session.query(Event)
            .filter(
                Event.id == event_id,
                Event.current_number_participants < Event.max_participants,
            )
            .update(
                {Event.current_number_participants: Event.current_number_participants + 1},
                synchronize_session=False,
            )
        )
        return updated == 1

    def release_seat(self, event_id: str) -> None:
        """Decrement the participant count, never below zero."""
        (
            self.session.query(Event)
            .filter(Event.id == event_id, Event.current_number_participants > 0)
            .update(
                {Event.current_number_participants: Event.current_number_participants - 1},
                synchronize_session=False,
            )
        )

    def add(self, event: Event) -> Event:
        self.session.add(event)
        self.session.flush()
        return event

    def delete(self, event: Event) -> None:
        self.session.delete(event)
        self.session.flush()
