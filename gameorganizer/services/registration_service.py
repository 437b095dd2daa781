"""
Registration Service

Capacity-bounded event registration. A seat is claimed with a conditional
UPDATE on the event row and the (attendee, event) pair is unique in the
schema, so concurrent registrations cannot overfill an event or register
the same account twice.
"""

from datetime import datetime
from typing import Optional

from loguru import logger
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..exceptions import ConflictError, ForbiddenError, NotFoundError, ValidationError
from ..storage.event_repository import EventRepository
from ..storage.models import Registration
from ..storage.registration_repository import RegistrationRepository
from .cascade import CascadeDeleter
from .context import AuthenticatedUser


class RegistrationService:
    """Business rules for event registrations."""

    def __init__(self, session: Session):
        self.session = session
        self.registrations = RegistrationRepository(session)
        self.events = EventRepository(session)

    def _get(self, registration_id: int) -> Registration:
        registration = self.registrations.get(registration_id)
        if registration is None:
            raise NotFoundError("Registration", registration_id)
        return registration

    def _require_attendee(self, actor: AuthenticatedUser, registration: Registration, action: str) -> None:
        if registration.attendee_id != actor.id:
            raise ForbiddenError(f"Access denied: You can only {action} your own registration.")

    def register(
        self,
        actor: AuthenticatedUser,
        event_id: str,
        registration_date: Optional[datetime] = None,
    ) -> Registration:
        """
        Register the caller for an event.

        Raises:
            NotFoundError: Unknown event
            ValidationError: Own event, duplicate registration, or event full
        """
        event = self.events.get(event_id)
        if event is None:
            raise NotFoundError("Event", event_id)
        if event.host_id == actor.id:
            raise ValidationError("You cannot register for your own event")
        if self.registrations.exists_for(actor.id, event_id):
            raise ValidationError("Registration already exists for this account and event")

        if not self.events.claim_seat(event_id):
            logger.warning(f"Event {event_id} is full; rejecting {actor.email}")
            raise ValidationError("Event is at full capacity")

        try:
            registration = self.registrations.add(
                Registration(
                    registration_date=registration_date or datetime.utcnow(),
                    attendee_id=actor.id,
                    event_id=event_id,
                )
            )
        except IntegrityError:
            self.session.rollback()
            raise ConflictError("Registration already exists for this account and event")

        self.session.commit()
        self.session.refresh(event)

        logger.info(f"{actor.email} registered for event {event_id}")
        return registration

    def update_registration(
        self,
        actor: AuthenticatedUser,
        registration_id: int,
        registration_date: Optional[datetime],
    ) -> Registration:
        registration = self._get(registration_id)
        self._require_attendee(actor, registration, "update")

        if registration_date is None:
            raise ValidationError("Registration date cannot be null for update.")

        registration.registration_date = registration_date
        self.session.commit()
        return registration

    def delete_registration(self, actor: AuthenticatedUser, registration_id: int) -> None:
        registration = self._get(registration_id)
        self._require_attendee(actor, registration, "delete")

        CascadeDeleter(self.session).delete_registration(registration)
        self.session.commit()
        logger.info(f"Registration {registration_id} cancelled by {actor.email}")

    def get_registration(self, registration_id: int) -> Registration:
        return self._get(registration_id)

    def list_registrations(self) -> list[Registration]:
        return self.registrations.list_all()

    def list_by_attendee_email(self, email: str) -> list[Registration]:
        return self.registrations.list_by_attendee_email(email)
