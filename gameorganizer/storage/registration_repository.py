"""
Registration Repository
"""

from typing import Optional

from sqlalchemy.orm import Session

from .models import Account, Registration


class RegistrationRepository:
    """Data access for Registration rows."""

    def __init__(self, session: Session):
        self.session = session

    def get(self, registration_id: int) -> Optional[Registration]:
        return self.session.get(Registration, registration_id)

    def list_all(self) -> list[Registration]:
        return self.session.query(Registration).order_by(Registration.id.asc()).all()

    def list_by_attendee_email(self, email: str) -> list[Registration]:
        return (
            self.session.query(Registration)
            .join(Account, Registration.attendee_id == Account.id)
            .filter(Account.email == email)
            .order_by(Registration.id.asc())
            .all()
        )

    def list_by_attendee(self, attendee_id: int) -> list[Registration]:
        return self.session.query(Registration).filter(Registration.attendee_id == attendee_id).all()

    def list_by_event(self, event_id: str) -> list[Registration]:
        return self.session.query(Registration).filter(Registration.event_id == event_id).all()

    def exists_for(self, attendee_id: int, event_id: str) -> bool:
        return self.session.query(Registration.id).filter(
            Registration.attendee_id == attendee_id,
            Registration.event_id == event_id,
        ).first() is not None

    def add(self, registration: Registration) -> Registration:
        self.session.add(registration)
        self.session.flush()
        return registration

    def delete(self, registration: Registration) -> None:
        self.session.delete(registration)
        self.session.flush()
