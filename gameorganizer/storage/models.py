"""
Database models for the Game Organizer platform.

Design Decisions:
1. Game ownership is a capability flag on Account, not a subtype table
2. Foreign keys declare ON DELETE rules; services still cascade explicitly
3. Check constraints guard date ordering, rating and capacity bounds
4. Game.reservation_version is a compare-and-set counter for approvals
"""

import uuid
from datetime import datetime, timedelta
from enum import Enum
from typing import Optional

from sqlalchemy import (
    Column,
    String,
    Integer,
    Boolean,
    DateTime,
    Text,
    ForeignKey,
    CheckConstraint,
    UniqueConstraint,
    Index,
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


# =============================================================================
# Status Enums
# =============================================================================

class BorrowRequestStatus(str, Enum):
    """Borrow request workflow states."""
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    DECLINED = "DECLINED"


class LendingStatus(str, Enum):
    """Lending record states, ordered along the lifecycle."""
    ACTIVE = "ACTIVE"
    OVERDUE = "OVERDUE"
    PENDING_RETURN = "PENDING_RETURN"
    CLOSED = "CLOSED"


DAMAGE_SEVERITY_LABELS = {
    0: "None",
    1: "Minor",
    2: "Moderate",
    3: "Severe",
}


# =============================================================================
# Accounts
# =============================================================================

class Account(Base):
    """A registered user. Game owners carry the is_game_owner capability."""
    __tablename__ = "accounts"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), unique=True, nullable=False, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    is_game_owner = Column(Boolean, default=False, nullable=False)

    reset_password_token = Column(String(64), index=True)
    reset_password_token_expiry = Column(DateTime)

    created_at = Column(DateTime, default=datetime.utcnow)


# =============================================================================
# Catalog
# =============================================================================

class Game(Base):
    """Game metadata. Physical copies are GameInstance rows."""
    __tablename__ = "games"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False, index=True)
    min_players = Column(Integer, nullable=False)
    max_players = Column(Integer, nullable=False)
    image = Column(String(500))
    category = Column(String(100), index=True)
    description = Column(Text)
    date_added = Column(DateTime, default=datetime.utcnow)

    owner_id = Column(Integer, ForeignKey("accounts.id", ondelete="SET NULL"), index=True)

    # Advanced on every approval; see GameRepository.advance_reservation_version
    reservation_version = Column(Integer, default=0, nullable=False)

    owner = relationship("Account", foreign_keys=[owner_id])

    __table_args__ = (
        CheckConstraint("min_players >= 1", name="ck_games_min_players"),
        CheckConstraint("max_players >= min_players", name="ck_games_player_range"),
    )


class GameInstance(Base):
    """One physical, lendable copy of a game."""
    __tablename__ = "game_instances"

    id = Column(Integer, primary_key=True, autoincrement=True)
    game_id = Column(Integer, ForeignKey("games.id", ondelete="CASCADE"), nullable=False, index=True)
    owner_id = Column(Integer, ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False, index=True)
    condition = Column(String(100))
    available = Column(Boolean, default=True, nullable=False)
    location = Column(String(255))
    name = Column(String(255))
    acquired_date = Column(DateTime, default=datetime.utcnow)

    game = relationship("Game")
    owner = relationship("Account")


# =============================================================================
# Lending
# =============================================================================

class BorrowRequest(Base):
    """A proposal to borrow a game (optionally a specific copy) for a period."""
    __tablename__ = "borrow_requests"

    id = Column(Integer, primary_key=True, autoincrement=True)
    start_date = Column(DateTime, nullable=False)
    end_date = Column(DateTime, nullable=False)
    status = Column(String(20), default=BorrowRequestStatus.PENDING.value, nullable=False)
    request_date = Column(DateTime, default=datetime.utcnow, nullable=False)

    requested_game_id = Column(Integer, ForeignKey("games.id", ondelete="CASCADE"), nullable=False, index=True)
    game_instance_id = Column(Integer, ForeignKey("game_instances.id", ondelete="CASCADE"), index=True)
    requester_id = Column(Integer, ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False, index=True)
    responder_id = Column(Integer, ForeignKey("accounts.id", ondelete="SET NULL"))

    requested_game = relationship("Game")
    game_instance = relationship("GameInstance")
    requester = relationship("Account", foreign_keys=[requester_id])
    responder = relationship("Account", foreign_keys=[responder_id])

    __table_args__ = (
        CheckConstraint("end_date > start_date", name="ck_borrow_requests_dates"),
        Index("idx_borrow_requests_scope", "requested_game_id", "game_instance_id", "status"),
    )

    def overlaps(self, start_date: datetime, end_date: datetime) -> bool:
        """Half-open interval overlap with [start_date, end_date)."""
        return start_date < self.end_date and end_date > self.start_date


class LendingRecord(Base):
    """The authoritative record of a lending transaction."""
    __tablename__ = "lending_records"

    id = Column(Integer, primary_key=True, autoincrement=True)
    start_date = Column(DateTime, nullable=False)
    end_date = Column(DateTime, nullable=False)
    status = Column(String(20), default=LendingStatus.ACTIVE.value, nullable=False, index=True)

    record_owner_id = Column(Integer, ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False, index=True)
    request_id = Column(
        Integer,
        ForeignKey("borrow_requests.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )

    # Damage assessment
    is_damaged = Column(Boolean, default=False, nullable=False)
    damage_notes = Column(Text)
    damage_severity = Column(Integer, default=0, nullable=False)
    damage_assessment_date = Column(DateTime)

    # Audit trail
    last_modified_date = Column(DateTime, default=datetime.utcnow)
    last_modified_by_id = Column(Integer, ForeignKey("accounts.id", ondelete="SET NULL"))
    status_change_reason = Column(String(500), default="Initial record creation")
    closed_by_id = Column(Integer, ForeignKey("accounts.id", ondelete="SET NULL"))
    closing_reason = Column(String(500))

    record_owner = relationship("Account", foreign_keys=[record_owner_id])
    request = relationship("BorrowRequest")
    last_modified_by = relationship("Account", foreign_keys=[last_modified_by_id])
    closed_by = relationship("Account", foreign_keys=[closed_by_id])

    __table_args__ = (
        CheckConstraint("end_date >= start_date", name="ck_lending_records_dates"),
        CheckConstraint("damage_severity BETWEEN 0 AND 3", name="ck_lending_records_severity"),
    )

    @property
    def duration_in_days(self) -> int:
        """Whole days between start and end, truncated toward zero."""
        delta = self.end_date - self.start_date
        days = abs(delta).days
        return days if delta >= timedelta(0) else -days

    @property
    def borrower(self) -> Optional[Account]:
        return self.request.requester if self.request else None

    @property
    def game(self) -> Optional[Game]:
        return self.request.requested_game if self.request else None

    def is_overdue(self, now: Optional[datetime] = None) -> bool:
        """Overdue is derived, never stored: past end date while still ACTIVE."""
        now = now or datetime.utcnow()
        return self.status == LendingStatus.ACTIVE.value and self.end_date < now

    def touch(self, modified_by_id: Optional[int], reason: str) -> None:
        self.last_modified_date = datetime.utcnow()
        self.last_modified_by_id = modified_by_id
        self.status_change_reason = reason

    def record_damage(self, is_damaged: bool, notes: Optional[str], severity: int) -> None:
        """Store a damage assessment. Severity is clamped to 0-3."""
        self.is_damaged = is_damaged
        self.damage_notes = notes
        self.damage_severity = max(0, min(3, severity))
        self.damage_assessment_date = datetime.utcnow()

    def record_closing(self, closed_by_id: int, reason: str) -> None:
        """Close the record. The agreed lending period is left untouched."""
        self.status = LendingStatus.CLOSED.value
        self.closed_by_id = closed_by_id
        self.closing_reason = reason
        self.touch(closed_by_id, f"Record closed: {reason}")


# =============================================================================
# Events
# =============================================================================

def _new_event_id() -> str:
    return str(uuid.uuid4())


class Event(Base):
    """A social gathering featuring a game."""
    __tablename__ = "events"

    id = Column(String(36), primary_key=True, default=_new_event_id)
    title = Column(String(255), nullable=False)
    date_time = Column(DateTime, nullable=False, index=True)
    location = Column(String(255))
    description = Column(Text)
    max_participants = Column(Integer, nullable=False)
    current_number_participants = Column(Integer, default=0, nullable=False)

    featured_game_id = Column(Integer, ForeignKey("games.id", ondelete="CASCADE"), nullable=False, index=True)
    host_id = Column(Integer, ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False, index=True)
    game_instance_id = Column(Integer, ForeignKey("game_instances.id", ondelete="SET NULL"))

    featured_game = relationship("Game")
    host = relationship("Account")
    game_instance = relationship("GameInstance")

    __table_args__ = (
        CheckConstraint("max_participants > 0", name="ck_events_max_participants"),
        CheckConstraint(
            "current_number_participants >= 0 AND current_number_participants <= max_participants",
            name="ck_events_capacity",
        ),
    )


class Registration(Base):
    """An account's registration for an event."""
    __tablename__ = "registrations"

    id = Column(Integer, primary_key=True, autoincrement=True)
    registration_date = Column(DateTime, default=datetime.utcnow, nullable=False)
    attendee_id = Column(Integer, ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False, index=True)
    event_id = Column(String(36), ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True)

    attendee = relationship("Account")
    event = relationship("Event")

    __table_args__ = (
        UniqueConstraint("attendee_id", "event_id", name="uq_registrations_attendee_event"),
    )


# =============================================================================
# Reviews
# =============================================================================

class Review(Base):
    """A rating and comment left by a borrower."""
    __tablename__ = "reviews"

    id = Column(Integer, primary_key=True, autoincrement=True)
    rating = Column(Integer, nullable=False)
    comment = Column(Text)
    date_submitted = Column(DateTime, default=datetime.utcnow, nullable=False)
    game_id = Column(Integer, ForeignKey("games.id", ondelete="SET NULL"), index=True)
    reviewer_id = Column(Integer, ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False, index=True)

    game = relationship("Game")
    reviewer = relationship("Account")

    __table_args__ = (
        CheckConstraint("rating BETWEEN 1 AND 5", name="ck_reviews_rating"),
    )
