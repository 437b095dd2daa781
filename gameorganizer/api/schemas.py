"""
API Schemas for the Game Organizer

Pydantic models for request validation and response serialization:
- Account and auth models
- Game and game instance models
- Borrow request and lending record models
- Event, registration and review models

Design Decisions:
1. Separate Request/Response: Clear distinction between inputs and outputs
2. Business rules stay in services: schemas check shape and types, services
   check meaning (ranges with domain messages, ownership, state)
3. Naive UTC everywhere: timezone-aware inputs are converted at the boundary
4. Responses are built inside the request while the session is open
"""

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator


def to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Convert an aware datetime to naive UTC; naive values are taken as UTC already."""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


class NaiveUTCModel(BaseModel):
    """Request model whose datetime fields are normalized to naive UTC."""

    @field_validator("*", mode="after")
    @classmethod
    def _normalize_datetimes(cls, value):
        if isinstance(value, datetime):
            return to_naive_utc(value)
        return value


# =============================================================================
# Account Schemas
# =============================================================================

class AccountCreate(BaseModel):
    """Account registration request."""

    email: EmailStr
    username: str = Field(..., min_length=1, max_length=255)
    password: str = Field(..., min_length=1)
    game_owner: bool = False

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "email": "alice@example.com",
                "username": "alice",
                "password": "correct-horse",
                "game_owner": True,
            }
        }
    )


class AccountUpdate(BaseModel):
    """Account update request; the current password is always required."""

    email: EmailStr
    username: str = Field(..., min_length=1, max_length=255)
    password: str = Field(..., min_length=1)
    new_password: Optional[str] = None


class AccountResponse(BaseModel):
    """Public view of an account."""

    id: int
    username: str
    email: str
    is_game_owner: bool

    @classmethod
    def from_account(cls, account) -> "AccountResponse":
        return cls(
            id=account.id,
            username=account.name,
            email=account.email,
            is_game_owner=account.is_game_owner,
        )


class RegisteredEventSummary(BaseModel):
    """Event listed on an account's profile."""

    id: str
    title: str
    date_time: datetime
    location: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class AccountInfoResponse(BaseModel):
    """Profile of the caller's own account."""

    username: str
    email: str
    is_game_owner: bool
    events: list[RegisteredEventSummary]


# =============================================================================
# Auth Schemas
# =============================================================================

class LoginRequest(BaseModel):
    """Login request."""

    email: EmailStr
    password: str
    remember_me: bool = False


class LoginResponse(BaseModel):
    """Login response; the token is also set as an HttpOnly cookie."""

    id: int
    username: str
    email: str
    is_game_owner: bool
    access_token: str
    token_type: str = "bearer"


class PasswordResetRequest(BaseModel):
    email: EmailStr


class PasswordResetRequestResponse(BaseModel):
    message: str
    # Only echoed when running in debug mode
    token: Optional[str] = None


class PerformPasswordResetRequest(BaseModel):
    token: str
    new_password: str


class MessageResponse(BaseModel):
    message: str


# =============================================================================
# Game Schemas
# =============================================================================

class GameCreate(BaseModel):
    """Game creation request; also describes the owner's first copy."""

    name: str = Field(..., min_length=1, max_length=255)
    min_players: int
    max_players: int
    image: Optional[str] = None
    category: Optional[str] = None
    description: Optional[str] = None

    # First instance
    condition: Optional[str] = None
    location: Optional[str] = None
    instance_name: Optional[str] = None

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "name": "Catan",
                "min_players": 3,
                "max_players": 4,
                "category": "Strategy",
                "condition": "Excellent",
                "location": "Living room shelf",
            }
        }
    )


class GameUpdate(BaseModel):
    """Game update request (partial)."""

    name: Optional[str] = None
    min_players: Optional[int] = None
    max_players: Optional[int] = None
    image: Optional[str] = None
    category: Optional[str] = None
    description: Optional[str] = None


class GameResponse(BaseModel):
    """Game response model."""

    id: int
    name: str
    min_players: int
    max_players: int
    image: Optional[str] = None
    category: Optional[str] = None
    description: Optional[str] = None
    date_added: Optional[datetime] = None
    owner_id: Optional[int] = None
    owner_name: Optional[str] = None

    @classmethod
    def from_game(cls, game) -> "GameResponse":
        return cls(
            id=game.id,
            name=game.name,
            min_players=game.min_players,
            max_players=game.max_players,
            image=game.image,
            category=game.category,
            description=game.description,
            date_added=game.date_added,
            owner_id=game.owner_id,
            owner_name=game.owner.name if game.owner else None,
        )


class GameInstanceCreate(NaiveUTCModel):
    condition: Optional[str] = None
    location: Optional[str] = None
    name: Optional[str] = None
    available: bool = True
    acquired_date: Optional[datetime] = None


class GameInstanceUpdate(NaiveUTCModel):
    condition: Optional[str] = None
    location: Optional[str] = None
    name: Optional[str] = None
    available: Optional[bool] = None
    acquired_date: Optional[datetime] = None


class GameInstanceResponse(BaseModel):
    """A physical copy of a game."""

    id: int
    game_id: int
    owner_id: int
    condition: Optional[str] = None
    available: bool
    location: Optional[str] = None
    name: Optional[str] = None
    acquired_date: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class RatingResponse(BaseModel):
    game_id: int
    average_rating: float
    review_count: int


class AvailabilityResponse(BaseModel):
    """Copies of a game free for a period."""

    game_id: int
    start_date: datetime
    end_date: datetime
    available: bool
    available_instances: list[GameInstanceResponse]


# =============================================================================
# Borrow Request Schemas
# =============================================================================

class BorrowRequestCreate(NaiveUTCModel):
    """Borrow request creation."""

    requested_game_id: int
    game_instance_id: Optional[int] = None
    start_date: datetime
    end_date: datetime

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "requested_game_id": 1,
                "game_instance_id": 1,
                "start_date": "2026-11-01T10:00:00",
                "end_date": "2026-11-08T10:00:00",
            }
        }
    )


class BorrowRequestStatusUpdate(BaseModel):
    status: str


class BorrowRequestDetailsUpdate(NaiveUTCModel):
    start_date: datetime
    end_date: datetime


class BorrowRequestResponse(BaseModel):
    """Borrow request response model."""

    id: int
    requested_game_id: int
    requested_game_name: Optional[str] = None
    game_instance_id: Optional[int] = None
    requester_id: int
    requester_name: Optional[str] = None
    responder_id: Optional[int] = None
    start_date: datetime
    end_date: datetime
    status: str
    request_date: datetime

    @classmethod
    def from_request(cls, request) -> "BorrowRequestResponse":
        return cls(
            id=request.id,
            requested_game_id=request.requested_game_id,
            requested_game_name=request.requested_game.name if request.requested_game else None,
            game_instance_id=request.game_instance_id,
            requester_id=request.requester_id,
            requester_name=request.requester.name if request.requester else None,
            responder_id=request.responder_id,
            start_date=request.start_date,
            end_date=request.end_date,
            status=request.status,
            request_date=request.request_date,
        )


# =============================================================================
# Lending Record Schemas
# =============================================================================

class LendingRecordCreate(NaiveUTCModel):
    request_id: int
    start_date: datetime
    end_date: datetime


class LendingRecordResponse(BaseModel):
    """
    Lending record response model.

    `is_overdue` is derived at read time; the stored status stays ACTIVE
    until someone moves it.
    """

    id: int
    request_id: int
    start_date: datetime
    end_date: datetime
    status: str
    is_overdue: bool
    duration_in_days: int

    record_owner_id: int
    borrower_id: Optional[int] = None
    borrower_name: Optional[str] = None
    game_id: Optional[int] = None
    game_name: Optional[str] = None

    is_damaged: bool
    damage_notes: Optional[str] = None
    damage_severity: int
    damage_assessment_date: Optional[datetime] = None

    last_modified_date: Optional[datetime] = None
    last_modified_by_id: Optional[int] = None
    status_change_reason: Optional[str] = None
    closed_by_id: Optional[int] = None
    closing_reason: Optional[str] = None

    @classmethod
    def from_record(cls, record) -> "LendingRecordResponse":
        borrower = record.borrower
        game = record.game
        return cls(
            id=record.id,
            request_id=record.request_id,
            start_date=record.start_date,
            end_date=record.end_date,
            status=record.status,
            is_overdue=record.is_overdue(),
            duration_in_days=record.duration_in_days,
            record_owner_id=record.record_owner_id,
            borrower_id=borrower.id if borrower else None,
            borrower_name=borrower.name if borrower else None,
            game_id=game.id if game else None,
            game_name=game.name if game else None,
            is_damaged=record.is_damaged,
            damage_notes=record.damage_notes,
            damage_severity=record.damage_severity,
            damage_assessment_date=record.damage_assessment_date,
            last_modified_date=record.last_modified_date,
            last_modified_by_id=record.last_modified_by_id,
            status_change_reason=record.status_change_reason,
            closed_by_id=record.closed_by_id,
            closing_reason=record.closing_reason,
        )


class LendingRecordPage(BaseModel):
    """One page of lending records."""

    records: list[LendingRecordResponse]
    current_page: int
    total_items: int
    total_pages: int

    @classmethod
    def from_page(cls, page) -> "LendingRecordPage":
        return cls(
            records=[LendingRecordResponse.from_record(r) for r in page.records],
            current_page=page.current_page,
            total_items=page.total_items,
            total_pages=page.total_pages,
        )


class LendingStatusUpdate(BaseModel):
    new_status: str
    reason: Optional[str] = None


class ConfirmReturnRequest(BaseModel):
    is_damaged: bool = False
    damage_notes: Optional[str] = None
    damage_severity: int = 0


class ConfirmReturnResponse(BaseModel):
    """Outcome of a return confirmation; damage fields are present only when damaged."""

    success: bool = True
    message: str
    record_id: int
    return_time: datetime
    is_damaged: bool
    damage_severity: Optional[int] = None
    damage_severity_label: Optional[str] = None
    damage_notes: Optional[str] = None


class EndDateUpdate(NaiveUTCModel):
    new_end_date: datetime


class LendingRecordFilter(NaiveUTCModel):
    """Filter for lending records; all criteria optional."""

    from_date: Optional[datetime] = None
    to_date: Optional[datetime] = None
    status: Optional[str] = None
    borrower_id: Optional[int] = None
    game_id: Optional[int] = None
    page: int = 0
    size: int = 10
    sort: str = "id"
    direction: str = "asc"


class CanReviewResponse(BaseModel):
    can_review: bool


# =============================================================================
# Event Schemas
# =============================================================================

class EventCreate(NaiveUTCModel):
    """Event creation request."""

    title: str
    date_time: datetime
    location: Optional[str] = None
    description: Optional[str] = None
    max_participants: int
    featured_game_id: int
    game_instance_id: Optional[int] = None

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "title": "Friday Catan Night",
                "date_time": "2026-11-06T19:00:00",
                "location": "Community Center, Room 2",
                "description": "Bring snacks",
                "max_participants": 8,
                "featured_game_id": 1,
            }
        }
    )


class EventUpdate(NaiveUTCModel):
    title: Optional[str] = None
    date_time: Optional[datetime] = None
    location: Optional[str] = None
    description: Optional[str] = None
    max_participants: Optional[int] = None


class EventResponse(BaseModel):
    """Event response model."""

    id: str
    title: str
    date_time: datetime
    location: Optional[str] = None
    description: Optional[str] = None
    max_participants: int
    current_number_participants: int
    featured_game_id: int
    featured_game_name: Optional[str] = None
    host_id: int
    host_name: Optional[str] = None
    game_instance_id: Optional[int] = None

    @classmethod
    def from_event(cls, event) -> "EventResponse":
        return cls(
            id=event.id,
            title=event.title,
            date_time=event.date_time,
            location=event.location,
            description=event.description,
            max_participants=event.max_participants,
            current_number_participants=event.current_number_participants,
            featured_game_id=event.featured_game_id,
            featured_game_name=event.featured_game.name if event.featured_game else None,
            host_id=event.host_id,
            host_name=event.host.name if event.host else None,
            game_instance_id=event.game_instance_id,
        )


# =============================================================================
# Registration Schemas
# =============================================================================

class RegistrationCreate(NaiveUTCModel):
    event_id: str
    registration_date: Optional[datetime] = None


class RegistrationUpdate(NaiveUTCModel):
    registration_date: Optional[datetime] = None


class RegistrationResponse(BaseModel):
    id: int
    registration_date: datetime
    attendee_id: int
    attendee_name: Optional[str] = None
    event_id: str
    event_title: Optional[str] = None

    @classmethod
    def from_registration(cls, registration) -> "RegistrationResponse":
        return cls(
            id=registration.id,
            registration_date=registration.registration_date,
            attendee_id=registration.attendee_id,
            attendee_name=registration.attendee.name if registration.attendee else None,
            event_id=registration.event_id,
            event_title=registration.event.title if registration.event else None,
        )


# =============================================================================
# Review Schemas
# =============================================================================

class GameReviewCreate(BaseModel):
    """Review body when the game is given by the path."""

    rating: int
    comment: Optional[str] = None


class ReviewCreate(GameReviewCreate):
    game_id: int


class ReviewUpdate(BaseModel):
    rating: Optional[int] = None
    comment: Optional[str] = None


class ReviewResponse(BaseModel):
    id: int
    rating: int
    comment: Optional[str] = None
    date_submitted: datetime
    game_id: Optional[int] = None
    reviewer_id: int
    reviewer_name: Optional[str] = None

    @classmethod
    def from_review(cls, review) -> "ReviewResponse":
        return cls(
            id=review.id,
            rating=review.rating,
            comment=review.comment,
            date_submitted=review.date_submitted,
            game_id=review.game_id,
            reviewer_id=review.reviewer_id,
            reviewer_name=review.reviewer.name if review.reviewer else None,
        )


# =============================================================================
# Error & Health Schemas
# =============================================================================

class ErrorResponse(BaseModel):
    """Standard error response."""

    error: str
    code: str
    detail: Optional[str] = None
    timestamp: datetime = Field(default_factory=datetime.utcnow)


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str
    database: str
