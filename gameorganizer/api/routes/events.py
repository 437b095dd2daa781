"""
Event API Routes

Event CRUD and lookups by host, day, featured game, location and player count.
"""

from datetime import date

from fastapi import APIRouter, Depends, Query, status
from loguru import logger

from gameorganizer.api.dependencies import get_current_user, get_event_service
from gameorganizer.api.schemas import (
    ErrorResponse,
    EventCreate,
    EventResponse,
    EventUpdate,
    MessageResponse,
)
from gameorganizer.services.context import AuthenticatedUser


router = APIRouter(prefix="/events", tags=["events"])


def _to_responses(events) -> list[EventResponse]:
    return [EventResponse.from_event(e) for e in events]


@router.get("", response_model=list[EventResponse])
def list_events(event_service=Depends(get_event_service)):
    return _to_responses(event_service.list_events())


@router.post(
    "",
    response_model=EventResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse, "description": "Invalid event data"}},
)
def create_event(
    payload: EventCreate,
    current_user: AuthenticatedUser = Depends(get_current_user),
    event_service=Depends(get_event_service),
):
    logger.info(f"{current_user.email} creating event '{payload.title}'")
    event = event_service.create_event(
        current_user,
        title=payload.title,
        date_time=payload.date_time,
        location=payload.location,
        description=payload.description,
        max_participants=payload.max_participants,
        featured_game_id=payload.featured_game_id,
        game_instance_id=payload.game_instance_id,
    )
    return EventResponse.from_event(event)


# =============================================================================
# Lookups
# =============================================================================

@router.get("/by-host", response_model=list[EventResponse])
def list_by_host(host_email: str = Query(...), event_service=Depends(get_event_service)):
    return _to_responses(event_service.list_by_host_email(host_email))


@router.get("/by-date", response_model=list[EventResponse])
def list_by_date(
    day: date = Query(..., alias="date", description="Calendar day, YYYY-MM-DD"),
    event_service=Depends(get_event_service),
):
    return _to_responses(event_service.list_by_date(day))


@router.get("/by-game-name", response_model=list[EventResponse])
def list_by_game_name(game_name: str = Query(...), event_service=Depends(get_event_service)):
    return _to_responses(event_service.list_by_game_name(game_name))


@router.get("/by-location", response_model=list[EventResponse])
def list_by_location(location: str = Query(...), event_service=Depends(get_event_service)):
    """Events whose location contains the text, case-insensitively."""
    return _to_responses(event_service.list_by_location(location))


@router.get("/by-min-players", response_model=list[EventResponse])
def list_by_min_players(min_players: int = Query(...), event_service=Depends(get_event_service)):
    """Events featuring a game whose minimum player count is at least `min_players`."""
    return _to_responses(event_service.list_by_game_min_players(min_players))


# =============================================================================
# Single Event
# =============================================================================

@router.get(
    "/{event_id}",
    response_model=EventResponse,
    responses={404: {"model": ErrorResponse, "description": "Event not found"}},
)
def get_event(event_id: str, event_service=Depends(get_event_service)):
    return EventResponse.from_event(event_service.get_event(event_id))


@router.put(
    "/{event_id}",
    response_model=EventResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Capacity below current participants"},
        403: {"model": ErrorResponse, "description": "Not the host"},
    },
)
def update_event(
    event_id: str,
    payload: EventUpdate,
    current_user: AuthenticatedUser = Depends(get_current_user),
    event_service=Depends(get_event_service),
):
    event = event_service.update_event(
        current_user,
        event_id,
        title=payload.title,
        date_time=payload.date_time,
        location=payload.location,
        description=payload.description,
        max_participants=payload.max_participants,
    )
    return EventResponse.from_event(event)


@router.delete(
    "/{event_id}",
    response_model=MessageResponse,
    responses={403: {"model": ErrorResponse, "description": "Not the host"}},
)
def delete_event(
    event_id: str,
    current_user: AuthenticatedUser = Depends(get_current_user),
    event_service=Depends(get_event_service),
):
    event_service.delete_event(current_user, event_id)
    return MessageResponse(message=f"Event {event_id} deleted")
