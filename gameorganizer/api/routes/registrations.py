"""
Registration API Routes
"""

from fastapi import APIRouter, Depends, status

from gameorganizer.api.dependencies import get_current_user, get_registration_service
from gameorganizer.api.schemas import (
    ErrorResponse,
    MessageResponse,
    RegistrationCreate,
    RegistrationResponse,
    RegistrationUpdate,
)
from gameorganizer.services.context import AuthenticatedUser


router = APIRouter(prefix="/registrations", tags=["registrations"])


@router.post(
    "",
    response_model=RegistrationResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"model": ErrorResponse, "description": "Own event, duplicate or full"},
        404: {"model": ErrorResponse, "description": "Event not found"},
        409: {"model": ErrorResponse, "description": "Concurrent duplicate registration"},
    },
)
def register_for_event(
    payload: RegistrationCreate,
    current_user: AuthenticatedUser = Depends(get_current_user),
    service=Depends(get_registration_service),
):
    registration = service.register(current_user, payload.event_id, payload.registration_date)
    return RegistrationResponse.from_registration(registration)


@router.get("", response_model=list[RegistrationResponse])
def list_registrations(
    current_user: AuthenticatedUser = Depends(get_current_user),
    service=Depends(get_registration_service),
):
    return [RegistrationResponse.from_registration(r) for r in service.list_registrations()]


@router.get("/user/{email}", response_model=list[RegistrationResponse])
def list_by_user(
    email: str,
    current_user: AuthenticatedUser = Depends(get_current_user),
    service=Depends(get_registration_service),
):
    return [RegistrationResponse.from_registration(r) for r in service.list_by_attendee_email(email)]


@router.get(
    "/{registration_id}",
    response_model=RegistrationResponse,
    responses={404: {"model": ErrorResponse, "description": "Registration not found"}},
)
def get_registration(
    registration_id: int,
    current_user: AuthenticatedUser = Depends(get_current_user),
    service=Depends(get_registration_service),
):
    return RegistrationResponse.from_registration(service.get_registration(registration_id))


@router.put(
    "/{registration_id}",
    response_model=RegistrationResponse,
    responses={403: {"model": ErrorResponse, "description": "Not the attendee"}},
)
def update_registration(
    registration_id: int,
    payload: RegistrationUpdate,
    current_user: AuthenticatedUser = Depends(get_current_user),
    service=Depends(get_registration_service),
):
    registration = service.update_registration(current_user, registration_id, payload.registration_date)
    return RegistrationResponse.from_registration(registration)


@router.delete(
    "/{registration_id}",
    response_model=MessageResponse,
    responses={403: {"model": ErrorResponse, "description": "Not the attendee"}},
)
def delete_registration(
    registration_id: int,
    current_user: AuthenticatedUser = Depends(get_current_user),
    service=Depends(get_registration_service),
):
    """Cancel a registration and free its seat."""
    service.delete_registration(current_user, registration_id)
    return MessageResponse(message=f"Registration {registration_id} deleted")
