"""
Game Organizer - FastAPI Backend.
"""

from .main import app, create_app, main
from .dependencies import (
    Settings,
    get_settings,
    get_db,
    get_current_user,
    get_service_container,
    ServiceContainer,
)
from .schemas import (
    HealthResponse,
    ErrorResponse,
)

__all__ = [
    # Application
    "app",
    "create_app",
    "main",
    # Dependencies
    "Settings",
    "get_settings",
    "get_db",
    "get_current_user",
    "get_service_container",
    "ServiceContainer",
    # Schemas
    "HealthResponse",
    "ErrorResponse",
]
