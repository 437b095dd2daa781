"""
API Routes for the Game Organizer

Route modules:
- auth: Login, logout, password reset
- accounts: Registration and profile
- games: Catalog, instances, game reviews, availability
- borrow_requests: Borrow workflow
- lending_records: Lending lifecycle
- events: Events
- registrations: Event registrations
- reviews: Reviews
- users: Per-user views
"""

from gameorganizer.api.routes.auth import router as auth_router
from gameorganizer.api.routes.accounts import router as accounts_router
from gameorganizer.api.routes.games import router as games_router
from gameorganizer.api.routes.borrow_requests import router as borrow_requests_router
from gameorganizer.api.routes.lending_records import router as lending_records_router
from gameorganizer.api.routes.events import router as events_router
from gameorganizer.api.routes.registrations import router as registrations_router
from gameorganizer.api.routes.reviews import router as reviews_router
from gameorganizer.api.routes.users import router as users_router

__all__ = [
    "auth_router",
    "accounts_router",
    "games_router",
    "borrow_requests_router",
    "lending_records_router",
    "events_router",
    "registrations_router",
    "reviews_router",
    "users_router",
]
