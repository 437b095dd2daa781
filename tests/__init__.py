"""
Game Organizer Test Suite

Tests are organized into:
- unit/: Services, repositories and models against an in-memory database
- integration/: HTTP API tests through the ASGI app
"""
