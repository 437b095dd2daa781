"""
Game Organizer - board-game lending and event platform backend.
"""

__version__ = "1.0.0"
