"""Database module for story persistence."""

from .db import init_db, close_db
from .repository import StoryRepository

__all__ = [
    # Connection management
    "init_db",
    "close_db",
    # Repositories
    "StoryRepository",
]
