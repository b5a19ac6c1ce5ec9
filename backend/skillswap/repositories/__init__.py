# backend/skillswap/repositories/__init__.py
"""
Repository layer. Services obtain instances through ``RepositoryFactory``.
"""

from .base_repository import BaseRepository, IRepository
from .event_outbox_repository import EventOutboxRepository
from .factory import RepositoryFactory
from .review_repository import ReviewRepository
from .session_repository import SessionRepository
from .user_repository import UserRepository

__all__ = [
    "BaseRepository",
    "EventOutboxRepository",
    "IRepository",
    "RepositoryFactory",
    "ReviewRepository",
    "SessionRepository",
    "UserRepository",
]
