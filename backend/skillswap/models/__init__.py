# backend/skillswap/models/__init__.py
"""
Models package. Importing it registers every table on ``Base.metadata``.
"""

from .event_outbox import EventOutbox, EventOutboxStatus
from .review import Review, ReviewStatus
from .session import (
    ACTIVE_STATUSES,
    TERMINAL_STATUSES,
    SessionRole,
    SessionStatus,
    SessionType,
    SkillLevel,
    SkillSession,
)
from .user import User, UserStatus

__all__ = [
    "ACTIVE_STATUSES",
    "TERMINAL_STATUSES",
    "EventOutbox",
    "EventOutboxStatus",
    "Review",
    "ReviewStatus",
    "SessionRole",
    "SessionStatus",
    "SessionType",
    "SkillLevel",
    "SkillSession",
    "User",
    "UserStatus",
]
