"""Session domain events and the outbox publisher."""

from .publisher import SessionEventPublisher
from .session_events import SessionEvent, SessionEventName

__all__ = ["SessionEvent", "SessionEventName", "SessionEventPublisher"]
