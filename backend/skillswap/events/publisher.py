"""Event publisher - writes session events to the transactional outbox."""
from datetime import datetime
import logging
from typing import Any, Dict, Protocol

from ..models.event_outbox import EventOutbox
from ..repositories.event_outbox_repository import EventOutboxRepository
from .session_events import SessionEvent, SessionEventName

logger = logging.getLogger(__name__)


class Event(Protocol):
    """Protocol for event types."""

    session_id: str
    event: SessionEventName

    @property
    def idempotency_key(self) -> str:
        ...

    def to_dict(self) -> Dict[str, Any]:
        ...


class SessionEventPublisher:
    """
    Records session events in the outbox.

    Must be called inside the transaction that performs the state change
    so the event and the change commit or roll back together.
    """

    def __init__(self, outbox_repository: EventOutboxRepository):
        self.outbox_repo = outbox_repository

    def publish(self, event: Event) -> EventOutbox:
        payload = event.to_dict()

        # Convert datetime objects to ISO strings for JSON serialization
        for key, value in payload.items():
            if isinstance(value, datetime):
                payload[key] = value.isoformat()

        row = self.outbox_repo.enqueue(
            event_type=event.event.value,
            aggregate_id=event.session_id,
            payload=payload,
            idempotency_key=event.idempotency_key,
        )
        logger.info(
            "session_event_recorded",
            extra={"event_type": event.event.value, "session_id": event.session_id},
        )
        return row

    def publish_for(
        self, session_id: str, name: SessionEventName, occurred_at: datetime, version: int
    ) -> EventOutbox:
        return self.publish(
            SessionEvent(session_id=session_id, event=name, occurred_at=occurred_at, version=version)
        )
