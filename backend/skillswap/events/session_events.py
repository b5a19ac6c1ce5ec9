"""Session domain events."""
from dataclasses import asdict, dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict


class SessionEventName(str, Enum):
    """Notification points raised by session operations."""

    SESSION_REQUEST = "session_request"
    SESSION_ACCEPTED = "session_accepted"
    SESSION_DECLINED = "session_declined"
    SESSION_CANCELLED = "session_cancelled"
    SESSION_COMPLETED = "session_completed"
    ALTERNATIVE_TIME_PROPOSED = "alternative_time_proposed"
    SESSION_NO_SHOW = "session_no_show"
    SESSION_EXPIRED = "session_expired"


@dataclass
class SessionEvent:
    """Fired after a session operation commits its state change."""

    session_id: str
    event: SessionEventName
    occurred_at: datetime
    version: int

    @property
    def idempotency_key(self) -> str:
        return f"session:{self.session_id}:{self.event.value}:{self.version}"

    def to_dict(self) -> Dict[str, Any]:
        payload = asdict(self)
        payload.pop("version")
        payload["event"] = self.event.value
        return payload
