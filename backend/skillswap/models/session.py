# backend/skillswap/models/session.py
"""
Skill exchange session model.

A session is a scheduled one-on-one exchange between a requester and a
provider. Skill details are snapshotted at request time so the record
stays meaningful if either profile changes later.

Lifecycle:
    pending -> accepted | rejected | cancelled | expired
    accepted -> completed | cancelled | no-show

Status moves and lifecycle timestamps are written only by
``skillswap.services.session_transitions``.
"""

from datetime import datetime, timedelta
from enum import Enum
from typing import FrozenSet, Optional

from sqlalchemy import CheckConstraint, Column, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import relationship
import ulid

from ..core.constants import (
    CANCELLATION_REASON_MAX_LENGTH,
    LOCATION_MAX_LENGTH,
    MAX_SESSION_DURATION_MINUTES,
    MIN_SESSION_DURATION_MINUTES,
    REQUEST_MESSAGE_MAX_LENGTH,
    RESPONSE_MESSAGE_MAX_LENGTH,
    SESSION_NOTES_MAX_LENGTH,
)
from ..core.timezone_utils import utc_now
from ..database import Base
from .types import UTCDateTime


class SessionStatus(str, Enum):
    """Session lifecycle statuses."""

    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    CANCELLED = "cancelled"
    COMPLETED = "completed"
    NO_SHOW = "no-show"
    EXPIRED = "expired"


# Statuses that occupy a participant's calendar
ACTIVE_STATUSES: FrozenSet[SessionStatus] = frozenset(
    {SessionStatus.PENDING, SessionStatus.ACCEPTED}
)

TERMINAL_STATUSES: FrozenSet[SessionStatus] = frozenset(
    {
        SessionStatus.REJECTED,
        SessionStatus.CANCELLED,
        SessionStatus.COMPLETED,
        SessionStatus.NO_SHOW,
        SessionStatus.EXPIRED,
    }
)


class SessionType(str, Enum):
    """How the session is held."""

    ONLINE = "online"
    IN_PERSON = "in-person"
    HYBRID = "hybrid"


class SkillLevel(str, Enum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"
    EXPERT = "expert"


class SessionRole(str, Enum):
    """Which side of the exchange a user is on."""

    REQUESTER = "requester"
    PROVIDER = "provider"


def _in_list(column: str, values: list[str]) -> str:
    quoted = ", ".join(f"'{v}'" for v in values)
    return f"{column} IN ({quoted})"


class SkillSession(Base):
    """
    One scheduled exchange between two users.

    ``version`` is the optimistic concurrency counter; every flush that
    changes the row bumps it and a stale writer fails.
    """

    __tablename__ = "skill_sessions"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))

    requester_id = Column(String(26), ForeignKey("users.id"), nullable=False, index=True)
    provider_id = Column(String(26), ForeignKey("users.id"), nullable=False, index=True)

    # Skill snapshot
    skill_name = Column(String(100), nullable=False)
    skill_category = Column(String(100), nullable=False)
    skill_level = Column(String(20), nullable=False)

    # Scheduling
    scheduled_date = Column(UTCDateTime, nullable=False, index=True)
    duration_minutes = Column(Integer, nullable=False)
    timezone = Column(String(64), nullable=False, default="UTC")

    status = Column(String(20), nullable=False, default=SessionStatus.PENDING.value, index=True)

    request_message = Column(String(REQUEST_MESSAGE_MAX_LENGTH), nullable=True)
    response_message = Column(String(RESPONSE_MESSAGE_MAX_LENGTH), nullable=True)

    session_type = Column(String(20), nullable=False, default=SessionType.ONLINE.value)
    location = Column(String(LOCATION_MAX_LENGTH), nullable=True)
    meeting_link = Column(String(500), nullable=True)

    # Lifecycle timestamps
    responded_at = Column(UTCDateTime, nullable=True)
    completed_at = Column(UTCDateTime, nullable=True)
    cancelled_at = Column(UTCDateTime, nullable=True)

    # Cancellation tracking
    cancelled_by_id = Column(String(26), ForeignKey("users.id"), nullable=True)
    cancellation_reason = Column(String(CANCELLATION_REASON_MAX_LENGTH), nullable=True)

    # Participant notes
    requester_notes = Column(Text, nullable=True)
    provider_notes = Column(Text, nullable=True)

    # Latest non-binding alternative time
    proposed_date = Column(UTCDateTime, nullable=True)
    proposed_by_id = Column(String(26), ForeignKey("users.id"), nullable=True)
    proposal_message = Column(String(REQUEST_MESSAGE_MAX_LENGTH), nullable=True)
    proposed_at = Column(UTCDateTime, nullable=True)

    version = Column(Integer, nullable=False)

    created_at = Column(UTCDateTime, nullable=False, default=utc_now)
    updated_at = Column(UTCDateTime, nullable=True, onupdate=utc_now)

    # Relationships
    requester = relationship("User", foreign_keys=[requester_id])
    provider = relationship("User", foreign_keys=[provider_id])
    cancelled_by = relationship("User", foreign_keys=[cancelled_by_id])
    reviews = relationship("Review", back_populates="session", cascade="all, delete-orphan")

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (
        CheckConstraint("requester_id <> provider_id", name="ck_skill_sessions_distinct_participants"),
        CheckConstraint(
            f"duration_minutes >= {MIN_SESSION_DURATION_MINUTES} "
            f"AND duration_minutes <= {MAX_SESSION_DURATION_MINUTES}",
            name="ck_skill_sessions_duration",
        ),
        CheckConstraint(
            _in_list("status", [s.value for s in SessionStatus]),
            name="ck_skill_sessions_status",
        ),
        CheckConstraint(
            _in_list("session_type", [t.value for t in SessionType]),
            name="ck_skill_sessions_type",
        ),
        CheckConstraint(
            _in_list("skill_level", [level.value for level in SkillLevel]),
            name="ck_skill_sessions_skill_level",
        ),
        CheckConstraint(
            f"requester_notes IS NULL OR length(requester_notes) <= {SESSION_NOTES_MAX_LENGTH}",
            name="ck_skill_sessions_requester_notes_length",
        ),
        CheckConstraint(
            f"provider_notes IS NULL OR length(provider_notes) <= {SESSION_NOTES_MAX_LENGTH}",
            name="ck_skill_sessions_provider_notes_length",
        ),
        Index("ix_skill_sessions_requester_schedule", "requester_id", "status", "scheduled_date"),
        Index("ix_skill_sessions_provider_schedule", "provider_id", "status", "scheduled_date"),
    )

    @property
    def end_time(self) -> datetime:
        """Exclusive end of the session interval."""
        return self.scheduled_date + timedelta(minutes=int(self.duration_minutes))

    @property
    def status_enum(self) -> SessionStatus:
        return SessionStatus(self.status)

    @property
    def is_active(self) -> bool:
        return self.status_enum in ACTIVE_STATUSES

    def is_participant(self, user_id: str) -> bool:
        return user_id in (self.requester_id, self.provider_id)

    def role_of(self, user_id: str) -> Optional[SessionRole]:
        if user_id == self.requester_id:
            return SessionRole.REQUESTER
        if user_id == self.provider_id:
            return SessionRole.PROVIDER
        return None

    def other_participant_id(self, user_id: str) -> Optional[str]:
        if user_id == self.requester_id:
            return self.provider_id
        if user_id == self.provider_id:
            return self.requester_id
        return None

    def to_dict(self) -> dict:
        """Flat representation for logging and event payloads."""
        return {
            "id": self.id,
            "requester_id": self.requester_id,
            "provider_id": self.provider_id,
            "skill_name": self.skill_name,
            "scheduled_date": self.scheduled_date.isoformat() if self.scheduled_date else None,
            "duration_minutes": self.duration_minutes,
            "status": self.status,
            "version": self.version,
        }

    def __repr__(self) -> str:
        return (
            f"<SkillSession {self.id} {self.requester_id}->{self.provider_id} "
            f"{self.scheduled_date} {self.status}>"
        )
