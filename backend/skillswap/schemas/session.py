# backend/skillswap/schemas/session.py
"""
Session schemas.

Request models validate shape and field bounds. Rules that need the
clock or the database (future start, participant availability,
conflicts) are enforced by the service layer.
"""

from datetime import datetime
from enum import Enum
from typing import List, Literal, Optional

from pydantic import Field, field_validator

from ..core.constants import (
    LOCATION_MAX_LENGTH,
    MAX_SESSION_DURATION_MINUTES,
    MIN_SESSION_DURATION_MINUTES,
    REQUEST_MESSAGE_MAX_LENGTH,
    RESPONSE_MESSAGE_MAX_LENGTH,
)
from ..core.timezone_utils import ensure_utc, is_valid_timezone
from ..models.session import SessionRole, SessionStatus, SessionType, SkillLevel
from .base import ORMResponseModel, StrictRequestModel

MEETING_LINK_PATTERN = r"^https?://.+"


def _strip_or_none(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    stripped = value.strip()
    return stripped or None


class SkillSnapshot(StrictRequestModel):
    """Skill details copied onto the session at request time."""

    name: str = Field(..., min_length=1, max_length=100)
    category: str = Field(..., min_length=1, max_length=100)
    level: SkillLevel

    @field_validator("name", "category")
    @classmethod
    def _strip(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v


class SessionCreate(StrictRequestModel):
    """A requester's proposal to book time with a provider."""

    provider_id: str = Field(..., min_length=1)
    skill: SkillSnapshot
    scheduled_date: datetime = Field(..., description="Session start; naive values are UTC")
    duration_minutes: int = Field(
        ..., ge=MIN_SESSION_DURATION_MINUTES, le=MAX_SESSION_DURATION_MINUTES
    )
    timezone: str = "UTC"
    session_type: SessionType = SessionType.ONLINE
    request_message: Optional[str] = Field(None, max_length=REQUEST_MESSAGE_MAX_LENGTH)
    meeting_link: Optional[str] = Field(None, pattern=MEETING_LINK_PATTERN)
    location: Optional[str] = Field(None, max_length=LOCATION_MAX_LENGTH)

    @field_validator("scheduled_date")
    @classmethod
    def _to_utc(cls, v: datetime) -> datetime:
        return ensure_utc(v)

    @field_validator("timezone")
    @classmethod
    def _known_timezone(cls, v: str) -> str:
        if not is_valid_timezone(v):
            raise ValueError(f"Unknown timezone: {v}")
        return v

    @field_validator("request_message", "location")
    @classmethod
    def _clean_text(cls, v: Optional[str]) -> Optional[str]:
        return _strip_or_none(v)


class RespondAction(str, Enum):
    ACCEPT = "accept"
    DECLINE = "decline"


class SessionRespond(StrictRequestModel):
    """Provider's answer to a pending request."""

    confirmed_date_time: Optional[datetime] = Field(
        None, description="Provider-confirmed start; replaces scheduled_date on accept"
    )
    meeting_link: Optional[str] = Field(None, pattern=MEETING_LINK_PATTERN)
    location: Optional[str] = Field(None, max_length=LOCATION_MAX_LENGTH)
    message: Optional[str] = Field(None, max_length=RESPONSE_MESSAGE_MAX_LENGTH)

    @field_validator("confirmed_date_time")
    @classmethod
    def _to_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(v) if v is not None else None

    @field_validator("message", "location")
    @classmethod
    def _clean_text(cls, v: Optional[str]) -> Optional[str]:
        return _strip_or_none(v)


class ConflictingInterval(ORMResponseModel):
    """An existing active session that overlaps a proposed interval."""

    session_id: str = Field(validation_alias="id")
    scheduled_date: datetime
    end_time: datetime
    duration_minutes: int
    status: SessionStatus


class ConflictCheckResult(ORMResponseModel):
    has_conflicts: bool
    user_conflicts: List[ConflictingInterval] = Field(default_factory=list)
    counterpart_conflicts: List[ConflictingInterval] = Field(default_factory=list)


class ParticipantSummary(ORMResponseModel):
    id: str
    first_name: str
    last_name: str
    email: str
    rating_average: float = 0.0
    rating_count: int = 0


class SessionRead(ORMResponseModel):
    """Session as returned to either participant."""

    id: str
    requester_id: str
    provider_id: str
    requester: Optional[ParticipantSummary] = None
    provider: Optional[ParticipantSummary] = None

    skill_name: str
    skill_category: str
    skill_level: SkillLevel

    scheduled_date: datetime
    end_time: datetime
    duration_minutes: int
    timezone: str
    status: SessionStatus

    request_message: Optional[str] = None
    response_message: Optional[str] = None
    session_type: SessionType
    location: Optional[str] = None
    meeting_link: Optional[str] = None

    responded_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    cancelled_by_id: Optional[str] = None
    cancellation_reason: Optional[str] = None

    requester_notes: Optional[str] = None
    provider_notes: Optional[str] = None

    proposed_date: Optional[datetime] = None
    proposed_by_id: Optional[str] = None
    proposal_message: Optional[str] = None
    proposed_at: Optional[datetime] = None

    version: int
    created_at: Optional[datetime] = None

    user_role: Optional[SessionRole] = None


class SessionListFilters(StrictRequestModel):
    status: Optional[SessionStatus] = None
    role: Literal["all", "requested", "received"] = "all"
    upcoming: bool = False
    page: int = Field(1, ge=1)
    limit: int = Field(20, ge=1, le=100)


class PaginationInfo(ORMResponseModel):
    current_page: int
    total_pages: int
    total_count: int
    has_next_page: bool
    has_prev_page: bool
    limit: int


class SessionPage(ORMResponseModel):
    items: List[SessionRead]
    pagination: PaginationInfo


class SessionStats(ORMResponseModel):
    total: int = 0
    pending: int = 0
    accepted: int = 0
    completed: int = 0
    cancelled: int = 0
    rejected: int = 0
    no_show: int = 0
    expired: int = 0
