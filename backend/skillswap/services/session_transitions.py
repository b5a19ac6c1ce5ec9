# backend/skillswap/services/session_transitions.py
"""
Session lifecycle guard.

Every status change on a SkillSession goes through this module. Each
guard checks the actor, the current status and any time precondition,
and only then mutates the entity. A failed guard leaves the entity
untouched.

The lifecycle timestamps (responded_at, completed_at, cancelled_at) are
written here exactly once, at the moment of the transition.

Callers pass ``now`` explicitly; the guard never reads the clock.
"""

from datetime import datetime, timedelta
import logging
from typing import Dict, FrozenSet, Iterable, List, Optional, Tuple

from ..core.config import settings
from ..core.constants import (
    CANCELLATION_REASON_MAX_LENGTH,
    MAX_SESSION_DURATION_MINUTES,
    MIN_SESSION_DURATION_MINUTES,
    REQUEST_MESSAGE_MAX_LENGTH,
    RESPONSE_MESSAGE_MAX_LENGTH,
    SESSION_NOTES_MAX_LENGTH,
)
from ..core.exceptions import (
    AuthorizationException,
    CancellationWindowException,
    SessionStateException,
    ValidationException,
)
from ..core.timezone_utils import ensure_utc
from ..models.session import SessionRole, SessionStatus, SkillSession
from ..monitoring.prometheus_metrics import prometheus_metrics

logger = logging.getLogger(__name__)

_NO_EXIT: FrozenSet[SessionStatus] = frozenset()

ALLOWED_TRANSITIONS: Dict[SessionStatus, FrozenSet[SessionStatus]] = {
    SessionStatus.PENDING: frozenset(
        {
            SessionStatus.ACCEPTED,
            SessionStatus.REJECTED,
            SessionStatus.CANCELLED,
            SessionStatus.EXPIRED,
        }
    ),
    SessionStatus.ACCEPTED: frozenset(
        {SessionStatus.COMPLETED, SessionStatus.CANCELLED, SessionStatus.NO_SHOW}
    ),
    SessionStatus.REJECTED: _NO_EXIT,
    SessionStatus.CANCELLED: _NO_EXIT,
    SessionStatus.COMPLETED: _NO_EXIT,
    SessionStatus.NO_SHOW: _NO_EXIT,
    SessionStatus.EXPIRED: _NO_EXIT,
}

LIFECYCLE_TIMESTAMPS = ("responded_at", "completed_at", "cancelled_at")


def can_transition(current: SessionStatus, target: SessionStatus) -> bool:
    return target in ALLOWED_TRANSITIONS.get(current, _NO_EXIT)


def is_terminal(status: SessionStatus) -> bool:
    return not ALLOWED_TRANSITIONS.get(status)


# Shared checks


def _check_length(value: Optional[str], limit: int, label: str) -> None:
    if value is not None and len(value) > limit:
        raise ValidationException(
            f"{label} cannot exceed {limit} characters",
            code="FIELD_TOO_LONG",
            details={"field": label, "max_length": limit},
        )


def _require_participant(session: SkillSession, actor_id: str) -> SessionRole:
    role = session.role_of(actor_id)
    if role is None:
        raise AuthorizationException(actor_id=actor_id, session_id=session.id)
    return role


def _require_provider(session: SkillSession, actor_id: str) -> None:
    if actor_id != session.provider_id:
        raise AuthorizationException(
            "Only the session provider can respond to this request",
            actor_id=actor_id,
            session_id=session.id,
        )


def _require_status(
    session: SkillSession,
    allowed: Iterable[SessionStatus],
    attempted: str,
    message: str,
) -> None:
    if session.status_enum not in set(allowed):
        raise SessionStateException(session.id, session.status, attempted, message)


def _transition(
    session: SkillSession,
    target: SessionStatus,
    *,
    attempted: str,
    now: Optional[datetime] = None,
    timestamp_field: Optional[str] = None,
) -> None:
    """Apply ``target`` after checking the table; stamps ``timestamp_field`` once."""
    current = session.status_enum
    if not can_transition(current, target):
        raise SessionStateException(
            session.id,
            current.value,
            attempted,
            f"Cannot move a {current.value} session to {target.value}",
        )
    if timestamp_field is not None:
        if getattr(session, timestamp_field) is not None:
            raise SessionStateException(
                session.id,
                current.value,
                attempted,
                f"{timestamp_field} is already recorded for this session",
            )
        setattr(session, timestamp_field, now)

    session.status = target.value
    prometheus_metrics.record_transition(attempted)
    logger.debug(
        "session_transition",
        extra={"session_id": session.id, "from": current.value, "to": target.value},
    )


_PROPOSAL_PREFIX = "Alternative time proposed: "
_LINE_BREAK = "\n\n"


def _format_alternative_line(proposed_date: datetime, message: Optional[str]) -> str:
    stamp = ensure_utc(proposed_date).isoformat().replace("+00:00", "Z")
    suffix = f" - {message}" if message else ""
    return f"{_PROPOSAL_PREFIX}{stamp}{suffix}"


def _split_proposal_history(text: str) -> Tuple[str, List[str]]:
    """Split a message field into the participant's own text and appended proposal lines."""
    if text.startswith(_PROPOSAL_PREFIX):
        original, history = "", text
    else:
        marker = text.find(_LINE_BREAK + _PROPOSAL_PREFIX)
        if marker < 0:
            return text, []
        original, history = text[:marker], text[marker + len(_LINE_BREAK) :]
    lines = history[len(_PROPOSAL_PREFIX) :].split(_LINE_BREAK + _PROPOSAL_PREFIX)
    return original, [_PROPOSAL_PREFIX + line for line in lines]


def _append_line(existing: Optional[str], line: str, limit: int) -> str:
    """
    Append a proposal line within ``limit`` characters.

    The oldest appended proposal lines are dropped first. The participant's
    own text is never cut; when it leaves no room, the field is unchanged.
    """
    if not existing:
        return line[:limit]

    original, proposals = _split_proposal_history(existing)
    head = [original] if original else []
    proposals.append(line)
    while len(proposals) > 1 and len(_LINE_BREAK.join(head + proposals)) > limit:
        proposals.pop(0)

    combined = _LINE_BREAK.join(head + proposals)
    if len(combined) > limit:
        return existing if original else line[:limit]
    return combined


# Creation


def validate_new_session(
    requester_id: str,
    provider_id: str,
    scheduled_date: datetime,
    duration_minutes: int,
    now: datetime,
) -> None:
    """Preconditions for a new pending session; raises ValidationException."""
    if requester_id == provider_id:
        raise ValidationException(
            "You cannot book a session with yourself",
            code="SELF_BOOKING",
            details={"user_id": requester_id},
        )

    min_d = MIN_SESSION_DURATION_MINUTES
    max_d = MAX_SESSION_DURATION_MINUTES
    if not min_d <= duration_minutes <= max_d:
        raise ValidationException(
            f"Duration must be between {min_d} and {max_d} minutes",
            code="INVALID_DURATION",
            details={"duration_minutes": duration_minutes, "min": min_d, "max": max_d},
        )

    if ensure_utc(scheduled_date) <= now:
        raise ValidationException(
            "Session must be scheduled for a future date and time",
            code="SESSION_IN_PAST",
            details={"scheduled_date": ensure_utc(scheduled_date).isoformat()},
        )


# Provider response


def check_accept(
    session: SkillSession,
    actor_id: str,
    now: datetime,
    confirmed_date: Optional[datetime] = None,
    message: Optional[str] = None,
) -> datetime:
    """
    Validate an accept without mutating anything.

    Returns:
        The effective start time (confirmed time or the original one)
    """
    _require_provider(session, actor_id)
    _require_status(
        session,
        {SessionStatus.PENDING},
        "accept",
        f"Cannot respond to a {session.status} session",
    )
    _check_length(message, RESPONSE_MESSAGE_MAX_LENGTH, "response_message")

    effective_start = ensure_utc(confirmed_date) if confirmed_date else session.scheduled_date
    if effective_start <= now:
        raise ValidationException(
            "Session must be scheduled for a future date and time",
            code="SESSION_IN_PAST",
            details={"session_id": session.id, "scheduled_date": effective_start.isoformat()},
        )
    return effective_start


def accept(
    session: SkillSession,
    actor_id: str,
    now: datetime,
    confirmed_date: Optional[datetime] = None,
    meeting_link: Optional[str] = None,
    location: Optional[str] = None,
    message: Optional[str] = None,
) -> None:
    """
    Provider accepts a pending request.

    Conflict checks are the caller's job and must already have passed for
    the effective start time.
    """
    effective_start = check_accept(session, actor_id, now, confirmed_date, message)

    _transition(
        session, SessionStatus.ACCEPTED, attempted="accept", now=now, timestamp_field="responded_at"
    )
    session.scheduled_date = effective_start
    if meeting_link:
        session.meeting_link = meeting_link
    if location:
        session.location = location
    if message:
        session.response_message = message


def decline(
    session: SkillSession,
    actor_id: str,
    now: datetime,
    reason: Optional[str] = None,
) -> None:
    _require_provider(session, actor_id)
    _require_status(
        session,
        {SessionStatus.PENDING},
        "decline",
        f"Cannot respond to a {session.status} session",
    )
    _check_length(reason, RESPONSE_MESSAGE_MAX_LENGTH, "response_message")

    _transition(
        session,
        SessionStatus.REJECTED,
        attempted="decline",
        now=now,
        timestamp_field="responded_at",
    )
    if reason:
        session.response_message = reason


# Participant actions


def cancel(
    session: SkillSession,
    actor_id: str,
    now: datetime,
    reason: Optional[str] = None,
) -> None:
    """
    Either participant withdraws a pending or accepted session.

    An accepted session needs strictly more than the cancellation window
    of lead time.
    """
    _require_participant(session, actor_id)
    _require_status(
        session,
        {SessionStatus.PENDING, SessionStatus.ACCEPTED},
        "cancel",
        f"Cannot cancel a {session.status} session",
    )
    _check_length(reason, CANCELLATION_REASON_MAX_LENGTH, "cancellation_reason")

    if session.status_enum is SessionStatus.ACCEPTED:
        window = timedelta(hours=settings.cancellation_window_hours)
        lead_time = session.scheduled_date - now
        if lead_time <= window:
            raise CancellationWindowException(
                session.id,
                settings.cancellation_window_hours,
                lead_time.total_seconds() / 3600,
            )

    _transition(
        session,
        SessionStatus.CANCELLED,
        attempted="cancel",
        now=now,
        timestamp_field="cancelled_at",
    )
    session.cancelled_by_id = actor_id
    if reason:
        session.cancellation_reason = reason


def _require_started(session: SkillSession, now: datetime, attempted: str, message: str) -> None:
    if now < session.scheduled_date:
        raise SessionStateException(session.id, session.status, attempted, message)


def complete(
    session: SkillSession,
    actor_id: str,
    now: datetime,
    notes: Optional[str] = None,
) -> None:
    """Mark an accepted, started session as completed; notes go to the caller's role."""
    role = _require_participant(session, actor_id)
    message = "Only accepted sessions that have started can be marked as completed"
    _require_status(session, {SessionStatus.ACCEPTED}, "complete", message)
    _require_started(session, now, "complete", message)
    _check_length(notes, SESSION_NOTES_MAX_LENGTH, "notes")

    _transition(
        session,
        SessionStatus.COMPLETED,
        attempted="complete",
        now=now,
        timestamp_field="completed_at",
    )
    if notes:
        _write_notes(session, role, notes)


def mark_no_show(session: SkillSession, actor_id: str, now: datetime) -> None:
    """Record that an accepted session did not take place."""
    _require_participant(session, actor_id)
    message = "Only accepted sessions that have started can be marked as no-show"
    _require_status(session, {SessionStatus.ACCEPTED}, "no_show", message)
    _require_started(session, now, "no_show", message)

    _transition(session, SessionStatus.NO_SHOW, attempted="no_show", now=now)


def propose_alternative(
    session: SkillSession,
    actor_id: str,
    now: datetime,
    proposed_date: datetime,
    message: Optional[str] = None,
) -> None:
    """
    Record a non-binding alternative start time on a pending session.

    ``scheduled_date`` and ``status`` are left alone. The latest proposal
    replaces any earlier one; a readable line is also appended to the
    proposer's message field.
    """
    role = _require_participant(session, actor_id)
    _require_status(
        session,
        {SessionStatus.PENDING},
        "propose_alternative",
        f"Cannot propose alternative time for a {session.status} session",
    )
    _check_length(message, REQUEST_MESSAGE_MAX_LENGTH, "message")

    proposed_date = ensure_utc(proposed_date)
    if proposed_date <= now:
        raise ValidationException(
            "Alternative time must be in the future",
            code="PROPOSAL_IN_PAST",
            details={"session_id": session.id, "proposed_date": proposed_date.isoformat()},
        )

    session.proposed_date = proposed_date
    session.proposed_by_id = actor_id
    session.proposal_message = message
    session.proposed_at = now

    line = _format_alternative_line(proposed_date, message)
    if role is SessionRole.REQUESTER:
        session.request_message = _append_line(
            session.request_message, line, REQUEST_MESSAGE_MAX_LENGTH
        )
    else:
        session.response_message = _append_line(
            session.response_message, line, RESPONSE_MESSAGE_MAX_LENGTH
        )
    prometheus_metrics.record_transition("propose_alternative")


def set_notes(session: SkillSession, actor_id: str, notes: Optional[str]) -> None:
    """Write the caller's own post-session notes on a completed session."""
    role = _require_participant(session, actor_id)
    _require_status(
        session,
        {SessionStatus.COMPLETED},
        "update_notes",
        "Notes can only be added to completed sessions",
    )
    _check_length(notes, SESSION_NOTES_MAX_LENGTH, "notes")
    _write_notes(session, role, notes)


def _write_notes(session: SkillSession, role: SessionRole, notes: Optional[str]) -> None:
    if role is SessionRole.REQUESTER:
        session.requester_notes = notes
    else:
        session.provider_notes = notes


# Maintenance


def expiry_cutoff(now: datetime) -> datetime:
    """Pending sessions scheduled before this instant are stale."""
    return now - timedelta(days=settings.pending_expiry_days)


def expire(session: SkillSession, now: datetime) -> None:
    _require_status(
        session,
        {SessionStatus.PENDING},
        "expire",
        f"Cannot expire a {session.status} session",
    )
    if not session.scheduled_date < expiry_cutoff(now):
        raise SessionStateException(
            session.id,
            session.status,
            "expire",
            f"Pending sessions expire {settings.pending_expiry_days} days after their start",
        )
    _transition(session, SessionStatus.EXPIRED, attempted="expire", now=now)
