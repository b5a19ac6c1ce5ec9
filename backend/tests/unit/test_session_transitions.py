# backend/tests/unit/test_session_transitions.py
"""
Unit tests for the session lifecycle guard.

These work on detached SkillSession objects; no database is involved.
"""

from datetime import datetime, timedelta, timezone

import pytest

from skillswap.core.exceptions import (
    AuthorizationException,
    CancellationWindowException,
    SessionStateException,
    ValidationException,
)
from skillswap.models.session import SessionStatus, SkillSession
from skillswap.services import session_transitions as transitions

NOW = datetime(2030, 1, 7, 9, 0, tzinfo=timezone.utc)
START = NOW + timedelta(days=1)


def make_session(status: SessionStatus = SessionStatus.PENDING, **overrides) -> SkillSession:
    fields = dict(
        id="01SESSION0000000000000000A",
        requester_id="requester",
        provider_id="provider",
        skill_name="Python",
        skill_category="Programming",
        skill_level="beginner",
        scheduled_date=START,
        duration_minutes=60,
        timezone="UTC",
        session_type="online",
        status=status.value,
    )
    fields.update(overrides)
    return SkillSession(**fields)


class TestTransitionTable:
    """The allowed-transition table."""

    @pytest.mark.parametrize(
        "current, target",
        [
            (SessionStatus.PENDING, SessionStatus.ACCEPTED),
            (SessionStatus.PENDING, SessionStatus.REJECTED),
            (SessionStatus.PENDING, SessionStatus.CANCELLED),
            (SessionStatus.PENDING, SessionStatus.EXPIRED),
            (SessionStatus.ACCEPTED, SessionStatus.COMPLETED),
            (SessionStatus.ACCEPTED, SessionStatus.CANCELLED),
            (SessionStatus.ACCEPTED, SessionStatus.NO_SHOW),
        ],
    )
    def test_allowed(self, current, target):
        assert transitions.can_transition(current, target)

    @pytest.mark.parametrize(
        "current, target",
        [
            (SessionStatus.PENDING, SessionStatus.COMPLETED),
            (SessionStatus.PENDING, SessionStatus.NO_SHOW),
            (SessionStatus.ACCEPTED, SessionStatus.REJECTED),
            (SessionStatus.ACCEPTED, SessionStatus.EXPIRED),
            (SessionStatus.ACCEPTED, SessionStatus.PENDING),
        ],
    )
    def test_forbidden(self, current, target):
        assert not transitions.can_transition(current, target)

    @pytest.mark.parametrize(
        "status",
        [
            SessionStatus.REJECTED,
            SessionStatus.CANCELLED,
            SessionStatus.COMPLETED,
            SessionStatus.NO_SHOW,
            SessionStatus.EXPIRED,
        ],
    )
    def test_terminal_states_have_no_exits(self, status):
        assert transitions.is_terminal(status)
        assert not any(transitions.can_transition(status, target) for target in SessionStatus)

    def test_active_states_are_not_terminal(self):
        assert not transitions.is_terminal(SessionStatus.PENDING)
        assert not transitions.is_terminal(SessionStatus.ACCEPTED)


class TestValidateNewSession:
    """Preconditions for creating a session."""

    def test_valid_request_passes(self):
        transitions.validate_new_session("a", "b", START, 60, NOW)

    def test_self_booking_rejected(self):
        with pytest.raises(ValidationException) as exc_info:
            transitions.validate_new_session("a", "a", START, 60, NOW)

        assert exc_info.value.message == "You cannot book a session with yourself"

    @pytest.mark.parametrize("duration", [0, 14, 481, 600])
    def test_duration_out_of_bounds(self, duration):
        with pytest.raises(ValidationException) as exc_info:
            transitions.validate_new_session("a", "b", START, duration, NOW)

        assert exc_info.value.code == "INVALID_DURATION"

    @pytest.mark.parametrize("duration", [15, 480])
    def test_duration_bounds_are_inclusive(self, duration):
        transitions.validate_new_session("a", "b", START, duration, NOW)

    def test_start_must_be_strictly_future(self):
        with pytest.raises(ValidationException) as exc_info:
            transitions.validate_new_session("a", "b", NOW, 60, NOW)

        assert exc_info.value.code == "SESSION_IN_PAST"


class TestAcceptAndDecline:
    """Provider responses."""

    def test_accept_sets_status_and_responded_at(self):
        session = make_session()

        transitions.accept(session, "provider", NOW, message="See you then")

        assert session.status == SessionStatus.ACCEPTED.value
        assert session.responded_at == NOW
        assert session.response_message == "See you then"
        assert session.scheduled_date == START

    def test_accept_with_confirmed_time_replaces_start(self):
        session = make_session()
        confirmed = START + timedelta(hours=3)

        transitions.accept(session, "provider", NOW, confirmed_date=confirmed)

        assert session.scheduled_date == confirmed

    def test_requester_cannot_accept(self):
        session = make_session()

        with pytest.raises(AuthorizationException):
            transitions.accept(session, "requester", NOW)

        assert session.status == SessionStatus.PENDING.value
        assert session.responded_at is None

    def test_check_accept_does_not_mutate(self):
        session = make_session()
        confirmed = START + timedelta(hours=1)

        effective = transitions.check_accept(session, "provider", NOW, confirmed)

        assert effective == confirmed
        assert session.status == SessionStatus.PENDING.value
        assert session.scheduled_date == START

    def test_accept_in_past_rejected(self):
        session = make_session(scheduled_date=NOW - timedelta(minutes=1))

        with pytest.raises(ValidationException):
            transitions.accept(session, "provider", NOW)

        assert session.status == SessionStatus.PENDING.value

    def test_declined_session_cannot_be_accepted(self):
        session = make_session()
        transitions.decline(session, "provider", NOW, reason="Busy that week")

        with pytest.raises(SessionStateException):
            transitions.accept(session, "provider", NOW)

        assert session.status == SessionStatus.REJECTED.value
        assert session.response_message == "Busy that week"

    def test_responded_at_is_written_once(self):
        session = make_session(responded_at=NOW - timedelta(hours=1))

        with pytest.raises(SessionStateException):
            transitions.accept(session, "provider", NOW)

        assert session.responded_at == NOW - timedelta(hours=1)
        assert session.status == SessionStatus.PENDING.value

    def test_response_message_too_long(self):
        session = make_session()

        with pytest.raises(ValidationException):
            transitions.decline(session, "provider", NOW, reason="x" * 501)

        assert session.status == SessionStatus.PENDING.value


class TestCancel:
    """Cancellation and the lead-time window."""

    def test_pending_can_be_cancelled_any_time_before_start(self):
        session = make_session(scheduled_date=NOW + timedelta(minutes=5))

        transitions.cancel(session, "requester", NOW, reason="Changed plans")

        assert session.status == SessionStatus.CANCELLED.value
        assert session.cancelled_at == NOW
        assert session.cancelled_by_id == "requester"
        assert session.cancellation_reason == "Changed plans"

    def test_accepted_cancel_outside_window(self):
        session = make_session(SessionStatus.ACCEPTED)
        now = START - timedelta(hours=2, seconds=1)

        transitions.cancel(session, "provider", now)

        assert session.status == SessionStatus.CANCELLED.value
        assert session.cancelled_by_id == "provider"

    @pytest.mark.parametrize(
        "lead_time",
        [timedelta(hours=2), timedelta(hours=1), timedelta(0)],
    )
    def test_accepted_cancel_inside_window_rejected(self, lead_time):
        session = make_session(SessionStatus.ACCEPTED)

        with pytest.raises(CancellationWindowException) as exc_info:
            transitions.cancel(session, "requester", START - lead_time)

        assert exc_info.value.details["required_hours"] == 2
        assert session.status == SessionStatus.ACCEPTED.value
        assert session.cancelled_at is None

    def test_outsider_cannot_cancel(self):
        session = make_session()

        with pytest.raises(AuthorizationException):
            transitions.cancel(session, "stranger", NOW)

    @pytest.mark.parametrize(
        "status", [SessionStatus.COMPLETED, SessionStatus.REJECTED, SessionStatus.CANCELLED]
    )
    def test_terminal_sessions_cannot_be_cancelled(self, status):
        session = make_session(status)

        with pytest.raises(SessionStateException):
            transitions.cancel(session, "requester", NOW)


class TestCompleteAndNoShow:
    """Completion and no-show need an accepted, started session."""

    def test_complete_after_start(self):
        session = make_session(SessionStatus.ACCEPTED)
        now = START + timedelta(minutes=61)

        transitions.complete(session, "provider", now, notes="Covered closures")

        assert session.status == SessionStatus.COMPLETED.value
        assert session.completed_at == now
        assert session.provider_notes == "Covered closures"
        assert session.requester_notes is None

    def test_complete_before_start_rejected(self):
        session = make_session(SessionStatus.ACCEPTED)

        with pytest.raises(SessionStateException) as exc_info:
            transitions.complete(session, "requester", START - timedelta(minutes=1))

        assert "have started" in exc_info.value.message
        assert session.completed_at is None

    def test_complete_pending_rejected(self):
        session = make_session()

        with pytest.raises(SessionStateException):
            transitions.complete(session, "requester", START + timedelta(hours=2))

    def test_second_complete_rejected(self):
        session = make_session(SessionStatus.ACCEPTED)
        first = START + timedelta(hours=1)
        transitions.complete(session, "requester", first)

        with pytest.raises(SessionStateException):
            transitions.complete(session, "provider", first + timedelta(hours=1))

        assert session.completed_at == first

    def test_no_show_after_start(self):
        session = make_session(SessionStatus.ACCEPTED)

        transitions.mark_no_show(session, "requester", START + timedelta(minutes=10))

        assert session.status == SessionStatus.NO_SHOW.value

    def test_no_show_before_start_rejected(self):
        session = make_session(SessionStatus.ACCEPTED)

        with pytest.raises(SessionStateException):
            transitions.mark_no_show(session, "requester", NOW)


class TestProposeAlternative:
    """Non-binding alternative proposals."""

    def test_proposal_leaves_schedule_and_status(self):
        session = make_session(request_message="Hi!")
        proposed = START + timedelta(days=1)

        transitions.propose_alternative(session, "requester", NOW, proposed, message="Tuesday?")

        assert session.scheduled_date == START
        assert session.status == SessionStatus.PENDING.value
        assert session.proposed_date == proposed
        assert session.proposed_by_id == "requester"
        assert session.proposal_message == "Tuesday?"
        assert session.proposed_at == NOW
        assert session.request_message.startswith("Hi!\n\n")
        assert session.request_message.endswith(
            "Alternative time proposed: 2030-01-09T09:00:00Z - Tuesday?"
        )

    def test_provider_proposal_goes_to_response_message(self):
        session = make_session()

        transitions.propose_alternative(session, "provider", NOW, START + timedelta(hours=4))

        assert session.request_message is None
        assert session.response_message == "Alternative time proposed: 2030-01-08T13:00:00Z"

    def test_latest_proposal_wins(self):
        session = make_session()
        transitions.propose_alternative(session, "requester", NOW, START + timedelta(hours=1))
        transitions.propose_alternative(session, "provider", NOW, START + timedelta(hours=2))

        assert session.proposed_date == START + timedelta(hours=2)
        assert session.proposed_by_id == "provider"

    def test_full_message_field_is_left_untouched(self):
        session = make_session(request_message="x" * 500)

        transitions.propose_alternative(session, "requester", NOW, START + timedelta(hours=1))

        assert session.request_message == "x" * 500
        assert session.proposed_date == START + timedelta(hours=1)

    def test_oldest_proposal_lines_make_room_for_new_ones(self):
        session = make_session(request_message="Hi!")
        note = "m" * 100

        for hours in range(1, 5):
            transitions.propose_alternative(
                session, "requester", NOW, START + timedelta(hours=hours), message=note
            )

        text = session.request_message
        assert len(text) <= 500
        assert text.startswith("Hi!\n\nAlternative time proposed: 2030-01-08T11:00:00Z")
        assert "2030-01-08T10:00:00Z" not in text
        assert text.endswith(f"Alternative time proposed: 2030-01-08T13:00:00Z - {note}")

    def test_proposal_lines_alone_rotate_within_bound(self):
        session = make_session()
        note = "m" * 200

        for hours in range(1, 4):
            transitions.propose_alternative(
                session, "requester", NOW, START + timedelta(hours=hours), message=note
            )

        assert session.request_message == f"Alternative time proposed: 2030-01-08T12:00:00Z - {note}"

    def test_proposal_in_past_rejected(self):
        session = make_session()

        with pytest.raises(ValidationException):
            transitions.propose_alternative(session, "requester", NOW, NOW)

        assert session.proposed_date is None

    def test_proposal_on_accepted_rejected(self):
        session = make_session(SessionStatus.ACCEPTED)

        with pytest.raises(SessionStateException) as exc_info:
            transitions.propose_alternative(session, "requester", NOW, START)

        assert exc_info.value.message == "Cannot propose alternative time for a accepted session"


class TestNotesAndExpiry:
    def test_notes_only_on_completed(self):
        session = make_session(SessionStatus.ACCEPTED)

        with pytest.raises(SessionStateException):
            transitions.set_notes(session, "requester", "notes")

    def test_notes_written_to_callers_role(self):
        session = make_session(SessionStatus.COMPLETED)

        transitions.set_notes(session, "requester", "Great teacher")

        assert session.requester_notes == "Great teacher"
        assert session.provider_notes is None

    def test_expire_requires_age_past_cutoff(self):
        now = START + timedelta(days=7)
        session = make_session()

        with pytest.raises(SessionStateException):
            transitions.expire(session, now)

        transitions.expire(session, now + timedelta(seconds=1))
        assert session.status == SessionStatus.EXPIRED.value

    def test_expire_ignores_accepted(self):
        session = make_session(SessionStatus.ACCEPTED)

        with pytest.raises(SessionStateException):
            transitions.expire(session, START + timedelta(days=30))
