# backend/skillswap/services/session_service.py
"""
Session Service for SkillSwap

Public entry point for the session lifecycle:
- Creating session requests with two-sided conflict checks
- Provider accept/decline
- Cancellation, completion, no-show
- Non-binding alternative time proposals
- Per-user reads, listings and statistics

Create and accept hold the participant locks across the conflict check
and the write, so two overlapping bookings for the same person cannot
both succeed. Every state change records its notification event in the
outbox within the same transaction.
"""

from datetime import datetime
import logging
import math
from typing import List, Optional, Union

from sqlalchemy.orm import Session

from ..core.exceptions import (
    AuthorizationException,
    NotFoundException,
    SchedulingConflictException,
    ValidationException,
)
from ..core.session_lock import participant_lock
from ..core.timezone_utils import ensure_utc, utc_now
from ..events import SessionEventName, SessionEventPublisher
from ..models.session import SessionStatus, SkillSession
from ..repositories import RepositoryFactory
from ..repositories.session_repository import SessionRepository
from ..repositories.user_repository import UserRepository
from ..schemas.session import (
    ConflictCheckResult,
    ConflictingInterval,
    PaginationInfo,
    RespondAction,
    SessionCreate,
    SessionListFilters,
    SessionPage,
    SessionRead,
    SessionRespond,
    SessionStats,
)
from . import session_transitions as transitions
from .base import BaseService
from .overlap_detector import ConflictChecker
from .session_expiry_service import SessionExpiryService

logger = logging.getLogger(__name__)

UPCOMING_MAX_LIMIT = 50


def _conflict_details(conflicts: List[ConflictingInterval]) -> List[dict]:
    return [c.model_dump(mode="json") for c in conflicts]


class SessionService(BaseService):
    """
    Booking orchestrator for skill exchange sessions.

    Authorizes the actor, runs the overlap detector for both
    participants, applies the transition guard, persists, and returns
    the session with participant summaries.
    """

    def __init__(
        self,
        db: Session,
        session_repository: Optional[SessionRepository] = None,
        user_repository: Optional[UserRepository] = None,
        conflict_checker: Optional[ConflictChecker] = None,
        event_publisher: Optional[SessionEventPublisher] = None,
    ):
        super().__init__(db)
        self.logger = logging.getLogger(__name__)
        self.session_repository = (
            session_repository or RepositoryFactory.create_session_repository(db)
        )
        self.user_repository = user_repository or RepositoryFactory.create_user_repository(db)
        self.conflict_checker = conflict_checker or ConflictChecker(
            db, repository=self.session_repository
        )
        self.event_publisher = event_publisher or SessionEventPublisher(
            RepositoryFactory.create_event_outbox_repository(db)
        )

    # Helpers

    def _get_session_or_404(self, session_id: str) -> SkillSession:
        session = self.session_repository.get_by_id(session_id, load_relationships=False)
        if session is None:
            raise NotFoundException(
                "Session not found", code="SESSION_NOT_FOUND", details={"session_id": session_id}
            )
        return session

    def _to_read(self, session: SkillSession, viewer_id: Optional[str] = None) -> SessionRead:
        read = SessionRead.model_validate(session)
        if viewer_id is not None:
            read.user_role = session.role_of(viewer_id)
        return read

    def _record_event(self, session: SkillSession, name: SessionEventName, now: datetime) -> None:
        # Flush first so the idempotency key carries the post-write version
        self.db.flush()
        self.event_publisher.publish_for(session.id, name, now, session.version)

    # Creation

    @BaseService.measure_operation("create_session_request")
    def create_session_request(self, requester_id: str, data: SessionCreate) -> SessionRead:
        """
        Create a pending session from ``requester_id`` to ``data.provider_id``.

        Raises:
            ValidationException: Self-booking, bad duration, or start not in the future
            NotFoundException: Provider missing, inactive, or unverified
            SchedulingConflictException: Either participant is busy at that time
        """
        now = utc_now()
        start = ensure_utc(data.scheduled_date)
        transitions.validate_new_session(
            requester_id, data.provider_id, start, data.duration_minutes, now
        )

        requester = self.user_repository.get_by_id(requester_id, load_relationships=False)
        if requester is None:
            raise NotFoundException(
                "User not found", code="USER_NOT_FOUND", details={"user_id": requester_id}
            )
        provider = self.user_repository.get_by_id(data.provider_id, load_relationships=False)
        if provider is None or not provider.is_addressable:
            raise NotFoundException(
                "Provider not found or not available",
                code="PROVIDER_UNAVAILABLE",
                details={"provider_id": data.provider_id},
            )

        with participant_lock([requester_id, data.provider_id]):
            with self.transaction():
                self.session_repository.lock_participants([requester_id, data.provider_id])
                requester_conflicts, provider_conflicts = self.conflict_checker.check_both(
                    requester_id, data.provider_id, start, data.duration_minutes
                )
                if requester_conflicts or provider_conflicts:
                    message = (
                        "You have a scheduling conflict at the proposed time"
                        if requester_conflicts
                        else "The provider has a scheduling conflict at the proposed time"
                    )
                    raise SchedulingConflictException(
                        message,
                        requester_conflicts=_conflict_details(requester_conflicts),
                        provider_conflicts=_conflict_details(provider_conflicts),
                        conflict_scope="create",
                    )

                session = self.session_repository.create(
                    requester_id=requester_id,
                    provider_id=data.provider_id,
                    skill_name=data.skill.name,
                    skill_category=data.skill.category,
                    skill_level=data.skill.level.value,
                    scheduled_date=start,
                    duration_minutes=data.duration_minutes,
                    timezone=data.timezone,
                    session_type=data.session_type.value,
                    request_message=data.request_message,
                    meeting_link=data.meeting_link,
                    location=data.location,
                    status=SessionStatus.PENDING.value,
                )
                self._record_event(session, SessionEventName.SESSION_REQUEST, now)

        self.log_operation(
            "create_session_request",
            session_id=session.id,
            requester_id=requester_id,
            provider_id=data.provider_id,
        )
        return self._to_read(session, requester_id)

    # Provider response

    @BaseService.measure_operation("respond_to_session_request")
    def respond_to_session_request(
        self,
        session_id: str,
        provider_id: str,
        action: Union[RespondAction, str],
        response: Optional[SessionRespond] = None,
    ) -> SessionRead:
        """
        Accept or decline a pending request as its provider.

        Accepting re-checks both calendars at the effective start time,
        ignoring this session itself.
        """
        try:
            action = RespondAction(action)
        except ValueError as exc:
            raise ValidationException(
                'Invalid action. Must be "accept" or "decline"',
                code="INVALID_ACTION",
                details={"action": str(action)},
            ) from exc
        response = response or SessionRespond()
        now = utc_now()

        session = self._get_session_or_404(session_id)
        if session.provider_id != provider_id:
            raise AuthorizationException(
                "Only the session provider can respond to this request",
                actor_id=provider_id,
                session_id=session_id,
            )

        if action is RespondAction.DECLINE:
            with self.transaction():
                transitions.decline(session, provider_id, now, reason=response.message)
                self._record_event(session, SessionEventName.SESSION_DECLINED, now)
            self.log_operation("decline_session", session_id=session_id)
            return self._to_read(session, provider_id)

        effective_start = transitions.check_accept(
            session, provider_id, now, response.confirmed_date_time, response.message
        )
        participants = [session.requester_id, session.provider_id]
        with participant_lock(participants):
            with self.transaction():
                self.session_repository.lock_participants(participants)
                requester_conflicts, provider_conflicts = self.conflict_checker.check_both(
                    session.requester_id,
                    session.provider_id,
                    effective_start,
                    session.duration_minutes,
                    exclude_session_id=session.id,
                )
                if requester_conflicts or provider_conflicts:
                    raise SchedulingConflictException(
                        "Scheduling conflict detected. Please propose an alternative time.",
                        requester_conflicts=_conflict_details(requester_conflicts),
                        provider_conflicts=_conflict_details(provider_conflicts),
                        conflict_scope="accept",
                    )

                transitions.accept(
                    session,
                    provider_id,
                    now,
                    confirmed_date=response.confirmed_date_time,
                    meeting_link=response.meeting_link,
                    location=response.location,
                    message=response.message,
                )
                self._record_event(session, SessionEventName.SESSION_ACCEPTED, now)

        self.log_operation("accept_session", session_id=session_id)
        return self._to_read(session, provider_id)

    # Participant actions

    @BaseService.measure_operation("cancel_session")
    def cancel_session(
        self, session_id: str, user_id: str, reason: Optional[str] = None
    ) -> SessionRead:
        now = utc_now()
        session = self._get_session_or_404(session_id)
        with self.transaction():
            transitions.cancel(session, user_id, now, reason=reason)
            self._record_event(session, SessionEventName.SESSION_CANCELLED, now)

        self.log_operation("cancel_session", session_id=session_id, cancelled_by=user_id)
        return self._to_read(session, user_id)

    @BaseService.measure_operation("complete_session")
    def complete_session(
        self, session_id: str, user_id: str, notes: Optional[str] = None
    ) -> SessionRead:
        now = utc_now()
        session = self._get_session_or_404(session_id)
        with self.transaction():
            transitions.complete(session, user_id, now, notes=notes)
            self._record_event(session, SessionEventName.SESSION_COMPLETED, now)

        self.log_operation("complete_session", session_id=session_id, completed_by=user_id)
        return self._to_read(session, user_id)

    @BaseService.measure_operation("mark_no_show")
    def mark_no_show(self, session_id: str, user_id: str) -> SessionRead:
        now = utc_now()
        session = self._get_session_or_404(session_id)
        with self.transaction():
            transitions.mark_no_show(session, user_id, now)
            self._record_event(session, SessionEventName.SESSION_NO_SHOW, now)

        self.log_operation("mark_no_show", session_id=session_id, reported_by=user_id)
        return self._to_read(session, user_id)

    @BaseService.measure_operation("propose_alternative_time")
    def propose_alternative_time(
        self,
        session_id: str,
        user_id: str,
        date_time: datetime,
        message: Optional[str] = None,
    ) -> SessionRead:
        """Attach a non-binding alternative start time to a pending session."""
        now = utc_now()
        session = self._get_session_or_404(session_id)
        with self.transaction():
            transitions.propose_alternative(session, user_id, now, date_time, message=message)
            self._record_event(session, SessionEventName.ALTERNATIVE_TIME_PROPOSED, now)

        self.log_operation("propose_alternative_time", session_id=session_id, proposed_by=user_id)
        return self._to_read(session, user_id)

    @BaseService.measure_operation("update_session_notes")
    def update_session_notes(
        self, session_id: str, user_id: str, notes: Optional[str]
    ) -> SessionRead:
        session = self._get_session_or_404(session_id)
        with self.transaction():
            transitions.set_notes(session, user_id, notes)
        return self._to_read(session, user_id)

    # Queries

    @BaseService.measure_operation("check_scheduling_conflicts")
    def check_scheduling_conflicts(
        self,
        user_id: str,
        date_time: datetime,
        duration_minutes: int,
        counterpart_id: Optional[str] = None,
    ) -> ConflictCheckResult:
        """Read-only conflict probe for a prospective booking."""
        user_conflicts, counterpart_conflicts = self.conflict_checker.check_both(
            user_id, counterpart_id, date_time, duration_minutes
        )
        return ConflictCheckResult(
            has_conflicts=bool(user_conflicts or counterpart_conflicts),
            user_conflicts=user_conflicts,
            counterpart_conflicts=counterpart_conflicts,
        )

    @BaseService.measure_operation("get_session_for_user")
    def get_session_for_user(self, session_id: str, user_id: str) -> SessionRead:
        session = self._get_session_or_404(session_id)
        if not session.is_participant(user_id):
            raise AuthorizationException(actor_id=user_id, session_id=session_id)
        return self._to_read(session, user_id)

    @BaseService.measure_operation("get_user_sessions")
    def get_user_sessions(
        self, user_id: str, filters: Optional[SessionListFilters] = None
    ) -> SessionPage:
        filters = filters or SessionListFilters()
        sessions, total = self.session_repository.list_for_user(
            user_id,
            role=filters.role,
            status=filters.status.value if filters.status else None,
            upcoming_after=utc_now() if filters.upcoming else None,
            offset=(filters.page - 1) * filters.limit,
            limit=filters.limit,
        )
        total_pages = math.ceil(total / filters.limit) if total else 0
        return SessionPage(
            items=[self._to_read(s, user_id) for s in sessions],
            pagination=PaginationInfo(
                current_page=filters.page,
                total_pages=total_pages,
                total_count=total,
                has_next_page=filters.page < total_pages,
                has_prev_page=filters.page > 1,
                limit=filters.limit,
            ),
        )

    @BaseService.measure_operation("get_user_session_stats")
    def get_user_session_stats(self, user_id: str) -> SessionStats:
        counts = self.session_repository.count_by_status(user_id)
        return SessionStats(
            total=sum(counts.values()),
            pending=counts[SessionStatus.PENDING.value],
            accepted=counts[SessionStatus.ACCEPTED.value],
            completed=counts[SessionStatus.COMPLETED.value],
            cancelled=counts[SessionStatus.CANCELLED.value],
            rejected=counts[SessionStatus.REJECTED.value],
            no_show=counts[SessionStatus.NO_SHOW.value],
            expired=counts[SessionStatus.EXPIRED.value],
        )

    @BaseService.measure_operation("get_upcoming_sessions")
    def get_upcoming_sessions(self, user_id: str, limit: int = 10) -> List[SessionRead]:
        if not 1 <= limit <= UPCOMING_MAX_LIMIT:
            raise ValidationException(
                f"Limit must be between 1 and {UPCOMING_MAX_LIMIT}",
                code="INVALID_LIMIT",
                details={"limit": limit},
            )
        sessions = self.session_repository.find_upcoming(user_id, utc_now(), limit=limit)
        return [self._to_read(s, user_id) for s in sessions]

    # Maintenance

    def cleanup_expired_sessions(self) -> int:
        """Expire stale pending sessions; see SessionExpiryService."""
        return SessionExpiryService(
            self.db,
            session_repository=self.session_repository,
            event_publisher=self.event_publisher,
        ).cleanup_expired_sessions()
