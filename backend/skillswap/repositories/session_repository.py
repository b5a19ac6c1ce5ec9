# backend/skillswap/repositories/session_repository.py
"""
Session Repository for SkillSwap

Data access for skill exchange sessions:
- Participant schedule queries used by the overlap detector
- Participant locking for the check-then-write critical section
- Per-user listings, statistics and upcoming sessions
- Expiry candidate selection for the sweeper
"""

from datetime import datetime, timedelta
import logging
from typing import Dict, Iterable, List, Optional, Tuple, cast

from sqlalchemy import func, or_, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Query, Session, joinedload

from ..core.constants import MAX_SESSION_DURATION_MINUTES
from ..core.exceptions import RepositoryException
from ..models.session import ACTIVE_STATUSES, SessionStatus, SkillSession
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)

ROLE_ALL = "all"
ROLE_REQUESTED = "requested"
ROLE_RECEIVED = "received"


class SessionRepository(BaseRepository[SkillSession]):
    """Repository for skill session data access."""

    def __init__(self, db: Session):
        super().__init__(db, SkillSession)
        self.logger = logging.getLogger(__name__)

    # Scheduling queries

    def find_active_for_participant(
        self,
        user_id: str,
        window_start: datetime,
        window_end: datetime,
        exclude_session_id: Optional[str] = None,
    ) -> List[SkillSession]:
        """
        Pending or accepted sessions of ``user_id`` that may touch the window.

        This is a coarse pre-filter: it returns every session starting before
        ``window_end`` that could still be running at ``window_start`` given the
        maximum duration. The exact overlap predicate is applied by the caller.
        """
        try:
            lower_bound = window_start - timedelta(minutes=MAX_SESSION_DURATION_MINUTES)
            query = self.db.query(SkillSession).filter(
                or_(SkillSession.requester_id == user_id, SkillSession.provider_id == user_id),
                SkillSession.status.in_([s.value for s in ACTIVE_STATUSES]),
                SkillSession.scheduled_date < window_end,
                SkillSession.scheduled_date > lower_bound,
            )
            if exclude_session_id:
                query = query.filter(SkillSession.id != exclude_session_id)
            return cast(List[SkillSession], query.order_by(SkillSession.scheduled_date).all())
        except SQLAlchemyError as e:
            self.logger.error(f"Error finding active sessions for {user_id}: {str(e)}")
            raise RepositoryException(f"Failed to find participant sessions: {str(e)}") from e

    def lock_participants(self, participant_ids: Iterable[str]) -> None:
        """
        Take transaction-scoped advisory locks for each participant on PostgreSQL.

        Other dialects rely on the application-level participant lock.
        """
        if self.dialect_name != "postgresql":
            return
        for participant_id in sorted(set(participant_ids)):
            self.db.execute(
                text("SELECT pg_advisory_xact_lock(hashtext(:key))"),
                {"key": f"participant:{participant_id}:schedule"},
            )

    # Single-session reads

    def get_with_participants(self, session_id: str) -> Optional[SkillSession]:
        """Load a session with requester and provider populated."""
        return self.get_by_id(session_id, load_relationships=True)

    def _apply_eager_loading(self, query: Query) -> Query:
        return query.options(
            joinedload(SkillSession.requester),
            joinedload(SkillSession.provider),
        )

    # Listings

    def _participant_filter(self, user_id: str, role: str):
        if role == ROLE_REQUESTED:
            return SkillSession.requester_id == user_id
        if role == ROLE_RECEIVED:
            return SkillSession.provider_id == user_id
        return or_(SkillSession.requester_id == user_id, SkillSession.provider_id == user_id)

    def list_for_user(
        self,
        user_id: str,
        *,
        role: str = ROLE_ALL,
        status: Optional[str] = None,
        upcoming_after: Optional[datetime] = None,
        offset: int = 0,
        limit: int = 20,
    ) -> Tuple[List[SkillSession], int]:
        """
        Page through a user's sessions, newest first.

        ``upcoming_after`` restricts the listing to pending or accepted
        sessions scheduled at or after that instant and overrides ``status``.

        Returns:
            Tuple of (sessions on this page, total matching count)
        """
        try:
            query = self.db.query(SkillSession).filter(self._participant_filter(user_id, role))
            if upcoming_after is not None:
                query = query.filter(
                    SkillSession.status.in_([s.value for s in ACTIVE_STATUSES]),
                    SkillSession.scheduled_date >= upcoming_after,
                )
            elif status:
                query = query.filter(SkillSession.status == status)

            total = query.count()
            items = (
                self._apply_eager_loading(query)
                .order_by(SkillSession.created_at.desc(), SkillSession.id.desc())
                .offset(offset)
                .limit(limit)
                .all()
            )
            return cast(List[SkillSession], items), total
        except SQLAlchemyError as e:
            self.logger.error(f"Error listing sessions for {user_id}: {str(e)}")
            raise RepositoryException(f"Failed to list sessions: {str(e)}") from e

    def count_by_status(self, user_id: str) -> Dict[str, int]:
        """
        Count a user's sessions grouped by status, both roles combined.

        Every status is present in the result, zero when unused.
        """
        try:
            rows = (
                self.db.query(SkillSession.status, func.count(SkillSession.id).label("count"))
                .filter(self._participant_filter(user_id, ROLE_ALL))
                .group_by(SkillSession.status)
                .all()
            )
            counts = {status.value: 0 for status in SessionStatus}
            for row in rows:
                if row.status:
                    counts[row.status] = row.count
            return counts
        except SQLAlchemyError as e:
            self.logger.error(f"Error counting sessions by status: {str(e)}")
            raise RepositoryException(f"Failed to count sessions by status: {str(e)}") from e

    def find_upcoming(self, user_id: str, now: datetime, limit: int = 10) -> List[SkillSession]:
        """Pending or accepted sessions from ``now`` on, soonest first."""
        try:
            query = self.db.query(SkillSession).filter(
                self._participant_filter(user_id, ROLE_ALL),
                SkillSession.status.in_([s.value for s in ACTIVE_STATUSES]),
                SkillSession.scheduled_date >= now,
            )
            return cast(
                List[SkillSession],
                self._apply_eager_loading(query)
                .order_by(SkillSession.scheduled_date.asc())
                .limit(limit)
                .all(),
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error getting upcoming sessions for {user_id}: {str(e)}")
            raise RepositoryException(f"Failed to get upcoming sessions: {str(e)}") from e

    # Maintenance

    def find_expirable(self, cutoff: datetime, limit: Optional[int] = None) -> List[SkillSession]:
        """Pending sessions scheduled strictly before ``cutoff``."""
        try:
            query = (
                self.db.query(SkillSession)
                .filter(
                    SkillSession.status == SessionStatus.PENDING.value,
                    SkillSession.scheduled_date < cutoff,
                )
                .order_by(SkillSession.scheduled_date.asc())
            )
            if limit:
                query = query.limit(limit)
            return cast(List[SkillSession], query.all())
        except SQLAlchemyError as e:
            self.logger.error(f"Error finding expirable sessions: {str(e)}")
            raise RepositoryException(f"Failed to find expirable sessions: {str(e)}") from e
