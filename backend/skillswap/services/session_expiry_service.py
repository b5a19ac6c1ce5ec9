# backend/skillswap/services/session_expiry_service.py
"""
Expiry sweeper for stale pending sessions.

A pending session whose start is more than ``pending_expiry_days`` in
the past is moved to ``expired``. Each row is expired in its own
transaction; a row changed concurrently is skipped, not fatal. Running
the sweep again finds nothing left to do.
"""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from ..core.exceptions import ConcurrentModificationException, SessionStateException
from ..core.timezone_utils import utc_now
from ..events import SessionEventName, SessionEventPublisher
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories import RepositoryFactory
from ..repositories.session_repository import SessionRepository
from . import session_transitions as transitions
from .base import BaseService

logger = logging.getLogger(__name__)


class SessionExpiryService(BaseService):
    """Moves stale pending sessions out of the active set."""

    def __init__(
        self,
        db: Session,
        session_repository: Optional[SessionRepository] = None,
        event_publisher: Optional[SessionEventPublisher] = None,
    ):
        super().__init__(db)
        self.logger = logging.getLogger(__name__)
        self.session_repository = (
            session_repository or RepositoryFactory.create_session_repository(db)
        )
        self.event_publisher = event_publisher or SessionEventPublisher(
            RepositoryFactory.create_event_outbox_repository(db)
        )

    @BaseService.measure_operation("cleanup_expired_sessions")
    def cleanup_expired_sessions(self, batch_size: Optional[int] = None) -> int:
        """
        Expire every stale pending session.

        Args:
            batch_size: Optional cap on rows examined in this run

        Returns:
            Number of sessions moved to expired
        """
        now = utc_now()
        cutoff = transitions.expiry_cutoff(now)
        candidates = self.session_repository.find_expirable(cutoff, limit=batch_size)

        expired = 0
        skipped = 0
        for session in candidates:
            session_id = session.id
            try:
                with self.transaction():
                    transitions.expire(session, now)
                    self.db.flush()
                    self.event_publisher.publish_for(
                        session_id, SessionEventName.SESSION_EXPIRED, now, session.version
                    )
                expired += 1
            except (ConcurrentModificationException, SessionStateException) as exc:
                skipped += 1
                self.logger.warning(
                    f"Skipping session {session_id} during expiry sweep: {exc}",
                    extra={"session_id": session_id, "error_type": type(exc).__name__},
                )

        prometheus_metrics.record_expired_sessions(expired)
        self.log_operation(
            "cleanup_expired_sessions",
            expired=expired,
            skipped=skipped,
            cutoff=cutoff.isoformat(),
        )
        return expired
