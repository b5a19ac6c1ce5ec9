# backend/skillswap/services/overlap_detector.py
"""
Interval overlap detection for SkillSwap sessions.

Sessions are half-open intervals ``[start, start + duration)``: one that
ends exactly when another begins does not conflict. Only pending and
accepted sessions occupy a participant's calendar.
"""

from datetime import datetime, timedelta
import logging
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session

from ..core.timezone_utils import ensure_utc
from ..repositories import RepositoryFactory
from ..repositories.session_repository import SessionRepository
from ..schemas.session import ConflictingInterval
from .base import BaseService

logger = logging.getLogger(__name__)


def intervals_overlap(
    start_a: datetime, end_a: datetime, start_b: datetime, end_b: datetime
) -> bool:
    """True when the half-open intervals [start_a, end_a) and [start_b, end_b) intersect."""
    return start_a < end_b and start_b < end_a


class ConflictChecker(BaseService):
    """
    Finds a participant's active sessions that overlap a proposed interval.

    The repository narrows candidates with an indexed range query; the
    exact predicate is applied here so the rule lives in one place.
    """

    def __init__(self, db: Session, repository: Optional[SessionRepository] = None):
        super().__init__(db)
        self.logger = logging.getLogger(__name__)
        self.repository = repository or RepositoryFactory.create_session_repository(db)

    @BaseService.measure_operation("find_conflicts")
    def find_conflicts(
        self,
        user_id: str,
        start: datetime,
        duration_minutes: int,
        exclude_session_id: Optional[str] = None,
    ) -> List[ConflictingInterval]:
        """
        Active sessions of ``user_id`` overlapping ``[start, start + duration)``.

        Args:
            user_id: Participant whose calendar is checked
            start: Proposed start instant
            duration_minutes: Proposed length
            exclude_session_id: Session to ignore (the one being accepted)

        Returns:
            Conflicting sessions ordered by start time
        """
        start = ensure_utc(start)
        end = start + timedelta(minutes=duration_minutes)
        candidates = self.repository.find_active_for_participant(
            user_id, start, end, exclude_session_id=exclude_session_id
        )

        conflicts = [
            ConflictingInterval.model_validate(candidate)
            for candidate in candidates
            if intervals_overlap(start, end, candidate.scheduled_date, candidate.end_time)
        ]

        if conflicts:
            self.logger.info(
                f"Found {len(conflicts)} scheduling conflicts for {user_id} "
                f"between {start.isoformat()} and {end.isoformat()}"
            )
        return conflicts

    def check_both(
        self,
        user_id: str,
        counterpart_id: Optional[str],
        start: datetime,
        duration_minutes: int,
        exclude_session_id: Optional[str] = None,
    ) -> Tuple[List[ConflictingInterval], List[ConflictingInterval]]:
        """Conflicts for the user and, when given, the counterpart, kept separate."""
        user_conflicts = self.find_conflicts(
            user_id, start, duration_minutes, exclude_session_id=exclude_session_id
        )
        counterpart_conflicts: List[ConflictingInterval] = []
        if counterpart_id:
            counterpart_conflicts = self.find_conflicts(
                counterpart_id, start, duration_minutes, exclude_session_id=exclude_session_id
            )
        return user_conflicts, counterpart_conflicts
