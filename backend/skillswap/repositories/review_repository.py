# backend/skillswap/repositories/review_repository.py
"""
Review Repository

Queries needed by review submission and rating aggregation.
"""

import logging
from typing import List, cast

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import RepositoryException
from ..models.review import Review, ReviewStatus
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class ReviewRepository(BaseRepository[Review]):
    """Data access for `Review`."""

    def __init__(self, db: Session):
        super().__init__(db, Review)
        self.logger = logging.getLogger(__name__)

    def exists_for_reviewer(self, session_id: str, reviewer_id: str) -> bool:
        try:
            return (
                self.db.query(Review.id)
                .filter(Review.session_id == session_id, Review.reviewer_id == reviewer_id)
                .first()
                is not None
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error checking review existence: {e}")
            raise RepositoryException(f"Failed to check review existence: {e}") from e

    def get_active_ratings_for_reviewee(self, reviewee_id: str) -> List[int]:
        """Ratings of every active review about ``reviewee_id``."""
        try:
            rows = (
                self.db.query(Review.rating)
                .filter(
                    Review.reviewee_id == reviewee_id,
                    Review.status == ReviewStatus.ACTIVE.value,
                )
                .all()
            )
            return [int(row.rating) for row in rows]
        except SQLAlchemyError as e:
            self.logger.error(f"Error loading ratings for {reviewee_id}: {e}")
            raise RepositoryException(f"Failed to load ratings: {e}") from e

    def list_for_session(self, session_id: str) -> List[Review]:
        try:
            return cast(
                List[Review],
                self.db.query(Review).filter(Review.session_id == session_id).all(),
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error listing reviews for session {session_id}: {e}")
            raise RepositoryException(f"Failed to list reviews: {e}") from e
