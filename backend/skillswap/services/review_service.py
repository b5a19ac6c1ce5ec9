# backend/skillswap/services/review_service.py
"""
Review submission and moderation for completed sessions.

Each participant may review the other once per completed session. Any
change to the set of active reviews triggers a rating recompute for
the reviewee.
"""

import logging
from typing import Optional

from pydantic import ValidationError
from sqlalchemy.orm import Session

from ..core.exceptions import (
    AuthorizationException,
    ConflictException,
    NotFoundException,
    RepositoryException,
    ValidationException,
)
from ..models.review import Review, ReviewStatus
from ..models.session import SessionStatus
from ..repositories import RepositoryFactory
from ..repositories.review_repository import ReviewRepository
from ..repositories.session_repository import SessionRepository
from ..schemas.review import ReviewRead, ReviewSubmitRequest
from .base import BaseService
from .rating_aggregator import RatingAggregator

logger = logging.getLogger(__name__)


class ReviewService(BaseService):
    def __init__(
        self,
        db: Session,
        review_repository: Optional[ReviewRepository] = None,
        session_repository: Optional[SessionRepository] = None,
        rating_aggregator: Optional[RatingAggregator] = None,
    ):
        super().__init__(db)
        self.logger = logging.getLogger(__name__)
        self.review_repository = (
            review_repository or RepositoryFactory.create_review_repository(db)
        )
        self.session_repository = (
            session_repository or RepositoryFactory.create_session_repository(db)
        )
        self.rating_aggregator = rating_aggregator or RatingAggregator(
            db, review_repository=self.review_repository
        )

    @BaseService.measure_operation("submit_review")
    def submit_review(
        self, reviewer_id: str, session_id: str, rating: int, comment: str
    ) -> ReviewRead:
        """
        Record ``reviewer_id``'s review of the other participant.

        Raises:
            NotFoundException: Unknown session
            AuthorizationException: Reviewer is not a participant
            ValidationException: Session not completed, or rating/comment out of bounds
            ConflictException: Reviewer already reviewed this session
        """
        try:
            payload = ReviewSubmitRequest(session_id=session_id, rating=rating, comment=comment)
        except ValidationError as exc:
            raise ValidationException(
                "Invalid review",
                code="INVALID_REVIEW",
                details={"errors": exc.errors(include_url=False, include_context=False)},
            ) from exc

        session = self.session_repository.get_by_id(session_id, load_relationships=False)
        if session is None:
            raise NotFoundException(
                "Session not found", code="SESSION_NOT_FOUND", details={"session_id": session_id}
            )
        if not session.is_participant(reviewer_id):
            raise AuthorizationException(actor_id=reviewer_id, session_id=session_id)
        if session.status_enum is not SessionStatus.COMPLETED:
            raise ValidationException(
                "Can only provide feedback for completed sessions",
                code="SESSION_NOT_COMPLETED",
                details={"session_id": session_id, "status": session.status},
            )

        duplicate = ConflictException(
            "You have already reviewed this session",
            code="DUPLICATE_REVIEW",
            details={"session_id": session_id, "reviewer_id": reviewer_id},
        )
        if self.review_repository.exists_for_reviewer(session_id, reviewer_id):
            raise duplicate

        reviewee_id = session.other_participant_id(reviewer_id)
        try:
            with self.transaction():
                review = self.review_repository.create(
                    session_id=session_id,
                    reviewer_id=reviewer_id,
                    reviewee_id=reviewee_id,
                    rating=payload.rating,
                    comment=payload.comment,
                    status=ReviewStatus.ACTIVE.value,
                )
        except RepositoryException as exc:
            # Lost a race with a concurrent submission for the same pair
            raise duplicate from exc

        self.rating_aggregator.recompute_rating(reviewee_id)
        self.log_operation("submit_review", review_id=review.id, session_id=session_id)
        return ReviewRead.model_validate(review)

    @BaseService.measure_operation("set_review_status")
    def set_review_status(self, review_id: str, status: ReviewStatus) -> ReviewRead:
        """Moderate a review; hidden and removed reviews stop counting toward ratings."""
        review: Optional[Review] = self.review_repository.get_by_id(
            review_id, load_relationships=False
        )
        if review is None:
            raise NotFoundException(
                "Review not found", code="REVIEW_NOT_FOUND", details={"review_id": review_id}
            )
        with self.transaction():
            review.status = ReviewStatus(status).value
        self.rating_aggregator.recompute_rating(review.reviewee_id)
        return ReviewRead.model_validate(review)
