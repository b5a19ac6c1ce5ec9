# backend/skillswap/services/rating_aggregator.py
"""
Rating aggregation.

The user's stored rating is always recomputed from their active
reviews, never adjusted incrementally, so recomputing is idempotent and
repairs any drift.
"""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from ..core.exceptions import NotFoundException
from ..repositories import RepositoryFactory
from ..repositories.review_repository import ReviewRepository
from ..repositories.user_repository import UserRepository
from ..schemas.review import RatingSummary
from .base import BaseService
from .ratings_math import average_rating

logger = logging.getLogger(__name__)


class RatingAggregator(BaseService):
    def __init__(
        self,
        db: Session,
        user_repository: Optional[UserRepository] = None,
        review_repository: Optional[ReviewRepository] = None,
    ):
        super().__init__(db)
        self.logger = logging.getLogger(__name__)
        self.user_repository = user_repository or RepositoryFactory.create_user_repository(db)
        self.review_repository = (
            review_repository or RepositoryFactory.create_review_repository(db)
        )

    @BaseService.measure_operation("recompute_rating")
    def recompute_rating(self, user_id: str) -> RatingSummary:
        """
        Recompute and store ``user_id``'s rating from their active reviews.

        Raises:
            NotFoundException: If the user does not exist
        """
        user = self.user_repository.get_by_id(user_id, load_relationships=False)
        if user is None:
            raise NotFoundException(
                "User not found", code="USER_NOT_FOUND", details={"user_id": user_id}
            )

        ratings = self.review_repository.get_active_ratings_for_reviewee(user_id)
        average, count = average_rating(ratings)

        with self.transaction():
            self.user_repository.update_rating(user_id, average, count)

        self.log_operation("recompute_rating", user_id=user_id, average=average, count=count)
        return RatingSummary(user_id=user_id, average=average, count=count)
