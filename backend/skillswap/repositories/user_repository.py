# backend/skillswap/repositories/user_repository.py
"""
User directory access used by the session engine.
"""

import logging
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import RepositoryException
from ..models.user import User
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class UserRepository(BaseRepository[User]):
    """Repository for user lookups and rating storage."""

    def __init__(self, db: Session):
        super().__init__(db, User)
        self.logger = logging.getLogger(__name__)

    def get_by_email(self, email: str) -> Optional[User]:
        return self.find_one_by(email=email.lower())

    def update_rating(self, user_id: str, average: float, count: int) -> Optional[User]:
        """Store the denormalized rating summary on the user row."""
        try:
            user = self.db.get(User, user_id)
            if user is None:
                return None
            user.rating_average = average
            user.rating_count = count
            self.db.flush()
            return user
        except SQLAlchemyError as e:
            self.logger.error(f"Error updating rating for user {user_id}: {e}")
            raise RepositoryException(f"Failed to update user rating: {e}") from e
