# backend/skillswap/models/user.py
"""
User directory record.

Only the fields the session engine needs are modelled here: identity,
contact, account state, and the denormalized rating summary written by
the rating aggregator.
"""

from enum import Enum

from sqlalchemy import Boolean, CheckConstraint, Column, Integer, Numeric, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import ulid

from ..database import Base
from .types import UTCDateTime


class UserStatus(str, Enum):
    """Account state for a user."""

    ACTIVE = "active"
    SUSPENDED = "suspended"
    DEACTIVATED = "deactivated"


class User(Base):
    """A SkillSwap member who can request or provide sessions."""

    __tablename__ = "users"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))
    email = Column(String(255), unique=True, nullable=False, index=True)
    first_name = Column(String(50), nullable=False)
    last_name = Column(String(50), nullable=False)
    status = Column(String(20), nullable=False, default=UserStatus.ACTIVE.value)
    is_email_verified = Column(Boolean, nullable=False, default=False)

    rating_average = Column(Numeric(2, 1, asdecimal=False), nullable=False, default=0.0)
    rating_count = Column(Integer, nullable=False, default=0)

    created_at = Column(UTCDateTime, nullable=False, server_default=func.now())

    reviews_received = relationship(
        "Review", foreign_keys="Review.reviewee_id", back_populates="reviewee"
    )

    __table_args__ = (
        CheckConstraint(
            "rating_average >= 0 AND rating_average <= 5", name="ck_users_rating_average_range"
        ),
        CheckConstraint("rating_count >= 0", name="ck_users_rating_count_non_negative"),
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def is_addressable(self) -> bool:
        """True when the user can be offered as a session provider."""
        return self.status == UserStatus.ACTIVE.value and bool(self.is_email_verified)

    def __repr__(self) -> str:
        return f"<User {self.id} {self.email}>"
