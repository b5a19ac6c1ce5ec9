# backend/skillswap/models/review.py
"""
Review model.

Design notes:
- One review per (session, reviewer) via DB unique constraint
- Moderation handled via status; only active reviews count toward ratings
"""

from enum import Enum

from sqlalchemy import CheckConstraint, Column, ForeignKey, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import ulid

from ..core.constants import REVIEW_COMMENT_MAX_LENGTH
from ..database import Base
from .types import UTCDateTime


class ReviewStatus(str, Enum):
    """Publication state for a review."""

    ACTIVE = "active"
    FLAGGED = "flagged"
    HIDDEN = "hidden"
    REMOVED = "removed"


class Review(Base):
    """Feedback left by one participant about the other after a completed session."""

    __tablename__ = "reviews"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))

    session_id = Column(
        String(26), ForeignKey("skill_sessions.id", ondelete="CASCADE"), nullable=False, index=True
    )
    reviewer_id = Column(String(26), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    reviewee_id = Column(
        String(26), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )

    rating = Column(Integer, nullable=False)
    comment = Column(Text, nullable=False)
    status = Column(String(20), nullable=False, default=ReviewStatus.ACTIVE.value)

    created_at = Column(UTCDateTime, nullable=False, server_default=func.now())

    session = relationship("SkillSession", back_populates="reviews")
    reviewer = relationship("User", foreign_keys=[reviewer_id])
    reviewee = relationship("User", foreign_keys=[reviewee_id], back_populates="reviews_received")

    __table_args__ = (
        UniqueConstraint("session_id", "reviewer_id", name="uq_reviews_session_reviewer"),
        CheckConstraint("rating >= 1 AND rating <= 5", name="ck_reviews_rating_range"),
        CheckConstraint(
            f"length(comment) <= {REVIEW_COMMENT_MAX_LENGTH}", name="ck_reviews_comment_length"
        ),
        Index("ix_reviews_reviewee_status", "reviewee_id", "status"),
    )

    def __repr__(self) -> str:
        return f"<Review {self.id} session={self.session_id} rating={self.rating}>"
