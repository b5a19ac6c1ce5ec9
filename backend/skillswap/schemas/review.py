# backend/skillswap/schemas/review.py
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field
from pydantic.functional_validators import field_validator

from ..core.constants import REVIEW_COMMENT_MAX_LENGTH, REVIEW_COMMENT_MIN_LENGTH
from ..models.review import ReviewStatus
from .base import ORMResponseModel


class ReviewSubmitRequest(BaseModel):
    session_id: str
    rating: int = Field(..., ge=1, le=5)
    comment: str = Field(..., max_length=REVIEW_COMMENT_MAX_LENGTH)

    @field_validator("comment")
    @classmethod
    def _clean_comment(cls, v: str) -> str:
        v2 = v.strip()
        if len(v2) < REVIEW_COMMENT_MIN_LENGTH:
            raise ValueError(
                f"Review comment must be at least {REVIEW_COMMENT_MIN_LENGTH} characters"
            )
        return v2


class ReviewRead(ORMResponseModel):
    id: str
    session_id: str
    reviewer_id: str
    reviewee_id: str
    rating: int
    comment: str
    status: ReviewStatus
    created_at: Optional[datetime] = None


class RatingSummary(BaseModel):
    """Denormalized rating stored on a user."""

    user_id: str
    average: float
    count: int
