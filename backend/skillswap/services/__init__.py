# backend/skillswap/services/__init__.py
"""
Service layer: business logic over the repositories.
"""

from .base import BaseService
from .overlap_detector import ConflictChecker, intervals_overlap
from .rating_aggregator import RatingAggregator
from .review_service import ReviewService
from .session_expiry_service import SessionExpiryService
from .session_service import SessionService

__all__ = [
    "BaseService",
    "ConflictChecker",
    "RatingAggregator",
    "ReviewService",
    "SessionExpiryService",
    "SessionService",
    "intervals_overlap",
]
