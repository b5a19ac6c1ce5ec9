# backend/skillswap/core/constants.py
"""Application-wide constants for the SkillSwap session engine."""

BRAND_NAME = "SkillSwap"

# Fixed bounds, shared by the DB check constraint and the overlap pre-filter
MIN_SESSION_DURATION_MINUTES = 15
MAX_SESSION_DURATION_MINUTES = 480

# Session policy defaults (overridable through Settings)
CANCELLATION_WINDOW_HOURS = 2
PENDING_EXPIRY_DAYS = 7

# Free-text bounds
REQUEST_MESSAGE_MAX_LENGTH = 500
RESPONSE_MESSAGE_MAX_LENGTH = 500
LOCATION_MAX_LENGTH = 200
CANCELLATION_REASON_MAX_LENGTH = 300
SESSION_NOTES_MAX_LENGTH = 1000
REVIEW_COMMENT_MIN_LENGTH = 10
REVIEW_COMMENT_MAX_LENGTH = 1000
