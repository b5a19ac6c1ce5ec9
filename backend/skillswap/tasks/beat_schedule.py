# backend/skillswap/tasks/beat_schedule.py
"""
Celery Beat schedule for SkillSwap periodic tasks.
"""

from typing import Any, Dict, Optional

from celery.schedules import crontab

from ..core.config import settings


def get_beat_schedule(cleanup_hour_utc: Optional[int] = None) -> Dict[str, Dict[str, Any]]:
    """
    Build the beat schedule.

    Args:
        cleanup_hour_utc: Hour for the daily expiry sweep; defaults to settings
    """
    hour = settings.expiry_cleanup_hour_utc if cleanup_hour_utc is None else cleanup_hour_utc
    return {
        # Move stale pending requests out of participants' calendars
        "cleanup-expired-sessions": {
            "task": "sessions.cleanup_expired_sessions",
            "schedule": crontab(hour=hour, minute=0),
            "options": {"queue": "maintenance", "priority": 5},
        },
    }
