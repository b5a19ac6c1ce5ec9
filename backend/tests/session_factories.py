# backend/tests/session_factories.py
"""Builders for session request payloads used across the suite."""

from datetime import datetime

from skillswap.schemas.session import SessionCreate


def build_create(
    provider_id: str,
    scheduled_date: datetime,
    duration_minutes: int = 60,
    **overrides,
) -> SessionCreate:
    data = {
        "provider_id": provider_id,
        "skill": {"name": "JavaScript", "category": "Programming", "level": "intermediate"},
        "scheduled_date": scheduled_date,
        "duration_minutes": duration_minutes,
        "timezone": "UTC",
        "session_type": "online",
    }
    data.update(overrides)
    return SessionCreate(**data)
