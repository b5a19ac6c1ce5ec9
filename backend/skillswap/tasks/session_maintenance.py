# backend/skillswap/tasks/session_maintenance.py
"""
Periodic session maintenance tasks.
"""

import logging
from typing import Any, Callable, TypeVar, cast

from celery import shared_task

from ..database import get_db_session
from ..services.session_expiry_service import SessionExpiryService

logger = logging.getLogger(__name__)

_TaskFunc = TypeVar("_TaskFunc", bound=Callable[..., Any])


def _typed_shared_task(*args: Any, **kwargs: Any) -> Callable[[_TaskFunc], _TaskFunc]:
    """Typed wrapper for Celery's shared_task decorator."""
    return cast(Callable[[_TaskFunc], _TaskFunc], shared_task(*args, **kwargs))


@_typed_shared_task(name="sessions.cleanup_expired_sessions")
def cleanup_expired_sessions() -> int:
    """Expire pending sessions that never got a response."""
    with get_db_session() as db:
        count = SessionExpiryService(db).cleanup_expired_sessions()
    if count:
        logger.info("[SESSIONS] Expired %d stale pending sessions", count)
    return count
