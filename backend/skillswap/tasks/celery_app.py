# backend/skillswap/tasks/celery_app.py
"""
Celery application configuration for SkillSwap.

Redis is the broker; the beat schedule drives session maintenance.
"""

from typing import Any

from celery import Celery
from celery.signals import setup_logging

from ..core.config import settings
from ..core.logging import setup_logging as configure_app_logging


def create_celery_app() -> Celery:
    """
    Create and configure the Celery application.

    Returns:
        Celery: Configured Celery application instance
    """
    broker_url = settings.get_broker_url()
    result_backend = settings.celery_result_backend or broker_url

    celery_app = Celery(
        "skillswap",
        broker=broker_url,
        backend=result_backend,
    )

    celery_app.conf.update(
        {
            # Task settings
            "task_serializer": "json",
            "accept_content": ["json"],
            "result_serializer": "json",
            "timezone": "UTC",
            "enable_utc": True,
            # Worker settings
            "worker_prefetch_multiplier": 1,
            "worker_max_tasks_per_child": 1000,
            "worker_hijack_root_logger": False,
            # Task execution settings
            "task_soft_time_limit": 300,
            "task_time_limit": 600,
            "task_acks_late": True,
            "task_reject_on_worker_lost": True,
            "beat_schedule_filename": "celerybeat-schedule",
        }
    )

    celery_app.conf.imports = tuple(
        set(celery_app.conf.imports or ()) | {"skillswap.tasks.session_maintenance"}
    )
    celery_app.conf.task_routes = {
        "sessions.*": {"queue": "maintenance"},
    }

    from .beat_schedule import get_beat_schedule

    celery_app.conf.beat_schedule = get_beat_schedule()

    return celery_app


# Disable Celery's default logging configuration
@setup_logging.connect  # type: ignore[misc]
def config_loggers(*args: Any, **kwargs: Any) -> None:
    """Route worker logging through the application's logging setup."""
    configure_app_logging()


# Create the Celery app instance
celery_app = create_celery_app()
