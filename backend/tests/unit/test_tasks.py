# backend/tests/unit/test_tasks.py
"""
Celery wiring for session maintenance.
"""

from contextlib import contextmanager
from unittest.mock import MagicMock, patch

from celery.schedules import crontab

from skillswap.tasks import session_maintenance
from skillswap.tasks.beat_schedule import get_beat_schedule
from skillswap.tasks.celery_app import celery_app, create_celery_app


class TestBeatSchedule:
    def test_daily_cleanup_entry(self):
        schedule = get_beat_schedule(cleanup_hour_utc=4)

        entry = schedule["cleanup-expired-sessions"]
        assert entry["task"] == "sessions.cleanup_expired_sessions"
        assert entry["schedule"] == crontab(hour=4, minute=0)
        assert entry["options"]["queue"] == "maintenance"

    def test_app_uses_the_schedule(self):
        app = create_celery_app()

        assert "cleanup-expired-sessions" in app.conf.beat_schedule
        assert app.conf.task_routes["sessions.*"] == {"queue": "maintenance"}
        assert "skillswap.tasks.session_maintenance" in app.conf.imports
        assert app.conf.timezone == "UTC"


class TestCleanupTask:
    def test_task_is_registered_by_name(self):
        assert session_maintenance.cleanup_expired_sessions.name == "sessions.cleanup_expired_sessions"
        assert celery_app.main == "skillswap"

    def test_task_runs_expiry_service(self):
        db = MagicMock()

        @contextmanager
        def fake_session():
            yield db

        with patch.object(session_maintenance, "get_db_session", fake_session), patch.object(
            session_maintenance, "SessionExpiryService"
        ) as service_cls:
            service_cls.return_value.cleanup_expired_sessions.return_value = 3

            result = session_maintenance.cleanup_expired_sessions.run()

        assert result == 3
        service_cls.assert_called_once_with(db)
