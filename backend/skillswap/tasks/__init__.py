"""Celery tasks. Import ``celery_app`` explicitly; it connects to the broker lazily."""
