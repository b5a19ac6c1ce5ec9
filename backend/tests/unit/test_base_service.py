# backend/tests/unit/test_base_service.py
"""
Unit tests for BaseService transaction handling and metrics.

These tests isolate the service plumbing from the database using mocks.
"""

from unittest.mock import Mock

import pytest
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from skillswap.core.exceptions import (
    ConcurrentModificationException,
    ServiceException,
    ValidationException,
)
from skillswap.services.base import BaseService


class SampleService(BaseService):
    @BaseService.measure_operation("do_work")
    def do_work(self, fail: bool = False) -> str:
        if fail:
            raise ValidationException("nope")
        return "done"


class TestTransactionManagement:
    """Test transaction management logic."""

    def test_successful_transaction_commits(self):
        """Commit on clean exit, no rollback."""
        mock_db = Mock(spec=Session)
        service = BaseService(mock_db)

        with service.transaction():
            pass

        mock_db.commit.assert_called_once()
        mock_db.rollback.assert_not_called()

    def test_domain_exception_rolls_back_and_propagates(self):
        mock_db = Mock(spec=Session)
        service = BaseService(mock_db)

        with pytest.raises(ValidationException):
            with service.transaction():
                raise ValidationException("bad input")

        mock_db.commit.assert_not_called()
        mock_db.rollback.assert_called_once()

    def test_stale_data_becomes_concurrent_modification(self):
        mock_db = Mock(spec=Session)
        mock_db.commit.side_effect = StaleDataError("version mismatch")
        service = BaseService(mock_db)

        with pytest.raises(ConcurrentModificationException) as exc_info:
            with service.transaction():
                pass

        assert exc_info.value.code == "CONCURRENT_MODIFICATION"
        mock_db.rollback.assert_called_once()

    def test_sqlalchemy_error_becomes_service_exception(self):
        mock_db = Mock(spec=Session)
        service = BaseService(mock_db)

        with pytest.raises(ServiceException) as exc_info:
            with service.transaction():
                raise SQLAlchemyError("connection lost")

        assert "Database operation failed" in exc_info.value.message
        mock_db.rollback.assert_called_once()


class TestMeasureOperation:
    def test_logger_uses_class_name(self):
        service = SampleService(Mock(spec=Session))

        assert service.logger.name == "SampleService"

    def test_records_success_and_failure(self):
        service = SampleService(Mock(spec=Session))
        service.reset_metrics()

        assert service.do_work() == "done"
        with pytest.raises(ValidationException):
            service.do_work(fail=True)

        metrics = service.get_metrics()["do_work"]
        assert metrics["count"] == 2
        assert metrics["success_count"] == 1
        assert metrics["failure_count"] == 1
        assert metrics["success_rate"] == 0.5

    def test_decorator_marks_wrapper(self):
        assert SampleService.do_work._operation_name == "do_work"
        assert SampleService.do_work._is_measured is True
        assert SampleService.do_work.__name__ == "do_work"
