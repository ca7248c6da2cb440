"""
Tests for service results and the shared failure handling in BaseService.
"""

import pytest
from sqlalchemy.exc import OperationalError

from exam_scheduler.core.exceptions import ErrorCode, HoldExpiredError
from exam_scheduler.services.base.service_result import ErrorSeverity, ServiceError, ServiceResult


class TestServiceResult:

    def test_success_is_truthy(self):
        result = ServiceResult.success({"id": "b-1"}, message="ok", metadata={"source": "roster"})

        assert result
        assert result.unwrap() == {"id": "b-1"}
        assert result.error_code is None
        assert result.to_dict()["metadata"] == {"source": "roster"}

    def test_domain_failure_reraises_original(self):
        exc = HoldExpiredError("b-1")
        result = ServiceResult.failure(ServiceError.from_domain(exc))

        assert not result
        assert result.error_code == ErrorCode.HOLD_EXPIRED
        assert result.error.status_code == 410
        assert result.error.severity == ErrorSeverity.WARNING
        with pytest.raises(HoldExpiredError) as raised:
            result.unwrap()
        assert raised.value is exc

    def test_not_found(self):
        result = ServiceResult.not_found("Booking", "b-404")

        assert result.error_code == ErrorCode.NOT_FOUND
        assert result.error.status_code == 404
        assert result.message == "Booking not found: b-404"
        payload = result.to_dict()
        assert payload["success"] is False
        assert payload["error"]["code"] == "NOT_FOUND"

    def test_unwrap_without_domain_error(self):
        result = ServiceResult.not_found("Shift")

        with pytest.raises(RuntimeError):
            result.unwrap()


class TestHandleException:

    def test_unexpected_error_is_critical(self, lifecycle):
        result = lifecycle._handle_exception(RuntimeError("disk full"), "place hold", "CS")

        assert result.error_code == ErrorCode.INTERNAL_ERROR
        assert result.error.severity == ErrorSeverity.CRITICAL
        assert result.error.details["reason"] == "disk full"
        assert result.error.details["subject"] == "CS"
        assert result.message == "Could not place hold"

    def test_context_is_kept_on_unexpected_failure(self, lifecycle):
        result = lifecycle._handle_exception(
            RuntimeError("lost connection"), "approve booking", "b-1", {"force_approve": True}
        )

        assert result.error.details["force_approve"] is True
        assert result.error.details["subject"] == "b-1"

    def test_context_leaves_domain_details_alone(self, lifecycle):
        result = lifecycle._handle_exception(HoldExpiredError("b-1"), "approve booking", "b-1", {"force_approve": False})

        assert result.error_code == ErrorCode.HOLD_EXPIRED
        assert result.error.details == {"booking_id": "b-1"}

    def test_database_error_code(self, lifecycle):
        exc = OperationalError("SELECT 1", {}, Exception("database is locked"))

        result = lifecycle._handle_exception(exc, "submit booking")

        assert result.error_code == ErrorCode.DATABASE_ERROR

    def test_missing_booking_lookup(self, lifecycle):
        result = lifecycle.get_booking("missing")

        assert result.error_code == ErrorCode.NOT_FOUND
