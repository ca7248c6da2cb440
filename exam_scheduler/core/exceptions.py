"""
Domain errors for the exam scheduler.

Each error carries an ErrorCode, a human message, structured details and
the HTTP-style status a request layer should answer with. Services turn
them into failed ServiceResults; nothing below the service layer catches
them.
"""

from datetime import date
from typing import Any, Dict, List, Optional
from enum import Enum


class ErrorCode(str, Enum):
    INTERNAL_ERROR = "INTERNAL_ERROR"
    NOT_FOUND = "NOT_FOUND"
    INSUFFICIENT_PERMISSIONS = "INSUFFICIENT_PERMISSIONS"
    VALIDATION_ERROR = "VALIDATION_ERROR"

    # Persistence
    DATABASE_ERROR = "DATABASE_ERROR"
    DUPLICATE_ENTRY = "DUPLICATE_ENTRY"

    # Booking rules
    ALREADY_SCHEDULED = "ALREADY_SCHEDULED"
    INVALID_TRANSITION = "INVALID_TRANSITION"
    HOLD_EXPIRED = "HOLD_EXPIRED"
    CAPACITY_EXCEEDED = "CAPACITY_EXCEEDED"
    CONFIGURATION_MISSING = "CONFIGURATION_MISSING"
    LOCK_TIMEOUT = "LOCK_TIMEOUT"


class SchedulingError(Exception):
    """Root of every error a scheduling operation can refuse with."""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        details: Optional[Dict[str, Any]] = None,
        status_code: int = 500
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        self.status_code = status_code

    def __str__(self) -> str:
        return f"[{self.error_code.value}] {self.message}"


# ========================================
# Request Exceptions
# ========================================

class ValidationError(SchedulingError):
    """Input failed schema or business validation"""

    def __init__(
        self,
        message: str = "Validation failed",
        field_errors: Optional[Dict[str, List[str]]] = None,
        error_code: ErrorCode = ErrorCode.VALIDATION_ERROR,
    ):
        details = {"field_errors": field_errors} if field_errors else {}
        super().__init__(message, error_code, details, status_code=400)
        self.field_errors = field_errors or {}


class NotFoundError(SchedulingError):
    """A looked-up id resolved to nothing"""

    def __init__(self, resource_type: str, resource_id: Optional[str] = None):
        message = f"{resource_type} not found"
        if resource_id:
            message += f" (ID: {resource_id})"
        super().__init__(
            message,
            ErrorCode.NOT_FOUND,
            {"resource_type": resource_type, "resource_id": resource_id},
            status_code=404,
        )


class PermissionDeniedError(SchedulingError):
    """The caller does not own the booking"""

    def __init__(self, message: str = "Not allowed to modify this booking"):
        super().__init__(message, ErrorCode.INSUFFICIENT_PERMISSIONS, status_code=403)


# ========================================
# Booking Exceptions
# ========================================

class AlreadyScheduledError(SchedulingError):
    """The department already holds a non-terminal booking"""

    def __init__(self, department_id: str, booking_date: date, status: str):
        super().__init__(
            f"Department {department_id} already has a booking on {booking_date.isoformat()}",
            ErrorCode.ALREADY_SCHEDULED,
            {
                "department_id": department_id,
                "booking_date": booking_date.isoformat(),
                "status": status,
            },
            status_code=409,
        )


class InvalidTransitionError(SchedulingError):
    """A state machine guard rejected the requested transition"""

    def __init__(
        self,
        message: str,
        current_status: Optional[str] = None,
        target_status: Optional[str] = None,
    ):
        super().__init__(
            message,
            ErrorCode.INVALID_TRANSITION,
            {"current_status": current_status, "target_status": target_status},
            status_code=409,
        )


class HoldExpiredError(SchedulingError):
    """Submit attempted at or after the hold deadline"""

    def __init__(self, booking_id: str):
        super().__init__(
            "Hold expired",
            ErrorCode.HOLD_EXPIRED,
            {"booking_id": booking_id},
            status_code=410,
        )


class CapacityExceededError(SchedulingError):
    """Approval would push the slot over its effective capacity"""

    def __init__(self, breakdown: Dict[str, Any]):
        super().__init__(
            f"Capacity exceeded by {breakdown.get('overage')} candidates",
            ErrorCode.CAPACITY_EXCEEDED,
            breakdown,
            status_code=409,
        )


class ConfigurationMissingError(SchedulingError):
    """No capacity source exists for the target shift or hour"""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, ErrorCode.CONFIGURATION_MISSING, details, status_code=422)


class LockTimeoutError(SchedulingError):
    """A serialized approval could not acquire its capacity lock"""

    def __init__(self, key: str):
        super().__init__(
            f"Timed out waiting for capacity lock {key}",
            ErrorCode.LOCK_TIMEOUT,
            {"key": key},
            status_code=503,
        )


# ========================================
# Repository Exceptions
# ========================================

class RepositoryError(SchedulingError):
    """The database rejected or failed a statement"""

    def __init__(self, message: str = "Database operation failed"):
        super().__init__(message, ErrorCode.DATABASE_ERROR, status_code=500)


class EntityNotFoundError(RepositoryError):
    """get_by_id found no row"""

    def __init__(self, message: str):
        super().__init__(message)
        self.error_code = ErrorCode.NOT_FOUND
        self.status_code = 404


class EntityAlreadyExistsError(RepositoryError):
    """A unique constraint rejected an insert"""

    def __init__(self, message: str):
        super().__init__(message)
        self.error_code = ErrorCode.DUPLICATE_ENTRY
        self.status_code = 409
