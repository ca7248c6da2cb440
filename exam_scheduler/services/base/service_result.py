"""
Outcome objects returned by every public service operation.

Expected refusals (capacity exceeded, hold expired, illegal transition)
travel as failed results instead of exceptions so callers can branch on
``error_code``. Library callers that prefer exceptions call ``unwrap()``,
which re-raises the original domain error.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Generic, Optional, TypeVar

from exam_scheduler.core.exceptions import ErrorCode, SchedulingError


class ErrorSeverity(str, Enum):
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


@dataclass
class ServiceError:
    """Why an operation failed, with the HTTP-style status to surface."""

    code: ErrorCode
    message: str
    severity: ErrorSeverity = ErrorSeverity.ERROR
    details: Dict[str, Any] = field(default_factory=dict)
    status_code: int = 500
    occurred_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    exception: Optional[Exception] = field(default=None, repr=False, compare=False)

    @classmethod
    def from_domain(cls, exc: SchedulingError, severity: ErrorSeverity = ErrorSeverity.WARNING) -> "ServiceError":
        """Wrap a refusal raised by the scheduling rules."""
        return cls(
            code=exc.error_code,
            message=exc.message,
            severity=severity,
            details=dict(exc.details or {}),
            status_code=exc.status_code,
            exception=exc,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code.value,
            "message": self.message,
            "severity": self.severity.value,
            "details": self.details,
            "occurred_at": self.occurred_at.isoformat(),
        }


TData = TypeVar("TData")


@dataclass
class ServiceResult(Generic[TData]):
    """
    Success with data, or failure with a ServiceError.

    ``metadata`` carries side information a caller may want to show, for
    example the capacity breakdown behind an approval.
    """

    is_success: bool
    data: Optional[TData] = None
    error: Optional[ServiceError] = None
    message: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def success(
        cls,
        data: Optional[TData] = None,
        message: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> "ServiceResult[TData]":
        return cls(is_success=True, data=data, message=message, metadata=metadata or {})

    @classmethod
    def failure(cls, error: ServiceError) -> "ServiceResult[TData]":
        return cls(is_success=False, error=error, message=error.message)

    @classmethod
    def not_found(cls, resource_type: str, resource_id: Optional[str] = None) -> "ServiceResult[TData]":
        message = f"{resource_type} not found" + (f": {resource_id}" if resource_id else "")
        return cls.failure(
            ServiceError(
                code=ErrorCode.NOT_FOUND,
                message=message,
                severity=ErrorSeverity.WARNING,
                details={"resource_type": resource_type, "resource_id": resource_id},
                status_code=404,
            )
        )

    @property
    def error_code(self) -> Optional[ErrorCode]:
        return self.error.code if self.error else None

    def unwrap(self) -> TData:
        """
        Return the data, or raise the failure.

        Raises:
            SchedulingError: the domain error behind the failure
            RuntimeError: the failure had no domain error attached
        """
        if self.is_success:
            return self.data
        if self.error is not None and isinstance(self.error.exception, SchedulingError):
            raise self.error.exception
        raise RuntimeError(f"Operation failed: {self.message or 'unknown error'}")

    def to_dict(self) -> Dict[str, Any]:
        """Transport shape for a request layer."""
        if self.is_success:
            return {"success": True, "message": self.message, "data": self.data, "metadata": self.metadata}
        return {"success": False, "error": self.error.to_dict() if self.error else None}

    def __bool__(self) -> bool:
        return self.is_success


__all__ = ["ErrorSeverity", "ServiceError", "ServiceResult"]
