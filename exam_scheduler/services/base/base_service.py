"""
Common plumbing for the scheduling services.

A service owns one database session and commits at most once per public
operation. Public operations catch everything and return a ServiceResult;
domain refusals are logged as warnings, anything unexpected as errors.
"""

import logging
from abc import ABC
from contextlib import contextmanager
from typing import Any, Dict, Optional

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from exam_scheduler.config.settings import Settings, get_settings
from exam_scheduler.core.clock import Clock, SystemClock
from exam_scheduler.core.exceptions import ErrorCode, SchedulingError, ValidationError
from exam_scheduler.models.scheduling.scheduling_settings import SchedulingSettings
from exam_scheduler.repositories.scheduling.settings_repository import SchedulingSettingsRepository
from exam_scheduler.services.base.event_dispatcher import EventBroadcaster, event_broadcaster
from exam_scheduler.services.base.notification_dispatcher import (
    AdminDirectory,
    InAppNotifier,
    NotificationDispatcher,
    StaticAdminDirectory,
)
from exam_scheduler.services.base.service_result import ErrorSeverity, ServiceError, ServiceResult


class BaseService(ABC):
    """
    Collaborators default from Settings; tests inject a fixed clock, a
    recording notifier and a private broadcaster.
    """

    def __init__(
        self,
        db: Session,
        config: Optional[Settings] = None,
        clock: Optional[Clock] = None,
        notifications: Optional[NotificationDispatcher] = None,
        broadcaster: Optional[EventBroadcaster] = None,
        admin_directory: Optional[AdminDirectory] = None,
    ):
        self.db = db
        self.config = config or get_settings()
        self.clock = clock or SystemClock(self.config.SCHEDULER_TIMEZONE)
        self.notifications = notifications or NotificationDispatcher(
            InAppNotifier(db),
            admin_directory or StaticAdminDirectory(self.config.admin_user_ids),
        )
        self.broadcaster = broadcaster or event_broadcaster
        self.settings_repo = SchedulingSettingsRepository(db, self.config)
        self._logger = logging.getLogger(f"{self.__module__}.{self.__class__.__name__}")

    # -------------------------------------------------------------------------
    # Failures
    # -------------------------------------------------------------------------

    def _handle_exception(
        self,
        exc: Exception,
        operation: str,
        subject: Optional[object] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> ServiceResult:
        """
        Roll back and turn ``exc`` into a failed result for ``operation``.

        ``context`` is added to the log record, and to the details of
        unexpected failures. Domain refusals keep the details they were
        raised with.
        """
        self._rollback()
        extra = {"operation": operation, "subject": None if subject is None else str(subject), **(context or {})}

        if isinstance(exc, SchedulingError):
            self._logger.warning(f"{operation} refused: {exc.message}", extra={**extra, "error_code": exc.error_code.value})
            return ServiceResult.failure(ServiceError.from_domain(exc))

        self._logger.error(f"Unexpected failure in {operation}: {exc}", exc_info=True, extra=extra)
        return ServiceResult.failure(
            ServiceError(
                code=ErrorCode.DATABASE_ERROR if isinstance(exc, SQLAlchemyError) else ErrorCode.INTERNAL_ERROR,
                message=f"Could not {operation}",
                severity=ErrorSeverity.CRITICAL,
                details={"reason": str(exc), **extra},
                exception=exc,
            )
        )

    # -------------------------------------------------------------------------
    # Unit of work
    # -------------------------------------------------------------------------

    @contextmanager
    def transaction(self):
        """Commit when the block finishes, roll back if it raises."""
        try:
            yield self.db
            self.db.commit()
        except Exception:
            self._rollback()
            raise

    def _rollback(self) -> None:
        try:
            self.db.rollback()
        except SQLAlchemyError as e:
            self._logger.warning(f"Ignoring failed rollback: {e}")

    # -------------------------------------------------------------------------
    # Shared lookups
    # -------------------------------------------------------------------------

    def _scheduling_settings(self) -> SchedulingSettings:
        return self.settings_repo.get_or_create()

    @staticmethod
    def _parse(schema_cls, data):
        """Validate ``data`` into ``schema_cls``, raising a domain ValidationError."""
        if isinstance(data, schema_cls):
            return data
        try:
            return schema_cls.model_validate(data)
        except PydanticValidationError as e:
            raise ValidationError(
                f"Invalid {schema_cls.__name__}",
                field_errors={
                    ".".join(str(p) for p in err["loc"]) or "__root__": [err["msg"]]
                    for err in e.errors()
                },
            ) from e
