from exam_scheduler.services.base.base_service import BaseService
from exam_scheduler.services.base.event_dispatcher import BookingEventName, EventBroadcaster, event_broadcaster
from exam_scheduler.services.base.notification_dispatcher import (
    AdminDirectory,
    InAppNotifier,
    NotificationDispatcher,
    NotificationType,
    Notifier,
    StaticAdminDirectory,
)
from exam_scheduler.services.base.service_result import ErrorCode, ErrorSeverity, ServiceError, ServiceResult

__all__ = [
    "BaseService",
    "BookingEventName",
    "EventBroadcaster",
    "event_broadcaster",
    "AdminDirectory",
    "InAppNotifier",
    "NotificationDispatcher",
    "NotificationType",
    "Notifier",
    "StaticAdminDirectory",
    "ErrorCode",
    "ErrorSeverity",
    "ServiceError",
    "ServiceResult",
]
