from exam_scheduler.services.booking.booking_approval_service import BookingApprovalService
from exam_scheduler.services.booking.booking_lifecycle_service import BookingLifecycleService
from exam_scheduler.services.booking.external_action_service import ExternalActionService

__all__ = ["BookingApprovalService", "BookingLifecycleService", "ExternalActionService"]
