from exam_scheduler.models.base.base_model import Base, BaseModel, TimestampModel, str_enum
from exam_scheduler.models.base.enums import (
    ACTIVE_STATUSES,
    BOOKING_TRANSITIONS,
    EXTERNAL_ACTION_TRANSITIONS,
    TERMINAL_STATUSES,
    BookingEventType,
    BookingStatus,
    ExternalActionStatus,
    ShiftName,
)
from exam_scheduler.models.base.mixins import TimestampMixin, utcnow

__all__ = [
    "Base",
    "BaseModel",
    "TimestampModel",
    "str_enum",
    "TimestampMixin",
    "utcnow",
    "ACTIVE_STATUSES",
    "BOOKING_TRANSITIONS",
    "EXTERNAL_ACTION_TRANSITIONS",
    "TERMINAL_STATUSES",
    "BookingEventType",
    "BookingStatus",
    "ExternalActionStatus",
    "ShiftName",
]
