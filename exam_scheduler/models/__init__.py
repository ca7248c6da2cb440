"""
ORM models. Importing this package registers every table on Base.metadata.
"""

from exam_scheduler.models.base import Base, BaseModel, TimestampModel
from exam_scheduler.models.booking import Booking, BookingHistoryEntry
from exam_scheduler.models.notification import Notification
from exam_scheduler.models.scheduling import (
    ClosedDate,
    HourlyCapacity,
    SchedulingSettings,
    Shift,
    ShiftCapacityRoster,
)

__all__ = [
    "Base",
    "BaseModel",
    "TimestampModel",
    "Booking",
    "BookingHistoryEntry",
    "Notification",
    "ClosedDate",
    "HourlyCapacity",
    "SchedulingSettings",
    "Shift",
    "ShiftCapacityRoster",
]
