from exam_scheduler.models.scheduling.shift import Shift
from exam_scheduler.models.scheduling.closed_date import ClosedDate
from exam_scheduler.models.scheduling.capacity import HourlyCapacity, ShiftCapacityRoster
from exam_scheduler.models.scheduling.scheduling_settings import SchedulingSettings

__all__ = ["Shift", "ClosedDate", "HourlyCapacity", "ShiftCapacityRoster", "SchedulingSettings"]
