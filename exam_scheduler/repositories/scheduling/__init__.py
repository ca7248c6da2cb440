from exam_scheduler.repositories.scheduling.shift_repository import ShiftRepository
from exam_scheduler.repositories.scheduling.closed_date_repository import ClosedDateRepository
from exam_scheduler.repositories.scheduling.capacity_repository import CapacityRepository
from exam_scheduler.repositories.scheduling.settings_repository import SchedulingSettingsRepository

__all__ = ["ShiftRepository", "ClosedDateRepository", "CapacityRepository", "SchedulingSettingsRepository"]
