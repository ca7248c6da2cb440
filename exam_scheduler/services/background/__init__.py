from exam_scheduler.services.background.deadline_scheduler_service import (
    DeadlineSchedulerService,
    JobReport,
    SchedulerReport,
)
from exam_scheduler.services.background.hold_expiry_reaper import HoldExpiryReaper, ReaperReport

__all__ = [
    "DeadlineSchedulerService",
    "HoldExpiryReaper",
    "JobReport",
    "ReaperReport",
    "SchedulerReport",
]
