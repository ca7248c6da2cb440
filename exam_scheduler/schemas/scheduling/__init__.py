from exam_scheduler.schemas.scheduling.slot_search import (
    HourlySlot,
    SlotOption,
    SlotSearchRequest,
    SlotSearchResponse,
    UnavailableDate,
)
from exam_scheduler.schemas.scheduling.capacity import (
    CapacityBreakdown,
    CapacitySource,
    HourlyRosterRow,
    IngestionReport,
    RowError,
    SettingsUpdate,
    ShiftRosterRow,
)

__all__ = [
    "HourlySlot",
    "SlotOption",
    "SlotSearchRequest",
    "SlotSearchResponse",
    "UnavailableDate",
    "CapacityBreakdown",
    "CapacitySource",
    "HourlyRosterRow",
    "IngestionReport",
    "RowError",
    "SettingsUpdate",
    "ShiftRosterRow",
]
