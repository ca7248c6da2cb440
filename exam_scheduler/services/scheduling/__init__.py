from exam_scheduler.services.scheduling.capacity_ledger import CapacityLedger
from exam_scheduler.services.scheduling.roster_ingestion_service import RosterIngestionService
from exam_scheduler.services.scheduling.scheduling_admin_service import SchedulingAdminService
from exam_scheduler.services.scheduling.slot_search_service import SlotSearchService

__all__ = ["CapacityLedger", "RosterIngestionService", "SchedulingAdminService", "SlotSearchService"]
