"""
Slot search service.

Ranks every (date, shift) option from the earliest legal exam date to the
end of the search horizon:

    priority 1  some hour seats every candidate, shift is the preferred one
    priority 2  some hour seats every candidate, other shift
    priority 3  no single hour suffices, the request must be split

Options are sorted by (priority, date); within a date the shift order of
enumeration is kept.
"""

from typing import List, Optional

from exam_scheduler.core.exceptions import AlreadyScheduledError
from exam_scheduler.repositories.booking.booking_repository import BookingRepository
from exam_scheduler.repositories.scheduling.closed_date_repository import ClosedDateRepository
from exam_scheduler.repositories.scheduling.shift_repository import ShiftRepository
from exam_scheduler.schemas.scheduling.slot_search import (
    SlotOption,
    SlotSearchRequest,
    SlotSearchResponse,
    UnavailableDate,
)
from exam_scheduler.services.base.base_service import BaseService
from exam_scheduler.services.base.service_result import ServiceResult
from exam_scheduler.services.scheduling import calendar_engine
from exam_scheduler.services.scheduling.capacity_ledger import CapacityLedger


def slot_priority(max_hour_available: int, candidate_count: int, preferred: bool) -> int:
    if max_hour_available >= candidate_count:
        return 1 if preferred else 2
    return 3


class SlotSearchService(BaseService):
    """Finds bookable exam slots for a department."""

    def __init__(self, db, **kwargs):
        super().__init__(db, **kwargs)
        self.booking_repo = BookingRepository(db)
        self.shift_repo = ShiftRepository(db)
        self.closed_date_repo = ClosedDateRepository(db)
        self.ledger = CapacityLedger(db)

    def search(self, request) -> ServiceResult[SlotSearchResponse]:
        """
        Search available slots.

        Args:
            request: SlotSearchRequest or a dict with the same fields

        Returns:
            ServiceResult with the ranked SlotSearchResponse; fails with
            ALREADY_SCHEDULED when the department has an active booking
        """
        try:
            request = self._parse(SlotSearchRequest, request)
            return ServiceResult.success(self._search(request))
        except Exception as e:
            return self._handle_exception(e, "search slots", getattr(request, "department_id", None))

    def _search(self, request: SlotSearchRequest) -> SlotSearchResponse:
        existing = self.booking_repo.find_active_for_department(request.department_id)
        if existing is not None:
            raise AlreadyScheduledError(existing.department_id, existing.booking_date, existing.status.value)

        rules = self._scheduling_settings()
        closed = self.closed_date_repo.date_set()
        min_date = calendar_engine.earliest_bookable_date(
            request.course_end_date,
            self.clock.local_today(),
            rules.working_days_rule,
            closed,
        )
        max_date = calendar_engine.search_horizon(min_date, self.config.SEARCH_HORIZON_MONTHS)

        shifts = self.shift_repo.list_active()
        snapshot = self.ledger.snapshot(min_date, max_date)
        slots: List[SlotOption] = []
        unavailable: List[UnavailableDate] = [
            UnavailableDate(date=c.date, reason=c.reason)
            for c in self.closed_date_repo.list_between(min_date, max_date)
        ]

        for day in calendar_engine.iter_bookable_dates(min_date, max_date, closed):
            day_slots = 0
            for shift in shifts:
                option = self._build_option(day, shift, snapshot, request)
                if option is not None:
                    slots.append(option)
                    day_slots += 1
            if shifts and day_slots == 0:
                unavailable.append(UnavailableDate(date=day, reason="full"))

        slots.sort(key=lambda s: (s.priority, s.date))
        unavailable.sort(key=lambda u: u.date)

        self._logger.info(
            f"Slot search for {request.department_id}",
            extra={
                "department_id": request.department_id,
                "candidate_count": request.candidate_count,
                "min_date": min_date.isoformat(),
                "slots": len(slots),
            },
        )
        return SlotSearchResponse(min_date=min_date, slots=slots, unavailable_dates=unavailable)

    def _build_option(self, day, shift, snapshot, request: SlotSearchRequest) -> Optional[SlotOption]:
        shift_available = snapshot.shift_available(day, shift)
        hourly = snapshot.hourly_slots(day, shift)
        if shift_available <= 0 and not hourly:
            return None

        best_hour = max((h.available for h in hourly), default=0)
        priority = slot_priority(best_hour, request.candidate_count, shift.name == request.preferred_shift)
        return SlotOption(
            date=day,
            shift_id=shift.id,
            shift_name=shift.name,
            start_time=shift.start_time,
            end_time=shift.end_time,
            available_capacity=max(0, shift_available),
            priority=priority,
            is_split=priority == 3,
            hourly_slots=hourly,
        )
