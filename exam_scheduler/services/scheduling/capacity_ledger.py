"""
Capacity ledger.

Read-side aggregation of configured capacity and booked candidates at
(date, shift) and (date, hour) granularity. Nothing here writes or caches:
every figure is recomputed from the current rosters and bookings.
"""

import logging
from dataclasses import dataclass
from datetime import date
from typing import Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from exam_scheduler.core.exceptions import ConfigurationMissingError
from exam_scheduler.models.base.enums import ACTIVE_STATUSES, BookingStatus
from exam_scheduler.models.booking.booking import Booking
from exam_scheduler.models.scheduling.capacity import HourlyCapacity, ShiftCapacityRoster
from exam_scheduler.models.scheduling.shift import Shift
from exam_scheduler.repositories.booking.booking_repository import BookingRepository
from exam_scheduler.repositories.scheduling.capacity_repository import CapacityRepository
from exam_scheduler.schemas.scheduling.capacity import CapacityBreakdown, CapacitySource
from exam_scheduler.schemas.scheduling.slot_search import HourlySlot
from exam_scheduler.services.scheduling import calendar_engine

logger = logging.getLogger(__name__)


@dataclass
class ShiftAvailability:
    date: date
    shift_id: str
    effective_capacity: int
    booked: int
    has_roster: bool

    @property
    def available(self) -> int:
        return self.effective_capacity - self.booked


def hourly_effective(record: Optional[HourlyCapacity], shift: Shift) -> int:
    """Hourly record value when positive, else the shift default."""
    if record is not None and record.effective_capacity > 0:
        return record.effective_capacity
    return shift.max_candidates


def shift_effective(roster: Optional[ShiftCapacityRoster], shift: Shift) -> int:
    if roster is not None:
        return roster.effective_capacity
    return shift.max_candidates


class CapacityLedger:
    """Computes effective and available capacity."""

    def __init__(self, db: Session):
        self.db = db
        self.capacity_repo = CapacityRepository(db)
        self.booking_repo = BookingRepository(db)

    # ==================== Point queries ====================

    def hourly_availability(self, day: date, hour: int, shift: Shift) -> HourlySlot:
        effective = hourly_effective(self.capacity_repo.find_hourly(day, hour), shift)
        booked = self.booking_repo.sum_candidates(day, ACTIVE_STATUSES, hour=hour)
        return HourlySlot(hour=hour, effective_capacity=effective, booked=booked, available=effective - booked)

    def shift_availability(self, day: date, shift: Shift) -> ShiftAvailability:
        roster = self.capacity_repo.find_shift_roster(day, shift.id)
        booked = self.booking_repo.sum_candidates(day, ACTIVE_STATUSES, shift_id=shift.id)
        return ShiftAvailability(
            date=day,
            shift_id=shift.id,
            effective_capacity=shift_effective(roster, shift),
            booked=booked,
            has_roster=roster is not None,
        )

    # ==================== Range snapshot ====================

    def snapshot(self, start: date, end: date) -> "LedgerSnapshot":
        """Load every roster and booking aggregate in [start, end] at once."""
        return LedgerSnapshot(
            shift_rosters={(r.date, r.shift_id): r for r in self.capacity_repo.list_shift_rosters(start, end)},
            hourly={(h.date, h.hour): h for h in self.capacity_repo.list_hourly(start, end)},
            booked_by_shift=self.booking_repo.booked_by_shift(start, end),
            booked_by_hour=self.booking_repo.booked_by_hour(start, end),
        )

    # ==================== Approval gate ====================

    def approval_capacity(self, booking: Booking, shift: Shift) -> CapacityBreakdown:
        """
        Capacity breakdown for approving ``booking``.

        Prefers the hourly record when the booking has a start hour and one
        exists, then the shift roster, then the shift default. Only other
        approved bookings count against it.

        Raises:
            ConfigurationMissingError: No roster and no usable shift default
        """
        day = booking.booking_date
        hour = booking.exam_start_hour
        hourly = self.capacity_repo.find_hourly(day, hour) if hour is not None else None
        roster = self.capacity_repo.find_shift_roster(day, shift.id)

        if hourly is not None:
            source = CapacitySource.HOURLY
            effective = hourly.effective_capacity
            current = self.booking_repo.sum_candidates(
                day, [BookingStatus.APPROVED], hour=hour, exclude_id=booking.id
            )
        else:
            if roster is None and not shift.max_candidates:
                raise ConfigurationMissingError(
                    f"No capacity configured for {day.isoformat()} / {shift.name.value}",
                    {"date": day.isoformat(), "shift_id": shift.id, "exam_start_hour": hour},
                )
            source = CapacitySource.ROSTER if roster is not None else CapacitySource.SHIFT_DEFAULT
            effective = shift_effective(roster, shift)
            current = self.booking_repo.sum_candidates(
                day, [BookingStatus.APPROVED], shift_id=shift.id, exclude_id=booking.id
            )

        total = current + booking.candidate_count
        return CapacityBreakdown(
            effective_capacity=effective,
            current_approved=current,
            requested_candidates=booking.candidate_count,
            total_after_approval=total,
            overage=max(0, total - effective),
            capacity_source=source,
            has_hourly_capacity=hourly is not None,
            has_roster=roster is not None,
            exam_start_hour=hour,
        )


@dataclass
class LedgerSnapshot:
    """Rosters and booked totals for a date range, queried once."""

    shift_rosters: Dict[Tuple[date, str], ShiftCapacityRoster]
    hourly: Dict[Tuple[date, int], HourlyCapacity]
    booked_by_shift: Dict[Tuple[date, str], int]
    booked_by_hour: Dict[Tuple[date, int], int]

    def shift_available(self, day: date, shift: Shift) -> int:
        effective = shift_effective(self.shift_rosters.get((day, shift.id)), shift)
        return effective - self.booked_by_shift.get((day, shift.id), 0)

    def hourly_slots(self, day: date, shift: Shift) -> List[HourlySlot]:
        """Hours of ``shift`` on ``day`` with positive availability."""
        slots = []
        for hour in calendar_engine.shift_hours(shift):
            effective = hourly_effective(self.hourly.get((day, hour)), shift)
            booked = self.booked_by_hour.get((day, hour), 0)
            available = effective - booked
            if available > 0:
                slots.append(HourlySlot(hour=hour, effective_capacity=effective, booked=booked, available=available))
        return slots
