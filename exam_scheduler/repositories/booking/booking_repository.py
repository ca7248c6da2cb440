"""
Booking repository.

Every status change is a single compare-and-set UPDATE:

    UPDATE bookings SET status = :to, ... WHERE id = :id AND status IN (:from)

The affected row count decides the winner. Two callers racing on the same
booking (submit vs. reaper, submit vs. cancel) cannot both succeed.
"""

import logging
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from exam_scheduler.core.exceptions import AlreadyScheduledError, RepositoryError
from exam_scheduler.models.base.enums import (
    ACTIVE_STATUSES,
    BookingStatus,
    ExternalActionStatus,
)
from exam_scheduler.models.base.mixins import utcnow
from exam_scheduler.models.booking.booking import Booking
from exam_scheduler.repositories.base.base_repository import BaseRepository

logger = logging.getLogger(__name__)


class BookingRepository(BaseRepository[Booking]):

    def __init__(self, db: Session):
        super().__init__(Booking, db)

    # ==================== Create ====================

    def create_hold(self, booking: Booking) -> Booking:
        """
        Insert a holding booking.

        The partial unique index on department_id backs up the service-level
        check when two holds for one department race.
        """
        try:
            self.db.add(booking)
            self.db.flush()
        except IntegrityError as e:
            self.db.rollback()
            existing = self.find_active_for_department(booking.department_id)
            if existing is not None:
                raise AlreadyScheduledError(
                    existing.department_id, existing.booking_date, existing.status.value
                ) from e
            raise RepositoryError(f"Could not create booking: {e.orig}") from e
        logger.info(f"Created Booking with id: {booking.id}")
        return booking

    # ==================== Queries ====================

    def find_active_for_department(self, department_id: str) -> Optional[Booking]:
        stmt = (
            select(Booking)
            .where(Booking.department_id == department_id, Booking.status.in_(list(ACTIVE_STATUSES)))
            .order_by(Booking.created_at.desc())
        )
        return self.db.scalars(stmt).first()

    def find_by_confirmation_number(self, confirmation_number: str) -> Optional[Booking]:
        stmt = select(Booking).where(Booking.confirmation_number == confirmation_number.upper())
        return self.db.scalars(stmt).first()

    def search(
        self,
        query: Optional[str] = None,
        statuses: Optional[Iterable[BookingStatus]] = None,
    ) -> List[Booking]:
        """Admin search by department or confirmation number fragment."""
        stmt = select(Booking)
        if query:
            pattern = f"%{query.strip()}%"
            stmt = stmt.where(
                or_(
                    Booking.department_id.ilike(pattern),
                    Booking.confirmation_number.ilike(pattern),
                )
            )
        if statuses:
            stmt = stmt.where(Booking.status.in_(list(statuses)))
        stmt = stmt.order_by(Booking.booking_date, Booking.created_at)
        return list(self.db.scalars(stmt).all())

    def find_expired_holds(self, now: datetime) -> List[Booking]:
        """Holding bookings whose deadline is at or before ``now``."""
        stmt = (
            select(Booking)
            .where(Booking.status == BookingStatus.HOLDING, Booking.hold_expires_at <= now)
            .order_by(Booking.hold_expires_at)
        )
        return list(self.db.scalars(stmt).all())

    def find_approved_on(self, day: date, reminder_unsent: bool = False) -> List[Booking]:
        stmt = select(Booking).where(
            Booking.status == BookingStatus.APPROVED,
            Booking.booking_date == day,
        )
        if reminder_unsent:
            stmt = stmt.where(Booking.warning_sent_at.is_(None))
        return list(self.db.scalars(stmt.order_by(Booking.created_at)).all())

    # ==================== Capacity aggregates ====================

    def sum_candidates(
        self,
        day: date,
        statuses: Iterable[BookingStatus],
        shift_id: Optional[str] = None,
        hour: Optional[int] = None,
        exclude_id: Optional[str] = None,
    ) -> int:
        """Sum of candidate counts at a date and shift or start hour."""
        stmt = select(func.coalesce(func.sum(Booking.candidate_count), 0)).where(
            Booking.booking_date == day,
            Booking.status.in_(list(statuses)),
        )
        if shift_id is not None:
            stmt = stmt.where(Booking.shift_id == shift_id)
        if hour is not None:
            stmt = stmt.where(Booking.exam_start_hour == hour)
        if exclude_id is not None:
            stmt = stmt.where(Booking.id != exclude_id)
        return int(self.db.scalar(stmt) or 0)

    def booked_by_shift(self, start: date, end: date) -> Dict[tuple, int]:
        """{(date, shift_id): candidates} for active bookings in [start, end]."""
        stmt = (
            select(Booking.booking_date, Booking.shift_id, func.sum(Booking.candidate_count))
            .where(
                Booking.booking_date >= start,
                Booking.booking_date <= end,
                Booking.status.in_(list(ACTIVE_STATUSES)),
            )
            .group_by(Booking.booking_date, Booking.shift_id)
        )
        return {(d, s): int(total) for d, s, total in self.db.execute(stmt)}

    def booked_by_hour(self, start: date, end: date) -> Dict[tuple, int]:
        """{(date, hour): candidates} for active bookings in [start, end]."""
        stmt = (
            select(Booking.booking_date, Booking.exam_start_hour, func.sum(Booking.candidate_count))
            .where(
                Booking.booking_date >= start,
                Booking.booking_date <= end,
                Booking.exam_start_hour.is_not(None),
                Booking.status.in_(list(ACTIVE_STATUSES)),
            )
            .group_by(Booking.booking_date, Booking.exam_start_hour)
        )
        return {(d, h): int(total) for d, h, total in self.db.execute(stmt)}

    # ==================== Compare-and-set writes ====================

    def _cas(self, booking_id: str, conditions: List[Any], values: Dict[str, Any]) -> bool:
        self.db.flush()
        values.setdefault("updated_at", utcnow())
        result = self.db.execute(
            update(Booking)
            .where(Booking.id == booking_id, *conditions)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        # Loaded instances are stale after a Core-level UPDATE
        self.db.expire_all()
        return result.rowcount == 1

    def transition_status(
        self,
        booking_id: str,
        from_statuses: Iterable[BookingStatus],
        to_status: BookingStatus,
        values: Optional[Dict[str, Any]] = None,
        extra_conditions: Optional[List[Any]] = None,
    ) -> bool:
        """
        Move a booking to ``to_status`` if it is still in ``from_statuses``.

        ``hold_expires_at`` is cleared on every transition out of holding.

        Returns:
            True if this call won the transition
        """
        values = dict(values or {})
        values["status"] = to_status
        if to_status != BookingStatus.HOLDING:
            values.setdefault("hold_expires_at", None)
        conditions = [Booking.status.in_(list(from_statuses))]
        conditions.extend(extra_conditions or [])
        won = self._cas(booking_id, conditions, values)
        logger.debug(
            "Booking status CAS",
            extra={"booking_id": booking_id, "to_status": to_status.value, "won": won},
        )
        return won

    def transition_external_action(
        self,
        booking_id: str,
        from_statuses: Iterable[ExternalActionStatus],
        to_status: ExternalActionStatus,
        values: Optional[Dict[str, Any]] = None,
    ) -> bool:
        """External-action CAS; only approved bookings carry the sub-state."""
        values = dict(values or {})
        values["external_action_status"] = to_status
        conditions = [
            Booking.status == BookingStatus.APPROVED,
            Booking.external_action_status.in_(list(from_statuses)),
        ]
        return self._cas(booking_id, conditions, values)

    def mark_warning_sent(self, booking_id: str, at: datetime) -> bool:
        """Set the reminder marker once; False if it was already set."""
        return self._cas(booking_id, [Booking.warning_sent_at.is_(None)], {"warning_sent_at": at})

    def update_fields(self, booking_id: str, values: Dict[str, Any]) -> bool:
        return self._cas(booking_id, [], dict(values))
