"""
Booking lifecycle service.

Owns the holding phase of a booking: placing a hold, submitting it for
approval and user cancellation. Every status change goes through
BookingRepository.transition_status (compare-and-set) and appends exactly
one history entry in the same transaction.
"""

import string
import uuid
from datetime import datetime, timedelta
from typing import Iterable, List, Optional

from exam_scheduler.core.exceptions import (
    AlreadyScheduledError,
    HoldExpiredError,
    InvalidTransitionError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from exam_scheduler.models.base.enums import BookingEventType, BookingStatus
from exam_scheduler.models.booking.booking import Booking, BookingHistoryEntry
from exam_scheduler.models.scheduling.shift import Shift
from exam_scheduler.repositories.booking.booking_history_repository import BookingHistoryRepository
from exam_scheduler.repositories.booking.booking_repository import BookingRepository
from exam_scheduler.repositories.scheduling.closed_date_repository import ClosedDateRepository
from exam_scheduler.repositories.scheduling.shift_repository import ShiftRepository
from exam_scheduler.schemas.booking.booking_request import BookingHoldRequest
from exam_scheduler.services.base.base_service import BaseService
from exam_scheduler.services.base.event_dispatcher import BookingEventName
from exam_scheduler.services.base.notification_dispatcher import NotificationType
from exam_scheduler.services.base.service_result import ServiceResult
from exam_scheduler.services.scheduling import calendar_engine

_BASE36 = string.digits + string.ascii_uppercase


def _to_base36(value: int) -> str:
    if value == 0:
        return "0"
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits))


def generate_confirmation_number(now: datetime) -> str:
    """``EX`` + base36 epoch milliseconds + 4 random characters."""
    millis = int((now - datetime(1970, 1, 1)).total_seconds() * 1000)
    return f"EX{_to_base36(millis)}{uuid.uuid4().hex[:4]}".upper()


class BookingLifecycleService(BaseService):
    """
    Hold, submit and cancel bookings.
    """

    def __init__(self, db, **kwargs):
        super().__init__(db, **kwargs)
        self.booking_repo = BookingRepository(db)
        self.history_repo = BookingHistoryRepository(db)
        self.shift_repo = ShiftRepository(db)
        self.closed_date_repo = ClosedDateRepository(db)

    # -------------------------------------------------------------------------
    # Hold
    # -------------------------------------------------------------------------

    def create_hold(self, user_id: str, request) -> ServiceResult[Booking]:
        """
        Place a time-boxed hold on a slot.

        No capacity is claimed here; approval re-checks capacity.
        """
        try:
            request = self._parse(BookingHoldRequest, request)

            existing = self.booking_repo.find_active_for_department(request.department_id)
            if existing is not None:
                raise AlreadyScheduledError(existing.department_id, existing.booking_date, existing.status.value)

            shift = self._resolve_shift(request)
            rules = self._scheduling_settings()
            self._validate_booking_date(request, rules.working_days_rule)

            now = self.clock.utcnow()
            with self.transaction():
                booking = self.booking_repo.create_hold(
                    Booking(
                        user_id=user_id,
                        department_id=request.department_id,
                        candidate_count=request.candidate_count,
                        course_end_date=request.course_end_date,
                        preferred_shift=request.preferred_shift,
                        shift_id=shift.id,
                        exam_start_hour=request.exam_start_hour,
                        booking_date=request.booking_date,
                        status=BookingStatus.HOLDING,
                        hold_expires_at=now + timedelta(minutes=rules.hold_duration_minutes),
                        notes=request.notes,
                        confirmation_number=generate_confirmation_number(now),
                    )
                )
                self.history_repo.append(
                    booking.id,
                    BookingEventType.CREATED,
                    f"Hold placed for {request.candidate_count} candidates on "
                    f"{request.booking_date.isoformat()} ({shift.name.value})",
                    performed_by=user_id,
                    metadata={"confirmation_number": booking.confirmation_number},
                    at=now,
                )

            self._logger.info(
                f"Booking hold created: {booking.confirmation_number}",
                extra={
                    "booking_id": booking.id,
                    "department_id": booking.department_id,
                    "hold_expires_at": booking.hold_expires_at.isoformat(),
                },
            )
            self.broadcaster.emit(BookingEventName.CREATED, booking.summary())
            return ServiceResult.success(booking, message="Hold created")
        except Exception as e:
            return self._handle_exception(e, "create booking hold", getattr(request, "department_id", None))

    def _resolve_shift(self, request: BookingHoldRequest) -> Shift:
        if request.shift_id:
            shift = self.shift_repo.find_by_id(request.shift_id)
            if shift is None:
                raise NotFoundError("Shift", request.shift_id)
        else:
            shift = self.shift_repo.find_by_name(request.preferred_shift)
            if shift is None:
                raise NotFoundError("Shift", request.preferred_shift.value)
        if not shift.is_active:
            raise ValidationError(f"Shift {shift.name.value} is not active")
        hours = calendar_engine.shift_hours(shift)
        if request.exam_start_hour is not None and request.exam_start_hour not in hours:
            raise ValidationError(
                f"Start hour {request.exam_start_hour} is outside shift {shift.name.value}",
                field_errors={"exam_start_hour": [f"must be within {shift.start_time}-{shift.end_time}"]},
            )
        return shift

    def _validate_booking_date(self, request: BookingHoldRequest, working_days_rule: int) -> None:
        closed = self.closed_date_repo.date_set()
        if not calendar_engine.is_bookable(request.booking_date, closed):
            raise ValidationError(
                f"{request.booking_date.isoformat()} is not a working day",
                field_errors={"booking_date": ["weekend or closed date"]},
            )
        min_date = calendar_engine.earliest_bookable_date(
            request.course_end_date, self.clock.local_today(), working_days_rule, closed
        )
        if request.booking_date < min_date:
            raise ValidationError(
                f"Earliest bookable date is {min_date.isoformat()}",
                field_errors={"booking_date": [f"must be on or after {min_date.isoformat()}"]},
            )

    # -------------------------------------------------------------------------
    # Submit
    # -------------------------------------------------------------------------

    def submit(self, booking_id: str, user_id: str) -> ServiceResult[Booking]:
        """
        Confirm a hold and send it for approval.

        A hold at or past its deadline is expired instead and the call fails
        with HOLD_EXPIRED.
        """
        try:
            booking = self._get_owned(booking_id, user_id)
            if booking.status == BookingStatus.EXPIRED:
                raise HoldExpiredError(booking_id)
            if booking.status != BookingStatus.HOLDING:
                raise InvalidTransitionError(
                    "Booking is not on hold", booking.status.value, BookingStatus.PENDING.value
                )

            now = self.clock.utcnow()
            if booking.hold_expired(now):
                self._expire_on_submit(booking_id, now)
                raise HoldExpiredError(booking_id)

            with self.transaction():
                won = self.booking_repo.transition_status(
                    booking_id,
                    [BookingStatus.HOLDING],
                    BookingStatus.PENDING,
                    extra_conditions=[Booking.hold_expires_at > now],
                )
                if won:
                    self.history_repo.append(
                        booking_id,
                        BookingEventType.SUBMITTED,
                        "Booking submitted for approval",
                        performed_by=user_id,
                        at=now,
                    )

            if not won:
                current = self.booking_repo.get_by_id(booking_id)
                if current.status == BookingStatus.HOLDING:
                    # deadline passed between the read and the write
                    self._expire_on_submit(booking_id, now)
                    raise HoldExpiredError(booking_id)
                if current.status == BookingStatus.EXPIRED:
                    raise HoldExpiredError(booking_id)
                raise InvalidTransitionError(
                    "Booking is not on hold", current.status.value, BookingStatus.PENDING.value
                )

            booking = self.booking_repo.get_by_id(booking_id)
            self._logger.info(f"Booking submitted: {booking.confirmation_number}", extra={"booking_id": booking_id})
            self.notifications.send(
                booking.user_id,
                NotificationType.BOOKING_SUBMITTED,
                "Booking submitted",
                f"Booking {booking.confirmation_number} for {booking.booking_date.isoformat()} "
                f"is awaiting approval.",
                booking_id,
            )
            self.broadcaster.emit(BookingEventName.SUBMITTED, booking.summary())
            return ServiceResult.success(booking, message="Booking submitted")
        except Exception as e:
            return self._handle_exception(e, "submit booking", booking_id)

    def _expire_on_submit(self, booking_id: str, now: datetime) -> None:
        with self.transaction():
            won = self.booking_repo.transition_status(
                booking_id,
                [BookingStatus.HOLDING],
                BookingStatus.EXPIRED,
                extra_conditions=[Booking.hold_expires_at <= now],
            )
            if won:
                self.history_repo.append(
                    booking_id,
                    BookingEventType.HOLD_EXPIRED,
                    "Hold expired before submission",
                    at=now,
                )
        if won:
            self.broadcaster.emit(BookingEventName.EXPIRED, self.booking_repo.get_by_id(booking_id).summary())

    # -------------------------------------------------------------------------
    # Cancel
    # -------------------------------------------------------------------------

    def cancel(self, booking_id: str, user_id: str) -> ServiceResult[Booking]:
        """
        Release a hold.

        The booking is kept with status ``cancelled`` so the department can
        hold again while the audit trail survives.
        """
        try:
            booking = self._get_owned(booking_id, user_id)
            now = self.clock.utcnow()
            with self.transaction():
                won = self.booking_repo.transition_status(
                    booking_id, [BookingStatus.HOLDING], BookingStatus.CANCELLED
                )
                if not won:
                    current = self.booking_repo.get_by_id(booking_id)
                    raise InvalidTransitionError(
                        "Only bookings on hold can be cancelled",
                        current.status.value,
                        BookingStatus.CANCELLED.value,
                    )
                self.history_repo.append(
                    booking_id,
                    BookingEventType.CANCELLED,
                    "Hold cancelled by user",
                    performed_by=user_id,
                    at=now,
                )

            booking = self.booking_repo.get_by_id(booking_id)
            self._logger.info(f"Booking hold cancelled: {booking.confirmation_number}", extra={"booking_id": booking_id})
            self.broadcaster.emit(BookingEventName.CANCELLED, booking.summary())
            return ServiceResult.success(booking, message="Booking cancelled")
        except Exception as e:
            return self._handle_exception(e, "cancel booking", booking_id)

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def get_booking(self, booking_id: str) -> ServiceResult[Booking]:
        booking = self.booking_repo.find_by_id(booking_id)
        if booking is None:
            return ServiceResult.not_found("Booking", booking_id)
        return ServiceResult.success(booking)

    def get_history(self, booking_id: str) -> ServiceResult[List[BookingHistoryEntry]]:
        if self.booking_repo.find_by_id(booking_id) is None:
            return ServiceResult.not_found("Booking", booking_id)
        return ServiceResult.success(self.history_repo.list_for_booking(booking_id))

    def find_active_for_department(self, department_id: str) -> Optional[Booking]:
        return self.booking_repo.find_active_for_department(department_id)

    def search_bookings(
        self,
        query: Optional[str] = None,
        statuses: Optional[Iterable[BookingStatus]] = None,
    ) -> List[Booking]:
        """Admin search by department or confirmation number fragment."""
        return self.booking_repo.search(query, statuses)

    def _get_owned(self, booking_id: str, user_id: str) -> Booking:
        booking = self.booking_repo.find_by_id(booking_id)
        if booking is None:
            raise NotFoundError("Booking", booking_id)
        if booking.user_id != user_id:
            raise PermissionDeniedError()
        return booking
