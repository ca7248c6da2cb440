"""
Capacity-gated approval service.

Approval re-validates capacity at commit time, not at search time. When
the slot would overflow, the admin gets a CapacityExceeded failure with the
full breakdown and may retry with ``force_approve``; the forced approval
stores who/when/what on the booking so the overshoot stays auditable.

Without a lock backend, two approvals racing on the same pool can both pass
the check (best effort). APPROVAL_LOCK_BACKEND=local|redis serializes them
per (date, shift).
"""

from typing import Optional

from exam_scheduler.core.exceptions import (
    CapacityExceededError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from exam_scheduler.core.locks import build_lock_provider
from exam_scheduler.models.base.enums import BookingEventType, BookingStatus, ExternalActionStatus
from exam_scheduler.models.booking.booking import Booking
from exam_scheduler.repositories.booking.booking_history_repository import BookingHistoryRepository
from exam_scheduler.repositories.booking.booking_repository import BookingRepository
from exam_scheduler.repositories.scheduling.shift_repository import ShiftRepository
from exam_scheduler.services.base.base_service import BaseService
from exam_scheduler.services.base.event_dispatcher import BookingEventName
from exam_scheduler.services.base.notification_dispatcher import NotificationType
from exam_scheduler.services.base.service_result import ServiceResult
from exam_scheduler.services.scheduling.capacity_ledger import CapacityLedger


def capacity_lock_key(booking: Booking) -> str:
    # Hours nest inside shifts, so one key per (date, shift) covers both pools
    return f"{booking.booking_date.isoformat()}:{booking.shift_id}"


class BookingApprovalService(BaseService):
    """
    Approve or reject pending bookings.
    """

    def __init__(self, db, lock_provider=None, **kwargs):
        super().__init__(db, **kwargs)
        self.booking_repo = BookingRepository(db)
        self.history_repo = BookingHistoryRepository(db)
        self.shift_repo = ShiftRepository(db)
        self.ledger = CapacityLedger(db)
        self.lock_provider = lock_provider or build_lock_provider(self.config)

    # -------------------------------------------------------------------------
    # Approve
    # -------------------------------------------------------------------------

    def approve(
        self,
        booking_id: str,
        admin_id: str,
        admin_notes: Optional[str] = None,
        force_approve: bool = False,
    ) -> ServiceResult[Booking]:
        """
        Approve a pending booking if capacity allows.

        Failures:
            INVALID_TRANSITION      booking is not pending
            CONFIGURATION_MISSING   no capacity source; cannot be forced
            CAPACITY_EXCEEDED       over capacity and ``force_approve`` not set;
                                    details carry the breakdown
        """
        try:
            booking = self._get_pending(booking_id)
            if not booking.shift_id:
                raise ValidationError("Booking has no shift assigned", field_errors={"shift_id": ["required"]})
            shift = self.shift_repo.find_by_id(booking.shift_id)
            if shift is None:
                raise NotFoundError("Shift", booking.shift_id)

            with self.lock_provider.hold(capacity_lock_key(booking)):
                breakdown = self.ledger.approval_capacity(booking, shift)
                snapshot = breakdown.model_dump(mode="json")
                overridden = breakdown.exceeds

                if overridden and not force_approve:
                    raise CapacityExceededError(snapshot)

                now = self.clock.utcnow()
                values = {
                    "admin_notes": admin_notes,
                    "external_action_status": ExternalActionStatus.PENDING,
                }
                if overridden:
                    values.update(
                        capacity_override_by=admin_id,
                        capacity_override_at=now,
                        capacity_override_details={**snapshot, "admin_notes": admin_notes},
                    )

                with self.transaction():
                    won = self.booking_repo.transition_status(
                        booking_id, [BookingStatus.PENDING], BookingStatus.APPROVED, values
                    )
                    if not won:
                        raise InvalidTransitionError(
                            "Booking is not pending", None, BookingStatus.APPROVED.value
                        )
                    description = "Booking approved"
                    if overridden:
                        description += f" with capacity override (+{breakdown.overage} over capacity)"
                    self.history_repo.append(
                        booking_id,
                        BookingEventType.APPROVED,
                        description,
                        performed_by=admin_id,
                        metadata={
                            "admin_notes": admin_notes,
                            "capacity": snapshot,
                            "capacity_override": overridden,
                        },
                        at=now,
                    )

            if overridden:
                self._logger.warning(
                    f"[CAPACITY OVERRIDE] Booking {booking_id} approved over capacity",
                    extra={"booking_id": booking_id, "admin_id": admin_id, **snapshot},
                )
            else:
                self._logger.info(f"Booking approved: {booking_id}", extra={"booking_id": booking_id, "admin_id": admin_id})

            booking = self.booking_repo.get_by_id(booking_id)
            self.notifications.send(
                booking.user_id,
                NotificationType.BOOKING_APPROVED,
                "Booking approved",
                f"Your exam booking {booking.confirmation_number} on "
                f"{booking.booking_date.isoformat()} has been approved.",
                booking_id,
            )
            self.broadcaster.emit(BookingEventName.APPROVED, booking.summary())
            return ServiceResult.success(booking, message="Booking approved", metadata={"capacity": snapshot})
        except Exception as e:
            return self._handle_exception(e, "approve booking", booking_id, {"force_approve": force_approve})

    # -------------------------------------------------------------------------
    # Reject
    # -------------------------------------------------------------------------

    def reject(self, booking_id: str, admin_id: str, reason: str) -> ServiceResult[Booking]:
        """Reject a pending booking. A non-empty reason is required."""
        try:
            reason = (reason or "").strip()
            if not reason:
                raise ValidationError("A rejection reason is required", field_errors={"reason": ["required"]})
            self._get_pending(booking_id)

            now = self.clock.utcnow()
            with self.transaction():
                won = self.booking_repo.transition_status(
                    booking_id, [BookingStatus.PENDING], BookingStatus.REJECTED, {"admin_notes": reason}
                )
                if not won:
                    raise InvalidTransitionError("Booking is not pending", None, BookingStatus.REJECTED.value)
                self.history_repo.append(
                    booking_id,
                    BookingEventType.REJECTED,
                    f"Booking rejected: {reason}",
                    performed_by=admin_id,
                    metadata={"admin_notes": reason},
                    at=now,
                )

            booking = self.booking_repo.get_by_id(booking_id)
            self._logger.info(f"Booking rejected: {booking_id}", extra={"booking_id": booking_id, "admin_id": admin_id})
            self.notifications.send(
                booking.user_id,
                NotificationType.BOOKING_REJECTED,
                "Booking rejected",
                f"Your exam booking {booking.confirmation_number} was rejected: {reason}",
                booking_id,
            )
            self.broadcaster.emit(BookingEventName.REJECTED, booking.summary())
            return ServiceResult.success(booking, message="Booking rejected")
        except Exception as e:
            return self._handle_exception(e, "reject booking", booking_id)

    # -------------------------------------------------------------------------
    # Notes
    # -------------------------------------------------------------------------

    def add_admin_note(self, booking_id: str, admin_id: str, note: str) -> ServiceResult[Booking]:
        """Append an admin note without changing status."""
        try:
            note = (note or "").strip()
            if not note:
                raise ValidationError("Note must not be empty")
            if self.booking_repo.find_by_id(booking_id) is None:
                raise NotFoundError("Booking", booking_id)
            with self.transaction():
                self.booking_repo.update_fields(booking_id, {"admin_notes": note})
                self.history_repo.append(
                    booking_id,
                    BookingEventType.ADMIN_NOTE_ADDED,
                    note,
                    performed_by=admin_id,
                    at=self.clock.utcnow(),
                )
            return ServiceResult.success(self.booking_repo.get_by_id(booking_id))
        except Exception as e:
            return self._handle_exception(e, "add admin note", booking_id)

    def _get_pending(self, booking_id: str) -> Booking:
        booking = self.booking_repo.find_by_id(booking_id)
        if booking is None:
            raise NotFoundError("Booking", booking_id)
        if booking.status != BookingStatus.PENDING:
            raise InvalidTransitionError(
                "Booking is not pending", booking.status.value, None
            )
        return booking
