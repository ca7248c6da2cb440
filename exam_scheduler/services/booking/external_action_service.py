"""
External-action sub-state of approved bookings.

After approval a department must complete an external arrangement
(venue/voucher). The user marks it done, an admin verifies or rejects it,
or an admin completes it directly. Transitions are guarded by
EXTERNAL_ACTION_TRANSITIONS and written as compare-and-set updates that
also require the booking to still be approved.
"""

from typing import Dict, Iterable, Optional

from exam_scheduler.core.exceptions import (
    InvalidTransitionError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from exam_scheduler.models.base.enums import (
    EXTERNAL_ACTION_TRANSITIONS,
    BookingEventType,
    BookingStatus,
    ExternalActionStatus,
)
from exam_scheduler.models.booking.booking import Booking
from exam_scheduler.repositories.booking.booking_history_repository import BookingHistoryRepository
from exam_scheduler.repositories.booking.booking_repository import BookingRepository
from exam_scheduler.services.base.base_service import BaseService
from exam_scheduler.services.base.notification_dispatcher import NotificationType
from exam_scheduler.services.base.service_result import ServiceResult


class ExternalActionService(BaseService):
    """Guarded writes on the external-action sub-state."""

    def __init__(self, db, **kwargs):
        super().__init__(db, **kwargs)
        self.booking_repo = BookingRepository(db)
        self.history_repo = BookingHistoryRepository(db)

    # -------------------------------------------------------------------------
    # User side
    # -------------------------------------------------------------------------

    def mark_user_completed(self, booking_id: str, user_id: str) -> ServiceResult[Booking]:
        try:
            booking = self._get_approved(booking_id)
            if booking.user_id != user_id:
                raise PermissionDeniedError()
            now = self.clock.utcnow()
            booking = self._transition(
                booking,
                ExternalActionStatus.USER_COMPLETED,
                {"external_action_completed_at": now, "external_action_rejection_reason": None},
                BookingEventType.VOUCHER_USER_COMPLETED,
                "External action marked complete by user",
                user_id,
            )
            self.notifications.send_to_admins(
                NotificationType.ACTION_USER_COMPLETED,
                "External action completed",
                f"Department {booking.department_id} completed the external action for "
                f"booking {booking.confirmation_number}; verification needed.",
                booking_id,
            )
            return ServiceResult.success(booking)
        except Exception as e:
            return self._handle_exception(e, "mark external action completed", booking_id)

    # -------------------------------------------------------------------------
    # Admin side
    # -------------------------------------------------------------------------

    def verify(self, booking_id: str, admin_id: str) -> ServiceResult[Booking]:
        try:
            booking = self._get_approved(booking_id)
            if booking.external_action_status == ExternalActionStatus.VERIFIED:
                raise InvalidTransitionError("External action already verified", ExternalActionStatus.VERIFIED.value)
            booking = self._transition(
                booking,
                ExternalActionStatus.VERIFIED,
                {"external_action_verified_at": self.clock.utcnow(), "external_action_verified_by": admin_id},
                BookingEventType.VOUCHER_VERIFIED,
                "External action verified",
                admin_id,
                sources=[ExternalActionStatus.PENDING, ExternalActionStatus.USER_COMPLETED],
            )
            self._notify_verified(booking)
            return ServiceResult.success(booking)
        except Exception as e:
            return self._handle_exception(e, "verify external action", booking_id)

    def reject(self, booking_id: str, admin_id: str, reason: str) -> ServiceResult[Booking]:
        """
        Send a user-completed action back to the department.

        Recorded as rejected then reopened: the sub-state ends up ``pending``
        with the reason stored on the booking.
        """
        try:
            reason = (reason or "").strip()
            if not reason:
                raise ValidationError("A rejection reason is required", field_errors={"reason": ["required"]})
            booking = self._get_approved(booking_id)
            self._ensure_allowed(booking, ExternalActionStatus.REJECTED)

            with self.transaction():
                won = self.booking_repo.transition_external_action(
                    booking_id,
                    [ExternalActionStatus.USER_COMPLETED],
                    ExternalActionStatus.PENDING,
                    {"external_action_rejection_reason": reason, "external_action_completed_at": None},
                )
                if not won:
                    raise InvalidTransitionError("External action changed concurrently")
                self.history_repo.append(
                    booking_id,
                    BookingEventType.VOUCHER_REJECTED,
                    f"External action rejected: {reason}",
                    performed_by=admin_id,
                    metadata={"reason": reason},
                    at=self.clock.utcnow(),
                )

            booking = self.booking_repo.get_by_id(booking_id)
            self.notifications.send(
                booking.user_id,
                NotificationType.ACTION_REJECTED,
                "External action rejected",
                f"The external action for booking {booking.confirmation_number} was rejected: {reason}",
                booking_id,
            )
            return ServiceResult.success(booking)
        except Exception as e:
            return self._handle_exception(e, "reject external action", booking_id)

    def admin_complete(self, booking_id: str, admin_id: str) -> ServiceResult[Booking]:
        """Complete and verify the action on the department's behalf."""
        try:
            booking = self._get_approved(booking_id)
            now = self.clock.utcnow()
            booking = self._transition(
                booking,
                ExternalActionStatus.VERIFIED,
                {
                    "external_action_completed_at": now,
                    "external_action_verified_at": now,
                    "external_action_verified_by": admin_id,
                },
                BookingEventType.VOUCHER_ADMIN_COMPLETED,
                "External action completed by admin",
                admin_id,
            )
            self._notify_verified(booking)
            return ServiceResult.success(booking)
        except Exception as e:
            return self._handle_exception(e, "complete external action", booking_id)

    def send_reminder(self, booking_id: str, admin_id: str) -> ServiceResult[Booking]:
        """Manually remind the department of an outstanding action."""
        try:
            booking = self._get_approved(booking_id)
            if booking.external_action_status in (ExternalActionStatus.VERIFIED, ExternalActionStatus.USER_COMPLETED):
                raise InvalidTransitionError(
                    "No reminder needed for this external action",
                    booking.external_action_status.value,
                )
            days_left = booking.days_until_exam(self.clock.local_today())
            with self.transaction():
                self.history_repo.append(
                    booking_id,
                    BookingEventType.VOUCHER_REMINDER_SENT,
                    f"Reminder sent ({days_left} days before exam)",
                    performed_by=admin_id,
                    metadata={"days_until_exam": days_left},
                    at=self.clock.utcnow(),
                )
            self.notifications.send(
                booking.user_id,
                NotificationType.ACTION_REMINDER,
                "External action reminder",
                f"The external action for booking {booking.confirmation_number} is still outstanding; "
                f"the exam is in {days_left} days.",
                booking_id,
            )
            return ServiceResult.success(booking)
        except Exception as e:
            return self._handle_exception(e, "send external action reminder", booking_id)

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _get_approved(self, booking_id: str) -> Booking:
        booking = self.booking_repo.find_by_id(booking_id)
        if booking is None:
            raise NotFoundError("Booking", booking_id)
        if booking.status != BookingStatus.APPROVED:
            raise InvalidTransitionError("Booking is not approved", booking.status.value)
        return booking

    @staticmethod
    def _ensure_allowed(booking: Booking, target: ExternalActionStatus) -> None:
        if booking.external_action_status not in EXTERNAL_ACTION_TRANSITIONS.get(target, frozenset()):
            raise InvalidTransitionError(
                f"External action cannot move from {booking.external_action_status.value} to {target.value}",
                booking.external_action_status.value,
                target.value,
            )

    def _transition(
        self,
        booking: Booking,
        target: ExternalActionStatus,
        values: Dict,
        event_type: BookingEventType,
        description: str,
        performed_by: str,
        sources: Optional[Iterable[ExternalActionStatus]] = None,
    ) -> Booking:
        self._ensure_allowed(booking, target)
        sources = list(sources or EXTERNAL_ACTION_TRANSITIONS[target])
        booking_id = booking.id
        with self.transaction():
            won = self.booking_repo.transition_external_action(booking_id, sources, target, values)
            if not won:
                raise InvalidTransitionError(
                    "External action changed concurrently", booking.external_action_status.value, target.value
                )
            self.history_repo.append(
                booking_id,
                event_type,
                description,
                performed_by=performed_by,
                at=self.clock.utcnow(),
            )
        self._logger.info(description, extra={"booking_id": booking_id, "external_action_status": target.value})
        return self.booking_repo.get_by_id(booking_id)

    def _notify_verified(self, booking: Booking) -> None:
        self.notifications.send(
            booking.user_id,
            NotificationType.ACTION_VERIFIED,
            "External action verified",
            f"The external action for booking {booking.confirmation_number} has been verified.",
            booking.id,
        )
