"""
External-action deadline scheduler.

Two daily jobs evaluated in the department's local timezone:

- Reminder (REMINDER_HOUR, default 08:00): approved bookings whose exam is
  REMINDER_DAYS_BEFORE days out and whose external action is still open get
  one reminder, to the user and to every admin.
- Deadline (DEADLINE_HOUR, default 12:00): approved bookings whose exam is
  tomorrow and whose external action is not verified are cancelled.

Both jobs can be triggered again on the same day. The reminder marker and the
booking status are checked by conditional writes before anything is sent, so
a re-run never repeats a reminder or a cancellation.
"""

import time
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import List, Optional

from exam_scheduler.models.base.enums import (
    BookingEventType,
    BookingStatus,
    ExternalActionStatus,
)
from exam_scheduler.models.booking.booking import Booking
from exam_scheduler.repositories.booking.booking_history_repository import BookingHistoryRepository
from exam_scheduler.repositories.booking.booking_repository import BookingRepository
from exam_scheduler.services.base.base_service import BaseService
from exam_scheduler.services.base.event_dispatcher import BookingEventName
from exam_scheduler.services.base.notification_dispatcher import NotificationType


@dataclass
class JobReport:
    """Outcome of one scheduler job run."""
    job: str
    target_date: Optional[date] = None
    ran: bool = True
    skip_reason: Optional[str] = None
    candidates: int = 0
    processed: int = 0
    skipped: int = 0
    failed: int = 0
    booking_ids: List[str] = field(default_factory=list)


@dataclass
class SchedulerReport:
    """Report of a manual check covering both jobs."""
    started_at: datetime
    completed_at: datetime
    duration_seconds: float
    reminders: JobReport
    deadlines: JobReport


class DeadlineSchedulerService(BaseService):
    """
    Daily reminder and deadline enforcement for the external action.
    """

    REMINDER_JOB = "external_action_reminder"
    DEADLINE_JOB = "external_action_deadline"

    def __init__(self, db, **kwargs):
        super().__init__(db, **kwargs)
        self.booking_repo = BookingRepository(db)
        self.history_repo = BookingHistoryRepository(db)

    # -------------------------------------------------------------------------
    # Reminder job
    # -------------------------------------------------------------------------

    def send_reminders(self) -> JobReport:
        """
        Remind users and admins of open external actions N days before the exam.
        """
        target = self.clock.local_today() + timedelta(days=self.config.REMINDER_DAYS_BEFORE)
        report = JobReport(job=self.REMINDER_JOB, target_date=target)

        candidate_ids = [
            b.id
            for b in self.booking_repo.find_approved_on(target, reminder_unsent=True)
            if b.external_action_status != ExternalActionStatus.VERIFIED
        ]
        self._rollback()
        report.candidates = len(candidate_ids)
        if not candidate_ids:
            self._logger.info(f"No reminders due for {target.isoformat()}")
            return report

        # Claim the marker before sending anything
        now = self.clock.utcnow()
        claimed: List[Booking] = []
        for booking_id in candidate_ids:
            try:
                if self._claim_reminder(booking_id, now):
                    claimed.append(self.booking_repo.get_by_id(booking_id))
                else:
                    report.skipped += 1
            except Exception as e:
                report.failed += 1
                self._logger.error(
                    f"Failed to record reminder for booking {booking_id}: {e}",
                    exc_info=True,
                    extra={"booking_id": booking_id},
                )

        if not claimed:
            return report

        departments = ", ".join(b.department_id for b in claimed)
        self.notifications.send_to_admins(
            NotificationType.ADMIN_REMINDER,
            "External actions due",
            f"{len(claimed)} approved exam(s) on {target.isoformat()} still need the external "
            f"action: {departments}",
            claimed[0].id,
        )

        deadline = self._deadline_for(target)
        for booking in claimed:
            self.notifications.send(
                booking.user_id,
                NotificationType.ACTION_REMINDER,
                "External action reminder",
                f"Your exam {booking.confirmation_number} is on {target.isoformat()}. "
                f"Complete the external action by {deadline}, or the booking will be cancelled.",
                booking.id,
            )
            report.processed += 1
            report.booking_ids.append(booking.id)

        self._logger.info(
            f"Sent {report.processed} external action reminders for {target.isoformat()}",
            extra={"job": self.REMINDER_JOB, "sent": report.processed, "skipped": report.skipped},
        )
        return report

    def _claim_reminder(self, booking_id: str, now: datetime) -> bool:
        with self.transaction():
            won = self.booking_repo.mark_warning_sent(booking_id, now)
            if won:
                self.history_repo.append(
                    booking_id,
                    BookingEventType.VOUCHER_REMINDER_SENT,
                    f"Automatic reminder sent {self.config.REMINDER_DAYS_BEFORE} days before exam",
                    metadata={"days_until_exam": self.config.REMINDER_DAYS_BEFORE},
                    at=now,
                )
        return won

    def _deadline_for(self, exam_date: date) -> str:
        day_before = exam_date - timedelta(days=1)
        return f"{day_before.isoformat()} {self.config.DEADLINE_HOUR:02d}:00"

    # -------------------------------------------------------------------------
    # Deadline job
    # -------------------------------------------------------------------------

    def enforce_deadlines(self) -> JobReport:
        """
        Cancel tomorrow's approved bookings whose external action is not verified.

        Does nothing before DEADLINE_HOUR local time.
        """
        local_now = self.clock.local_now()
        target = local_now.date() + timedelta(days=1)
        report = JobReport(job=self.DEADLINE_JOB, target_date=target)

        if local_now.hour < self.config.DEADLINE_HOUR:
            report.ran = False
            report.skip_reason = f"before {self.config.DEADLINE_HOUR:02d}:00 local time"
            self._logger.info(f"Deadline check skipped: {report.skip_reason}")
            return report

        candidates = [
            b.id
            for b in self.booking_repo.find_approved_on(target)
            if b.external_action_status != ExternalActionStatus.VERIFIED
        ]
        self._rollback()
        report.candidates = len(candidates)

        for booking_id in candidates:
            try:
                booking = self._auto_cancel(booking_id)
            except Exception as e:
                report.failed += 1
                self._logger.error(
                    f"Failed to auto-cancel booking {booking_id}: {e}",
                    exc_info=True,
                    extra={"booking_id": booking_id},
                )
                continue
            if booking is None:
                report.skipped += 1
                continue
            report.processed += 1
            report.booking_ids.append(booking_id)
            self._notify_auto_cancelled(booking)

        if report.candidates:
            self._logger.warning(
                f"Auto-cancelled {report.processed} bookings for {target.isoformat()} "
                f"with incomplete external action",
                extra={"job": self.DEADLINE_JOB, "cancelled": report.processed, "failed": report.failed},
            )
        return report

    def _auto_cancel(self, booking_id: str) -> Optional[Booking]:
        now = self.clock.utcnow()
        with self.transaction():
            won = self.booking_repo.transition_status(
                booking_id,
                [BookingStatus.APPROVED],
                BookingStatus.CANCELLED,
                values={"external_action_status": ExternalActionStatus.CANCELLED},
                extra_conditions=[Booking.external_action_status != ExternalActionStatus.VERIFIED],
            )
            if won:
                self.history_repo.append(
                    booking_id,
                    BookingEventType.VOUCHER_AUTO_CANCELLED,
                    "Booking cancelled automatically: external action not completed by the deadline",
                    metadata={"deadline_hour": self.config.DEADLINE_HOUR},
                    at=now,
                )
        if not won:
            return None
        booking = self.booking_repo.get_by_id(booking_id)
        self.broadcaster.emit(BookingEventName.CANCELLED, booking.summary())
        return booking

    def _notify_auto_cancelled(self, booking: Booking) -> None:
        self.notifications.send(
            booking.user_id,
            NotificationType.BOOKING_CANCELLED,
            "Booking cancelled",
            f"Booking {booking.confirmation_number} for {booking.booking_date.isoformat()} was cancelled "
            f"because the external action was not completed in time.",
            booking.id,
        )
        self.notifications.send_to_admins(
            NotificationType.BOOKING_AUTO_CANCELLED,
            "Booking auto-cancelled",
            f"Booking {booking.confirmation_number} (department {booking.department_id}) for "
            f"{booking.booking_date.isoformat()} was cancelled at the external action deadline.",
            booking.id,
        )

    # -------------------------------------------------------------------------
    # Manual trigger
    # -------------------------------------------------------------------------

    def run_manual_check(self) -> SchedulerReport:
        """Run both jobs now; safe to call any number of times."""
        started_at = self.clock.utcnow()
        started = time.monotonic()
        reminders = self.send_reminders()
        deadlines = self.enforce_deadlines()
        return SchedulerReport(
            started_at=started_at,
            completed_at=self.clock.utcnow(),
            duration_seconds=round(time.monotonic() - started, 3),
            reminders=reminders,
            deadlines=deadlines,
        )
