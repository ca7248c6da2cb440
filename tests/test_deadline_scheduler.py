"""
Tests for the external-action reminder and deadline jobs.

Bookings are approved on Monday 2026-03-02 for Tuesday 2026-03-10; the
clock is then moved to the job's run time.
"""

from datetime import datetime

import pytest

from exam_scheduler.core.clock import FixedClock
from exam_scheduler.models.base.enums import BookingEventType, BookingStatus, ExternalActionStatus
from exam_scheduler.services.background import DeadlineSchedulerService
from exam_scheduler.services.base.notification_dispatcher import NotificationType

REMINDER_RUN = datetime(2026, 3, 6, 8, 0)
DEADLINE_RUN = datetime(2026, 3, 9, 12, 30)


@pytest.fixture
def scheduler(make_service, shifts):
    return make_service(DeadlineSchedulerService)


@pytest.fixture
def bookings(approved_booking):
    cs = approved_booking("user-cs", department_id="CS", candidate_count=10)
    math = approved_booking("user-math", department_id="MATH", candidate_count=10)
    return {"CS": cs, "MATH": math}


class TestReminders:

    def test_reminds_users_and_admins_once(self, scheduler, bookings, clock, notifier, lifecycle):
        clock.set(REMINDER_RUN)

        report = scheduler.send_reminders()

        assert report.target_date.isoformat() == "2026-03-10"
        assert report.processed == 2
        admin_reminders = notifier.of_type(NotificationType.ADMIN_REMINDER)
        assert sorted(n["user_id"] for n in admin_reminders) == ["admin-1", "admin-2"]
        assert "CS" in admin_reminders[0]["message"] and "MATH" in admin_reminders[0]["message"]
        user_reminders = notifier.of_type(NotificationType.ACTION_REMINDER)
        assert sorted(n["user_id"] for n in user_reminders) == ["user-cs", "user-math"]
        assert "2026-03-09 12:00" in user_reminders[0]["message"]

        booking = lifecycle.get_booking(bookings["CS"].id).unwrap()
        assert booking.warning_sent_at == REMINDER_RUN

    def test_rerun_sends_nothing(self, scheduler, bookings, clock, notifier):
        clock.set(REMINDER_RUN)
        scheduler.send_reminders()
        sent = len(notifier.sent)

        report = scheduler.send_reminders()

        assert report.candidates == 0
        assert report.processed == 0
        assert len(notifier.sent) == sent

    def test_verified_bookings_are_not_reminded(self, scheduler, bookings, external_actions, clock, notifier):
        external_actions.verify(bookings["CS"].id, "admin-1").unwrap()
        clock.set(REMINDER_RUN)

        report = scheduler.send_reminders()

        assert report.booking_ids == [bookings["MATH"].id]
        assert [n["user_id"] for n in notifier.of_type(NotificationType.ACTION_REMINDER)] == ["user-math"]

    def test_other_days_are_ignored(self, scheduler, bookings, clock):
        clock.set(datetime(2026, 3, 5, 8, 0))

        assert scheduler.send_reminders().candidates == 0

    def test_failed_delivery_still_marks_reminder(self, scheduler, bookings, clock, notifier, lifecycle):
        notifier.fail_for = {"user-cs"}
        clock.set(REMINDER_RUN)

        report = scheduler.send_reminders()

        assert report.processed == 2
        assert lifecycle.get_booking(bookings["CS"].id).unwrap().warning_sent_at is not None

    def test_reminder_is_recorded_in_history(self, scheduler, bookings, clock, lifecycle):
        clock.set(REMINDER_RUN)
        scheduler.send_reminders()

        history = lifecycle.get_history(bookings["MATH"].id).unwrap()
        assert BookingEventType.VOUCHER_REMINDER_SENT in [e.event_type for e in history]


class TestDeadlineEnforcement:

    def test_cancels_unverified_and_keeps_verified(
        self, scheduler, bookings, external_actions, clock, notifier, lifecycle
    ):
        external_actions.verify(bookings["CS"].id, "admin-1").unwrap()
        clock.set(DEADLINE_RUN)

        report = scheduler.enforce_deadlines()

        assert report.ran is True
        assert report.booking_ids == [bookings["MATH"].id]

        math = lifecycle.get_booking(bookings["MATH"].id).unwrap()
        assert math.status == BookingStatus.CANCELLED
        assert math.external_action_status == ExternalActionStatus.CANCELLED
        history = [e.event_type for e in lifecycle.get_history(math.id).unwrap()]
        assert history.count(BookingEventType.VOUCHER_AUTO_CANCELLED) == 1

        cs = lifecycle.get_booking(bookings["CS"].id).unwrap()
        assert cs.status == BookingStatus.APPROVED
        assert cs.external_action_status == ExternalActionStatus.VERIFIED

        assert [n["user_id"] for n in notifier.of_type(NotificationType.BOOKING_CANCELLED)] == ["user-math"]
        assert len(notifier.of_type(NotificationType.BOOKING_AUTO_CANCELLED)) == 2

    def test_user_completed_is_still_cancelled(self, scheduler, bookings, external_actions, clock, lifecycle):
        external_actions.mark_user_completed(bookings["MATH"].id, "user-math").unwrap()
        clock.set(DEADLINE_RUN)

        scheduler.enforce_deadlines()

        assert lifecycle.get_booking(bookings["MATH"].id).unwrap().status == BookingStatus.CANCELLED

    def test_rerun_does_not_cancel_twice(self, scheduler, bookings, clock, notifier):
        clock.set(DEADLINE_RUN)
        scheduler.enforce_deadlines()
        sent = len(notifier.sent)

        report = scheduler.enforce_deadlines()

        assert report.processed == 0
        assert len(notifier.sent) == sent

    def test_skipped_before_deadline_hour(self, scheduler, bookings, clock, lifecycle):
        clock.set(datetime(2026, 3, 9, 11, 59))

        report = scheduler.enforce_deadlines()

        assert report.ran is False
        assert "12:00" in report.skip_reason
        assert lifecycle.get_booking(bookings["MATH"].id).unwrap().status == BookingStatus.APPROVED

    def test_deadline_hour_is_local_time(self, make_service, bookings, lifecycle):
        # 10:30 UTC is 12:30 in Athens (UTC+2 before DST)
        athens = FixedClock(datetime(2026, 3, 9, 12, 30), "Europe/Athens")
        assert athens.utcnow() == datetime(2026, 3, 9, 10, 30)

        report = make_service(DeadlineSchedulerService, clock=athens).enforce_deadlines()

        assert report.ran is True
        assert lifecycle.get_booking(bookings["CS"].id).unwrap().status == BookingStatus.CANCELLED

    def test_same_instant_in_utc_is_before_deadline(self, scheduler, bookings, clock):
        clock.set(datetime(2026, 3, 9, 10, 30))

        assert scheduler.enforce_deadlines().ran is False


class TestManualCheck:

    def test_runs_both_jobs(self, scheduler, bookings, clock):
        clock.set(REMINDER_RUN)

        report = scheduler.run_manual_check()

        assert report.reminders.processed == 2
        assert report.deadlines.ran is False

    def test_manual_check_is_repeatable(self, scheduler, bookings, clock):
        clock.set(DEADLINE_RUN)

        first = scheduler.run_manual_check()
        second = scheduler.run_manual_check()

        assert first.deadlines.processed == 2
        assert second.deadlines.processed == 0
        assert second.reminders.processed == 0
