"""
Tests for the hold-expiry reaper.
"""

from datetime import timedelta

import pytest

from conftest import TEST_NOW
from exam_scheduler.models.base.enums import BookingEventType, BookingStatus
from exam_scheduler.services.background import HoldExpiryReaper
from exam_scheduler.services.background import hold_expiry_reaper
from exam_scheduler.services.base.event_dispatcher import BookingEventName

EXPIRY = TEST_NOW + timedelta(minutes=15)


class TestHoldExpiryReaper:

    @pytest.fixture
    def reaper(self, make_service, shifts):
        return make_service(HoldExpiryReaper)

    def test_expires_holds_at_deadline(self, reaper, lifecycle, place_hold, events):
        booking = place_hold()

        report = reaper.run_once(now=EXPIRY)

        assert report.expired == 1
        assert report.expired_ids == [booking.id]
        current = lifecycle.get_booking(booking.id).unwrap()
        assert current.status == BookingStatus.EXPIRED
        assert current.hold_expires_at is None
        history = [e.event_type for e in lifecycle.get_history(booking.id).unwrap()]
        assert history.count(BookingEventType.HOLD_EXPIRED) == 1
        assert events[-1].event_type == BookingEventName.EXPIRED

    def test_live_holds_are_untouched(self, reaper, lifecycle, place_hold):
        booking = place_hold()

        report = reaper.run_once(now=EXPIRY - timedelta(seconds=1))

        assert report.candidates == 0
        assert lifecycle.get_booking(booking.id).unwrap().status == BookingStatus.HOLDING

    def test_second_pass_is_a_no_op(self, reaper, lifecycle, place_hold):
        booking = place_hold()
        reaper.run_once(now=EXPIRY)

        report = reaper.run_once(now=EXPIRY + timedelta(minutes=1))

        assert report.candidates == 0
        assert report.expired == 0
        history = [e.event_type for e in lifecycle.get_history(booking.id).unwrap()]
        assert history.count(BookingEventType.HOLD_EXPIRED) == 1

    def test_submitted_bookings_are_never_expired(self, reaper, lifecycle, pending_booking):
        booking = pending_booking()

        report = reaper.run_once(now=EXPIRY + timedelta(hours=1))

        assert report.expired == 0
        assert lifecycle.get_booking(booking.id).unwrap().status == BookingStatus.PENDING

    def test_lost_race_is_skipped(self, reaper, lifecycle, place_hold, clock):
        booking = place_hold()
        clock.advance(minutes=10)
        lifecycle.submit(booking.id, "user-1").unwrap()

        assert reaper._expire(booking.id, EXPIRY) is False
        assert lifecycle.get_booking(booking.id).unwrap().status == BookingStatus.PENDING

    def test_expired_department_can_hold_again(self, reaper, lifecycle, place_hold, clock):
        place_hold(department_id="CS")
        reaper.run_once(now=EXPIRY)
        clock.set(EXPIRY + timedelta(minutes=1))

        assert lifecycle.find_active_for_department("CS") is None
        assert place_hold(department_id="CS").status == BookingStatus.HOLDING

    def test_batch_counts_several_holds(self, reaper, place_hold):
        for i, department in enumerate(["CS", "MATH", "BIO"]):
            place_hold(f"user-{i}", department_id=department)

        report = reaper.run_once(now=EXPIRY)

        assert report.candidates == 3
        assert report.expired == 3
        assert report.failed == 0

    def test_overlapping_pass_is_skipped(self, reaper, place_hold):
        place_hold()

        with hold_expiry_reaper._run_guard:
            report = reaper.run_once(now=EXPIRY)

        assert report.overlapped is True
        assert report.expired == 0
        assert reaper.run_once(now=EXPIRY).expired == 1

    def test_defaults_to_clock_time(self, reaper, place_hold, clock):
        place_hold()
        clock.advance(minutes=20)

        assert reaper.run_once().expired == 1
