"""
Tests for capacity arithmetic and the capacity ledger.
"""

from datetime import date

import pytest

from conftest import EXAM_DATE
from exam_scheduler.core.exceptions import ConfigurationMissingError
from exam_scheduler.models.scheduling.capacity import compute_effective_capacity, compute_reserve
from exam_scheduler.schemas.scheduling.capacity import CapacitySource
from exam_scheduler.services.scheduling import RosterIngestionService, SchedulingAdminService
from exam_scheduler.services.scheduling.capacity_ledger import CapacityLedger


class TestCapacityArithmetic:

    @pytest.mark.parametrize(
        "total,pct,expected",
        [(10, 10, 1), (11, 10, 2), (4, 10, 1), (0, 10, 0), (20, 0, 0)],
    )
    def test_reserve_rounds_up(self, total, pct, expected):
        assert compute_reserve(total, pct) == expected

    def test_effective_capacity(self):
        assert compute_effective_capacity(4, 1, 10) == 30

    def test_effective_capacity_is_never_negative(self):
        assert compute_effective_capacity(1, 2, 10) == 0


class TestCapacityLedger:

    @pytest.fixture
    def ledger(self, db, shifts):
        return CapacityLedger(db)

    @pytest.fixture
    def rosters(self, make_service, shifts):
        return make_service(RosterIngestionService)

    # ========================================================================
    # SHIFT AVAILABILITY
    # ========================================================================

    def test_shift_default_when_no_roster(self, ledger, shifts):
        availability = ledger.shift_availability(EXAM_DATE, shifts["morning"])

        assert availability.effective_capacity == 30
        assert availability.booked == 0
        assert availability.available == 30
        assert availability.has_roster is False

    def test_roster_overrides_shift_default(self, ledger, rosters, shifts):
        rosters.ingest_shift_rosters(
            EXAM_DATE, EXAM_DATE, [{"date": EXAM_DATE, "shift": "morning", "proctor_count": 2}]
        ).unwrap()

        availability = ledger.shift_availability(EXAM_DATE, shifts["morning"])

        assert availability.effective_capacity == 10
        assert availability.has_roster is True

    def test_holds_and_pending_count_as_booked(self, ledger, place_hold, pending_booking, shifts):
        place_hold("user-1", department_id="CS", candidate_count=12)
        pending_booking("user-2", department_id="MATH", candidate_count=8)

        availability = ledger.shift_availability(EXAM_DATE, shifts["morning"])

        assert availability.booked == 20
        assert availability.available == 10

    def test_cancelled_hold_releases_capacity(self, ledger, lifecycle, place_hold, shifts):
        booking = place_hold("user-1", candidate_count=12)
        lifecycle.cancel(booking.id, "user-1").unwrap()

        assert ledger.shift_availability(EXAM_DATE, shifts["morning"]).booked == 0

    # ========================================================================
    # HOURLY AVAILABILITY
    # ========================================================================

    def test_hourly_record_is_used_when_positive(self, ledger, rosters, shifts):
        rosters.ingest_hourly_capacity(
            EXAM_DATE, EXAM_DATE, [{"date": EXAM_DATE, "hour": 9, "proctor_count": 5}]
        ).unwrap()

        assert ledger.hourly_availability(EXAM_DATE, 9, shifts["morning"]).effective_capacity == 40
        assert ledger.hourly_availability(EXAM_DATE, 10, shifts["morning"]).effective_capacity == 30

    def test_zero_hourly_record_falls_back_to_shift_default(self, ledger, rosters, shifts):
        rosters.ingest_hourly_capacity(
            EXAM_DATE, EXAM_DATE, [{"date": EXAM_DATE, "hour": 9, "proctor_count": 0}]
        ).unwrap()

        assert ledger.hourly_availability(EXAM_DATE, 9, shifts["morning"]).effective_capacity == 30

    def test_hourly_booked_counts_bookings_at_that_hour(self, ledger, place_hold, shifts):
        place_hold(shift_id=shifts["morning"].id, exam_start_hour=9, candidate_count=18)

        slot = ledger.hourly_availability(EXAM_DATE, 9, shifts["morning"])

        assert slot.booked == 18
        assert slot.available == 12
        assert ledger.hourly_availability(EXAM_DATE, 10, shifts["morning"]).booked == 0

    def test_snapshot_drops_full_hours(self, ledger, place_hold, shifts):
        place_hold(shift_id=shifts["morning"].id, exam_start_hour=8, candidate_count=30)

        snapshot = ledger.snapshot(EXAM_DATE, EXAM_DATE)
        hours = [s.hour for s in snapshot.hourly_slots(EXAM_DATE, shifts["morning"])]

        assert hours == [9, 10, 11]
        assert snapshot.shift_available(EXAM_DATE, shifts["morning"]) == 0

    # ========================================================================
    # APPROVAL BREAKDOWN
    # ========================================================================

    def test_approval_counts_only_other_approved_bookings(self, ledger, place_hold, pending_booking, shifts):
        place_hold("user-1", department_id="CS", candidate_count=20)
        booking = pending_booking("user-2", department_id="MATH", candidate_count=15)

        breakdown = ledger.approval_capacity(booking, shifts["morning"])

        assert breakdown.current_approved == 0
        assert breakdown.total_after_approval == 15
        assert breakdown.capacity_source == CapacitySource.SHIFT_DEFAULT
        assert not breakdown.exceeds

    def test_approval_prefers_hourly_record(self, ledger, rosters, pending_booking, shifts):
        rosters.ingest_hourly_capacity(
            EXAM_DATE, EXAM_DATE, [{"date": EXAM_DATE, "hour": 9, "proctor_count": 3}]
        ).unwrap()
        booking = pending_booking(shift_id=shifts["morning"].id, exam_start_hour=9, candidate_count=15)

        breakdown = ledger.approval_capacity(booking, shifts["morning"])

        assert breakdown.capacity_source == CapacitySource.HOURLY
        assert breakdown.effective_capacity == 20
        assert breakdown.has_hourly_capacity is True
        assert breakdown.exam_start_hour == 9

    def test_missing_configuration_raises(self, ledger, make_service, pending_booking, shifts):
        booking = pending_booking(candidate_count=5)
        make_service(SchedulingAdminService).update_shift(shifts["morning"].id, {"max_candidates": 0}).unwrap()

        with pytest.raises(ConfigurationMissingError):
            ledger.approval_capacity(booking, shifts["morning"])

    def test_other_dates_are_independent(self, ledger, pending_booking, approval, shifts):
        booking = pending_booking(candidate_count=25)
        approval.approve(booking.id, "admin-1").unwrap()

        assert ledger.shift_availability(date(2026, 3, 11), shifts["morning"]).booked == 0
