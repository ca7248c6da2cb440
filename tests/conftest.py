"""
Test Configuration and Fixtures

Every test gets a fresh in-memory SQLite database, a clock pinned to
Monday 2026-03-02 09:00 UTC and recording collaborators for notifications
and broadcast events.
"""

from datetime import date, datetime
from typing import Any, Dict, List, Optional

import pytest
from sqlalchemy.orm import sessionmaker

from exam_scheduler.config.settings import Settings
from exam_scheduler.core.clock import FixedClock
from exam_scheduler.db.init_db import init_db
from exam_scheduler.db.session import build_engine
from exam_scheduler.services.base.event_dispatcher import EventBroadcaster
from exam_scheduler.services.base.notification_dispatcher import (
    NotificationDispatcher,
    StaticAdminDirectory,
)
from exam_scheduler.services.booking import (
    BookingApprovalService,
    BookingLifecycleService,
    ExternalActionService,
)
from exam_scheduler.services.scheduling import SchedulingAdminService

TEST_NOW = datetime(2026, 3, 2, 9, 0)
COURSE_END = date(2026, 2, 27)
EXAM_DATE = date(2026, 3, 10)
ADMINS = ["admin-1", "admin-2"]


# ============================================================================
# RECORDING COLLABORATORS
# ============================================================================

class RecordingNotifier:
    """Notifier that keeps every notification in memory."""

    def __init__(self):
        self.sent: List[Dict[str, Any]] = []
        self.fail_for: set = set()

    def notify(self, user_id, type, title, message, booking_id=None):
        if user_id in self.fail_for:
            raise RuntimeError(f"delivery to {user_id} failed")
        self.sent.append(
            {"user_id": user_id, "type": type, "title": title, "message": message, "booking_id": booking_id}
        )

    def of_type(self, type: str) -> List[Dict[str, Any]]:
        return [n for n in self.sent if n["type"] == type]

    def for_user(self, user_id: str) -> List[Dict[str, Any]]:
        return [n for n in self.sent if n["user_id"] == user_id]


# ============================================================================
# CONFIG / DATABASE FIXTURES
# ============================================================================

@pytest.fixture
def config() -> Settings:
    return Settings(
        DATABASE_URL="sqlite://",
        SCHEDULER_TIMEZONE="UTC",
        ADMIN_USER_IDS=",".join(ADMINS),
        APPROVAL_LOCK_BACKEND="none",
        HOLD_DURATION_MINUTES=15,
        WORKING_DAYS_RULE=6,
        CANDIDATES_PER_PROCTOR=10,
        RESERVE_PERCENTAGE=10,
        SEARCH_HORIZON_MONTHS=2,
        REMINDER_DAYS_BEFORE=4,
        DEADLINE_HOUR=12,
        LOG_FORMAT="text",
    )


@pytest.fixture
def engine(config):
    eng = build_engine(config)
    init_db(bind=eng)
    yield eng
    eng.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)()
    yield session
    session.close()


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(TEST_NOW, "UTC")


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def broadcaster() -> EventBroadcaster:
    return EventBroadcaster()


@pytest.fixture
def events(broadcaster) -> List:
    received = []
    broadcaster.subscribe("*", received.append)
    return received


@pytest.fixture
def make_service(db, config, clock, notifier, broadcaster):
    """Build any BaseService subclass wired to the test collaborators."""

    def _make(service_cls, **kwargs):
        notifications = NotificationDispatcher(notifier, StaticAdminDirectory(config.admin_user_ids))
        return service_cls(
            db,
            config=kwargs.pop("config", config),
            clock=kwargs.pop("clock", clock),
            notifications=notifications,
            broadcaster=broadcaster,
            **kwargs,
        )

    return _make


# ============================================================================
# REFERENCE DATA FIXTURES
# ============================================================================

@pytest.fixture
def shifts(make_service) -> Dict[str, Any]:
    """Default morning / midday / afternoon shifts keyed by name."""
    result = make_service(SchedulingAdminService).seed_defaults()
    return {s.name.value: s for s in result.unwrap()}


@pytest.fixture
def lifecycle(make_service, shifts) -> BookingLifecycleService:
    return make_service(BookingLifecycleService)


@pytest.fixture
def approval(make_service, shifts) -> BookingApprovalService:
    return make_service(BookingApprovalService)


@pytest.fixture
def external_actions(make_service, shifts) -> ExternalActionService:
    return make_service(ExternalActionService)


# ============================================================================
# BOOKING FACTORIES
# ============================================================================

def hold_request(
    department_id: str = "CS",
    candidate_count: int = 20,
    booking_date: date = EXAM_DATE,
    preferred_shift: str = "morning",
    shift_id: Optional[str] = None,
    exam_start_hour: Optional[int] = None,
) -> Dict[str, Any]:
    request = {
        "department_id": department_id,
        "candidate_count": candidate_count,
        "course_end_date": COURSE_END,
        "preferred_shift": preferred_shift,
        "booking_date": booking_date,
    }
    if shift_id is not None:
        request["shift_id"] = shift_id
    if exam_start_hour is not None:
        request["exam_start_hour"] = exam_start_hour
    return request


@pytest.fixture
def place_hold(lifecycle):
    def _place(user_id: str = "user-1", **kwargs):
        return lifecycle.create_hold(user_id, hold_request(**kwargs)).unwrap()

    return _place


@pytest.fixture
def pending_booking(lifecycle, place_hold):
    def _pending(user_id: str = "user-1", **kwargs):
        booking = place_hold(user_id, **kwargs)
        return lifecycle.submit(booking.id, user_id).unwrap()

    return _pending


@pytest.fixture
def approved_booking(approval, pending_booking):
    def _approved(user_id: str = "user-1", force: bool = False, **kwargs):
        booking = pending_booking(user_id, **kwargs)
        return approval.approve(booking.id, "admin-1", force_approve=force).unwrap()

    return _approved
