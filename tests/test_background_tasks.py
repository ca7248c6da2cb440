"""
Tests for the Celery application and task wiring.
"""

from contextlib import contextmanager

import pytest

from exam_scheduler.config.settings import Settings
from exam_scheduler.core import background_tasks
from exam_scheduler.models.base.enums import BookingStatus


@pytest.fixture
def task_session(db, monkeypatch):
    """Run tasks against the test database without touching logging config."""

    @contextmanager
    def _scope():
        yield db

    monkeypatch.setattr(background_tasks, "session_scope", _scope)
    monkeypatch.setattr(background_tasks, "configure_logging", lambda: None)
    return db


class TestCeleryApp:

    def test_beat_schedule(self):
        schedule = background_tasks.build_beat_schedule(
            Settings(REAPER_INTERVAL_SECONDS=30, REMINDER_HOUR=8, DEADLINE_HOUR=12)
        )

        assert schedule["reap-expired-holds"]["task"] == background_tasks.REAP_TASK
        assert schedule["reap-expired-holds"]["schedule"] == 30.0
        assert schedule["external-action-reminders"]["schedule"].hour == {8}
        assert schedule["external-action-deadlines"]["schedule"].hour == {12}
        assert schedule["external-action-deadlines"]["task"] == background_tasks.DEADLINE_TASK

    def test_timezone_follows_settings(self):
        app = background_tasks.create_celery_app(Settings(SCHEDULER_TIMEZONE="Europe/Athens"))

        assert app.conf.timezone == "Europe/Athens"
        assert app.conf.task_serializer == "json"
        assert "external-action-reminders" in app.conf.beat_schedule

    def test_tasks_are_registered(self):
        names = set(background_tasks.celery_app.tasks.keys())

        assert {
            background_tasks.REAP_TASK,
            background_tasks.REMINDER_TASK,
            background_tasks.DEADLINE_TASK,
            background_tasks.MANUAL_CHECK_TASK,
        } <= names


class TestTasks:

    def test_reaper_task_expires_stale_holds(self, task_session, place_hold, lifecycle):
        # holds are placed at the fixed test time, long before the real clock
        booking = place_hold()

        result = background_tasks.reap_expired_holds()

        assert result["expired"] == 1
        assert result["overlapped"] is False
        assert lifecycle.get_booking(booking.id).unwrap().status == BookingStatus.EXPIRED

    def test_reminder_task_returns_report(self, task_session, shifts):
        result = background_tasks.send_external_action_reminders()

        assert result["job"] == "external_action_reminder"
        assert result["processed"] == 0

    def test_manual_check_task(self, task_session, shifts):
        result = background_tasks.run_manual_deadline_check()

        assert result["reminders"]["job"] == "external_action_reminder"
        assert result["deadlines"]["job"] == "external_action_deadline"
        assert "started_at" in result

    def test_job_context_is_reset(self, task_session, shifts):
        background_tasks.enforce_external_action_deadlines()

        assert background_tasks.job_name.get() is None
