"""
Background Task Management

Celery application and periodic tasks for the scheduler:

- reap_expired_holds: every REAPER_INTERVAL_SECONDS
- send_external_action_reminders: daily at REMINDER_HOUR local time
- enforce_external_action_deadlines: daily at DEADLINE_HOUR local time
- run_manual_deadline_check: on demand

Run a worker with beat:

    celery -A exam_scheduler.core.background_tasks worker -B
"""

from typing import Any, Dict, Optional

from celery import Celery
from celery.schedules import crontab

from exam_scheduler.config.settings import Settings, get_settings
from exam_scheduler.core.logging import configure_logging, get_logger, job_name
from exam_scheduler.db.session import session_scope
from exam_scheduler.services.background.deadline_scheduler_service import DeadlineSchedulerService
from exam_scheduler.services.background.hold_expiry_reaper import HoldExpiryReaper

logger = get_logger(__name__)

REAP_TASK = "exam_scheduler.reap_expired_holds"
REMINDER_TASK = "exam_scheduler.send_external_action_reminders"
DEADLINE_TASK = "exam_scheduler.enforce_external_action_deadlines"
MANUAL_CHECK_TASK = "exam_scheduler.run_manual_deadline_check"


def build_beat_schedule(config: Settings) -> Dict[str, Dict[str, Any]]:
    """Periodic task table; crontab hours are in the scheduler timezone."""
    return {
        'reap-expired-holds': {
            'task': REAP_TASK,
            'schedule': float(config.REAPER_INTERVAL_SECONDS),
        },
        'external-action-reminders': {
            'task': REMINDER_TASK,
            'schedule': crontab(hour=config.REMINDER_HOUR, minute=0),
        },
        'external-action-deadlines': {
            'task': DEADLINE_TASK,
            'schedule': crontab(hour=config.DEADLINE_HOUR, minute=0),
        },
    }


def create_celery_app(config: Optional[Settings] = None) -> Celery:
    """Create and configure the Celery application."""
    config = config or get_settings()
    app = Celery(
        'exam_scheduler',
        broker=config.celery_broker_url,
        backend=config.celery_result_backend,
    )
    app.conf.update(
        task_serializer='json',
        accept_content=['json'],
        result_serializer='json',
        timezone=config.SCHEDULER_TIMEZONE,
        enable_utc=True,
        task_track_started=True,
        worker_prefetch_multiplier=1,
        task_acks_late=True,
    )
    app.conf.beat_schedule = build_beat_schedule(config)
    return app


celery_app = create_celery_app()


def _job_report(report) -> Dict[str, Any]:
    return {
        'job': report.job,
        'target_date': report.target_date.isoformat() if report.target_date else None,
        'ran': report.ran,
        'skip_reason': report.skip_reason,
        'candidates': report.candidates,
        'processed': report.processed,
        'skipped': report.skipped,
        'failed': report.failed,
        'booking_ids': list(report.booking_ids),
    }


@celery_app.task(name=REAP_TASK)
def reap_expired_holds() -> Dict[str, Any]:
    """Expire holds past their deadline."""
    configure_logging()
    token = job_name.set('hold_expiry_reaper')
    try:
        with session_scope() as db:
            report = HoldExpiryReaper(db).run_once()
        logger.debug("reaper pass finished", expired=report.expired, skipped=report.skipped)
        return {
            'candidates': report.candidates,
            'expired': report.expired,
            'skipped': report.skipped,
            'failed': report.failed,
            'overlapped': report.overlapped,
        }
    finally:
        job_name.reset(token)


@celery_app.task(name=REMINDER_TASK)
def send_external_action_reminders() -> Dict[str, Any]:
    """Daily T-minus reminder for open external actions."""
    configure_logging()
    token = job_name.set('external_action_reminder')
    try:
        with session_scope() as db:
            report = DeadlineSchedulerService(db).send_reminders()
        logger.info("reminder job finished", sent=report.processed, skipped=report.skipped)
        return _job_report(report)
    finally:
        job_name.reset(token)


@celery_app.task(name=DEADLINE_TASK)
def enforce_external_action_deadlines() -> Dict[str, Any]:
    """Daily cancellation of bookings whose external action missed the deadline."""
    configure_logging()
    token = job_name.set('external_action_deadline')
    try:
        with session_scope() as db:
            report = DeadlineSchedulerService(db).enforce_deadlines()
        logger.info("deadline job finished", cancelled=report.processed, ran=report.ran)
        return _job_report(report)
    finally:
        job_name.reset(token)


@celery_app.task(name=MANUAL_CHECK_TASK)
def run_manual_deadline_check() -> Dict[str, Any]:
    """Run both deadline jobs now."""
    configure_logging()
    token = job_name.set('manual_deadline_check')
    try:
        with session_scope() as db:
            report = DeadlineSchedulerService(db).run_manual_check()
        return {
            'started_at': report.started_at.isoformat(),
            'duration_seconds': report.duration_seconds,
            'reminders': _job_report(report.reminders),
            'deadlines': _job_report(report.deadlines),
        }
    finally:
        job_name.reset(token)
