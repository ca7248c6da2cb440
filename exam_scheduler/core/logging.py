"""
Logging Configuration

Structured logging for the scheduler: structlog for the background jobs,
stdlib loggers for services and repositories, both rendered through the
same root handler (JSON via python-json-logger, or plain text).
"""

import logging
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Optional

import structlog
from pythonjsonlogger import jsonlogger

from exam_scheduler.config.settings import Settings, get_settings

# Context variables for job / actor tracking
job_name: ContextVar[Optional[str]] = ContextVar('job_name', default=None)
actor_id: ContextVar[Optional[str]] = ContextVar('actor_id', default=None)

_configured = False


class SchedulerContextProcessor:
    """Add job and actor context to structlog events"""

    def __init__(self, environment: str):
        self.environment = environment

    def __call__(self, logger, method_name, event_dict):
        job = job_name.get()
        if job:
            event_dict['job'] = job

        actor = actor_id.get()
        if actor:
            event_dict['actor_id'] = actor

        event_dict['service'] = 'exam-scheduler'
        event_dict['environment'] = self.environment
        return event_dict


class CapacityOverrideProcessor:
    """Flag capacity overrides so they can be filtered as audit events"""

    def __call__(self, logger, method_name, event_dict):
        if 'override' in str(event_dict.get('event', '')).lower():
            event_dict['audit_event'] = True
        return event_dict


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """One JSON object per record, tagged with the running job when there is one."""

    def add_fields(self, log_record, record, message_dict):
        super().add_fields(log_record, record, message_dict)
        log_record['timestamp'] = datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat()
        log_record['level'] = record.levelname
        log_record['logger'] = record.name
        log_record.setdefault('job', job_name.get())
        if record.exc_info:
            log_record['exception'] = self.formatException(record.exc_info)


def _configure_structlog(config: Settings) -> None:
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            SchedulerContextProcessor(config.ENVIRONMENT),
            CapacityOverrideProcessor(),
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.stdlib.render_to_log_kwargs,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        context_class=dict,
        cache_logger_on_first_use=True,
    )


def _configure_standard_logging(config: Settings) -> None:
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, config.LOG_LEVEL))
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(getattr(logging, config.LOG_LEVEL))

    if config.LOG_FORMAT == "json":
        formatter = CustomJsonFormatter('%(asctime)s %(name)s %(levelname)s %(message)s')
    else:
        formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')

    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    # Reduce noise from external libraries
    sql_level = logging.INFO if config.LOG_SQL_QUERIES else logging.WARNING
    logging.getLogger("sqlalchemy.engine").setLevel(sql_level)
    logging.getLogger("redis").setLevel(logging.WARNING)
    logging.getLogger("celery").setLevel(logging.INFO)


def configure_logging(config: Optional[Settings] = None, force: bool = False) -> None:
    """
    Configure stdlib and structlog logging once per process.

    Args:
        config: Settings to read level and format from (defaults to env settings)
        force: Reconfigure even if logging was already set up
    """
    global _configured
    if _configured and not force:
        return

    config = config or get_settings()
    _configure_standard_logging(config)
    _configure_structlog(config)
    _configured = True


def get_logger(name: Optional[str] = None) -> structlog.stdlib.BoundLogger:
    """Get a structlog logger bound to the given module name."""
    return structlog.get_logger(name or "exam_scheduler")
