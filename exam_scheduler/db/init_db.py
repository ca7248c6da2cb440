"""Schema bootstrap for development databases and the test suite."""
import logging
from typing import Optional

from sqlalchemy import inspect
from sqlalchemy.engine import Engine

from exam_scheduler.db.base import Base, import_models

logger = logging.getLogger(__name__)


def _resolve(bind: Optional[Engine]) -> Engine:
    if bind is None:
        from exam_scheduler.db.session import engine as bind
    import_models()
    return bind


def init_db(bind: Optional[Engine] = None) -> None:
    """Create the booking, capacity and settings tables that are missing."""
    bind = _resolve(bind)
    before = set(inspect(bind).get_table_names())
    Base.metadata.create_all(bind=bind)
    created = sorted(set(Base.metadata.tables) - before)
    logger.info("Scheduler schema ready", extra={"created_tables": created})


def drop_db(bind: Optional[Engine] = None) -> None:
    """Drop every scheduler table. Bookings and their history are lost."""
    Base.metadata.drop_all(bind=_resolve(bind))
    logger.warning("Scheduler tables dropped")


def reset_db(bind: Optional[Engine] = None) -> None:
    drop_db(bind)
    init_db(bind)
