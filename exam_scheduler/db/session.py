"""Database session management."""
from contextlib import contextmanager
from typing import Generator, Iterator, Optional

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from exam_scheduler.config.settings import Settings, settings


def build_engine(config: Optional[Settings] = None, url: Optional[str] = None) -> Engine:
    """
    Create an engine for the configured database.

    SQLite connections get foreign keys switched on and are shareable
    across threads so the reaper and request handlers can use one file.
    """
    config = config or settings
    url = url or config.DATABASE_URL

    if url.startswith("sqlite"):
        options = {}
        if url in ("sqlite://", "sqlite:///:memory:"):
            # In-memory databases live on a single shared connection
            options["poolclass"] = StaticPool
        engine = create_engine(
            url,
            echo=config.DATABASE_ECHO,
            connect_args={"check_same_thread": False},
            **options,
        )

        @event.listens_for(engine, "connect")
        def _enable_sqlite_fks(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        return engine

    return create_engine(url, pool_pre_ping=True, echo=config.DATABASE_ECHO)


engine = build_engine()

SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)


def get_db() -> Generator[Session, None, None]:
    """
    Yield a database session for a request handler.

    Usage:
        for db in get_db():
            service = BookingLifecycleService(db)
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def session_scope(factory: sessionmaker = SessionLocal) -> Iterator[Session]:
    """Session for background jobs; services commit, this only closes."""
    db = factory()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
