"""
Tests for environment settings, approval lock providers and database helpers.
"""

from unittest.mock import MagicMock

import pytest
from pydantic import ValidationError as PydanticValidationError
from redis.exceptions import LockError
from sqlalchemy import inspect, text
from sqlalchemy.orm import sessionmaker

from exam_scheduler.config.settings import Settings
from exam_scheduler.core.exceptions import LockTimeoutError
from exam_scheduler.core.locks import (
    LocalLockProvider,
    NullLockProvider,
    RedisLockProvider,
    build_lock_provider,
)
from exam_scheduler.db.init_db import drop_db, init_db, reset_db
from exam_scheduler.db.session import build_engine, session_scope


# ============================================================================
# SETTINGS
# ============================================================================

class TestSettings:

    def test_admin_ids_are_parsed(self):
        config = Settings(ADMIN_USER_IDS=" admin-1, ,admin-2 ")

        assert config.admin_user_ids == ["admin-1", "admin-2"]

    def test_empty_admin_ids(self):
        assert Settings(ADMIN_USER_IDS="").admin_user_ids == []

    def test_unknown_timezone_is_refused(self):
        with pytest.raises(PydanticValidationError):
            Settings(SCHEDULER_TIMEZONE="Mars/Olympus_Mons")

    def test_lock_backend_is_normalized(self):
        assert Settings(APPROVAL_LOCK_BACKEND=" REDIS ").APPROVAL_LOCK_BACKEND == "redis"

    def test_unknown_lock_backend_is_refused(self):
        with pytest.raises(PydanticValidationError):
            Settings(APPROVAL_LOCK_BACKEND="zookeeper")

    def test_log_level_is_normalized(self):
        assert Settings(LOG_LEVEL="debug").LOG_LEVEL == "DEBUG"

    def test_invalid_log_level(self):
        with pytest.raises(PydanticValidationError):
            Settings(LOG_LEVEL="chatty")

    @pytest.mark.parametrize("field,value", [("DEADLINE_HOUR", 24), ("RESERVE_PERCENTAGE", 101)])
    def test_range_checks(self, field, value):
        with pytest.raises(PydanticValidationError):
            Settings(**{field: value})

    def test_celery_urls_fall_back_to_redis(self):
        config = Settings(REDIS_URL="redis://cache:6379/1", CELERY_BROKER_URL=None, CELERY_RESULT_BACKEND=None)

        assert config.celery_broker_url == "redis://cache:6379/1"
        assert config.celery_result_backend == "redis://cache:6379/1"

    def test_explicit_celery_broker(self):
        config = Settings(CELERY_BROKER_URL="amqp://broker//")

        assert config.celery_broker_url == "amqp://broker//"

    def test_is_sqlite(self):
        assert Settings(DATABASE_URL="sqlite://").is_sqlite()
        assert not Settings(DATABASE_URL="postgresql://db/exams").is_sqlite()


# ============================================================================
# LOCK PROVIDERS
# ============================================================================

class TestBuildLockProvider:

    def test_default_is_best_effort(self):
        assert isinstance(build_lock_provider(Settings(APPROVAL_LOCK_BACKEND="none")), NullLockProvider)

    def test_local_backend(self):
        provider = build_lock_provider(Settings(APPROVAL_LOCK_BACKEND="local", APPROVAL_LOCK_TIMEOUT_SECONDS=3))

        assert isinstance(provider, LocalLockProvider)
        assert provider.timeout_seconds == 3

    def test_local_backend_is_shared_per_process(self):
        config = Settings(APPROVAL_LOCK_BACKEND="local", APPROVAL_LOCK_TIMEOUT_SECONDS=0.05)
        first = build_lock_provider(config)
        second = build_lock_provider(config)

        assert first is second
        with first.hold("2026-11-02:shift-1"):
            with pytest.raises(LockTimeoutError):
                with second.hold("2026-11-02:shift-1"):
                    pass

    def test_redis_backend_uses_given_client(self):
        client = MagicMock()

        provider = build_lock_provider(Settings(APPROVAL_LOCK_BACKEND="redis"), client=client)

        assert isinstance(provider, RedisLockProvider)
        assert provider.client is client


class TestLocalLockProvider:

    def test_same_key_is_exclusive(self):
        provider = LocalLockProvider(timeout_seconds=0.05)

        with provider.hold("2026-03-10:shift-1"):
            with pytest.raises(LockTimeoutError):
                with provider.hold("2026-03-10:shift-1"):
                    pass

    def test_different_keys_do_not_block(self):
        provider = LocalLockProvider(timeout_seconds=0.05)

        with provider.hold("2026-03-10:shift-1"):
            with provider.hold("2026-03-10:shift-2"):
                pass

    def test_lock_is_released_after_error(self):
        provider = LocalLockProvider(timeout_seconds=0.05)

        with pytest.raises(RuntimeError):
            with provider.hold("key"):
                raise RuntimeError("approval failed")

        with provider.hold("key"):
            pass

    def test_released_keys_are_forgotten(self):
        provider = LocalLockProvider(timeout_seconds=0.05)

        with provider.hold("2026-03-10:shift-1"):
            with pytest.raises(LockTimeoutError):
                with provider.hold("2026-03-10:shift-1"):
                    pass
            assert list(provider._locks) == ["2026-03-10:shift-1"]

        with provider.hold("2026-03-11:shift-1"):
            pass

        assert provider._locks == {}


class TestRedisLockProvider:

    def test_acquire_and_release(self):
        client = MagicMock()
        lock = client.lock.return_value
        lock.acquire.return_value = True

        with RedisLockProvider(client, timeout_seconds=2).hold("2026-03-10:shift-1"):
            pass

        client.lock.assert_called_once_with(
            "exam_scheduler:approval:2026-03-10:shift-1", timeout=6, blocking_timeout=2
        )
        lock.release.assert_called_once()

    def test_timeout(self):
        client = MagicMock()
        client.lock.return_value.acquire.return_value = False

        with pytest.raises(LockTimeoutError):
            with RedisLockProvider(client).hold("2026-03-10:shift-1"):
                pass

    def test_late_release_is_tolerated(self):
        client = MagicMock()
        lock = client.lock.return_value
        lock.acquire.return_value = True
        lock.release.side_effect = LockError("expired")

        with RedisLockProvider(client).hold("2026-03-10:shift-1"):
            pass


# ============================================================================
# DATABASE HELPERS
# ============================================================================

class TestDatabaseHelpers:

    def test_reset_recreates_tables(self):
        engine = build_engine(Settings(DATABASE_URL="sqlite://"))
        init_db(bind=engine)

        drop_db(bind=engine)
        assert inspect(engine).get_table_names() == []

        reset_db(bind=engine)
        assert {"bookings", "booking_history", "shifts"} <= set(inspect(engine).get_table_names())
        engine.dispose()

    def test_session_scope_closes_and_rolls_back(self):
        engine = build_engine(Settings(DATABASE_URL="sqlite://"))
        factory = sessionmaker(bind=engine)

        with pytest.raises(RuntimeError):
            with session_scope(factory) as db:
                assert db.execute(text("SELECT 1")).scalar() == 1
                raise RuntimeError("job failed")
        engine.dispose()
