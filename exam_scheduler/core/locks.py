"""
Per-key serialization for capacity-gated approvals.

Approval reads the approved total for a (date, hour) or (date, shift) pool
and then writes. Without serialization two concurrent approvals can both
pass the check and overshoot capacity; the override audit trail makes that
outcome visible. Deployments that need a hard guarantee pick the ``local``
(single process) or ``redis`` (shared) backend via APPROVAL_LOCK_BACKEND.
"""

import logging
import threading
from contextlib import contextmanager
from functools import lru_cache
from typing import Dict, Iterator, Optional

import redis
from redis.exceptions import LockError

from exam_scheduler.config.settings import Settings
from exam_scheduler.core.exceptions import LockTimeoutError

logger = logging.getLogger(__name__)


class NullLockProvider:
    """Best-effort mode: approvals are not serialized."""

    name = "none"

    @contextmanager
    def hold(self, key: str) -> Iterator[None]:
        yield


class LocalLockProvider:
    """
    In-process mutex per capacity key.

    A key's lock lives only while someone holds or waits on it, so the
    table stays as small as the number of approvals in flight.
    """

    name = "local"

    def __init__(self, timeout_seconds: float = 10):
        self.timeout_seconds = timeout_seconds
        self._guard = threading.Lock()
        # key -> [lock, holders and waiters]
        self._locks: Dict[str, list] = {}

    def _checkout(self, key: str) -> threading.Lock:
        with self._guard:
            entry = self._locks.setdefault(key, [threading.Lock(), 0])
            entry[1] += 1
            return entry[0]

    def _checkin(self, key: str) -> None:
        with self._guard:
            entry = self._locks[key]
            entry[1] -= 1
            if entry[1] == 0:
                del self._locks[key]

    @contextmanager
    def hold(self, key: str) -> Iterator[None]:
        lock = self._checkout(key)
        try:
            if not lock.acquire(timeout=self.timeout_seconds):
                raise LockTimeoutError(key)
            try:
                yield
            finally:
                lock.release()
        finally:
            self._checkin(key)


class RedisLockProvider:
    """Redis lock per capacity key, shared by every worker process."""

    name = "redis"
    prefix = "exam_scheduler:approval:"

    def __init__(self, client: redis.Redis, timeout_seconds: float = 10):
        self.client = client
        self.timeout_seconds = timeout_seconds

    @contextmanager
    def hold(self, key: str) -> Iterator[None]:
        lock = self.client.lock(
            self.prefix + key,
            timeout=self.timeout_seconds * 3,
            blocking_timeout=self.timeout_seconds,
        )
        if not lock.acquire():
            raise LockTimeoutError(key)
        try:
            yield
        finally:
            try:
                lock.release()
            except LockError as e:
                # Lock expired while held; the approval itself already committed
                logger.warning(f"Approval lock {key} released late: {e}")


@lru_cache()
def shared_local_provider(timeout_seconds: float) -> LocalLockProvider:
    """One LocalLockProvider per timeout for the whole process."""
    return LocalLockProvider(timeout_seconds)


def build_lock_provider(config: Settings, client: Optional[redis.Redis] = None):
    """
    Lock provider selected by APPROVAL_LOCK_BACKEND.

    The ``local`` backend is process-wide: every approval service built
    from the same settings contends on the same keys.
    """
    backend = config.APPROVAL_LOCK_BACKEND
    if backend == "local":
        return shared_local_provider(config.APPROVAL_LOCK_TIMEOUT_SECONDS)
    if backend == "redis":
        client = client or redis.Redis.from_url(config.REDIS_URL)
        return RedisLockProvider(client, config.APPROVAL_LOCK_TIMEOUT_SECONDS)
    return NullLockProvider()
