"""
backend/salon/services/locks.py

Per-hairdresser mutual exclusion.

Booking create and reschedule are read-existing → decide → write. Two
requests for overlapping slots of the same hairdresser must not both pass
the check, so that section runs while holding the hairdresser's lock.

- RedisHairdresserLocks: shared by every API worker process
- LocalHairdresserLocks: one process only (dev, tests, single worker)
"""

import logging
import threading
from contextlib import contextmanager
from functools import lru_cache
from typing import Iterator

from redis import Redis
from redis.exceptions import LockError, RedisError

from .errors import LockUnavailableError

logger = logging.getLogger(__name__)


class LocalHairdresserLocks:
    """threading.Lock per hairdresser id, created on first use."""

    def __init__(self, wait_seconds: float = 5.0):
        self.wait_seconds = wait_seconds
        self._guard = threading.Lock()
        self._locks: dict[int, threading.Lock] = {}

    def _lock_for(self, hairdresser_id: int) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(hairdresser_id)
            if lock is None:
                lock = threading.Lock()
                self._locks[hairdresser_id] = lock
            return lock

    @contextmanager
    def hold(self, hairdresser_id: int) -> Iterator[None]:
        lock = self._lock_for(hairdresser_id)
        if not lock.acquire(timeout=self.wait_seconds):
            logger.warning(f"Timed out waiting for hairdresser lock {hairdresser_id}")
            raise LockUnavailableError()
        try:
            yield
        finally:
            lock.release()


class RedisHairdresserLocks:
    """Redis lock per hairdresser id (SET NX with a lease)."""

    KEY_PREFIX = "lock:hairdresser"

    def __init__(self, redis: Redis, timeout_seconds: int = 10, wait_seconds: int = 5):
        self.redis = redis
        self.timeout_seconds = timeout_seconds
        self.wait_seconds = wait_seconds

    def _key(self, hairdresser_id: int) -> str:
        return f"{self.KEY_PREFIX}:{hairdresser_id}"

    @contextmanager
    def hold(self, hairdresser_id: int) -> Iterator[None]:
        lock = self.redis.lock(
            self._key(hairdresser_id),
            timeout=self.timeout_seconds,
            blocking_timeout=self.wait_seconds,
        )
        try:
            acquired = lock.acquire()
        except RedisError as e:
            logger.error(f"Redis lock backend unavailable: {e}")
            raise LockUnavailableError() from e
        if not acquired:
            logger.warning(f"Timed out waiting for hairdresser lock {hairdresser_id}")
            raise LockUnavailableError()
        try:
            yield
        finally:
            try:
                lock.release()
            except LockError:
                # lease expired before we finished; the write already committed
                logger.warning(f"Hairdresser lock {hairdresser_id} expired before release")


@lru_cache
def get_hairdresser_locks():
    """Process-wide lock registry chosen from settings."""
    from ..config import settings

    if settings.use_redis_locks:
        from ..redis_client import redis_client
        return RedisHairdresserLocks(
            redis_client,
            timeout_seconds=settings.lock_timeout_seconds,
            wait_seconds=settings.lock_wait_seconds,
        )
    return LocalHairdresserLocks(wait_seconds=settings.lock_wait_seconds)
