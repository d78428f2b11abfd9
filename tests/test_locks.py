import threading
from unittest.mock import MagicMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError, LockError

from salon.services.errors import LockUnavailableError
from salon.services.locks import LocalHairdresserLocks, RedisHairdresserLocks


def test_local_lock_is_per_hairdresser():
    locks = LocalHairdresserLocks(wait_seconds=0.1)

    with locks.hold(1):
        # another hairdresser is not blocked
        with locks.hold(2):
            pass


def test_local_lock_times_out_when_held():
    locks = LocalHairdresserLocks(wait_seconds=0.05)
    held = threading.Event()
    release = threading.Event()

    def holder():
        with locks.hold(1):
            held.set()
            release.wait(2)

    t = threading.Thread(target=holder)
    t.start()
    held.wait(2)
    try:
        with pytest.raises(LockUnavailableError):
            with locks.hold(1):
                pass
    finally:
        release.set()
        t.join()


def test_local_lock_released_after_error():
    locks = LocalHairdresserLocks(wait_seconds=0.05)

    with pytest.raises(RuntimeError):
        with locks.hold(1):
            raise RuntimeError("boom")

    with locks.hold(1):
        pass


def test_redis_lock_key_and_lease():
    redis = MagicMock()
    lock = redis.lock.return_value
    lock.acquire.return_value = True
    locks = RedisHairdresserLocks(redis, timeout_seconds=10, wait_seconds=5)

    with locks.hold(7):
        pass

    redis.lock.assert_called_once_with("lock:hairdresser:7", timeout=10, blocking_timeout=5)
    lock.release.assert_called_once()


def test_redis_lock_not_acquired_raises():
    redis = MagicMock()
    redis.lock.return_value.acquire.return_value = False
    locks = RedisHairdresserLocks(redis)

    with pytest.raises(LockUnavailableError):
        with locks.hold(1):
            pass


def test_redis_down_raises_lock_unavailable():
    redis = MagicMock()
    redis.lock.return_value.acquire.side_effect = RedisConnectionError("down")
    locks = RedisHairdresserLocks(redis)

    with pytest.raises(LockUnavailableError):
        with locks.hold(1):
            pass


def test_expired_lease_on_release_is_not_an_error():
    redis = MagicMock()
    lock = redis.lock.return_value
    lock.acquire.return_value = True
    lock.release.side_effect = LockError("expired")
    locks = RedisHairdresserLocks(redis)

    with locks.hold(1):
        pass
