# app/services/appointment/booking_lock.py
"""
Per-worker mutual exclusion around the check-then-insert of a booking.

"local" serializes within one process; "redis" serializes across API
processes. Either way the database exclusion constraint is the final word.
"""
from contextlib import contextmanager
from threading import Lock
from uuid import UUID
from weakref import WeakValueDictionary
import logging

from app.config.settings import get_settings
from app.core.exceptions import ConflictError

logger = logging.getLogger(__name__)
settings = get_settings()

# Entries drop out once no thread holds or waits on the lock
_local_locks: "WeakValueDictionary[str, Lock]" = WeakValueDictionary()
_registry_lock = Lock()


def _local_lock_for(worker_id: UUID) -> Lock:
    key = str(worker_id)
    with _registry_lock:
        lock = _local_locks.get(key)
        if lock is None:
            lock = Lock()
            _local_locks[key] = lock
        return lock


def _busy_error(worker_id: UUID) -> ConflictError:
    return ConflictError(
        "Another booking for this worker is in progress, please try again",
        code="booking_in_progress",
        worker_id=str(worker_id),
        retry_hint="refresh_slots"
    )


@contextmanager
def _local_worker_lock(worker_id: UUID, timeout: int):
    lock = _local_lock_for(worker_id)
    if not lock.acquire(timeout=timeout):
        logger.warning(f"Timed out waiting for local booking lock on worker {worker_id}")
        raise _busy_error(worker_id)
    try:
        yield
    finally:
        lock.release()


@contextmanager
def _redis_worker_lock(worker_id: UUID, timeout: int):
    from redis.exceptions import LockError

    from app.config.redis import RedisKeys, get_sync_redis

    lock = get_sync_redis().lock(
        RedisKeys.WORKER_BOOKING_LOCK.format(worker_id=worker_id),
        timeout=timeout * 3,
        blocking_timeout=timeout
    )
    if not lock.acquire():
        logger.warning(f"Timed out waiting for redis booking lock on worker {worker_id}")
        raise _busy_error(worker_id)
    try:
        yield
    finally:
        try:
            lock.release()
        except LockError:
            # Lock expired while held; the exclusion constraint still guards the insert
            logger.warning(f"Redis booking lock on worker {worker_id} expired before release")


@contextmanager
def worker_lock(worker_id: UUID):
    """Hold the booking lock for one worker for the duration of the block"""
    timeout = settings.BOOKING_LOCK_TIMEOUT_SECONDS
    if settings.BOOKING_LOCK_BACKEND == "redis":
        with _redis_worker_lock(worker_id, timeout):
            yield
    else:
        with _local_worker_lock(worker_id, timeout):
            yield
