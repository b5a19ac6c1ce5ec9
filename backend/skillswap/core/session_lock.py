"""
Participant locks for the scheduling check-then-write critical section.

Two booking operations touching the same participant must not both pass
the overlap check before either writes. Callers wrap the conflict check
and the write in ``participant_lock([...])``; one mutex per participant
id is taken in sorted order and released in reverse order.

Backends:
- ``redis``: SET NX EX mutex shared by every process talking to Redis.
  If Redis is unreachable the lock degrades to the local backend.
- ``local``: process-wide ``threading.Lock`` registry.
"""

from __future__ import annotations

from contextlib import contextmanager
import logging
import threading
import time
from typing import Dict, Iterable, Iterator, List, Optional

from redis import Redis
from redis.exceptions import RedisError

from ..monitoring.prometheus_metrics import prometheus_metrics
from .config import settings
from .exceptions import LockTimeoutException
from .ulid_helper import generate_ulid

logger = logging.getLogger(__name__)

_SYNC_REDIS: Optional[Redis] = None
_SYNC_REDIS_LOCK = threading.Lock()

_LOCAL_LOCKS: Dict[str, threading.Lock] = {}
_LOCAL_LOCKS_GUARD = threading.Lock()


def _lock_key(participant_id: str) -> str:
    return f"participant:{participant_id}:schedule"


def _namespaced_key(key: str) -> str:
    return f"{settings.session_lock_namespace}:lock:{key}"


def _get_sync_redis() -> Optional[Redis]:
    global _SYNC_REDIS
    if _SYNC_REDIS is not None:
        return _SYNC_REDIS
    with _SYNC_REDIS_LOCK:
        if _SYNC_REDIS is not None:
            return _SYNC_REDIS
        try:
            client = Redis.from_url(
                settings.redis_url,
                encoding="utf-8",
                decode_responses=True,
            )
            client.ping()
        except RedisError as exc:
            logger.warning("session_lock_redis_unavailable: %s", exc)
            return None
        _SYNC_REDIS = client
        return _SYNC_REDIS


def _local_lock_for(key: str) -> threading.Lock:
    with _LOCAL_LOCKS_GUARD:
        lock = _LOCAL_LOCKS.get(key)
        if lock is None:
            lock = threading.Lock()
            _LOCAL_LOCKS[key] = lock
        return lock


class _LocalHandle:
    def __init__(self, key: str) -> None:
        self.key = key
        self._lock = _local_lock_for(key)

    def acquire(self, timeout_s: float) -> bool:
        return self._lock.acquire(timeout=max(0.0, timeout_s))

    def release(self) -> None:
        try:
            self._lock.release()
        except RuntimeError:
            logger.warning("session_lock_local_release_unheld", extra={"lock_key": self.key})


class _RedisHandle:
    def __init__(self, client: Redis, key: str, ttl_s: int, poll_s: float) -> None:
        self.key = key
        self._client = client
        self._ttl_s = ttl_s
        self._poll_s = poll_s
        self._token = generate_ulid()

    def acquire(self, timeout_s: float) -> bool:
        deadline = time.monotonic() + max(0.0, timeout_s)
        name = _namespaced_key(self.key)
        while True:
            if self._client.set(name, self._token, nx=True, ex=self._ttl_s):
                return True
            if time.monotonic() >= deadline:
                return False
            time.sleep(self._poll_s)

    def release(self) -> None:
        name = _namespaced_key(self.key)
        try:
            # Only the holder may delete; an expired lock may have been re-taken.
            if self._client.get(name) == self._token:
                self._client.delete(name)
                prometheus_metrics.record_session_lock("release", "success")
            else:
                prometheus_metrics.record_session_lock("release", "not_owner")
        except RedisError as exc:
            prometheus_metrics.record_session_lock("release", "error")
            logger.warning(
                "session_lock_redis_release_failed",
                extra={"lock_key": self.key, "error": str(exc), "error_type": type(exc).__name__},
            )


def _make_handles(keys: List[str], ttl_s: int) -> List[_LocalHandle | _RedisHandle]:
    if settings.session_lock_backend == "redis":
        client = _get_sync_redis()
        if client is not None:
            poll_s = settings.session_lock_poll_interval_seconds
            return [_RedisHandle(client, key, ttl_s, poll_s) for key in keys]
        prometheus_metrics.record_session_lock("acquire", "redis_unavailable")
        logger.warning("session_lock_falling_back_to_local", extra={"lock_keys": keys})
    return [_LocalHandle(key) for key in keys]


@contextmanager
def participant_lock(
    participant_ids: Iterable[str],
    *,
    timeout_s: Optional[float] = None,
    ttl_s: Optional[int] = None,
) -> Iterator[List[str]]:
    """
    Hold one mutex per participant for the duration of the block.

    Args:
        participant_ids: User ids whose schedules are about to be checked and written
        timeout_s: Total time to wait for all locks
        ttl_s: Redis expiry so a crashed holder cannot block forever

    Yields:
        The sorted lock keys held

    Raises:
        LockTimeoutException: If the locks could not be acquired in time
    """
    keys = sorted({_lock_key(pid) for pid in participant_ids if pid})
    timeout = settings.session_lock_timeout_seconds if timeout_s is None else timeout_s
    ttl = settings.session_lock_ttl_seconds if ttl_s is None else ttl_s

    handles = _make_handles(keys, ttl)
    held: List[_LocalHandle | _RedisHandle] = []
    deadline = time.monotonic() + timeout
    try:
        for handle in handles:
            try:
                acquired = handle.acquire(deadline - time.monotonic())
            except RedisError as exc:
                prometheus_metrics.record_session_lock("acquire", "error")
                logger.error(
                    "session_lock_redis_acquire_failed",
                    extra={"lock_key": handle.key, "error": str(exc)},
                )
                raise
            if not acquired:
                prometheus_metrics.record_session_lock("acquire", "timeout")
                raise LockTimeoutException(keys, timeout)
            held.append(handle)
        prometheus_metrics.record_session_lock("acquire", "success")
        yield keys
    finally:
        for handle in reversed(held):
            handle.release()


def reset_local_locks() -> None:
    """Drop the local lock registry (test helper)."""
    with _LOCAL_LOCKS_GUARD:
        _LOCAL_LOCKS.clear()
