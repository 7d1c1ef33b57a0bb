"""
Redis mutexes of the RouteWise API.

A few admin console writes touch several rows of one user at once: moving
the primary organization flag, deleting the primary organization and saving
the onboarding wizard. They run under a per-user lock named
`lock:<table>:<id>` so concurrent requests of the same operator are applied
one after another.
"""

from redis import Redis
from typing import Optional
from redis.lock import Lock

from routewise.src import exceptions
from routewise.src.constants import (
    REDIS_HOST,
    REDIS_PORT,
    REDIS_PASSWORD,
    MUTEX_LOCK_TIMEOUT,
    MUTEX_LOCK_MAX_WAIT_TIME,
)

# Connections are opened on first use
redisClient = Redis(
    host=REDIS_HOST,
    port=int(REDIS_PORT),
    password=REDIS_PASSWORD,
    decode_responses=True,
)


def lockName(tableName: str, pk: Optional[int] = None) -> str:
    if pk is None:
        return f"lock:{tableName}"
    return f"lock:{tableName}:{pk}"


def acquireLock(
    tableName: str,
    pk: Optional[int] = None,
    timeOut: int = MUTEX_LOCK_TIMEOUT,
    blockingTimeOut: int = MUTEX_LOCK_MAX_WAIT_TIME,
) -> Lock:
    """
    Block until the mutex of a table, or of one of its rows, is held.

    Args:
        tableName (str): Table guarded by the lock, e.g. `User.__tablename__`.
        pk (Optional[int]): Row to guard, the whole table when None.
        timeOut (int): Seconds after which Redis drops a lock that was never released.
        blockingTimeOut (int): Seconds to wait for a lock held by another request.

    Raises:
        exceptions.LockAcquireTimeout: The lock stayed busy for `blockingTimeOut`.
        exceptions.RedisDBError: Redis could not be reached.
    """
    lock = redisClient.lock(lockName(tableName, pk), timeout=timeOut)
    try:
        acquired = lock.acquire(blocking=True, blocking_timeout=blockingTimeOut)
    except Exception as e:
        exceptions.handle(e)
    if not acquired:
        raise exceptions.LockAcquireTimeout()
    return lock


def releaseLock(lock: Optional[Lock]) -> None:
    """Release a lock taken by `acquireLock`. None and expired locks are ignored."""
    if lock is None:
        return
    if lock.locked() and lock.owned():
        lock.release()
