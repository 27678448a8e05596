from contextlib import contextmanager
from typing import Iterator, Optional
from redis import Redis
from redis.lock import Lock

from trotropay.src import exceptions
from trotropay.src.constants import (
    REDIS_HOST,
    REDIS_PORT,
    REDIS_PASSWORD,
    MUTEX_LOCK_TIMEOUT,
    MUTEX_LOCK_MAX_WAIT_TIME,
)

# Redis client (single connection)
redisClient = Redis(
    host=REDIS_HOST,
    port=REDIS_PORT,
    password=REDIS_PASSWORD,
    decode_responses=True,
)


def lockName(resource: str, pk: Optional[int] = None) -> str:
    """Build the Redis key guarding a resource, e.g. `lock:wallet:7`."""
    return f"lock:{resource}" if pk is None else f"lock:{resource}:{pk}"


def acquireLock(
    resource: str,
    pk: Optional[int] = None,
    timeOut: int = MUTEX_LOCK_TIMEOUT,
    blockingTimeOut: int = MUTEX_LOCK_MAX_WAIT_TIME,
) -> Lock:
    """
    Acquire a Redis-based mutex lock for a table or a single row of it.

    Args:
        resource (str): Name of the table/resource to lock (e.g. `Wallet.__tablename__`).
        pk (Optional[int]): Optional primary key for row-level locking.
        timeOut (int): Lock expiration in seconds (auto-released after this).
        blockingTimeOut (int): Maximum time (in seconds) to wait for lock acquisition.

    Returns:
        Lock: A Redis lock object if successfully acquired.

    Raises:
        exceptions.LockAcquireTimeout: If the lock could not be acquired within blockingTimeOut.
        exceptions.RedisDBError: If Redis cannot be reached.
    """
    try:
        lock = redisClient.lock(lockName(resource, pk), timeout=timeOut)
        if lock.acquire(blocking=True, blocking_timeout=blockingTimeOut):
            return lock
        raise exceptions.LockAcquireTimeout()
    except Exception as e:
        exceptions.handle(e)


def releaseLock(lock: Optional[Lock]) -> None:
    """
    Release a previously acquired Redis lock.

    Does nothing when the lock is None, already expired, or owned by another
    client, so it is safe to call from `finally` blocks.
    """
    if lock and lock.locked() and lock.owned():
        lock.release()


@contextmanager
def mutex(resource: str, pk: Optional[int] = None) -> Iterator[Lock]:
    """
    Hold a row-level Redis lock for the duration of a `with` block.

    Example:
        >>> with mutex(Wallet.__tablename__, wallet.id):
        ...     debit(session, accountId, amount)
    """
    lock = acquireLock(resource, pk)
    try:
        yield lock
    finally:
        releaseLock(lock)
