"""
Acquisition strategies for advisory locks.

Two mutually exclusive policies, picked by whether a timeout is set:

- try once: ``pg_try_advisory_lock`` returns immediately with a boolean
- wait with deadline: ``pg_advisory_lock`` blocks inside PostgreSQL until
  the lock is granted; the client abandons the request when the local
  deadline or the caller's context ends first

Neither strategy closes the session; the caller owns it and must close it
on any failure.
"""

from __future__ import annotations

import logging

from sqlalchemy import BigInteger, bindparam, text
from sqlalchemy.ext.asyncio import AsyncConnection

from pglocker.context import Context

logger = logging.getLogger(__name__)

TRY_LOCK_SQL = text("SELECT pg_try_advisory_lock(:lock_id)").bindparams(
    bindparam("lock_id", type_=BigInteger)
)
LOCK_SQL = text("SELECT pg_advisory_lock(:lock_id)").bindparams(
    bindparam("lock_id", type_=BigInteger)
)


async def try_lock(ctx: Context, conn: AsyncConnection, lock_id: int) -> bool:
    """
    Try to claim the lock once without blocking.

    Args:
        ctx: Cancellation context bounding the request
        conn: Dedicated session to claim the lock on
        lock_id: Advisory lock identifier

    Returns:
        True if the lock was acquired, False if another session holds it
    """
    result = await ctx.run(conn.execute(TRY_LOCK_SQL, {"lock_id": lock_id}))
    return bool(result.scalar())


async def wait_for_lock(
    ctx: Context,
    conn: AsyncConnection,
    lock_id: int,
    timeout: float,
) -> bool:
    """
    Block until the lock is granted or ``timeout`` seconds pass.

    The deadline is measured from the start of this call.

    Args:
        ctx: Cancellation context; ending it also aborts the wait
        conn: Dedicated session to claim the lock on
        lock_id: Advisory lock identifier
        timeout: Maximum seconds to wait

    Returns:
        True once the lock is held

    Raises:
        DeadlineExceededError: If ``timeout`` (or the context deadline) passed first
        ContextCancelledError: If ``ctx`` was cancelled while waiting
    """
    await ctx.run(conn.execute(LOCK_SQL, {"lock_id": lock_id}), timeout=timeout)
    return True


async def get_lock(
    ctx: Context,
    conn: AsyncConnection,
    lock_id: int,
    timeout: float,
) -> bool:
    """
    Claim the lock using the strategy selected by ``timeout``.

    Args:
        ctx: Cancellation context bounding the claim
        conn: Dedicated session to claim the lock on
        lock_id: Advisory lock identifier
        timeout: 0 to try once, otherwise seconds to wait

    Returns:
        True if the lock is now held by ``conn``
    """
    if timeout == 0:
        logger.debug("Trying advisory lock once: lock_id=%d", lock_id)
        return await try_lock(ctx, conn, lock_id)
    logger.debug("Waiting for advisory lock: lock_id=%d, timeout=%.3fs", lock_id, timeout)
    return await wait_for_lock(ctx, conn, lock_id, timeout)


__all__ = [
    "get_lock",
    "try_lock",
    "wait_for_lock",
]
