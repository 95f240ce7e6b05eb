"""
Release protocol for held advisory locks.

Release runs after the caller's context has already ended, so it can never
be bounded by that context. Each release gets its own deadline instead,
which gives PostgreSQL a chance to drop the lock even when the trigger
for releasing it was the caller giving up.
"""

from __future__ import annotations

import asyncio
import logging

from sqlalchemy import BigInteger, bindparam, text
from sqlalchemy.ext.asyncio import AsyncConnection

from pglocker.exceptions import LockReleaseError, SessionClosedError
from pglocker.session import is_closed_error, session_is_closed

logger = logging.getLogger(__name__)

UNLOCK_SQL = text("SELECT pg_advisory_unlock(:lock_id)").bindparams(
    bindparam("lock_id", type_=BigInteger)
)


async def release_lock(
    conn: AsyncConnection,
    key: str,
    lock_id: int,
    *,
    timeout: float,
) -> None:
    """
    Send exactly one unlock request under an independent deadline.

    Args:
        conn: Session holding the lock (may already be dead)
        key: Lock name, for error messages and logs
        lock_id: Advisory lock identifier
        timeout: Seconds allowed for the unlock request

    Raises:
        SessionClosedError: If the session is already gone. The server
            released the lock when the session ended.
        LockReleaseError: If the unlock request timed out or failed
    """
    if session_is_closed(conn):
        raise SessionClosedError(key)

    try:
        async with asyncio.timeout(timeout):
            result = await conn.execute(UNLOCK_SQL, {"lock_id": lock_id})
    except TimeoutError as e:
        raise LockReleaseError(key, f"Unlock timed out after {timeout}s") from e
    except Exception as e:
        if is_closed_error(e):
            raise SessionClosedError(key) from e
        raise LockReleaseError(key, f"Database error: {e}") from e

    if not result.scalar():
        logger.warning(
            "Advisory lock was not held at release: key=%s, lock_id=%d",
            key,
            lock_id,
        )
        return

    logger.debug(
        "Released advisory lock: key=%s, lock_id=%d",
        key,
        lock_id,
    )


__all__ = ["release_lock"]
