"""
Dedicated database sessions for advisory locks.

PostgreSQL session-level advisory locks belong to the backend that took
them, so each lock attempt checks out its own AsyncConnection and keeps it
until the lock is released. The connection runs in AUTOCOMMIT mode: a held
lock must never leave a transaction open, or idle-in-transaction timeouts
would end the session (and the lock) behind the caller's back.
"""

from __future__ import annotations

import logging

from sqlalchemy.exc import DBAPIError, ResourceClosedError
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine

from pglocker.context import Context

logger = logging.getLogger(__name__)


async def checkout_session(ctx: Context, engine: AsyncEngine) -> AsyncConnection:
    """
    Check out a dedicated connection bounded by ``ctx``.

    Args:
        ctx: Cancellation context for the checkout
        engine: Engine whose pool provides the connection

    Returns:
        A started AsyncConnection in AUTOCOMMIT mode

    Raises:
        ContextCancelledError: If ``ctx`` was cancelled during checkout
        DeadlineExceededError: If ``ctx`` expired during checkout
        Exception: Any driver error raised while connecting
    """
    conn = engine.connect()
    await ctx.run(conn.start())
    try:
        await conn.execution_options(isolation_level="AUTOCOMMIT")
    except BaseException:
        await close_session(conn, invalidate=True)
        raise
    return conn


async def close_session(conn: AsyncConnection, *, invalidate: bool = False) -> None:
    """
    Return a lock session to the pool, or discard it.

    Invalidating closes the physical connection, which makes PostgreSQL
    end the backend and drop any advisory lock it holds or is waiting
    for. Use it whenever the lock state of the session is unknown.

    Close failures are logged and not raised; by the time a session is
    closed the lock outcome has already been decided.

    Args:
        conn: Session to close
        invalidate: Discard the physical connection instead of pooling it
    """
    if conn.closed:
        return
    try:
        if invalidate and not conn.invalidated:
            await conn.invalidate()
        await conn.close()
    except Exception as e:
        logger.warning(
            "Error closing lock session: invalidate=%s, error=%s",
            invalidate,
            e,
        )


def session_is_closed(conn: AsyncConnection) -> bool:
    """True if the session can no longer carry the lock."""
    return conn.closed or conn.invalidated


def is_closed_error(error: BaseException) -> bool:
    """
    Check whether an error means the session's connection is gone.

    Args:
        error: Exception raised by a statement on the session

    Returns:
        True for statements on a closed connection and for disconnects
        detected by the driver
    """
    if isinstance(error, ResourceClosedError):
        return True
    if isinstance(error, DBAPIError) and error.connection_invalidated:
        return True
    return False


__all__ = [
    "checkout_session",
    "close_session",
    "is_closed_error",
    "session_is_closed",
]
