"""
Background liveness loop for held advisory locks.

Each held lock gets one task that:

1. waits for either the caller's context to end or the next ping tick,
2. pings the session on every tick, so a dead connection is noticed and
   idle timeouts in proxies or poolers never reclaim it,
3. releases the lock once holding ends, under its own deadline,
4. closes the session and fires the CompletionSignal exactly once.

The task is the only user of the session while the lock is held.
"""

from __future__ import annotations

import asyncio
import logging

from sqlalchemy import text
from sqlalchemy.exc import ResourceClosedError
from sqlalchemy.ext.asyncio import AsyncConnection

from pglocker.completion import CompletionSignal, LockInfo
from pglocker.context import Context
from pglocker.exceptions import (
    LockReleaseError,
    PgLockerError,
    SessionClosedError,
    ignore_error,
)
from pglocker.observability import (
    ATTR_DB_OPERATION,
    ATTR_DB_SYSTEM,
    ATTR_ERROR_TYPE,
    ATTR_LOCK_ID,
    ATTR_LOCK_KEY,
    NullTracer,
    Tracer,
)
from pglocker.options import LockOptions
from pglocker.release import release_lock
from pglocker.session import close_session

logger = logging.getLogger(__name__)

PING_SQL = text("SELECT 1")

# Strong references keep running hold tasks from being garbage collected.
_hold_tasks: set[asyncio.Task[None]] = set()


async def ping_session(ctx: Context, conn: AsyncConnection, key: str) -> None:
    """
    Run one liveness probe bounded by ``ctx``.

    Raises:
        SessionClosedError: If the session was closed locally
        ContextCancelledError: If ``ctx`` was cancelled during the probe
        DeadlineExceededError: If ``ctx`` expired during the probe
        Exception: Driver errors, e.g. a dropped connection
    """
    try:
        await ctx.run(conn.execute(PING_SQL))
    except ResourceClosedError as e:
        raise SessionClosedError(key) from e


async def _hold(
    ctx: Context,
    conn: AsyncConnection,
    info: LockInfo,
    ping_interval: float,
) -> BaseException:
    """Hold the lock until the context ends or a ping fails; return the cause."""
    while True:
        if await ctx.wait(timeout=ping_interval):
            assert ctx.error is not None
            return ctx.error
        try:
            await ping_session(ctx, conn, info.key)
        except Exception as e:
            if ignore_error(e) is not None:
                logger.warning(
                    "Liveness ping failed; releasing lock: key=%s, error=%s",
                    info.key,
                    e,
                )
            return e
        logger.debug("Pinged lock session: key=%s", info.key)


async def _terminate(
    conn: AsyncConnection,
    info: LockInfo,
    cause: BaseException | None,
    release_timeout: float,
    tracer: Tracer,
) -> BaseException | None:
    """Release the lock, close the session and return the classified outcome."""
    release_error: PgLockerError | None = None

    with tracer.span(
        "pglocker.lock.release",
        {
            ATTR_LOCK_KEY: info.key,
            ATTR_LOCK_ID: info.lock_id,
            ATTR_DB_SYSTEM: "postgresql",
            ATTR_DB_OPERATION: "pg_advisory_unlock",
        },
    ) as span:
        try:
            await release_lock(conn, info.key, info.lock_id, timeout=release_timeout)
        except (LockReleaseError, SessionClosedError) as e:
            release_error = e

        # A failed unlock leaves the lock state unknown; dropping the
        # connection makes the server release it.
        await close_session(conn, invalidate=isinstance(release_error, LockReleaseError))

        outcome = ignore_error(release_error)
        if outcome is None:
            outcome = ignore_error(cause)

        if span is not None and outcome is not None:
            span.set_attribute(ATTR_ERROR_TYPE, type(outcome).__name__)

    if outcome is None:
        logger.info(
            "Released advisory lock",
            extra={"lock_key": info.key, "lock_id": info.lock_id},
        )
    else:
        logger.error(
            "Advisory lock ended with error: %s",
            outcome,
            extra={
                "lock_key": info.key,
                "lock_id": info.lock_id,
                "error_type": type(outcome).__name__,
            },
        )
    return outcome


async def run_liveness_loop(
    ctx: Context,
    conn: AsyncConnection,
    signal: CompletionSignal,
    options: LockOptions,
    tracer: Tracer | None = None,
) -> None:
    """
    Hold a lock until ``ctx`` ends or the session dies, then release it.

    If the task running this loop is cancelled, the lock is still released
    and the signal still fires (with None) before the cancellation is
    re-raised.

    Args:
        ctx: The caller's context; holding ends when it ends
        conn: Session holding the lock; closed by this loop
        signal: Signal to resolve with the outcome
        options: Ping cadence and release deadline
        tracer: Tracer for the release span
    """
    tracer = tracer or NullTracer()
    info = signal.info
    cause: BaseException | None = None
    cancelled: asyncio.CancelledError | None = None

    try:
        cause = await _hold(ctx, conn, info, options.ping_interval)
    except asyncio.CancelledError as e:
        logger.info(
            "Liveness loop cancelled, releasing lock",
            extra={"lock_key": info.key},
        )
        cancelled = e

    outcome: BaseException | None = None
    try:
        outcome = await _terminate(conn, info, cause, options.release_timeout, tracer)
    except Exception as e:
        outcome = e
    finally:
        signal._resolve(outcome)

    if cancelled is not None:
        raise cancelled


def _on_hold_task_done(task: asyncio.Task[None]) -> None:
    _hold_tasks.discard(task)
    if not task.cancelled():
        exc = task.exception()
        if exc:
            logger.error(
                "Liveness loop failed: %s",
                exc,
                exc_info=exc,
            )


def start_liveness_loop(
    ctx: Context,
    conn: AsyncConnection,
    signal: CompletionSignal,
    options: LockOptions,
    tracer: Tracer | None = None,
) -> asyncio.Task[None]:
    """
    Start ``run_liveness_loop`` as a tracked background task.

    Returns:
        The created asyncio.Task
    """
    task = asyncio.create_task(
        run_liveness_loop(ctx, conn, signal, options, tracer),
        name=f"pglocker-hold:{signal.info.key}",
    )
    _hold_tasks.add(task)
    task.add_done_callback(_on_hold_task_done)
    return task


def active_hold_count() -> int:
    """Number of liveness loops currently running in this process."""
    return len(_hold_tasks)


__all__ = [
    "PING_SQL",
    "active_hold_count",
    "ping_session",
    "run_liveness_loop",
    "start_liveness_loop",
]
