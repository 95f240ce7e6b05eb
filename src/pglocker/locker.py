"""
Named distributed locks on PostgreSQL advisory locks.

Advisory locks are application-level locks that:
- Are independent of table/row locks
- Persist for session duration (until released or disconnected)
- Support non-blocking acquisition attempts
- Are automatically released on connection close

Acquisition is synchronous from the caller's point of view: ``lock()``
returns only once the lock is held, or raises. Holding and releasing are
asynchronous: a background task keeps the session alive until the
caller's Context ends, then releases the lock and fires the returned
CompletionSignal.

Usage:
    >>> ctx = Context()
    >>> signal = await lock(ctx, engine, "cutover:tenant-abc", timeout=5.0)
    >>> await perform_cutover()
    >>> ctx.cancel()
    >>> assert await signal.wait() is None
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import UTC, datetime

from sqlalchemy.ext.asyncio import AsyncEngine

from pglocker.completion import CompletionSignal, LockInfo
from pglocker.context import Context
from pglocker.exceptions import (
    ContextCancelledError,
    DeadlineExceededError,
    LockAcquisitionError,
)
from pglocker.identifier import lock_id
from pglocker.liveness import start_liveness_loop
from pglocker.observability import (
    ATTR_LOCK_ACQUIRED,
    ATTR_LOCK_HOLDER_ID,
    ATTR_LOCK_ID,
    ATTR_LOCK_KEY,
    ATTR_LOCK_TIMEOUT,
    Tracer,
    create_tracer,
)
from pglocker.options import LockOptions
from pglocker.session import checkout_session, close_session
from pglocker.strategy import get_lock

logger = logging.getLogger(__name__)


def _is_wait_timeout(error: BaseException, ctx: Context, options: LockOptions) -> bool:
    # A local wait deadline fires while the caller's context is still active.
    return isinstance(error, DeadlineExceededError) and ctx.error is None and options.waits


def _failure_reason(error: BaseException, ctx: Context, options: LockOptions) -> str:
    if _is_wait_timeout(error, ctx, options):
        return f"Timeout after {options.timeout}s"
    if isinstance(error, DeadlineExceededError):
        return "Context deadline exceeded"
    if isinstance(error, ContextCancelledError):
        return "Context cancelled"
    return f"Database error: {error}"


class AdvisoryLocker:
    """
    Acquires PostgreSQL advisory locks by name.

    Every lock uses a dedicated connection from ``engine`` for as long as
    it is held, because PostgreSQL advisory locks are session-level.
    Consider connection pool sizing when holding many locks at once.

    Example:
        >>> locker = AdvisoryLocker(engine, holder_id="worker-1")
        >>>
        >>> # Hold until the context ends
        >>> ctx = Context()
        >>> signal = await locker.lock(ctx, "cutover:tenant-123")
        >>>
        >>> # Or scope the lock to a block
        >>> async with locker.hold("cutover:tenant-123", timeout=5.0):
        ...     await perform_cutover()
    """

    def __init__(
        self,
        engine: AsyncEngine,
        *,
        holder_id: str | None = None,
        tracer: Tracer | None = None,
        enable_tracing: bool = True,
    ):
        """
        Initialize the locker.

        Args:
            engine: SQLAlchemy async engine whose pool provides lock sessions
            holder_id: Optional identifier for this lock holder (for debugging)
            tracer: Optional custom Tracer instance. If not provided, one is
                   created based on enable_tracing setting.
            enable_tracing: Whether to enable OpenTelemetry tracing.
                          Ignored if tracer is explicitly provided.
        """
        self._tracer = tracer or create_tracer(__name__, enable_tracing)
        self._engine = engine
        self._holder_id = holder_id
        self._hold_tasks: set[asyncio.Task[None]] = set()

    async def lock(
        self,
        ctx: Context,
        name: str,
        *,
        options: LockOptions | None = None,
        timeout: float | None = None,
        ping_interval: float | None = None,
        release_timeout: float | None = None,
    ) -> CompletionSignal:
        """
        Acquire ``name`` and hold it until ``ctx`` ends.

        Keyword arguments override the matching fields of ``options``.

        Args:
            ctx: Context bounding acquisition and the whole hold period
            name: Lock name
            options: Base LockOptions (defaults if None)
            timeout: Seconds to wait for the lock; 0 fails immediately
            ping_interval: Seconds between liveness pings
            release_timeout: Seconds allowed for the unlock request

        Returns:
            CompletionSignal that fires once the lock has been released

        Raises:
            LockAcquisitionError: If the lock is unavailable, the wait timed
                out, ``ctx`` ended, or the database failed during acquisition
            Exception: Errors checking out a session propagate unchanged
        """
        opts = LockOptions.build(
            options,
            timeout=timeout,
            ping_interval=ping_interval,
            release_timeout=release_timeout,
        )
        key_id = lock_id(name)

        with self._tracer.span(
            "pglocker.lock.acquire",
            {
                ATTR_LOCK_KEY: name,
                ATTR_LOCK_ID: key_id,
                ATTR_LOCK_TIMEOUT: opts.timeout,
                ATTR_LOCK_HOLDER_ID: self._holder_id or "",
            },
        ) as span:
            conn = await checkout_session(ctx, self._engine)

            try:
                acquired = await get_lock(ctx, conn, key_id, opts.timeout)
            except Exception as e:
                error = LockAcquisitionError(
                    key=name,
                    reason=_failure_reason(e, ctx, opts),
                    timeout=opts.timeout if _is_wait_timeout(e, ctx, opts) else None,
                )
                # The claim may still be pending on the server.
                await close_session(conn, invalidate=True)
                raise error from e
            except asyncio.CancelledError:
                await close_session(conn, invalidate=True)
                raise

            if span is not None:
                span.set_attribute(ATTR_LOCK_ACQUIRED, acquired)

            if not acquired:
                await close_session(conn)
                raise LockAcquisitionError(
                    key=name,
                    reason="Lock held by another session",
                )

        info = LockInfo(
            key=name,
            lock_id=key_id,
            acquired_at=datetime.now(UTC),
            holder_id=self._holder_id,
        )
        signal = CompletionSignal(info)
        task = start_liveness_loop(ctx, conn, signal, opts, self._tracer)
        self._hold_tasks.add(task)
        task.add_done_callback(self._hold_tasks.discard)

        logger.debug(
            "Acquired advisory lock: key=%s, lock_id=%d",
            name,
            key_id,
        )
        return signal

    @asynccontextmanager
    async def hold(
        self,
        name: str,
        *,
        ctx: Context | None = None,
        options: LockOptions | None = None,
        timeout: float | None = None,
        ping_interval: float | None = None,
        release_timeout: float | None = None,
    ) -> AsyncIterator[CompletionSignal]:
        """
        Hold a lock for the duration of an ``async with`` block.

        The lock is released when the block exits, whether normally or due
        to an exception, and the exit waits for the release to finish.

        Args:
            name: Lock name
            ctx: Optional parent context; if it ends, the lock is released
                even while the block is still running
            options: Base LockOptions (defaults if None)
            timeout: Seconds to wait for the lock; 0 fails immediately
            ping_interval: Seconds between liveness pings
            release_timeout: Seconds allowed for the unlock request

        Yields:
            The CompletionSignal; check ``signal.done()`` to see whether
            the lock was lost mid-block

        Raises:
            LockAcquisitionError: If the lock cannot be acquired
            Exception: The terminal error reported on release, if any
        """
        scope = ctx.child() if ctx is not None else Context.background()
        try:
            signal = await self.lock(
                scope,
                name,
                options=options,
                timeout=timeout,
                ping_interval=ping_interval,
                release_timeout=release_timeout,
            )
        except BaseException:
            scope.cancel()
            raise

        try:
            yield signal
        finally:
            scope.cancel()
            error = await signal.wait()

        if error is not None:
            raise error

    @property
    def held_lock_count(self) -> int:
        """
        Get the number of locks currently held through this locker.

        Note:
            A lock counts as held until its release has finished.
        """
        return len(self._hold_tasks)


async def lock(
    ctx: Context,
    engine: AsyncEngine,
    name: str,
    *,
    options: LockOptions | None = None,
    timeout: float | None = None,
    ping_interval: float | None = None,
    release_timeout: float | None = None,
    tracer: Tracer | None = None,
) -> CompletionSignal:
    """
    Get an advisory lock from PostgreSQL and hold it until ``ctx`` ends.

    The session is pinged every ``ping_interval`` seconds to keep it from
    timing out. If the lock is unavailable and ``timeout`` is set, waits up
    to ``timeout`` seconds for it; otherwise fails immediately.

    Args:
        ctx: Context bounding acquisition and the whole hold period
        engine: SQLAlchemy async engine providing the lock session
        name: Lock name
        options: Base LockOptions (defaults if None)
        timeout: Seconds to wait for the lock (default 0: don't wait)
        ping_interval: Seconds between liveness pings (default 10)
        release_timeout: Seconds allowed for the unlock request (default 10)
        tracer: Optional Tracer for acquire/release spans

    Returns:
        CompletionSignal that delivers None, or the terminal error, once
        the lock is released

    Raises:
        LockAcquisitionError: If the lock could not be acquired
    """
    locker = AdvisoryLocker(engine, tracer=tracer)
    return await locker.lock(
        ctx,
        name,
        options=options,
        timeout=timeout,
        ping_interval=ping_interval,
        release_timeout=release_timeout,
    )


__all__ = [
    "AdvisoryLocker",
    "lock",
]
